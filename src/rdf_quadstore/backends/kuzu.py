"""
Kùzu quadruple store.

Quadruples are stored as a property graph:

- ``ResourceNode(term_id, uri)`` and ``LiteralNode(term_id, value)`` node
  tables, keyed by term ID
- ``ResourceProperty`` (SPO) and ``LiteralProperty`` (SPL) relationship
  tables from subject to object, carrying the quadruple ID, the context and
  the predicate

The flavor constraint of a plan therefore picks the relationship table;
plans that leave the flavor open are run against both tables.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generator, Optional, Sequence, Union

try:
    import kuzu
    KUZU_AVAILABLE = True
except ImportError:
    KUZU_AVAILABLE = False

from rdf_quadstore.errors import StoreInitializationError
from rdf_quadstore.models import Quadruple, TripleFlavor
from rdf_quadstore.store import QuadrupleStore, iter_batches
from rdf_quadstore.storage.options import StoreOptions
from rdf_quadstore.storage.planning import (
    CONTEXT_ID,
    FLAVOR,
    OBJECT_ID,
    PREDICATE_ID,
    QUADRUPLE_ID,
    SUBJECT_ID,
    FilterTranslator,
    QueryPlan,
)
from rdf_quadstore.storage.query_context import CancellationToken, check_token

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"

# Logical column -> Cypher property
PROPERTY_NAMES = {
    QUADRUPLE_ID: "r.qid",
    CONTEXT_ID: "r.ctx_id",
    SUBJECT_ID: "s.term_id",
    PREDICATE_ID: "r.pred_id",
    OBJECT_ID: "o.term_id",
}

# Flavor -> (relationship table, object node table, object lexical property)
FLAVOR_TABLES = {
    TripleFlavor.SPO: ("ResourceProperty", "ResourceNode", "uri"),
    TripleFlavor.SPL: ("LiteralProperty", "LiteralNode", "value"),
}

SCHEMA = (
    "CREATE NODE TABLE IF NOT EXISTS ResourceNode(term_id INT64, uri STRING, PRIMARY KEY (term_id))",
    "CREATE NODE TABLE IF NOT EXISTS LiteralNode(term_id INT64, value STRING, PRIMARY KEY (term_id))",
    "CREATE REL TABLE IF NOT EXISTS ResourceProperty(FROM ResourceNode TO ResourceNode, "
    "qid INT64, ctx_id INT64, ctx STRING, pred_id INT64, pred STRING)",
    "CREATE REL TABLE IF NOT EXISTS LiteralProperty(FROM ResourceNode TO LiteralNode, "
    "qid INT64, ctx_id INT64, ctx STRING, pred_id INT64, pred STRING)",
)


@dataclass(frozen=True)
class CypherFilter:
    """A MATCH pattern with its WHERE clause, for one relationship table."""
    flavor: TripleFlavor
    match: str
    where: str
    params: dict

    def select(self) -> str:
        _, _, lexical = FLAVOR_TABLES[self.flavor]
        return (
            f"{self.match}{self.where} "
            f"RETURN {int(self.flavor)}, r.ctx, s.uri, r.pred, o.{lexical}"
        )

    def count(self) -> str:
        return f"{self.match}{self.where} RETURN count(r)"

    def delete(self) -> str:
        return f"{self.match}{self.where} DELETE r"


class KuzuFilterTranslator(FilterTranslator):
    """Renders plans as Cypher, one filter per relationship table the plan admits."""

    def build_filter_expression(self, plan: QueryPlan) -> list[CypherFilter]:
        flavors = [plan.flavor] if plan.flavor is not None else [TripleFlavor.SPO, TripleFlavor.SPL]
        clauses = []
        params = {}
        for i, condition in enumerate(plan.conditions):
            if condition.column == FLAVOR:
                continue
            name = f"p{i}"
            clauses.append(f"{PROPERTY_NAMES[condition.column]} = ${name}")
            params[name] = condition.value
        where = " WHERE " + " AND ".join(clauses) if clauses else ""

        filters = []
        for flavor in flavors:
            rel_table, object_table, _ = FLAVOR_TABLES[flavor]
            match = f"MATCH (s:ResourceNode)-[r:{rel_table}]->(o:{object_table})"
            filters.append(CypherFilter(flavor, match, where, dict(params)))
        return filters


def _scalar(result: Any) -> int:
    return int(result.get_next()[0]) if result.has_next() else 0


def _rows(result: Any) -> list[list]:
    rows = []
    while result.has_next():
        rows.append(result.get_next())
    return rows


class KuzuQuadrupleStore(QuadrupleStore):
    """
    Quadruple store on an embedded Kùzu database.

    Example:
        store = KuzuQuadrupleStore("./quads_kuzu")
        store.merge_graph(graph)
    """

    store_type = "KUZU"

    def __init__(self, path: Union[str, Path], options: Optional[StoreOptions] = None):
        if not KUZU_AVAILABLE:
            raise StoreInitializationError(
                "kuzu is required for KuzuQuadrupleStore. "
                "Install with: pip install 'rdf-quadstore[kuzu]'"
            )
        if path is None or not str(path).strip():
            raise StoreInitializationError(
                "Cannot connect to KUZU store because: given path is null or empty"
            )
        super().__init__(options)
        self.path = str(path)
        self._translator = KuzuFilterTranslator()
        self._lock = threading.Lock()
        self._db = None

        try:
            if self.path != IN_MEMORY:
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._db = kuzu.Database(self.path)
            with self._session(self.options.insert_timeout) as conn:
                for statement in SCHEMA:
                    conn.execute(statement)
        except Exception as e:
            self.close()
            raise StoreInitializationError(f"Cannot create KUZU store because: {e}") from e
        logger.info(f"Kùzu quadruple store ready at {self.path}")

    @property
    def description(self) -> str:
        return f"DATABASE={self.path}"

    @property
    def translator(self) -> KuzuFilterTranslator:
        return self._translator

    @contextmanager
    def _session(self, timeout: int) -> Generator[Any, None, None]:
        with self._lock:
            if self._db is None:
                raise StoreInitializationError(f"{self} is closed")
            conn = kuzu.Connection(self._db)
        try:
            conn.set_query_timeout(timeout * 1000)
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self, conn: Any) -> Generator[Any, None, None]:
        conn.execute("BEGIN TRANSACTION")
        try:
            yield conn
        except BaseException:
            try:
                conn.execute("ROLLBACK")
            except Exception as rollback_error:
                logger.warning(f"Rollback failed on {self}: {rollback_error}")
            raise
        else:
            conn.execute("COMMIT")

    # -------------------------------------------------------------------------
    # Units of work
    # -------------------------------------------------------------------------

    def _write_quadruple(self, conn: Any, quadruple: Quadruple) -> None:
        rel_table, object_table, lexical = FLAVOR_TABLES[quadruple.flavor]
        conn.execute(
            "MERGE (s:ResourceNode {term_id: $id}) ON CREATE SET s.uri = $lex",
            parameters={"id": quadruple.subject.term_id, "lex": quadruple.subject.lexical},
        )
        conn.execute(
            f"MERGE (o:{object_table} {{term_id: $id}}) ON CREATE SET o.{lexical} = $lex",
            parameters={"id": quadruple.object.term_id, "lex": quadruple.object.lexical},
        )
        conn.execute(
            f"MATCH (s:ResourceNode {{term_id: $sid}}), (o:{object_table} {{term_id: $oid}}) "
            f"MERGE (s)-[r:{rel_table} {{qid: $qid}}]->(o) "
            f"ON CREATE SET r.ctx_id = $cid, r.ctx = $ctx, r.pred_id = $pid, r.pred = $pred",
            parameters={
                "sid": quadruple.subject.term_id,
                "oid": quadruple.object.term_id,
                "qid": quadruple.quadruple_id,
                "cid": quadruple.context.term_id,
                "ctx": quadruple.context.lexical,
                "pid": quadruple.predicate.term_id,
                "pred": quadruple.predicate.lexical,
            },
        )

    def _relation_count(self, conn: Any) -> int:
        return sum(
            _scalar(conn.execute(f"MATCH ()-[r:{rel_table}]->() RETURN count(r)"))
            for rel_table, _, _ in FLAVOR_TABLES.values()
        )

    def _insert_sync(self, quadruples: Sequence[Quadruple], token: Optional[CancellationToken]) -> int:
        with self._session(self.options.insert_timeout) as conn:
            with self._transaction(conn):
                # MERGE leaves existing relations alone, so count what it added
                before = self._relation_count(conn)
                for batch in iter_batches(quadruples, self.options.batch_size):
                    check_token(token)
                    for quadruple in batch:
                        self._write_quadruple(conn, quadruple)
                return self._relation_count(conn) - before

    def _delete_sync(self, plan: QueryPlan, token: Optional[CancellationToken]) -> int:
        deleted = 0
        with self._session(self.options.delete_timeout) as conn:
            with self._transaction(conn):
                for cypher in self._translator.build_filter_expression(plan):
                    check_token(token)
                    deleted += _scalar(conn.execute(cypher.count(), parameters=cypher.params))
                    conn.execute(cypher.delete(), parameters=cypher.params)
        return deleted

    def _select_sync(self, plan: QueryPlan, token: Optional[CancellationToken]) -> list[list]:
        rows: list[list] = []
        with self._session(self.options.select_timeout) as conn:
            for cypher in self._translator.build_filter_expression(plan):
                check_token(token)
                rows.extend(_rows(conn.execute(cypher.select(), parameters=cypher.params)))
        return rows

    def _exists_sync(self, plan: QueryPlan, token: Optional[CancellationToken]) -> bool:
        with self._session(self.options.select_timeout) as conn:
            for cypher in self._translator.build_filter_expression(plan):
                check_token(token)
                if _scalar(conn.execute(cypher.count(), parameters=cypher.params)) > 0:
                    return True
        return False

    def _count_sync(self, token: Optional[CancellationToken]) -> int:
        with self._session(self.options.select_timeout) as conn:
            check_token(token)
            return self._relation_count(conn)

    async def _insert(self, quadruples, token):
        return await asyncio.to_thread(self._insert_sync, quadruples, token)

    async def _delete(self, plan, token):
        return await asyncio.to_thread(self._delete_sync, plan, token)

    async def _select(self, plan, token):
        return await asyncio.to_thread(self._select_sync, plan, token)

    async def _exists(self, plan, token):
        return await asyncio.to_thread(self._exists_sync, plan, token)

    async def _count(self, token):
        return await asyncio.to_thread(self._count_sync, token)

    def close(self) -> None:
        with self._lock:
            if self._db is not None:
                self._db.close()
                self._db = None
