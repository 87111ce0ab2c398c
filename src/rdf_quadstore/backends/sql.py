"""
Shared relational machinery.

Every relational backend persists the same layout: one Quadruples table
keyed by QuadrupleID, carrying TripleFlavor and an ID plus a lexical column
for each of context, subject, predicate and object, with the secondary
indexes of RELATIONAL_INDEXES. Engines differ only in their dialect (column
types, parameter style, insert-or-ignore form, index hints), captured by
SqlDialect.

SqlQuadrupleStore implements the store primitives for synchronous DB-API
drivers: each primitive runs one connect/act/release unit of work on a
worker thread via asyncio.to_thread.
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator, NamedTuple, Optional, Sequence

from rdf_quadstore.models import Quadruple
from rdf_quadstore.store import QuadrupleStore, iter_batches
from rdf_quadstore.storage.options import StoreOptions
from rdf_quadstore.storage.planning import (
    CONTEXT_ID,
    FLAVOR,
    OBJECT_ID,
    PREDICATE_ID,
    QUADRUPLE_ID,
    RELATIONAL_INDEXES,
    SUBJECT_ID,
    FilterTranslator,
    IndexSpec,
    QueryPlan,
)
from rdf_quadstore.storage.query_context import CancellationToken, check_token

logger = logging.getLogger(__name__)


TABLE_NAME = "Quadruples"

# Logical column -> physical column
COLUMN_NAMES = {
    QUADRUPLE_ID: "QuadrupleID",
    FLAVOR: "TripleFlavor",
    CONTEXT_ID: "ContextID",
    SUBJECT_ID: "SubjectID",
    PREDICATE_ID: "PredicateID",
    OBJECT_ID: "ObjectID",
}

# Columns read back by selections, in materializer row order
SELECT_COLUMNS = ("TripleFlavor", "Context", "Subject", "Predicate", "Object")

# Columns written by inserts, in quadruple_params order
INSERT_COLUMNS = (
    "QuadrupleID", "TripleFlavor",
    "Context", "ContextID",
    "Subject", "SubjectID",
    "Predicate", "PredicateID",
    "Object", "ObjectID",
)


def quadruple_params(quadruple: Quadruple) -> tuple:
    """Insert parameters of a quadruple, in INSERT_COLUMNS order."""
    return (
        quadruple.quadruple_id,
        int(quadruple.flavor),
        quadruple.context.lexical,
        quadruple.context.term_id,
        quadruple.subject.lexical,
        quadruple.subject.term_id,
        quadruple.predicate.lexical,
        quadruple.predicate.term_id,
        quadruple.object.lexical,
        quadruple.object.term_id,
    )


@dataclass(frozen=True)
class SqlDialect:
    """
    What differs between SQL engines.

    Attributes:
        name: Engine name, for log messages
        id_type: Column type of 64-bit IDs
        text_type: Column type of lexical forms
        placeholder: DB-API parameter marker
        insert_or_ignore: Insert statement template with {table}, {columns}, {values}
        index_hints: Whether the engine accepts ``INDEXED BY``
        begin: Statement opening a transaction
    """
    name: str
    id_type: str = "BIGINT"
    text_type: str = "VARCHAR"
    placeholder: str = "?"
    insert_or_ignore: str = "INSERT OR IGNORE INTO {table} ({columns}) VALUES ({values})"
    index_hints: bool = False
    begin: str = "BEGIN TRANSACTION"

    def create_table_sql(self) -> str:
        return (
            f"CREATE TABLE IF NOT EXISTS {TABLE_NAME} ("
            f"QuadrupleID {self.id_type} NOT NULL PRIMARY KEY, "
            f"TripleFlavor INTEGER NOT NULL, "
            f"Context {self.text_type} NOT NULL, ContextID {self.id_type} NOT NULL, "
            f"Subject {self.text_type} NOT NULL, SubjectID {self.id_type} NOT NULL, "
            f"Predicate {self.text_type} NOT NULL, PredicateID {self.id_type} NOT NULL, "
            f"Object {self.text_type} NOT NULL, ObjectID {self.id_type} NOT NULL)"
        )

    def create_index_sql(self, catalog: Sequence[IndexSpec] = RELATIONAL_INDEXES) -> list[str]:
        return [
            f"CREATE INDEX IF NOT EXISTS {spec.name} ON {TABLE_NAME} "
            f"({', '.join(COLUMN_NAMES[c] for c in spec.columns)})"
            for spec in catalog
        ]

    def schema_sql(self, catalog: Sequence[IndexSpec] = RELATIONAL_INDEXES) -> list[str]:
        """Create-if-missing DDL for the table and its indexes."""
        return [self.create_table_sql(), *self.create_index_sql(catalog)]

    def insert_sql(self) -> str:
        return self.insert_or_ignore.format(
            table=TABLE_NAME,
            columns=", ".join(INSERT_COLUMNS),
            values=", ".join([self.placeholder] * len(INSERT_COLUMNS)),
        )

    def count_sql(self) -> str:
        return f"SELECT COUNT(*) FROM {TABLE_NAME}"


SQLITE_DIALECT = SqlDialect(
    name="SQLite",
    id_type="INTEGER",
    text_type="VARCHAR(1000)",
    index_hints=True,
    begin="BEGIN",
)

DUCKDB_DIALECT = SqlDialect(name="DuckDB")

POSTGRESQL_DIALECT = SqlDialect(
    name="PostgreSQL",
    placeholder="%s",
    insert_or_ignore=(
        "INSERT INTO {table} ({columns}) VALUES ({values}) ON CONFLICT (QuadrupleID) DO NOTHING"
    ),
    begin="BEGIN",
)


class SqlFilter(NamedTuple):
    """A rendered WHERE clause ("" for none) and its parameters."""
    where: str
    params: tuple


class SqlFilterTranslator(FilterTranslator):
    """
    Renders plans as parameterized SQL.

    Example:
        translator = SqlFilterTranslator(SQLITE_DIALECT)
        sql, params = translator.select_sql(plan)
    """

    def __init__(self, dialect: SqlDialect):
        self.dialect = dialect

    def build_filter_expression(self, plan: QueryPlan) -> SqlFilter:
        if plan.is_full_scan:
            return SqlFilter("", ())
        clauses = [f"{COLUMN_NAMES[c.column]} = {self.dialect.placeholder}" for c in plan.conditions]
        return SqlFilter(" WHERE " + " AND ".join(clauses), tuple(c.value for c in plan.conditions))

    def _source(self, plan: QueryPlan) -> str:
        # Only secondary indexes can be named; the primary key is implicit
        if self.dialect.index_hints and plan.index is not None and plan.index in RELATIONAL_INDEXES:
            return f"{TABLE_NAME} INDEXED BY {plan.index.name}"
        return TABLE_NAME

    def select_sql(self, plan: QueryPlan) -> tuple[str, tuple]:
        where, params = self.build_filter_expression(plan)
        return f"SELECT {', '.join(SELECT_COLUMNS)} FROM {self._source(plan)}{where}", params

    def delete_sql(self, plan: QueryPlan) -> tuple[str, tuple]:
        where, params = self.build_filter_expression(plan)
        return f"DELETE FROM {self._source(plan)}{where}", params

    def exists_sql(self, plan: QueryPlan) -> tuple[str, tuple]:
        where, params = self.build_filter_expression(plan)
        return f"SELECT 1 FROM {TABLE_NAME}{where} LIMIT 1", params


class SqlQuadrupleStore(QuadrupleStore):
    """
    Store over a synchronous DB-API driver.

    Subclasses provide the dialect and the connection lifecycle; every
    primitive opens a connection, runs in an explicit transaction when it
    mutates, and releases the connection before returning.
    """

    dialect: SqlDialect = DUCKDB_DIALECT

    def __init__(self, options: Optional[StoreOptions] = None):
        super().__init__(options)
        self._translator = SqlFilterTranslator(self.dialect)

    @property
    def translator(self) -> SqlFilterTranslator:
        return self._translator

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    @abstractmethod
    def _open(self, timeout: int) -> Any:
        """Open a connection whose commands give up after ``timeout`` seconds."""
        ...

    def _release(self, conn: Any) -> None:
        conn.close()

    def _cursor(self, conn: Any) -> Any:
        return conn.cursor()

    def _affected_rows(self, cursor: Any) -> int:
        return max(cursor.rowcount, 0)

    def _row_count(self, cursor: Any) -> int:
        cursor.execute(self.dialect.count_sql())
        row = cursor.fetchone()
        return int(row[0]) if row else 0

    @contextmanager
    def _session(self, timeout: int) -> Generator[Any, None, None]:
        conn = self._open(timeout)
        try:
            yield conn
        finally:
            self._release(conn)

    @contextmanager
    def _transaction(self, conn: Any) -> Generator[Any, None, None]:
        """BEGIN, then COMMIT on success or ROLLBACK on any failure."""
        cursor = self._cursor(conn)
        cursor.execute(self.dialect.begin)
        try:
            yield cursor
        except BaseException:
            try:
                cursor.execute("ROLLBACK")
            except Exception as rollback_error:
                logger.warning(f"Rollback failed on {self}: {rollback_error}")
            raise
        else:
            cursor.execute("COMMIT")

    def initialize_schema(self) -> None:
        """Create the table and indexes if missing."""
        with self._session(self.options.insert_timeout) as conn:
            with self._transaction(conn) as cursor:
                for statement in self.dialect.schema_sql(self.index_catalog):
                    cursor.execute(statement)
        logger.info(f"{self.dialect.name} quadruple store ready at {self.description}")

    # -------------------------------------------------------------------------
    # Units of work (run on a worker thread)
    # -------------------------------------------------------------------------

    def _insert_sync(self, quadruples: Sequence[Quadruple], token: Optional[CancellationToken]) -> int:
        sql = self.dialect.insert_sql()
        with self._session(self.options.insert_timeout) as conn:
            with self._transaction(conn) as cursor:
                # Rows added, not rows submitted: ignored duplicates do not count
                before = self._row_count(cursor)
                for batch in iter_batches(quadruples, self.options.batch_size):
                    check_token(token)
                    cursor.executemany(sql, [quadruple_params(q) for q in batch])
                return self._row_count(cursor) - before

    def _delete_sync(self, plan: QueryPlan, token: Optional[CancellationToken]) -> int:
        sql, params = self._translator.delete_sql(plan)
        with self._session(self.options.delete_timeout) as conn:
            with self._transaction(conn) as cursor:
                check_token(token)
                cursor.execute(sql, params)
                return self._affected_rows(cursor)

    def _select_sync(self, plan: QueryPlan, token: Optional[CancellationToken]) -> list[tuple]:
        sql, params = self._translator.select_sql(plan)
        with self._session(self.options.select_timeout) as conn:
            check_token(token)
            cursor = self._cursor(conn)
            cursor.execute(sql, params)
            return cursor.fetchall()

    def _exists_sync(self, plan: QueryPlan, token: Optional[CancellationToken]) -> bool:
        sql, params = self._translator.exists_sql(plan)
        with self._session(self.options.select_timeout) as conn:
            check_token(token)
            cursor = self._cursor(conn)
            cursor.execute(sql, params)
            return cursor.fetchone() is not None

    def _count_sync(self, token: Optional[CancellationToken]) -> int:
        with self._session(self.options.select_timeout) as conn:
            check_token(token)
            return self._row_count(self._cursor(conn))

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

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
