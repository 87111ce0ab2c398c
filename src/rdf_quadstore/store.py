"""
QuadrupleStore: the uniform store facade.

Every backend subclasses QuadrupleStore and implements five primitives
(_insert, _delete, _select, _exists, _count), each a self-contained unit of
work that opens its own connection or session, acts, and releases it on
every exit path. Everything else lives here, once:

- null inputs are no-ops
- patterns are validated before any I/O
- backend-native failures are wrapped in StoreAccessError
- counts never raise (they return -1)
- sync methods block on the async ones

Example:
    from rdf_quadstore import Quadruple, Resource, Literal, SQLiteQuadrupleStore

    store = SQLiteQuadrupleStore("quads.db")
    store.add_quadruple(Quadruple(
        Resource("ex:ctx"), Resource("ex:subj"), Resource("ex:pred"), Literal("hello"),
    ))
    store.select_quadruples(subject=Resource("ex:subj"))
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Iterator, Optional, Sequence, TypeVar

from rdf_quadstore.errors import QuadStoreError, StoreAccessError
from rdf_quadstore.models import Graph, Quadruple
from rdf_quadstore.storage.materializer import Row, materialize_rows
from rdf_quadstore.storage.options import StoreOptions
from rdf_quadstore.storage.patterns import QuadruplePattern
from rdf_quadstore.storage.planning import (
    RELATIONAL_INDEXES,
    IndexSpec,
    OperationKind,
    QueryPlan,
    build_count_plan,
    build_identity_plan,
    build_plan,
)
from rdf_quadstore.storage.query_context import CancellationToken, check_token, track_operation
from rdf_quadstore.storage.terms import Literal, Resource, TermId, create_hash

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run_sync(coro: Awaitable[T]) -> T:
    """
    Block until a coroutine completes.

    Runs it on a fresh event loop, or on a worker thread's loop when the
    caller is already inside a running loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def iter_batches(quadruples: Sequence[Quadruple], batch_size: int) -> Iterator[Sequence[Quadruple]]:
    """Split quadruples into consecutive chunks of at most batch_size."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    for start in range(0, len(quadruples), batch_size):
        yield quadruples[start:start + batch_size]


class QuadrupleStore(ABC):
    """
    Abstract quadruple store.

    Subclasses set ``store_type``, describe their location through
    ``description``, and implement the primitives. Primitives receive
    validated plans and may raise any backend-native exception.
    """

    store_type: str = "ABSTRACT"

    # Index catalog the planner picks from
    index_catalog: tuple[IndexSpec, ...] = RELATIONAL_INDEXES

    def __init__(self, options: Optional[StoreOptions] = None):
        self.options = (options or StoreOptions()).validate()

    # =========================================================================
    # Identity
    # =========================================================================

    @property
    @abstractmethod
    def description(self) -> str:
        """Backend location, e.g. the database path."""
        ...

    @property
    def store_id(self) -> TermId:
        return create_hash(str(self))

    def __str__(self) -> str:
        return f"{self.store_type}|{self.description}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.description!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QuadrupleStore):
            return NotImplemented
        return self.store_id == other.store_id

    def __hash__(self) -> int:
        return hash(self.store_id)

    # =========================================================================
    # Backend primitives
    # =========================================================================

    @abstractmethod
    async def _insert(self, quadruples: Sequence[Quadruple], token: Optional[CancellationToken]) -> int:
        """Insert-or-ignore all quadruples atomically; return rows actually added."""
        ...

    @abstractmethod
    async def _delete(self, plan: QueryPlan, token: Optional[CancellationToken]) -> int:
        """Delete the rows the plan selects; return rows deleted."""
        ...

    @abstractmethod
    async def _select(self, plan: QueryPlan, token: Optional[CancellationToken]) -> list[Row]:
        """Return (flavor, context, subject, predicate, object) rows the plan selects."""
        ...

    @abstractmethod
    async def _exists(self, plan: QueryPlan, token: Optional[CancellationToken]) -> bool:
        ...

    @abstractmethod
    async def _count(self, token: Optional[CancellationToken]) -> int:
        ...

    # =========================================================================
    # Coordination
    # =========================================================================

    async def _execute(
        self,
        operation: str,
        verb: str,
        work: Awaitable[T],
        signature: Optional[str] = None,
    ) -> T:
        """
        Run one primitive, wrapping backend-native failures.

        Library errors (invalid patterns, integrity failures, cancellation)
        propagate unchanged.
        """
        with track_operation(operation, self.store_type, signature) as stats:
            try:
                result = await work
            except QuadStoreError:
                raise
            except Exception as e:
                logger.error(f"{operation} failed on {self}: {e}")
                raise StoreAccessError(
                    f"Cannot {verb} {self.store_type} store because: {e}",
                    backend_message=str(e),
                ) from e
            if isinstance(result, (int, list)) and not isinstance(result, bool):
                stats.rows = result if isinstance(result, int) else len(result)
        logger.debug(
            f"{operation} on {self.store_type} ({signature or '*'}) "
            f"took {stats.duration_ms:.1f}ms, {stats.rows} rows"
        )
        return result

    def _plan(self, pattern: QuadruplePattern, kind: OperationKind) -> QueryPlan:
        return build_plan(pattern, kind, self.index_catalog)

    # =========================================================================
    # Async API
    # =========================================================================

    async def add_quadruple_async(
        self,
        quadruple: Optional[Quadruple],
        token: Optional[CancellationToken] = None,
    ) -> "QuadrupleStore":
        """Add a quadruple; re-adding an existing one changes nothing."""
        if quadruple is None:
            return self
        check_token(token)
        await self._execute("add_quadruple", "insert into", self._insert([quadruple], token))
        return self

    async def merge_graph_async(
        self,
        graph: Optional[Graph],
        token: Optional[CancellationToken] = None,
    ) -> "QuadrupleStore":
        """Add every triple of the graph under the graph's context, atomically."""
        if graph is None:
            return self
        quadruples = graph.to_quadruples()
        if not quadruples:
            return self
        check_token(token)
        await self._execute("merge_graph", "merge graph into", self._insert(quadruples, token))
        return self

    async def remove_quadruple_async(
        self,
        quadruple: Optional[Quadruple],
        token: Optional[CancellationToken] = None,
    ) -> "QuadrupleStore":
        """Remove a quadruple by identity; absent quadruples are ignored."""
        if quadruple is None:
            return self
        check_token(token)
        plan = build_identity_plan(quadruple.quadruple_id, OperationKind.DELETE)
        await self._execute("remove_quadruple", "delete from", self._delete(plan, token))
        return self

    async def remove_quadruples_async(
        self,
        context: Optional[Resource] = None,
        subject: Optional[Resource] = None,
        predicate: Optional[Resource] = None,
        object: Optional[Resource] = None,
        literal: Optional[Literal] = None,
        token: Optional[CancellationToken] = None,
    ) -> "QuadrupleStore":
        """
        Remove every quadruple matching the pattern.

        A fully wildcard pattern removes everything.

        Raises:
            InvalidPatternError: If object and literal are both given
        """
        pattern = QuadruplePattern.of(context, subject, predicate, object, literal)
        check_token(token)
        plan = self._plan(pattern, OperationKind.DELETE)
        await self._execute(
            "remove_quadruples", "delete from", self._delete(plan, token), plan.signature,
        )
        return self

    async def clear_quadruples_async(self, token: Optional[CancellationToken] = None) -> None:
        """Remove every quadruple."""
        check_token(token)
        plan = self._plan(QuadruplePattern(), OperationKind.DELETE)
        await self._execute("clear_quadruples", "clear", self._delete(plan, token), plan.signature)

    async def contains_quadruple_async(
        self,
        quadruple: Optional[Quadruple],
        token: Optional[CancellationToken] = None,
    ) -> bool:
        if quadruple is None:
            return False
        check_token(token)
        plan = build_identity_plan(quadruple.quadruple_id, OperationKind.CONTAINS)
        return await self._execute("contains_quadruple", "read from", self._exists(plan, token))

    async def select_quadruples_async(
        self,
        context: Optional[Resource] = None,
        subject: Optional[Resource] = None,
        predicate: Optional[Resource] = None,
        object: Optional[Resource] = None,
        literal: Optional[Literal] = None,
        token: Optional[CancellationToken] = None,
    ) -> list[Quadruple]:
        """
        Select the quadruples matching the pattern (absent accessors match anything).

        Raises:
            InvalidPatternError: If object and literal are both given
            QuadrupleIntegrityError: If a stored row cannot be rebuilt
        """
        pattern = QuadruplePattern.of(context, subject, predicate, object, literal)
        check_token(token)
        plan = self._plan(pattern, OperationKind.SELECT)
        rows = await self._execute(
            "select_quadruples", "read from", self._select(plan, token), plan.signature,
        )
        return materialize_rows(rows)

    async def count_quadruples_async(self, token: Optional[CancellationToken] = None) -> int:
        """Number of stored quadruples, or -1 when it cannot be determined."""
        try:
            check_token(token)
            count = await self._count(token)
        except Exception as e:
            logger.warning(f"Cannot count quadruples of {self}: {e}")
            return -1
        logger.debug(f"{self.store_type} store holds {count} quadruples")
        return count

    async def extract_contexts_async(self, token: Optional[CancellationToken] = None) -> list[Resource]:
        """Distinct contexts, in first-seen order."""
        quadruples = await self.select_quadruples_async(token=token)
        return list(dict.fromkeys(q.context for q in quadruples))

    async def extract_graph_async(
        self,
        context: Resource,
        token: Optional[CancellationToken] = None,
    ) -> Graph:
        """All triples of one context as a Graph."""
        quadruples = await self.select_quadruples_async(context=context, token=token)
        return Graph(context, (q.triple for q in quadruples))

    # =========================================================================
    # Sync API
    # =========================================================================

    def add_quadruple(self, quadruple: Optional[Quadruple], token: Optional[CancellationToken] = None) -> "QuadrupleStore":
        return _run_sync(self.add_quadruple_async(quadruple, token))

    def merge_graph(self, graph: Optional[Graph], token: Optional[CancellationToken] = None) -> "QuadrupleStore":
        return _run_sync(self.merge_graph_async(graph, token))

    def remove_quadruple(self, quadruple: Optional[Quadruple], token: Optional[CancellationToken] = None) -> "QuadrupleStore":
        return _run_sync(self.remove_quadruple_async(quadruple, token))

    def remove_quadruples(
        self,
        context: Optional[Resource] = None,
        subject: Optional[Resource] = None,
        predicate: Optional[Resource] = None,
        object: Optional[Resource] = None,
        literal: Optional[Literal] = None,
        token: Optional[CancellationToken] = None,
    ) -> "QuadrupleStore":
        # Validate on the caller's thread
        QuadruplePattern.of(context, subject, predicate, object, literal)
        return _run_sync(self.remove_quadruples_async(context, subject, predicate, object, literal, token))

    def clear_quadruples(self, token: Optional[CancellationToken] = None) -> None:
        _run_sync(self.clear_quadruples_async(token))

    def contains_quadruple(self, quadruple: Optional[Quadruple], token: Optional[CancellationToken] = None) -> bool:
        return _run_sync(self.contains_quadruple_async(quadruple, token))

    def select_quadruples(
        self,
        context: Optional[Resource] = None,
        subject: Optional[Resource] = None,
        predicate: Optional[Resource] = None,
        object: Optional[Resource] = None,
        literal: Optional[Literal] = None,
        token: Optional[CancellationToken] = None,
    ) -> list[Quadruple]:
        QuadruplePattern.of(context, subject, predicate, object, literal)
        return _run_sync(self.select_quadruples_async(context, subject, predicate, object, literal, token))

    def count_quadruples(self, token: Optional[CancellationToken] = None) -> int:
        return _run_sync(self.count_quadruples_async(token))

    @property
    def quadruples_count(self) -> int:
        return self.count_quadruples()

    def extract_contexts(self) -> list[Resource]:
        return _run_sync(self.extract_contexts_async())

    def extract_graph(self, context: Resource) -> Graph:
        return _run_sync(self.extract_graph_async(context))

    # Convenience selectors

    def select_quadruples_by_context(self, context: Resource) -> list[Quadruple]:
        return self.select_quadruples(context=context)

    def select_quadruples_by_subject(self, subject: Resource) -> list[Quadruple]:
        return self.select_quadruples(subject=subject)

    def select_quadruples_by_predicate(self, predicate: Resource) -> list[Quadruple]:
        return self.select_quadruples(predicate=predicate)

    def select_quadruples_by_object(self, object: Resource) -> list[Quadruple]:
        return self.select_quadruples(object=object)

    def select_quadruples_by_literal(self, literal: Literal) -> list[Quadruple]:
        return self.select_quadruples(literal=literal)

    # Convenience removers. A None accessor is a no-op here, not a full delete.

    def remove_quadruples_by_context(self, context: Optional[Resource]) -> "QuadrupleStore":
        return self if context is None else self.remove_quadruples(context=context)

    def remove_quadruples_by_subject(self, subject: Optional[Resource]) -> "QuadrupleStore":
        return self if subject is None else self.remove_quadruples(subject=subject)

    def remove_quadruples_by_predicate(self, predicate: Optional[Resource]) -> "QuadrupleStore":
        return self if predicate is None else self.remove_quadruples(predicate=predicate)

    def remove_quadruples_by_object(self, object: Optional[Resource]) -> "QuadrupleStore":
        return self if object is None else self.remove_quadruples(object=object)

    def remove_quadruples_by_literal(self, literal: Optional[Literal]) -> "QuadrupleStore":
        return self if literal is None else self.remove_quadruples(literal=literal)

    # =========================================================================
    # Introspection
    # =========================================================================

    def explain(
        self,
        context: Optional[Resource] = None,
        subject: Optional[Resource] = None,
        predicate: Optional[Resource] = None,
        object: Optional[Resource] = None,
        literal: Optional[Literal] = None,
        kind: OperationKind = OperationKind.SELECT,
    ) -> QueryPlan:
        """Return the plan a selection or removal would use, without running it."""
        if kind == OperationKind.COUNT:
            return build_count_plan()
        pattern = QuadruplePattern.of(context, subject, predicate, object, literal)
        return self._plan(pattern, kind)

    def native_filter(self, plan: QueryPlan) -> Any:
        """The backend-native filter a plan translates to."""
        return self.translator.build_filter_expression(plan)

    @property
    @abstractmethod
    def translator(self):
        """FilterTranslator of this backend."""
        ...

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        """Release clients owned by the store. Per-call connections need nothing."""
        pass

    def __enter__(self) -> "QuadrupleStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> "QuadrupleStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
