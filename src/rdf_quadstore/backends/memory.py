"""
In-memory quadruple store on a polars DataFrame.

The frame holds the same columns as the relational table. Secondary indexes
are emulated with SortedIndex: the planner's chosen index narrows the
candidate rows, then a polars expression applies every condition of the
plan. Mutations build a new frame and swap it in under the store lock, so
readers never see a half-applied change.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import asdict
from typing import Optional, Sequence

import polars as pl

from rdf_quadstore.models import Quadruple
from rdf_quadstore.store import QuadrupleStore, iter_batches
from rdf_quadstore.storage.indexing import IndexManager
from rdf_quadstore.storage.materializer import QUADRUPLE_SCHEMA, ROW_FIELDS, quadruples_to_dataframe
from rdf_quadstore.storage.options import StoreOptions
from rdf_quadstore.storage.planning import QUADRUPLE_ID, FilterTranslator, QueryPlan
from rdf_quadstore.storage.query_context import CancellationToken, check_token

logger = logging.getLogger(__name__)


class PolarsFilterTranslator(FilterTranslator):
    """Renders plans as a polars boolean expression (None for a full scan)."""

    def build_filter_expression(self, plan: QueryPlan) -> Optional[pl.Expr]:
        expr: Optional[pl.Expr] = None
        for condition in plan.conditions:
            term = pl.col(condition.column) == condition.value
            expr = term if expr is None else expr & term
        return expr


class MemoryQuadrupleStore(QuadrupleStore):
    """
    Volatile quadruple store.

    Example:
        store = MemoryQuadrupleStore()
        store.add_quadruple(quad)
        df = store.to_polars()
    """

    store_type = "MEMORY"

    def __init__(self, name: Optional[str] = None, options: Optional[StoreOptions] = None):
        super().__init__(options)
        self.name = name or uuid.uuid4().hex
        self._translator = PolarsFilterTranslator()
        self._df = pl.DataFrame(schema=QUADRUPLE_SCHEMA)
        self._indexes = IndexManager(self.index_catalog)
        self._lock = threading.RLock()
        logger.info(f"In-memory quadruple store '{self.name}' ready")

    @property
    def description(self) -> str:
        return f"NAME={self.name}"

    @property
    def translator(self) -> PolarsFilterTranslator:
        return self._translator

    def _swap(self, df: pl.DataFrame) -> None:
        self._indexes.build_all(df)
        self._df = df

    def _matching(self, plan: QueryPlan) -> pl.DataFrame:
        df = self._df
        positions = self._indexes.positions_for(plan)
        if positions is not None:
            df = df[positions] if positions else df.head(0)
        expr = self._translator.build_filter_expression(plan)
        return df if expr is None else df.filter(expr)

    # -------------------------------------------------------------------------
    # Units of work
    # -------------------------------------------------------------------------

    def _insert_sync(self, quadruples: Sequence[Quadruple], token: Optional[CancellationToken]) -> int:
        with self._lock:
            frames = [self._df]
            for batch in iter_batches(quadruples, self.options.batch_size):
                check_token(token)
                frames.append(quadruples_to_dataframe(batch))
            before = self._df.height
            # Existing rows come first, so keep="first" leaves them untouched
            df = pl.concat(frames, how="vertical").unique(subset=[QUADRUPLE_ID], keep="first", maintain_order=True)
            self._swap(df)
            return df.height - before

    def _delete_sync(self, plan: QueryPlan, token: Optional[CancellationToken]) -> int:
        with self._lock:
            check_token(token)
            if plan.is_full_scan:
                deleted = self._df.height
                self._swap(self._df.head(0))
                return deleted
            doomed = self._matching(plan)[QUADRUPLE_ID]
            if doomed.len() == 0:
                return 0
            self._swap(self._df.filter(~pl.col(QUADRUPLE_ID).is_in(doomed.to_list())))
            return doomed.len()

    def _select_sync(self, plan: QueryPlan, token: Optional[CancellationToken]) -> list[tuple]:
        with self._lock:
            check_token(token)
            return self._matching(plan).select(list(ROW_FIELDS)).rows()

    def _exists_sync(self, plan: QueryPlan, token: Optional[CancellationToken]) -> bool:
        with self._lock:
            check_token(token)
            return self._matching(plan).height > 0

    def _count_sync(self, token: Optional[CancellationToken]) -> int:
        with self._lock:
            check_token(token)
            return self._df.height

    # Runs inline on the event loop

    async def _insert(self, quadruples, token):
        return self._insert_sync(quadruples, token)

    async def _delete(self, plan, token):
        return self._delete_sync(plan, token)

    async def _select(self, plan, token):
        return self._select_sync(plan, token)

    async def _exists(self, plan, token):
        return self._exists_sync(plan, token)

    async def _count(self, token):
        return self._count_sync(token)

    # -------------------------------------------------------------------------
    # Tabular access
    # -------------------------------------------------------------------------

    def to_polars(self) -> pl.DataFrame:
        """Snapshot of the stored quadruples in the persisted column layout."""
        with self._lock:
            return self._df.clone()

    def index_stats(self) -> dict:
        return {name: asdict(stats) for name, stats in self._indexes.stats().items()}
