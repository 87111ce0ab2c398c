"""
PostgreSQL quadruple store (psycopg 3, async).

Unlike the embedded engines this backend is natively asynchronous: every
primitive opens an AsyncConnection, sets the statement timeout for the
command kind, runs inside ``conn.transaction()`` when it mutates, and closes
the connection on the way out.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

try:
    import psycopg
    from psycopg.conninfo import conninfo_to_dict
    PSYCOPG_AVAILABLE = True
except ImportError:
    PSYCOPG_AVAILABLE = False

from rdf_quadstore.backends.sql import POSTGRESQL_DIALECT, SqlFilterTranslator, quadruple_params
from rdf_quadstore.errors import StoreInitializationError
from rdf_quadstore.store import QuadrupleStore, _run_sync, iter_batches
from rdf_quadstore.storage.options import StoreOptions
from rdf_quadstore.storage.query_context import check_token

logger = logging.getLogger(__name__)


class PostgreSQLQuadrupleStore(QuadrupleStore):
    """
    Quadruple store on a PostgreSQL database.

    Example:
        store = PostgreSQLQuadrupleStore("postgresql://user:pw@localhost/quads")
        await store.add_quadruple_async(quad)
    """

    store_type = "POSTGRESQL"
    dialect = POSTGRESQL_DIALECT

    def __init__(self, dsn: str, options: Optional[StoreOptions] = None):
        if not PSYCOPG_AVAILABLE:
            raise StoreInitializationError(
                "psycopg is required for PostgreSQLQuadrupleStore. "
                "Install with: pip install 'rdf-quadstore[postgres]'"
            )
        if dsn is None or not str(dsn).strip():
            raise StoreInitializationError(
                "Cannot connect to POSTGRESQL store because: given dsn is null or empty"
            )
        super().__init__(options)
        self.dsn = dsn
        self._translator = SqlFilterTranslator(self.dialect)

        try:
            self._conninfo = conninfo_to_dict(dsn)
        except psycopg.ProgrammingError as e:
            raise StoreInitializationError(f"Cannot connect to POSTGRESQL store because: {e}") from e

        try:
            _run_sync(self.initialize_schema_async())
        except psycopg.Error as e:
            raise StoreInitializationError(f"Cannot create POSTGRESQL store because: {e}") from e

    @property
    def description(self) -> str:
        # Never include credentials
        return (
            f"SERVER={self._conninfo.get('host', 'localhost')};"
            f"DATABASE={self._conninfo.get('dbname', '')}"
        )

    @property
    def translator(self) -> SqlFilterTranslator:
        return self._translator

    @asynccontextmanager
    async def _session(self, timeout: int) -> AsyncIterator["psycopg.AsyncConnection"]:
        conn = await psycopg.AsyncConnection.connect(self.dsn, autocommit=True)
        try:
            await conn.execute(
                "SELECT set_config('statement_timeout', %s, false)", (str(timeout * 1000),)
            )
            yield conn
        finally:
            await conn.close()

    async def initialize_schema_async(self) -> None:
        """Create the table and indexes if missing."""
        async with self._session(self.options.insert_timeout) as conn:
            async with conn.transaction():
                for statement in self.dialect.schema_sql(self.index_catalog):
                    await conn.execute(statement)
        logger.info(f"PostgreSQL quadruple store ready at {self.description}")

    async def _row_count(self, conn) -> int:
        cur = await conn.execute(self.dialect.count_sql())
        row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def _insert(self, quadruples, token):
        sql = self.dialect.insert_sql()
        async with self._session(self.options.insert_timeout) as conn:
            async with conn.transaction():
                # ON CONFLICT DO NOTHING skips duplicates, so count what was added
                before = await self._row_count(conn)
                async with conn.cursor() as cur:
                    for batch in iter_batches(quadruples, self.options.batch_size):
                        check_token(token)
                        await cur.executemany(sql, [quadruple_params(q) for q in batch])
                return await self._row_count(conn) - before

    async def _delete(self, plan, token):
        sql, params = self._translator.delete_sql(plan)
        async with self._session(self.options.delete_timeout) as conn:
            async with conn.transaction():
                check_token(token)
                cur = await conn.execute(sql, params)
                return max(cur.rowcount, 0)

    async def _select(self, plan, token):
        sql, params = self._translator.select_sql(plan)
        async with self._session(self.options.select_timeout) as conn:
            check_token(token)
            cur = await conn.execute(sql, params)
            return await cur.fetchall()

    async def _exists(self, plan, token):
        sql, params = self._translator.exists_sql(plan)
        async with self._session(self.options.select_timeout) as conn:
            check_token(token)
            cur = await conn.execute(sql, params)
            return await cur.fetchone() is not None

    async def _count(self, token):
        async with self._session(self.options.select_timeout) as conn:
            check_token(token)
            return await self._row_count(conn)
