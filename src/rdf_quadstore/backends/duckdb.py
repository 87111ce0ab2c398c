"""
DuckDB quadruple store.

The store owns one DuckDB database handle; each operation works on its own
cursor (an independent connection to the same database) which is closed
before the operation returns. This also makes ``:memory:`` databases usable,
since the database lives as long as the handle.

DuckDB has no statement timeout, so the configured timeout interrupts the
running command from a timer.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Optional, Union

try:
    import duckdb
    DUCKDB_AVAILABLE = True
except ImportError:
    DUCKDB_AVAILABLE = False

from rdf_quadstore.backends.sql import DUCKDB_DIALECT, SqlQuadrupleStore
from rdf_quadstore.errors import StoreInitializationError
from rdf_quadstore.storage.options import StoreOptions

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


class _TimedCursor:
    """A DuckDB cursor whose commands are interrupted after a timeout."""

    def __init__(self, cursor: Any, timeout: int):
        self._cursor = cursor
        self._timeout = timeout

    def _run(self, method: str, *args) -> Any:
        timer = threading.Timer(self._timeout, self._cursor.interrupt)
        timer.daemon = True
        timer.start()
        try:
            return getattr(self._cursor, method)(*args)
        finally:
            timer.cancel()

    def execute(self, sql: str, params: Any = None) -> Any:
        if params is None:
            return self._run("execute", sql)
        return self._run("execute", sql, params)

    def executemany(self, sql: str, params: Any) -> Any:
        return self._run("executemany", sql, params)

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def close(self) -> None:
        self._cursor.close()


class DuckDBQuadrupleStore(SqlQuadrupleStore):
    """
    Quadruple store on a DuckDB database (file or in-memory).

    Example:
        store = DuckDBQuadrupleStore()                 # in-memory
        store = DuckDBQuadrupleStore("quads.duckdb")   # persistent
    """

    store_type = "DUCKDB"
    dialect = DUCKDB_DIALECT

    def __init__(self, path: Union[str, Path] = IN_MEMORY, options: Optional[StoreOptions] = None):
        if not DUCKDB_AVAILABLE:
            raise StoreInitializationError(
                "DuckDB is required for DuckDBQuadrupleStore. Install with: pip install duckdb"
            )
        if path is None or not str(path).strip():
            raise StoreInitializationError(
                "Cannot connect to DUCKDB store because: given path is null or empty"
            )
        super().__init__(options)
        self.path = str(path)
        self._lock = threading.Lock()
        self._db: Optional[duckdb.DuckDBPyConnection] = None

        try:
            if self.path != IN_MEMORY:
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._db = duckdb.connect(self.path)
            self.initialize_schema()
        except (OSError, duckdb.Error) as e:
            self.close()
            raise StoreInitializationError(f"Cannot create DUCKDB store because: {e}") from e

    @property
    def description(self) -> str:
        return f"DATABASE={self.path}"

    def _open(self, timeout: int) -> _TimedCursor:
        with self._lock:
            if self._db is None:
                raise StoreInitializationError(f"{self} is closed")
            return _TimedCursor(self._db.cursor(), timeout)

    def _cursor(self, conn: _TimedCursor) -> _TimedCursor:
        return conn

    def _affected_rows(self, cursor: _TimedCursor) -> int:
        # DELETE reports its row count as a one-row result
        row = cursor.fetchone()
        return int(row[0]) if row else 0

    def close(self) -> None:
        with self._lock:
            if self._db is not None:
                self._db.close()
                self._db = None
