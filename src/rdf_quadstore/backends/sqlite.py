"""
SQLite quadruple store.

Backed by a database file. Each operation opens its own connection (in
autocommit mode, so transactions are explicit BEGIN/COMMIT/ROLLBACK) and
closes it before returning. Plans are executed with an ``INDEXED BY`` hint
naming the index the planner chose.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional, Union

from rdf_quadstore.backends.sql import SQLITE_DIALECT, SqlQuadrupleStore
from rdf_quadstore.errors import StoreAccessError, StoreInitializationError
from rdf_quadstore.storage.options import StoreOptions

logger = logging.getLogger(__name__)


class SQLiteQuadrupleStore(SqlQuadrupleStore):
    """
    Quadruple store on a SQLite database file.

    The file is created (with its schema) when missing. In-memory databases
    are not supported because they do not survive the per-operation
    connection.

    Example:
        with SQLiteQuadrupleStore("quads.db") as store:
            store.add_quadruple(quad)
            print(store.quadruples_count)
    """

    store_type = "SQLITE"
    dialect = SQLITE_DIALECT

    def __init__(self, path: Union[str, Path], options: Optional[StoreOptions] = None):
        if path is None or not str(path).strip():
            raise StoreInitializationError(
                "Cannot connect to SQLITE store because: given path is null or empty"
            )
        if str(path).strip() == ":memory:":
            raise StoreInitializationError(
                "Cannot connect to SQLITE store because: in-memory databases are not supported"
            )
        super().__init__(options)
        self.path = Path(path)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.initialize_schema()
        except (OSError, sqlite3.Error) as e:
            raise StoreInitializationError(f"Cannot create SQLITE store because: {e}") from e

    @property
    def description(self) -> str:
        return f"DATABASE={self.path}"

    def _open(self, timeout: int) -> sqlite3.Connection:
        # The busy timeout bounds how long a command waits on a locked database
        return sqlite3.connect(str(self.path), timeout=timeout, isolation_level=None)

    def optimize(self) -> "SQLiteQuadrupleStore":
        """Compact the database file (VACUUM)."""
        try:
            with self._session(self.options.delete_timeout) as conn:
                conn.execute("VACUUM")
        except sqlite3.Error as e:
            raise StoreAccessError(
                f"Cannot optimize SQLITE store because: {e}", backend_message=str(e)
            ) from e
        logger.info(f"Optimized SQLite store at {self.path}")
        return self
