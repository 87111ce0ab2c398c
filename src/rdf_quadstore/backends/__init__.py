"""
Storage backends.

Every backend subclasses QuadrupleStore and shares its semantics. The
in-memory and SQLite stores need nothing beyond the core dependencies;
the others are imported on first access so a missing optional driver only
matters when that backend is used.
"""

from rdf_quadstore.backends.memory import MemoryQuadrupleStore, PolarsFilterTranslator
from rdf_quadstore.backends.sqlite import SQLiteQuadrupleStore
from rdf_quadstore.backends.sql import (
    SqlDialect,
    SqlFilter,
    SqlFilterTranslator,
    SQLITE_DIALECT,
    DUCKDB_DIALECT,
    POSTGRESQL_DIALECT,
)

__all__ = [
    "MemoryQuadrupleStore",
    "PolarsFilterTranslator",
    "SQLiteQuadrupleStore",
    "SqlDialect",
    "SqlFilter",
    "SqlFilterTranslator",
    "SQLITE_DIALECT",
    "DUCKDB_DIALECT",
    "POSTGRESQL_DIALECT",
    # Optional - loaded lazily
    "DuckDBQuadrupleStore",
    "PostgreSQLQuadrupleStore",
    "KuzuQuadrupleStore",
    "KuzuFilterTranslator",
]

_LAZY = {
    "DuckDBQuadrupleStore": "rdf_quadstore.backends.duckdb",
    "PostgreSQLQuadrupleStore": "rdf_quadstore.backends.postgresql",
    "KuzuQuadrupleStore": "rdf_quadstore.backends.kuzu",
    "KuzuFilterTranslator": "rdf_quadstore.backends.kuzu",
}


def __getattr__(name):
    if name in _LAZY:
        import importlib
        return getattr(importlib.import_module(_LAZY[name]), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
