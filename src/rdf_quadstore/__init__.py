"""
rdf-quadstore: a pluggable RDF quadruple store.

One store interface, many engines: in-memory (Polars), SQLite, DuckDB,
PostgreSQL and Kùzu all answer the same context/subject/predicate/object/
literal patterns with the same rows.
"""

__version__ = "0.1.0"

from rdf_quadstore.errors import (
    QuadStoreError,
    InvalidPatternError,
    StoreAccessError,
    StoreInitializationError,
    QuadrupleIntegrityError,
    OperationCancelledError,
)
from rdf_quadstore.storage.terms import Resource, Literal, Term, create_hash, parse_pattern_member
from rdf_quadstore.models import Triple, Quadruple, Graph, TripleFlavor, DEFAULT_CONTEXT
from rdf_quadstore.storage.options import StoreOptions, load_options
from rdf_quadstore.storage.query_context import CancellationToken
from rdf_quadstore.storage.patterns import QuadruplePattern
from rdf_quadstore.storage.planning import OperationKind, QueryPlan
from rdf_quadstore.store import QuadrupleStore
from rdf_quadstore.backends import MemoryQuadrupleStore, SQLiteQuadrupleStore

__all__ = [
    # Errors
    "QuadStoreError",
    "InvalidPatternError",
    "StoreAccessError",
    "StoreInitializationError",
    "QuadrupleIntegrityError",
    "OperationCancelledError",
    # Model
    "Resource",
    "Literal",
    "Term",
    "create_hash",
    "parse_pattern_member",
    "Triple",
    "Quadruple",
    "Graph",
    "TripleFlavor",
    "DEFAULT_CONTEXT",
    # Configuration
    "StoreOptions",
    "load_options",
    "CancellationToken",
    # Planning
    "QuadruplePattern",
    "OperationKind",
    "QueryPlan",
    # Stores
    "QuadrupleStore",
    "MemoryQuadrupleStore",
    "SQLiteQuadrupleStore",
    # Optional engines (loaded lazily)
    "DuckDBQuadrupleStore",
    "PostgreSQLQuadrupleStore",
    "KuzuQuadrupleStore",
]


def __getattr__(name):
    if name in ("DuckDBQuadrupleStore", "PostgreSQLQuadrupleStore", "KuzuQuadrupleStore"):
        from rdf_quadstore import backends
        return getattr(backends, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
