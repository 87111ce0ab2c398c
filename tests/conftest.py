"""
Shared fixtures: sample terms and quadruples, and a store fixture that runs
the same test against every available backend.
"""

import os

import pytest

from rdf_quadstore import (
    Graph,
    Literal,
    MemoryQuadrupleStore,
    Quadruple,
    Resource,
    SQLiteQuadrupleStore,
    Triple,
)

POSTGRES_DSN_ENV = "QUADSTORE_POSTGRES_DSN"

BACKENDS = ["memory", "sqlite", "duckdb", "kuzu"]
if os.environ.get(POSTGRES_DSN_ENV):
    BACKENDS.append("postgresql")


def make_store(kind, tmp_path, **kwargs):
    """Build a fresh store of the given kind, skipping missing engines."""
    if kind == "memory":
        return MemoryQuadrupleStore(**kwargs)
    if kind == "sqlite":
        return SQLiteQuadrupleStore(tmp_path / "quads.db", **kwargs)
    if kind == "duckdb":
        pytest.importorskip("duckdb")
        from rdf_quadstore.backends.duckdb import DuckDBQuadrupleStore
        return DuckDBQuadrupleStore(tmp_path / "quads.duckdb", **kwargs)
    if kind == "kuzu":
        pytest.importorskip("kuzu")
        from rdf_quadstore.backends.kuzu import KuzuQuadrupleStore
        return KuzuQuadrupleStore(tmp_path / "quads_kuzu", **kwargs)
    if kind == "postgresql":
        pytest.importorskip("psycopg")
        from rdf_quadstore.backends.postgresql import PostgreSQLQuadrupleStore
        store = PostgreSQLQuadrupleStore(os.environ[POSTGRES_DSN_ENV], **kwargs)
        store.clear_quadruples()
        return store
    raise ValueError(f"Unknown backend {kind}")


@pytest.fixture(params=BACKENDS)
def store(request, tmp_path):
    """A fresh, empty store of each available kind."""
    s = make_store(request.param, tmp_path)
    yield s
    s.close()


@pytest.fixture
def store_factory(request, tmp_path):
    """Build stores with custom options; closes them afterwards."""
    created = []

    def factory(kind, **kwargs):
        s = make_store(kind, tmp_path, **kwargs)
        created.append(s)
        return s

    yield factory
    for s in created:
        s.close()


# =============================================================================
# Sample data
# =============================================================================

CTX_EX = Resource("ctx:ex")
CTX_EX2 = Resource("ctx:ex2")
EX_SUBJ = Resource("ex:subj")
EX_PRED = Resource("ex:pred")
EX_OBJ = Resource("ex:obj")
HELLO = Literal("hello")


@pytest.fixture
def q1():
    """Resource-object quadruple in ctx:ex."""
    return Quadruple(CTX_EX, EX_SUBJ, EX_PRED, EX_OBJ)


@pytest.fixture
def q2():
    """Literal-object quadruple in ctx:ex2."""
    return Quadruple(CTX_EX2, EX_SUBJ, EX_PRED, HELLO)


@pytest.fixture
def sample_graph():
    """A small graph mixing resource and literal objects."""
    alice = Resource("http://example.org/alice")
    bob = Resource("http://example.org/bob")
    knows = Resource("http://xmlns.com/foaf/0.1/knows")
    name = Resource("http://xmlns.com/foaf/0.1/name")
    age = Resource("http://xmlns.com/foaf/0.1/age")
    return Graph(Resource("http://example.org/graphs/people"), [
        Triple(alice, knows, bob),
        Triple(alice, name, Literal("Alice", language="en")),
        Triple(bob, name, Literal("Bob")),
        Triple(bob, age, Literal("42", datatype="http://www.w3.org/2001/XMLSchema#integer")),
    ])
