"""
Tests specific to the DuckDB backend.
"""

import pytest

duckdb = pytest.importorskip("duckdb")

from rdf_quadstore import Literal, Quadruple, Resource, StoreInitializationError
from rdf_quadstore.backends.duckdb import DuckDBQuadrupleStore
from rdf_quadstore.backends.sql import DUCKDB_DIALECT, SqlFilterTranslator
from rdf_quadstore.storage.patterns import QuadruplePattern
from rdf_quadstore.storage.planning import OperationKind, build_plan

CTX = Resource("ctx:ex")
S = Resource("ex:subj")
P = Resource("ex:pred")
O = Resource("ex:obj")


class TestDuckDBStore:
    """Tests for DuckDBQuadrupleStore."""

    def test_in_memory(self):
        with DuckDBQuadrupleStore() as store:
            assert str(store) == "DUCKDB|DATABASE=:memory:"
            store.add_quadruple(Quadruple(CTX, S, P, O))
            store.add_quadruple(Quadruple(CTX, S, P, Literal("hello")))
            assert store.quadruples_count == 2
            assert len(store.select_quadruples(literal=Literal("hello"))) == 1

    def test_file_survives_reopen(self, tmp_path):
        path = tmp_path / "quads.duckdb"
        q = Quadruple(CTX, S, P, O)
        with DuckDBQuadrupleStore(path) as store:
            store.add_quadruple(q)
        with DuckDBQuadrupleStore(path) as store:
            assert store.select_quadruples() == [q]

    def test_delete_reports_rows(self):
        with DuckDBQuadrupleStore() as store:
            store.add_quadruple(Quadruple(CTX, S, P, O))
            store.add_quadruple(Quadruple(CTX, S, P, Literal("x")))
            plan = build_plan(QuadruplePattern.of(subject=S), OperationKind.DELETE)
            assert store._delete_sync(plan, None) == 2

    def test_closed_store(self):
        store = DuckDBQuadrupleStore()
        store.close()
        store.close()
        with pytest.raises(StoreInitializationError):
            store.select_quadruples()
        assert store.quadruples_count == -1

    def test_empty_path(self):
        with pytest.raises(StoreInitializationError):
            DuckDBQuadrupleStore("")

    def test_no_index_hints(self):
        translator = SqlFilterTranslator(DUCKDB_DIALECT)
        sql, params = translator.select_sql(build_plan(QuadruplePattern.of(subject=S, predicate=P)))
        assert "INDEXED BY" not in sql
        assert sql.endswith("FROM Quadruples WHERE SubjectID = ? AND PredicateID = ?")

    def test_schema_types(self):
        ddl = DUCKDB_DIALECT.create_table_sql()
        assert "QuadrupleID BIGINT NOT NULL PRIMARY KEY" in ddl
        assert "Object VARCHAR NOT NULL" in ddl
