"""
Tests specific to the SQLite backend.
"""

import sqlite3

import pytest

from rdf_quadstore import (
    Graph,
    Literal,
    Quadruple,
    Resource,
    SQLiteQuadrupleStore,
    StoreAccessError,
    StoreInitializationError,
)
from rdf_quadstore.backends.sql import SQLITE_DIALECT, SqlFilterTranslator
from rdf_quadstore.storage.patterns import QuadruplePattern
from rdf_quadstore.storage.planning import OperationKind, build_identity_plan, build_plan

CTX = Resource("ctx:ex")
S = Resource("ex:subj")
P = Resource("ex:pred")
O = Resource("ex:obj")


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "data" / "quads.db"


@pytest.fixture
def store(db_path):
    return SQLiteQuadrupleStore(db_path)


class TestInitialization:
    """Construction and schema provisioning."""

    def test_creates_file_and_schema(self, store, db_path):
        assert db_path.exists()
        with sqlite3.connect(db_path) as conn:
            tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
            indexes = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='index'")}
        assert "Quadruples" in tables
        assert {
            "IDX_ContextID", "IDX_SubjectID", "IDX_PredicateID", "IDX_ObjectID",
            "IDX_SubjectID_PredicateID", "IDX_SubjectID_ObjectID", "IDX_PredicateID_ObjectID",
        } <= indexes

    @pytest.mark.parametrize("path", ["", "   ", ":memory:"])
    def test_rejects_bad_paths(self, path):
        with pytest.raises(StoreInitializationError):
            SQLiteQuadrupleStore(path)

    def test_rejects_unusable_file(self, tmp_path):
        path = tmp_path / "not_a_db.db"
        path.write_bytes(b"this is not a sqlite database at all" * 10)
        with pytest.raises(StoreInitializationError):
            SQLiteQuadrupleStore(path)

    def test_reopen_keeps_data(self, store, db_path):
        q = Quadruple(CTX, S, P, O)
        store.add_quadruple(q)
        reopened = SQLiteQuadrupleStore(db_path)
        assert reopened.select_quadruples() == [q]
        assert reopened == store

    def test_identity(self, store, db_path):
        assert str(store) == f"SQLITE|DATABASE={db_path}"
        assert store != SQLiteQuadrupleStore(db_path.parent / "other.db")


class TestPersistedLayout:
    """Rows carry IDs and lexical forms."""

    def test_row_contents(self, store, db_path):
        q = Quadruple(CTX, S, P, Literal("hello", language="en"))
        store.add_quadruple(q)
        with sqlite3.connect(db_path) as conn:
            row = conn.execute(
                "SELECT QuadrupleID, TripleFlavor, Context, ContextID, Subject, SubjectID, "
                "Predicate, PredicateID, Object, ObjectID FROM Quadruples"
            ).fetchone()
        assert row == (
            q.quadruple_id, 2,
            "ctx:ex", CTX.term_id,
            "ex:subj", S.term_id,
            "ex:pred", P.term_id,
            '"hello"@EN', q.object.term_id,
        )


class TestTranslator:
    """SQL rendering."""

    def test_select_uses_chosen_index(self):
        translator = SqlFilterTranslator(SQLITE_DIALECT)
        plan = build_plan(QuadruplePattern.of(subject=S, predicate=P))
        sql, params = translator.select_sql(plan)
        assert "INDEXED BY IDX_SubjectID_PredicateID" in sql
        assert sql.endswith("WHERE SubjectID = ? AND PredicateID = ?")
        assert params == (S.term_id, P.term_id)

    def test_object_constrains_flavor(self):
        translator = SqlFilterTranslator(SQLITE_DIALECT)
        plan = build_plan(QuadruplePattern.of(object=O), OperationKind.DELETE)
        sql, params = translator.delete_sql(plan)
        assert sql == "DELETE FROM Quadruples INDEXED BY IDX_ObjectID WHERE ObjectID = ? AND TripleFlavor = ?"
        assert params == (O.term_id, 1)

    def test_full_scan_has_no_where(self):
        translator = SqlFilterTranslator(SQLITE_DIALECT)
        sql, params = translator.select_sql(build_plan(QuadruplePattern.of()))
        assert "WHERE" not in sql and "INDEXED BY" not in sql
        assert params == ()

    def test_primary_key_lookup_has_no_hint(self):
        translator = SqlFilterTranslator(SQLITE_DIALECT)
        sql, params = translator.exists_sql(build_identity_plan(5, OperationKind.CONTAINS))
        assert sql == "SELECT 1 FROM Quadruples WHERE QuadrupleID = ? LIMIT 1"
        assert params == (5,)

    def test_insert_or_ignore(self):
        assert SQLITE_DIALECT.insert_sql().startswith("INSERT OR IGNORE INTO Quadruples")


class TestFailures:
    """Backend failures, rollback and connection release."""

    def test_missing_table_is_wrapped(self, store, db_path):
        with sqlite3.connect(db_path) as conn:
            conn.execute("DROP TABLE Quadruples")
        with pytest.raises(StoreAccessError, match="Cannot read from SQLITE store because") as exc_info:
            store.select_quadruples(subject=S)
        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
        assert exc_info.value.backend_message
        assert store.quadruples_count == -1

    def test_failed_merge_rolls_back(self, store, db_path):
        with sqlite3.connect(db_path) as conn:
            conn.execute(
                "CREATE TRIGGER refuse_boom BEFORE INSERT ON Quadruples "
                "WHEN NEW.Object = '\"boom\"' BEGIN SELECT RAISE(ABORT, 'refused'); END"
            )
        good = Quadruple(CTX, S, P, Literal("fine"))
        bad = Quadruple(CTX, S, P, Literal("boom"))
        graph = Graph(CTX, [good.triple, bad.triple])
        with pytest.raises(StoreAccessError, match="refused"):
            store.merge_graph(graph)
        assert store.quadruples_count == 0

    def test_connections_released_on_every_path(self, store, db_path, monkeypatch):
        opened, released = [], []
        original_open, original_release = store._open, store._release

        def tracking_open(timeout):
            conn = original_open(timeout)
            opened.append(conn)
            return conn

        def tracking_release(conn):
            released.append(conn)
            original_release(conn)

        monkeypatch.setattr(store, "_open", tracking_open)
        monkeypatch.setattr(store, "_release", tracking_release)

        store.add_quadruple(Quadruple(CTX, S, P, O))
        store.select_quadruples(subject=Resource("ex:nobody"))
        with sqlite3.connect(db_path) as conn:
            conn.execute("DROP TABLE Quadruples")
        with pytest.raises(StoreAccessError):
            store.remove_quadruples(subject=S)

        assert len(opened) == 3
        assert released == opened


class TestOptimize:
    def test_vacuum(self, store):
        store.add_quadruple(Quadruple(CTX, S, P, O))
        store.clear_quadruples()
        assert store.optimize() is store
        assert store.quadruples_count == 0
