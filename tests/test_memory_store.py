"""
Tests specific to the in-memory backend.
"""

import polars as pl

from rdf_quadstore import Literal, MemoryQuadrupleStore, Quadruple, Resource
from rdf_quadstore.backends.memory import PolarsFilterTranslator
from rdf_quadstore.storage.patterns import QuadruplePattern
from rdf_quadstore.storage.planning import QUADRUPLE_ID, build_plan

CTX = Resource("ctx:ex")
S = Resource("ex:subj")
P = Resource("ex:pred")
O = Resource("ex:obj")


class TestMemoryStore:
    """Tests for MemoryQuadrupleStore."""

    def test_names(self):
        assert MemoryQuadrupleStore() != MemoryQuadrupleStore()
        assert MemoryQuadrupleStore("a") == MemoryQuadrupleStore("a")
        assert str(MemoryQuadrupleStore("a")) == "MEMORY|NAME=a"

    def test_to_polars(self):
        store = MemoryQuadrupleStore()
        q = Quadruple(CTX, S, P, Literal("hello"))
        store.add_quadruple(q).add_quadruple(q)
        df = store.to_polars()
        assert isinstance(df, pl.DataFrame)
        assert df.height == 1
        assert df[QUADRUPLE_ID].to_list() == [q.quadruple_id]

    def test_snapshot_is_detached(self):
        store = MemoryQuadrupleStore()
        store.add_quadruple(Quadruple(CTX, S, P, O))
        snapshot = store.to_polars()
        store.clear_quadruples()
        assert snapshot.height == 1

    def test_insert_keeps_order(self):
        store = MemoryQuadrupleStore()
        quads = [Quadruple(CTX, S, P, Literal(str(i))) for i in range(5)]
        for q in quads:
            store.add_quadruple(q)
        assert store.select_quadruples() == quads

    def test_index_stats_follow_mutations(self):
        store = MemoryQuadrupleStore()
        store.add_quadruple(Quadruple(CTX, S, P, O))
        store.add_quadruple(Quadruple(CTX, S, P, Literal("x")))
        stats = store.index_stats()
        assert stats["IDX_SubjectID"]["num_keys"] == 1
        assert stats["IDX_SubjectID"]["num_entries"] == 2
        assert stats["IDX_ObjectID"]["num_keys"] == 2
        store.remove_quadruples(object=O)
        assert store.index_stats()["IDX_ObjectID"]["num_entries"] == 1

    def test_index_narrowing_agrees_with_filter(self):
        store = MemoryQuadrupleStore()
        subjects = [Resource(f"ex:s{i}") for i in range(4)]
        for s in subjects:
            for j in range(3):
                store.add_quadruple(Quadruple(CTX, s, P, Literal(str(j))))
        result = store.select_quadruples(subject=subjects[2], literal=Literal("1"))
        assert result == [Quadruple(CTX, subjects[2], P, Literal("1"))]
        assert store.explain(subject=subjects[2], literal=Literal("1")).index.name == "IDX_SubjectID_ObjectID"


class TestPolarsFilterTranslator:
    def test_full_scan_is_none(self):
        assert PolarsFilterTranslator().build_filter_expression(build_plan(QuadruplePattern.of())) is None

    def test_expression_filters(self):
        df = pl.DataFrame({"subject_id": [S.term_id, 1], "predicate_id": [P.term_id, P.term_id]})
        expr = PolarsFilterTranslator().build_filter_expression(
            build_plan(QuadruplePattern.of(subject=S, predicate=P))
        )
        assert df.filter(expr).height == 1
