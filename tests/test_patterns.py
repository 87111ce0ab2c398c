"""
Tests for pattern signatures and validation.
"""

import pytest

from rdf_quadstore.errors import InvalidPatternError
from rdf_quadstore.models import Quadruple, TripleFlavor
from rdf_quadstore.storage.patterns import (
    POSITIONS,
    VALID_SIGNATURES,
    QuadruplePattern,
    resolve_signature,
)
from rdf_quadstore.storage.terms import Literal, Resource

C = Resource("ctx:ex")
S = Resource("ex:subj")
P = Resource("ex:pred")
O = Resource("ex:obj")
L = Literal("hello")


class TestSignatures:
    """Tests for the signature space."""

    def test_count(self):
        """31 non-empty subsets minus the 8 holding both O and L, plus the empty one."""
        assert len(VALID_SIGNATURES) == 24
        assert len(set(VALID_SIGNATURES)) == 24

    def test_empty_signature_last(self):
        assert VALID_SIGNATURES[-1] == ""

    def test_no_signature_has_object_and_literal(self):
        assert not any("O" in sig and "L" in sig for sig in VALID_SIGNATURES)

    def test_letters_in_canonical_order(self):
        for sig in VALID_SIGNATURES:
            order = [POSITIONS.index(ch) for ch in sig]
            assert order == sorted(order)

    def test_resolve(self):
        assert resolve_signature() == ""
        assert resolve_signature(context=C, object=O) == "CO"
        assert resolve_signature(subject=S, literal=L) == "SL"
        assert resolve_signature(C, S, P, O) == "CSPO"
        assert resolve_signature(C, S, P, literal=L) == "CSPL"

    def test_resolve_rejects_object_and_literal(self):
        with pytest.raises(InvalidPatternError, match="mutually exclusive"):
            resolve_signature(object=O, literal=L)


class TestQuadruplePattern:
    """Tests for QuadruplePattern."""

    def test_of_rejects_object_and_literal(self):
        with pytest.raises(InvalidPatternError):
            QuadruplePattern.of(subject=S, object=O, literal=L)

    def test_invalid_pattern_is_a_value_error(self):
        with pytest.raises(ValueError):
            QuadruplePattern.of(object=O, literal=L)

    def test_type_checks(self):
        with pytest.raises(InvalidPatternError):
            QuadruplePattern.of(context=L)
        with pytest.raises(InvalidPatternError):
            QuadruplePattern.of(literal=O)
        with pytest.raises(InvalidPatternError):
            QuadruplePattern.of(subject="ex:subj")

    def test_wildcard(self):
        pattern = QuadruplePattern.of()
        assert pattern.is_wildcard
        assert pattern.signature == ""
        assert pattern.flavor is None

    def test_flavor(self):
        assert QuadruplePattern.of(object=O).flavor == TripleFlavor.SPO
        assert QuadruplePattern.of(literal=L).flavor == TripleFlavor.SPL

    def test_bound_ids(self):
        pattern = QuadruplePattern.of(context=C, literal=L)
        assert pattern.bound_ids() == {"C": C.term_id, "L": L.term_id}

    def test_matches(self):
        q_res = Quadruple(C, S, P, O)
        q_lit = Quadruple(C, S, P, L)
        assert QuadruplePattern.of(subject=S).matches(q_res)
        assert QuadruplePattern.of(object=O).matches(q_res)
        assert not QuadruplePattern.of(object=O).matches(q_lit)
        assert QuadruplePattern.of(literal=L).matches(q_lit)
        assert not QuadruplePattern.of(context=Resource("ctx:other")).matches(q_res)

    def test_object_does_not_match_uri_shaped_literal(self):
        q = Quadruple(C, S, P, Literal("ex:obj"))
        assert not QuadruplePattern.of(object=Resource("ex:obj")).matches(q)

    def test_describe(self):
        assert QuadruplePattern.of(subject=S).describe() == {"signature": "S", "subject": "ex:subj"}
