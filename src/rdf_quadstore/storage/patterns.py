"""
Pattern filter resolution.

Turns the five optional accessors of a selection (context, subject,
predicate, object, literal) into a filter signature: the present positions,
concatenated in the fixed order C, S, P, O, L. The signature is the single
dispatch key used by the query planner; nothing else in the package derives
it on its own.

Absent accessors are wildcards. Object and literal are mutually exclusive
because a quadruple's object is exactly one of the two.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import product
from typing import Optional

from rdf_quadstore.errors import InvalidPatternError
from rdf_quadstore.models import Quadruple, TripleFlavor
from rdf_quadstore.storage.terms import Literal, Resource, TermId


# Canonical position order; also the order letters appear in a signature
POSITIONS = ("C", "S", "P", "O", "L")

POSITION_NAMES = {
    "C": "context",
    "S": "subject",
    "P": "predicate",
    "O": "object",
    "L": "literal",
}


def _enumerate_signatures() -> tuple[str, ...]:
    signatures = []
    for c, s, p, obj in product(("", "C"), ("", "S"), ("", "P"), ("", "O", "L")):
        signatures.append(c + s + p + obj)
    # Most selective first, empty (full scan) last
    return tuple(sorted(signatures, key=lambda sig: (-len(sig), [POSITIONS.index(ch) for ch in sig])))


# Every syntactically valid signature, including "" (match everything)
VALID_SIGNATURES: tuple[str, ...] = _enumerate_signatures()


def resolve_signature(
    context: Optional[Resource] = None,
    subject: Optional[Resource] = None,
    predicate: Optional[Resource] = None,
    object: Optional[Resource] = None,
    literal: Optional[Literal] = None,
) -> str:
    """
    Compute the filter signature of a set of accessors.

    Raises:
        InvalidPatternError: If both object and literal are given
    """
    if object is not None and literal is not None:
        raise InvalidPatternError("object and literal accessors are mutually exclusive")
    signature = ""
    if context is not None:
        signature += "C"
    if subject is not None:
        signature += "S"
    if predicate is not None:
        signature += "P"
    if object is not None:
        signature += "O"
    if literal is not None:
        signature += "L"
    return signature


@dataclass(frozen=True)
class QuadruplePattern:
    """
    A validated selection pattern.

    Construct through ``QuadruplePattern.of(...)``, which performs all
    validation before any backend is touched.
    """
    context: Optional[Resource] = None
    subject: Optional[Resource] = None
    predicate: Optional[Resource] = None
    object: Optional[Resource] = None
    literal: Optional[Literal] = None

    @classmethod
    def of(
        cls,
        context: Optional[Resource] = None,
        subject: Optional[Resource] = None,
        predicate: Optional[Resource] = None,
        object: Optional[Resource] = None,
        literal: Optional[Literal] = None,
    ) -> "QuadruplePattern":
        """
        Validate accessors and build a pattern.

        Raises:
            InvalidPatternError: If object and literal are both given, or an
                accessor has the wrong term type
        """
        if object is not None and literal is not None:
            raise InvalidPatternError("object and literal accessors are mutually exclusive")
        for name, value in (("context", context), ("subject", subject),
                            ("predicate", predicate), ("object", object)):
            if value is not None and not isinstance(value, Resource):
                raise InvalidPatternError(
                    f"{name} accessor must be a Resource, got {type(value).__name__}"
                )
        if literal is not None and not isinstance(literal, Literal):
            raise InvalidPatternError(
                f"literal accessor must be a Literal, got {type(literal).__name__}"
            )
        return cls(context, subject, predicate, object, literal)

    @property
    def signature(self) -> str:
        return resolve_signature(self.context, self.subject, self.predicate, self.object, self.literal)

    @property
    def is_wildcard(self) -> bool:
        """True if no accessor is bound."""
        return self.signature == ""

    @property
    def flavor(self) -> Optional[TripleFlavor]:
        """Flavor constraint implied by the object position, if any."""
        if self.object is not None:
            return TripleFlavor.SPO
        if self.literal is not None:
            return TripleFlavor.SPL
        return None

    def bound_terms(self) -> dict[str, Resource | Literal]:
        """Map each present position letter to its term."""
        values = (self.context, self.subject, self.predicate, self.object, self.literal)
        return {pos: term for pos, term in zip(POSITIONS, values) if term is not None}

    def bound_ids(self) -> dict[str, TermId]:
        """Map each present position letter to its term ID."""
        return {pos: term.term_id for pos, term in self.bound_terms().items()}

    def matches(self, quadruple: Quadruple) -> bool:
        """Reference semantics: does the quadruple satisfy this pattern?"""
        if self.context is not None and quadruple.context != self.context:
            return False
        if self.subject is not None and quadruple.subject != self.subject:
            return False
        if self.predicate is not None and quadruple.predicate != self.predicate:
            return False
        if self.object is not None and quadruple.object != self.object:
            return False
        if self.literal is not None and quadruple.object != self.literal:
            return False
        return True

    def describe(self) -> dict:
        return {
            "signature": self.signature,
            **{POSITION_NAMES[pos]: term.lexical for pos, term in self.bound_terms().items()},
        }
