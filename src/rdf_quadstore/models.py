"""
Core data model for rdf-quadstore.

A quadruple is a triple scoped to a named graph (its context). Its identity
is a pure function of the four lexical forms, which is what makes inserts
idempotent on every backend.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Iterator, Optional, Union

from rdf_quadstore.storage.terms import (
    Literal,
    Resource,
    Term,
    TermId,
    create_hash,
)


class TripleFlavor(IntEnum):
    """
    Shape of a triple's object position.

    The integer codes are what every backend persists.
    """
    SPO = 1  # object is a resource
    SPL = 2  # object is a literal


# Context used for graphs and quadruples that do not name one
DEFAULT_CONTEXT = Resource("urn:rdf-quadstore:default")

ObjectTerm = Union[Resource, Literal]


def _check_resource(value: object, position: str) -> Resource:
    if not isinstance(value, Resource):
        raise TypeError(f"{position} must be a Resource, got {type(value).__name__}")
    return value


def _check_object(value: object) -> ObjectTerm:
    if not isinstance(value, (Resource, Literal)):
        raise TypeError(f"object must be a Resource or a Literal, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class Triple:
    """
    An RDF triple.

    Attributes:
        subject: Subject resource
        predicate: Predicate resource (never a blank node)
        object: Object resource or literal
    """
    subject: Resource
    predicate: Resource
    object: ObjectTerm

    def __post_init__(self):
        _check_resource(self.subject, "subject")
        _check_resource(self.predicate, "predicate")
        _check_object(self.object)
        if self.predicate.is_blank:
            raise ValueError("predicate cannot be a blank node")

    @property
    def flavor(self) -> TripleFlavor:
        return TripleFlavor.SPL if isinstance(self.object, Literal) else TripleFlavor.SPO

    def __str__(self) -> str:
        return f"{self.subject} {self.predicate} {self.object}"


@dataclass(frozen=True)
class Quadruple:
    """
    A triple scoped to a context: the atomic storage unit.

    ``quadruple_id`` is the hash of the space-joined lexical forms of
    context, subject, predicate and object, so two quadruples with the same
    four terms always share the same ID.

    Attributes:
        context: Named-graph resource
        subject: Subject resource
        predicate: Predicate resource (never a blank node)
        object: Object resource (flavor SPO) or literal (flavor SPL)
    """
    context: Resource
    subject: Resource
    predicate: Resource
    object: ObjectTerm
    quadruple_id: TermId = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        _check_resource(self.context, "context")
        _check_resource(self.subject, "subject")
        _check_resource(self.predicate, "predicate")
        _check_object(self.object)
        if self.context.is_blank:
            raise ValueError("context cannot be a blank node")
        if self.predicate.is_blank:
            raise ValueError("predicate cannot be a blank node")
        object.__setattr__(self, "quadruple_id", create_hash(str(self)))

    @classmethod
    def from_triple(cls, triple: Triple, context: Optional[Resource] = None) -> "Quadruple":
        """Scope a triple to a context (the default context if none is given)."""
        return cls(context or DEFAULT_CONTEXT, triple.subject, triple.predicate, triple.object)

    @property
    def flavor(self) -> TripleFlavor:
        return TripleFlavor.SPL if isinstance(self.object, Literal) else TripleFlavor.SPO

    @property
    def triple(self) -> Triple:
        return Triple(self.subject, self.predicate, self.object)

    def term_ids(self) -> tuple[TermId, TermId, TermId, TermId]:
        """Return (context, subject, predicate, object) term IDs."""
        return (
            self.context.term_id,
            self.subject.term_id,
            self.predicate.term_id,
            self.object.term_id,
        )

    def __str__(self) -> str:
        return f"{self.context} {self.subject} {self.predicate} {self.object}"


class Graph:
    """
    A duplicate-free, insertion-ordered set of triples under one context.

    This is the unit of work of ``merge_graph``.

    Example:
        graph = Graph(Resource("ex:ctx"))
        graph.add(Triple(Resource("ex:s"), Resource("ex:p"), Literal("hello")))
        store.merge_graph(graph)
    """

    def __init__(self, context: Optional[Resource] = None, triples: Iterable[Triple] = ()):
        if context is not None:
            _check_resource(context, "context")
            if context.is_blank:
                raise ValueError("context cannot be a blank node")
        self.context: Resource = context or DEFAULT_CONTEXT
        self._triples: dict[Triple, None] = {}
        for triple in triples:
            self.add(triple)

    def add(self, triple: Triple) -> "Graph":
        """Add a triple (no-op if already present)."""
        if not isinstance(triple, Triple):
            raise TypeError(f"Graph accepts Triple instances, got {type(triple).__name__}")
        self._triples[triple] = None
        return self

    def add_triple(self, subject: Resource, predicate: Resource, obj: ObjectTerm) -> "Graph":
        """Build and add a triple."""
        return self.add(Triple(subject, predicate, obj))

    def remove(self, triple: Triple) -> "Graph":
        self._triples.pop(triple, None)
        return self

    def to_quadruples(self) -> list[Quadruple]:
        """Scope every triple to this graph's context."""
        return [Quadruple.from_triple(t, self.context) for t in self._triples]

    def __iter__(self) -> Iterator[Triple]:
        return iter(list(self._triples))

    def __len__(self) -> int:
        return len(self._triples)

    def __contains__(self, triple: object) -> bool:
        return triple in self._triples

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Graph):
            return NotImplemented
        return self.context == other.context and set(self._triples) == set(other._triples)

    def __repr__(self) -> str:
        return f"Graph(context={self.context.uri!r}, triples={len(self)})"


__all__ = [
    "TripleFlavor",
    "DEFAULT_CONTEXT",
    "Triple",
    "Quadruple",
    "Graph",
    "Term",
]
