"""
RDF terms with hash-derived surrogate identifiers.

Every term (resource or literal) has a canonical lexical form and a 64-bit
``term_id`` derived from it. The IDs are what every backend indexes and
filters on; the lexical form is what gets stored alongside for display and
for reconstructing terms on the way out.

Key design decisions:
- Stable hashing: MD5 over the UTF-8 lexical form, first 8 bytes read as a
  signed little-endian integer, so IDs are identical across processes,
  platforms and backends (and fit a signed SQL BIGINT)
- Literal lexical forms are quoted, so a literal never shares a lexical
  form (or an ID) with a resource, and every literal parses back to itself
- Parsing is lexical: a stored string is turned back into a term by
  inspecting its shape, never by consulting a dictionary
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Union
import hashlib
import re
import uuid


# =============================================================================
# Identity
# =============================================================================

# Type alias for term and quadruple identifiers (signed 64-bit)
TermId = int


def create_hash(text: str) -> TermId:
    """
    Compute the 64-bit surrogate identity of a string.

    Uses the first 8 bytes of the MD5 digest, little-endian, signed.
    """
    digest = hashlib.md5(text.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "little", signed=True)


class TermKind(IntEnum):
    """RDF term kind enumeration."""
    RESOURCE = 0
    LITERAL = 1


# Absolute URI: scheme, colon, no whitespace anywhere
_ABSOLUTE_URI = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:[^\s]+$")

# Language tag (BCP 47 subset): primary subtag plus optional subtags
_LANGUAGE_TAG = re.compile(r"^[A-Za-z]{1,8}(-[A-Za-z0-9]{1,8})*$")

# "value", "value"@LANG or "value"^^datatype; backslash and quote are escaped inside the value
_QUOTED_LITERAL = re.compile(
    r'^"(?P<value>(?:[^"\\]|\\.)*)"(?:@(?P<lang>[^\s]+)|\^\^(?P<datatype>[^\s]+))?$',
    re.DOTALL,
)
_ESCAPED = re.compile(r"\\(.)", re.DOTALL)

BLANK_NODE_PREFIX = "bnode:"


def is_absolute_uri(value: str) -> bool:
    """Check whether a string is an absolute URI (scheme + non-blank rest)."""
    return bool(value) and _ABSOLUTE_URI.match(value) is not None


# =============================================================================
# Term Representation
# =============================================================================

class Term:
    """
    Base class of RDF terms.

    Subclasses provide ``lexical`` (the canonical string form) and
    ``term_id`` (the surrogate identity computed from it).
    """
    __slots__ = ()

    kind: TermKind

    @property
    def lexical(self) -> str:
        raise NotImplementedError

    @property
    def term_id(self) -> TermId:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.lexical


@dataclass(frozen=True, slots=True)
class Resource(Term):
    """
    A URI resource (or a blank node, under the ``bnode:`` scheme).

    Attributes:
        uri: Absolute URI of the resource
    """
    uri: str
    _term_id: TermId = field(init=False, repr=False, compare=False)

    kind = TermKind.RESOURCE

    def __post_init__(self):
        uri = self.uri.strip() if isinstance(self.uri, str) else ""
        if uri.startswith("_:"):
            uri = BLANK_NODE_PREFIX + uri[2:]
        if not is_absolute_uri(uri):
            raise ValueError(f"Resource URI must be an absolute URI, got {self.uri!r}")
        object.__setattr__(self, "uri", uri)
        object.__setattr__(self, "_term_id", create_hash(uri))

    @property
    def lexical(self) -> str:
        return self.uri

    @property
    def term_id(self) -> TermId:
        return self._term_id

    @property
    def is_blank(self) -> bool:
        """True if this resource is a blank node."""
        return self.uri.startswith(BLANK_NODE_PREFIX)

    @classmethod
    def blank(cls, label: Optional[str] = None) -> "Resource":
        """Create a blank node, minting a random label if none is given."""
        return cls(BLANK_NODE_PREFIX + (label or uuid.uuid4().hex))

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True, slots=True)
class Literal(Term):
    """
    A plain, language-tagged or typed literal.

    Lexical forms:
        plain           "value"
        language        "value"@LANG   (tag upper-cased)
        typed           "value"^^datatypeIRI

    Backslashes and double quotes inside the value are escaped with a
    backslash.

    Attributes:
        value: Literal value
        language: Optional language tag (exclusive with datatype)
        datatype: Optional absolute datatype IRI (exclusive with language)
    """
    value: str
    language: Optional[str] = None
    datatype: Optional[str] = None
    _term_id: TermId = field(init=False, repr=False, compare=False)

    kind = TermKind.LITERAL

    def __post_init__(self):
        if self.value is None:
            raise ValueError("Literal value cannot be None")
        object.__setattr__(self, "value", str(self.value))
        if self.language is not None and self.datatype is not None:
            raise ValueError("A literal cannot have both a language and a datatype")
        if self.language is not None:
            if not _LANGUAGE_TAG.match(self.language):
                raise ValueError(f"Invalid language tag: {self.language!r}")
            object.__setattr__(self, "language", self.language.upper())
        if self.datatype is not None and not is_absolute_uri(self.datatype):
            raise ValueError(f"Literal datatype must be an absolute IRI, got {self.datatype!r}")
        object.__setattr__(self, "_term_id", create_hash(self.lexical))

    @property
    def lexical(self) -> str:
        quoted = '"' + self.value.replace("\\", "\\\\").replace('"', '\\"') + '"'
        if self.language is not None:
            return f"{quoted}@{self.language}"
        if self.datatype is not None:
            return f"{quoted}^^{self.datatype}"
        return quoted

    @property
    def term_id(self) -> TermId:
        return self._term_id

    @classmethod
    def typed(cls, value: Union[str, int, float, bool], datatype: str) -> "Literal":
        """Create a typed literal."""
        if isinstance(value, bool):
            value = "true" if value else "false"
        return cls(str(value), datatype=datatype)

    def __str__(self) -> str:
        return self.lexical


# Well-known datatype IRIs
XSD = "http://www.w3.org/2001/XMLSchema#"
XSD_STRING = XSD + "string"
XSD_INTEGER = XSD + "integer"
XSD_DECIMAL = XSD + "decimal"
XSD_DOUBLE = XSD + "double"
XSD_BOOLEAN = XSD + "boolean"
XSD_DATETIME = XSD + "dateTime"


# =============================================================================
# Lexical parsing
# =============================================================================

def parse_literal(lexical: str) -> Literal:
    """
    Parse a lexical form that is known to denote a literal.

    Raises:
        ValueError: If the form is not a quoted literal, or its language tag
            or datatype is invalid
    """
    match = _QUOTED_LITERAL.match(lexical)
    if match is None:
        raise ValueError(f"Not a literal lexical form: {lexical!r}")
    value = _ESCAPED.sub(r"\1", match.group("value"))
    return Literal(value, language=match.group("lang"), datatype=match.group("datatype"))


def parse_pattern_member(lexical: str) -> Term:
    """
    Parse a lexical form of unknown kind into a term.

    A quoted form is a literal; an absolute URI (or ``_:`` label) is a
    Resource.

    Raises:
        ValueError: If the form is neither
    """
    if lexical is None:
        raise ValueError("Cannot parse a missing lexical form")
    if lexical.startswith('"'):
        return parse_literal(lexical)
    if lexical.startswith("_:") or is_absolute_uri(lexical):
        return Resource(lexical)
    raise ValueError(f"Not a resource or literal lexical form: {lexical!r}")
