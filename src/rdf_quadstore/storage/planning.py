"""
Index-backed query planning.

A QueryPlan is the backend-neutral description of a read, delete, existence
check or count: which logical columns are constrained to which term IDs,
which flavor (if any) the object position must have, and which secondary
index serves the lookup best.

Backends never branch on signatures. Each one supplies a FilterTranslator
that turns a plan into its native filter (SQL WHERE clause, Cypher pattern,
polars expression); the signature-to-conditions mapping lives only in
FILTER_TABLE below.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Sequence
import logging

from rdf_quadstore.models import TripleFlavor
from rdf_quadstore.storage.patterns import POSITION_NAMES, VALID_SIGNATURES, QuadruplePattern
from rdf_quadstore.storage.terms import TermId

logger = logging.getLogger(__name__)


# =============================================================================
# Logical columns
# =============================================================================

QUADRUPLE_ID = "quadruple_id"
FLAVOR = "flavor"
CONTEXT_ID = "context_id"
SUBJECT_ID = "subject_id"
PREDICATE_ID = "predicate_id"
OBJECT_ID = "object_id"

# Position letter -> logical ID column. O and L both live in object_id.
POSITION_COLUMNS = {
    "C": CONTEXT_ID,
    "S": SUBJECT_ID,
    "P": PREDICATE_ID,
    "O": OBJECT_ID,
    "L": OBJECT_ID,
}


class OperationKind(Enum):
    """What a plan is used for."""
    SELECT = "select"
    DELETE = "delete"
    CONTAINS = "contains"
    COUNT = "count"


@dataclass(frozen=True)
class FilterRule:
    """Columns constrained by one signature, and the flavor it implies."""
    signature: str
    columns: tuple[str, ...]
    flavor: Optional[TripleFlavor]


def _rule_for(signature: str) -> FilterRule:
    columns = tuple(POSITION_COLUMNS[pos] for pos in signature)
    flavor = None
    if "O" in signature:
        flavor = TripleFlavor.SPO
    elif "L" in signature:
        flavor = TripleFlavor.SPL
    if flavor is not None:
        columns = columns + (FLAVOR,)
    return FilterRule(signature, columns, flavor)


# Signature -> filter rule, for every valid signature
FILTER_TABLE: dict[str, FilterRule] = {sig: _rule_for(sig) for sig in VALID_SIGNATURES}


# =============================================================================
# Index catalog
# =============================================================================

@dataclass(frozen=True)
class IndexSpec:
    """A (possibly composite) secondary index over logical columns."""
    name: str
    columns: tuple[str, ...]

    def bound_prefix(self, bound: Iterable[str]) -> int:
        """Number of leading columns that are constrained by equality."""
        bound = set(bound)
        length = 0
        for column in self.columns:
            if column not in bound:
                break
            length += 1
        return length


PRIMARY_KEY = IndexSpec("PK_QuadrupleID", (QUADRUPLE_ID,))

# Secondary indexes kept by the relational backends (and emulated by the
# in-memory backend)
RELATIONAL_INDEXES: tuple[IndexSpec, ...] = (
    IndexSpec("IDX_ContextID", (CONTEXT_ID,)),
    IndexSpec("IDX_SubjectID", (SUBJECT_ID,)),
    IndexSpec("IDX_PredicateID", (PREDICATE_ID,)),
    IndexSpec("IDX_ObjectID", (OBJECT_ID, FLAVOR)),
    IndexSpec("IDX_SubjectID_PredicateID", (SUBJECT_ID, PREDICATE_ID)),
    IndexSpec("IDX_SubjectID_ObjectID", (SUBJECT_ID, OBJECT_ID, FLAVOR)),
    IndexSpec("IDX_PredicateID_ObjectID", (PREDICATE_ID, OBJECT_ID, FLAVOR)),
)


def choose_index(
    bound_columns: Iterable[str],
    catalog: Sequence[IndexSpec] = RELATIONAL_INDEXES,
) -> Optional[IndexSpec]:
    """
    Pick the most selective usable index.

    An index is usable when its leading column is bound. Among usable
    indexes the longest bound prefix wins (an exact composite match); ties go
    to the index with fewer columns (smallest covering index), then to
    catalog order.

    Returns:
        The chosen index, or None when nothing is bound (full scan)
    """
    bound = set(bound_columns)
    best: Optional[IndexSpec] = None
    best_key: Optional[tuple[int, int]] = None
    for spec in catalog:
        prefix = spec.bound_prefix(bound)
        if prefix == 0:
            continue
        key = (prefix, -len(spec.columns))
        if best_key is None or key > best_key:
            best, best_key = spec, key
    return best


# =============================================================================
# Plans
# =============================================================================

@dataclass(frozen=True)
class Condition:
    """Equality constraint of a logical column to a value."""
    column: str
    value: int


@dataclass(frozen=True)
class QueryPlan:
    """
    Backend-neutral access plan.

    Attributes:
        kind: Operation the plan serves
        signature: Filter signature it was built from ("" = everything)
        conditions: Equality constraints, in canonical order
        flavor: Object flavor constraint, if any
        index: Secondary index chosen to serve the lookup, if any
    """
    kind: OperationKind
    signature: str
    conditions: tuple[Condition, ...] = field(default_factory=tuple)
    flavor: Optional[TripleFlavor] = None
    index: Optional[IndexSpec] = None

    @property
    def is_full_scan(self) -> bool:
        return not self.conditions

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(c.column for c in self.conditions)

    def value_of(self, column: str) -> Optional[int]:
        for condition in self.conditions:
            if condition.column == column:
                return condition.value
        return None

    def describe(self) -> dict[str, Any]:
        """EXPLAIN-style dictionary of the plan."""
        return {
            "kind": self.kind.value,
            "signature": self.signature,
            "conditions": {c.column: c.value for c in self.conditions},
            "flavor": self.flavor.name if self.flavor is not None else None,
            "index": self.index.name if self.index is not None else None,
            "full_scan": self.is_full_scan,
        }


def build_plan(
    pattern: QuadruplePattern,
    kind: OperationKind = OperationKind.SELECT,
    catalog: Sequence[IndexSpec] = RELATIONAL_INDEXES,
) -> QueryPlan:
    """
    Build the access plan for a validated pattern.

    Every bound position is constrained on its term ID; a bound object or
    literal additionally constrains the flavor.
    """
    signature = pattern.signature
    rule = FILTER_TABLE[signature]
    ids = pattern.bound_ids()
    conditions = [Condition(POSITION_COLUMNS[pos], ids[pos]) for pos in signature]
    if rule.flavor is not None:
        conditions.append(Condition(FLAVOR, int(rule.flavor)))
    index = choose_index(rule.columns, catalog)
    plan = QueryPlan(kind, signature, tuple(conditions), rule.flavor, index)
    logger.debug(
        f"Planned {kind.value} for signature {signature or '*'} "
        f"using {index.name if index else 'full scan'}"
    )
    return plan


def build_identity_plan(quadruple_id: TermId, kind: OperationKind) -> QueryPlan:
    """Plan an exact lookup by primary key (contains / single remove)."""
    return QueryPlan(kind, "", (Condition(QUADRUPLE_ID, quadruple_id),), None, PRIMARY_KEY)


def build_count_plan() -> QueryPlan:
    return QueryPlan(OperationKind.COUNT, "")


def describe_signature(signature: str) -> str:
    """Human readable form of a signature, e.g. 'context+object'."""
    if not signature:
        return "everything"
    return "+".join(POSITION_NAMES[pos] for pos in signature)


# =============================================================================
# Translators
# =============================================================================

class FilterTranslator(ABC):
    """
    Engine-specific translation of a plan into a native filter.

    Implementations map logical columns to native fields and render the
    conditions; they must select exactly the rows the plan describes.
    """

    @abstractmethod
    def build_filter_expression(self, plan: QueryPlan) -> Any:
        """Translate the plan's conditions into the engine's filter form."""
        ...
