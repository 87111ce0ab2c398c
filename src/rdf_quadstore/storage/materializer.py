"""
Result materialization.

Backends hand back raw rows carrying the flavor code and the four lexical
forms; this module turns them into Quadruple objects. A row that cannot be
rebuilt completely means the stored data is corrupt, so it raises instead of
being skipped.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence, Union

import polars as pl

from rdf_quadstore.errors import QuadrupleIntegrityError
from rdf_quadstore.models import Quadruple, TripleFlavor
from rdf_quadstore.storage.terms import Resource, parse_literal

# Column order of a positional row
ROW_FIELDS = ("flavor", "context", "subject", "predicate", "object")

Row = Union[Sequence[Any], Mapping[str, Any]]


def _row_values(row: Row) -> tuple:
    if isinstance(row, Mapping):
        try:
            return tuple(row[name] for name in ROW_FIELDS)
        except KeyError as e:
            raise QuadrupleIntegrityError(f"Row is missing field {e.args[0]!r}: {dict(row)}") from e
    values = tuple(row)
    if len(values) != len(ROW_FIELDS):
        raise QuadrupleIntegrityError(
            f"Expected {len(ROW_FIELDS)} columns (flavor, context, subject, predicate, object), got {len(values)}"
        )
    return values


def materialize_row(row: Row) -> Quadruple:
    """
    Rebuild one quadruple from a backend row.

    Raises:
        QuadrupleIntegrityError: If a lexical form is missing, the flavor is
            unknown, or a term cannot be parsed
    """
    flavor_code, context, subject, predicate, obj = _row_values(row)

    try:
        flavor = TripleFlavor(int(flavor_code))
    except (TypeError, ValueError) as e:
        raise QuadrupleIntegrityError(f"Stored quadruple has unknown flavor {flavor_code!r}") from e

    for name, value in zip(ROW_FIELDS[1:], (context, subject, predicate, obj)):
        if value is None or not isinstance(value, str):
            raise QuadrupleIntegrityError(f"Stored quadruple has no {name}: {row!r}")
        if value == "":
            raise QuadrupleIntegrityError(f"Stored quadruple has an empty {name}: {row!r}")

    try:
        if flavor == TripleFlavor.SPO:
            object_term = Resource(obj)
        else:
            object_term = parse_literal(obj)
        return Quadruple(Resource(context), Resource(subject), Resource(predicate), object_term)
    except (TypeError, ValueError) as e:
        raise QuadrupleIntegrityError(f"Stored quadruple cannot be parsed: {e}") from e


def materialize_rows(rows: Iterable[Row]) -> list[Quadruple]:
    """Rebuild all rows, preserving order."""
    return [materialize_row(row) for row in rows]


def quadruple_to_row(quadruple: Quadruple) -> dict[str, Any]:
    """
    Flatten a quadruple into the persisted column layout.

    Keys mirror the relational table: identity, flavor, and an ID plus a
    lexical column for each of the four positions.
    """
    return {
        "quadruple_id": quadruple.quadruple_id,
        "flavor": int(quadruple.flavor),
        "context": quadruple.context.lexical,
        "context_id": quadruple.context.term_id,
        "subject": quadruple.subject.lexical,
        "subject_id": quadruple.subject.term_id,
        "predicate": quadruple.predicate.lexical,
        "predicate_id": quadruple.predicate.term_id,
        "object": quadruple.object.lexical,
        "object_id": quadruple.object.term_id,
    }


# Polars schema of the flattened layout
QUADRUPLE_SCHEMA = {
    "quadruple_id": pl.Int64,
    "flavor": pl.Int8,
    "context": pl.Utf8,
    "context_id": pl.Int64,
    "subject": pl.Utf8,
    "subject_id": pl.Int64,
    "predicate": pl.Utf8,
    "predicate_id": pl.Int64,
    "object": pl.Utf8,
    "object_id": pl.Int64,
}


def quadruples_to_dataframe(quadruples: Iterable[Quadruple]) -> pl.DataFrame:
    """Export quadruples as a polars DataFrame in the persisted layout."""
    rows = [quadruple_to_row(q) for q in quadruples]
    if not rows:
        return pl.DataFrame(schema=QUADRUPLE_SCHEMA)
    return pl.DataFrame(rows, schema=QUADRUPLE_SCHEMA)
