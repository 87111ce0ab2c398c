"""
Sorted composite indexes for the in-memory backend.

Each index keeps the sorted distinct key tuples of its columns and, for
each key, the row positions holding it. A lookup binds a leading prefix of
the key and uses binary search to find the matching range, so a plan that
binds (subject, predicate) can be served by the subject+predicate index and
one that only binds subject by the subject index or any index led by it.
"""

from __future__ import annotations

import bisect
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    import polars as pl

    from rdf_quadstore.storage.planning import IndexSpec, QueryPlan


@dataclass
class IndexStats:
    """Statistics for an index."""
    name: str
    columns: tuple[str, ...]
    num_keys: int
    num_entries: int
    memory_bytes: int


class SortedIndex:
    """
    A sorted index over one or more integer columns.

    Example:
        idx = SortedIndex(IndexSpec("IDX_SubjectID_PredicateID", ("subject_id", "predicate_id")))
        idx.build(df)

        # Full key
        positions = idx.lookup((subject_id, predicate_id))

        # Leading prefix only
        positions = idx.lookup((subject_id,))
    """

    def __init__(self, spec: IndexSpec):
        self.spec = spec

        # Sorted key tuples for binary search
        self._keys: list[tuple[int, ...]] = []

        # Parallel array of row positions
        self._positions: list[list[int]] = []

        self._num_entries = 0
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self.spec.name

    def build(self, df: "pl.DataFrame") -> None:
        """
        Build the index from a DataFrame holding all of the index columns.
        """
        with self._lock:
            self._keys = []
            self._positions = []
            self._num_entries = 0

            if df.height == 0:
                return
            missing = [c for c in self.spec.columns if c not in df.columns]
            if missing:
                raise KeyError(f"Index {self.name} needs missing columns {missing}")

            columns = [df[c].to_list() for c in self.spec.columns]
            key_to_positions: dict[tuple[int, ...], list[int]] = {}
            for row_idx, key in enumerate(zip(*columns)):
                key_to_positions.setdefault(key, []).append(row_idx)

            self._keys = sorted(key_to_positions)
            self._positions = [key_to_positions[k] for k in self._keys]
            self._num_entries = df.height

    def lookup(self, prefix: Sequence[int]) -> list[int]:
        """
        Row positions whose key starts with the given prefix.

        Args:
            prefix: Values for the first len(prefix) index columns

        Returns:
            Sorted list of row positions (0-indexed)
        """
        prefix = tuple(prefix)
        if not prefix or len(prefix) > len(self.spec.columns):
            raise ValueError(
                f"Index {self.name} needs a prefix of 1..{len(self.spec.columns)} values, got {len(prefix)}"
            )
        width = len(prefix)
        with self._lock:
            result: list[int] = []
            idx = bisect.bisect_left(self._keys, prefix)
            while idx < len(self._keys) and self._keys[idx][:width] == prefix:
                result.extend(self._positions[idx])
                idx += 1
            result.sort()
            return result

    def contains(self, prefix: Sequence[int]) -> bool:
        """Check whether any key starts with the prefix."""
        prefix = tuple(prefix)
        with self._lock:
            idx = bisect.bisect_left(self._keys, prefix)
            return idx < len(self._keys) and self._keys[idx][:len(prefix)] == prefix

    def stats(self) -> IndexStats:
        """Get index statistics."""
        with self._lock:
            key_bytes = len(self._keys) * 8 * len(self.spec.columns)
            pos_bytes = sum(len(p) * 8 for p in self._positions)
            return IndexStats(
                name=self.name,
                columns=self.spec.columns,
                num_keys=len(self._keys),
                num_entries=self._num_entries,
                memory_bytes=key_bytes + pos_bytes,
            )

    def clear(self) -> None:
        with self._lock:
            self._keys = []
            self._positions = []
            self._num_entries = 0


class IndexManager:
    """
    Manages the set of indexes over one DataFrame.

    Example:
        manager = IndexManager(RELATIONAL_INDEXES)
        manager.build_all(df)
        positions = manager.positions_for(plan)
    """

    def __init__(self, specs: Sequence[IndexSpec] = ()):
        self._indexes: dict[str, SortedIndex] = {}
        self._lock = threading.RLock()
        for spec in specs:
            self.create_index(spec)

    def create_index(self, spec: IndexSpec) -> SortedIndex:
        with self._lock:
            if spec.name not in self._indexes:
                self._indexes[spec.name] = SortedIndex(spec)
            return self._indexes[spec.name]

    def get_index(self, name: str) -> Optional[SortedIndex]:
        with self._lock:
            return self._indexes.get(name)

    def has_index(self, name: str) -> bool:
        with self._lock:
            return name in self._indexes

    def specs(self) -> tuple[IndexSpec, ...]:
        with self._lock:
            return tuple(idx.spec for idx in self._indexes.values())

    def build_all(self, df: "pl.DataFrame") -> None:
        """Rebuild every index from the DataFrame."""
        with self._lock:
            for idx in self._indexes.values():
                idx.build(df)

    def positions_for(self, plan: QueryPlan) -> Optional[list[int]]:
        """
        Candidate row positions for a plan.

        Returns:
            Positions matching the bound prefix of the plan's index, or None
            when the plan has no index here (caller scans everything)
        """
        if plan.index is None:
            return None
        with self._lock:
            idx = self.get_index(plan.index.name)
            if idx is None:
                return None
            prefix = []
            for column in idx.spec.columns:
                value = plan.value_of(column)
                if value is None:
                    break
                prefix.append(value)
            if not prefix:
                return None
            return idx.lookup(prefix)

    def stats(self) -> dict[str, IndexStats]:
        with self._lock:
            return {name: idx.stats() for name, idx in self._indexes.items()}

    def clear_all(self) -> None:
        with self._lock:
            for idx in self._indexes.values():
                idx.clear()
