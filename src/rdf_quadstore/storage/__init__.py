"""
Storage machinery shared by every backend.

Terms and their hash identities, store options, cancellation and the
sorted indexes of the in-memory backend. Pattern resolution, planning and
materialization live in their own modules (rdf_quadstore.storage.patterns,
.planning, .materializer), which build on the data model.
"""

from rdf_quadstore.storage.terms import (
    TermId,
    TermKind,
    Term,
    Resource,
    Literal,
    create_hash,
    is_absolute_uri,
    parse_literal,
    parse_pattern_member,
    BLANK_NODE_PREFIX,
)
from rdf_quadstore.storage.options import (
    StoreOptions,
    load_options,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_BATCH_SIZE,
)
from rdf_quadstore.storage.query_context import (
    CancellationToken,
    OperationState,
    OperationStats,
    track_operation,
)
from rdf_quadstore.storage.indexing import (
    SortedIndex,
    IndexManager,
    IndexStats,
)

__all__ = [
    # Terms
    "TermId",
    "TermKind",
    "Term",
    "Resource",
    "Literal",
    "create_hash",
    "is_absolute_uri",
    "parse_literal",
    "parse_pattern_member",
    "BLANK_NODE_PREFIX",
    # Options
    "StoreOptions",
    "load_options",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_BATCH_SIZE",
    # Cancellation
    "CancellationToken",
    "OperationState",
    "OperationStats",
    "track_operation",
    # Indexing
    "SortedIndex",
    "IndexManager",
    "IndexStats",
]
