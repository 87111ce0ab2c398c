"""
Exception hierarchy for rdf-quadstore.

Every error raised by the library derives from QuadStoreError, so callers
can catch the whole family at once or pick the specific failure they care
about.
"""

from __future__ import annotations

from typing import Optional


class QuadStoreError(Exception):
    """Base class for all quadruple store errors."""
    pass


class InvalidPatternError(QuadStoreError, ValueError):
    """
    Raised when a selection pattern is malformed.

    Always raised before any connection is opened: the most common cause is
    supplying both an object and a literal accessor, which can never match
    the same quadruple.
    """
    pass


class StoreAccessError(QuadStoreError):
    """
    Wraps a backend-native failure raised while reading or mutating a store.

    The original exception is chained as ``__cause__`` and its message is
    kept in ``backend_message``.
    """

    def __init__(self, message: str, backend_message: Optional[str] = None):
        super().__init__(message)
        self.backend_message = backend_message


class StoreInitializationError(QuadStoreError):
    """Raised when a store cannot be constructed (bad location, schema failure, missing driver)."""
    pass


class QuadrupleIntegrityError(QuadStoreError):
    """Raised when a stored row cannot be turned back into a complete quadruple."""
    pass


class OperationCancelledError(QuadStoreError):
    """Raised when an operation observes a cancelled CancellationToken."""
    pass
