"""
Operation context with cancellation support.

Provides:
- Cooperative cancellation via token
- Per-operation statistics (timing, rows affected, final state)
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntEnum, auto
from threading import Event
from typing import Generator, Optional
import asyncio
import time

from rdf_quadstore.errors import OperationCancelledError


class OperationState(IntEnum):
    """Operation execution states."""
    PENDING = auto()     # Created but not started
    RUNNING = auto()     # Currently executing
    COMPLETED = auto()   # Finished successfully
    CANCELLED = auto()   # Cancelled by caller
    FAILED = auto()      # Failed with error


@dataclass
class OperationStats:
    """Statistics for one store operation."""
    operation: str
    store_type: str = ""
    signature: Optional[str] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    state: OperationState = OperationState.PENDING
    rows: int = 0
    error: Optional[str] = None

    @property
    def duration_ms(self) -> float:
        """Operation duration in milliseconds."""
        if self.start_time is None:
            return 0.0
        end = self.end_time or time.time()
        return (end - self.start_time) * 1000

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "operation": self.operation,
            "store_type": self.store_type,
            "signature": self.signature,
            "duration_ms": self.duration_ms,
            "state": self.state.name,
            "rows": self.rows,
            "error": self.error,
        }


class CancellationToken:
    """
    Token for cooperative cancellation.

    Thread-safe: may be cancelled from any thread while an operation runs in
    another. Operations check it before touching the backend and between
    insert batches.
    """

    def __init__(self):
        self._cancelled = Event()

    def cancel(self):
        """Request cancellation."""
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancelled.is_set()

    def check(self):
        """Raise OperationCancelledError if cancelled."""
        if self._cancelled.is_set():
            raise OperationCancelledError("Operation was cancelled")


def check_token(token: Optional[CancellationToken]) -> None:
    """Check an optional token."""
    if token is not None:
        token.check()


@contextmanager
def track_operation(
    operation: str,
    store_type: str = "",
    signature: Optional[str] = None,
) -> Generator[OperationStats, None, None]:
    """
    Context manager recording the lifecycle of one operation.

    Usage:
        with track_operation("select", "SQLITE", "CS") as stats:
            rows = run_query()
            stats.rows = len(rows)
    """
    stats = OperationStats(operation=operation, store_type=store_type, signature=signature)
    stats.start_time = time.time()
    stats.state = OperationState.RUNNING
    try:
        yield stats
    except (OperationCancelledError, asyncio.CancelledError):
        stats.end_time = time.time()
        stats.state = OperationState.CANCELLED
        raise
    except Exception as e:
        stats.end_time = time.time()
        stats.state = OperationState.FAILED
        stats.error = str(e)
        raise
    else:
        stats.end_time = time.time()
        stats.state = OperationState.COMPLETED
