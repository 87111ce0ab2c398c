"""
Tests for cancellation tokens and operation tracking.
"""

import asyncio
import threading

import pytest

from rdf_quadstore.errors import OperationCancelledError
from rdf_quadstore.storage.query_context import (
    CancellationToken,
    OperationState,
    check_token,
    track_operation,
)


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_initial_state(self):
        token = CancellationToken()
        assert not token.is_cancelled()
        token.check()

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled()
        with pytest.raises(OperationCancelledError):
            token.check()

    def test_cancel_from_another_thread(self):
        token = CancellationToken()
        t = threading.Thread(target=token.cancel)
        t.start()
        t.join()
        assert token.is_cancelled()

    def test_check_token_accepts_none(self):
        check_token(None)


class TestTrackOperation:
    """Tests for track_operation."""

    def test_completed(self):
        with track_operation("select", "MEMORY", "S") as stats:
            stats.rows = 3
        assert stats.state == OperationState.COMPLETED
        assert stats.end_time is not None
        assert stats.duration_ms >= 0
        assert stats.to_dict()["rows"] == 3

    def test_failed(self):
        with pytest.raises(RuntimeError):
            with track_operation("insert") as stats:
                raise RuntimeError("boom")
        assert stats.state == OperationState.FAILED
        assert stats.error == "boom"

    def test_cancelled(self):
        with pytest.raises(OperationCancelledError):
            with track_operation("delete") as stats:
                raise OperationCancelledError("stop")
        assert stats.state == OperationState.CANCELLED

    def test_task_cancellation(self):
        captured = {}

        async def work():
            with track_operation("select") as stats:
                captured["stats"] = stats
                await asyncio.sleep(10)

        async def main():
            task = asyncio.create_task(work())
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(main())
        assert captured["stats"].state == OperationState.CANCELLED
