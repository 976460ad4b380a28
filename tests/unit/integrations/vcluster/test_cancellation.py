"""Unit tests for the cancellation token."""

from __future__ import annotations

import threading
import time

import pytest

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.exceptions import OperationCancelledError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_never_token_is_not_cancelled(self) -> None:
        """A token without deadline only fires on cancel()."""
        token = CancellationToken.never()

        assert not token.cancelled
        assert token.remaining() is None
        token.raise_if_cancelled()

    def test_cancel_records_reason(self) -> None:
        """cancel() makes every check raise with the reason."""
        token = CancellationToken()
        token.cancel("user abort")

        assert token.cancelled
        with pytest.raises(OperationCancelledError, match="user abort"):
            token.raise_if_cancelled()

    def test_deadline_expires(self) -> None:
        """Passing the deadline cancels the token."""
        clock = FakeClock()
        token = CancellationToken(timeout=5, clock=clock)

        assert token.remaining() == 5
        clock.now += 5

        assert token.cancelled
        with pytest.raises(OperationCancelledError, match="deadline exceeded"):
            token.raise_if_cancelled()

    def test_wait_returns_promptly_on_cancel(self) -> None:
        """A long wait is interrupted by cancel() from another thread."""
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel, args=("stop",))
        timer.start()

        started = time.monotonic()
        with pytest.raises(OperationCancelledError, match="stop"):
            token.wait(30)

        assert time.monotonic() - started < 5
        timer.join()

    def test_wait_bounded_by_deadline(self) -> None:
        """A wait longer than the remaining time ends at the deadline."""
        token = CancellationToken(timeout=0.05)

        started = time.monotonic()
        with pytest.raises(OperationCancelledError):
            while True:
                token.wait(30)

        assert time.monotonic() - started < 5

    def test_short_wait_completes(self) -> None:
        """A wait on a live token simply returns."""
        CancellationToken().wait(0)
