"""Cancellable wait primitive shared by retries, polling and verification."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from vcluster_ops.integrations.vcluster.exceptions import OperationCancelledError


class CancellationToken:
    """Deadline plus explicit cancel signal for one top-level operation.

    Every suspension point (retry backoff, poll interval, delete grace
    interval) waits through :meth:`wait`, which returns early and raises
    :class:`OperationCancelledError` as soon as the token is cancelled or
    its deadline passes.

    Example:
        >>> token = CancellationToken(timeout=1200)
        >>> token.wait(2.0)  # sleeps up to 2s, raises if cancelled meanwhile
    """

    def __init__(
        self,
        timeout: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the token.

        Args:
            timeout: Seconds until the deadline, or None for no deadline.
            clock: Monotonic clock, injectable for tests.
        """
        self._clock = clock
        self._event = threading.Event()
        self._deadline = clock() + timeout if timeout is not None else None
        self._reason: str | None = None

    @classmethod
    def never(cls) -> CancellationToken:
        """Return a token that is only cancelled explicitly."""
        return cls()

    @property
    def deadline(self) -> float | None:
        """Absolute deadline on the token's clock, if any."""
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds left until the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    @property
    def cancelled(self) -> bool:
        """Whether the token was cancelled or its deadline passed."""
        if self._event.is_set():
            return True
        return self._deadline is not None and self._clock() >= self._deadline

    def cancel(self, reason: str = "operation cancelled") -> None:
        """Signal cancellation to every waiter on this token."""
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if the token has fired."""
        if self._event.is_set():
            raise OperationCancelledError(self._reason or "operation cancelled")
        if self._deadline is not None and self._clock() >= self._deadline:
            raise OperationCancelledError("operation deadline exceeded")

    def wait(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first.

        Raises:
            OperationCancelledError: If the token fires before or during the wait.
        """
        self.raise_if_cancelled()
        remaining = self.remaining()
        timeout = seconds if remaining is None else min(seconds, remaining)
        self._event.wait(max(0.0, timeout))
        self.raise_if_cancelled()
