"""Poll-until-converged loop for asynchronously provisioned resources."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum

import structlog

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.config import PollPolicy
from vcluster_ops.integrations.vcluster.exceptions import (
    ConvergenceTimeoutError,
    OperationCancelledError,
    VClusterAPIError,
    VClusterError,
)
from vcluster_ops.integrations.vcluster.models import RemoteResourceState, ResourceHandle

logger = structlog.get_logger()

type Lookup[S] = Callable[[CancellationToken], S | None]
type ConvergedHook[S] = Callable[[S, CancellationToken], S]


class PollState(StrEnum):
    """States of the convergence state machine."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    CONVERGED = "converged"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class PollOutcome[S: RemoteResourceState]:
    """Terminal result of one polling run.

    Attributes:
        state: CONVERGED, TIMED_OUT or FAILED.
        attempts: Number of read queries issued.
        snapshot: Last successfully observed state, if any.
        last_status: Last observed lifecycle status, verbatim.
        error: Error of the final attempt when it failed.
    """

    state: PollState
    attempts: int
    snapshot: S | None = None
    last_status: str | None = None
    error: Exception | None = None

    @property
    def converged(self) -> bool:
        """Whether the resource reached the terminal-success marker."""
        return self.state is PollState.CONVERGED


class ConvergencePoller[S: RemoteResourceState]:
    """Drives ``Submitted -> Polling -> {Converged, TimedOut, Failed}``.

    Each poll is a read query by natural key issued through the retry
    executor. A poll that raises is logged as a missed observation and
    polling goes on; only the final attempt's failure ends in FAILED.
    Every interval wait goes through the cancellation token, so a
    cancelled operation stops with :class:`OperationCancelledError`.

    Hooks registered with ``on_converged`` run once on convergence, in
    order, and may return an enriched snapshot. They are best-effort:
    their failure is logged and the outcome stays CONVERGED.
    """

    def __init__(
        self,
        policy: PollPolicy,
        on_converged: Sequence[ConvergedHook[S]] = (),
    ) -> None:
        self.policy = policy
        self.on_converged = list(on_converged)
        self.state = PollState.SUBMITTED

    def _run_hooks(self, key: str, snapshot: S, token: CancellationToken) -> S:
        for hook in self.on_converged:
            try:
                snapshot = hook(snapshot, token)
            except OperationCancelledError:
                raise
            except VClusterError as e:
                logger.warning(
                    "Post-convergence fetch failed",
                    key=key,
                    hook=getattr(hook, "__name__", repr(hook)),
                    error=str(e),
                )
        return snapshot

    def poll(
        self,
        key: str,
        lookup: Lookup[S],
        token: CancellationToken | None = None,
        handle: ResourceHandle[S] | None = None,
    ) -> PollOutcome[S]:
        """Poll ``lookup`` until the resource reports the healthy marker.

        Args:
            key: Natural key of the resource, used in logs and errors.
            lookup: Read query returning the state or None when not found.
            token: Cancellation token observed by every wait.
            handle: Handle whose snapshot is refreshed on every observation.

        Returns:
            The terminal outcome.

        Raises:
            OperationCancelledError: If the token fires.
        """
        token = token or CancellationToken.never()
        self.state = PollState.POLLING
        snapshot: S | None = None
        last_status: str | None = None
        last_error: Exception | None = None
        log = logger.bind(key=key, max_attempts=self.policy.max_attempts)

        for attempt in range(1, self.policy.max_attempts + 1):
            token.raise_if_cancelled()
            try:
                observed = lookup(token)
            except VClusterAPIError as e:
                last_error = e
                log.warning("Missed convergence observation", attempt=attempt, error=str(e))
            else:
                last_error = None
                if observed is None:
                    log.debug("Resource not visible yet", attempt=attempt)
                else:
                    snapshot = observed
                    last_status = observed.status
                    if handle is not None:
                        handle.observe(observed)
                    log.debug("Observed status", attempt=attempt, status=last_status)
                    if observed.healthy:
                        snapshot = self._run_hooks(key, observed, token)
                        if handle is not None:
                            handle.observe(snapshot)
                        self.state = PollState.CONVERGED
                        log.info("Resource converged", attempt=attempt)
                        return PollOutcome(self.state, attempt, snapshot, last_status)

            if attempt < self.policy.max_attempts:
                token.wait(self.policy.interval)

        self.state = PollState.FAILED if last_error is not None else PollState.TIMED_OUT
        log.warning("Resource did not converge", state=str(self.state), last_status=last_status)
        return PollOutcome(
            self.state,
            self.policy.max_attempts,
            snapshot,
            last_status,
            last_error,
        )

    def wait_until_healthy(
        self,
        key: str,
        lookup: Lookup[S],
        token: CancellationToken | None = None,
        handle: ResourceHandle[S] | None = None,
    ) -> S:
        """Like :meth:`poll`, but return the converged snapshot or raise.

        Raises:
            ConvergenceTimeoutError: On TIMED_OUT or FAILED, chained from the
                final attempt's error when there was one.
            OperationCancelledError: If the token fires.
        """
        outcome = self.poll(key, lookup, token, handle)
        if outcome.converged and outcome.snapshot is not None:
            return outcome.snapshot
        raise ConvergenceTimeoutError(key, outcome.last_status, outcome.attempts) from outcome.error
