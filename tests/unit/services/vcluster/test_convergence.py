"""Unit tests for ConvergencePoller."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest

from vcluster_ops.integrations.vcluster.config import PollPolicy
from vcluster_ops.integrations.vcluster.exceptions import (
    ConvergenceTimeoutError,
    OperationCancelledError,
    VClusterAPIError,
    VClusterConnectionError,
)
from vcluster_ops.integrations.vcluster.models import ClusterState, ResourceHandle
from vcluster_ops.services.convergence import ConvergencePoller, PollState


def scripted(*results: ClusterState | Exception | None) -> MagicMock:
    """Lookup returning (or raising) the given results in order."""
    items: Iterator[ClusterState | Exception | None] = iter(results)

    def lookup(token: object) -> ClusterState | None:
        item = next(items)
        if isinstance(item, Exception):
            raise item
        return item

    return MagicMock(side_effect=lookup)


def status(value: str) -> ClusterState:
    return ClusterState(id="c-1", name="prod", status=value)


@pytest.fixture
def policy() -> PollPolicy:
    """Five polls ten seconds apart."""
    return PollPolicy(interval=10.0, max_attempts=5)


@pytest.mark.unit
class TestPoll:
    """Tests for the polling state machine."""

    def test_converges_without_extra_poll(self, policy: PollPolicy, fake_token) -> None:
        """Healthy at attempt 3 means exactly 3 reads and 2 waits."""
        lookup = scripted(status("Progressing"), status("Progressing"), status("Healthy"))
        poller = ConvergencePoller[ClusterState](policy)

        outcome = poller.poll("prod", lookup, fake_token)

        assert outcome.converged
        assert outcome.attempts == 3
        assert lookup.call_count == 3
        assert fake_token.waits == [10.0, 10.0]
        assert poller.state is PollState.CONVERGED

    def test_timed_out_reports_last_status(self, policy: PollPolicy, fake_token) -> None:
        """The final non-healthy status is reported verbatim."""
        lookup = scripted(*[status("Progressing (3/5 pods)")] * 5)

        outcome = ConvergencePoller[ClusterState](policy).poll("prod", lookup, fake_token)

        assert outcome.state is PollState.TIMED_OUT
        assert outcome.last_status == "Progressing (3/5 pods)"
        assert outcome.attempts == 5
        assert fake_token.waits == [10.0] * 4

    def test_missed_observations_continue(self, policy: PollPolicy, fake_token) -> None:
        """A failing poll is logged and polling goes on."""
        lookup = scripted(
            VClusterConnectionError("connection reset"),
            None,
            status("Healthy"),
        )

        outcome = ConvergencePoller[ClusterState](policy).poll("prod", lookup, fake_token)

        assert outcome.converged
        assert outcome.attempts == 3

    def test_final_attempt_failure_is_failed(self, fake_token) -> None:
        """An error on the last poll ends in FAILED with that error."""
        final = VClusterAPIError("clusters fetch failed", status_code=403)
        lookup = scripted(status("Progressing"), final)

        outcome = ConvergencePoller[ClusterState](PollPolicy(interval=1, max_attempts=2)).poll(
            "prod", lookup, fake_token
        )

        assert outcome.state is PollState.FAILED
        assert outcome.error is final
        assert outcome.last_status == "Progressing"

    def test_handle_tracks_snapshots(self, policy: PollPolicy, fake_token) -> None:
        """Observations refresh the handle without assigning an id."""
        handle = ResourceHandle[ClusterState]()
        lookup = scripted(status("Progressing"), status("Progressing"))

        ConvergencePoller[ClusterState](PollPolicy(interval=1, max_attempts=2)).poll(
            "prod", lookup, fake_token, handle
        )

        assert handle.is_empty
        assert handle.state is not None
        assert handle.state.status == "Progressing"

    def test_cancellation_is_not_timeout(self, policy: PollPolicy, token_factory) -> None:
        """A fired token stops polling with OperationCancelledError."""
        token = token_factory(cancel_after=2)
        lookup = scripted(*[status("Progressing")] * 5)

        with pytest.raises(OperationCancelledError, match="cancelled by test"):
            ConvergencePoller[ClusterState](policy).poll("prod", lookup, token)

        assert lookup.call_count == 2


@pytest.mark.unit
class TestHooks:
    """Tests for post-convergence hooks."""

    def test_hooks_enrich_snapshot(self, policy: PollPolicy, fake_token) -> None:
        """Hooks run once, in order, on the converged snapshot."""

        def add_endpoint(state: ClusterState, token: object) -> ClusterState:
            return state.model_copy(update={"endpoint": "https://prod"})

        def add_kubeconfig(state: ClusterState, token: object) -> ClusterState:
            return state.model_copy(update={"kubeconfig": f"server: {state.endpoint}"})

        poller = ConvergencePoller[ClusterState](policy, on_converged=[add_endpoint, add_kubeconfig])

        snapshot = poller.wait_until_healthy("prod", scripted(status("Healthy")), fake_token)

        assert snapshot.kubeconfig == "server: https://prod"

    def test_hook_failure_is_best_effort(self, policy: PollPolicy, fake_token) -> None:
        """A failing hook does not change the converged outcome."""

        def broken(state: ClusterState, token: object) -> ClusterState:
            raise VClusterAPIError("kubeconfig fetch failed", status_code=500)

        outcome = ConvergencePoller[ClusterState](policy, on_converged=[broken]).poll(
            "prod", scripted(status("Healthy")), fake_token
        )

        assert outcome.converged
        assert outcome.snapshot is not None
        assert outcome.snapshot.kubeconfig is None


@pytest.mark.unit
class TestWaitUntilHealthy:
    """Tests for the raising wrapper."""

    def test_timeout_raises_with_last_status(self, fake_token) -> None:
        """TIMED_OUT becomes ConvergenceTimeoutError."""
        lookup = scripted(status("Pending"), status("Progressing"))

        with pytest.raises(ConvergenceTimeoutError, match="last known status: Progressing") as exc_info:
            ConvergencePoller[ClusterState](PollPolicy(interval=1, max_attempts=2)).wait_until_healthy(
                "prod", lookup, fake_token
            )

        assert exc_info.value.attempts == 2

    def test_failed_chains_final_error(self, fake_token) -> None:
        """FAILED keeps the final poll error as cause."""
        final = VClusterAPIError("boom", status_code=403)

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            ConvergencePoller[ClusterState](PollPolicy(interval=1, max_attempts=1)).wait_until_healthy(
                "prod", scripted(final), fake_token
            )

        assert exc_info.value.__cause__ is final
