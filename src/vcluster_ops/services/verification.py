"""Verification of destructive calls whose failure is ambiguous.

A transport error or an unexpected status on a delete does not tell
whether the server applied the mutation. The verifier waits a grace
interval, re-reads the resource once and only reports a deletion on
positive evidence of absence.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.client import ApiResponse
from vcluster_ops.integrations.vcluster.exceptions import (
    OperationCancelledError,
    VClusterAPIError,
    VClusterError,
)
from vcluster_ops.integrations.vcluster.models import RemoteResourceState

logger = structlog.get_logger()

DEFAULT_GRACE_INTERVAL = 2.0


@dataclass(frozen=True)
class ConfirmedDeleted:
    """The verification read found no resource."""


@dataclass(frozen=True)
class ConfirmedPresent:
    """The verification read still found the resource."""

    state: RemoteResourceState


@dataclass(frozen=True)
class Inconclusive:
    """The verification read itself failed."""

    error: Exception


type Verdict = ConfirmedDeleted | ConfirmedPresent | Inconclusive


class AmbiguousFailureVerifier:
    """Decides whether an inconclusively failed delete actually happened.

    Example:
        ```python
        verifier = AmbiguousFailureVerifier(grace_interval=2.0)
        verifier.resolve_delete(
            "prod",
            send=lambda t: client.delete_cluster("prod", "ns", t),
            lookup=lambda t: client.get_cluster("prod", t),
            action="cluster delete",
            token=token,
        )
        ```
    """

    def __init__(self, grace_interval: float = DEFAULT_GRACE_INTERVAL) -> None:
        """Initialize the verifier.

        Args:
            grace_interval: Seconds to wait before the verification read.
        """
        self.grace_interval = grace_interval

    def verify(
        self,
        key: str,
        lookup: Callable[[CancellationToken], RemoteResourceState | None],
        initial_error: Exception,
        token: CancellationToken | None = None,
    ) -> Verdict:
        """Wait the grace interval, then read ``key`` once.

        Raises:
            OperationCancelledError: If the token fires during the wait or read.
        """
        token = token or CancellationToken.never()
        log = logger.bind(key=key, initial_error=str(initial_error))
        log.info("Verifying ambiguous delete", grace_interval=self.grace_interval)
        token.wait(self.grace_interval)

        try:
            state = lookup(token)
        except OperationCancelledError:
            raise
        except VClusterError as e:
            log.warning("Delete verification read failed", error=str(e))
            return Inconclusive(e)

        if state is None:
            log.info("Delete verification found resource absent")
            return ConfirmedDeleted()
        log.warning("Delete verification found resource present", status=state.status)
        return ConfirmedPresent(state)

    def resolve_delete(
        self,
        key: str,
        send: Callable[[CancellationToken], ApiResponse],
        lookup: Callable[[CancellationToken], RemoteResourceState | None],
        action: str,
        token: CancellationToken | None = None,
    ) -> None:
        """Issue a delete and settle its outcome.

        A 2xx or 404 status is a deletion. Any executor failure or other
        status goes through :meth:`verify`; absence suppresses the error,
        presence or a failed read re-raises the original one.

        Raises:
            VClusterAPIError: The original delete failure, when not disproved.
            OperationCancelledError: If the token fires.
        """
        token = token or CancellationToken.never()
        try:
            response = send(token)
        except VClusterAPIError as e:
            error = e
        else:
            if response.is_success or response.not_found:
                logger.info(
                    "Resource deleted",
                    key=key,
                    status=response.status_code,
                )
                return
            error = response.error(action)

        verdict = self.verify(key, lookup, error, token)
        if isinstance(verdict, ConfirmedDeleted):
            logger.info("Ambiguous delete confirmed by absence", key=key)
            return
        raise error
