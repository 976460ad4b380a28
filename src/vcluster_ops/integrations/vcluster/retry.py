"""Bounded retry with exponential backoff around the transport.

Every higher-level call goes through :class:`RetryExecutor`. It retries
transient transport failures and 429/5xx responses, replays the request
body from the operation's supplier, and sleeps through the operation's
cancellation token so backoff never outlives a cancelled operation.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, field_validator
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.exceptions import (
    RetryExhaustedError,
    TransientStatusError,
    VClusterConnectionError,
)

if TYPE_CHECKING:
    from vcluster_ops.integrations.vcluster.operation import Operation
    from vcluster_ops.integrations.vcluster.transport import Transport

logger = structlog.get_logger()

# Lower-cased fragments of transport error messages that indicate a
# transient network condition.
RETRYABLE_ERROR_FRAGMENTS: tuple[str, ...] = (
    "eof",
    "connection reset",
    "connection refused",
    "connection aborted",
    "broken pipe",
    "timeout",
    "timed out",
    "temporary failure",
    "name or service not known",
    "nodename nor servname",
    "no such host",
    "network is unreachable",
    "server disconnected",
    "incomplete",
    "readerror",
    "writeerror",
)


class RetryPolicy(BaseModel):
    """Immutable retry settings for one configured client.

    ``max_attempts`` counts retries, so an operation is sent at most
    ``max_attempts + 1`` times.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        """Validate the retry count is non-negative."""
        if v < 0:
            raise ValueError("max_attempts must be non-negative")
        return v

    @field_validator("initial_delay", "max_delay")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Validate delays are non-negative."""
        if v < 0:
            raise ValueError("delays must be non-negative")
        return v

    @field_validator("multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        """Validate the backoff actually grows."""
        if v <= 1:
            raise ValueError("multiplier must be greater than 1")
        return v

    def delay_for(self, retry_index: int) -> float:
        """Return the delay slept before retry ``retry_index`` (0-based)."""
        return float(min(self.initial_delay * self.multiplier**retry_index, self.max_delay))

    def wait_strategy(self) -> wait_exponential:
        """tenacity wait strategy producing the same sequence as :meth:`delay_for`."""
        return wait_exponential(
            multiplier=self.initial_delay,
            exp_base=self.multiplier,
            max=self.max_delay,
        )


def is_retryable_status(status_code: int) -> bool:
    """Return True for 429 and any 5xx status."""
    return status_code == 429 or 500 <= status_code < 600


def is_retryable_error(error: BaseException) -> bool:
    """Classify a failed attempt.

    Transient-status errors are always retried. Transport errors are
    retried only when their message matches a known network failure;
    anything else is terminal.
    """
    if isinstance(error, TransientStatusError):
        return True
    if not isinstance(error, VClusterConnectionError):
        return False
    cause = error.original_error or error
    text = f"{type(cause).__name__}: {cause}".lower()
    return any(fragment in text for fragment in RETRYABLE_ERROR_FRAGMENTS)


def _drain(response: httpx.Response) -> str:
    """Read and close a discarded response so its connection can be reused."""
    try:
        response.read()
        return response.text
    except httpx.TransportError as e:
        logger.debug("Failed to drain discarded response", error=str(e))
        return ""
    finally:
        response.close()


class RetryExecutor:
    """Runs operations through the transport with bounded retries.

    Example:
        ```python
        executor = RetryExecutor(Transport(timeout=300), RetryPolicy(max_attempts=3))
        response = executor.execute(operation, token)
        ```
    """

    def __init__(self, transport: Transport, policy: RetryPolicy | None = None) -> None:
        """Initialize the executor.

        Args:
            transport: Transport that performs single attempts.
            policy: Retry policy, defaults to 3 retries 1s..30s doubling.
        """
        self.transport = transport
        self.policy = policy or RetryPolicy()

    def _log_retry(self, operation: Operation) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            logger.warning(
                "Retrying vcluster request",
                endpoint=operation.url,
                method=operation.method,
                attempt=retry_state.attempt_number,
                max_attempts=self.policy.max_attempts,
                delay=delay,
                error=str(error) if error else None,
            )

        return before_sleep

    def _attempt(
        self,
        operation: Operation,
        attempt: int,
        token: CancellationToken,
    ) -> httpx.Response:
        token.raise_if_cancelled()
        response = self.transport.send(operation, attempt)
        if is_retryable_status(response.status_code):
            body = _drain(response)
            raise TransientStatusError(
                message=f"received retryable status code: {response.status_code}",
                status_code=response.status_code,
                response_body=body,
                endpoint=operation.url,
            )
        return response

    def execute(
        self,
        operation: Operation,
        token: CancellationToken | None = None,
    ) -> httpx.Response:
        """Execute ``operation`` with retries.

        Args:
            operation: The operation template to send.
            token: Cancellation token observed by every backoff wait.

        Returns:
            The first non-retryable response (2xx-4xx), body unread.

        Raises:
            RetryExhaustedError: If every attempt failed transiently.
            VClusterConnectionError: On a non-retryable transport failure.
            OperationCancelledError: If the token fired.
        """
        token = token or CancellationToken.never()
        retrying = Retrying(
            retry=retry_if_exception(is_retryable_error),
            stop=stop_after_attempt(self.policy.max_attempts + 1),
            wait=self.policy.wait_strategy(),
            sleep=token.wait,
            before_sleep=self._log_retry(operation),
            reraise=False,
        )

        attempt_index = itertools.count()
        try:
            return retrying(lambda: self._attempt(operation, next(attempt_index), token))
        except RetryError as e:
            last_error = e.last_attempt.exception()
            raise RetryExhaustedError(
                attempts=e.last_attempt.attempt_number,
                last_error=last_error,
                endpoint=operation.url,
            ) from last_error
