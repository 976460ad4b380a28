"""vcluster control-plane custom exceptions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence


class VClusterError(Exception):
    """Base exception for every failure raised by vcluster_ops.

    Attributes:
        message: Human-readable error message.
        details: Optional extra diagnostic text.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize VClusterError.

        Args:
            message: Human-readable error message.
            details: Additional details.
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class VClusterConfigError(VClusterError):
    """Raised when configuration is invalid or missing."""


class VClusterAPIError(VClusterError):
    """Base exception for control-plane API errors.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code (if a response was received).
        response_body: Response body text (if available).
        endpoint: The API endpoint that was called.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        """Initialize VClusterAPIError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code from the API.
            response_body: Raw response body from the API.
            endpoint: The API endpoint that was called.
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.endpoint = endpoint

    def __str__(self) -> str:
        """Return string representation of the error."""
        parts = [self.message]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.endpoint:
            parts.append(f"[endpoint: {self.endpoint}]")
        return " ".join(parts)


class VClusterConnectionError(VClusterAPIError):
    """Raised when the request never produced an HTTP response.

    Covers connection resets and refusals, timeouts, DNS failures and
    streams that ended before a response was read.
    """

    def __init__(
        self,
        message: str = "Failed to connect to vcluster API",
        endpoint: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialize VClusterConnectionError.

        Args:
            message: Human-readable error message.
            endpoint: The API endpoint that was attempted.
            original_error: The transport exception that caused this error.
        """
        super().__init__(message=message, endpoint=endpoint)
        self.original_error = original_error


class TransientStatusError(VClusterAPIError):
    """Raised for a 429 or 5xx response that the executor may retry."""


class VClusterAuthError(VClusterAPIError):
    """Raised when login fails or the API rejects the credentials."""

    def __init__(
        self,
        message: str = "Authentication to vcluster API failed",
        status_code: int | None = None,
        response_body: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            response_body=response_body,
            endpoint=endpoint,
        )


class VClusterNotFoundError(VClusterAPIError):
    """Raised when a resource that must exist is absent."""

    def __init__(
        self,
        message: str = "vcluster resource not found",
        resource_type: str | None = None,
        resource_id: str | None = None,
        endpoint: str | None = None,
    ) -> None:
        """Initialize VClusterNotFoundError.

        Args:
            message: Human-readable error message.
            resource_type: Type of resource (e.g. "cluster", "secret").
            resource_id: Name or ID of the resource.
            endpoint: The API endpoint that was called.
        """
        if resource_type and resource_id:
            message = f"{resource_type} '{resource_id}' not found"
        super().__init__(message=message, status_code=404, endpoint=endpoint)
        self.resource_type = resource_type
        self.resource_id = resource_id


class RetryExhaustedError(VClusterAPIError):
    """Raised when every attempt of a retried operation failed transiently."""

    def __init__(
        self,
        attempts: int,
        last_error: BaseException | None,
        endpoint: str | None = None,
    ) -> None:
        """Initialize RetryExhaustedError.

        Args:
            attempts: Number of attempts that were made.
            last_error: The failure observed on the final attempt.
            endpoint: The API endpoint that was called.
        """
        status_code = getattr(last_error, "status_code", None)
        response_body = getattr(last_error, "response_body", None)
        super().__init__(
            message=f"max retries exceeded after {attempts} attempts: {last_error}",
            status_code=status_code,
            response_body=response_body,
            endpoint=endpoint,
        )
        self.attempts = attempts
        self.last_error = last_error


class OperationCancelledError(VClusterError):
    """Raised when an operation's cancellation token fires.

    Surfaced instead of a partial result whenever a backoff, poll or
    verification wait is interrupted.
    """

    def __init__(self, reason: str = "operation cancelled") -> None:
        super().__init__(reason)
        self.reason = reason


class ConvergenceTimeoutError(VClusterError):
    """Raised when a resource never reports the terminal-success status."""

    def __init__(self, key: str, last_status: str | None, attempts: int) -> None:
        """Initialize ConvergenceTimeoutError.

        Args:
            key: Natural key of the resource that was polled.
            last_status: Last observed lifecycle status, verbatim.
            attempts: Number of poll attempts made.
        """
        super().__init__(
            f"{key} did not become Healthy within the timeout; "
            f"last known status: {last_status or ''}"
        )
        self.key = key
        self.last_status = last_status
        self.attempts = attempts


class ImmutableFieldError(VClusterError):
    """Raised when an update tries to change a field that requires recreation."""

    def __init__(self, kind: str, fields: Iterable[str]) -> None:
        """Initialize ImmutableFieldError.

        Args:
            kind: Resource kind (e.g. "release").
            fields: Names of the immutable fields that changed.
        """
        self.kind = kind
        self.fields = sorted(fields)
        super().__init__(
            f"cannot change {', '.join(self.fields)} of {kind}; these require recreation"
        )


class MalformedIdentifierError(VClusterError):
    """Raised when a composite identifier does not decode to a full key."""

    def __init__(self, identifier: str, expected_parts: Sequence[str]) -> None:
        self.identifier = identifier
        self.expected_parts = tuple(expected_parts)
        super().__init__(
            f"malformed identifier {identifier!r}",
            details=f"expected format {':'.join(self.expected_parts)}",
        )


class CleanupBatchError(VClusterError):
    """Raised when some items of a cleanup batch could not be deleted.

    Attributes:
        cluster: Cluster the batch ran against.
        deleted: Names that were removed successfully.
        failures: Mapping of name to the error that prevented its removal.
    """

    def __init__(
        self,
        cluster: str,
        deleted: Sequence[str],
        failures: Mapping[str, Exception],
    ) -> None:
        self.cluster = cluster
        self.deleted = list(deleted)
        self.failures = dict(failures)
        lines = [f"failed to delete app {name}: {err}" for name, err in self.failures.items()]
        super().__init__(
            f"orphan cleanup for cluster {cluster} failed for {len(self.failures)} app(s)",
            details="; ".join(lines),
        )
