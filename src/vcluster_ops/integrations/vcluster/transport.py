"""Single outbound HTTP call, without any retry behaviour."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import structlog

from vcluster_ops.integrations.vcluster.exceptions import VClusterConnectionError

if TYPE_CHECKING:
    from vcluster_ops.integrations.vcluster.operation import Operation

logger = structlog.get_logger()


class Transport:
    """Sends materialized requests over one shared httpx client.

    The response is returned in streaming mode: its body has not been read
    yet, so callers either read it or drain and close it.
    """

    def __init__(
        self,
        timeout: float = 300,
        verify_ssl: bool = True,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout: Per-request timeout in seconds.
            verify_ssl: Verify TLS certificates.
            client: Pre-built httpx client (used as-is when given).
        """
        client_kwargs: dict[str, Any] = {
            "timeout": httpx.Timeout(timeout),
            "verify": verify_ssl,
            "limits": httpx.Limits(keepalive_expiry=90),
        }
        self._client = client or httpx.Client(**client_kwargs)

    def send(self, operation: Operation, attempt: int = 0) -> httpx.Response:
        """Send one attempt of ``operation``.

        Raises:
            VClusterConnectionError: If no response was received.
        """
        request = operation.materialize(attempt)
        log = logger.bind(method=request.method, endpoint=str(request.url))
        try:
            log.debug("vcluster API request", attempt=attempt)
            response = self._client.send(request, stream=True)
        except httpx.TransportError as e:
            log.debug("vcluster transport error", error=str(e), error_type=type(e).__name__)
            raise VClusterConnectionError(
                message=f"{type(e).__name__}: {e}",
                endpoint=str(request.url),
                original_error=e,
            ) from e
        log.debug("vcluster API response", status=response.status_code)
        return response

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()
        logger.debug("vcluster transport closed")
