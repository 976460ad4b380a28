"""vcluster control-plane API client.

Holds the process-wide, read-only connection settings (base URL, login
token, retry policy) and maps every endpoint of the API onto an
:class:`Operation` sent through the :class:`RetryExecutor`.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlencode

import httpx
import structlog

from vcluster_ops.integrations.vcluster.auth import AuthScheme, auth_header
from vcluster_ops.integrations.vcluster.exceptions import (
    VClusterAPIError,
    VClusterAuthError,
)
from vcluster_ops.integrations.vcluster.models import ClusterState, SecretState
from vcluster_ops.integrations.vcluster.operation import IdempotentRequestBuilder
from vcluster_ops.integrations.vcluster.retry import RetryExecutor
from vcluster_ops.integrations.vcluster.transport import Transport

if TYPE_CHECKING:
    from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
    from vcluster_ops.integrations.vcluster.config import PollPolicy, VClusterConfig

logger = structlog.get_logger()

SECRETS_PATH = "/secrets/api/v1/secrets"


def _excerpt(body: str, limit: int = 512) -> str:
    if not body:
        return "(no response body)"
    return body if len(body) <= limit else body[:limit] + "..."


class ApiResponse:
    """A fully read response: status, reason and body text."""

    def __init__(self, response: httpx.Response) -> None:
        self.status_code = response.status_code
        self.reason = response.reason_phrase
        self.text = response.text
        try:
            self.url = str(response.request.url)
        except RuntimeError:
            self.url = ""

    @property
    def is_success(self) -> bool:
        """Whether the status is 2xx."""
        return 200 <= self.status_code < 300

    @property
    def not_found(self) -> bool:
        """Whether the status is 404."""
        return self.status_code == 404

    @property
    def status_line(self) -> str:
        """Status code and reason, e.g. ``503 Service Unavailable``."""
        return f"{self.status_code} {self.reason}".strip()

    def json(self, action: str = "decode response") -> Any:
        """Decode the body as JSON.

        Raises:
            VClusterAPIError: If the body is not valid JSON.
        """
        try:
            return json.loads(self.text)
        except ValueError as e:
            raise self.error(action) from e

    def json_list(self, action: str) -> list[dict[str, Any]]:
        """Decode a JSON array of objects; an empty body reads as ``[]``."""
        body = self.json(action) if self.text.strip() else None
        if body is None:
            return []
        if not isinstance(body, list) or not all(isinstance(item, dict) for item in body):
            raise self.error(f"{action} (expected a JSON array of objects)")
        return body

    def json_object(self, action: str) -> dict[str, Any]:
        """Decode a JSON object; an empty body reads as ``{}``."""
        body = self.json(action) if self.text.strip() else None
        if body is None:
            return {}
        if not isinstance(body, dict):
            raise self.error(f"{action} (expected a JSON object)")
        return body

    def error(self, action: str) -> VClusterAPIError:
        """Build the terminal-status error for a failed ``action``."""
        return VClusterAPIError(
            message=f"{action} failed: {self.status_line}: {_excerpt(self.text)}",
            status_code=self.status_code,
            response_body=self.text,
            endpoint=self.url,
        )


class VClusterClient:
    """HTTP client for the vcluster control-plane API.

    The login token, base URL and retry policy are fixed at construction
    and never mutated, so one client can serve concurrent operations on
    distinct resources.

    Example:
        ```python
        from vcluster_ops.integrations.vcluster import VClusterClient, VClusterConfig

        config = VClusterConfig.load()
        with VClusterClient.connect(config) as client:
            state = client.get_cluster("prod")
        ```
    """

    def __init__(
        self,
        config: VClusterConfig,
        token: str,
        transport: Transport | None = None,
    ) -> None:
        """Initialize the client with an already obtained token.

        Args:
            config: Connection and resilience settings.
            token: Token returned by ``/login``.
            transport: Shared transport, built from the config when omitted.
        """
        self.config = config
        self._token = token
        self._transport = transport or Transport(config.timeout, config.verify_ssl)
        self.executor = RetryExecutor(self._transport, config.retry_policy())

    @classmethod
    def connect(
        cls,
        config: VClusterConfig,
        transport: Transport | None = None,
        token: CancellationToken | None = None,
    ) -> VClusterClient:
        """Log in with the configured credentials and return a ready client.

        Raises:
            VClusterAuthError: If login is rejected or returns no token.
        """
        transport = transport or Transport(config.timeout, config.verify_ssl)
        executor = RetryExecutor(transport, config.retry_policy())
        operation = (
            IdempotentRequestBuilder("POST", f"{config.base_url}/login")
            .json(
                {
                    "username": config.username,
                    "password": config.password.get_secret_value(),
                }
            )
            .build()
        )
        response = cls._finish(executor.execute(operation, token))
        if not response.is_success:
            raise VClusterAuthError(
                message=f"login failed: {response.status_line}: {_excerpt(response.text)}",
                status_code=response.status_code,
                response_body=response.text,
                endpoint=response.url,
            )
        try:
            login_token = response.json_object("login").get("token", "")
        except VClusterAPIError as e:
            raise VClusterAuthError(
                message="login returned an undecodable body",
                status_code=response.status_code,
                response_body=response.text,
            ) from e
        if not login_token:
            raise VClusterAuthError("login succeeded but no token returned")

        logger.info("vcluster client logged in", base_url=config.base_url)
        return cls(config, login_token, transport)

    def __enter__(self) -> VClusterClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the shared transport."""
        self._transport.close()

    @property
    def token(self) -> str:
        """Login token (read-only)."""
        return self._token

    @property
    def poll_policy(self) -> PollPolicy:
        """Convergence polling budget from the configuration."""
        return self.config.poll_policy()

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    @staticmethod
    def _finish(response: httpx.Response) -> ApiResponse:
        """Read the whole body and release the connection."""
        try:
            response.read()
            return ApiResponse(response)
        finally:
            response.close()

    def _url(self, path: str, params: dict[str, str] | None = None) -> str:
        url = f"{self.config.base_url}{path}"
        if params:
            url += "?" + urlencode(params)
        return url

    def request(
        self,
        method: str,
        path: str,
        *,
        token: CancellationToken | None = None,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        scheme: AuthScheme = AuthScheme.BEARER,
        accept: str = "application/json",
    ) -> ApiResponse:
        """Send one API call through the retry executor.

        Returns:
            The read response; the caller interprets its status.

        Raises:
            VClusterAPIError: On exhausted retries or terminal transport errors.
            OperationCancelledError: If the token fired.
        """
        builder = (
            IdempotentRequestBuilder(method, self._url(path, params))
            .header("Accept", accept)
            .header("Authorization", auth_header(self._token, scheme))
        )
        if json_body is not None:
            builder.json(json_body)
        return self._finish(self.executor.execute(builder.build(), token))

    # -------------------------------------------------------------------------
    # Clusters
    # -------------------------------------------------------------------------

    def create_cluster(
        self, payload: dict[str, Any], token: CancellationToken | None = None
    ) -> ApiResponse:
        """POST /createcluster with the raw login token."""
        return self.request(
            "POST", "/createcluster", token=token, json_body=payload, scheme=AuthScheme.RAW
        )

    def get_cluster(self, name: str, token: CancellationToken | None = None) -> ClusterState | None:
        """GET /clusters?Name=<name>; None when the cluster does not exist.

        Raises:
            VClusterAPIError: On a non-2xx, non-404 status.
        """
        response = self.request("GET", "/clusters", token=token, params={"Name": name})
        if response.not_found:
            return None
        if not response.is_success:
            raise response.error("clusters fetch")
        items = response.json_list("clusters fetch")
        if not items:
            return None
        return ClusterState.from_api_response(items[0])

    def list_clusters(self, token: CancellationToken | None = None) -> list[ClusterState]:
        """GET /clusters; every cluster visible to the caller."""
        response = self.request("GET", "/clusters", token=token, accept="*/*")
        if not response.is_success:
            raise response.error("clusters fetch")
        items = response.json_list("clusters fetch")
        return [ClusterState.from_api_response(item) for item in items]

    def get_kubeconfig(self, name: str, token: CancellationToken | None = None) -> str:
        """GET /connect?Name=<name>; the raw credential bundle text."""
        response = self.request(
            "GET",
            "/connect",
            token=token,
            params={"Name": name},
            scheme=AuthScheme.RAW,
            accept="*/*",
        )
        if not response.is_success:
            raise response.error("kubeconfig fetch")
        return response.text

    def delete_cluster(
        self,
        name: str,
        namespace: str | None,
        token: CancellationToken | None = None,
    ) -> ApiResponse:
        """DELETE /deletecluster?Name=<name>[&Namespace=<ns>] with the raw token."""
        params = {"Name": name}
        if namespace:
            params["Namespace"] = namespace
        return self.request(
            "DELETE", "/deletecluster", token=token, params=params, scheme=AuthScheme.RAW
        )

    # -------------------------------------------------------------------------
    # Helm releases / apps
    # -------------------------------------------------------------------------

    def helm_install(
        self, payload: dict[str, Any], token: CancellationToken | None = None
    ) -> ApiResponse:
        """POST /helm_install."""
        return self.request("POST", "/helm_install", token=token, json_body=payload)

    def delete_app(self, app_name: str, token: CancellationToken | None = None) -> ApiResponse:
        """DELETE /deleteapp?Name=<appName>."""
        return self.request(
            "DELETE", "/deleteapp", token=token, params={"Name": app_name}, accept="*/*"
        )

    # -------------------------------------------------------------------------
    # Secrets
    # -------------------------------------------------------------------------

    def create_secret(
        self, payload: dict[str, Any], token: CancellationToken | None = None
    ) -> ApiResponse:
        """POST /secrets/api/v1/secrets."""
        return self.request("POST", SECRETS_PATH, token=token, json_body=payload)

    def update_secret(
        self,
        secret_id: str,
        payload: dict[str, Any],
        token: CancellationToken | None = None,
    ) -> ApiResponse:
        """PUT /secrets/api/v1/secrets/:id."""
        return self.request(
            "PUT", f"{SECRETS_PATH}/{quote(secret_id, safe='')}", token=token, json_body=payload
        )

    def delete_secret(self, secret_id: str, token: CancellationToken | None = None) -> ApiResponse:
        """DELETE /secrets/api/v1/secrets/:id."""
        return self.request("DELETE", f"{SECRETS_PATH}/{quote(secret_id, safe='')}", token=token)

    def get_secret(
        self, secret_id: str, token: CancellationToken | None = None
    ) -> SecretState | None:
        """GET /secrets/api/v1/secrets/:id; None on 404."""
        response = self.request("GET", f"{SECRETS_PATH}/{quote(secret_id, safe='')}", token=token)
        if response.not_found:
            return None
        if not response.is_success:
            raise response.error("secret fetch")
        return SecretState.from_api_response(response.json_object("secret fetch"))

    def list_secrets(self, token: CancellationToken | None = None) -> list[SecretState]:
        """GET /secrets/api/v1/secrets."""
        response = self.request("GET", SECRETS_PATH, token=token)
        if not response.is_success:
            raise response.error("secrets list fetch")
        secrets = response.json_object("secrets list fetch").get("secrets") or []
        if not isinstance(secrets, list) or not all(isinstance(item, dict) for item in secrets):
            raise response.error("secrets list fetch (expected a list of secret objects)")
        return [SecretState.from_api_response(item) for item in secrets]

    def find_secret_by_name(
        self, name: str, token: CancellationToken | None = None
    ) -> SecretState | None:
        """Look a secret up by name through the list endpoint."""
        for secret in self.list_secrets(token):
            if secret.name == name:
                return secret
        return None
