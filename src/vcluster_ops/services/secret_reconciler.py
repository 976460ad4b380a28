"""Secret lifecycle against the secrets API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.exceptions import VClusterAPIError, VClusterError
from vcluster_ops.integrations.vcluster.models import ResourceHandle, SecretSpec, SecretState
from vcluster_ops.services.base import BaseReconciler
from vcluster_ops.services.verification import AmbiguousFailureVerifier

if TYPE_CHECKING:
    from vcluster_ops.integrations.vcluster.client import VClusterClient


class SecretReconciler(BaseReconciler[SecretSpec, SecretState]):
    """Reconciler for secrets.

    The identifier is the server-assigned id or, when the server returns
    none, the secret name. Lookups fall back from id to name through the
    list endpoint. All fields are updatable with a real ``PUT``.
    """

    _kind = "secret"

    def __init__(self, client: VClusterClient, grace_interval: float | None = None) -> None:
        super().__init__(client)
        if grace_interval is None:
            grace_interval = client.config.delete_grace_interval
        self.verifier = AmbiguousFailureVerifier(grace_interval)

    def _name(self, handle: ResourceHandle[SecretState]) -> str:
        return handle.state.name if handle.state is not None else ""

    def create(
        self,
        spec: SecretSpec,
        handle: ResourceHandle[SecretState] | None = None,
        token: CancellationToken | None = None,
    ) -> ResourceHandle[SecretState]:
        """Create the secret and read it back.

        Raises:
            VClusterAPIError: If the create call is rejected.
        """
        token = self._token(token)
        handle = handle if handle is not None else ResourceHandle[SecretState]()

        response = self._client.create_secret(spec.to_payload(), token)
        if not response.is_success:
            raise response.error("create secret")

        try:
            created = SecretState.from_api_response(response.json_object("create secret"))
        except VClusterAPIError as e:
            self._log.warning("Failed to decode create response, will fetch by name", error=str(e))
            created = SecretState(name=spec.name)

        handle.populate(created.id or spec.name, created.model_copy(update={"name": spec.name}))
        self._log.info("Created secret", name=spec.name, id=handle.id)
        return self.read(handle, token)

    def _lookup(self, handle: ResourceHandle[SecretState], token: CancellationToken) -> SecretState | None:
        name = self._name(handle)
        secret: SecretState | None = None
        if handle.id and handle.id != name:
            try:
                secret = self._client.get_secret(handle.id, token)
            except VClusterAPIError as e:
                self._log.warning("Failed to fetch secret by id", id=handle.id, error=str(e))
        if secret is None and name:
            secret = self._client.find_secret_by_name(name, token)
        return secret

    def read(
        self,
        handle: ResourceHandle[SecretState],
        token: CancellationToken | None = None,
    ) -> ResourceHandle[SecretState]:
        """Refresh the secret by id, then by name; clears the handle when absent.

        Raises:
            VClusterAPIError: If the name lookup fails.
        """
        token = self._token(token)
        secret = self._lookup(handle, token)
        if secret is None:
            self._log.info("Secret not found, clearing handle", id=handle.id)
            handle.clear()
            return handle
        handle.populate(secret.id or handle.id or secret.name, secret)
        return handle

    def update(
        self,
        current: SecretSpec,
        desired: SecretSpec,
        handle: ResourceHandle[SecretState],
        token: CancellationToken | None = None,
    ) -> ResourceHandle[SecretState]:
        """Replace the secret with ``PUT``.

        Raises:
            VClusterError: If no identifier is held.
            VClusterAPIError: If the update call is rejected.
        """
        self.check_immutable(current, desired)
        if handle.is_empty:
            raise VClusterError("secret ID is required for update")
        token = self._token(token)

        response = self._client.update_secret(handle.id, desired.to_payload(), token)
        if not response.is_success:
            raise response.error("update secret")
        self._log.info("Updated secret", id=handle.id, name=desired.name)
        if handle.state is not None and handle.state.name != desired.name:
            handle.observe(handle.state.model_copy(update={"name": desired.name}))
        return self.read(handle, token)

    def delete(
        self,
        handle: ResourceHandle[SecretState],
        token: CancellationToken | None = None,
    ) -> None:
        """Delete the secret, verifying ambiguous failures by re-reading it.

        Raises:
            VClusterAPIError: The original delete failure, unless the
                secret was confirmed absent afterwards.
            OperationCancelledError: If the token fires.
        """
        token = self._token(token)
        secret_id = handle.id
        name = self._name(handle)

        if (not secret_id or secret_id == name) and name:
            self._log.info("No secret id held, looking up by name", name=name)
            try:
                found = self._client.find_secret_by_name(name, token)
            except VClusterAPIError as e:
                self._log.warning("Failed to find secret by name", name=name, error=str(e))
            else:
                if found is not None and found.id:
                    secret_id = found.id

        if not secret_id:
            self._log.warning("Cannot delete secret without an id, clearing handle", name=name)
            handle.clear()
            return

        self.verifier.resolve_delete(
            secret_id,
            send=lambda t: self._client.delete_secret(secret_id, t),
            lookup=lambda t: self._client.get_secret(secret_id, t),
            action="delete secret",
            token=token,
        )
        self._log.info("Deleted secret", id=secret_id)
        handle.clear()
