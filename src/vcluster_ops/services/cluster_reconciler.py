"""Cluster lifecycle: create, wait for Healthy, read, delete with verification."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.exceptions import (
    VClusterAPIError,
    VClusterConfigError,
    VClusterNotFoundError,
)
from vcluster_ops.integrations.vcluster.models import ClusterSpec, ClusterState, ResourceHandle
from vcluster_ops.services.base import BaseReconciler
from vcluster_ops.services.convergence import ConvergencePoller
from vcluster_ops.services.verification import AmbiguousFailureVerifier

if TYPE_CHECKING:
    from vcluster_ops.integrations.vcluster.client import VClusterClient
    from vcluster_ops.integrations.vcluster.config import PollPolicy


class ClusterReconciler(BaseReconciler[ClusterSpec, ClusterState]):
    """Reconciler for virtual clusters.

    Creation is asynchronous: after ``POST /createcluster`` is accepted the
    cluster is polled by name until it reports ``Healthy``, and only then
    does the handle receive its identifier (the server ``ClusterID``,
    falling back to the one submitted). Deletes that fail ambiguously are
    verified by re-reading the cluster.
    """

    _kind = "cluster"
    _immutable_fields = frozenset({"name", "control_plane"})

    def __init__(
        self,
        client: VClusterClient,
        poll_policy: PollPolicy | None = None,
        grace_interval: float | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            client: Logged-in vcluster API client.
            poll_policy: Convergence budget, defaults to the client config.
            grace_interval: Delete verification delay, defaults to the client config.
        """
        super().__init__(client)
        self.poll_policy = poll_policy or client.poll_policy
        if grace_interval is None:
            grace_interval = client.config.delete_grace_interval
        self.verifier = AmbiguousFailureVerifier(grace_interval)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _get(self, name: str, token: CancellationToken) -> ClusterState | None:
        state = self._client.get_cluster(name, token)
        if state is not None and not state.name:
            state = state.model_copy(update={"name": name})
        return state

    def _with_kubeconfig(self, state: ClusterState, token: CancellationToken) -> ClusterState:
        kubeconfig = self._client.get_kubeconfig(state.name, token)
        if not kubeconfig:
            return state
        return state.model_copy(update={"kubeconfig": kubeconfig})

    def _with_listed_namespace(self, state: ClusterState, token: CancellationToken) -> ClusterState:
        for cluster in self._client.list_clusters(token):
            if cluster.name == state.name and cluster.namespace:
                self._log.info("Resolved cluster namespace", name=state.name, namespace=cluster.namespace)
                return state.model_copy(update={"namespace": cluster.namespace})
        return state

    def _enrich_healthy(self, state: ClusterState, token: CancellationToken) -> ClusterState:
        """Best-effort kubeconfig fetch for a Healthy cluster."""
        if not state.healthy:
            return state
        try:
            return self._with_kubeconfig(state, token)
        except VClusterAPIError as e:
            self._log.warning("Failed to fetch kubeconfig", name=state.name, error=str(e))
            return state

    def _resolve_name(self, handle: ResourceHandle[ClusterState], token: CancellationToken) -> str:
        """Return the cluster name, looking it up by ID when only the ID is held."""
        if handle.state is not None and handle.state.name:
            return handle.state.name
        if not handle.id:
            return ""
        for cluster in self._client.list_clusters(token):
            if cluster.cluster_id == handle.id:
                return cluster.name
        return ""

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create(
        self,
        spec: ClusterSpec,
        handle: ResourceHandle[ClusterState] | None = None,
        token: CancellationToken | None = None,
    ) -> ResourceHandle[ClusterState]:
        """Submit the cluster and wait until it is Healthy.

        Raises:
            VClusterAPIError: If the create call is rejected.
            ConvergenceTimeoutError: If the cluster never becomes Healthy.
            OperationCancelledError: If the token fires.
        """
        token = self._token(token)
        handle = handle if handle is not None else ResourceHandle[ClusterState]()
        log = self._log.bind(name=spec.name)

        response = self._client.create_cluster(spec.to_payload(), token)
        if not response.is_success:
            raise response.error("createcluster")
        log.info("Cluster creation accepted", status=response.status_code)

        poller = ConvergencePoller[ClusterState](
            self.poll_policy,
            on_converged=(self._with_kubeconfig, self._with_listed_namespace),
        )
        state = poller.wait_until_healthy(
            spec.name,
            lambda t: self._get(spec.name, t),
            token,
            handle,
        )
        handle.populate(state.cluster_id or spec.cluster_id, state)
        log.info("Cluster ready", cluster_id=handle.id, namespace=state.namespace)
        return handle

    def read(
        self,
        handle: ResourceHandle[ClusterState],
        token: CancellationToken | None = None,
    ) -> ResourceHandle[ClusterState]:
        """Refresh the cluster; clears the handle if it no longer exists."""
        token = self._token(token)
        name = self._resolve_name(handle, token)
        if not name:
            self._log.info("Cluster name unknown, clearing handle", cluster_id=handle.id)
            handle.clear()
            return handle

        state = self._get(name, token)
        if state is None:
            self._log.info("Cluster not found, clearing handle", name=name)
            handle.clear()
            return handle

        handle.populate(state.cluster_id or handle.id, self._enrich_healthy(state, token))
        return handle

    def describe(self, name: str, token: CancellationToken | None = None) -> ClusterState:
        """Look up an existing cluster by name.

        Raises:
            VClusterConfigError: If ``name`` is empty.
            VClusterNotFoundError: If no such cluster exists.
        """
        if not name:
            raise VClusterConfigError("cluster name is required")
        token = self._token(token)
        state = self._get(name, token)
        if state is None:
            raise VClusterNotFoundError(resource_type="cluster", resource_id=name)
        return self._enrich_healthy(state, token)

    def delete(
        self,
        handle: ResourceHandle[ClusterState],
        token: CancellationToken | None = None,
    ) -> None:
        """Delete the cluster, verifying ambiguous failures by re-reading it.

        Raises:
            VClusterAPIError: The original delete failure, unless the
                cluster was confirmed absent afterwards.
            OperationCancelledError: If the token fires.
        """
        token = self._token(token)
        name = self._resolve_name(handle, token)
        if not name:
            handle.clear()
            return

        namespace = handle.state.namespace if handle.state is not None else ""
        if not namespace:
            try:
                info = self._get(name, token)
            except VClusterAPIError as e:
                self._log.warning("Failed to fetch cluster for delete", name=name, error=str(e))
            else:
                if info is not None:
                    namespace = info.namespace
        if not namespace:
            self._log.warning("Deleting cluster without namespace", name=name)

        self.verifier.resolve_delete(
            name,
            send=lambda t: self._client.delete_cluster(name, namespace or None, t),
            lookup=lambda t: self._get(name, t),
            action="deletecluster",
            token=token,
        )
        self._log.info("Cluster deleted", name=name, namespace=namespace)
        handle.clear()
