"""Helm release lifecycle on a virtual cluster."""

from __future__ import annotations

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.exceptions import (
    MalformedIdentifierError,
    VClusterAPIError,
)
from vcluster_ops.integrations.vcluster.identity import RELEASE_IDENTITY
from vcluster_ops.integrations.vcluster.models import ReleaseSpec, ReleaseState, ResourceHandle
from vcluster_ops.services.base import BaseReconciler


class ReleaseReconciler(BaseReconciler[ReleaseSpec, ReleaseState]):
    """Reconciler for Helm releases installed through ``/helm_install``.

    The API has no release query, so the identifier is the composite
    ``cluster:namespace:release`` and reads decode it back into state.
    Every identity and chart field is immutable; only ``values`` and
    ``values_file`` can change, which re-runs the install.
    """

    _kind = "release"
    _immutable_fields = frozenset(
        {"cluster_name", "namespace", "release", "chart", "repo", "chart_version"}
    )

    def create(
        self,
        spec: ReleaseSpec,
        handle: ResourceHandle[ReleaseState] | None = None,
        token: CancellationToken | None = None,
    ) -> ResourceHandle[ReleaseState]:
        """Install the release.

        Raises:
            MalformedIdentifierError: If a key field contains the separator.
            VClusterConfigError: If the values file cannot be read.
            VClusterAPIError: If the install call is rejected.
        """
        token = self._token(token)
        handle = handle if handle is not None else ResourceHandle[ReleaseState]()
        identifier = RELEASE_IDENTITY.encode((spec.cluster_name, spec.namespace, spec.release))
        payload = spec.to_payload()

        response = self._client.helm_install(payload, token)
        if not response.is_success:
            raise response.error("helm_install")

        self._log.info(
            "Installed Helm release",
            release=spec.release,
            cluster=spec.cluster_name,
            namespace=spec.namespace,
        )
        handle.populate(
            identifier,
            ReleaseState(
                id=identifier,
                cluster_name=spec.cluster_name,
                namespace=spec.namespace,
                release=spec.release,
                chart=spec.chart,
                repo=spec.repo,
                chart_version=spec.chart_version,
            ),
        )
        return self.read(handle, token)

    def read(
        self,
        handle: ResourceHandle[ReleaseState],
        token: CancellationToken | None = None,
    ) -> ResourceHandle[ReleaseState]:
        """Normalize the handle from its composite identifier.

        Raises:
            MalformedIdentifierError: If the identifier does not decode.
        """
        key = RELEASE_IDENTITY.decode_named(handle.id)
        previous = handle.state
        state = ReleaseState(
            id=handle.id,
            cluster_name=key["cluster_name"],
            namespace=key["namespace"],
            release=key["release"],
            chart=previous.chart if previous is not None else "",
            repo=previous.repo if previous is not None else "",
            chart_version=previous.chart_version if previous is not None else None,
        )
        handle.populate(handle.id, state)
        return handle

    def _key_for_delete(self, handle: ResourceHandle[ReleaseState]) -> dict[str, str] | None:
        try:
            return RELEASE_IDENTITY.decode_named(handle.id)
        except MalformedIdentifierError:
            state = handle.state
            if state is not None and state.cluster_name and state.release:
                return {
                    "cluster_name": state.cluster_name,
                    "namespace": state.namespace,
                    "release": state.release,
                }
            return None

    def app_name(self, cluster_name: str, release: str, token: CancellationToken) -> str:
        """Return the app name ``{cluster namespace}-{release}``.

        Falls back to the bare release name when the cluster or its
        namespace cannot be found.
        """
        try:
            cluster = self._client.get_cluster(cluster_name, token)
        except VClusterAPIError as e:
            self._log.warning(
                "Failed to fetch cluster namespace, using release name",
                cluster=cluster_name,
                error=str(e),
            )
            return release
        if cluster is None or not cluster.namespace:
            self._log.warning(
                "Cluster not found or namespace empty, using release name",
                cluster=cluster_name,
            )
            return release
        return f"{cluster.namespace}-{release}"

    def delete(
        self,
        handle: ResourceHandle[ReleaseState],
        token: CancellationToken | None = None,
    ) -> None:
        """Uninstall the release; 404 counts as already deleted.

        Raises:
            VClusterAPIError: On any other failure status or executor error.
        """
        token = self._token(token)
        key = self._key_for_delete(handle)
        if key is None:
            self._log.warning("Invalid release identifier, clearing handle", id=handle.id)
            handle.clear()
            return

        release = key["release"]
        app = self.app_name(key["cluster_name"], release, token)
        self._log.debug("Deleting app", app=app, cluster=key["cluster_name"])

        response = self._client.delete_app(app, token)
        if response.not_found:
            self._log.info("App not found, already deleted", app=app)
        elif not response.is_success:
            raise response.error(f"deleteapp for {release}")
        else:
            self._log.info("Deleted app", app=app, cluster=key["cluster_name"])
        handle.clear()
