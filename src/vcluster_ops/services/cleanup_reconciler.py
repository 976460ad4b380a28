"""Bulk removal of orphaned applications from a cluster."""

from __future__ import annotations

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.exceptions import (
    CleanupBatchError,
    VClusterAPIError,
    VClusterNotFoundError,
)
from vcluster_ops.integrations.vcluster.models import CleanupSpec, CleanupState, ResourceHandle
from vcluster_ops.services.base import BaseReconciler


def cleanup_id(cluster_name: str) -> str:
    """Return the synthetic identifier of a cleanup batch."""
    return f"{cluster_name}-orphan-cleanup"


class CleanupReconciler(BaseReconciler[CleanupSpec, CleanupState]):
    """Fan-out delete of named apps with partial-failure reporting.

    Each app is deleted independently; a failure is recorded and the
    batch carries on. The batch has no server-side state, so read keeps
    the handle and delete only forgets it.

    ``keep_releases`` is accepted and logged but never turned into
    deletions: the API offers no way to list the apps of a cluster.
    """

    _kind = "cleanup-batch"
    _immutable_fields = frozenset({"cluster_name"})

    def delete_app(self, app_name: str, token: CancellationToken) -> None:
        """Delete one app; 404 counts as already deleted.

        Raises:
            VClusterAPIError: On any other failure status or executor error.
        """
        response = self._client.delete_app(app_name, token)
        self._log.debug("Delete app response", app=app_name, status=response.status_code)
        if response.not_found:
            self._log.info("App not found, already deleted", app=app_name)
            return
        if not response.is_success:
            raise response.error("deleteapp")

    def create(
        self,
        spec: CleanupSpec,
        handle: ResourceHandle[CleanupState] | None = None,
        token: CancellationToken | None = None,
    ) -> ResourceHandle[CleanupState]:
        """Delete every app in ``spec.apps_to_delete``.

        Raises:
            VClusterAPIError: If the cluster lookup fails.
            VClusterNotFoundError: If the cluster does not exist.
            CleanupBatchError: If any app failed; the handle still records
                the apps that were removed.
            OperationCancelledError: If the token fires.
        """
        token = self._token(token)
        handle = handle if handle is not None else ResourceHandle[CleanupState]()
        log = self._log.bind(cluster=spec.cluster_name)

        cluster = self._client.get_cluster(spec.cluster_name, token)
        if cluster is None:
            raise VClusterNotFoundError(resource_type="cluster", resource_id=spec.cluster_name)
        log.info("Starting orphan cleanup", namespace=cluster.namespace)

        apps = [name for name in spec.apps_to_delete if name]
        if spec.keep_releases:
            log.info(
                "Keeping releases",
                count=len(spec.keep_releases),
                pattern=f"{cluster.namespace}-*",
            )
        if not apps:
            log.warning(
                "No apps specified for deletion; provide apps_to_delete, "
                "keep_releases alone cannot discover orphans"
            )
            handle.populate(
                cleanup_id(spec.cluster_name),
                CleanupState(id=cleanup_id(spec.cluster_name), cluster_name=spec.cluster_name),
            )
            return handle

        deleted: list[str] = []
        failures: dict[str, Exception] = {}
        for app in apps:
            try:
                self.delete_app(app, token)
            except VClusterAPIError as e:
                log.error("Failed to delete app", app=app, error=str(e))
                failures[app] = e
            else:
                log.info("Deleted app", app=app)
                deleted.append(app)

        handle.populate(
            cleanup_id(spec.cluster_name),
            CleanupState(
                id=cleanup_id(spec.cluster_name),
                cluster_name=spec.cluster_name,
                deleted_apps=deleted,
            ),
        )
        if failures:
            raise CleanupBatchError(spec.cluster_name, deleted, failures)

        log.info("Orphan cleanup completed", deleted=len(deleted))
        return handle

    def read(
        self,
        handle: ResourceHandle[CleanupState],
        token: CancellationToken | None = None,
    ) -> ResourceHandle[CleanupState]:
        """No-op: the batch has no server-side state."""
        return handle

    def update(
        self,
        current: CleanupSpec,
        desired: CleanupSpec,
        handle: ResourceHandle[CleanupState],
        token: CancellationToken | None = None,
    ) -> ResourceHandle[CleanupState]:
        """Re-run the batch when the app lists changed.

        Raises:
            ImmutableFieldError: If the cluster changed.
        """
        changed = self.check_immutable(current, desired)
        if changed & {"apps_to_delete", "keep_releases"}:
            return self.create(desired, handle, token)
        return handle

    def delete(
        self,
        handle: ResourceHandle[CleanupState],
        token: CancellationToken | None = None,
    ) -> None:
        """Forget the batch; nothing exists server-side."""
        handle.clear()
