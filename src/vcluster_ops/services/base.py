"""Base reconciler for vcluster resources.

Every resource kind exposes the same four lifecycle verbs. Subclasses
supply the kind-specific payload, identity and deletion policy; this
class holds the shared client, logger and the immutable-field guard.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

import structlog

from vcluster_ops.integrations.vcluster.cancellation import CancellationToken
from vcluster_ops.integrations.vcluster.exceptions import ImmutableFieldError
from vcluster_ops.integrations.vcluster.models import (
    RemoteResourceState,
    ResourceHandle,
    SpecBase,
)

if TYPE_CHECKING:
    from vcluster_ops.integrations.vcluster.client import VClusterClient

logger = structlog.get_logger()


class BaseReconciler[P: SpecBase, S: RemoteResourceState](ABC):
    """Abstract lifecycle driver for one resource kind.

    Type Parameters:
        P: Spec model describing the desired resource.
        S: State model observed from the API.

    Class Attributes:
        _kind: Resource kind name used in logs and errors.
        _immutable_fields: Spec fields whose change requires recreation.

    Example:
        >>> class SecretReconciler(BaseReconciler[SecretSpec, SecretState]):
        ...     _kind = "secret"
        ...     _immutable_fields = frozenset()
    """

    _kind: ClassVar[str] = ""
    _immutable_fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, client: VClusterClient) -> None:
        """Initialize the reconciler.

        Args:
            client: Logged-in vcluster API client.
        """
        self._client = client
        self._log = logger.bind(kind=self._kind)

    @property
    def kind(self) -> str:
        """Return the resource kind handled by this reconciler."""
        return self._kind

    @staticmethod
    def _token(token: CancellationToken | None) -> CancellationToken:
        return token or CancellationToken.never()

    def check_immutable(self, current: P, desired: P) -> set[str]:
        """Return the changed fields, rejecting changes to immutable ones.

        Raises:
            ImmutableFieldError: If any immutable field differs.
        """
        changed = current.changed_fields(desired)
        blocked = changed & self._immutable_fields
        if blocked:
            self._log.warning("Rejected update of immutable fields", fields=sorted(blocked))
            raise ImmutableFieldError(self._kind, blocked)
        return changed

    @abstractmethod
    def create(
        self,
        spec: P,
        handle: ResourceHandle[S] | None = None,
        token: CancellationToken | None = None,
    ) -> ResourceHandle[S]:
        """Create the resource and return its populated handle."""

    @abstractmethod
    def read(
        self,
        handle: ResourceHandle[S],
        token: CancellationToken | None = None,
    ) -> ResourceHandle[S]:
        """Refresh the handle from the API; an absent resource clears it."""

    def update(
        self,
        current: P,
        desired: P,
        handle: ResourceHandle[S],
        token: CancellationToken | None = None,
    ) -> ResourceHandle[S]:
        """Apply ``desired`` over ``current``.

        The default re-invokes :meth:`create` with the new payload when a
        mutable field changed and only re-reads otherwise.

        Raises:
            ImmutableFieldError: Before any network call, if an immutable
                field changed.
        """
        changed = self.check_immutable(current, desired)
        if not changed:
            return self.read(handle, token)
        self._log.info("Updating by re-applying create", fields=sorted(changed))
        return self.create(desired, handle, token)

    @abstractmethod
    def delete(
        self,
        handle: ResourceHandle[S],
        token: CancellationToken | None = None,
    ) -> None:
        """Delete the resource; clears the handle once removal is confirmed."""
