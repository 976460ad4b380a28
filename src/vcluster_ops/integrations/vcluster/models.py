"""vcluster API data models.

Spec models describe the desired resource and render the exact JSON
payloads of the control-plane API. State models are read-only snapshots
returned by read queries. :class:`ResourceHandle` is the local record of
one managed resource.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from vcluster_ops.integrations.vcluster.exceptions import VClusterConfigError

HEALTHY_STATUS = "Healthy"


class SpecBase(BaseModel):
    """Base class for desired-state specs."""

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)

    _kind: ClassVar[str] = "resource"

    def changed_fields(self, other: SpecBase) -> set[str]:
        """Return the names of fields whose value differs from ``other``."""
        mine = self.model_dump()
        theirs = other.model_dump()
        return {name for name in mine if mine[name] != theirs.get(name)}


class RemoteResourceState(BaseModel):
    """Authoritative snapshot of a remote resource.

    Attributes:
        id: Identifier reported by the server (may be empty).
        status: Free-form lifecycle status.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = ""
    status: str = ""

    @property
    def healthy(self) -> bool:
        """Whether the status is the terminal-success marker."""
        return self.status == HEALTHY_STATUS


# =============================================================================
# Cluster
# =============================================================================


class ClusterSpec(SpecBase):
    """Desired cluster, rendered as the flat body of ``POST /createcluster``."""

    _kind: ClassVar[str] = "cluster"

    name: str = Field(..., serialization_alias="Name")
    cluster_id: str = Field(..., serialization_alias="ClusterID")
    control_plane: str = Field(..., serialization_alias="ControlPlane")
    status: str = Field(default="Progressing", serialization_alias="Status")
    cpu: str = Field(..., serialization_alias="Cpu")
    memory: str = Field(..., serialization_alias="Memory")
    platform_version: str = Field(..., serialization_alias="PlatformVersion")
    health_check: str = Field(default="", serialization_alias="HealthCheck")
    alert: str = Field(default="", serialization_alias="Alert")
    endpoint: str = Field(default="", serialization_alias="EndPoint")
    cluster_type: str = Field(..., serialization_alias="ClusterType")
    coredns_cpu: str = Field(..., serialization_alias="CoreDNSCpu")
    coredns_memory: str = Field(..., serialization_alias="CoreDNSMemory")
    apiserver_cpu: str = Field(..., serialization_alias="ApiServerCpu")
    apiserver_memory: str = Field(..., serialization_alias="ApiServerMemory")

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body for ``POST /createcluster``."""
        return self.model_dump(by_alias=True)


class ClusterState(RemoteResourceState):
    """Cluster as reported by ``GET /clusters``."""

    name: str = ""
    version: str = ""
    health_check: str = ""
    alert: str = ""
    endpoint: str = ""
    namespace: str = ""
    kubeconfig: str | None = Field(default=None, repr=False)

    @property
    def cluster_id(self) -> str:
        """Server-assigned cluster key."""
        return self.id

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> ClusterState:
        """Create from one element of the ``/clusters`` JSON array."""
        return cls(
            id=data.get("ClusterID") or "",
            name=data.get("Name") or "",
            status=data.get("Status") or "",
            version=data.get("Version") or "",
            health_check=data.get("HealthCheck") or "",
            alert=data.get("Alert") or "",
            endpoint=data.get("EndPoint") or "",
            namespace=data.get("NameSpace") or "",
        )


# =============================================================================
# Helm release
# =============================================================================


class ReleaseSpec(SpecBase):
    """Desired Helm release installed through ``POST /helm_install``."""

    _kind: ClassVar[str] = "release"

    cluster_name: str
    namespace: str
    release: str
    chart: str
    repo: str
    chart_version: str | None = None
    values: str | None = None
    values_file: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body for ``POST /helm_install``.

        ``values_file`` takes precedence over inline ``values``.

        Raises:
            VClusterConfigError: If the values file cannot be read.
        """
        payload: dict[str, Any] = {
            "Clustername": self.cluster_name,
            "Namespace": self.namespace,
            "Release": self.release,
            "Chart": self.chart,
            "Repo": self.repo,
        }
        if self.chart_version:
            payload["Version"] = self.chart_version

        if self.values_file:
            try:
                payload["Values"] = Path(self.values_file).read_text()
            except OSError as e:
                raise VClusterConfigError(
                    f"failed to read values file {self.values_file}",
                    details=str(e),
                ) from e
        elif self.values:
            payload["Values"] = self.values
        return payload


class ReleaseState(RemoteResourceState):
    """Locally normalized view of an installed release.

    The API offers no release query, so this is derived from the
    composite identifier plus the last applied spec.
    """

    cluster_name: str = ""
    namespace: str = ""
    release: str = ""
    chart: str = ""
    repo: str = ""
    chart_version: str | None = None


# =============================================================================
# Secret
# =============================================================================


class SecretSpec(SpecBase):
    """Desired secret for ``/secrets/api/v1/secrets``."""

    _kind: ClassVar[str] = "secret"

    name: str
    description: str | None = None
    data: dict[str, str] = Field(default_factory=dict, repr=False)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body for secret create/update."""
        payload: dict[str, Any] = {"name": self.name, "data": dict(self.data)}
        if self.description:
            payload["description"] = self.description
        return payload


class SecretState(RemoteResourceState):
    """Secret as reported by the secrets API."""

    name: str = ""
    description: str = ""
    data: dict[str, str] = Field(default_factory=dict, repr=False)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> SecretState:
        """Create from a secrets API object."""
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            description=data.get("description") or "",
            data={k: str(v) for k, v in (data.get("data") or {}).items()},
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt") or "",
        )


# =============================================================================
# Orphan cleanup batch
# =============================================================================


class CleanupSpec(SpecBase):
    """Bulk removal of applications left behind on a cluster."""

    _kind: ClassVar[str] = "cleanup-batch"

    cluster_name: str
    apps_to_delete: tuple[str, ...] = ()
    keep_releases: tuple[str, ...] = ()


class CleanupState(RemoteResourceState):
    """Outcome of the last cleanup run; there is no server-side state."""

    cluster_name: str = ""
    deleted_apps: list[str] = Field(default_factory=list)


# =============================================================================
# Local handle
# =============================================================================


@dataclass
class ResourceHandle[S: RemoteResourceState]:
    """Local representation of one managed resource.

    Empty at the start of a create, populated once the identifier is
    known, cleared when a delete confirms removal.
    """

    id: str = ""
    state: S | None = None

    @property
    def is_empty(self) -> bool:
        """Whether no identifier is held."""
        return not self.id

    def populate(self, identifier: str, state: S | None = None) -> None:
        """Record the identifier and, optionally, a fresh snapshot."""
        self.id = identifier
        if state is not None:
            self.state = state

    def observe(self, state: S) -> None:
        """Record a new snapshot without touching the identifier."""
        self.state = state

    def clear(self) -> None:
        """Forget the resource."""
        self.id = ""
        self.state = None
