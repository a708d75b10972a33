"""Structured models for cluster state exposed by the observer."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True)


class ClusterPhase(str, Enum):
    """Aggregate health of a cluster."""

    RUNNING = "Running"
    OFFLINE = "Offline"
    UNKNOWN = "Unknown"


class ResourceStatus(CamelModel):
    """Status attached to every resource-shaped entity."""

    phase: str  # Running | Pending | Failed | Ready | NotReady | Active | Offline | ...
    ready: bool
    reason: str | None = None
    message: str | None = None
    last_updated: datetime = Field(default_factory=utcnow)


class ClusterSummary(CamelModel):
    """Cheap resource counts for one cluster."""

    total_nodes: int = 0
    ready_nodes: int = 0
    total_pods: int = 0
    running_pods: int = 0
    pending_pods: int = 0
    failed_pods: int = 0
    total_namespaces: int = 0
    total_deployments: int = 0
    total_services: int = 0


class ClusterSnapshot(CamelModel):
    """Point-in-time summary of one cluster context."""

    id: str
    name: str
    version: str
    status: ResourceStatus
    summary: ClusterSummary = Field(default_factory=ClusterSummary)

    @property
    def phase(self) -> ClusterPhase:
        try:
            return ClusterPhase(self.status.phase)
        except ValueError:
            return ClusterPhase.UNKNOWN

    def fingerprint(self) -> dict[str, Any]:
        """Snapshot content without timestamps, for change detection."""
        return self.model_dump(exclude={"status": {"last_updated"}})


class NodeCondition(CamelModel):
    """Node condition summary."""

    type: str
    status: str
    reason: str | None = None
    message: str | None = None
    last_transition_time: datetime | None = None


class NodeCapacity(CamelModel):
    """Node capacity or allocatable resources as quantity strings."""

    cpu: str = ""
    memory: str = ""
    pods: str = ""
    ephemeral_storage: str = ""


class NodeSummary(CamelModel):
    """Summary of a node."""

    name: str
    role: str  # control-plane | worker
    kubelet: str = ""
    runtime: str = ""
    status: ResourceStatus
    capacity: NodeCapacity = Field(default_factory=NodeCapacity)
    allocatable: NodeCapacity = Field(default_factory=NodeCapacity)
    conditions: list[NodeCondition] = Field(default_factory=list)
    labels: dict[str, str] = Field(default_factory=dict)
    created_at: datetime | None = None


class ContainerSummary(CamelModel):
    """Container inside a pod."""

    name: str
    image: str
    ready: bool
    status: ResourceStatus


class VolumeSummary(CamelModel):
    """Volume mounted by a pod."""

    name: str
    type: str


class PodSummary(CamelModel):
    """Summary of a pod."""

    name: str
    namespace: str
    role: str
    ip: str | None = None
    node_name: str | None = None
    restart_count: int = 0
    containers: list[ContainerSummary] = Field(default_factory=list)
    volumes: list[VolumeSummary] = Field(default_factory=list)
    labels: dict[str, str] = Field(default_factory=dict)
    status: ResourceStatus
    created_at: datetime | None = None


class ServicePort(CamelModel):
    """Port exposed by a service."""

    name: str | None = None
    port: int
    target_port: str = ""
    protocol: str = "TCP"
    node_port: int | None = None


class ServiceSummary(CamelModel):
    """Summary of a service."""

    name: str
    namespace: str
    type: str
    cluster_ip: str | None = None
    load_balancer_ip: str | None = None
    external_ips: list[str] = Field(default_factory=list)
    selector: dict[str, str] = Field(default_factory=dict)
    ports: list[ServicePort] = Field(default_factory=list)
    role: str
    labels: dict[str, str] = Field(default_factory=dict)
    status: ResourceStatus
    created_at: datetime | None = None


class DeploymentSummary(CamelModel):
    """Deployment state summary."""

    name: str
    namespace: str
    replicas: int
    ready_replicas: int
    available_replicas: int
    strategy: str | None = None
    selector: dict[str, str] = Field(default_factory=dict)
    role: str
    labels: dict[str, str] = Field(default_factory=dict)
    status: ResourceStatus
    created_at: datetime | None = None


class NamespaceSummary(CamelModel):
    """Summary of a namespace."""

    name: str
    labels: dict[str, str] = Field(default_factory=dict)
    status: ResourceStatus
    created_at: datetime | None = None
