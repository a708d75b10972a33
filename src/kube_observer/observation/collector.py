"""Read-only queries against one cluster's API, converted to summary models."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from kube_observer.errors import ConnectivityError
from kube_observer.observation.models import (
    ClusterSnapshot,
    ClusterSummary,
    ContainerSummary,
    DeploymentSummary,
    NamespaceSummary,
    NodeCapacity,
    NodeCondition,
    NodeSummary,
    PodSummary,
    ResourceStatus,
    ServicePort,
    ServiceSummary,
    VolumeSummary,
    utcnow,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTROL_PLANE_LABEL = "node-role.kubernetes.io/control-plane"

# List limits used by the lightweight snapshot
NODE_LIST_LIMIT = 1000
POD_LIST_LIMIT = 10000
OBJECT_LIST_LIMIT = 1000

VOLUME_SOURCES = (
    ("host_path", "hostPath"),
    ("config_map", "configMap"),
    ("secret", "secret"),
    ("persistent_volume_claim", "persistentVolumeClaim"),
    ("empty_dir", "emptyDir"),
    ("projected", "projected"),
    ("downward_api", "downwardAPI"),
)


def cluster_id_for(context_name: str) -> str:
    """Stable cluster id derived from a context name."""
    return f"context-{context_name}"


def _utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _labels(obj: Any) -> dict[str, str]:
    return dict(getattr(obj.metadata, "labels", None) or {})


def _app_role(obj: Any, *keys: str) -> str:
    labels = _labels(obj)
    for key in keys:
        if key in labels:
            return labels[key]
    return "unknown"


def _is_node_ready(node: Any) -> bool:
    for c in getattr(node.status, "conditions", None) or []:
        if c.type == "Ready":
            return c.status == "True"
    return False


def _node_status(node: Any) -> ResourceStatus:
    for c in getattr(node.status, "conditions", None) or []:
        if c.type == "Ready":
            ready = c.status == "True"
            return ResourceStatus(
                phase="Ready" if ready else "NotReady",
                ready=ready,
                reason=c.reason or None,
                message=c.message or None,
            )
    return ResourceStatus(phase="NotReady", ready=False)


def _node_capacity(resources: dict[str, Any] | None) -> NodeCapacity:
    resources = resources or {}
    return NodeCapacity(
        cpu=str(resources.get("cpu", "")),
        memory=str(resources.get("memory", "")),
        pods=str(resources.get("pods", "")),
        ephemeral_storage=str(resources.get("ephemeral-storage", "")),
    )


def _build_node_summary(node: Any) -> NodeSummary:
    """Build NodeSummary from V1Node."""
    info = getattr(node.status, "node_info", None)
    conditions = [
        NodeCondition(
            type=c.type or "",
            status=c.status or "",
            reason=c.reason,
            message=c.message,
            last_transition_time=_utc(c.last_transition_time),
        )
        for c in getattr(node.status, "conditions", None) or []
    ]
    return NodeSummary(
        name=node.metadata.name,
        role="control-plane" if CONTROL_PLANE_LABEL in _labels(node) else "worker",
        kubelet=getattr(info, "kubelet_version", "") or "",
        runtime=getattr(info, "container_runtime_version", "") or "",
        status=_node_status(node),
        capacity=_node_capacity(node.status.capacity),
        allocatable=_node_capacity(node.status.allocatable),
        conditions=conditions,
        labels=_labels(node),
        created_at=_utc(node.metadata.creation_timestamp),
    )


def _container_status(container_status: Any | None) -> ResourceStatus:
    """Map V1ContainerStatus to a ResourceStatus (Running, Waiting, Terminated)."""
    if container_status is None:
        return ResourceStatus(phase="Unknown", ready=False)
    state = container_status.state
    ready = bool(container_status.ready)
    if state and state.running:
        return ResourceStatus(phase="Running", ready=ready)
    if state and state.waiting:
        return ResourceStatus(
            phase="Waiting",
            ready=ready,
            reason=state.waiting.reason,
            message=state.waiting.message,
        )
    if state and state.terminated:
        return ResourceStatus(
            phase="Terminated",
            ready=ready,
            reason=state.terminated.reason,
            message=state.terminated.message,
        )
    return ResourceStatus(phase="Unknown", ready=ready)


def _volume_type(volume: Any) -> str:
    for attr, name in VOLUME_SOURCES:
        if getattr(volume, attr, None) is not None:
            return name
    return "unknown"


def _build_pod_summary(pod: Any) -> PodSummary:
    """Build PodSummary from V1Pod."""
    statuses = {cs.name: cs for cs in getattr(pod.status, "container_statuses", None) or []}
    containers = []
    for c in getattr(pod.spec, "containers", None) or []:
        cs = statuses.get(c.name)
        containers.append(
            ContainerSummary(
                name=c.name,
                image=c.image or "",
                ready=bool(cs.ready) if cs else False,
                status=_container_status(cs),
            )
        )
    ready = any(
        c.type == "Ready" and c.status == "True"
        for c in getattr(pod.status, "conditions", None) or []
    )
    return PodSummary(
        name=pod.metadata.name,
        namespace=pod.metadata.namespace or "default",
        role=_app_role(pod, "app", "k8s-app"),
        ip=getattr(pod.status, "pod_ip", None),
        node_name=getattr(pod.spec, "node_name", None),
        restart_count=sum(cs.restart_count or 0 for cs in statuses.values()),
        containers=containers,
        volumes=[
            VolumeSummary(name=v.name, type=_volume_type(v))
            for v in getattr(pod.spec, "volumes", None) or []
        ],
        labels=_labels(pod),
        status=ResourceStatus(
            phase=getattr(pod.status, "phase", None) or "Unknown",
            ready=ready,
            reason=getattr(pod.status, "reason", None),
            message=getattr(pod.status, "message", None),
        ),
        created_at=_utc(pod.metadata.creation_timestamp),
    )


def _external_ips(spec: Any) -> list[str]:
    # renamed from external_i_ps in newer kubernetes clients
    ips = getattr(spec, "external_ips", None) or getattr(spec, "external_i_ps", None)
    return list(ips or [])


def _build_service_summary(svc: Any) -> ServiceSummary:
    """Build ServiceSummary from V1Service."""
    ports = [
        ServicePort(
            name=p.name,
            port=p.port,
            target_port=str(p.target_port) if p.target_port is not None else "",
            protocol=p.protocol or "TCP",
            node_port=p.node_port or None,
        )
        for p in svc.spec.ports or []
    ]
    ingress = getattr(getattr(svc.status, "load_balancer", None), "ingress", None) or []
    return ServiceSummary(
        name=svc.metadata.name,
        namespace=svc.metadata.namespace or "default",
        type=svc.spec.type or "ClusterIP",
        cluster_ip=svc.spec.cluster_ip,
        load_balancer_ip=ingress[0].ip if ingress else None,
        external_ips=_external_ips(svc.spec),
        selector=dict(svc.spec.selector or {}),
        ports=ports,
        role=_app_role(svc, "app"),
        labels=_labels(svc),
        # Services are ready as soon as they exist
        status=ResourceStatus(phase="Active", ready=True),
        created_at=_utc(svc.metadata.creation_timestamp),
    )


def _deployment_status(desired: int, ready_replicas: int, conditions: list[Any]) -> ResourceStatus:
    ready = ready_replicas == desired
    if ready:
        phase = "Available"
    elif ready_replicas == 0:
        phase = "Unavailable"
    else:
        phase = "Progressing"
    reason = message = None
    for c in conditions:
        if c.type == "Progressing":
            reason, message = c.reason, c.message
            break
    return ResourceStatus(phase=phase, ready=ready, reason=reason, message=message)


def _build_deployment_summary(d: Any) -> DeploymentSummary:
    """Build DeploymentSummary from V1Deployment."""
    spec, status = d.spec, d.status
    desired = spec.replicas if spec.replicas is not None else 1
    ready_replicas = status.ready_replicas or 0
    selector = getattr(spec.selector, "match_labels", None) or {}
    return DeploymentSummary(
        name=d.metadata.name,
        namespace=d.metadata.namespace or "default",
        replicas=desired,
        ready_replicas=ready_replicas,
        available_replicas=status.available_replicas or 0,
        strategy=getattr(spec.strategy, "type", None),
        selector=dict(selector),
        role=_app_role(d, "app"),
        labels=_labels(d),
        status=_deployment_status(desired, ready_replicas, status.conditions or []),
        created_at=_utc(d.metadata.creation_timestamp),
    )


def _build_namespace_summary(ns: Any) -> NamespaceSummary:
    """Build NamespaceSummary from V1Namespace."""
    phase = getattr(ns.status, "phase", None) or "Unknown"
    return NamespaceSummary(
        name=ns.metadata.name,
        labels=_labels(ns),
        status=ResourceStatus(phase=phase, ready=phase == "Active"),
        created_at=_utc(ns.metadata.creation_timestamp),
    )


class ClusterClient:
    """Read-only client bound to one kubeconfig context."""

    def __init__(self, context_name: str, api_client: client.ApiClient, timeout: float) -> None:
        self.context_name = context_name
        self.timeout = timeout
        self._api_client = api_client
        self._core = client.CoreV1Api(api_client)
        self._apps = client.AppsV1Api(api_client)
        self._version = client.VersionApi(api_client)

    @property
    def cluster_id(self) -> str:
        return cluster_id_for(self.context_name)

    def __enter__(self) -> "ClusterClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._api_client.close()

    def _call(self, what: str, func: Callable[..., T], **kwargs: Any) -> T:
        """Issue one API call under the per-call timeout, mapping transport errors."""
        try:
            return func(_request_timeout=self.timeout, **kwargs)
        except ApiException as e:
            raise ConnectivityError(
                f"context {self.context_name}: failed to {what}: {e.status} {e.reason}"
            ) from e
        except (HTTPError, OSError) as e:
            raise ConnectivityError(f"context {self.context_name}: failed to {what}: {e}") from e

    def server_version(self) -> str:
        info = self._call("get server version", self._version.get_code)
        return info.git_version

    def list_nodes(self) -> list[NodeSummary]:
        nodes = self._call("list nodes", self._core.list_node)
        return [_build_node_summary(n) for n in nodes.items]

    def list_pods(self, namespace: str | None = None) -> list[PodSummary]:
        if namespace:
            pods = self._call("list pods", self._core.list_namespaced_pod, namespace=namespace)
        else:
            pods = self._call("list pods", self._core.list_pod_for_all_namespaces)
        return [_build_pod_summary(p) for p in pods.items]

    def list_services(self, namespace: str | None = None) -> list[ServiceSummary]:
        if namespace:
            services = self._call(
                "list services", self._core.list_namespaced_service, namespace=namespace
            )
        else:
            services = self._call("list services", self._core.list_service_for_all_namespaces)
        return [_build_service_summary(s) for s in services.items]

    def list_deployments(self, namespace: str | None = None) -> list[DeploymentSummary]:
        if namespace:
            deployments = self._call(
                "list deployments", self._apps.list_namespaced_deployment, namespace=namespace
            )
        else:
            deployments = self._call(
                "list deployments", self._apps.list_deployment_for_all_namespaces
            )
        return [_build_deployment_summary(d) for d in deployments.items]

    def list_namespaces(self) -> list[NamespaceSummary]:
        namespaces = self._call("list namespaces", self._core.list_namespace)
        return [_build_namespace_summary(ns) for ns in namespaces.items]

    def snapshot(self) -> ClusterSnapshot:
        """
        Version plus cheap resource counts; no deep object listing.

        Only the version call is fatal. A failing count query is logged and
        leaves that count at zero.
        """
        version = self.server_version()
        summary = ClusterSummary()

        try:
            nodes = self._call("list nodes", self._core.list_node, limit=NODE_LIST_LIMIT)
            summary.total_nodes = len(nodes.items)
            summary.ready_nodes = sum(1 for n in nodes.items if _is_node_ready(n))
        except ConnectivityError as e:
            logger.warning("%s", e)

        try:
            namespaces = self._call("list namespaces", self._core.list_namespace)
            summary.total_namespaces = len(namespaces.items)
        except ConnectivityError as e:
            logger.warning("%s", e)

        try:
            pods = self._call(
                "list pods", self._core.list_pod_for_all_namespaces, limit=POD_LIST_LIMIT
            )
            summary.total_pods = len(pods.items)
            for pod in pods.items:
                phase = getattr(pod.status, "phase", None)
                if phase == "Running":
                    summary.running_pods += 1
                elif phase == "Pending":
                    summary.pending_pods += 1
                elif phase == "Failed":
                    summary.failed_pods += 1
        except ConnectivityError as e:
            logger.warning("%s", e)

        try:
            deployments = self._call(
                "list deployments",
                self._apps.list_deployment_for_all_namespaces,
                limit=OBJECT_LIST_LIMIT,
            )
            summary.total_deployments = len(deployments.items)
        except ConnectivityError as e:
            logger.warning("%s", e)

        try:
            services = self._call(
                "list services",
                self._core.list_service_for_all_namespaces,
                limit=OBJECT_LIST_LIMIT,
            )
            summary.total_services = len(services.items)
        except ConnectivityError as e:
            logger.warning("%s", e)

        return ClusterSnapshot(
            id=self.cluster_id,
            name=self.context_name,
            version=version,
            status=ResourceStatus(phase="Running", ready=True, last_updated=utcnow()),
            summary=summary,
        )
