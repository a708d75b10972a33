"""Observation layer: query Kubernetes clusters and summarise their state."""

from kube_observer.observation.aggregator import Aggregator, offline_snapshot
from kube_observer.observation.collector import ClusterClient, cluster_id_for
from kube_observer.observation.inventory import ClusterInventory
from kube_observer.observation.models import (
    ClusterPhase,
    ClusterSnapshot,
    ClusterSummary,
    ResourceStatus,
)
from kube_observer.observation.provider import ClusterClientProvider

__all__ = [
    "Aggregator",
    "ClusterClient",
    "ClusterClientProvider",
    "ClusterInventory",
    "ClusterPhase",
    "ClusterSnapshot",
    "ClusterSummary",
    "ResourceStatus",
    "cluster_id_for",
    "offline_snapshot",
]
