"""Detailed resource listings for a single cluster."""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from kube_observer.concurrency import run_blocking
from kube_observer.errors import ClusterNotFoundError
from kube_observer.observation.collector import ClusterClient, cluster_id_for
from kube_observer.observation.models import (
    DeploymentSummary,
    NamespaceSummary,
    NodeSummary,
    PodSummary,
    ServiceSummary,
)
from kube_observer.observation.provider import ClusterClientProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ClusterInventory:
    """Lists nodes, pods, services, deployments and namespaces of one cluster by id."""

    def __init__(self, provider: ClusterClientProvider) -> None:
        self.provider = provider

    def context_for(self, cluster_id: str) -> str:
        for name in self.provider.list_contexts():
            if cluster_id_for(name) == cluster_id:
                return name
        raise ClusterNotFoundError(f"cluster {cluster_id} not found")

    def _with_client(self, cluster_id: str, query: Callable[[ClusterClient], T]) -> T:
        context_name = self.context_for(cluster_id)
        with self.provider.resolve(context_name) as cluster:
            return query(cluster)

    async def _run(self, cluster_id: str, query: Callable[[ClusterClient], T]) -> T:
        return await run_blocking(self._with_client, cluster_id, query)

    async def nodes(self, cluster_id: str) -> list[NodeSummary]:
        return await self._run(cluster_id, lambda c: c.list_nodes())

    async def pods(self, cluster_id: str, namespace: str | None = None) -> list[PodSummary]:
        return await self._run(cluster_id, lambda c: c.list_pods(namespace))

    async def services(self, cluster_id: str, namespace: str | None = None) -> list[ServiceSummary]:
        return await self._run(cluster_id, lambda c: c.list_services(namespace))

    async def deployments(
        self, cluster_id: str, namespace: str | None = None
    ) -> list[DeploymentSummary]:
        return await self._run(cluster_id, lambda c: c.list_deployments(namespace))

    async def namespaces(self, cluster_id: str) -> list[NamespaceSummary]:
        return await self._run(cluster_id, lambda c: c.list_namespaces())
