"""Query every kubeconfig context in parallel and merge the results."""

from __future__ import annotations

import logging

from kube_observer.concurrency import Outcome, scatter_gather
from kube_observer.errors import NoContextsError
from kube_observer.observation.collector import cluster_id_for
from kube_observer.observation.models import (
    ClusterPhase,
    ClusterSnapshot,
    ClusterSummary,
    ResourceStatus,
)
from kube_observer.observation.provider import ClusterClientProvider

logger = logging.getLogger(__name__)

OFFLINE_REASON = "Connection failed"
UNKNOWN_VERSION = "unknown"


def offline_snapshot(context_name: str, error: BaseException) -> ClusterSnapshot:
    """Synthetic snapshot for a context whose query failed or timed out."""
    return ClusterSnapshot(
        id=cluster_id_for(context_name),
        name=context_name,
        version=UNKNOWN_VERSION,
        status=ResourceStatus(
            phase=ClusterPhase.OFFLINE.value,
            ready=False,
            reason=OFFLINE_REASON,
            message=str(error) or type(error).__name__,
        ),
        summary=ClusterSummary(),
    )


class Aggregator:
    """Builds one snapshot per known context; a failing cluster never hides the others."""

    def __init__(
        self,
        provider: ClusterClientProvider,
        timeout: float | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.provider = provider
        self.timeout = timeout if timeout is not None else provider.timeout
        self.max_workers = max_workers

    def _query(self, context_name: str) -> ClusterSnapshot:
        logger.debug("Querying context %s", context_name)
        with self.provider.resolve(context_name) as cluster:
            return cluster.snapshot()

    def _merge(self, outcome: Outcome[str, ClusterSnapshot]) -> ClusterSnapshot:
        if outcome.ok and outcome.value is not None:
            return outcome.value
        logger.warning("Context %s is offline: %s", outcome.item, outcome.error)
        return offline_snapshot(outcome.item, outcome.error or RuntimeError("no result"))

    async def aggregate(self) -> list[ClusterSnapshot]:
        """Snapshots for every context, sorted by context name."""
        contexts = self.provider.list_contexts()
        if not contexts:
            raise NoContextsError("no contexts found in kubeconfig")

        outcomes = await scatter_gather(
            contexts,
            self._query,
            timeout=self.timeout,
            max_workers=self.max_workers,
        )
        snapshots = [self._merge(o) for o in outcomes]
        snapshots.sort(key=lambda s: s.name)
        online = sum(1 for s in snapshots if s.phase is ClusterPhase.RUNNING)
        logger.info("Aggregated %d contexts (%d online)", len(snapshots), online)
        return snapshots

    async def find(self, cluster_id: str) -> ClusterSnapshot | None:
        """Aggregate and return the snapshot with ``cluster_id``, if any."""
        for snapshot in await self.aggregate():
            if snapshot.id == cluster_id:
                return snapshot
        return None
