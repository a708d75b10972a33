"""Turn aggregation cycles into broadcast events."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from kube_observer.errors import NoContextsError
from kube_observer.observation.aggregator import Aggregator
from kube_observer.observation.models import ClusterSnapshot
from kube_observer.realtime.events import cluster_removed_event, cluster_update_event
from kube_observer.realtime.hub import Hub

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 15.0


class EventSource:
    """
    Runs the aggregator and broadcasts what changed since the previous cycle.

    One ``cluster_update`` event is sent per new or changed snapshot (timestamps
    are ignored when comparing) and one ``cluster_removed`` event per context
    that is gone.
    """

    def __init__(
        self,
        aggregator: Aggregator,
        hub: Hub,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.aggregator = aggregator
        self.hub = hub
        self.interval = interval
        self._known: dict[str, tuple[ClusterSnapshot, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None

    async def refresh(self) -> list[ClusterSnapshot] | None:
        """Run one cycle; returns the snapshots, or None when the cycle was skipped."""
        async with self._lock:
            try:
                snapshots = await self.aggregator.aggregate()
            except NoContextsError as e:
                logger.warning("Skipping event cycle: %s", e)
                return None
            self._publish_changes(snapshots)
            return snapshots

    def _publish_changes(self, snapshots: list[ClusterSnapshot]) -> None:
        current = {s.id: (s, s.fingerprint()) for s in snapshots}
        known: dict[str, tuple[ClusterSnapshot, dict[str, Any]]] = {}
        sent = 0
        for cluster_id, (snapshot, fingerprint) in current.items():
            previous = self._known.get(cluster_id)
            if previous is not None and previous[1] == fingerprint:
                known[cluster_id] = previous
            elif self.hub.broadcast(cluster_update_event(snapshot)):
                known[cluster_id] = (snapshot, fingerprint)
                sent += 1
            elif previous is not None:
                # dropped: keep the last delivered state so the change is retried
                known[cluster_id] = previous
        for cluster_id, entry in self._known.items():
            if cluster_id in current:
                continue
            if self.hub.broadcast(cluster_removed_event(cluster_id, entry[0].name)):
                sent += 1
            else:
                known[cluster_id] = entry
        self._known = known
        if sent:
            logger.info("Published %d cluster events", sent)

    async def run(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception:
                logger.exception("Event cycle failed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.interval <= 0:
            logger.info("Periodic cluster polling disabled")
            return
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="event-source")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.debug("Event source cancelled")
        self._task = None
