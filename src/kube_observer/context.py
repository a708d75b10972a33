"""Application context: the components shared by the API and the CLI."""

from __future__ import annotations

from dataclasses import dataclass

from kube_observer.config import Settings, get_settings
from kube_observer.observation import Aggregator, ClusterClientProvider, ClusterInventory
from kube_observer.realtime import EventSource, Hub


@dataclass
class AppContext:
    """Components built once at startup and handed to whoever needs them."""

    settings: Settings
    provider: ClusterClientProvider
    aggregator: Aggregator
    inventory: ClusterInventory
    hub: Hub
    source: EventSource

    async def start(self) -> None:
        self.hub.start()
        self.source.start()

    async def stop(self) -> None:
        await self.source.stop()
        await self.hub.stop()


def build_context(settings: Settings | None = None) -> AppContext:
    """Wire provider, aggregator, hub and event source from settings."""
    opts = settings or get_settings()
    provider = ClusterClientProvider(
        kubeconfig=opts.kubeconfig,
        timeout=opts.request_timeout_seconds,
    )
    aggregator = Aggregator(
        provider,
        timeout=opts.request_timeout_seconds,
        max_workers=opts.max_parallel_queries,
    )
    hub = Hub(broadcast_queue_size=opts.broadcast_queue_size)
    return AppContext(
        settings=opts,
        provider=provider,
        aggregator=aggregator,
        inventory=ClusterInventory(provider),
        hub=hub,
        source=EventSource(aggregator, hub, interval=opts.poll_interval_seconds),
    )
