"""In-memory fakes for clusters, providers and transports."""

import asyncio
import threading
import time

from kube_observer.errors import ConfigurationError, TransportError
from kube_observer.observation.collector import cluster_id_for
from kube_observer.observation.models import ClusterSnapshot, ClusterSummary, ResourceStatus


class FakeCluster:
    """Stands in for ClusterClient; can answer, fail, or hang until released."""

    def __init__(self, name, version="v1.28.0", error=None, hang=False, summary=None, nodes=None):
        self.name = name
        self.version = version
        self.error = error
        self.hang = hang
        self.release = threading.Event()
        self.summary = summary or ClusterSummary(total_nodes=3, ready_nodes=3, total_pods=10, running_pods=9)
        self.nodes = nodes or []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def _check(self):
        if self.hang:
            self.release.wait(5)
        if self.error is not None:
            raise self.error

    def snapshot(self):
        self._check()
        return ClusterSnapshot(
            id=cluster_id_for(self.name),
            name=self.name,
            version=self.version,
            status=ResourceStatus(phase="Running", ready=True),
            summary=self.summary,
        )

    def list_nodes(self):
        self._check()
        return list(self.nodes)

    def list_pods(self, namespace=None):
        self._check()
        return []

    def list_services(self, namespace=None):
        self._check()
        return []

    def list_deployments(self, namespace=None):
        self._check()
        return []

    def list_namespaces(self):
        self._check()
        return []


class FakeProvider:
    """Stands in for ClusterClientProvider over an in-memory set of clusters."""

    def __init__(self, clusters=(), timeout=0.5):
        self.clusters = {c.name: c for c in clusters}
        self.timeout = timeout
        self.resolved = []

    def list_contexts(self):
        return sorted(self.clusters)

    def resolve(self, context_name):
        self.resolved.append(context_name)
        if context_name not in self.clusters:
            raise ConfigurationError(f"context {context_name} not found")
        return self.clusters[context_name]


class FakeTransport:
    """In-memory duplex transport driven by the test."""

    def __init__(self, fail_writes=False):
        self.sent = []
        self.incoming = asyncio.Queue()
        self.fail_writes = fail_writes
        self.closed = False

    async def send_text(self, data):
        if self.fail_writes:
            raise TransportError("write failed: broken pipe")
        self.sent.append(data)

    async def receive_text(self):
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self, code=1000):
        self.closed = True


def make_snapshot(name, version="v1.28.0", phase="Running", **counts):
    return ClusterSnapshot(
        id=cluster_id_for(name),
        name=name,
        version=version,
        status=ResourceStatus(phase=phase, ready=phase == "Running"),
        summary=ClusterSummary(**counts),
    )


async def wait_until(predicate, timeout=2.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)


