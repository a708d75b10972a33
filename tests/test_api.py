import pytest
from fastapi.testclient import TestClient

from fakes import FakeCluster, FakeProvider
from kube_observer.api import create_app
from kube_observer.config import Settings
from kube_observer.context import AppContext
from kube_observer.errors import ConnectivityError
from kube_observer.observation import Aggregator, ClusterInventory
from kube_observer.observation.models import NodeSummary, ResourceStatus
from kube_observer.realtime import EventSource, Hub


def _context(clusters):
    settings = Settings(poll_interval_seconds=0, request_timeout_seconds=1.0)
    provider = FakeProvider(clusters, timeout=1.0)
    aggregator = Aggregator(provider, timeout=1.0)
    hub = Hub()
    return AppContext(
        settings=settings,
        provider=provider,
        aggregator=aggregator,
        inventory=ClusterInventory(provider),
        hub=hub,
        source=EventSource(aggregator, hub, interval=0),
    )


@pytest.fixture
def clusters():
    node = NodeSummary(name="node-1", role="worker", status=ResourceStatus(phase="Ready", ready=True))
    return [
        FakeCluster("prod", version="v1.28.0", nodes=[node]),
        FakeCluster("stage", version="v1.27.5"),
        FakeCluster("broken", error=ConnectivityError("context broken: connection refused")),
    ]


@pytest.fixture
def client(clusters):
    with TestClient(create_app(_context(clusters))) as test_client:
        yield test_client


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_list_clusters(client):
    resp = client.get("/api/clusters")

    assert resp.status_code == 200
    body = resp.json()
    assert [c["name"] for c in body] == ["broken", "prod", "stage"]
    broken, prod, _ = body
    assert broken["status"]["phase"] == "Offline"
    assert broken["status"]["message"] == "context broken: connection refused"
    assert prod["id"] == "context-prod"
    assert prod["summary"]["totalNodes"] == 3
    assert "lastUpdated" in prod["status"]


def test_list_clusters_without_contexts():
    with TestClient(create_app(_context([]))) as client:
        resp = client.get("/api/clusters")
    assert resp.status_code == 503


def test_get_cluster(client):
    assert client.get("/api/clusters/context-stage").json()["version"] == "v1.27.5"
    assert client.get("/api/clusters/context-nope").status_code == 404


def test_cluster_nodes(client):
    resp = client.get("/api/clusters/context-prod/nodes")

    assert resp.status_code == 200
    assert resp.json()[0]["name"] == "node-1"


def test_cluster_listing_errors(client):
    assert client.get("/api/clusters/context-nope/pods").status_code == 404
    assert client.get("/api/clusters/context-broken/deployments").status_code == 502
    assert client.get("/api/clusters/context-stage/services?namespace=default").json() == []


def test_websocket_receives_welcome_and_cluster_updates(client):
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json()["type"] == "connection_status"
        assert client.get("/ws/status").json() == {"connectedClients": 1, "status": "active"}

        resp = client.post("/api/clusters/refresh")
        assert resp.status_code == 200

        received = [ws.receive_json() for _ in range(3)]
        assert {e["type"] for e in received} == {"cluster_update"}
        assert sorted(e["clusterId"] for e in received) == [
            "context-broken",
            "context-prod",
            "context-stage",
        ]
