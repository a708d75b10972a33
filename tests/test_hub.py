import json

import pytest

from fakes import make_snapshot
from kube_observer.realtime import Connection, ConnectionState, Hub
from kube_observer.realtime.events import cluster_update_event


def _frames(connection):
    frames = []
    while len(connection.mailbox):
        frames.append(json.loads(connection.mailbox.get_nowait()))
    return frames


@pytest.fixture
def hub():
    return Hub(broadcast_queue_size=16)


@pytest.mark.asyncio
async def test_register_sends_welcome_and_counts_connection(hub):
    hub.start()
    conn = Connection(capacity=8)

    hub.register(conn)
    await hub.drain()

    assert hub.connection_count == 1
    assert conn.state is ConnectionState.ACTIVE
    frames = _frames(conn)
    assert len(frames) == 1
    assert frames[0]["type"] == "connection_status"
    assert frames[0]["data"] == {"status": "connected"}
    assert "clusterId" not in frames[0]
    await hub.stop()


@pytest.mark.asyncio
async def test_broadcast_reaches_registered_connection(hub):
    hub.start()
    conn = Connection(capacity=8)
    hub.register(conn)

    assert hub.broadcast(cluster_update_event(make_snapshot("prod"))) is True
    await hub.drain()

    frames = _frames(conn)
    assert [f["type"] for f in frames] == ["connection_status", "cluster_update"]
    assert frames[1]["clusterId"] == "context-prod"
    await hub.stop()


@pytest.mark.asyncio
async def test_late_connection_does_not_receive_earlier_broadcast(hub):
    hub.start()
    early, late = Connection(capacity=8), Connection(capacity=8)
    hub.register(early)
    hub.broadcast(cluster_update_event(make_snapshot("prod")))
    hub.register(late)
    await hub.drain()

    assert [f["type"] for f in _frames(early)] == ["connection_status", "cluster_update"]
    assert [f["type"] for f in _frames(late)] == ["connection_status"]
    await hub.stop()


@pytest.mark.asyncio
async def test_broadcasts_keep_their_order(hub):
    hub.start()
    conn = Connection(capacity=8)
    hub.register(conn)
    for name in ("a", "b", "c"):
        hub.broadcast(cluster_update_event(make_snapshot(name)))
    await hub.drain()

    assert [f.get("clusterId") for f in _frames(conn)] == [None, "context-a", "context-b", "context-c"]
    await hub.stop()


@pytest.mark.asyncio
async def test_full_mailbox_removes_connection(hub):
    hub.start()
    slow = Connection(capacity=1)
    fast = Connection(capacity=8)
    hub.register(slow)
    hub.register(fast)
    await hub.drain()
    assert hub.connection_count == 2

    hub.broadcast(cluster_update_event(make_snapshot("prod")))
    await hub.drain()

    assert hub.connection_count == 1
    assert slow.state is ConnectionState.CLOSED
    assert slow.mailbox.closed
    assert [f["type"] for f in _frames(fast)] == ["connection_status", "cluster_update"]
    await hub.stop()


@pytest.mark.asyncio
async def test_welcome_is_dropped_when_mailbox_already_full(hub):
    hub.start()
    conn = Connection(capacity=1)
    conn.mailbox.offer("preloaded")

    hub.register(conn)
    await hub.drain()

    assert hub.connection_count == 1
    assert conn.mailbox.get_nowait() == "preloaded"
    assert len(conn.mailbox) == 0
    await hub.stop()


@pytest.mark.asyncio
async def test_unregister_twice_is_idempotent(hub):
    hub.start()
    a, b = Connection(), Connection()
    hub.register(a)
    hub.register(b)
    await hub.drain()

    hub.unregister(a)
    hub.unregister(a)
    await hub.drain()

    assert hub.connection_count == 1
    assert a.state is ConnectionState.CLOSED
    assert a.mailbox.closed
    assert b.state is ConnectionState.ACTIVE
    await hub.stop()


@pytest.mark.asyncio
async def test_broadcast_dropped_when_intake_is_full():
    hub = Hub(broadcast_queue_size=2)
    event = cluster_update_event(make_snapshot("prod"))

    results = [hub.broadcast(event) for _ in range(3)]

    assert results == [True, True, False]
    assert hub.dropped_broadcasts == 1

    hub.start()
    await hub.drain()
    assert hub.broadcast(event) is True
    await hub.stop()


def test_broadcast_rejects_unknown_event_kind():
    hub = Hub()

    assert hub.broadcast({"type": "cluster_update", "data": {}}) is False


@pytest.mark.asyncio
async def test_stop_closes_every_mailbox(hub):
    hub.start()
    conns = [Connection() for _ in range(3)]
    for conn in conns:
        hub.register(conn)
    await hub.drain()

    await hub.stop()

    assert hub.connection_count == 0
    assert all(c.mailbox.closed for c in conns)
    assert not hub.running
