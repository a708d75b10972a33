import json
from datetime import datetime, timezone

import pytest

from fakes import make_snapshot
from kube_observer.errors import UnknownEventError
from kube_observer.realtime.events import (
    ClusterUpdateEvent,
    ConnectionStatusEvent,
    PingEvent,
    cluster_removed_event,
    cluster_update_event,
    connected_event,
    parse_event,
)


def test_cluster_update_wire_shape():
    event = cluster_update_event(make_snapshot("prod", total_nodes=3))
    event.timestamp = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)

    payload = json.loads(event.to_json())

    assert set(payload) == {"type", "clusterId", "data", "timestamp"}
    assert payload["type"] == "cluster_update"
    assert payload["clusterId"] == "context-prod"
    assert payload["data"]["summary"]["totalNodes"] == 3
    assert payload["data"]["status"]["phase"] == "Running"
    assert payload["timestamp"] == "2024-05-01T08:30:00Z"


def test_cluster_id_is_omitted_when_absent():
    payload = json.loads(connected_event().to_json())

    assert "clusterId" not in payload
    assert payload["data"] == {"status": "connected"}


def test_ping_carries_empty_data():
    assert json.loads(PingEvent().to_json())["data"] == {}


def test_parse_event_round_trips_each_kind():
    original = cluster_removed_event("context-dev", "dev")

    parsed = parse_event(original.to_json())

    assert parsed == original
    assert isinstance(parse_event(connected_event().to_json()), ConnectionStatusEvent)
    assert isinstance(parse_event(cluster_update_event(make_snapshot("a")).to_json()), ClusterUpdateEvent)


def test_parse_event_rejects_unknown_kind():
    with pytest.raises(UnknownEventError, match="node_exploded"):
        parse_event({"type": "node_exploded", "data": {}, "timestamp": "2024-01-01T00:00:00Z"})


def test_parse_event_rejects_payload_of_wrong_shape():
    with pytest.raises(UnknownEventError):
        parse_event(json.dumps({"type": "cluster_removed", "data": {"status": "connected"}}))
