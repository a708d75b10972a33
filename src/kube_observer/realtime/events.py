"""Events pushed to realtime connections: a closed union keyed on ``type``."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter, ValidationError

from kube_observer.errors import UnknownEventError
from kube_observer.observation.models import CamelModel, ClusterSnapshot, utcnow


class ConnectionStatusData(CamelModel):
    status: str  # connected


class ClusterRemovedData(CamelModel):
    name: str


class PingData(CamelModel):
    pass


class _EventBase(CamelModel):
    cluster_id: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)

    def to_json(self) -> str:
        """Serialize to the wire shape; ``clusterId`` is omitted when unset."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ConnectionStatusEvent(_EventBase):
    """Sent to a connection once it is registered."""

    type: Literal["connection_status"] = "connection_status"
    data: ConnectionStatusData


class ClusterUpdateEvent(_EventBase):
    """A cluster snapshot appeared or changed."""

    type: Literal["cluster_update"] = "cluster_update"
    data: ClusterSnapshot


class ClusterRemovedEvent(_EventBase):
    """A context disappeared from the kubeconfig."""

    type: Literal["cluster_removed"] = "cluster_removed"
    data: ClusterRemovedData


class PingEvent(_EventBase):
    """Keepalive pulse; the peer answers with ``{"type": "pong"}``."""

    type: Literal["ping"] = "ping"
    data: PingData = Field(default_factory=PingData)


Event = Annotated[
    Union[ConnectionStatusEvent, ClusterUpdateEvent, ClusterRemovedEvent, PingEvent],
    Field(discriminator="type"),
]

EVENT_TYPES = (ConnectionStatusEvent, ClusterUpdateEvent, ClusterRemovedEvent, PingEvent)

_event_adapter: TypeAdapter[Event] = TypeAdapter(Event)


def connected_event() -> ConnectionStatusEvent:
    return ConnectionStatusEvent(data=ConnectionStatusData(status="connected"))


def cluster_update_event(snapshot: ClusterSnapshot) -> ClusterUpdateEvent:
    return ClusterUpdateEvent(cluster_id=snapshot.id, data=snapshot)


def cluster_removed_event(cluster_id: str, name: str) -> ClusterRemovedEvent:
    return ClusterRemovedEvent(cluster_id=cluster_id, data=ClusterRemovedData(name=name))


def parse_event(raw: str | bytes | dict[str, Any]) -> Event:
    """Validate a wire payload into its event model; unknown kinds are rejected."""
    try:
        if isinstance(raw, dict):
            return _event_adapter.validate_python(raw)
        return _event_adapter.validate_json(raw)
    except ValidationError as e:
        kind = _peek_type(raw)
        raise UnknownEventError(f"invalid event (type={kind!r}): {e.error_count()} error(s)") from e


def _peek_type(raw: str | bytes | dict[str, Any]) -> Any:
    if isinstance(raw, dict):
        return raw.get("type")
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    return payload.get("type") if isinstance(payload, dict) else None
