"""Realtime layer: hub, connection pumps and the event source."""

from kube_observer.realtime.connection import Connection, ConnectionState, Mailbox
from kube_observer.realtime.events import (
    ClusterRemovedEvent,
    ClusterUpdateEvent,
    ConnectionStatusEvent,
    Event,
    PingEvent,
    parse_event,
)
from kube_observer.realtime.hub import Hub
from kube_observer.realtime.pump import ConnectionPump, Transport, WebSocketTransport
from kube_observer.realtime.source import EventSource

__all__ = [
    "ClusterRemovedEvent",
    "ClusterUpdateEvent",
    "Connection",
    "ConnectionPump",
    "ConnectionState",
    "ConnectionStatusEvent",
    "Event",
    "EventSource",
    "Hub",
    "Mailbox",
    "PingEvent",
    "Transport",
    "WebSocketTransport",
    "parse_event",
]
