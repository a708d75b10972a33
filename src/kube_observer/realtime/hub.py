"""Connection registry: one control loop owns the set of live connections."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Union

from kube_observer.realtime.connection import Connection, ConnectionState
from kube_observer.realtime.events import EVENT_TYPES, Event, connected_event

logger = logging.getLogger(__name__)

DEFAULT_BROADCAST_QUEUE_SIZE = 256


@dataclass(frozen=True)
class _Register:
    connection: Connection


@dataclass(frozen=True)
class _Unregister:
    connection: Connection
    reason: str


@dataclass(frozen=True)
class _Broadcast:
    event: Event


_Request = Union[_Register, _Unregister, _Broadcast]


class Hub:
    """
    Fans events out to every registered connection.

    ``register``, ``unregister`` and ``broadcast`` only enqueue a request; the
    control loop started by ``start()`` applies them one at a time, in order,
    and is the only code that touches the connection set. Nothing here ever
    blocks on a slow consumer: a broadcast that finds the intake full is
    dropped, and a connection whose mailbox is full is removed.
    """

    def __init__(self, broadcast_queue_size: int = DEFAULT_BROADCAST_QUEUE_SIZE) -> None:
        if broadcast_queue_size < 1:
            raise ValueError("broadcast_queue_size must be at least 1")
        self.broadcast_queue_size = broadcast_queue_size
        self.dropped_broadcasts = 0
        self._inbox: asyncio.Queue[_Request] = asyncio.Queue()
        self._connections: set[Connection] = set()
        self._pending_broadcasts = 0
        self._count = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def connection_count(self) -> int:
        """Number of active connections as of the last processed request."""
        return self._count

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def register(self, connection: Connection) -> None:
        self._inbox.put_nowait(_Register(connection))

    def unregister(self, connection: Connection, reason: str = "closed") -> None:
        """Request removal; repeated requests for the same connection are no-ops."""
        if connection.state in (ConnectionState.REGISTERING, ConnectionState.ACTIVE):
            connection.state = ConnectionState.CLOSING
        self._inbox.put_nowait(_Unregister(connection, reason))

    def broadcast(self, event: Event) -> bool:
        """Queue ``event`` for every active connection; False if it was dropped."""
        if not isinstance(event, EVENT_TYPES):
            logger.warning("Rejecting broadcast of unknown event kind %s", type(event).__name__)
            return False
        if self._pending_broadcasts >= self.broadcast_queue_size:
            self.dropped_broadcasts += 1
            logger.warning("Hub broadcast queue is full, dropping %s event", event.type)
            return False
        self._pending_broadcasts += 1
        self._inbox.put_nowait(_Broadcast(event))
        return True

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run(), name="realtime-hub")

    async def stop(self) -> None:
        """Stop the control loop and close every mailbox."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.debug("Hub control loop cancelled")
            self._task = None
        for connection in list(self._connections):
            self._remove(connection, "hub stopped")

    async def drain(self) -> None:
        """Wait until every request queued so far has been applied."""
        await self._inbox.join()

    async def run(self) -> None:
        """Control loop: apply queued requests one at a time, forever."""
        while True:
            request = await self._inbox.get()
            try:
                self._apply(request)
            except Exception:
                logger.exception("Hub failed to apply %s", type(request).__name__)
            finally:
                self._inbox.task_done()

    def _apply(self, request: _Request) -> None:
        if isinstance(request, _Register):
            self._add(request.connection)
        elif isinstance(request, _Unregister):
            self._remove(request.connection, request.reason)
        else:
            self._pending_broadcasts -= 1
            self._fan_out(request.event)

    def _add(self, connection: Connection) -> None:
        if connection.state is not ConnectionState.REGISTERING:
            logger.debug("Ignoring register of %s in state %s", connection.label, connection.state.value)
            return
        self._connections.add(connection)
        connection.state = ConnectionState.ACTIVE
        self._count = len(self._connections)
        logger.info("Connection %s registered. Total connections: %d", connection.label, self._count)
        if not connection.mailbox.offer(connected_event().to_json()):
            logger.warning("Mailbox of %s is full, dropping welcome event", connection.label)

    def _remove(self, connection: Connection, reason: str) -> None:
        if connection not in self._connections:
            connection.mailbox.close()
            connection.state = ConnectionState.CLOSED
            return
        self._connections.discard(connection)
        connection.mailbox.close()
        connection.state = ConnectionState.CLOSED
        self._count = len(self._connections)
        logger.info(
            "Connection %s unregistered (%s). Total connections: %d",
            connection.label,
            reason,
            self._count,
        )

    def _fan_out(self, event: Event) -> None:
        frame = event.to_json()
        unresponsive = [c for c in self._connections if not c.mailbox.offer(frame)]
        for connection in unresponsive:
            logger.warning("Mailbox of %s is full, dropping the connection", connection.label)
            self._remove(connection, "mailbox full")
        delivered = len(self._connections)
        if delivered:
            logger.debug("Broadcast %s event to %d connections", event.type, delivered)
