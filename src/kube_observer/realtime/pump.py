"""Per-connection pump between a hub mailbox and a duplex transport."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

from kube_observer.errors import MailboxClosedError, TransportError
from kube_observer.realtime.connection import Connection
from kube_observer.realtime.events import PingEvent
from kube_observer.realtime.hub import Hub

logger = logging.getLogger(__name__)

DEFAULT_KEEPALIVE_INTERVAL = 50.0
DEFAULT_LIVENESS_TIMEOUT = 60.0

PONG_TYPE = "pong"


class Transport(Protocol):
    """Duplex text transport under a connection."""

    async def send_text(self, data: str) -> None: ...

    async def receive_text(self) -> str: ...

    async def close(self, code: int = 1000) -> None: ...


class WebSocketTransport:
    """Transport over a Starlette/FastAPI ``WebSocket`` that is already accepted."""

    def __init__(self, websocket: Any) -> None:
        self._websocket = websocket

    async def send_text(self, data: str) -> None:
        try:
            await self._websocket.send_text(data)
        except Exception as e:
            raise TransportError(f"write failed: {e}") from e

    async def receive_text(self) -> str:
        try:
            message = await self._websocket.receive()
        except Exception as e:
            raise TransportError(f"read failed: {e}") from e
        if message["type"] == "websocket.disconnect":
            raise TransportError(f"peer disconnected (code={message.get('code')})")
        return message.get("text") or ""

    async def close(self, code: int = 1000) -> None:
        try:
            await self._websocket.close(code=code)
        except Exception:
            # the peer may already be gone
            logger.debug("WebSocket close skipped", exc_info=True)


def is_pong(frame: str) -> bool:
    try:
        payload = json.loads(frame)
    except ValueError:
        return False
    return isinstance(payload, dict) and payload.get("type") == PONG_TYPE


class ConnectionPump:
    """
    Runs the outbound and inbound activities of one connection.

    Outbound drains the mailbox in order and sends a ping every
    ``keepalive_interval``, whether or not frames are flowing. Inbound reads
    until the peer goes away; only pong frames count as a sign of life,
    everything else is ignored. Whichever activity stops first unregisters the connection and
    the other one is cancelled.
    """

    def __init__(
        self,
        hub: Hub,
        connection: Connection,
        transport: Transport,
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        liveness_timeout: float = DEFAULT_LIVENESS_TIMEOUT,
    ) -> None:
        self.hub = hub
        self.connection = connection
        self.transport = transport
        self.keepalive_interval = keepalive_interval
        self.liveness_timeout = liveness_timeout
        self._detached = False

    def _detach(self, reason: str) -> None:
        if self._detached:
            return
        self._detached = True
        logger.debug("Connection %s stopping: %s", self.connection.label, reason)
        self.hub.unregister(self.connection, reason)

    async def _outbound(self) -> None:
        mailbox = self.connection.mailbox
        loop = asyncio.get_running_loop()
        next_ping = loop.time() + self.keepalive_interval
        try:
            while True:
                remaining = next_ping - loop.time()
                if remaining <= 0:
                    await self.transport.send_text(PingEvent().to_json())
                    next_ping = loop.time() + self.keepalive_interval
                    continue
                try:
                    frame = await asyncio.wait_for(mailbox.get(), remaining)
                except asyncio.TimeoutError:
                    continue
                await self.transport.send_text(frame)
        except MailboxClosedError:
            self._detach("mailbox closed")
        except TransportError as e:
            self._detach(str(e))

    async def _inbound(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.liveness_timeout
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise asyncio.TimeoutError
                frame = await asyncio.wait_for(self.transport.receive_text(), remaining)
                if is_pong(frame):
                    deadline = loop.time() + self.liveness_timeout
        except asyncio.TimeoutError:
            self._detach(f"no pong within {self.liveness_timeout:g}s")
        except TransportError as e:
            self._detach(str(e))

    async def run(self) -> None:
        """Pump until either activity stops, then close the transport."""
        outbound = asyncio.create_task(self._outbound(), name=f"{self.connection.label}-out")
        inbound = asyncio.create_task(self._inbound(), name=f"{self.connection.label}-in")
        try:
            done, _ = await asyncio.wait(
                {outbound, inbound}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    logger.error(
                        "Connection %s pump failed",
                        self.connection.label,
                        exc_info=task.exception(),
                    )
        finally:
            self._detach("pump stopped")
            for task in (outbound, inbound):
                task.cancel()
            await asyncio.gather(outbound, inbound, return_exceptions=True)
            await self.transport.close()
