"""A registered realtime connection and its bounded outbound mailbox."""

from __future__ import annotations

import asyncio
import itertools
from collections import deque
from enum import Enum

from kube_observer.errors import MailboxClosedError, QueueFullError

DEFAULT_MAILBOX_CAPACITY = 256

_connection_ids = itertools.count(1)


class ConnectionState(str, Enum):
    REGISTERING = "registering"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class Mailbox:
    """
    Bounded FIFO of serialized frames with a non-blocking producer side.

    ``close()`` lets the consumer drain what is already queued; after that
    ``get()`` raises ``MailboxClosedError``.
    """

    def __init__(self, capacity: int = DEFAULT_MAILBOX_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("mailbox capacity must be at least 1")
        self.capacity = capacity
        self._frames: deque[str] = deque()
        self._closed = False
        self._wakeup = asyncio.Event()

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def closed(self) -> bool:
        return self._closed

    def full(self) -> bool:
        return len(self._frames) >= self.capacity

    def put_nowait(self, frame: str) -> None:
        if self._closed:
            raise MailboxClosedError("mailbox is closed")
        if self.full():
            raise QueueFullError(f"mailbox is full ({self.capacity} frames)")
        self._frames.append(frame)
        self._wakeup.set()

    def offer(self, frame: str) -> bool:
        """Enqueue without blocking; False when full or closed."""
        try:
            self.put_nowait(frame)
        except (QueueFullError, MailboxClosedError):
            return False
        return True

    async def get(self) -> str:
        while not self._frames:
            if self._closed:
                raise MailboxClosedError("mailbox is closed")
            self._wakeup.clear()
            await self._wakeup.wait()
        return self._frames.popleft()

    def get_nowait(self) -> str:
        if not self._frames:
            if self._closed:
                raise MailboxClosedError("mailbox is closed")
            raise asyncio.QueueEmpty
        return self._frames.popleft()

    def close(self) -> None:
        self._closed = True
        self._wakeup.set()


class Connection:
    """One consumer of the broadcast stream, owned by the hub while registered."""

    def __init__(self, capacity: int = DEFAULT_MAILBOX_CAPACITY, label: str | None = None) -> None:
        self.id = next(_connection_ids)
        self.label = label or f"conn-{self.id}"
        self.mailbox = Mailbox(capacity)
        self.state = ConnectionState.REGISTERING

    def __repr__(self) -> str:
        return f"<Connection {self.label} state={self.state.value} queued={len(self.mailbox)}>"
