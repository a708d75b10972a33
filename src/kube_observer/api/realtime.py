"""WebSocket endpoint feeding connections from the hub."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket

from kube_observer.api.dependencies import get_context, get_ws_context
from kube_observer.context import AppContext
from kube_observer.realtime import Connection, ConnectionPump, WebSocketTransport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, ctx: AppContext = Depends(get_ws_context)):
    await websocket.accept()
    settings = ctx.settings
    client = websocket.client
    connection = Connection(
        capacity=settings.mailbox_capacity,
        label=f"{client.host}:{client.port}" if client else None,
    )
    ctx.hub.register(connection)
    pump = ConnectionPump(
        ctx.hub,
        connection,
        WebSocketTransport(websocket),
        keepalive_interval=settings.keepalive_interval_seconds,
        liveness_timeout=settings.liveness_timeout_seconds,
    )
    await pump.run()


@router.get("/ws/status")
async def websocket_status(ctx: AppContext = Depends(get_context)):
    return {"connectedClients": ctx.hub.connection_count, "status": "active"}
