"""FastAPI dependencies that hand the application context to routes."""

from fastapi import HTTPException, Request, WebSocket

from kube_observer.context import AppContext


def _context_from_state(state) -> AppContext:
    context = getattr(state, "context", None)
    if context is None:
        raise HTTPException(status_code=503, detail="Observer is not initialised")
    return context


def get_context(request: Request) -> AppContext:
    return _context_from_state(request.app.state)


def get_ws_context(websocket: WebSocket) -> AppContext:
    return _context_from_state(websocket.app.state)
