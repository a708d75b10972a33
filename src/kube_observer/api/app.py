"""FastAPI application exposing snapshots and the realtime channel."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kube_observer import __version__
from kube_observer.api import clusters, realtime
from kube_observer.context import AppContext, build_context

logger = logging.getLogger(__name__)


def create_app(context: AppContext | None = None) -> FastAPI:
    """Build the app; the context is created on startup unless one is given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = context or build_context()
        app.state.context = ctx
        await ctx.start()
        logger.info("Observer started")
        try:
            yield
        finally:
            await ctx.stop()
            logger.info("Observer stopped")

    app = FastAPI(title="Kube Observer", version=__version__, lifespan=lifespan)
    app.include_router(clusters.router)
    app.include_router(realtime.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "time": int(time.time())}

    return app
