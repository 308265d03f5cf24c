"""FastAPI app factory + lifespan (startup/shutdown)."""

import asyncio
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from canvas_agent.core import create_agent
from canvas_agent.llm import LLMAdapter
from canvas_agent.store import InMemoryCanvasStore
from canvas_agent.supervisor import ExecutionSupervisor

from .streaming import CanvasBroadcaster
from . import routes


def create_app(store: InMemoryCanvasStore | None = None, adapter: LLMAdapter | None = None) -> FastAPI:
    """Build and return the configured FastAPI application.

    Args:
        store: Canvas store to serve; a fresh in-memory store when omitted.
        adapter: LLM adapter override; built from config when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown lifecycle."""
        # Startup
        routes.store = store or InMemoryCanvasStore()
        routes.supervisor = ExecutionSupervisor(create_agent(routes.store, adapter))
        routes.broadcaster = CanvasBroadcaster(asyncio.get_running_loop())
        routes._start_time = time.time()
        routes._canvas_names.clear()
        routes._interaction_logs.clear()

        yield

        # Shutdown
        routes.broadcaster.close()
        routes.supervisor.shutdown(wait=False)

    app = FastAPI(
        title="Canvas Agent API",
        description="Natural-language commands for a shared 2D canvas",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS: restrict origins in production, allow all in development
    cors_origins = os.getenv("CORS_ORIGINS", "").strip()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins.split(",") if cors_origins else ["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes.router)
    return app
