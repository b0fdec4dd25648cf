"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. It also builds the two in-memory pieces of the realtime layer,
the NotificationBus and the StreamSessionManager, and stores them on
app.state. Each app owns its own bus; tests build a fresh app per case.

Lifespan manages shutdown: open event streams are closed (cancelling
their heartbeats) before the database engine is disposed.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campus_portal import __version__
from campus_portal.api import api_router
from campus_portal.config import settings
from campus_portal.middleware.rate_limit import RateLimitMiddleware
from campus_portal.middleware.request_id import RequestIdMiddleware
from campus_portal.middleware.security import SecurityHeadersMiddleware
from campus_portal.realtime.bus import NotificationBus
from campus_portal.realtime.sse import StreamSessionManager

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "campus_portal.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    yield

    closed = app.state.stream_manager.close_all("server_shutdown")
    logger.info("campus_portal.shutdown", closed_streams=closed)

    from campus_portal.db.engine import engine
    await engine.dispose()


def create_app(bus: Optional[NotificationBus] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Campus Portal",
        description="Examination administration backend with live admin notifications",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Realtime ─────────────────────────────────────────────
    app.state.bus = bus or NotificationBus()
    app.state.stream_manager = StreamSessionManager(
        app.state.bus,
        heartbeat_interval=settings.sse_heartbeat_seconds,
        queue_size=settings.sse_queue_size,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        limit=settings.rate_limit_auth_requests,
        window_seconds=settings.rate_limit_auth_window_seconds,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: campus_portal.main:app)
app = create_app()
