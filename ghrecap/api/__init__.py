"""ghrecap REST API — FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ghrecap.api.deps import (
    close_engines,
    dispose_engine,
    get_settings,
    init_engines,
    init_session_factory,
)
from ghrecap.api.errors import register_error_handlers
from ghrecap.api.middleware.request_id import RequestIDMiddleware
from ghrecap.api.routers import (
    activity,
    actors,
    commits,
    issues,
    repositories,
    summary,
)
from ghrecap.core.logging import setup_logging

log = structlog.get_logger("ghrecap.api")


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: GitHub client, engines, DB pool. Shutdown: close them."""
    settings = get_settings()
    init_engines(settings)
    init_session_factory(settings.database_url)
    log.info(
        "api.started",
        batch_size=settings.batch_size,
        batch_delay=settings.batch_delay,
        authenticated=settings.github_token is not None,
    )
    yield
    await close_engines()
    await dispose_engine()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()
    settings = get_settings()

    app = FastAPI(
        title="ghrecap",
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(actors.router, prefix="/api/v1/actors", tags=["actors"])
    app.include_router(
        repositories.router, prefix="/api/v1/repositories", tags=["repositories"]
    )
    app.include_router(commits.router, prefix="/api/v1/commits", tags=["commits"])
    app.include_router(issues.router, prefix="/api/v1/issues", tags=["issues"])
    app.include_router(summary.router, prefix="/api/v1/summary", tags=["summary"])
    app.include_router(activity.router, prefix="/api/v1/activity", tags=["activity"])

    return app
