"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from repo_flattener.interface import session_routes
from repo_flattener.interface.dependencies import shutdown, startup
from repo_flattener.interface.error_handlers import register_error_handlers
from repo_flattener.interface.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the shared HTTP client and session stores for the app's lifetime."""
    await startup()
    logger.info("Repo flattener ready")
    try:
        yield
    finally:
        await shutdown()


def create_app() -> FastAPI:
    """Build and wire the FastAPI application."""
    app = FastAPI(
        title="GitHub Repo Flattener",
        version="1.0.0",
        description=(
            "Takes a public GitHub repository URL and an optional revision and "
            "returns every text file at that commit as one navigable document "
            "and as a tagged container for text-processing tools."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)
    app.include_router(router, tags=["flatten"])
    app.include_router(session_routes.router, tags=["session"])

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
