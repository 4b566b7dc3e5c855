"""
Trust Engine - FastAPI Application

Creates the FastAPI app, wires the routers and error handlers, and opens
the database pool on startup.

Run with: uvicorn trust_engine.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI

from . import __version__
from .api.routers.contributions import router as contributions_router
from .config import configure_logging, get_settings
from .core.errors import setup_error_handlers
from .db import close_db_pool, get_pool_health, init_db_pool

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database pool on startup and close it on shutdown."""
    logger.info("🚀 Starting Trust Engine v%s", __version__)

    await init_db_pool()
    if get_pool_health().healthy:
        logger.info("✅ Database pool initialized")
    else:
        # Keep serving so /health can report the failure
        logger.error("❌ Database pool unavailable: %s", get_pool_health().last_error)

    yield

    logger.info("🛑 Shutting down Trust Engine...")
    await close_db_pool()
    logger.info("✅ Shutdown complete")


def create_app() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title="Trust Engine",
        description="Community contribution moderation, reputation and notification pipeline.",
        version=__version__,
        lifespan=lifespan,
    )

    setup_error_handlers(app)
    app.include_router(contributions_router)

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, Any]:
        pool = get_pool_health()
        return {
            "status": "ok" if pool.healthy else "degraded",
            "version": __version__,
            "database": {
                "initialized": pool.initialized,
                "healthy": pool.healthy,
                "last_error": pool.last_error,
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "trust_engine.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=not settings.is_production,
        log_level=settings.LOG_LEVEL.lower(),
    )
