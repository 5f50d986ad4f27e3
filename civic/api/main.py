"""
FastAPI application entrypoint for the Civic Match API.

This module initializes the FastAPI app with all necessary
configurations, middleware, and route handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from common.config import get_settings
from common.db import create_engine_from_url, create_session_factory
from common.logging_conf import setup_fastapi_logging
from modules.ai_service import AIService

from .v1.router import api_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events for the application.
    """
    # Startup
    settings = get_settings()

    # Initialize logging with Sentry
    setup_fastapi_logging(
        sentry_dsn=settings.sentry_dsn,
        sentry_environment=settings.sentry_environment,
        sentry_traces_sample_rate=settings.sentry_traces_sample_rate,
        sentry_profiles_sample_rate=settings.sentry_profiles_sample_rate,
        log_level="DEBUG" if settings.debug else "INFO"
    )
    logger.info(f"Starting {settings.app_name}...")

    # Initialize database
    engine = create_engine_from_url(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        echo=settings.debug
    )
    session_factory = create_session_factory(engine)

    # Initialize AI client
    ai_service = AIService.from_settings(settings)
    if ai_service.langfuse is None:
        logger.info("Langfuse tracing disabled (no keys provided)")

    # Store in app state
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.ai_service = ai_service

    logger.info(f"{settings.app_name} started successfully")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    if ai_service.langfuse is not None:
        ai_service.langfuse.flush()
    engine.dispose()
    logger.info(f"{settings.app_name} shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description=(
            "Community problem reporting, solution proposals and "
            "resource matching"
        ),
        version="0.1.0",
        lifespan=lifespan
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(api_router)

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True
    )
