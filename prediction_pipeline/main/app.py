"""
Main Application - Main Layer

This module serves as the entry point for the FastAPI application.
It initializes the container, creates the FastAPI app, and includes
the API routers.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prediction_pipeline.main.config import get_settings
from prediction_pipeline.main.container import app_lifespan, init_container
from prediction_pipeline.presentation.controllers import (
    batch_router,
    sessions_router,
    system_router,
)
from prediction_pipeline.shared import (
    configure_logging,
    get_logger,
    update_logging_from_settings,
)

# Bootstrap logging from the environment; settings loading logs through it
configure_logging()

# Load settings
settings = get_settings()

# Update logging with the loaded settings
update_logging_from_settings(settings)

# Get structured logger
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan management.

    Delegates resource setup and teardown to the container's app_lifespan.
    """
    # Uptime reference for operators
    app.state.started_at = datetime.now(timezone.utc)
    logger.info("Application starting up")

    # Mongo indexes on the way in, client closed on the way out
    async with app_lifespan() as container:
        app.state.container = container
        yield

    logger.info("Application shutting down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application
    """
    settings = get_settings()

    # Build the container; its wiring config injects into the routers
    init_container(settings)

    # Create FastAPI app
    app = FastAPI(
        title=settings.api.title,
        description=settings.api.description,
        version=settings.api.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # The dashboard calls the status endpoints from the browser
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(batch_router)
    app.include_router(sessions_router)
    app.include_router(system_router)

    return app


app = create_app()
