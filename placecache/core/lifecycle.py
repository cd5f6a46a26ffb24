"""Lifecycle management for the application."""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from placecache.core.config import settings
from placecache.core.logging import get_logger
from placecache.core.container import ServiceContainer

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    logger.info("Starting place search cache service...")

    container = ServiceContainer()

    try:
        await container.initialize(settings)

        # Store container in app state for route access
        app.state.container = container

        logger.info("Place search cache service started successfully")

    except Exception as e:
        logger.error(f"Failed to initialize services: {e}")
        raise

    yield

    logger.info("Shutting down place search cache service...")
    await container.shutdown()
    logger.info("Place search cache service shut down")
