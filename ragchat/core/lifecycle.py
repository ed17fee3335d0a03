"""Lifecycle management for the application."""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from ragchat.core.config import settings
from ragchat.core.logging import get_logger
from ragchat.core.container import ServiceContainer, set_container

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    logger.info("Starting chat service...")

    container = ServiceContainer()

    try:
        await container.initialize(settings)

        # Set global container for module-level access
        set_container(container)

        # Store container in app state for route access
        app.state.container = container

        logger.info("Chat service started successfully")

    except Exception as e:
        logger.error(f"Failed to initialize services: {e}")
        raise

    yield

    logger.info("Shutting down chat service...")
    await container.shutdown()
    set_container(None)

    logger.info("Chat service shut down")
