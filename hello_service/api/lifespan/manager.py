"""
hello_service/api/lifespan/manager.py
FastAPI lifespan hook.

The application holds no resources; the hook only records when the app
starts and stops serving. Listener lifecycle lives in server.py.
"""

from contextlib import asynccontextmanager

from ...core.logging import get_logger

logger = get_logger("lifespan")


@asynccontextmanager
async def lifespan(app):
    """FastAPI lifespan context manager."""
    settings = app.state.settings

    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
    )

    yield

    logger.info("application_stopped", app_name=settings.APP_NAME)


__all__ = ["lifespan"]
