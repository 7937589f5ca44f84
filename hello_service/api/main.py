"""
hello_service/api/main.py
FastAPI application factory and process entry point.

Architecture:
- create_app() builds a fresh app per call (no module-level instance)
- ServerLifecycle binds, serves and drains the listener
- main() maps fatal lifecycle errors to a non-zero exit code
"""

import asyncio
import sys
from typing import Optional

from fastapi import FastAPI

from ..core.config import Settings, get_settings
from ..core.exceptions import HelloServiceException
from ..core.logging import get_logger, setup_logging
from .lifespan import ServerLifecycle, lifespan
from .routes import health, root

logger = get_logger("main")


# ============================================================================
# Create Application
# ============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create the FastAPI application with its two routes.

    Args:
        settings: Settings to build the app from (defaults to global settings)

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Greeting and health check endpoints",
        lifespan=lifespan,

        # Only / and /health are served, matched exactly
        redirect_slashes=False,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings

    app.include_router(root.router, tags=["Root"])
    app.include_router(health.router, tags=["Health"])

    logger.debug("app_created", name=settings.APP_NAME, version=settings.APP_VERSION)
    return app


# ============================================================================
# CLI Entry Point
# ============================================================================

def main() -> None:
    """
    Serve until SIGINT/SIGTERM, then shut down gracefully.

    Exits 0 on a clean shutdown, 1 on bind failure or shutdown timeout.
    """
    settings = get_settings()
    setup_logging(settings)

    lifecycle = ServerLifecycle(create_app(settings), settings.listener_config())

    try:
        asyncio.run(lifecycle.run())
    except HelloServiceException as exc:
        logger.critical("server_exited_with_error", **exc.to_dict())
        sys.exit(1)


if __name__ == "__main__":
    main()


# ============================================================================
# Exports
# ============================================================================

__all__ = ["create_app", "main"]
