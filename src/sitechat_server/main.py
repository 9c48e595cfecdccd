"""
Sitechat Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures CORS and exception handling, and provides a test-friendly
application factory.

Design Goals
------------
- Deterministic startup: storage backend and pipeline are built once
- Explicit dependency initialization order
- Centralized router registration
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import contextlib
import logging
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, settings
from .core.errors import (
    ApiError,
    api_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from .storage import create_index_registry
from .api.dependencies import build_pipeline

from .api import (
    query_routes,
    completions_routes,
    index_routes,
    health_routes,
)


logger = logging.getLogger("sitechat.app")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------

def _make_lifespan(config: Settings):

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """
        Build long-lived collaborators once and release them on shutdown.

        The storage backend is chosen here, from configuration, and stays
        fixed for the life of the process.
        """
        logger.info("Starting sitechat-server")

        app.state.registry = create_index_registry(config)
        app.state.pipeline = build_pipeline(config)

        active = app.state.pipeline.generator.select_provider()
        if active is None:
            logger.warning("No language model provider configured; answers will explain how to set one up")
        else:
            logger.info("Language model provider: %s", active.name)

        yield

        logger.info("Shutting down sitechat-server")
        await app.state.registry.close()

    return lifespan


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app(config: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    config : Optional[Settings]
        Settings to build collaborators from. Defaults to the process-wide
        settings loaded from the environment.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    config = config or settings

    app = FastAPI(
        title="sitechat-server",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=_make_lifespan(config),
    )

    # --------------------------------------------------------------
    # CORS
    # --------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
        max_age=86400,
    )

    # --------------------------------------------------------------
    # Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(query_routes.router)
    app.include_router(completions_routes.router)
    app.include_router(index_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

configure_logging(settings.log_level)
app = create_app()
