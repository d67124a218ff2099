# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the SchoolDesk API.

Run with:
    uvicorn --factory schooldesk.api.app:create_app
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schooldesk import __version__
from schooldesk.api.dependencies import close_db, init_db
from schooldesk.api.errors import register_exception_handlers
from schooldesk.api.middleware.auth import AuthMiddleware
from schooldesk.api.routes import health
from schooldesk.api.v1 import router as v1_router
from schooldesk.core.config import get_settings
from schooldesk.core.rbac import RBACGate, load_policy
from schooldesk.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Configures logging and opens the database pool on startup, closes
    the pool on shutdown. A database that cannot be reached at startup
    is logged and the API still starts; /health then reports degraded.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting SchoolDesk API (environment=%s, debug=%s)",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================
    try:
        await init_db()
        logger.info("Database connection initialized")
    except Exception as e:
        logger.warning("Failed to initialize database connection: %s", str(e))

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================
    try:
        await close_db()
        logger.info("Database connection closed")
    except Exception as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down SchoolDesk API")


def create_app(gate: RBACGate | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The RBAC policy is loaded here rather than in the lifespan so that a
    broken policy file stops the process before it serves any request.

    Args:
        gate: Prebuilt RBAC gate. Defaults to one built from the policy
            file named in settings.

    Returns:
        Configured FastAPI application instance.

    Raises:
        PolicyLoadError: If the policy file is missing or malformed.
    """
    settings = get_settings()

    app = FastAPI(
        title="SchoolDesk API",
        description="Exam result workflow with role-based access control",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Disable automatic redirects from /path to /path/
        # This prevents 307 redirects that lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # State
    # =========================================================================
    app.state.rbac_gate = gate or RBACGate(load_policy(settings.rbac.policy_path))

    # =========================================================================
    # Exception handlers
    # =========================================================================
    register_exception_handlers(app)

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    # Auth middleware - validates JWT tokens
    app.add_middleware(AuthMiddleware)

    # CORS middleware (added last so it runs first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
