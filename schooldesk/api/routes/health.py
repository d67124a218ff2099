# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints."""

import logging
import time
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from schooldesk import __version__
from schooldesk.core.config import get_settings
from schooldesk.infrastructure.database.connection import check_database_connection
from schooldesk.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    database: str = Field(description="Database reachability")


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness check with version and environment.

    Returns:
        HealthResponse. Status is ``degraded`` when the database is not
        reachable; the endpoint itself always answers 200.
    """
    settings = get_settings()
    database_ok = await check_database_connection()
    if not database_ok:
        logger.debug("Health check: database not reachable")

    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        timestamp=utc_now(),
        version=__version__,
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
        database="healthy" if database_ok else "unavailable",
    )
