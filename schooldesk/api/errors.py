# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error responses for the result workflow.

Maps each ResultServiceError kind to an HTTP status code and renders the
body as ``{"error": <kind>, "detail": <message>}``.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from schooldesk.domains.results.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    ResultServiceError,
    TerminalStateError,
)
from schooldesk.infrastructure.database.connection import DatabaseError

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[str, int] = {
    InvalidInputError.kind: status.HTTP_400_BAD_REQUEST,
    ForbiddenError.kind: status.HTTP_403_FORBIDDEN,
    NotFoundError.kind: status.HTTP_404_NOT_FOUND,
    ConflictError.kind: status.HTTP_409_CONFLICT,
    InvalidTransitionError.kind: status.HTTP_409_CONFLICT,
    TerminalStateError.kind: status.HTTP_409_CONFLICT,
}


async def result_error_handler(request: Request, exc: ResultServiceError) -> JSONResponse:
    """Render a result workflow error.

    Args:
        request: HTTP request.
        exc: Raised workflow error.

    Returns:
        JSON error response.
    """
    status_code = ERROR_STATUS_CODES.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    logger.info(
        "%s %s -> %d %s: %s",
        request.method,
        request.url.path,
        status_code,
        exc.kind,
        exc.message,
    )
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.kind, "detail": exc.message},
    )


async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    """Render a database failure without internal details."""
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "database_unavailable", "detail": "Database operation failed"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register workflow and database error handlers on the app."""
    app.add_exception_handler(ResultServiceError, result_error_handler)
    app.add_exception_handler(DatabaseError, database_error_handler)
