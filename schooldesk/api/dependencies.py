# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

Dependencies are used to:
- Get database sessions
- Get the authenticated user
- Check RBAC permissions before a service is constructed
- Get service instances

Example:
    @router.post("/{result_id}/approve")
    async def approve_result(
        result_id: str,
        current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_APPROVE)),
        service: ResultLifecycleService = Depends(get_result_service),
    ):
        ...
"""

import logging
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from schooldesk.api.middleware.auth import CurrentUser, get_current_user
from schooldesk.core.config import get_settings
from schooldesk.core.rbac import RBACGate
from schooldesk.domains.results.service import ResultLifecycleService
from schooldesk.infrastructure.database.connection import (
    close_database,
    get_session,
    init_database,
)
from schooldesk.infrastructure.notifications import get_result_notifier

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Initialize the database connection pool."""
    await init_database(get_settings())


async def close_db() -> None:
    """Close the database connection pool."""
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session.

    Yields:
        AsyncSession committed on success and rolled back on error.
    """
    async with get_session() as session:
        yield session


def require_auth(request: Request) -> CurrentUser:
    """Require authenticated user.

    Args:
        request: HTTP request.

    Returns:
        CurrentUser.

    Raises:
        HTTPException: If not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_rbac_gate(request: Request) -> RBACGate:
    """Get the RBAC gate built at application start.

    Args:
        request: HTTP request.

    Returns:
        RBACGate stored on app.state.

    Raises:
        HTTPException: If the application was created without a gate.
    """
    gate = getattr(request.app.state, "rbac_gate", None)
    if gate is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Access control policy not loaded",
        )
    return gate


class RequirePermission:
    """Dependency for requiring RBAC permissions.

    Example:
        @router.get("/pending")
        async def list_pending(
            user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_VIEW)),
        ):
            ...
    """

    def __init__(self, *permissions: str, require_all: bool = False) -> None:
        """Initialize permission requirement.

        Args:
            permissions: Required permission tokens.
            require_all: If True, require all permissions. If False, any.
        """
        self.permissions = permissions
        self.require_all = require_all

    def __call__(self, request: Request) -> CurrentUser:
        """Check permissions and return user.

        Args:
            request: HTTP request.

        Returns:
            CurrentUser.

        Raises:
            HTTPException: If not authenticated or missing permissions.
        """
        user = require_auth(request)
        gate = get_rbac_gate(request)

        if self.require_all:
            if not gate.has_all_permissions(user.role, self.permissions):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Missing permissions: {', '.join(self.permissions)}",
                )
        else:
            if not gate.has_any_permission(user.role, self.permissions):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Requires one of: {', '.join(self.permissions)}",
                )

        return user


def get_result_service(
    db: AsyncSession = Depends(get_db),
    gate: RBACGate = Depends(get_rbac_gate),
) -> ResultLifecycleService:
    """Get result lifecycle service instance.

    Args:
        db: Database session.
        gate: RBAC gate.

    Returns:
        Configured ResultLifecycleService.
    """
    settings = get_settings()
    return ResultLifecycleService(
        db=db,
        gate=gate,
        settings=settings.results,
        notifier=get_result_notifier(settings),
    )
