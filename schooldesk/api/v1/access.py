# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access check endpoints for the front end.

- GET /me - Caller's role, permissions, accessible routes and dashboard
- GET /routes?path= - Whether the caller may open a route
"""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from schooldesk.api.dependencies import get_rbac_gate, require_auth
from schooldesk.api.middleware.auth import CurrentUser
from schooldesk.core.rbac import RBACGate

logger = logging.getLogger(__name__)

router = APIRouter()


class AccessProfileResponse(BaseModel):
    """What the caller's role may do and open."""

    user_id: str
    role: str | None
    permissions: list[str]
    routes: list[str]
    dashboard: str


class RouteAccessResponse(BaseModel):
    """Route decision for the caller."""

    path: str
    allowed: bool
    redirect_to: str | None = None


@router.get("/me", response_model=AccessProfileResponse)
async def get_access_profile(
    current_user: CurrentUser = Depends(require_auth),
    gate: RBACGate = Depends(get_rbac_gate),
) -> AccessProfileResponse:
    """Get the caller's permissions, routes and dashboard."""
    role = current_user.resolved_role
    return AccessProfileResponse(
        user_id=current_user.id,
        role=role.value if role else None,
        permissions=sorted(gate.permissions_for(current_user.role)),
        routes=gate.accessible_routes(current_user.role),
        dashboard=gate.dashboard_route(current_user.role),
    )


@router.get("/routes", response_model=RouteAccessResponse)
async def check_route_access(
    path: str = Query(..., min_length=1),
    current_user: CurrentUser = Depends(require_auth),
    gate: RBACGate = Depends(get_rbac_gate),
) -> RouteAccessResponse:
    """Check whether the caller may open a front-end route.

    Denied routes carry the caller's dashboard as redirect target.
    """
    allowed = gate.can_access_route(current_user.role, path)
    if not allowed:
        logger.debug("Route %s denied for role %s", path, current_user.role)
    return RouteAccessResponse(
        path=path,
        allowed=allowed,
        redirect_to=None if allowed else gate.dashboard_route(current_user.role),
    )
