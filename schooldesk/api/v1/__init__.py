# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    results: Exam result workflow endpoints.
    access: Role, permission and route checks for the front end.
"""

from fastapi import APIRouter

from schooldesk.api.v1 import access, results

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(results.router, prefix="/results", tags=["Results"])
router.include_router(access.router, prefix="/access", tags=["Access"])

__all__ = ["router"]
