# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SchoolDesk - school management backend.

Core packages:
- core.rbac: Role-based access control gate and policy
- domains.results: Exam result approval workflow
- api: FastAPI application and routers
- infrastructure: Database, migrations and notification channels
"""

__version__ = "1.0.0"
