# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database seed data for local development."""

from schooldesk.infrastructure.database.seeds.school import seed_school_database

__all__ = ["seed_school_database"]
