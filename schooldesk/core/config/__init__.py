# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for SchoolDesk.

Example:
    >>> from schooldesk.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from schooldesk.core.config.settings import (
    APISettings,
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    RBACSettings,
    ResultSettings,
    Settings,
    SMTPSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "APISettings",
    "CORSSettings",
    "DatabaseSettings",
    "JWTSettings",
    "RBACSettings",
    "ResultSettings",
    "SMTPSettings",
]
