# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests
- Integration tests (HTTP layer with collaborators mocked)
"""

from collections.abc import Generator
from typing import Any

import pytest

from schooldesk.core.config import clear_settings_cache
from schooldesk.core.rbac import RBACGate, load_policy


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def clean_settings() -> Generator[None, None, None]:
    """Clear the settings cache before and after a test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# RBAC Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def rbac_gate() -> RBACGate:
    """RBAC gate over the packaged policy."""
    return RBACGate(load_policy())


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_policy_data() -> dict[str, Any]:
    """Provide a small policy document."""
    return {
        "roles": {
            "teacher": ["student:results:create"],
            "head-teacher": ["student:results:approve", "student:results:view"],
            "student": ["student:results:view:self"],
        },
        "routes": {
            "/login": [],
            "/results": ["teacher", "head-teacher"],
        },
        "dashboards": {
            "teacher": "/results",
        },
    }
