# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for HTTP-level tests.

The application is built with create_app() and exercised through
TestClient without entering its lifespan, so no database is opened.
The result service is replaced with an AsyncMock.
"""

from collections.abc import Callable, Generator
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from schooldesk.api import create_app
from schooldesk.api.dependencies import get_result_service
from schooldesk.core.config import get_settings
from schooldesk.core.rbac import RBACGate
from schooldesk.domains.auth.jwt import JWTManager
from schooldesk.domains.results.schemas import ResultResponse
from schooldesk.utils.datetime import utc_now

RESULT_ID = "9b2f1c3e-5a6d-4e7f-8a9b-0c1d2e3f4a5b"


@pytest.fixture
def mock_service() -> AsyncMock:
    """Result service stand-in."""
    return AsyncMock()


@pytest.fixture
def app(
    clean_settings: None,
    rbac_gate: RBACGate,
    mock_service: AsyncMock,
) -> Generator[FastAPI, None, None]:
    """Application wired to the mock result service."""
    application = create_app(rbac_gate)
    application.dependency_overrides[get_result_service] = lambda: mock_service
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_headers(clean_settings: None) -> Callable[..., dict[str, str]]:
    """Build an Authorization header for a role."""
    manager = JWTManager(get_settings().jwt)

    def _headers(role: str, user_id: str = "11111111-1111-1111-1111-111111111111") -> dict:
        token = manager.create_access_token(user_id=user_id, role=role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def result_response() -> ResultResponse:
    """A submitted result as returned by the service."""
    now = utc_now()
    return ResultResponse(
        id=RESULT_ID,
        exam_id="exam-1",
        student_id="student-1",
        classroom_id="classroom-1",
        subject_id="subject-math",
        score=68.0,
        max_marks=80.0,
        percentage=85.0,
        grade="A",
        status="submitted",
        revision=1,
        submitted_by="11111111-1111-1111-1111-111111111111",
        submitted_at=now,
        last_submitted_at=now,
        created_at=now,
        updated_at=now,
    )
