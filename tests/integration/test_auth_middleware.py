# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the authentication middleware.

Tests the middleware in isolation on a bare FastAPI app.
"""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import SecretStr

from schooldesk.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user
from schooldesk.domains.auth.jwt import JWTManager, TokenPayload


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


@pytest.fixture
def app(jwt_settings: MagicMock):
    """Bare app with AuthMiddleware and an endpoint echoing the user."""
    with patch("schooldesk.api.middleware.auth.get_settings") as mock_settings:
        mock_settings.return_value.jwt = jwt_settings

        application = FastAPI()
        application.add_middleware(AuthMiddleware)

        @application.get("/health")
        async def health() -> dict:
            return {"status": "ok"}

        @application.get("/api/v1/whoami")
        async def whoami(request: Request) -> dict:
            user = get_current_user(request)
            if user is None:
                return {"user_id": None}
            return {"user_id": user.id, "role": user.role, "admin": user.is_admin}

        # The middleware stack is built on the first request
        client = TestClient(application)
        client.get("/health")
        yield application


class TestAuthMiddleware:
    """Tests for AuthMiddleware."""

    def test_public_path_bypasses_auth(self, app: FastAPI) -> None:
        response = TestClient(app).get("/health")

        assert response.status_code == 200

    def test_valid_token_sets_user(self, app: FastAPI, jwt_manager: JWTManager) -> None:
        user_id = str(uuid4())
        token = jwt_manager.create_access_token(user_id=user_id, role="admin")

        response = TestClient(app).get(
            "/api/v1/whoami",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.json() == {"user_id": user_id, "role": "admin", "admin": True}

    def test_missing_token_leaves_user_empty(self, app: FastAPI) -> None:
        response = TestClient(app).get("/api/v1/whoami")

        assert response.status_code == 200
        assert response.json() == {"user_id": None}

    @pytest.mark.parametrize(
        "header",
        ["Bearer invalid.token.here", "Basic dXNlcjpwYXNz", "Bearer", "token-only"],
    )
    def test_bad_header_leaves_user_empty(self, app: FastAPI, header: str) -> None:
        response = TestClient(app).get("/api/v1/whoami", headers={"Authorization": header})

        assert response.json() == {"user_id": None}

    def test_expired_token_leaves_user_empty(
        self,
        app: FastAPI,
        jwt_settings: MagicMock,
    ) -> None:
        jwt_settings.access_token_expire_minutes = -5
        token = JWTManager(jwt_settings).create_access_token("u1", "teacher")

        response = TestClient(app).get(
            "/api/v1/whoami",
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.json() == {"user_id": None}


class TestCurrentUser:
    """Tests for CurrentUser."""

    def test_as_actor(self) -> None:
        payload = TokenPayload(sub="u1", role="Head_Teacher", exp=1, iat=0, jti="j")
        user = CurrentUser(payload)

        actor = user.as_actor()

        assert (actor.id, actor.role) == ("u1", "Head_Teacher")
        assert actor.resolved_role is not None
        assert actor.resolved_role.value == "head-teacher"
        assert user.is_admin is False

    def test_missing_role(self) -> None:
        user = CurrentUser(TokenPayload(sub="u1", exp=1, iat=0, jti="j"))

        assert user.as_actor().role == ""
        assert user.resolved_role is None
