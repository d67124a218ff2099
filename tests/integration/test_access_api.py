# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the access check endpoints."""

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

Headers = Callable[..., dict[str, str]]


class TestAccessProfile:
    """Tests for GET /api/v1/access/me."""

    def test_teacher_profile(self, client: TestClient, auth_headers: Headers) -> None:
        response = client.get(
            "/api/v1/access/me",
            headers=auth_headers("teacher", user_id="teacher-1"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == "teacher-1"
        assert body["role"] == "teacher"
        assert body["dashboard"] == "/classrooms"
        assert "student:results:create" in body["permissions"]
        assert "student:results:approve" not in body["permissions"]
        assert "/results" in body["routes"]
        assert "/login" in body["routes"]
        assert "/admin" not in body["routes"]
        assert body["permissions"] == sorted(body["permissions"])

    def test_admin_profile_has_everything(
        self,
        client: TestClient,
        auth_headers: Headers,
    ) -> None:
        body = client.get("/api/v1/access/me", headers=auth_headers("admin")).json()

        assert body["dashboard"] == "/admin"
        assert "student:results:publish" in body["permissions"]
        assert "/children" in body["routes"]

    def test_unknown_role_gets_nothing(
        self,
        client: TestClient,
        auth_headers: Headers,
    ) -> None:
        body = client.get("/api/v1/access/me", headers=auth_headers("janitor")).json()

        assert body["role"] is None
        assert body["permissions"] == []
        assert body["routes"] == ["/login"]
        assert body["dashboard"] == "/"

    def test_requires_authentication(self, client: TestClient) -> None:
        assert client.get("/api/v1/access/me").status_code == 401


class TestRouteAccess:
    """Tests for GET /api/v1/access/routes."""

    @pytest.mark.parametrize(
        "role, path, allowed, redirect_to",
        [
            ("teacher", "/results", True, None),
            ("teacher", "/results-approval", False, "/classrooms"),
            ("head-teacher", "/results-approval", True, None),
            ("parent", "/children", True, None),
            ("parent", "/fees", False, "/children"),
            ("student", "/login", True, None),
            ("student", "/not-a-route", False, "/exams"),
            ("admin", "/not-a-route", True, None),
        ],
    )
    def test_route_decision(
        self,
        client: TestClient,
        auth_headers: Headers,
        role: str,
        path: str,
        allowed: bool,
        redirect_to: str | None,
    ) -> None:
        response = client.get(
            "/api/v1/access/routes",
            params={"path": path},
            headers=auth_headers(role),
        )

        assert response.status_code == 200
        assert response.json() == {"path": path, "allowed": allowed, "redirect_to": redirect_to}

    def test_path_is_required(self, client: TestClient, auth_headers: Headers) -> None:
        response = client.get("/api/v1/access/routes", headers=auth_headers("teacher"))

        assert response.status_code == 422
