# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the exam result endpoints.

Tests routing, permission dependencies, request parsing and the error
mapping, with the result service mocked.
"""

from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from schooldesk.domains.results import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    TerminalStateError,
)
from schooldesk.domains.results.schemas import (
    BatchResultResponse,
    PendingFilter,
    ResultListResponse,
    ResultResponse,
)

RESULT_ID = "9b2f1c3e-5a6d-4e7f-8a9b-0c1d2e3f4a5b"

Headers = Callable[..., dict[str, str]]

CREATE_BODY = {
    "exam_id": "exam-1",
    "student_id": "student-1",
    "classroom_id": "classroom-1",
    "subject_id": "subject-math",
    "score": 68,
    "max_marks": 80,
}


class TestAuthentication:
    """Tests for unauthenticated access."""

    def test_missing_token(self, client: TestClient, mock_service: AsyncMock) -> None:
        response = client.post(f"/api/v1/results/{RESULT_ID}/approve")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        mock_service.approve.assert_not_called()

    def test_garbage_token(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/results/pending",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401


class TestPermissions:
    """Tests for the permission dependency in front of each route."""

    def test_teacher_cannot_approve(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
    ) -> None:
        response = client.post(
            f"/api/v1/results/{RESULT_ID}/approve",
            headers=auth_headers("teacher"),
        )

        assert response.status_code == 403
        mock_service.approve.assert_not_called()

    def test_teacher_cannot_view_pending(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
    ) -> None:
        response = client.get("/api/v1/results/pending", headers=auth_headers("teacher"))

        assert response.status_code == 403
        mock_service.get_pending.assert_not_called()

    def test_unknown_role_is_forbidden(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
    ) -> None:
        response = client.post(
            "/api/v1/results",
            json=CREATE_BODY,
            headers=auth_headers("janitor"),
        )

        assert response.status_code == 403
        mock_service.create_result.assert_not_called()

    @pytest.mark.parametrize("role", ["student", "parent", "teacher"])
    def test_readers_reach_get(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
        result_response: ResultResponse,
        role: str,
    ) -> None:
        mock_service.get_result.return_value = result_response

        response = client.get(f"/api/v1/results/{RESULT_ID}", headers=auth_headers(role))

        assert response.status_code == 200
        assert response.json()["id"] == RESULT_ID

    def test_accounts_cannot_view(
        self,
        client: TestClient,
        auth_headers: Headers,
    ) -> None:
        response = client.get(f"/api/v1/results/{RESULT_ID}", headers=auth_headers("accounts"))

        assert response.status_code == 403

    def test_accounts_cannot_list_classroom(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
    ) -> None:
        response = client.get(
            "/api/v1/results/classroom/classroom-1/exam/exam-1",
            headers=auth_headers("accounts"),
        )

        assert response.status_code == 403
        mock_service.list_classroom_exam_results.assert_not_called()


class TestEndpoints:
    """Tests for request parsing and responses."""

    def test_create_result(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
        result_response: ResultResponse,
    ) -> None:
        mock_service.create_result.return_value = result_response

        response = client.post(
            "/api/v1/results",
            json=CREATE_BODY,
            headers=auth_headers("teacher", user_id="user-7"),
        )

        assert response.status_code == 201
        assert response.json()["grade"] == "A"
        data, actor = mock_service.create_result.await_args.args
        assert data.score == 68.0
        assert data.status == "submitted"
        assert (actor.id, actor.role) == ("user-7", "teacher")

    def test_create_rejects_unknown_status(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
    ) -> None:
        response = client.post(
            "/api/v1/results",
            json={**CREATE_BODY, "status": "published"},
            headers=auth_headers("teacher"),
        )

        assert response.status_code == 422
        mock_service.create_result.assert_not_called()

    def test_pending_query_parameters(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
    ) -> None:
        mock_service.get_pending.return_value = ResultListResponse(results=[], total=0)

        response = client.get(
            "/api/v1/results/pending",
            params={"status": "approved", "classroom_id": "classroom-1", "limit": 10},
            headers=auth_headers("head-teacher"),
        )

        assert response.status_code == 200
        assert response.json() == {"results": [], "total": 0}
        filters = mock_service.get_pending.await_args.args[0]
        assert filters == PendingFilter(status="approved", classroom_id="classroom-1", limit=10)

    def test_pending_limit_bounds(self, client: TestClient, auth_headers: Headers) -> None:
        response = client.get(
            "/api/v1/results/pending",
            params={"limit": 0},
            headers=auth_headers("head-teacher"),
        )

        assert response.status_code == 422

    def test_reject_passes_reason(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
        result_response: ResultResponse,
    ) -> None:
        mock_service.reject.return_value = result_response.model_copy(
            update={"status": "rejected", "rejection_reason": "Recount"}
        )

        response = client.post(
            f"/api/v1/results/{RESULT_ID}/reject",
            json={"reason": "Recount"},
            headers=auth_headers("head-teacher"),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        result_id, _, reason = mock_service.reject.await_args.args
        assert (result_id, reason) == (RESULT_ID, "Recount")

    def test_resubmit(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
        result_response: ResultResponse,
    ) -> None:
        mock_service.resubmit.return_value = result_response.model_copy(update={"revision": 2})

        response = client.post(
            f"/api/v1/results/{RESULT_ID}/resubmit",
            json={"score": 70, "remarks": "Recounted"},
            headers=auth_headers("teacher"),
        )

        assert response.status_code == 200
        assert response.json()["revision"] == 2
        _, data, _ = mock_service.resubmit.await_args.args
        assert data.score == 70.0

    def test_delete_returns_no_content(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
    ) -> None:
        mock_service.delete_result.return_value = None

        response = client.delete(f"/api/v1/results/{RESULT_ID}", headers=auth_headers("teacher"))

        assert response.status_code == 204
        assert response.content == b""

    def test_publish(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
        result_response: ResultResponse,
    ) -> None:
        mock_service.publish.return_value = result_response.model_copy(
            update={"status": "published"}
        )

        response = client.post(
            f"/api/v1/results/{RESULT_ID}/publish",
            headers=auth_headers("admin"),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "published"

    def test_batch_entry(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
        result_response: ResultResponse,
    ) -> None:
        mock_service.batch_enter_results.return_value = BatchResultResponse(
            created=1,
            updated=0,
            errors=[
                {
                    "index": 1,
                    "student_id": "student-2",
                    "error": "conflict",
                    "detail": "Result already exists with status 'approved'",
                }
            ],
            results=[result_response],
        )

        response = client.post(
            "/api/v1/results/batch",
            json={
                "exam_id": "exam-1",
                "classroom_id": "classroom-1",
                "subject_id": "subject-math",
                "max_marks": 80,
                "results": [
                    {"student_id": "student-1", "score": 68},
                    {"student_id": "student-2", "score": 50, "remarks": "Late"},
                ],
            },
            headers=auth_headers("teacher", user_id="user-7"),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["created"] == 1
        assert body["errors"][0]["error"] == "conflict"
        data, actor = mock_service.batch_enter_results.await_args.args
        assert [row.student_id for row in data.results] == ["student-1", "student-2"]
        assert data.results[1].remarks == "Late"
        assert actor.id == "user-7"

    def test_classroom_exam_listing(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
        result_response: ResultResponse,
    ) -> None:
        mock_service.list_classroom_exam_results.return_value = ResultListResponse(
            results=[result_response],
            total=1,
        )

        response = client.get(
            "/api/v1/results/classroom/classroom-1/exam/exam-1",
            params={"status": "rejected"},
            headers=auth_headers("teacher"),
        )

        assert response.status_code == 200
        assert response.json()["total"] == 1
        args = mock_service.list_classroom_exam_results.await_args
        assert (args.args[0], args.args[1]) == ("classroom-1", "exam-1")
        assert args.kwargs["status"] == "rejected"


class TestErrorMapping:
    """Tests for rendering workflow errors."""

    @pytest.mark.parametrize(
        "error, status_code, kind",
        [
            (InvalidInputError("A rejection reason is required"), 400, "invalid_input"),
            (ForbiddenError("Not allowed to approve this result"), 403, "forbidden"),
            (NotFoundError("Result x not found"), 404, "not_found"),
            (ConflictError("A result already exists"), 409, "conflict"),
            (
                InvalidTransitionError("Cannot approve a result in status 'draft'", "draft"),
                409,
                "invalid_transition",
            ),
            (TerminalStateError("Result x is published"), 409, "terminal_state"),
        ],
    )
    def test_error_body(
        self,
        client: TestClient,
        auth_headers: Headers,
        mock_service: AsyncMock,
        error: Exception,
        status_code: int,
        kind: str,
    ) -> None:
        mock_service.approve.side_effect = error

        response = client.post(
            f"/api/v1/results/{RESULT_ID}/approve",
            headers=auth_headers("head-teacher"),
        )

        assert response.status_code == status_code
        assert response.json() == {"error": kind, "detail": error.message}
