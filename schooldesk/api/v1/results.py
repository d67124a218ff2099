# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam result API endpoints.

This module provides endpoints for the exam result workflow:
- POST / - Enter marks (submitted, or draft on request)
- POST /initialize - Create drafts for a whole classroom
- POST /batch - Enter marks for many students of one subject
- GET /pending - Review queue, oldest submission first
- GET /student/{student_id} - A student's results
- GET /classroom/{classroom_id}/exam/{exam_id} - A classroom's results for one exam
- GET /exams/{exam_id}/statistics - Aggregates over published results
- GET /{result_id} - Result details
- PUT /{result_id} - Correct marks on a draft or submitted result
- DELETE /{result_id} - Delete a draft
- GET /{result_id}/history - Audit trail
- POST /{result_id}/submit - Submit a draft
- POST /{result_id}/approve - Approve a submitted result
- POST /{result_id}/reject - Reject a submitted result
- POST /{result_id}/publish - Publish an approved result
- POST /{result_id}/resubmit - Resubmit a rejected result

Each endpoint checks its RBAC permission before the service is built.
Workflow errors are rendered by the handlers in schooldesk.api.errors.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from schooldesk.api.dependencies import RequirePermission, get_result_service
from schooldesk.api.middleware.auth import CurrentUser
from schooldesk.core.rbac import Permissions
from schooldesk.domains.results.schemas import (
    BatchResultRequest,
    BatchResultResponse,
    ExamStatisticsResponse,
    InitializeRequest,
    InitializeResponse,
    PendingFilter,
    RejectRequest,
    ResubmitRequest,
    ResultCreateRequest,
    ResultEventResponse,
    ResultListResponse,
    ResultResponse,
    ResultUpdateRequest,
)
from schooldesk.domains.results.service import ResultLifecycleService

logger = logging.getLogger(__name__)

router = APIRouter()

StatusFilter = Literal["draft", "submitted", "approved", "published", "rejected"]


@router.post(
    "",
    response_model=ResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enter exam result",
)
async def create_result(
    data: ResultCreateRequest,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_CREATE)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultResponse:
    """Enter marks for one student, exam and subject."""
    return await service.create_result(data, current_user.as_actor())


@router.post(
    "/initialize",
    response_model=InitializeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Initialize draft results for a classroom",
)
async def initialize_results(
    data: InitializeRequest,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_CREATE)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> InitializeResponse:
    """Create a draft for every student and subject of a classroom."""
    return await service.initialize_results(data, current_user.as_actor())


@router.post(
    "/batch",
    response_model=BatchResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enter results in bulk",
)
async def batch_enter_results(
    data: BatchResultRequest,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_CREATE)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> BatchResultResponse:
    """Enter marks for many students; failed rows are reported per index."""
    return await service.batch_enter_results(data, current_user.as_actor())


@router.get(
    "/pending",
    response_model=ResultListResponse,
    summary="List results awaiting review",
)
async def list_pending(
    status_filter: StatusFilter = Query("submitted", alias="status"),
    classroom_id: str | None = Query(None),
    exam_id: str | None = Query(None),
    limit: int | None = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_VIEW)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultListResponse:
    """List results in a status, oldest submission first."""
    filters = PendingFilter(
        status=status_filter,
        classroom_id=classroom_id,
        exam_id=exam_id,
        limit=limit,
        offset=offset,
    )
    return await service.get_pending(filters, current_user.as_actor())


@router.get(
    "/student/{student_id}",
    response_model=ResultListResponse,
    summary="List a student's results",
)
async def list_student_results(
    student_id: str,
    include_all: bool = Query(False, description="Include unpublished results"),
    current_user: CurrentUser = Depends(
        RequirePermission(Permissions.RESULTS_VIEW, Permissions.RESULTS_VIEW_SELF)
    ),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultListResponse:
    """List a student's results. Students and parents see published results only."""
    return await service.list_student_results(
        student_id,
        current_user.as_actor(),
        include_all=include_all,
    )


@router.get(
    "/classroom/{classroom_id}/exam/{exam_id}",
    response_model=ResultListResponse,
    summary="List a classroom's results for an exam",
)
async def list_classroom_exam_results(
    classroom_id: str,
    exam_id: str,
    status_filter: StatusFilter | None = Query(None, alias="status"),
    current_user: CurrentUser = Depends(
        RequirePermission(Permissions.RESULTS_VIEW, Permissions.RESULTS_CREATE)
    ),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultListResponse:
    """List results of one classroom and exam in every status."""
    return await service.list_classroom_exam_results(
        classroom_id,
        exam_id,
        current_user.as_actor(),
        status=status_filter,
    )


@router.get(
    "/exams/{exam_id}/statistics",
    response_model=ExamStatisticsResponse,
    summary="Exam statistics",
)
async def exam_statistics(
    exam_id: str,
    classroom_id: str | None = Query(None),
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_VIEW)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ExamStatisticsResponse:
    """Aggregate published results of an exam."""
    return await service.exam_statistics(
        exam_id,
        current_user.as_actor(),
        classroom_id=classroom_id,
    )


@router.get(
    "/{result_id}",
    response_model=ResultResponse,
    summary="Get result details",
)
async def get_result(
    result_id: str,
    current_user: CurrentUser = Depends(
        RequirePermission(
            Permissions.RESULTS_VIEW,
            Permissions.RESULTS_VIEW_SELF,
            Permissions.RESULTS_CREATE,
        )
    ),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultResponse:
    """Get a result by ID."""
    return await service.get_result(result_id, current_user.as_actor())


@router.put(
    "/{result_id}",
    response_model=ResultResponse,
    summary="Update result marks",
)
async def update_result(
    result_id: str,
    data: ResultUpdateRequest,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_UPDATE)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultResponse:
    """Correct marks on a draft or submitted result."""
    return await service.update_result(result_id, data, current_user.as_actor())


@router.delete(
    "/{result_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete draft result",
)
async def delete_result(
    result_id: str,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_DELETE)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> None:
    """Soft-delete a draft result."""
    await service.delete_result(result_id, current_user.as_actor())


@router.get(
    "/{result_id}/history",
    response_model=list[ResultEventResponse],
    summary="Get result audit trail",
)
async def get_history(
    result_id: str,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_VIEW)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> list[ResultEventResponse]:
    """Get every recorded operation on a result."""
    return await service.get_history(result_id, current_user.as_actor())


@router.post(
    "/{result_id}/submit",
    response_model=ResultResponse,
    summary="Submit draft result",
)
async def submit_result(
    result_id: str,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_CREATE)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultResponse:
    """Submit a draft for review."""
    return await service.submit(result_id, current_user.as_actor())


@router.post(
    "/{result_id}/approve",
    response_model=ResultResponse,
    summary="Approve result",
)
async def approve_result(
    result_id: str,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_APPROVE)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultResponse:
    """Approve a submitted result."""
    return await service.approve(result_id, current_user.as_actor())


@router.post(
    "/{result_id}/reject",
    response_model=ResultResponse,
    summary="Reject result",
)
async def reject_result(
    result_id: str,
    data: RejectRequest,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_APPROVE)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultResponse:
    """Reject a submitted result with a reason."""
    return await service.reject(result_id, current_user.as_actor(), data.reason)


@router.post(
    "/{result_id}/publish",
    response_model=ResultResponse,
    summary="Publish result",
)
async def publish_result(
    result_id: str,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_PUBLISH)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultResponse:
    """Publish an approved result to the student and parents."""
    return await service.publish(result_id, current_user.as_actor())


@router.post(
    "/{result_id}/resubmit",
    response_model=ResultResponse,
    summary="Resubmit rejected result",
)
async def resubmit_result(
    result_id: str,
    data: ResubmitRequest,
    current_user: CurrentUser = Depends(RequirePermission(Permissions.RESULTS_UPDATE)),
    service: ResultLifecycleService = Depends(get_result_service),
) -> ResultResponse:
    """Resubmit corrected marks for a rejected result."""
    return await service.resubmit(result_id, data, current_user.as_actor())
