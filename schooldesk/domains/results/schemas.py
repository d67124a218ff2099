# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for the exam result workflow.

Numeric range checks live in the service so that every caller, HTTP or
not, gets the same InvalidInputError.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ResultCreateRequest(BaseModel):
    """Request to enter marks for one student, exam and subject."""

    exam_id: str
    student_id: str
    classroom_id: str
    subject_id: str
    score: float
    max_marks: float | None = None
    remarks: str | None = None
    status: Literal["draft", "submitted"] = "submitted"


class ResultUpdateRequest(BaseModel):
    """Request to correct marks on a draft or submitted result.

    Omitted fields keep their stored value.
    """

    score: float | None = None
    max_marks: float | None = None
    remarks: str | None = None


class ResubmitRequest(BaseModel):
    """Corrected marks for a rejected result."""

    score: float
    max_marks: float | None = None
    remarks: str | None = None


class RejectRequest(BaseModel):
    """Request to reject a submitted result."""

    reason: str = ""


class InitializeRequest(BaseModel):
    """Request to create draft results for a whole classroom."""

    exam_id: str
    classroom_id: str


class BatchResultRow(BaseModel):
    """One student's marks within a batch entry."""

    student_id: str | None = None
    score: float | None = None
    remarks: str | None = None


class BatchResultRequest(BaseModel):
    """Marks for many students of one exam, classroom and subject.

    New rows are stored as drafts. Rows whose student already has a draft
    or submitted result update it in place.
    """

    exam_id: str
    classroom_id: str
    subject_id: str
    max_marks: float | None = None
    results: list[BatchResultRow]


class PendingFilter(BaseModel):
    """Filter for the review queue."""

    status: Literal["draft", "submitted", "approved", "published", "rejected"] = "submitted"
    classroom_id: str | None = None
    exam_id: str | None = None
    limit: int | None = Field(default=None, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class ResultResponse(BaseModel):
    """Exam result as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    exam_id: str
    student_id: str
    classroom_id: str
    subject_id: str
    score: float
    max_marks: float
    percentage: float
    grade: str
    remarks: str | None = None
    status: str
    revision: int
    last_submitted_at: datetime | None = None
    submitted_by: str | None = None
    submitted_at: datetime | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    published_by: str | None = None
    published_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    last_rejected_by: str | None = None
    last_rejected_at: datetime | None = None
    last_rejection_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ResultListResponse(BaseModel):
    """Response for result list endpoints."""

    results: list[ResultResponse]
    total: int


class BatchRowError(BaseModel):
    """Why one batch row was not stored."""

    index: int
    student_id: str | None = None
    error: str
    detail: str


class BatchResultResponse(BaseModel):
    """Outcome of a batch entry; failed rows do not stop the others."""

    created: int
    updated: int
    errors: list[BatchRowError]
    results: list[ResultResponse]


class ResultEventResponse(BaseModel):
    """One entry of a result's audit trail."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    result_id: str
    action: str
    actor_id: str | None = None
    actor_role: str | None = None
    from_status: str | None = None
    to_status: str | None = None
    reason: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class InitializeResponse(BaseModel):
    """Outcome of a bulk draft initialization."""

    exam_id: str
    classroom_id: str
    created: int
    existing: int


class ExamStatisticsResponse(BaseModel):
    """Aggregate figures over published results of an exam."""

    exam_id: str
    classroom_id: str | None = None
    total_results: int
    average_percentage: float | None = None
    highest_percentage: float | None = None
    lowest_percentage: float | None = None
    pass_count: int
    pass_rate: float | None = None
    grade_distribution: dict[str, int] = Field(default_factory=dict)
