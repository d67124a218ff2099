# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam result models.

ExamResult holds the current state of one (student, exam, subject) record.
ExamResultEvent is the append-only trail of every state-changing operation
applied to it.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from schooldesk.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from schooldesk.utils.datetime import utc_now

# Mirrors ResultStatus in schooldesk.domains.results.status
RESULT_STATUSES = ("draft", "submitted", "approved", "published", "rejected")
_STATUS_VALUES = ", ".join(f"'{s}'" for s in RESULT_STATUSES)


class ExamResult(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """One student's graded outcome for one subject within one exam."""

    __tablename__ = "exam_results"
    __table_args__ = (
        # One live record per identity; soft-deleted drafts do not count
        Index(
            "uq_exam_results_identity",
            "student_id",
            "exam_id",
            "subject_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
        ),
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_exam_results_status"),
        CheckConstraint("score >= 0", name="ck_exam_results_score"),
        CheckConstraint("max_marks > 0", name="ck_exam_results_max_marks"),
        Index("ix_exam_results_review_queue", "status", "last_submitted_at"),
        Index("ix_exam_results_exam_classroom", "exam_id", "classroom_id"),
    )

    exam_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    classroom_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classrooms.id", ondelete="CASCADE"),
        nullable=False,
    )
    subject_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
    )

    score: Mapped[float] = mapped_column(Float, nullable=False)
    max_marks: Mapped[float] = mapped_column(Float, nullable=False)
    percentage: Mapped[float] = mapped_column(Float, nullable=False)
    grade: Mapped[str] = mapped_column(String(2), nullable=False)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default="submitted",
        nullable=False,
    )
    revision: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    last_submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    submitted_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    published_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Most recent rejection; rejected_* above keep the first one
    last_rejected_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ExamResult {self.id} {self.status}>"


class ExamResultEvent(UUIDPrimaryKeyMixin, Base):
    """Append-only record of a state-changing operation on an exam result."""

    __tablename__ = "exam_result_events"
    __table_args__ = (Index("ix_exam_result_events_result", "result_id", "created_at"),)

    result_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("exam_results.id", ondelete="CASCADE"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    actor_role: Mapped[str | None] = mapped_column(String(20), nullable=True)
    from_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    to_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
