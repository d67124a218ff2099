# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial SchoolDesk schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-01-20

Creates the school reference tables and the exam result tables based on
the SQLAlchemy models in schooldesk/infrastructure/database/models/.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def _user_fk(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )


def upgrade() -> None:
    """Create SchoolDesk tables."""
    # ==========================================================================
    # 1. users
    # ==========================================================================
    op.create_table(
        "users",
        _id_column(),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # ==========================================================================
    # 2. classrooms and subjects
    # ==========================================================================
    op.create_table(
        "classrooms",
        _id_column(),
        sa.Column("code", sa.String(20), unique=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        _user_fk("class_teacher_id"),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "subjects",
        _id_column(),
        sa.Column("code", sa.String(20), unique=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        _user_fk("teacher_id"),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "classroom_subjects",
        sa.Column(
            "classroom_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("classrooms.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "subject_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("subjects.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    # ==========================================================================
    # 3. students and parent links
    # ==========================================================================
    op.create_table(
        "students",
        _id_column(),
        sa.Column("admission_number", sa.String(30), unique=True, nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        _user_fk("user_id"),
        sa.Column(
            "classroom_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("classrooms.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_students_user_id", "students", ["user_id"])
    op.create_index("ix_students_classroom_id", "students", ["classroom_id"])

    op.create_table(
        "parent_students",
        sa.Column(
            "parent_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "student_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    # ==========================================================================
    # 4. exams
    # ==========================================================================
    op.create_table(
        "exams",
        _id_column(),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("exam_type", sa.String(20), nullable=False, server_default="test"),
        sa.Column("term", sa.String(20), nullable=True),
        sa.Column("academic_year", sa.String(9), nullable=True),
        sa.Column("exam_date", sa.Date, nullable=True),
        sa.Column("total_marks", sa.Float, nullable=True),
        sa.Column(
            "classroom_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("classrooms.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ==========================================================================
    # 5. exam_results
    # ==========================================================================
    op.create_table(
        "exam_results",
        _id_column(),
        sa.Column(
            "exam_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("exams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "student_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("students.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "classroom_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("classrooms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "subject_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("subjects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("score", sa.Float, nullable=False),
        sa.Column("max_marks", sa.Float, nullable=False),
        sa.Column("percentage", sa.Float, nullable=False),
        sa.Column("grade", sa.String(2), nullable=False),
        sa.Column("remarks", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="submitted"),
        sa.Column("revision", sa.Integer, nullable=False, server_default="1"),
        sa.Column("last_submitted_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("submitted_by"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("approved_by"),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("published_by"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("rejected_by"),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        _user_fk("last_rejected_by"),
        sa.Column("last_rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_rejection_reason", sa.Text, nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'published', 'rejected')",
            name="ck_exam_results_status",
        ),
        sa.CheckConstraint("score >= 0", name="ck_exam_results_score"),
        sa.CheckConstraint("max_marks > 0", name="ck_exam_results_max_marks"),
    )
    op.create_index(
        "uq_exam_results_identity",
        "exam_results",
        ["student_id", "exam_id", "subject_id"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index("ix_exam_results_student_id", "exam_results", ["student_id"])
    op.create_index(
        "ix_exam_results_review_queue",
        "exam_results",
        ["status", "last_submitted_at"],
    )
    op.create_index(
        "ix_exam_results_exam_classroom",
        "exam_results",
        ["exam_id", "classroom_id"],
    )

    # ==========================================================================
    # 6. exam_result_events
    # ==========================================================================
    op.create_table(
        "exam_result_events",
        _id_column(),
        sa.Column(
            "result_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("exam_results.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("actor_role", sa.String(20), nullable=True),
        sa.Column("from_status", sa.String(20), nullable=True),
        sa.Column("to_status", sa.String(20), nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("details", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_exam_result_events_result",
        "exam_result_events",
        ["result_id", "created_at"],
    )


def downgrade() -> None:
    """Drop SchoolDesk tables."""
    op.drop_table("exam_result_events")
    op.drop_table("exam_results")
    op.drop_table("exams")
    op.drop_table("parent_students")
    op.drop_table("students")
    op.drop_table("classroom_subjects")
    op.drop_table("subjects")
    op.drop_table("classrooms")
    op.drop_table("users")
