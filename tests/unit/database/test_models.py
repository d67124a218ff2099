# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database models.

Tests table definitions, constraints and helper properties.
"""

from sqlalchemy import CheckConstraint, Index
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex

from schooldesk.infrastructure.database.models import (
    RESULT_STATUSES,
    Base,
    Classroom,
    ExamResult,
    ExamResultEvent,
    Student,
    new_id,
)
from schooldesk.utils.datetime import utc_now


class TestMetadata:
    """Tests for registered tables."""

    def test_all_tables_registered(self) -> None:
        assert set(Base.metadata.tables) == {
            "users",
            "classrooms",
            "subjects",
            "classroom_subjects",
            "students",
            "parent_students",
            "exams",
            "exam_results",
            "exam_result_events",
        }

    def test_new_id_is_uuid_string(self) -> None:
        value = new_id()

        assert isinstance(value, str)
        assert len(value) == 36


class TestExamResult:
    """Tests for the exam_results table."""

    def _index(self, name: str) -> Index:
        return next(i for i in ExamResult.__table__.indexes if i.name == name)

    def test_identity_index_is_partial_unique(self) -> None:
        index = self._index("uq_exam_results_identity")

        assert index.unique
        assert [c.name for c in index.columns] == ["student_id", "exam_id", "subject_id"]
        ddl = str(CreateIndex(index).compile(dialect=postgresql.dialect()))
        assert "WHERE deleted_at IS NULL" in ddl

    def test_review_queue_index(self) -> None:
        index = self._index("ix_exam_results_review_queue")

        assert [c.name for c in index.columns] == ["status", "last_submitted_at"]

    def test_status_constraint_lists_every_status(self) -> None:
        constraint = next(
            c
            for c in ExamResult.__table__.constraints
            if isinstance(c, CheckConstraint) and c.name == "ck_exam_results_status"
        )

        for status in RESULT_STATUSES:
            assert f"'{status}'" in str(constraint.sqltext)

    def test_soft_delete_property(self) -> None:
        result = ExamResult(id=new_id(), status="draft")
        assert result.is_deleted is False

        result.deleted_at = utc_now()
        assert result.is_deleted is True

    def test_event_table_has_no_soft_delete(self) -> None:
        assert "deleted_at" not in ExamResultEvent.__table__.columns


class TestSchoolModels:
    """Tests for school reference models."""

    def test_student_full_name(self) -> None:
        student = Student(first_name="Lena", last_name="Okafor")

        assert student.full_name == "Lena Okafor"

    def test_classroom_subjects_relationship(self) -> None:
        relationship = Classroom.__mapper__.relationships["subjects"]

        assert relationship.secondary.name == "classroom_subjects"
        assert relationship.lazy == "selectin"
