# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for result workflow tests."""

from unittest.mock import AsyncMock

import pytest

from schooldesk.core.config.settings import ResultSettings
from schooldesk.core.rbac import RBACGate
from schooldesk.domains.results import Actor, ResultLifecycleService
from schooldesk.infrastructure.database.models import Classroom, Exam, Student, Subject

from result_fakes import (
    ADMIN_ID,
    HEAD_ID,
    OTHER_TEACHER_ID,
    PARENT_ID,
    STUDENT_USER_ID,
    TEACHER_ID,
    FakeResultRepository,
)

@pytest.fixture
def repo() -> FakeResultRepository:
    """Repository seeded with two Grade 7 classrooms."""
    repository = FakeResultRepository()

    math = Subject(id="subject-math", code="MATH", name="Mathematics", teacher_id=None)
    science = Subject(id="subject-sci", code="SCI", name="Science", teacher_id=OTHER_TEACHER_ID)
    classroom = Classroom(
        id="classroom-1",
        code="G7-A",
        name="Grade 7 A",
        class_teacher_id=TEACHER_ID,
        subjects=[math, science],
    )
    other_classroom = Classroom(
        id="classroom-2",
        code="G7-B",
        name="Grade 7 B",
        class_teacher_id=OTHER_TEACHER_ID,
        subjects=[],
    )
    repository.subjects = {s.id: s for s in (math, science)}
    repository.classrooms = {c.id: c for c in (classroom, other_classroom)}
    repository.students = {
        "student-1": Student(
            id="student-1",
            admission_number="G7-A-001",
            first_name="Lena",
            last_name="Okafor",
            email="lena@students.example.com",
            user_id=STUDENT_USER_ID,
            classroom_id="classroom-1",
        ),
        "student-2": Student(
            id="student-2",
            admission_number="G7-A-002",
            first_name="Marco",
            last_name="Silva",
            email=None,
            user_id=None,
            classroom_id="classroom-1",
        ),
    }
    repository.exams = {
        "exam-1": Exam(id="exam-1", name="Mid-term", total_marks=80.0, classroom_id="classroom-1"),
    }
    repository.parent_links = {(PARENT_ID, "student-1")}
    return repository

@pytest.fixture
def notifier() -> AsyncMock:
    """Publication notifier mock."""
    mock = AsyncMock()
    mock.notify_published = AsyncMock(return_value=[])
    return mock

@pytest.fixture
def service(
    repo: FakeResultRepository,
    rbac_gate: RBACGate,
    notifier: AsyncMock,
) -> ResultLifecycleService:
    """Lifecycle service over the fake repository."""
    return ResultLifecycleService(
        db=AsyncMock(),
        gate=rbac_gate,
        settings=ResultSettings(
            enforce_teacher_assignment=True,
            default_max_marks=100.0,
            pass_percentage=40.0,
        ),
        notifier=notifier,
        repository=repo,  # type: ignore[arg-type]
    )

@pytest.fixture
def teacher() -> Actor:
    return Actor(id=TEACHER_ID, role="teacher")

@pytest.fixture
def other_teacher() -> Actor:
    return Actor(id=OTHER_TEACHER_ID, role="teacher")

@pytest.fixture
def head_teacher() -> Actor:
    return Actor(id=HEAD_ID, role="head-teacher")

@pytest.fixture
def admin() -> Actor:
    return Actor(id=ADMIN_ID, role="admin")

@pytest.fixture
def parent() -> Actor:
    return Actor(id=PARENT_ID, role="parent")

@pytest.fixture
def student() -> Actor:
    return Actor(id=STUDENT_USER_ID, role="student")
