# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School reference models.

Users, classrooms, subjects, students, parent links and exams. The result
workflow reads these to validate references when marks are entered and to
find notification recipients when results are published.
"""

from datetime import date

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    String,
    Table,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schooldesk.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)

classroom_subjects = Table(
    "classroom_subjects",
    Base.metadata,
    Column(
        "classroom_id",
        UUID(as_uuid=False),
        ForeignKey("classrooms.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "subject_id",
        UUID(as_uuid=False),
        ForeignKey("subjects.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Login identity with a single role."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Classroom(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A class/section of students."""

    __tablename__ = "classrooms"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    class_teacher_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    subjects: Mapped[list["Subject"]] = relationship(
        secondary=classroom_subjects,
        lazy="selectin",
    )


class Subject(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A taught subject."""

    __tablename__ = "subjects"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    teacher_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )


class Student(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """An enrolled student."""

    __tablename__ = "students"

    admission_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    classroom_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classrooms.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class ParentStudent(Base):
    """Link between a parent user and a student."""

    __tablename__ = "parent_students"

    parent_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="CASCADE"),
        primary_key=True,
    )


class Exam(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A scheduled exam."""

    __tablename__ = "exams"

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    exam_type: Mapped[str] = mapped_column(String(20), default="test", nullable=False)
    term: Mapped[str | None] = mapped_column(String(20), nullable=True)
    academic_year: Mapped[str | None] = mapped_column(String(9), nullable=True)
    exam_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_marks: Mapped[float | None] = mapped_column(Float, nullable=True)
    classroom_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classrooms.id", ondelete="SET NULL"),
        nullable=True,
    )
