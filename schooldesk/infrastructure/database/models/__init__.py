# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models.

Importing this package registers every table on Base.metadata, which
Alembic and the maintenance script rely on.
"""

from schooldesk.infrastructure.database.models.base import (
    Base,
    SoftDeleteMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    new_id,
)
from schooldesk.infrastructure.database.models.exam_result import (
    RESULT_STATUSES,
    ExamResult,
    ExamResultEvent,
)
from schooldesk.infrastructure.database.models.school import (
    Classroom,
    Exam,
    ParentStudent,
    Student,
    Subject,
    User,
    classroom_subjects,
)

__all__ = [
    "Base",
    "SoftDeleteMixin",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "new_id",
    "RESULT_STATUSES",
    "Classroom",
    "Exam",
    "ExamResult",
    "ExamResultEvent",
    "ParentStudent",
    "Student",
    "Subject",
    "User",
    "classroom_subjects",
]
