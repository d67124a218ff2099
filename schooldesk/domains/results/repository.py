# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data access for exam results.

Every status change goes through compare_and_set(), a single
``UPDATE ... WHERE id = :id AND status IN (:expected) AND deleted_at IS
NULL RETURNING`` statement committed together with its audit event. A
``None`` return means another writer changed the record first.
"""

import logging
from collections.abc import Collection, Iterable
from typing import Any

from sqlalchemy import String, and_, case, cast, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from schooldesk.infrastructure.database.models import (
    Classroom,
    Exam,
    ExamResult,
    ExamResultEvent,
    ParentStudent,
    Student,
    Subject,
    User,
)
from schooldesk.infrastructure.notifications import Recipient, ResultNotice
from schooldesk.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class ExamResultRepository:
    """Queries and conditional writes over exam results.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            db: Async database session.
        """
        self.db = db

    async def get_exam(self, exam_id: str) -> Exam | None:
        """Get a live exam by ID."""
        stmt = select(Exam).where(Exam.id == exam_id, Exam.deleted_at.is_(None))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_student(self, student_id: str) -> Student | None:
        """Get a live student by ID."""
        stmt = select(Student).where(Student.id == student_id, Student.deleted_at.is_(None))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_classroom(self, classroom_id: str) -> Classroom | None:
        """Get a live classroom by ID, with its subjects loaded."""
        stmt = select(Classroom).where(
            Classroom.id == classroom_id,
            Classroom.deleted_at.is_(None),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_subject(self, subject_id: str) -> Subject | None:
        """Get a live subject by ID."""
        stmt = select(Subject).where(Subject.id == subject_id, Subject.deleted_at.is_(None))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_classroom_students(self, classroom_id: str) -> list[Student]:
        """List live students of a classroom ordered by admission number."""
        stmt = (
            select(Student)
            .where(Student.classroom_id == classroom_id, Student.deleted_at.is_(None))
            .order_by(Student.admission_number)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def student_for_user(self, user_id: str) -> Student | None:
        """Get the student record linked to a login."""
        stmt = select(Student).where(Student.user_id == user_id, Student.deleted_at.is_(None))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def is_parent_of(self, parent_id: str, student_id: str) -> bool:
        """Check whether a parent user is linked to a student."""
        stmt = select(func.count()).select_from(ParentStudent).where(
            ParentStudent.parent_id == parent_id,
            ParentStudent.student_id == student_id,
        )
        result = await self.db.execute(stmt)
        return (result.scalar() or 0) > 0

    async def get_result(self, result_id: str) -> ExamResult | None:
        """Get a live result by ID.

        Args:
            result_id: Result ID.

        Returns:
            The result, or None if missing or soft-deleted.
        """
        stmt = select(ExamResult).where(
            ExamResult.id == result_id,
            ExamResult.deleted_at.is_(None),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_identity(
        self,
        student_id: str,
        exam_id: str,
        subject_id: str,
    ) -> ExamResult | None:
        """Get the live result for a (student, exam, subject) identity."""
        stmt = select(ExamResult).where(
            ExamResult.student_id == student_id,
            ExamResult.exam_id == exam_id,
            ExamResult.subject_id == subject_id,
            ExamResult.deleted_at.is_(None),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def existing_identities(
        self,
        exam_id: str,
        student_ids: Iterable[str],
    ) -> set[tuple[str, str]]:
        """Get (student_id, subject_id) pairs that already have a live result.

        Args:
            exam_id: Exam ID.
            student_ids: Students to check.

        Returns:
            Set of (student_id, subject_id) pairs.
        """
        ids = list(student_ids)
        if not ids:
            return set()
        stmt = select(ExamResult.student_id, ExamResult.subject_id).where(
            ExamResult.exam_id == exam_id,
            ExamResult.student_id.in_(ids),
            ExamResult.deleted_at.is_(None),
        )
        result = await self.db.execute(stmt)
        return {(row[0], row[1]) for row in result.all()}

    async def list_by_status(
        self,
        status: str,
        classroom_id: str | None = None,
        exam_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ExamResult]:
        """List live results in a status, oldest submission first.

        Ties on last_submitted_at are broken by the ID string.

        Args:
            status: Status to match.
            classroom_id: Optional classroom filter.
            exam_id: Optional exam filter.
            limit: Maximum number of rows.
            offset: Rows to skip.

        Returns:
            Matching results.
        """
        stmt = select(ExamResult).where(*self._status_filter(status, classroom_id, exam_id))
        stmt = stmt.order_by(
            ExamResult.last_submitted_at.asc().nulls_last(),
            cast(ExamResult.id, String).asc(),
        ).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count_by_status(
        self,
        status: str,
        classroom_id: str | None = None,
        exam_id: str | None = None,
    ) -> int:
        """Count live results matching the list_by_status() filter."""
        stmt = select(func.count(ExamResult.id)).where(
            *self._status_filter(status, classroom_id, exam_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    @staticmethod
    def _status_filter(
        status: str,
        classroom_id: str | None,
        exam_id: str | None,
    ) -> list[Any]:
        conditions = [ExamResult.status == status, ExamResult.deleted_at.is_(None)]
        if classroom_id:
            conditions.append(ExamResult.classroom_id == classroom_id)
        if exam_id:
            conditions.append(ExamResult.exam_id == exam_id)
        return conditions

    async def list_for_classroom_exam(
        self,
        classroom_id: str,
        exam_id: str,
        status: str | None = None,
        submitted_by: str | None = None,
    ) -> list[ExamResult]:
        """List live results of one classroom for one exam.

        Args:
            classroom_id: Classroom ID.
            exam_id: Exam ID.
            status: Optional status filter.
            submitted_by: Only results entered by this user.

        Returns:
            Results ordered by subject, then student.
        """
        stmt = select(ExamResult).where(
            ExamResult.classroom_id == classroom_id,
            ExamResult.exam_id == exam_id,
            ExamResult.deleted_at.is_(None),
        )
        if status:
            stmt = stmt.where(ExamResult.status == status)
        if submitted_by:
            stmt = stmt.where(ExamResult.submitted_by == submitted_by)
        stmt = stmt.order_by(ExamResult.subject_id, ExamResult.student_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_student(
        self,
        student_id: str,
        statuses: Collection[str] | None = None,
    ) -> list[ExamResult]:
        """List live results of a student, newest first."""
        stmt = select(ExamResult).where(
            ExamResult.student_id == student_id,
            ExamResult.deleted_at.is_(None),
        )
        if statuses is not None:
            stmt = stmt.where(ExamResult.status.in_(list(statuses)))
        stmt = stmt.order_by(ExamResult.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_events(self, result_id: str) -> list[ExamResultEvent]:
        """List the audit trail of a result in write order."""
        stmt = (
            select(ExamResultEvent)
            .where(ExamResultEvent.result_id == result_id)
            .order_by(ExamResultEvent.created_at.asc(), ExamResultEvent.id.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def exam_statistics(
        self,
        exam_id: str,
        classroom_id: str | None,
        statuses: Collection[str],
        pass_percentage: float,
    ) -> dict[str, Any]:
        """Aggregate results of an exam.

        Args:
            exam_id: Exam ID.
            classroom_id: Optional classroom filter.
            statuses: Statuses to include.
            pass_percentage: Lowest percentage counted as a pass.

        Returns:
            Dictionary with total, average, highest, lowest, passed and
            grades (grade -> count).
        """
        conditions = [
            ExamResult.exam_id == exam_id,
            ExamResult.status.in_(list(statuses)),
            ExamResult.deleted_at.is_(None),
        ]
        if classroom_id:
            conditions.append(ExamResult.classroom_id == classroom_id)
        where = and_(*conditions)

        totals_stmt = select(
            func.count(ExamResult.id),
            func.avg(ExamResult.percentage),
            func.max(ExamResult.percentage),
            func.min(ExamResult.percentage),
            func.sum(case((ExamResult.percentage >= pass_percentage, 1), else_=0)),
        ).where(where)
        totals = (await self.db.execute(totals_stmt)).one()

        grades_stmt = (
            select(ExamResult.grade, func.count(ExamResult.id))
            .where(where)
            .group_by(ExamResult.grade)
        )
        grades = {row[0]: row[1] for row in (await self.db.execute(grades_stmt)).all()}

        return {
            "total": totals[0] or 0,
            "average": totals[1],
            "highest": totals[2],
            "lowest": totals[3],
            "passed": totals[4] or 0,
            "grades": grades,
        }

    async def insert(self, result: ExamResult, event: ExamResultEvent) -> ExamResult:
        """Insert a new result with its creation event.

        Args:
            result: New result.
            event: Creation event.

        Returns:
            The inserted result.

        Raises:
            IntegrityError: If a live result already exists for the identity.
                The session is rolled back first.
        """
        return (await self.insert_many([result], [event]))[0]

    async def insert_many(
        self,
        results: list[ExamResult],
        events: list[ExamResultEvent],
    ) -> list[ExamResult]:
        """Insert results and their creation events in one transaction.

        Raises:
            IntegrityError: If any identity already has a live result. The
                session is rolled back first.
        """
        self.db.add_all(results)
        try:
            await self.db.flush()
            self.db.add_all(events)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return results

    async def compare_and_set(
        self,
        result_id: str,
        expected_statuses: Collection[str],
        values: dict[str, Any],
        event: ExamResultEvent,
    ) -> ExamResult | None:
        """Apply values only if the record is still in an expected status.

        The conditional update and the event insert commit together. When
        no row matches, nothing is written.

        Args:
            result_id: Result ID.
            expected_statuses: Statuses the record must be in.
            values: Column values to set.
            event: Audit event describing the change.

        Returns:
            The updated result, or None if the record was missing, deleted
            or no longer in an expected status.
        """
        stmt = (
            update(ExamResult)
            .where(
                ExamResult.id == result_id,
                ExamResult.status.in_(list(expected_statuses)),
                ExamResult.deleted_at.is_(None),
            )
            .values(**values, updated_at=utc_now())
            .returning(ExamResult)
            .execution_options(populate_existing=True)
        )

        try:
            result = await self.db.execute(stmt)
            updated = result.scalar_one_or_none()
            if updated is None:
                await self.db.rollback()
                logger.debug(
                    "Conditional update on result %s matched no row (expected %s)",
                    result_id,
                    sorted(expected_statuses),
                )
                return None
            self.db.add(event)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return updated

    async def publication_notice(
        self,
        result: ExamResult,
    ) -> tuple[ResultNotice, list[Recipient]] | None:
        """Build the notice and recipient list for a published result.

        Args:
            result: Published result.

        Returns:
            (notice, recipients), or None if the student is gone.
        """
        student = await self.get_student(result.student_id)
        if student is None:
            return None
        exam = await self.get_exam(result.exam_id)
        subject = await self.get_subject(result.subject_id)

        notice = ResultNotice(
            result_id=result.id,
            student_name=student.full_name,
            exam_name=exam.name if exam else "Exam",
            subject_name=subject.name if subject else "Subject",
            score=result.score,
            max_marks=result.max_marks,
            percentage=result.percentage,
            grade=result.grade,
        )

        recipients: list[Recipient] = []
        if student.email:
            recipients.append(
                Recipient(email=student.email, full_name=student.full_name, user_type="student")
            )

        stmt = (
            select(User)
            .join(ParentStudent, ParentStudent.parent_id == User.id)
            .where(ParentStudent.student_id == student.id, User.is_active.is_(True))
        )
        parents = (await self.db.execute(stmt)).scalars().all()
        recipients.extend(
            Recipient(email=p.email, full_name=p.full_name, user_type="parent")
            for p in parents
            if p.email
        )
        return notice, recipients
