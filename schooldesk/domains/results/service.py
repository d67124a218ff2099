# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam result lifecycle service.

Owns the draft -> submitted -> approved -> published workflow (with
reject and resubmit) for one result per (student, exam, subject).

Every state-changing operation follows the same order of checks:

1. RBAC permission (ForbiddenError, no storage access)
2. Input validation (InvalidInputError); the rejection reason is the
   exception and is checked just before the write
3. Load (NotFoundError)
4. Terminal check (TerminalStateError once published)
5. Transition table (InvalidTransitionError)
6. Role and ownership guard (ForbiddenError)
7. Conditional write (InvalidTransitionError when another writer won)

Publication notices are sent after the publish commit and never undo it.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schooldesk.core.config.settings import ResultSettings
from schooldesk.core.rbac import Permissions, RBACGate, Role
from schooldesk.domains.results.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    ResultServiceError,
    TerminalStateError,
)
from schooldesk.domains.results.grading import (
    grade_marks,
    round_half_up,
    validate_partial_marks,
)
from schooldesk.domains.results.repository import ExamResultRepository
from schooldesk.domains.results.schemas import (
    BatchResultRequest,
    BatchResultResponse,
    BatchRowError,
    ExamStatisticsResponse,
    InitializeRequest,
    InitializeResponse,
    PendingFilter,
    ResubmitRequest,
    ResultCreateRequest,
    ResultEventResponse,
    ResultListResponse,
    ResultResponse,
    ResultUpdateRequest,
)
from schooldesk.domains.results.status import (
    CREATE_STATUSES,
    EVENT_PERMISSIONS,
    GUARDS,
    IN_PLACE_EVENTS,
    ResultEvent,
    ResultStatus,
    next_status,
    source_statuses,
)
from schooldesk.infrastructure.database.models import (
    Classroom,
    Exam,
    ExamResult,
    ExamResultEvent,
    Student,
    Subject,
    new_id,
)
from schooldesk.infrastructure.notifications import ResultNotifier
from schooldesk.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ValuesBuilder = Callable[[ExamResult], dict[str, Any]]

# Columns copied into the event details snapshot
_EVENT_DETAIL_FIELDS = ("score", "max_marks", "remarks", "revision")

# Holders may read the results they entered themselves
_ENTRY_PERMISSIONS = (Permissions.RESULTS_CREATE, Permissions.RESULTS_UPDATE)


@dataclass(frozen=True)
class Actor:
    """Identity performing an operation, as supplied by the auth layer.

    Attributes:
        id: User ID.
        role: Role string.
    """

    id: str
    role: str

    @property
    def resolved_role(self) -> Role | None:
        """Get the parsed role, None for unknown role strings."""
        return Role.parse(self.role)


class ResultLifecycleService:
    """Service for the exam result workflow.

    Attributes:
        gate: RBAC gate consulted before any storage access.
        settings: Result workflow settings.
        notifier: Optional publication notifier.
        repository: Data access for results.
    """

    def __init__(
        self,
        db: AsyncSession,
        gate: RBACGate,
        settings: ResultSettings | None = None,
        notifier: ResultNotifier | None = None,
        repository: ExamResultRepository | None = None,
    ) -> None:
        """Initialize the result lifecycle service.

        Args:
            db: Async database session.
            gate: RBAC gate.
            settings: Result workflow settings.
            notifier: Notifier called after a result is published.
            repository: Repository override, defaults to one over ``db``.
        """
        self.db = db
        self.gate = gate
        self.settings = settings or ResultSettings()
        self.notifier = notifier
        self.repository = repository or ExamResultRepository(db)

    async def create_result(
        self,
        data: ResultCreateRequest,
        actor: Actor,
    ) -> ResultResponse:
        """Enter marks for one student, exam and subject.

        A rejected result created by the same actor is resubmitted with the
        new marks instead of raising a conflict.

        Args:
            data: Result creation data.
            actor: Acting user.

        Returns:
            The created (or resubmitted) result.

        Raises:
            ForbiddenError: Missing permission, role or teacher assignment.
            InvalidInputError: Invalid marks or inconsistent references.
            NotFoundError: A referenced record does not exist.
            TerminalStateError: The identity already has a published result.
            ConflictError: The identity already has a result.
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.CREATE])

        try:
            status = ResultStatus(data.status)
        except ValueError as e:
            raise InvalidInputError(f"Unknown status '{data.status}'") from e
        if status not in CREATE_STATUSES:
            raise InvalidInputError(f"Results cannot be created as '{status.value}'")
        max_marks = data.max_marks
        if max_marks is None:
            max_marks = self.settings.default_max_marks
        score, max_marks, percentage, grade = grade_marks(data.score, max_marks)

        exam = await self._load_exam(data.exam_id)
        student = await self._load_student(data.student_id)
        classroom = await self._load_classroom(data.classroom_id)
        subject = await self._load_subject(data.subject_id)
        self._check_references(exam, student, classroom, subject)

        if not GUARDS[ResultEvent.CREATE].allows(actor.resolved_role, False):
            raise ForbiddenError("Only teachers, head teachers and admins can enter results")
        self._check_teacher_assignment(actor, classroom, subject)

        existing = await self.repository.find_by_identity(student.id, exam.id, subject.id)
        if existing is not None:
            existing_status = ResultStatus(existing.status)
            if existing_status.is_terminal:
                raise TerminalStateError(
                    "A published result already exists for this student, exam and subject",
                    {"result_id": existing.id},
                )
            if existing_status == ResultStatus.REJECTED and existing.submitted_by == actor.id:
                return await self.resubmit(
                    existing.id,
                    ResubmitRequest(score=score, max_marks=max_marks, remarks=data.remarks),
                    actor,
                )
            raise ConflictError(
                "A result already exists for this student, exam and subject",
                {"result_id": existing.id, "status": existing.status},
            )

        now = utc_now()
        submitted = status == ResultStatus.SUBMITTED
        result = ExamResult(
            id=new_id(),
            exam_id=exam.id,
            student_id=student.id,
            classroom_id=classroom.id,
            subject_id=subject.id,
            score=score,
            max_marks=max_marks,
            percentage=percentage,
            grade=grade,
            remarks=data.remarks,
            status=status.value,
            revision=1,
            submitted_by=actor.id,
            submitted_at=now if submitted else None,
            last_submitted_at=now if submitted else None,
            created_at=now,
            updated_at=now,
        )
        event = self._event(
            result.id,
            ResultEvent.CREATE,
            actor,
            None,
            status.value,
            details=self._marks(result),
        )

        try:
            await self.repository.insert(result, event)
        except IntegrityError as e:
            raise ConflictError(
                "A result already exists for this student, exam and subject"
            ) from e

        logger.info(
            "Created result %s (%s) for student %s by %s",
            result.id,
            result.status,
            student.id,
            actor.id,
        )
        return ResultResponse.model_validate(result)

    async def update_result(
        self,
        result_id: str,
        data: ResultUpdateRequest,
        actor: Actor,
    ) -> ResultResponse:
        """Correct marks on a draft or submitted result.

        Percentage and grade are recomputed; the status never changes.

        Args:
            result_id: Result ID.
            data: Fields to change.
            actor: Acting user (original submitter or admin).

        Returns:
            The updated result.
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.UPDATE])
        validate_partial_marks(data.score, data.max_marks)

        def values_for(record: ExamResult) -> dict[str, Any]:
            score = data.score if data.score is not None else record.score
            max_marks = data.max_marks if data.max_marks is not None else record.max_marks
            score, max_marks, percentage, grade = grade_marks(score, max_marks)
            values: dict[str, Any] = {
                "score": score,
                "max_marks": max_marks,
                "percentage": percentage,
                "grade": grade,
            }
            if "remarks" in data.model_fields_set:
                values["remarks"] = data.remarks
            return values

        updated = await self._transition(result_id, ResultEvent.UPDATE, actor, values_for)
        return ResultResponse.model_validate(updated)

    async def submit(self, result_id: str, actor: Actor) -> ResultResponse:
        """Submit a draft for review.

        Args:
            result_id: Result ID.
            actor: Acting user (submitter, head teacher or admin).

        Returns:
            The submitted result.
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.SUBMIT])

        def values_for(record: ExamResult) -> dict[str, Any]:
            now = utc_now()
            values: dict[str, Any] = {"last_submitted_at": now}
            if record.submitted_at is None:
                values["submitted_at"] = now
            if record.submitted_by is None:
                values["submitted_by"] = actor.id
            return values

        updated = await self._transition(result_id, ResultEvent.SUBMIT, actor, values_for)
        return ResultResponse.model_validate(updated)

    async def approve(self, result_id: str, actor: Actor) -> ResultResponse:
        """Approve a submitted result.

        Args:
            result_id: Result ID.
            actor: Acting user (head teacher or admin).

        Returns:
            The approved result.
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.APPROVE])
        updated = await self._transition(
            result_id,
            ResultEvent.APPROVE,
            actor,
            lambda record: {"approved_by": actor.id, "approved_at": utc_now()},
        )
        return ResultResponse.model_validate(updated)

    async def reject(self, result_id: str, actor: Actor, reason: str | None) -> ResultResponse:
        """Reject a submitted result back to its submitter.

        The first rejection fills rejected_by, rejected_at and
        rejection_reason, which later rejections leave alone. Every
        rejection refreshes the last_rejected_* columns.

        The reason is checked once the record is loaded, so a published
        record reports TerminalStateError even when the reason is blank.

        Args:
            result_id: Result ID.
            actor: Acting user (head teacher or admin).
            reason: Why the result was rejected. Must not be blank.

        Returns:
            The rejected result.
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.REJECT])
        cleaned = (reason or "").strip()

        def values_for(record: ExamResult) -> dict[str, Any]:
            if not cleaned:
                raise InvalidInputError("A rejection reason is required", {"field": "reason"})
            now = utc_now()
            values: dict[str, Any] = {
                "last_rejected_by": actor.id,
                "last_rejected_at": now,
                "last_rejection_reason": cleaned,
            }
            if record.rejected_at is None:
                values["rejected_by"] = actor.id
                values["rejected_at"] = now
                values["rejection_reason"] = cleaned
            return values

        updated = await self._transition(
            result_id,
            ResultEvent.REJECT,
            actor,
            values_for,
            reason=cleaned,
        )
        return ResultResponse.model_validate(updated)

    async def publish(self, result_id: str, actor: Actor) -> ResultResponse:
        """Publish an approved result to students and parents.

        Args:
            result_id: Result ID.
            actor: Acting user (head teacher or admin).

        Returns:
            The published result.
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.PUBLISH])
        updated = await self._transition(
            result_id,
            ResultEvent.PUBLISH,
            actor,
            lambda record: {"published_by": actor.id, "published_at": utc_now()},
        )
        await self._notify_published(updated)
        return ResultResponse.model_validate(updated)

    async def resubmit(
        self,
        result_id: str,
        data: ResubmitRequest,
        actor: Actor,
    ) -> ResultResponse:
        """Resubmit corrected marks for a rejected result.

        Rejection and first submission stamps stay on the record; the new
        submission is recorded in the event trail and in revision.

        Args:
            result_id: Result ID.
            data: Corrected marks.
            actor: Acting user (original submitter only).

        Returns:
            The resubmitted result.
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.RESUBMIT])
        validate_partial_marks(data.score, data.max_marks)

        def values_for(record: ExamResult) -> dict[str, Any]:
            max_marks = data.max_marks if data.max_marks is not None else record.max_marks
            score, max_marks, percentage, grade = grade_marks(data.score, max_marks)
            return {
                "score": score,
                "max_marks": max_marks,
                "percentage": percentage,
                "grade": grade,
                "remarks": data.remarks,
                "revision": record.revision + 1,
                "last_submitted_at": utc_now(),
            }

        updated = await self._transition(result_id, ResultEvent.RESUBMIT, actor, values_for)
        return ResultResponse.model_validate(updated)

    async def delete_result(self, result_id: str, actor: Actor) -> None:
        """Soft-delete a draft.

        Args:
            result_id: Result ID.
            actor: Acting user (submitter or admin).
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.DELETE])
        await self._transition(
            result_id,
            ResultEvent.DELETE,
            actor,
            lambda record: {"deleted_at": utc_now()},
        )

    async def initialize_results(
        self,
        data: InitializeRequest,
        actor: Actor,
    ) -> InitializeResponse:
        """Create draft results for every student and subject of a classroom.

        Identities that already have a result are skipped.

        Args:
            data: Exam and classroom.
            actor: Acting user.

        Returns:
            Counts of created and already existing results.
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.CREATE])

        exam = await self._load_exam(data.exam_id)
        classroom = await self._load_classroom(data.classroom_id)
        if exam.classroom_id and exam.classroom_id != classroom.id:
            raise InvalidInputError(
                "Exam does not belong to this classroom",
                {"exam_id": exam.id, "classroom_id": classroom.id},
            )
        students = await self.repository.list_classroom_students(classroom.id)
        if not students:
            raise InvalidInputError("Classroom has no students", {"classroom_id": classroom.id})
        if not classroom.subjects:
            raise InvalidInputError("Classroom has no subjects", {"classroom_id": classroom.id})

        if not GUARDS[ResultEvent.CREATE].allows(actor.resolved_role, False):
            raise ForbiddenError("Only teachers, head teachers and admins can enter results")
        if (
            self.settings.enforce_teacher_assignment
            and actor.resolved_role is Role.TEACHER
            and classroom.class_teacher_id != actor.id
        ):
            raise ForbiddenError("Only the class teacher can initialize results for a classroom")

        existing = await self.repository.existing_identities(exam.id, [s.id for s in students])
        max_marks = float(exam.total_marks or self.settings.default_max_marks)
        _, max_marks, percentage, grade = grade_marks(0, max_marks)

        now = utc_now()
        results: list[ExamResult] = []
        events: list[ExamResultEvent] = []
        for student in students:
            for subject in classroom.subjects:
                if (student.id, subject.id) in existing:
                    continue
                result = ExamResult(
                    id=new_id(),
                    exam_id=exam.id,
                    student_id=student.id,
                    classroom_id=classroom.id,
                    subject_id=subject.id,
                    score=0.0,
                    max_marks=max_marks,
                    percentage=percentage,
                    grade=grade,
                    status=ResultStatus.DRAFT.value,
                    revision=1,
                    submitted_by=actor.id,
                    created_at=now,
                    updated_at=now,
                )
                results.append(result)
                events.append(
                    self._event(
                        result.id,
                        ResultEvent.CREATE,
                        actor,
                        None,
                        ResultStatus.DRAFT.value,
                        details={"initialized": True, **self._marks(result)},
                    )
                )

        if results:
            try:
                await self.repository.insert_many(results, events)
            except IntegrityError as e:
                raise ConflictError(
                    "Results were created concurrently for this classroom; retry initialization"
                ) from e

        logger.info(
            "Initialized %d draft results for exam %s in classroom %s by %s (%d existing)",
            len(results),
            exam.id,
            classroom.id,
            actor.id,
            len(existing),
        )
        return InitializeResponse(
            exam_id=exam.id,
            classroom_id=classroom.id,
            created=len(results),
            existing=len(existing),
        )

    async def batch_enter_results(
        self,
        data: BatchResultRequest,
        actor: Actor,
    ) -> BatchResultResponse:
        """Enter marks for many students of one exam, classroom and subject.

        New rows are created as drafts through create_result(). Rows whose
        student already has a draft or submitted result go through
        update_result(). Results in any other status are reported as
        conflicts. A failing row is recorded and the remaining rows are
        still processed.

        Args:
            data: Exam, classroom, subject, shared max marks and rows.
            actor: Acting user.

        Returns:
            Created and updated counts, per-row errors and stored results.

        Raises:
            ForbiddenError: Missing permission, role or teacher assignment.
            InvalidInputError: No rows, or invalid max marks.
            NotFoundError: The exam, classroom or subject does not exist.
        """
        self._require(actor, EVENT_PERMISSIONS[ResultEvent.CREATE])
        if not data.results:
            raise InvalidInputError("At least one result must be provided")
        max_marks = data.max_marks
        if max_marks is None:
            max_marks = self.settings.default_max_marks
        validate_partial_marks(None, max_marks)

        exam = await self._load_exam(data.exam_id)
        classroom = await self._load_classroom(data.classroom_id)
        subject = await self._load_subject(data.subject_id)
        if not GUARDS[ResultEvent.CREATE].allows(actor.resolved_role, False):
            raise ForbiddenError("Only teachers, head teachers and admins can enter results")
        self._check_teacher_assignment(actor, classroom, subject)

        updatable = {s.value for s in source_statuses(ResultEvent.UPDATE)}
        stored: list[ResultResponse] = []
        errors: list[BatchRowError] = []
        created = updated = 0

        for index, row in enumerate(data.results):
            if not row.student_id:
                errors.append(
                    BatchRowError(
                        index=index,
                        error=InvalidInputError.kind,
                        detail="Student ID is required",
                    )
                )
                continue
            if row.score is None:
                errors.append(
                    BatchRowError(
                        index=index,
                        student_id=row.student_id,
                        error=InvalidInputError.kind,
                        detail="Score is required",
                    )
                )
                continue

            try:
                existing = await self.repository.find_by_identity(
                    row.student_id,
                    exam.id,
                    subject.id,
                )
                if existing is None:
                    result = await self.create_result(
                        ResultCreateRequest(
                            exam_id=exam.id,
                            student_id=row.student_id,
                            classroom_id=classroom.id,
                            subject_id=subject.id,
                            score=row.score,
                            max_marks=max_marks,
                            remarks=row.remarks,
                            status=ResultStatus.DRAFT.value,
                        ),
                        actor,
                    )
                    created += 1
                elif existing.status in updatable:
                    result = await self.update_result(
                        existing.id,
                        ResultUpdateRequest(
                            score=row.score,
                            max_marks=max_marks,
                            remarks=row.remarks,
                        ),
                        actor,
                    )
                    updated += 1
                else:
                    raise ConflictError(
                        f"Result already exists with status '{existing.status}'",
                        {"result_id": existing.id},
                    )
            except ResultServiceError as e:
                errors.append(
                    BatchRowError(
                        index=index,
                        student_id=row.student_id,
                        error=e.kind,
                        detail=e.message,
                    )
                )
                continue
            stored.append(result)

        logger.info(
            "Batch entry for exam %s, classroom %s, subject %s by %s: "
            "%d created, %d updated, %d errors",
            exam.id,
            classroom.id,
            subject.id,
            actor.id,
            created,
            updated,
            len(errors),
        )
        return BatchResultResponse(
            created=created,
            updated=updated,
            errors=errors,
            results=stored,
        )

    async def list_classroom_exam_results(
        self,
        classroom_id: str,
        exam_id: str,
        actor: Actor,
        status: str | None = None,
    ) -> ResultListResponse:
        """List a classroom's results for one exam, across all statuses.

        Holders of the view permission see every result. Teachers see every
        result of a classroom they teach as class teacher (or any classroom
        when assignment enforcement is off), and otherwise only the results
        they entered.

        Args:
            classroom_id: Classroom ID.
            exam_id: Exam ID.
            actor: Acting user.
            status: Optional status filter.

        Returns:
            Results ordered by subject, then student.
        """
        can_view = self.gate.has_permission(actor.role, Permissions.RESULTS_VIEW)
        can_enter = self.gate.has_any_permission(actor.role, _ENTRY_PERMISSIONS)
        if not (can_view or can_enter):
            raise ForbiddenError("Not allowed to view classroom results")
        if status is not None:
            try:
                status = ResultStatus(status).value
            except ValueError as e:
                raise InvalidInputError(f"Unknown status '{status}'") from e

        classroom = await self._load_classroom(classroom_id)
        exam = await self._load_exam(exam_id)

        submitted_by = None
        if (
            not can_view
            and self.settings.enforce_teacher_assignment
            and classroom.class_teacher_id != actor.id
        ):
            submitted_by = actor.id

        records = await self.repository.list_for_classroom_exam(
            classroom.id,
            exam.id,
            status=status,
            submitted_by=submitted_by,
        )
        return ResultListResponse(
            results=[ResultResponse.model_validate(r) for r in records],
            total=len(records),
        )

    async def get_pending(
        self,
        filters: PendingFilter,
        actor: Actor,
    ) -> ResultListResponse:
        """List results awaiting action, oldest submission first.

        Args:
            filters: Status (default submitted), classroom, exam and paging.
            actor: Acting user.

        Returns:
            Matching results.
        """
        self._require(actor, Permissions.RESULTS_VIEW)
        records = await self.repository.list_by_status(
            filters.status,
            classroom_id=filters.classroom_id,
            exam_id=filters.exam_id,
            limit=filters.limit,
            offset=filters.offset,
        )
        if filters.limit is None and filters.offset == 0:
            total = len(records)
        else:
            total = await self.repository.count_by_status(
                filters.status,
                classroom_id=filters.classroom_id,
                exam_id=filters.exam_id,
            )
        return ResultListResponse(
            results=[ResultResponse.model_validate(r) for r in records],
            total=total,
        )

    async def get_result(self, result_id: str, actor: Actor) -> ResultResponse:
        """Get one result.

        Holders of the view permission see every status. Users who enter
        marks see every status of the results they submitted, including
        the rejection reason. Holders of the self-scoped view permission
        see published results of their own (or their child's) student
        record only.

        Args:
            result_id: Result ID.
            actor: Acting user.

        Returns:
            The result.
        """
        can_view = self.gate.has_permission(actor.role, Permissions.RESULTS_VIEW)
        can_view_self = self.gate.has_permission(actor.role, Permissions.RESULTS_VIEW_SELF)
        can_enter = self.gate.has_any_permission(actor.role, _ENTRY_PERMISSIONS)
        if not (can_view or can_view_self or can_enter):
            raise ForbiddenError("Not allowed to view results")

        record = await self._load_result(result_id)
        if can_view:
            return ResultResponse.model_validate(record)
        if can_enter and record.submitted_by is not None and record.submitted_by == actor.id:
            return ResultResponse.model_validate(record)
        if not can_view_self:
            raise ForbiddenError("Results can only be viewed by the teacher who entered them")

        student = await self.repository.get_student(record.student_id)
        if student is None or not await self._is_linked(actor, student):
            raise ForbiddenError("Results can only be viewed by the student or their parents")
        if record.status != ResultStatus.PUBLISHED.value:
            raise NotFoundError(f"Result {result_id} not found")
        return ResultResponse.model_validate(record)

    async def get_history(self, result_id: str, actor: Actor) -> list[ResultEventResponse]:
        """Get the audit trail of a result.

        Args:
            result_id: Result ID.
            actor: Acting user.

        Returns:
            Events in write order.
        """
        self._require(actor, Permissions.RESULTS_VIEW)
        record = await self._load_result(result_id)
        events = await self.repository.list_events(record.id)
        return [ResultEventResponse.model_validate(e) for e in events]

    async def list_student_results(
        self,
        student_id: str,
        actor: Actor,
        include_all: bool = False,
    ) -> ResultListResponse:
        """List a student's results.

        Args:
            student_id: Student ID.
            actor: Acting user.
            include_all: Return every status instead of published only.
                Ignored for self-scoped viewers.

        Returns:
            The student's results, newest first.
        """
        can_view = self.gate.has_permission(actor.role, Permissions.RESULTS_VIEW)
        can_view_self = self.gate.has_permission(actor.role, Permissions.RESULTS_VIEW_SELF)
        if not (can_view or can_view_self):
            raise ForbiddenError("Not allowed to view results")

        student = await self._load_student(student_id)
        statuses: list[str] | None = [ResultStatus.PUBLISHED.value]
        if can_view:
            if include_all:
                statuses = None
        elif not await self._is_linked(actor, student):
            raise ForbiddenError("Results can only be viewed by the student or their parents")

        records = await self.repository.list_for_student(student.id, statuses)
        return ResultListResponse(
            results=[ResultResponse.model_validate(r) for r in records],
            total=len(records),
        )

    async def exam_statistics(
        self,
        exam_id: str,
        actor: Actor,
        classroom_id: str | None = None,
    ) -> ExamStatisticsResponse:
        """Aggregate published results of an exam.

        Args:
            exam_id: Exam ID.
            actor: Acting user.
            classroom_id: Optional classroom filter.

        Returns:
            Count, average, highest, lowest, pass count and grade distribution.
        """
        self._require(actor, Permissions.RESULTS_VIEW)
        exam = await self._load_exam(exam_id)
        stats = await self.repository.exam_statistics(
            exam.id,
            classroom_id,
            [ResultStatus.PUBLISHED.value],
            self.settings.pass_percentage,
        )

        total = int(stats["total"])
        passed = int(stats["passed"])
        return ExamStatisticsResponse(
            exam_id=exam.id,
            classroom_id=classroom_id,
            total_results=total,
            average_percentage=self._round(stats["average"]),
            highest_percentage=self._round(stats["highest"]),
            lowest_percentage=self._round(stats["lowest"]),
            pass_count=passed,
            pass_rate=self._round(passed / total * 100) if total else None,
            grade_distribution=dict(stats["grades"]),
        )

    async def _transition(
        self,
        result_id: str,
        event: ResultEvent,
        actor: Actor,
        values_for: ValuesBuilder,
        reason: str | None = None,
    ) -> ExamResult:
        """Apply one event to a stored result.

        The caller has already checked the RBAC permission and validated
        its input.

        Args:
            result_id: Result ID.
            event: Event to apply.
            actor: Acting user.
            values_for: Builds the column values from the loaded record.
            reason: Reason recorded with the event.

        Returns:
            The updated record.
        """
        record = await self._load_result(result_id)
        current = ResultStatus(record.status)

        if current.is_terminal:
            raise TerminalStateError(
                f"Result {result_id} is published and can no longer change",
                {"status": current.value},
            )

        target = next_status(current, event)
        if target is None:
            raise InvalidTransitionError(
                f"Cannot {event.value} a result in status '{current.value}'",
                current_status=current.value,
            )

        is_owner = record.submitted_by is not None and record.submitted_by == actor.id
        if not GUARDS[event].allows(actor.resolved_role, is_owner):
            raise ForbiddenError(f"Not allowed to {event.value} this result")

        values = values_for(record)
        if event not in IN_PLACE_EVENTS:
            values["status"] = target.value

        audit = self._event(
            record.id,
            event,
            actor,
            current.value,
            target.value,
            reason=reason,
            details={k: v for k, v in values.items() if k in _EVENT_DETAIL_FIELDS},
        )
        updated = await self.repository.compare_and_set(
            record.id,
            [s.value for s in source_statuses(event)],
            values,
            audit,
        )
        if updated is None:
            logger.warning(
                "Result %s changed concurrently; %s by %s refused",
                result_id,
                event.value,
                actor.id,
            )
            raise InvalidTransitionError(
                f"Result {result_id} was changed by another request; reload and retry",
            )

        logger.info(
            "Result %s %s: %s -> %s by %s",
            record.id,
            event.value,
            current.value,
            updated.status,
            actor.id,
        )
        return updated

    async def _notify_published(self, result: ExamResult) -> None:
        """Send publication notices; failures are logged and swallowed."""
        if self.notifier is None:
            return
        try:
            context = await self.repository.publication_notice(result)
            if context is None:
                logger.warning("No student found to notify for result %s", result.id)
                return
            notice, recipients = context
            await self.notifier.notify_published(notice, recipients)
        except Exception:
            logger.warning(
                "Failed to send publication notices for result %s",
                result.id,
                exc_info=True,
            )

    def _require(self, actor: Actor, permission: str) -> None:
        if not self.gate.has_permission(actor.role, permission):
            raise ForbiddenError(
                f"Permission '{permission}' required",
                {"role": actor.role},
            )

    async def _is_linked(self, actor: Actor, student: Student) -> bool:
        role = actor.resolved_role
        if role is Role.STUDENT:
            return student.user_id is not None and student.user_id == actor.id
        if role is Role.PARENT:
            return await self.repository.is_parent_of(actor.id, student.id)
        return False

    def _check_references(
        self,
        exam: Exam,
        student: Student,
        classroom: Classroom,
        subject: Subject,
    ) -> None:
        if student.classroom_id != classroom.id:
            raise InvalidInputError(
                "Student is not in this classroom",
                {"student_id": student.id, "classroom_id": classroom.id},
            )
        if exam.classroom_id and exam.classroom_id != classroom.id:
            raise InvalidInputError(
                "Exam does not belong to this classroom",
                {"exam_id": exam.id, "classroom_id": classroom.id},
            )
        if classroom.subjects and subject.id not in {s.id for s in classroom.subjects}:
            raise InvalidInputError(
                "Subject is not taught in this classroom",
                {"subject_id": subject.id, "classroom_id": classroom.id},
            )

    def _check_teacher_assignment(
        self,
        actor: Actor,
        classroom: Classroom,
        subject: Subject,
    ) -> None:
        if not self.settings.enforce_teacher_assignment:
            return
        if actor.resolved_role is not Role.TEACHER:
            return
        if actor.id not in (classroom.class_teacher_id, subject.teacher_id):
            raise ForbiddenError(
                "Teachers can only enter results for their own class or subject",
                {"classroom_id": classroom.id, "subject_id": subject.id},
            )

    async def _load_result(self, result_id: str) -> ExamResult:
        record = await self.repository.get_result(result_id)
        if record is None:
            raise NotFoundError(f"Result {result_id} not found")
        return record

    async def _load_exam(self, exam_id: str) -> Exam:
        exam = await self.repository.get_exam(exam_id)
        if exam is None:
            raise NotFoundError(f"Exam {exam_id} not found")
        return exam

    async def _load_student(self, student_id: str) -> Student:
        student = await self.repository.get_student(student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found")
        return student

    async def _load_classroom(self, classroom_id: str) -> Classroom:
        classroom = await self.repository.get_classroom(classroom_id)
        if classroom is None:
            raise NotFoundError(f"Classroom {classroom_id} not found")
        return classroom

    async def _load_subject(self, subject_id: str) -> Subject:
        subject = await self.repository.get_subject(subject_id)
        if subject is None:
            raise NotFoundError(f"Subject {subject_id} not found")
        return subject

    def _event(
        self,
        result_id: str,
        action: ResultEvent,
        actor: Actor,
        from_status: str | None,
        to_status: str | None,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ExamResultEvent:
        role = actor.resolved_role
        return ExamResultEvent(
            id=new_id(),
            result_id=result_id,
            action=action.value,
            actor_id=actor.id,
            actor_role=role.value if role else actor.role,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
            details=details or {},
            created_at=utc_now(),
        )

    @staticmethod
    def _marks(result: ExamResult) -> dict[str, Any]:
        return {
            "score": result.score,
            "max_marks": result.max_marks,
            "remarks": result.remarks,
        }

    @staticmethod
    def _round(value: Any) -> float | None:
        if value is None:
            return None
        return float(round_half_up(value))
