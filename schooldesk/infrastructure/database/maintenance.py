# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database maintenance helpers for exam results.

- ensure_indexes: create the review queue and lookup indexes if missing
- find_duplicate_results: report identities with more than one live row

Databases created before the partial unique index existed can hold
duplicate live records; run find_duplicate_results before
ensure_indexes there, since the unique index cannot be built over
duplicates.

Run with:
    python -m schooldesk.infrastructure.database.maintenance
"""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from schooldesk.infrastructure.database.models import ExamResult

logger = logging.getLogger(__name__)

INDEX_STATEMENTS: dict[str, str] = {
    "ix_exam_results_review_queue": (
        "CREATE INDEX IF NOT EXISTS ix_exam_results_review_queue "
        "ON exam_results (status, last_submitted_at)"
    ),
    "ix_exam_results_exam_classroom": (
        "CREATE INDEX IF NOT EXISTS ix_exam_results_exam_classroom "
        "ON exam_results (exam_id, classroom_id)"
    ),
    "ix_exam_results_student_id": (
        "CREATE INDEX IF NOT EXISTS ix_exam_results_student_id "
        "ON exam_results (student_id)"
    ),
    "ix_exam_result_events_result": (
        "CREATE INDEX IF NOT EXISTS ix_exam_result_events_result "
        "ON exam_result_events (result_id, created_at)"
    ),
    "uq_exam_results_identity": (
        "CREATE UNIQUE INDEX IF NOT EXISTS uq_exam_results_identity "
        "ON exam_results (student_id, exam_id, subject_id) "
        "WHERE deleted_at IS NULL"
    ),
}


@dataclass(frozen=True)
class DuplicateIdentity:
    """An identity held by more than one live exam result."""

    student_id: str
    exam_id: str
    subject_id: str
    count: int


async def ensure_indexes(session: AsyncSession) -> list[str]:
    """Create exam result indexes that are missing.

    Idempotent: existing indexes are left untouched.

    Args:
        session: Database session.

    Returns:
        Names of the indexes that were checked.
    """
    for name, statement in INDEX_STATEMENTS.items():
        await session.execute(text(statement))
        logger.debug("Ensured index %s", name)

    await session.commit()
    logger.info("Ensured %d exam result indexes", len(INDEX_STATEMENTS))
    return list(INDEX_STATEMENTS)


async def find_duplicate_results(session: AsyncSession) -> list[DuplicateIdentity]:
    """Find (student, exam, subject) identities with several live rows.

    Args:
        session: Database session.

    Returns:
        Duplicate identities, largest count first.
    """
    row_count = func.count(ExamResult.id).label("row_count")
    stmt = (
        select(
            ExamResult.student_id,
            ExamResult.exam_id,
            ExamResult.subject_id,
            row_count,
        )
        .where(ExamResult.deleted_at.is_(None))
        .group_by(ExamResult.student_id, ExamResult.exam_id, ExamResult.subject_id)
        .having(func.count(ExamResult.id) > 1)
        .order_by(row_count.desc())
    )
    result = await session.execute(stmt)

    duplicates = [
        DuplicateIdentity(
            student_id=str(row.student_id),
            exam_id=str(row.exam_id),
            subject_id=str(row.subject_id),
            count=row.row_count,
        )
        for row in result.all()
    ]
    if duplicates:
        logger.warning("Found %d duplicated exam result identities", len(duplicates))
    return duplicates


async def run_maintenance(session: AsyncSession) -> list[DuplicateIdentity]:
    """Report duplicates, and create indexes only when there are none."""
    duplicates = await find_duplicate_results(session)
    if duplicates:
        for dup in duplicates:
            logger.warning(
                "Duplicate identity student=%s exam=%s subject=%s rows=%d",
                dup.student_id,
                dup.exam_id,
                dup.subject_id,
                dup.count,
            )
        logger.warning("Skipping index creation until duplicates are resolved")
        return duplicates

    await ensure_indexes(session)
    return duplicates


if __name__ == "__main__":
    import os

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from schooldesk.core.config import get_settings

    async def main():
        database_url = os.environ.get("DATABASE_URL") or get_settings().database.url
        engine = create_async_engine(database_url)
        async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async with async_session() as session:
            await run_maintenance(session)

        await engine.dispose()

    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
