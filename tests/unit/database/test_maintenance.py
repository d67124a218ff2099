# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for exam result maintenance helpers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from schooldesk.infrastructure.database.maintenance import (
    INDEX_STATEMENTS,
    DuplicateIdentity,
    ensure_indexes,
    find_duplicate_results,
    run_maintenance,
)


@pytest.fixture
def mock_session() -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    return session


def _rows(*rows: SimpleNamespace) -> MagicMock:
    result = MagicMock()
    result.all.return_value = list(rows)
    return result


def test_index_statements_are_idempotent() -> None:
    for statement in INDEX_STATEMENTS.values():
        assert "IF NOT EXISTS" in statement
    assert INDEX_STATEMENTS["uq_exam_results_identity"].endswith("WHERE deleted_at IS NULL")


@pytest.mark.asyncio
async def test_ensure_indexes(mock_session: MagicMock) -> None:
    names = await ensure_indexes(mock_session)

    assert names == list(INDEX_STATEMENTS)
    assert mock_session.execute.await_count == len(INDEX_STATEMENTS)
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_find_duplicate_results(mock_session: MagicMock) -> None:
    mock_session.execute.return_value = _rows(
        SimpleNamespace(student_id="s1", exam_id="e1", subject_id="m", row_count=3),
    )

    duplicates = await find_duplicate_results(mock_session)

    assert duplicates == [DuplicateIdentity("s1", "e1", "m", 3)]


@pytest.mark.asyncio
async def test_maintenance_skips_indexes_when_duplicates_exist(
    mock_session: MagicMock,
) -> None:
    mock_session.execute.return_value = _rows(
        SimpleNamespace(student_id="s1", exam_id="e1", subject_id="m", row_count=2),
    )

    duplicates = await run_maintenance(mock_session)

    assert len(duplicates) == 1
    assert mock_session.execute.await_count == 1
    mock_session.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_maintenance_creates_indexes_on_clean_table(mock_session: MagicMock) -> None:
    mock_session.execute.return_value = _rows()

    duplicates = await run_maintenance(mock_session)

    assert duplicates == []
    assert mock_session.execute.await_count == 1 + len(INDEX_STATEMENTS)
    mock_session.commit.assert_awaited_once()
