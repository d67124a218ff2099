# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for development seed data."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from schooldesk.core.rbac import Role
from schooldesk.infrastructure.database.models import User
from schooldesk.infrastructure.database.seeds.school import seed_users


def _session(existing: User | None = None) -> MagicMock:
    session = MagicMock()
    lookup = MagicMock()
    lookup.scalar_one_or_none.return_value = existing
    session.execute = AsyncMock(return_value=lookup)
    session.flush = AsyncMock()
    return session


@pytest.mark.asyncio
async def test_seeds_one_user_per_role() -> None:
    session = _session()

    users = await seed_users(session)

    assert set(users) == {role.value for role in Role}
    assert all(user.role == role for role, user in users.items())
    assert session.add.call_count == len(Role)
    session.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_existing_users_are_reused() -> None:
    existing = User(email="admin@schooldesk.local", first_name="A", last_name="B", role="admin")
    session = _session(existing)

    users = await seed_users(session)

    assert all(user is existing for user in users.values())
    session.add.assert_not_called()
