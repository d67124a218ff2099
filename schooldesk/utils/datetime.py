# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime helpers for SchoolDesk.

All timestamps are stored as timezone-aware UTC values (PostgreSQL
TIMESTAMPTZ). Audit stamps on exam results and their events are produced
with utc_now() so that ordering of the review queue is comparable across
workers.

Usage:
    from schooldesk.utils.datetime import utc_now

    submitted_at = utc_now()
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Normalize a datetime to UTC.

    Naive datetimes are assumed to already be in UTC (some drivers drop
    tzinfo on read).

    Args:
        dt: Datetime to normalize, or None.

    Returns:
        Timezone-aware UTC datetime, or None if input was None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as an ISO 8601 string in UTC.

    Args:
        dt: Datetime to format.

    Returns:
        ISO string, or None if input was None.
    """
    normalized = ensure_utc(dt)
    if normalized is None:
        return None
    return normalized.isoformat()
