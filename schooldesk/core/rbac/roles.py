# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Roles and permission tokens.

Permission tokens have the form ``resource:action[:scope]``. A trailing
``:self`` scope marks a permission that only covers records owned by (or
linked to) the acting user.
"""

from enum import Enum

SELF_SCOPE_SUFFIX = ":self"


class Role(str, Enum):
    """System roles. Immutable for the lifetime of a session."""

    ADMIN = "admin"
    TEACHER = "teacher"
    HEAD_TEACHER = "head-teacher"
    ACCOUNTS = "accounts"
    PARENT = "parent"
    STUDENT = "student"

    @classmethod
    def parse(cls, value: "Role | str | None") -> "Role | None":
        """Resolve a role from user input.

        Matching is case-insensitive and treats underscores as hyphens,
        so ``head_teacher`` and ``Head-Teacher`` both resolve.

        Args:
            value: Role, role string, or None.

        Returns:
            Matching Role, or None when the value names no known role.
        """
        if isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            return None


class Permissions:
    """Permission tokens used by the result workflow."""

    RESULTS_CREATE = "student:results:create"
    RESULTS_UPDATE = "student:results:update"
    RESULTS_DELETE = "student:results:delete"
    RESULTS_VIEW = "student:results:view"
    RESULTS_VIEW_SELF = "student:results:view:self"
    RESULTS_APPROVE = "student:results:approve"
    RESULTS_PUBLISH = "student:results:publish"

