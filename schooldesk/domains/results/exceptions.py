# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions for the exam result workflow.

This module defines the exception hierarchy for result operations:
- ResultServiceError: Base exception for all result workflow errors
- InvalidInputError: Malformed or out-of-range input
- NotFoundError: Referenced record does not exist
- ForbiddenError: Missing permission or ownership
- ConflictError: Duplicate (student, exam, subject) record
- InvalidTransitionError: Transition not legal from the current status
- TerminalStateError: Record is published and read-only

Each class carries a stable ``kind`` string that the HTTP layer maps to a
status code.
"""


class ResultServiceError(Exception):
    """Base exception for result workflow operations.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    kind = "result_error"

    def __init__(self, message: str, details: dict | None = None):
        """Initialize result workflow error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class InvalidInputError(ResultServiceError):
    """Malformed or out-of-range field (score above max marks, blank reason)."""

    kind = "invalid_input"


class NotFoundError(ResultServiceError):
    """Referenced result, exam, student, subject or classroom is missing."""

    kind = "not_found"


class ForbiddenError(ResultServiceError):
    """Actor lacks the permission or ownership required for the operation."""

    kind = "forbidden"


class ConflictError(ResultServiceError):
    """A result already exists for the (student, exam, subject) identity."""

    kind = "conflict"


class InvalidTransitionError(ResultServiceError):
    """Requested transition is not legal from the record's current status.

    Also raised when a concurrent writer changed the status first.

    Attributes:
        current_status: Status observed when the transition was refused.
    """

    kind = "invalid_transition"

    def __init__(
        self,
        message: str,
        current_status: str | None = None,
        details: dict | None = None,
    ):
        """Initialize invalid transition error.

        Args:
            message: Human-readable error description.
            current_status: Status observed when the transition was refused.
            details: Optional dictionary with additional error context.
        """
        self.current_status = current_status
        super().__init__(message, details)


class TerminalStateError(ResultServiceError):
    """Record is published; no further mutation is permitted."""

    kind = "terminal_state"
