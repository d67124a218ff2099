# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam result workflow domain.

This package provides:
- ResultStatus and the transition table
- Percentage and grade computation
- ExamResultRepository with compare-and-set writes
- ResultLifecycleService for create, submit, approve, reject, publish
  and resubmit
"""

from schooldesk.domains.results.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    ResultServiceError,
    TerminalStateError,
)
from schooldesk.domains.results.repository import ExamResultRepository
from schooldesk.domains.results.service import Actor, ResultLifecycleService
from schooldesk.domains.results.status import ResultEvent, ResultStatus

__all__ = [
    "Actor",
    "ConflictError",
    "ExamResultRepository",
    "ForbiddenError",
    "InvalidInputError",
    "InvalidTransitionError",
    "NotFoundError",
    "ResultEvent",
    "ResultLifecycleService",
    "ResultServiceError",
    "ResultStatus",
    "TerminalStateError",
]
