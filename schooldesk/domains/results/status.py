# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam result state machine.

Every legal move is one entry in TRANSITIONS. Who may trigger an event is
one entry in GUARDS, and which permission the RBAC gate must grant is one
entry in EVENT_PERMISSIONS. The lifecycle service consults these tables
and nothing else when deciding whether a transition is legal.

    draft --submit--> submitted --approve--> approved --publish--> published
                         |  ^
                    reject  resubmit
                         v  |
                        rejected
"""

from dataclasses import dataclass
from enum import Enum

from schooldesk.core.rbac.roles import Permissions, Role


class ResultStatus(str, Enum):
    """Status of an exam result record."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    PUBLISHED = "published"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        """Check whether no transition may leave this status."""
        return self in TERMINAL_STATUSES


class ResultEvent(str, Enum):
    """Operations recorded against an exam result."""

    CREATE = "create"
    UPDATE = "update"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    PUBLISH = "publish"
    RESUBMIT = "resubmit"
    DELETE = "delete"


TERMINAL_STATUSES = frozenset({ResultStatus.PUBLISHED})

# (from, event) -> to
TRANSITIONS: dict[tuple[ResultStatus, ResultEvent], ResultStatus] = {
    (ResultStatus.DRAFT, ResultEvent.SUBMIT): ResultStatus.SUBMITTED,
    (ResultStatus.SUBMITTED, ResultEvent.APPROVE): ResultStatus.APPROVED,
    (ResultStatus.SUBMITTED, ResultEvent.REJECT): ResultStatus.REJECTED,
    (ResultStatus.APPROVED, ResultEvent.PUBLISH): ResultStatus.PUBLISHED,
    (ResultStatus.REJECTED, ResultEvent.RESUBMIT): ResultStatus.SUBMITTED,
}

# Events that keep the status but are only allowed from these statuses
IN_PLACE_EVENTS: dict[ResultEvent, frozenset[ResultStatus]] = {
    ResultEvent.UPDATE: frozenset({ResultStatus.DRAFT, ResultStatus.SUBMITTED}),
    ResultEvent.DELETE: frozenset({ResultStatus.DRAFT}),
}

CREATE_STATUSES = frozenset({ResultStatus.DRAFT, ResultStatus.SUBMITTED})


@dataclass(frozen=True)
class TransitionGuard:
    """Who may trigger an event.

    Attributes:
        roles: Roles allowed regardless of ownership.
        owner_allowed: Whether the original submitter is allowed.
    """

    roles: frozenset[Role]
    owner_allowed: bool = False

    def allows(self, role: Role | None, is_owner: bool) -> bool:
        """Check the guard for an actor.

        Args:
            role: Actor's role.
            is_owner: Whether the actor submitted the record.

        Returns:
            True if the actor may trigger the event.
        """
        if role is not None and role in self.roles:
            return True
        return self.owner_allowed and is_owner


_REVIEWERS = frozenset({Role.HEAD_TEACHER, Role.ADMIN})

GUARDS: dict[ResultEvent, TransitionGuard] = {
    ResultEvent.CREATE: TransitionGuard(
        roles=frozenset({Role.TEACHER, Role.HEAD_TEACHER, Role.ADMIN}),
    ),
    ResultEvent.UPDATE: TransitionGuard(roles=frozenset({Role.ADMIN}), owner_allowed=True),
    ResultEvent.SUBMIT: TransitionGuard(roles=_REVIEWERS, owner_allowed=True),
    ResultEvent.APPROVE: TransitionGuard(roles=_REVIEWERS),
    ResultEvent.REJECT: TransitionGuard(roles=_REVIEWERS),
    ResultEvent.PUBLISH: TransitionGuard(roles=_REVIEWERS),
    ResultEvent.RESUBMIT: TransitionGuard(roles=frozenset(), owner_allowed=True),
    ResultEvent.DELETE: TransitionGuard(roles=frozenset({Role.ADMIN}), owner_allowed=True),
}

EVENT_PERMISSIONS: dict[ResultEvent, str] = {
    ResultEvent.CREATE: Permissions.RESULTS_CREATE,
    ResultEvent.UPDATE: Permissions.RESULTS_UPDATE,
    ResultEvent.SUBMIT: Permissions.RESULTS_CREATE,
    ResultEvent.APPROVE: Permissions.RESULTS_APPROVE,
    ResultEvent.REJECT: Permissions.RESULTS_APPROVE,
    ResultEvent.PUBLISH: Permissions.RESULTS_PUBLISH,
    ResultEvent.RESUBMIT: Permissions.RESULTS_UPDATE,
    ResultEvent.DELETE: Permissions.RESULTS_DELETE,
}


def next_status(current: ResultStatus, event: ResultEvent) -> ResultStatus | None:
    """Look up the target status of an event.

    Args:
        current: Current record status.
        event: Requested event.

    Returns:
        Target status, the unchanged status for a permitted in-place event,
        or None when the event is not legal from ``current``.
    """
    if event in IN_PLACE_EVENTS:
        return current if current in IN_PLACE_EVENTS[event] else None
    return TRANSITIONS.get((current, event))


def source_statuses(event: ResultEvent) -> frozenset[ResultStatus]:
    """Get every status from which an event is legal.

    Args:
        event: Requested event.

    Returns:
        Statuses used as the expected value of the conditional write.
    """
    if event in IN_PLACE_EVENTS:
        return IN_PLACE_EVENTS[event]
    return frozenset(src for (src, ev) in TRANSITIONS if ev == event)
