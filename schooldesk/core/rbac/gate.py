# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""RBAC gate.

Pure decisions over a frozen RBACPolicy: no I/O, no exceptions, same
answer for the same inputs. Denial is a ``False`` return; callers decide
what the user sees (403, redirect, hidden UI).

The gate never compares identities. For permissions carrying the
``:self`` scope, callers must additionally check that the acting user owns
(or is linked to) the record.

Example:
    >>> gate = RBACGate(load_policy())
    >>> gate.has_permission("teacher", "student:results:approve")
    False
    >>> gate.has_permission("admin", "anything:at:all")
    True
"""

from typing import Iterable

from schooldesk.core.rbac.policy import RBACPolicy
from schooldesk.core.rbac.roles import SELF_SCOPE_SUFFIX, Role

RoleLike = Role | str | None


class RBACGate:
    """Role and route access checks over a frozen policy.

    Attributes:
        policy: The policy consulted by every check.
    """

    def __init__(self, policy: RBACPolicy) -> None:
        """Initialize the gate.

        Args:
            policy: Frozen access control policy.
        """
        self.policy = policy

    def has_permission(self, role: RoleLike, permission: str) -> bool:
        """Check whether a role holds a permission.

        Admin holds every permission. Roles missing from the policy hold
        none.

        Args:
            role: Role or role string.
            permission: Permission token.

        Returns:
            True if allowed.
        """
        resolved = Role.parse(role)
        if resolved is None:
            return False
        if resolved is Role.ADMIN:
            return True
        return permission in self.policy.role_permissions.get(resolved, frozenset())

    def has_any_permission(self, role: RoleLike, permissions: Iterable[str]) -> bool:
        """Check whether a role holds at least one of the permissions.

        Args:
            role: Role or role string.
            permissions: Permission tokens. Empty means False.

        Returns:
            True if any individual check passes.
        """
        return any(self.has_permission(role, p) for p in permissions)

    def has_all_permissions(self, role: RoleLike, permissions: Iterable[str]) -> bool:
        """Check whether a role holds every one of the permissions.

        Args:
            role: Role or role string.
            permissions: Permission tokens. Empty means True.

        Returns:
            True only if every check passes.
        """
        return all(self.has_permission(role, p) for p in permissions)

    def can_access_route(self, role: RoleLike, route: str) -> bool:
        """Check whether a role may open a route.

        Admin may open every route. A route with an empty allow-list is
        public. A route missing from the policy is closed to everyone
        except admin.

        Args:
            role: Role or role string.
            route: Route path.

        Returns:
            True if allowed.
        """
        resolved = Role.parse(role)
        if resolved is Role.ADMIN:
            return True
        allowed = self.policy.route_access.get(route)
        if allowed is None:
            return False
        if not allowed:
            return True
        return resolved is not None and resolved in allowed

    @staticmethod
    def is_self_access_only(permission: str) -> bool:
        """Check whether a permission only covers the caller's own records.

        Args:
            permission: Permission token.

        Returns:
            True for tokens ending in the ``:self`` scope.
        """
        return isinstance(permission, str) and permission.endswith(SELF_SCOPE_SUFFIX)

    def permissions_for(self, role: RoleLike) -> frozenset[str]:
        """Get every permission a role holds.

        Args:
            role: Role or role string.

        Returns:
            Permission set (all known permissions for admin).
        """
        resolved = Role.parse(role)
        if resolved is None:
            return frozenset()
        if resolved is Role.ADMIN:
            return self.policy.all_permissions
        return self.policy.role_permissions.get(resolved, frozenset())

    def accessible_routes(self, role: RoleLike) -> list[str]:
        """List the routes a role may open, public routes included.

        Args:
            role: Role or role string.

        Returns:
            Sorted route paths.
        """
        return sorted(
            route for route in self.policy.route_access if self.can_access_route(role, route)
        )

    def dashboard_route(self, role: RoleLike) -> str:
        """Get the landing route for a role.

        Args:
            role: Role or role string.

        Returns:
            Dashboard path, ``/`` when none is configured.
        """
        resolved = Role.parse(role)
        if resolved is None:
            return "/"
        return self.policy.dashboards.get(resolved, "/")
