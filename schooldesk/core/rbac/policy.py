# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access control policy loading.

The policy (role permission matrix, route allow-lists and dashboard
routes) is read from a YAML file once at process start and frozen into an
RBACPolicy. The frozen policy is passed explicitly to the RBAC gate and to
the HTTP route guard; nothing mutates it afterwards.

Example:
    >>> from schooldesk.core.rbac.policy import load_policy
    >>> policy = load_policy()
    >>> "student:results:approve" in policy.role_permissions[Role.HEAD_TEACHER]
    True
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from schooldesk.core.rbac.roles import Role

DEFAULT_POLICY_PATH = Path(__file__).with_name("policy.yaml")


class PolicyLoadError(Exception):
    """Raised when a policy file cannot be read or is malformed."""

    def __init__(self, source: Path | str, reason: str) -> None:
        """Initialize PolicyLoadError.

        Args:
            source: Path (or label) of the policy that failed to load.
            reason: Why the policy was rejected.
        """
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load RBAC policy '{source}': {reason}")


@dataclass(frozen=True)
class RBACPolicy:
    """Immutable access control tables.

    Attributes:
        role_permissions: Role to the set of permission tokens it holds.
        route_access: Route path to the roles allowed on it. An empty set
            marks a public route.
        dashboards: Role to its landing route.
    """

    role_permissions: Mapping[Role, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    route_access: Mapping[str, frozenset[Role]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    dashboards: Mapping[Role, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def all_permissions(self) -> frozenset[str]:
        """Every permission token named anywhere in the matrix."""
        return frozenset().union(*self.role_permissions.values())


def _parse_role(source: Path | str, value: Any, context: str) -> Role:
    role = Role.parse(value)
    if role is None:
        raise PolicyLoadError(source, f"Unknown role '{value}' in {context}")
    return role


def _string_list(source: Path | str, value: Any, context: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise PolicyLoadError(source, f"{context} must be a list of strings")
    return value


def build_policy(data: Mapping[str, Any], source: Path | str = "<memory>") -> RBACPolicy:
    """Build an RBACPolicy from already-parsed policy data.

    Args:
        data: Mapping with optional ``roles``, ``routes`` and ``dashboards``
            sections.
        source: Label used in error messages.

    Returns:
        Frozen policy.

    Raises:
        PolicyLoadError: If a section has the wrong shape or names an
            unknown role.
    """
    for section in ("roles", "routes", "dashboards"):
        if data.get(section) is not None and not isinstance(data[section], dict):
            raise PolicyLoadError(source, f"'{section}' must be a mapping")

    role_permissions: dict[Role, frozenset[str]] = {}
    for role_name, permissions in (data.get("roles") or {}).items():
        role = _parse_role(source, role_name, "roles")
        perms = _string_list(source, permissions, f"roles.{role_name}")
        role_permissions[role] = frozenset(p.strip() for p in perms if p.strip())

    route_access: dict[str, frozenset[Role]] = {}
    for route, roles in (data.get("routes") or {}).items():
        if not isinstance(route, str) or not route.startswith("/"):
            raise PolicyLoadError(source, f"Route '{route}' must be a path starting with '/'")
        names = _string_list(source, roles, f"routes.{route}")
        route_access[route] = frozenset(
            _parse_role(source, name, f"routes.{route}") for name in names
        )

    dashboards: dict[Role, str] = {}
    for role_name, route in (data.get("dashboards") or {}).items():
        role = _parse_role(source, role_name, "dashboards")
        if not isinstance(route, str):
            raise PolicyLoadError(source, f"dashboards.{role_name} must be a string")
        dashboards[role] = route

    return RBACPolicy(
        role_permissions=MappingProxyType(role_permissions),
        route_access=MappingProxyType(route_access),
        dashboards=MappingProxyType(dashboards),
    )


def load_policy(path: Path | None = None) -> RBACPolicy:
    """Load and freeze a policy file.

    Args:
        path: YAML policy file. Defaults to the policy shipped with the
            package.

    Returns:
        Frozen policy.

    Raises:
        PolicyLoadError: If the file is missing, unreadable, not valid
            YAML, or malformed.
    """
    path = path or DEFAULT_POLICY_PATH

    if not path.is_file():
        raise PolicyLoadError(path, "File does not exist")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyLoadError(path, f"Cannot read file: {e}") from e

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise PolicyLoadError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, dict):
        raise PolicyLoadError(path, f"YAML root must be a mapping, got {type(parsed).__name__}")

    return build_policy(parsed, source=path)
