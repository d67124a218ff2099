# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Role-based access control.

This package provides:
- Role enum and result workflow permission tokens
- RBACPolicy loaded once from YAML
- RBACGate with pure permission and route checks
"""

from schooldesk.core.rbac.gate import RBACGate
from schooldesk.core.rbac.policy import (
    DEFAULT_POLICY_PATH,
    PolicyLoadError,
    RBACPolicy,
    build_policy,
    load_policy,
)
from schooldesk.core.rbac.roles import Permissions, Role

__all__ = [
    "RBACGate",
    "RBACPolicy",
    "PolicyLoadError",
    "DEFAULT_POLICY_PATH",
    "build_policy",
    "load_policy",
    "Permissions",
    "Role",
]
