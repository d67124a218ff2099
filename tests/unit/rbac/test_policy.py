# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for RBAC policy loading."""

from pathlib import Path
from typing import Any

import pytest
import yaml

from schooldesk.core.rbac import (
    DEFAULT_POLICY_PATH,
    PolicyLoadError,
    Role,
    build_policy,
    load_policy,
)


def _write(tmp_path: Path, data: Any) -> Path:
    path = tmp_path / "policy.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestLoadPolicy:
    """Tests for load_policy."""

    def test_packaged_policy_loads(self) -> None:
        policy = load_policy()
        assert DEFAULT_POLICY_PATH.is_file()
        assert "student:results:approve" in policy.role_permissions[Role.HEAD_TEACHER]
        assert policy.route_access["/login"] == frozenset()
        assert policy.dashboards[Role.PARENT] == "/children"

    def test_custom_file(self, tmp_path: Path, sample_policy_data: dict) -> None:
        policy = load_policy(_write(tmp_path, sample_policy_data))
        assert policy.role_permissions[Role.TEACHER] == frozenset({"student:results:create"})
        assert policy.route_access["/results"] == frozenset({Role.TEACHER, Role.HEAD_TEACHER})

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(PolicyLoadError) as exc_info:
            load_policy(tmp_path / "absent.yaml")
        assert "does not exist" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "policy.yaml"
        path.write_text("roles: [unclosed", encoding="utf-8")
        with pytest.raises(PolicyLoadError, match="Invalid YAML"):
            load_policy(path)

    def test_non_mapping_root(self, tmp_path: Path) -> None:
        with pytest.raises(PolicyLoadError, match="must be a mapping"):
            load_policy(_write(tmp_path, ["admin"]))

    def test_empty_file_is_empty_policy(self, tmp_path: Path) -> None:
        path = tmp_path / "policy.yaml"
        path.write_text("", encoding="utf-8")
        policy = load_policy(path)
        assert dict(policy.role_permissions) == {}
        assert policy.all_permissions == frozenset()


class TestBuildPolicy:
    """Tests for build_policy validation."""

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(PolicyLoadError, match="Unknown role 'janitor'"):
            build_policy({"roles": {"janitor": ["x:y"]}})

    def test_unknown_role_in_route_rejected(self) -> None:
        with pytest.raises(PolicyLoadError, match="Unknown role"):
            build_policy({"routes": {"/x": ["janitor"]}})

    def test_non_list_permissions_rejected(self) -> None:
        with pytest.raises(PolicyLoadError, match="list of strings"):
            build_policy({"roles": {"teacher": "student:results:create"}})

    def test_route_must_be_path(self) -> None:
        with pytest.raises(PolicyLoadError, match="starting with '/'"):
            build_policy({"routes": {"results": ["teacher"]}})

    def test_section_must_be_mapping(self) -> None:
        with pytest.raises(PolicyLoadError, match="'routes' must be a mapping"):
            build_policy({"routes": ["/x"]})

    def test_role_names_normalised(self) -> None:
        policy = build_policy({"roles": {"head_teacher": ["a:b"]}})
        assert policy.role_permissions[Role.HEAD_TEACHER] == frozenset({"a:b"})

    def test_policy_is_read_only(self, sample_policy_data: dict) -> None:
        policy = build_policy(sample_policy_data)
        with pytest.raises(TypeError):
            policy.role_permissions[Role.ADMIN] = frozenset()  # type: ignore[index]
        with pytest.raises(AttributeError):
            policy.dashboards = {}  # type: ignore[misc]
