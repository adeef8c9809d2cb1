"""Tests for the YAML governance route table."""
from __future__ import annotations

from pathlib import Path

import pytest

from lms_governance.governance.config import load_governance_config
from lms_governance.governance.enums import Capability, UserRole
from lms_governance.governance.errors import GovernanceConfigError

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config" / "governance.yaml"


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "governance.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_and_match(tmp_path):
    cfg = load_governance_config(
        _write(
            tmp_path,
            """
governance:
  routes:
    - path: /colleges/{collegeId}/courses
      methods: [GET, POST]
      require_tenant_isolation: true
      required_capability: canCreateCourses
      roles_forbidden: [STUDENT]
    - path: /colleges/reports
      methods: [GET]
      roles: [BITFLOW_OWNER]
""",
        )
    )

    entry = cfg.match("/colleges/C1/courses", "post")
    assert entry is not None
    assert entry.requirement.require_tenant_isolation
    assert entry.requirement.required_capability is Capability.CAN_CREATE_COURSES
    assert entry.requirement.roles_forbidden == frozenset({UserRole.STUDENT})

    # Route template lookups hit the exact table.
    assert cfg.match("/colleges/{collegeId}/courses", "GET") is entry

    reports = cfg.match("/colleges/reports", "GET")
    assert reports is not None
    assert reports.allowed_roles == frozenset({UserRole.BITFLOW_OWNER})
    assert reports.requirement.is_empty

    assert cfg.match("/colleges/C1/courses", "DELETE") is None
    assert cfg.match("/unknown", "GET") is None


def test_same_operation_gets_same_requirement_object(tmp_path):
    cfg = load_governance_config(
        _write(
            tmp_path,
            """
governance:
  routes:
    - path: /departments/{departmentId}
      require_department_scope: true
""",
        )
    )
    assert cfg.match("/departments/D1", "GET") is cfg.match("/departments/D2", "GET")


def test_auth_defaults(tmp_path):
    cfg = load_governance_config(_write(tmp_path, "governance:\n  routes: []\n"))
    assert cfg.auth.authorization_header == "Authorization"
    assert cfg.auth.bearer_prefix == "Bearer"


def test_missing_top_level_key(tmp_path):
    with pytest.raises(GovernanceConfigError, match="governance"):
        load_governance_config(_write(tmp_path, "routes: []\n"))


def test_unknown_capability_rejected_at_load(tmp_path):
    with pytest.raises(GovernanceConfigError):
        load_governance_config(
            _write(
                tmp_path,
                """
governance:
  routes:
    - path: /x
      required_capability: canFly
""",
            )
        )


def test_unknown_role_rejected_at_load(tmp_path):
    with pytest.raises(GovernanceConfigError):
        load_governance_config(
            _write(
                tmp_path,
                """
governance:
  routes:
    - path: /x
      roles_forbidden: [JANITOR]
""",
            )
        )


def test_duplicate_route_rejected(tmp_path):
    with pytest.raises(GovernanceConfigError, match="duplicate"):
        load_governance_config(
            _write(
                tmp_path,
                """
governance:
  routes:
    - path: /x
      methods: [GET]
    - path: /x
      methods: [get]
""",
            )
        )


def test_repo_config_loads():
    cfg = load_governance_config(REPO_CONFIG)
    entry = cfg.match("/colleges/{collegeId}/departments", "GET")
    assert entry is not None
    assert entry.requirement.require_tenant_isolation
