"""
End-to-end tests: HTTP request -> global governance dependency -> route.

The app is built without running its lifespan; state and dependencies are
wired to an in-memory database seeded with the demo data.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from lms_governance.db.init_db import init_db
from lms_governance.db.session import get_db
from lms_governance.governance.config import load_governance_config
from lms_governance.governance.enums import AuditAction, UserRole
from lms_governance.governance.errors import GovernanceStoreError
from lms_governance.governance.store import CapabilityStore
from lms_governance.main import build_audit_sink, create_app
from lms_governance.models.audit import AuditLog
from lms_governance.models.governance import College, Department, User
from lms_governance.settings import Settings, get_settings

SECRET = "test-secret"
REPO_CONFIG = Path(__file__).resolve().parents[2] / "config" / "governance.yaml"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret=SECRET,
        audit_dead_letter_path=str(tmp_path / "dead_letter.jsonl"),
        audit_redacted_fields=["ssn"],
    )


@pytest.fixture
def seeded(engine, session_factory):
    init_db(engine, seed=True)
    with session_factory() as db:
        users = {u.email.removesuffix(".example"): u for u in db.scalars(select(User))}
        colleges = {c.name.split()[0]: c for c in db.scalars(select(College))}
        depts = {d.code: d for d in db.scalars(select(Department))}
    return {"users": users, "colleges": colleges, "depts": depts}


@pytest.fixture
def client(settings, session_factory, seeded):
    app = create_app()
    app.state.governance_config = load_governance_config(REPO_CONFIG)
    app.state.audit_sink = build_audit_sink(settings, session_factory=session_factory)

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)


def _token(user: User, **extra) -> dict[str, str]:
    payload = {"sub": user.id, "exp": datetime.now(timezone.utc) + timedelta(minutes=5), **extra}
    return {"Authorization": f"Bearer {jwt.encode(payload, SECRET, algorithm='HS256')}"}


def _audit_rows(session_factory) -> list[AuditLog]:
    with session_factory() as db:
        return list(db.scalars(select(AuditLog).order_by(AuditLog.timestamp)).all())


def _user(seeded, key: str) -> User:
    return seeded["users"][key]


# ---- Authentication collaborator ----------------------------------------------------


def test_health_is_public(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_me_requires_authentication(client):
    assert client.get("/me").status_code == 401


def test_me_returns_actor_from_user_row(client, seeded):
    faculty = _user(seeded, "faculty@northfield")
    resp = client.get("/me", headers=_token(faculty, role="BITFLOW_OWNER"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == faculty.id
    # Role comes from the database, not from token claims.
    assert body["role"] == "FACULTY"
    assert body["department_id"] == seeded["depts"]["ANAT"].id


def test_malformed_authorization_header_is_400(client):
    assert client.get("/me", headers={"Authorization": "Token abc"}).status_code == 400


def test_invalid_or_expired_token_is_401(client, seeded):
    faculty = _user(seeded, "faculty@northfield")
    bad = jwt.encode({"sub": faculty.id, "exp": datetime.now(timezone.utc) + timedelta(minutes=5)}, "wrong", algorithm="HS256")
    assert client.get("/me", headers={"Authorization": f"Bearer {bad}"}).status_code == 401

    expired = jwt.encode({"sub": faculty.id, "exp": datetime.now(timezone.utc) - timedelta(minutes=5)}, SECRET, algorithm="HS256")
    assert client.get("/me", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


# ---- Tenant isolation ---------------------------------------------------------------


def test_college_admin_reads_own_college(client, seeded, session_factory):
    admin = _user(seeded, "admin@northfield")
    college = seeded["colleges"]["Northfield"]

    resp = client.get(f"/colleges/{college.id}/departments", headers=_token(admin))

    assert resp.status_code == 200
    assert {d["code"] for d in resp.json()} == {"ANAT", "PHYS"}
    assert _audit_rows(session_factory) == []


def test_cross_tenant_request_is_denied_generically_and_audited(client, seeded, session_factory):
    other_admin = _user(seeded, "admin@riverside")
    college = seeded["colleges"]["Northfield"]

    resp = client.get(
        f"/colleges/{college.id}/departments",
        headers={**_token(other_admin), "User-Agent": "campus-client/1.0"},
    )

    assert resp.status_code == 403
    assert resp.json() == {"detail": "Access denied"}
    assert "CROSS_TENANT" not in resp.text

    rows = _audit_rows(session_factory)
    assert len(rows) == 1
    assert rows[0].action == AuditAction.CROSS_TENANT_ACCESS_ATTEMPT
    assert rows[0].user_id == other_admin.id
    assert rows[0].college_id == seeded["colleges"]["Riverside"].id
    assert rows[0].request_method == "GET"
    assert rows[0].request_path == f"/colleges/{college.id}/departments"
    assert rows[0].request_params["path"] == {"collegeId": college.id}
    assert rows[0].user_agent == "campus-client/1.0"


def test_publisher_admin_is_denied_college_data(client, seeded, session_factory):
    publisher = _user(seeded, "admin@publisher")
    college = seeded["colleges"]["Riverside"]

    resp = client.get(f"/colleges/{college.id}/departments", headers=_token(publisher))

    assert resp.status_code == 403
    rows = _audit_rows(session_factory)
    assert [r.action for r in rows] == [AuditAction.DATA_ISOLATION_BREACH_ATTEMPT]
    assert rows[0].publisher_id == "pub-medbooks"


def test_owner_crosses_tenants_without_violation(client, seeded, session_factory):
    owner = _user(seeded, "owner@bitflow")
    college = seeded["colleges"]["Northfield"]

    resp = client.get(f"/colleges/{college.id}/departments", headers=_token(owner))

    assert resp.status_code == 200
    assert _audit_rows(session_factory) == []


@pytest.mark.parametrize("suffix", ["faculty-assignments", "analytics"])
def test_department_routes_stay_inside_the_callers_college(client, seeded, session_factory, suffix):
    other_admin = _user(seeded, "admin@riverside")
    anatomy = seeded["depts"]["ANAT"]

    resp = client.get(f"/departments/{anatomy.id}/{suffix}", headers=_token(other_admin))

    assert resp.status_code == 403
    assert resp.json() == {"detail": "Access denied"}
    rows = _audit_rows(session_factory)
    assert [r.action for r in rows] == [AuditAction.CROSS_TENANT_ACCESS_ATTEMPT]
    assert rows[0].user_id == other_admin.id


def test_department_routes_allow_same_college_admin(client, seeded):
    admin = _user(seeded, "admin@northfield")
    anatomy = seeded["depts"]["ANAT"]

    resp = client.get(f"/departments/{anatomy.id}/faculty-assignments", headers=_token(admin))

    assert resp.status_code == 200
    assert [a["subjects"] for a in resp.json()] == [["Gross Anatomy", "Histology"]]


def test_violation_description_keeps_redacted_query_string(client, seeded, session_factory):
    other_admin = _user(seeded, "admin@riverside")
    anatomy = seeded["depts"]["ANAT"]

    resp = client.get(
        f"/departments/{anatomy.id}/faculty-assignments",
        params={"view": "full", "token": "s3cr3t"},
        headers=_token(other_admin),
    )

    assert resp.status_code == 403
    (row,) = _audit_rows(session_factory)
    assert f"GET /departments/{anatomy.id}/faculty-assignments?view=full&token=[REDACTED]" in row.description
    assert "s3cr3t" not in row.description
    assert row.request_params["query"] == {"view": "full", "token": "[REDACTED]"}


def test_repeated_denials_each_recorded(client, seeded, session_factory):
    publisher = _user(seeded, "admin@publisher")
    college = seeded["colleges"]["Northfield"]

    for _ in range(3):
        assert client.get(f"/colleges/{college.id}/departments", headers=_token(publisher)).status_code == 403

    assert len(_audit_rows(session_factory)) == 3


# ---- Department scope ---------------------------------------------------------------


def test_hod_reads_own_department(client, seeded):
    hod = _user(seeded, "hod.anatomy@northfield")
    college = seeded["colleges"]["Northfield"]
    anatomy = seeded["depts"]["ANAT"]

    resp = client.get(f"/colleges/{college.id}/departments/{anatomy.id}", headers=_token(hod))

    assert resp.status_code == 200
    assert resp.json()["hod_id"] == hod.id


def test_hod_other_department_is_role_boundary_violation(client, seeded, session_factory):
    hod = _user(seeded, "hod.anatomy@northfield")
    college = seeded["colleges"]["Northfield"]
    physiology = seeded["depts"]["PHYS"]

    resp = client.get(f"/colleges/{college.id}/departments/{physiology.id}", headers=_token(hod))

    assert resp.status_code == 403
    assert [r.action for r in _audit_rows(session_factory)] == [AuditAction.ROLE_BOUNDARY_VIOLATION]


def test_hod_my_departments_uses_hod_lookup(client, seeded):
    hod = _user(seeded, "hod.anatomy@northfield")
    resp = client.get("/departments/mine", headers=_token(hod))
    assert resp.status_code == 200
    assert [d["code"] for d in resp.json()] == ["ANAT"]


def test_role_gate_rejects_without_audit(client, seeded, session_factory):
    faculty = _user(seeded, "faculty@northfield")
    resp = client.get("/departments/mine", headers=_token(faculty))
    assert resp.status_code == 403
    assert resp.json() == {"detail": "Access denied"}
    assert _audit_rows(session_factory) == []


def test_role_gate_requires_authentication(client):
    assert client.get("/departments/mine").status_code == 401


@pytest.mark.parametrize(
    "template",
    [
        "/colleges/{college}/departments",
        "/colleges/{college}/departments/{dept}",
        "/departments/mine",
        "/departments/{dept}/faculty-assignments",
        "/departments/{dept}/analytics",
        "/audit/violations",
    ],
)
def test_governed_routes_reject_anonymous_callers(client, seeded, session_factory, template):
    path = template.format(college=seeded["colleges"]["Northfield"].id, dept=seeded["depts"]["PHYS"].id)

    resp = client.get(path)

    assert resp.status_code == 401
    assert _audit_rows(session_factory) == []


# ---- Faculty capability (decorator-governed route) ---------------------------------


def test_faculty_with_capability_reads_analytics(client, seeded):
    faculty = _user(seeded, "faculty@northfield")
    anatomy = seeded["depts"]["ANAT"]

    resp = client.get(f"/departments/{anatomy.id}/analytics", headers=_token(faculty))

    assert resp.status_code == 200
    body = resp.json()
    assert body["faculty_total"] == 1
    assert body["faculty_active"] == 1
    assert body["subjects"] == ["Gross Anatomy", "Histology"]


def test_faculty_unassigned_department_is_permission_denied(client, seeded, session_factory):
    faculty = _user(seeded, "faculty@northfield")
    physiology = seeded["depts"]["PHYS"]

    resp = client.get(f"/departments/{physiology.id}/analytics", headers=_token(faculty))

    assert resp.status_code == 403
    assert [r.action for r in _audit_rows(session_factory)] == [AuditAction.PERMISSION_DENIED]


def test_forbidden_role_on_decorated_route(client, seeded, session_factory):
    student = _user(seeded, "student@northfield")
    anatomy = seeded["depts"]["ANAT"]

    resp = client.get(f"/departments/{anatomy.id}/analytics", headers=_token(student))

    assert resp.status_code == 403
    assert [r.action for r in _audit_rows(session_factory)] == [AuditAction.ROLE_BOUNDARY_VIOLATION]


def test_hod_scope_applies_to_decorated_route(client, seeded):
    hod = _user(seeded, "hod.anatomy@northfield")
    assert client.get(f"/departments/{seeded['depts']['ANAT'].id}/analytics", headers=_token(hod)).status_code == 200
    assert client.get(f"/departments/{seeded['depts']['PHYS'].id}/analytics", headers=_token(hod)).status_code == 403


# ---- Infrastructure errors ----------------------------------------------------------


def test_store_failure_is_503_not_a_decision(client, seeded, session_factory, monkeypatch):
    def broken(self, department_id):
        raise GovernanceStoreError("db down")

    monkeypatch.setattr(CapabilityStore, "department_by_id", broken)
    hod = _user(seeded, "hod.anatomy@northfield")
    college = seeded["colleges"]["Northfield"]

    resp = client.get(f"/colleges/{college.id}/departments/{seeded['depts']['PHYS'].id}", headers=_token(hod))

    assert resp.status_code == 503
    assert _audit_rows(session_factory) == []


# ---- Audit reporting ----------------------------------------------------------------


def test_owner_lists_violations(client, seeded):
    publisher = _user(seeded, "admin@publisher")
    owner = _user(seeded, "owner@bitflow")
    college = seeded["colleges"]["Northfield"]
    client.get(f"/colleges/{college.id}/departments", headers=_token(publisher))

    resp = client.get("/audit/violations", params={"action": "DATA_ISOLATION_BREACH_ATTEMPT"}, headers=_token(owner))

    assert resp.status_code == 200
    body = resp.json()
    assert len(body) == 1
    assert body[0]["user_id"] == publisher.id


def test_non_owner_cannot_list_violations(client, seeded):
    admin = _user(seeded, "admin@northfield")
    assert client.get("/audit/violations", headers=_token(admin)).status_code == 403


def test_seeded_roles_cover_every_role(seeded):
    assert {u.role for u in seeded["users"].values()} == set(UserRole)


def test_build_audit_sink_logs_its_escalation_channels(settings, session_factory, caplog):
    with caplog.at_level(logging.INFO, logger="lms_governance.main"):
        build_audit_sink(settings, session_factory=session_factory)

    message = next(r.getMessage() for r in caplog.records if "Audit sink ready" in r.getMessage())
    assert settings.audit_dead_letter_path in message
    assert "webhook alerts: off" in message
