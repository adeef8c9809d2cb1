from __future__ import annotations

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session, sessionmaker

from lms_governance.db.base import Base
from lms_governance.governance.enums import AssignmentStatus, UserRole
from lms_governance.models import audit as _audit  # noqa: F401  (register audit_logs table)
from lms_governance.models.governance import College, Department, FacultyAssignment, FacultyPermission, User


def init_db(engine: Engine, *, seed: bool = True) -> None:
    """
    Create tables and, optionally, seed demo data.

    The seed is small and deterministic so the governance behavior can be
    tried without extra setup.
    """

    Base.metadata.create_all(bind=engine)
    if not seed:
        return

    SessionLocal = sessionmaker(bind=engine, autoflush=False, class_=Session)
    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        _seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(College.id).limit(1)).first() is not None


def _seed(db: Session) -> None:
    # Colleges
    northfield = College(name="Northfield Medical College")
    riverside = College(name="Riverside College of Health Sciences")
    db.add_all([northfield, riverside])
    db.flush()

    # Users (one per role)
    owner = User(email="owner@bitflow.example", full_name="Olive Owner", role=UserRole.BITFLOW_OWNER)
    publisher = User(
        email="admin@publisher.example",
        full_name="Pat Publisher",
        role=UserRole.PUBLISHER_ADMIN,
        publisher_id="pub-medbooks",
    )
    admin = User(
        email="admin@northfield.example",
        full_name="Ada Admin",
        role=UserRole.COLLEGE_ADMIN,
        college_id=northfield.id,
    )
    dean = User(email="dean@northfield.example", full_name="Dev Dean", role=UserRole.COLLEGE_DEAN, college_id=northfield.id)
    hod = User(email="hod.anatomy@northfield.example", full_name="Hana Head", role=UserRole.COLLEGE_HOD, college_id=northfield.id)
    faculty = User(
        email="faculty@northfield.example",
        full_name="Farid Faculty",
        role=UserRole.FACULTY,
        college_id=northfield.id,
    )
    student = User(email="student@northfield.example", full_name="Sam Student", role=UserRole.STUDENT, college_id=northfield.id)
    other_admin = User(
        email="admin@riverside.example",
        full_name="Rita Riverside",
        role=UserRole.COLLEGE_ADMIN,
        college_id=riverside.id,
    )
    db.add_all([owner, publisher, admin, dean, hod, faculty, student, other_admin])
    db.flush()

    # Departments
    anatomy = Department(college_id=northfield.id, name="Anatomy", code="ANAT", hod_id=hod.id)
    physiology = Department(college_id=northfield.id, name="Physiology", code="PHYS")
    db.add_all([anatomy, physiology])
    db.flush()

    hod.department_id = anatomy.id
    faculty.department_id = anatomy.id

    # Permission sets + assignment
    lecturer = FacultyPermission(
        college_id=northfield.id,
        name="Lecturer",
        can_view_analytics=True,
        can_upload_notes=True,
        can_schedule_lectures=True,
    )
    db.add(lecturer)
    db.flush()

    db.add(
        FacultyAssignment(
            user_id=faculty.id,
            department_id=anatomy.id,
            permission_id=lecturer.id,
            subjects=["Gross Anatomy", "Histology"],
            status=AssignmentStatus.ACTIVE,
        )
    )

    db.commit()
