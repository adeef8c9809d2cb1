from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from lms_governance.db.session import get_db
from lms_governance.governance.enums import Capability, UserRole
from lms_governance.governance.requirement import governance
from lms_governance.models.governance import FacultyAssignment
from lms_governance.schemas.governance import DepartmentAnalyticsOut, FacultyAssignmentOut

router = APIRouter(tags=["faculty"])


def _department_assignments(db: Session, department_id: str) -> list[FacultyAssignment]:
    stmt = (
        select(FacultyAssignment)
        .where(FacultyAssignment.department_id == department_id)
        .options(selectinload(FacultyAssignment.permissions))
        .order_by(FacultyAssignment.created_at)
    )
    return list(db.scalars(stmt).all())


@router.get("/departments/{departmentId}/faculty-assignments", response_model=list[FacultyAssignmentOut])
def list_faculty_assignments(departmentId: str, db: Session = Depends(get_db)) -> list[FacultyAssignment]:
    # Route-table governed (department scope for heads).
    return _department_assignments(db, departmentId)


@router.get("/departments/{departmentId}/analytics", response_model=DepartmentAnalyticsOut)
@governance(
    require_tenant_isolation=True,
    require_department_scope=True,
    required_capability=Capability.CAN_VIEW_ANALYTICS,
    roles_forbidden=[UserRole.STUDENT, UserRole.PUBLISHER_ADMIN],
)
def department_analytics(departmentId: str, db: Session = Depends(get_db)) -> DepartmentAnalyticsOut:
    assignments = _department_assignments(db, departmentId)
    subjects = sorted({s for a in assignments for s in (a.subjects or [])})
    return DepartmentAnalyticsOut(
        department_id=departmentId,
        faculty_total=len(assignments),
        faculty_active=sum(1 for a in assignments if a.is_active),
        subjects=subjects,
    )
