from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from lms_governance.db.session import get_db
from lms_governance.governance.context import Actor
from lms_governance.governance.store import CapabilityStore
from lms_governance.models.governance import Department
from lms_governance.schemas.governance import DepartmentOut
from lms_governance.security.dependencies import get_current_actor

router = APIRouter(tags=["departments"])

# Governance for these routes lives in config/governance.yaml.


@router.get("/colleges/{collegeId}/departments", response_model=list[DepartmentOut])
def list_college_departments(collegeId: str, db: Session = Depends(get_db)) -> list[Department]:
    stmt = select(Department).where(Department.college_id == collegeId).order_by(Department.name)
    return list(db.scalars(stmt).all())


@router.get("/colleges/{collegeId}/departments/{departmentId}", response_model=DepartmentOut)
def get_college_department(collegeId: str, departmentId: str, db: Session = Depends(get_db)) -> Department:
    department = db.get(Department, departmentId)
    if department is None or department.college_id != collegeId:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Department not found")
    return department


@router.get("/departments/mine", response_model=list[DepartmentOut])
def my_departments(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)) -> list[Department]:
    return CapabilityStore(db).departments_headed_by(actor.id)
