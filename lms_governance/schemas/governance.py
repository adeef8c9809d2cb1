from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from lms_governance.governance.enums import AssignmentStatus, AuditAction, UserRole


class ActorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    role: UserRole
    college_id: str | None
    publisher_id: str | None
    department_id: str | None


class DepartmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    college_id: str
    name: str
    code: str
    hod_id: str | None


class FacultyPermissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    can_create_courses: bool
    can_edit_courses: bool
    can_delete_courses: bool
    can_create_mcqs: bool
    can_edit_mcqs: bool
    can_delete_mcqs: bool
    can_view_analytics: bool
    can_assign_students: bool
    can_schedule_lectures: bool
    can_upload_notes: bool


class FacultyAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    department_id: str
    subjects: list[str]
    status: AssignmentStatus
    permissions: FacultyPermissionOut | None


class DepartmentAnalyticsOut(BaseModel):
    department_id: str
    faculty_total: int
    faculty_active: int
    subjects: list[str]


class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str | None
    college_id: str | None
    publisher_id: str | None
    action: AuditAction
    description: str | None
    request_path: str | None
    request_method: str | None
    ip_address: str | None
    user_agent: str | None
    timestamp: datetime
