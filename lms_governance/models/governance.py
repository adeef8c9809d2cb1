from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms_governance.db.base import Base
from lms_governance.governance.enums import AssignmentStatus, Capability, UserRole


def _uuid() -> str:
    return str(uuid.uuid4())


class College(Base):
    __tablename__ = "colleges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE", nullable=False)

    departments: Mapped[list["Department"]] = relationship(back_populates="college")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole, native_enum=False, length=32), nullable=False)

    college_id: Mapped[str | None] = mapped_column(ForeignKey("colleges.id"), nullable=True, index=True)
    publisher_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    # Primary department; faculty capability checks fall back to it.
    department_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Department(Base):
    __tablename__ = "departments"
    __table_args__ = (UniqueConstraint("college_id", "code"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    college_id: Mapped[str] = mapped_column(ForeignKey("colleges.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False)

    # At most one acting head per department.
    hod_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)

    college: Mapped[College] = relationship(back_populates="departments")
    faculty_assignments: Mapped[list["FacultyAssignment"]] = relationship(back_populates="department")


class FacultyPermission(Base):
    """Named, reusable set of boolean capabilities scoped to a college."""

    __tablename__ = "faculty_permissions"
    __table_args__ = (UniqueConstraint("college_id", "name"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    college_id: Mapped[str] = mapped_column(ForeignKey("colleges.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    can_create_courses: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_edit_courses: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_delete_courses: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_create_mcqs: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_edit_mcqs: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_delete_mcqs: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_view_analytics: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_assign_students: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_schedule_lectures: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_upload_notes: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    faculty_assignments: Mapped[list["FacultyAssignment"]] = relationship(back_populates="permissions")

    def grants(self, capability: Capability) -> bool:
        return bool(getattr(self, capability.column))


class FacultyAssignment(Base):
    __tablename__ = "faculty_assignments"
    __table_args__ = (UniqueConstraint("user_id", "department_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    department_id: Mapped[str] = mapped_column(ForeignKey("departments.id"), nullable=False, index=True)
    permission_id: Mapped[str | None] = mapped_column(ForeignKey("faculty_permissions.id"), nullable=True)

    subjects: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[AssignmentStatus] = mapped_column(
        Enum(AssignmentStatus, native_enum=False, length=16), default=AssignmentStatus.ACTIVE, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    department: Mapped[Department] = relationship(back_populates="faculty_assignments")
    permissions: Mapped[FacultyPermission | None] = relationship(back_populates="faculty_assignments")

    @property
    def is_active(self) -> bool:
        return self.status == AssignmentStatus.ACTIVE
