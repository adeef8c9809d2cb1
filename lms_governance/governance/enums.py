"""Closed vocabularies shared by the governance engine and the ORM models."""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    BITFLOW_OWNER = "BITFLOW_OWNER"
    PUBLISHER_ADMIN = "PUBLISHER_ADMIN"
    COLLEGE_ADMIN = "COLLEGE_ADMIN"
    COLLEGE_DEAN = "COLLEGE_DEAN"
    COLLEGE_HOD = "COLLEGE_HOD"
    FACULTY = "FACULTY"
    STUDENT = "STUDENT"


class Capability(str, Enum):
    """
    Named faculty capabilities held through a FacultyPermission set.

    Values are the public names used in route configuration and decorators.
    `column` is the matching boolean attribute on the FacultyPermission model.
    """

    CAN_CREATE_COURSES = "canCreateCourses"
    CAN_EDIT_COURSES = "canEditCourses"
    CAN_DELETE_COURSES = "canDeleteCourses"
    CAN_CREATE_MCQS = "canCreateMcqs"
    CAN_EDIT_MCQS = "canEditMcqs"
    CAN_DELETE_MCQS = "canDeleteMcqs"
    CAN_VIEW_ANALYTICS = "canViewAnalytics"
    CAN_ASSIGN_STUDENTS = "canAssignStudents"
    CAN_SCHEDULE_LECTURES = "canScheduleLectures"
    CAN_UPLOAD_NOTES = "canUploadNotes"

    @property
    def column(self) -> str:
        return self.name.lower()


class ViolationKind(str, Enum):
    CROSS_TENANT_ACCESS_ATTEMPT = "CROSS_TENANT_ACCESS_ATTEMPT"
    DATA_ISOLATION_BREACH_ATTEMPT = "DATA_ISOLATION_BREACH_ATTEMPT"
    ROLE_BOUNDARY_VIOLATION = "ROLE_BOUNDARY_VIOLATION"
    PERMISSION_DENIED = "PERMISSION_DENIED"


class AuditAction(str, Enum):
    """Action kinds written to the audit log by this service."""

    CROSS_TENANT_ACCESS_ATTEMPT = "CROSS_TENANT_ACCESS_ATTEMPT"
    DATA_ISOLATION_BREACH_ATTEMPT = "DATA_ISOLATION_BREACH_ATTEMPT"
    ROLE_BOUNDARY_VIOLATION = "ROLE_BOUNDARY_VIOLATION"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CROSS_TENANT_OVERSIGHT_ACCESS = "CROSS_TENANT_OVERSIGHT_ACCESS"

    @classmethod
    def for_violation(cls, kind: ViolationKind) -> AuditAction:
        return cls(kind.value)


class AssignmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
