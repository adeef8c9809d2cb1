"""In-memory stand-ins for the capability store and audit sink."""
from __future__ import annotations

import pytest

from lms_governance.governance.enums import AssignmentStatus
from lms_governance.models.governance import Department, FacultyAssignment, FacultyPermission


class FakeStore:
    def __init__(self) -> None:
        self.departments: dict[str, Department] = {}
        self.assignments: dict[tuple[str, str], FacultyAssignment] = {}
        self.calls: list[tuple] = []

    def add_department(self, department_id: str, college_id: str = "C1", hod_id: str | None = None) -> Department:
        dept = Department(id=department_id, college_id=college_id, name=department_id, code=department_id, hod_id=hod_id)
        self.departments[department_id] = dept
        return dept

    def add_assignment(
        self,
        user_id: str,
        department_id: str,
        status: AssignmentStatus = AssignmentStatus.ACTIVE,
        **capabilities: bool,
    ) -> FacultyAssignment:
        permissions = FacultyPermission(name="set", college_id="C1", **capabilities) if capabilities else None
        assignment = FacultyAssignment(
            user_id=user_id,
            department_id=department_id,
            status=status,
            subjects=[],
            permissions=permissions,
        )
        self.assignments[(user_id, department_id)] = assignment
        return assignment

    def department_by_id(self, department_id):
        self.calls.append(("department_by_id", department_id))
        return self.departments.get(department_id)

    def departments_headed_by(self, actor_id):
        self.calls.append(("departments_headed_by", actor_id))
        return [d for d in self.departments.values() if d.hod_id == actor_id]

    def faculty_assignment(self, actor_id, department_id):
        self.calls.append(("faculty_assignment", actor_id, department_id))
        return self.assignments.get((actor_id, department_id))


class RecordingSink:
    def __init__(self) -> None:
        self.records = []

    def append(self, record) -> None:
        self.records.append(record)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def sink():
    return RecordingSink()
