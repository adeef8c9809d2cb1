from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from lms_governance.governance.errors import GovernanceStoreError
from lms_governance.models.governance import Department, FacultyAssignment

logger = logging.getLogger(__name__)


class CapabilityStore:
    """
    Read-only lookups the policy evaluator needs.

    No caching; every call is a keyed fetch. "Not found" is None. Anything
    else going wrong in the DB layer surfaces as GovernanceStoreError so the
    evaluator never turns an incomplete lookup into allow or deny.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def department_by_id(self, department_id: str) -> Department | None:
        try:
            return self._db.get(Department, department_id)
        except SQLAlchemyError as exc:
            logger.error("Department lookup failed department_id=%s", department_id)
            raise GovernanceStoreError("department lookup failed") from exc

    def departments_headed_by(self, actor_id: str) -> list[Department]:
        try:
            stmt = select(Department).where(Department.hod_id == actor_id).order_by(Department.name)
            return list(self._db.scalars(stmt).all())
        except SQLAlchemyError as exc:
            logger.error("Department-by-hod lookup failed actor_id=%s", actor_id)
            raise GovernanceStoreError("department lookup failed") from exc

    def faculty_assignment(self, actor_id: str, department_id: str) -> FacultyAssignment | None:
        """Return the unique (actor, department) assignment with its permission set loaded."""

        try:
            stmt = (
                select(FacultyAssignment)
                .where(
                    FacultyAssignment.user_id == actor_id,
                    FacultyAssignment.department_id == department_id,
                )
                .options(selectinload(FacultyAssignment.permissions))
            )
            return self._db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Faculty assignment lookup failed actor_id=%s department_id=%s", actor_id, department_id)
            raise GovernanceStoreError("faculty assignment lookup failed") from exc
