from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from lms_governance.db.base import Base
from lms_governance.governance.enums import AuditAction


class AuditLogImmutableError(RuntimeError):
    """Raised when code tries to UPDATE or DELETE an audit row."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog(Base):
    """
    Append-only audit trail.

    Rows are written by the governance audit sink and read by reporting only.
    The mapper events below refuse ORM updates and deletes.
    """

    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    college_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    publisher_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    action: Mapped[AuditAction] = mapped_column(Enum(AuditAction, native_enum=False, length=64), nullable=False, index=True)
    entity_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    request_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    request_method: Mapped[str | None] = mapped_column(String(10), nullable=True)
    request_params: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Assigned at write time, never by the caller.
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)


@event.listens_for(AuditLog, "before_update")
def _refuse_audit_update(mapper, connection, target) -> None:
    raise AuditLogImmutableError(f"audit_logs rows are append-only (id={target.id})")


@event.listens_for(AuditLog, "before_delete")
def _refuse_audit_delete(mapper, connection, target) -> None:
    raise AuditLogImmutableError(f"audit_logs rows are append-only (id={target.id})")
