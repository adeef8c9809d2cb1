from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from lms_governance.governance.audit import AuditSink
from lms_governance.governance.enums import AuditAction
from lms_governance.models.audit import AuditLog
from lms_governance.schemas.governance import AuditLogOut
from lms_governance.security.dependencies import get_audit_sink

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/violations", response_model=list[AuditLogOut])
def list_violations(
    action: AuditAction | None = None,
    college_id: str | None = None,
    user_id: str | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    sink: AuditSink = Depends(get_audit_sink),
) -> list[AuditLog]:
    # Owner-only via the route table.
    return sink.query(action=action, college_id=college_id, user_id=user_id, limit=limit)
