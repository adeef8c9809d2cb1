from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from lms_governance.governance.alerts import DeadLetterStore, WebhookAlerter
from lms_governance.governance.enums import AuditAction
from lms_governance.logging_config import SECURITY_ALERT_LOGGER
from lms_governance.models.audit import AuditLog

logger = logging.getLogger(__name__)
alert_logger = logging.getLogger(SECURITY_ALERT_LOGGER)

DEFAULT_REDACTED_FIELDS = frozenset({"password", "passwordhash", "password_hash", "token"})
REDACTED = "[REDACTED]"


@dataclass(frozen=True)
class ViolationRecord:
    """One audit entry describing an authorization decision worth keeping."""

    actor_id: str
    action: AuditAction
    description: str
    request_path: str
    request_method: str
    college_id: str | None = None
    publisher_id: str | None = None
    request_params: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    entity_type: str = "governance"

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["action"] = self.action.value
        return d


def sanitize_params(params: Any, redacted_fields: Iterable[str] = DEFAULT_REDACTED_FIELDS) -> Any:
    """Deep-copy `params`, replacing values of sensitive keys (case-insensitive) at any depth."""

    keys = {k.lower() for k in redacted_fields}

    def _scrub(obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: REDACTED if str(k).lower() in keys else _scrub(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [_scrub(v) for v in obj]
        return copy.deepcopy(obj)

    return _scrub(params)


class AuditSink:
    """
    Append-only writer for the audit log.

    `append` never raises. If the record cannot be persisted it is escalated:
    CRITICAL on the security-alert logger, a dead-letter line, and a webhook
    alert when one is configured.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        dead_letter: DeadLetterStore,
        alerter: WebhookAlerter | None = None,
        redacted_fields: Iterable[str] = (),
    ) -> None:
        self._session_factory = session_factory
        self._dead_letter = dead_letter
        self._alerter = alerter or WebhookAlerter(None)
        self._redacted = DEFAULT_REDACTED_FIELDS | {f.lower() for f in redacted_fields}

    def append(self, record: ViolationRecord) -> None:
        params = sanitize_params(record.request_params, self._redacted)
        try:
            with self._session_factory() as db:
                db.add(
                    AuditLog(
                        user_id=record.actor_id,
                        college_id=record.college_id,
                        publisher_id=record.publisher_id,
                        action=record.action,
                        entity_type=record.entity_type,
                        description=record.description,
                        request_path=record.request_path,
                        request_method=record.request_method,
                        request_params=params,
                        ip_address=record.ip_address,
                        user_agent=record.user_agent,
                    )
                )
                db.commit()
        except Exception as exc:  # noqa: BLE001 (escalated below, never dropped)
            self._escalate(record, params, exc)

    def _escalate(self, record: ViolationRecord, params: Any, exc: Exception) -> None:
        payload = record.to_dict()
        payload["request_params"] = params
        summary = f"audit append failed action={record.action.value} actor={record.actor_id}: {type(exc).__name__}"

        alert_logger.critical("CRITICAL: %s", summary, exc_info=exc)
        stored = self._dead_letter.push(payload, reason=f"{type(exc).__name__}: {exc}")
        alerted = self._alerter.send(summary, payload)

        if not stored and not alerted:
            # Last resort: the full record goes to the alert log itself.
            alert_logger.critical("Audit record not persisted anywhere: %s", payload)

    def query(
        self,
        *,
        user_id: str | None = None,
        college_id: str | None = None,
        publisher_id: str | None = None,
        action: AuditAction | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 100,
    ) -> list[AuditLog]:
        """Read audit rows newest first. Reporting only; the evaluator never reads."""

        stmt = select(AuditLog)
        if user_id:
            stmt = stmt.where(AuditLog.user_id == user_id)
        if college_id:
            stmt = stmt.where(AuditLog.college_id == college_id)
        if publisher_id:
            stmt = stmt.where(AuditLog.publisher_id == publisher_id)
        if action:
            stmt = stmt.where(AuditLog.action == action)
        if start:
            stmt = stmt.where(AuditLog.timestamp >= start)
        if end:
            stmt = stmt.where(AuditLog.timestamp <= end)
        stmt = stmt.order_by(AuditLog.timestamp.desc()).limit(limit)

        with self._session_factory() as db:
            return list(db.scalars(stmt).all())
