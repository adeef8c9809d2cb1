from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from lms_governance.governance.enums import UserRole


@dataclass(frozen=True)
class Actor:
    """
    The authenticated caller, as seen by the governance engine.

    Built once per request by the authentication layer; never mutated.
    """

    id: str
    role: UserRole
    college_id: str | None = None
    publisher_id: str | None = None
    department_id: str | None = None


@dataclass(frozen=True)
class RequestScope:
    """
    What a request addresses, plus the metadata captured on a violation.

    `college_id` / `department_id` are resolved path -> body -> query.
    `params` is the raw parameter bag (path, query, body); the audit sink
    sanitizes it before writing. `query_string` arrives already redacted and
    is only used for the human-readable violation description.
    """

    method: str
    path: str
    college_id: str | None = None
    department_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    query_string: str = ""

    @property
    def target(self) -> str:
        """Path plus (redacted) query string."""
        return f"{self.path}?{self.query_string}" if self.query_string else self.path


COLLEGE_ID_KEYS = ("collegeId", "college_id")
DEPARTMENT_ID_KEYS = ("departmentId", "department_id")


def addressed_id(keys: tuple[str, ...], *sources: Any) -> str | None:
    """Return the first non-empty value for any of `keys`, scanning `sources` in order."""

    for source in sources:
        if not isinstance(source, dict):
            continue
        for key in keys:
            value = source.get(key)
            if value not in (None, ""):
                return str(value)
    return None
