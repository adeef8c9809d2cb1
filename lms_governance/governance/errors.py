from __future__ import annotations


class GovernanceError(Exception):
    """Base class for governance failures that are not authorization denials."""


class DepartmentContextRequired(GovernanceError):
    """
    A faculty capability check had no department to check against.

    This is a caller error (bad request), not a security event; it is never
    written to the audit log.
    """


class GovernanceStoreError(GovernanceError):
    """A capability-store lookup could not be completed (DB unavailable, timeout, ...)."""


class GovernanceConfigError(GovernanceError, ValueError):
    """Raised when the governance route table is invalid."""
