"""
Request-time governance policy evaluator.

Given the authenticated actor, what the request addresses, and the
operation's GovernanceRequirement, run four ordered checks:

1. tenant isolation     (require_tenant_isolation)
2. department scope     (require_department_scope, COLLEGE_HOD only)
3. faculty capability   (required_capability, FACULTY only)
4. role exclusion       (roles_forbidden)

The first denial wins. Every denial is written to the audit sink exactly
once before the Decision is returned; an allow writes nothing (except the
opt-in owner oversight entry).

The evaluator is pure Python with no FastAPI dependency; the dispatch layer
in security/dependencies.py plugs it into request handling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from lms_governance.governance.audit import AuditSink, ViolationRecord
from lms_governance.governance.context import Actor, RequestScope
from lms_governance.governance.enums import AuditAction, Capability, UserRole, ViolationKind
from lms_governance.governance.errors import DepartmentContextRequired
from lms_governance.governance.requirement import GovernanceRequirement
from lms_governance.governance.store import CapabilityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    violation: ViolationKind | None = None
    detail: str | None = None

    @classmethod
    def allow(cls) -> Decision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, violation: ViolationKind, detail: str) -> Decision:
        return cls(allowed=False, violation=violation, detail=detail)


ALLOW = Decision.allow()


class PolicyEvaluator:
    """
    Stateless per-request evaluator.

    Usage:
        evaluator = PolicyEvaluator(CapabilityStore(db), audit_sink)
        decision = evaluator.evaluate(actor, scope, requirement)
        if not decision.allowed: ...  # already audited
    """

    def __init__(
        self,
        store: CapabilityStore,
        sink: AuditSink,
        *,
        audit_owner_cross_tenant: bool = False,
    ) -> None:
        self._store = store
        self._sink = sink
        self._audit_owner_cross_tenant = audit_owner_cross_tenant

    def evaluate(
        self,
        actor: Actor | None,
        request: RequestScope,
        requirement: GovernanceRequirement | None,
    ) -> Decision:
        """
        Return ALLOW or a denied Decision.

        Raises DepartmentContextRequired for a faculty capability check with
        no department context, and lets GovernanceStoreError propagate.
        """

        if actor is None:
            # Unauthenticated: the authentication layer decides.
            return ALLOW

        if requirement is None or requirement.is_empty:
            return ALLOW

        decision = self._run_checks(actor, request, requirement)
        if decision.allowed:
            return decision

        logger.warning(
            "Governance denial actor=%s role=%s violation=%s method=%s path=%s detail=%s",
            actor.id,
            actor.role.value,
            decision.violation.value,
            request.method,
            request.path,
            decision.detail,
        )
        self._record_violation(actor, request, decision)
        return decision

    # ---- Checks (fixed order, first denial wins) -----------------------------------

    def _run_checks(self, actor: Actor, request: RequestScope, requirement: GovernanceRequirement) -> Decision:
        if requirement.require_tenant_isolation:
            decision = self._check_tenant_isolation(actor, request)
            if not decision.allowed:
                return decision

        if requirement.require_department_scope and actor.role == UserRole.COLLEGE_HOD:
            decision = self._check_department_scope(actor, request)
            if not decision.allowed:
                return decision

        if requirement.required_capability is not None and actor.role == UserRole.FACULTY:
            decision = self._check_faculty_capability(actor, request, requirement.required_capability)
            if not decision.allowed:
                return decision

        if actor.role in requirement.roles_forbidden:
            return Decision.deny(
                ViolationKind.ROLE_BOUNDARY_VIOLATION,
                f"role {actor.role.value} is not permitted for this action",
            )

        return ALLOW

    def _check_tenant_isolation(self, actor: Actor, request: RequestScope) -> Decision:
        target = self._addressed_college(request)
        if not target:
            return ALLOW

        if actor.college_id and actor.college_id != target:
            return Decision.deny(
                ViolationKind.CROSS_TENANT_ACCESS_ATTEMPT,
                f"actor college {actor.college_id} addressed college {target}",
            )

        if actor.role == UserRole.BITFLOW_OWNER:
            self._note_owner_oversight(actor, request, target)
            return ALLOW

        if actor.role == UserRole.PUBLISHER_ADMIN:
            return Decision.deny(
                ViolationKind.DATA_ISOLATION_BREACH_ATTEMPT,
                f"publisher actor addressed college {target}",
            )

        return ALLOW

    def _addressed_college(self, request: RequestScope) -> str | None:
        if request.college_id:
            return request.college_id
        if not request.department_id:
            return None
        # Department-addressed operations belong to the department's college.
        department = self._store.department_by_id(request.department_id)
        return department.college_id if department is not None else None

    def _check_department_scope(self, actor: Actor, request: RequestScope) -> Decision:
        target = request.department_id
        if not target:
            return ALLOW

        department = self._store.department_by_id(target)
        if department is None:
            return Decision.deny(ViolationKind.ROLE_BOUNDARY_VIOLATION, f"department {target} does not exist")
        if department.hod_id != actor.id:
            return Decision.deny(ViolationKind.ROLE_BOUNDARY_VIOLATION, f"actor is not head of department {target}")
        return ALLOW

    def _check_faculty_capability(self, actor: Actor, request: RequestScope, capability: Capability) -> Decision:
        department_id = request.department_id or actor.department_id
        if not department_id:
            raise DepartmentContextRequired("Department context required for this action")

        assignment = self._store.faculty_assignment(actor.id, department_id)
        if assignment is None:
            return Decision.deny(ViolationKind.PERMISSION_DENIED, f"not assigned to department {department_id}")
        if not assignment.is_active:
            return Decision.deny(ViolationKind.PERMISSION_DENIED, f"assignment to department {department_id} is inactive")

        permissions = assignment.permissions
        if permissions is None:
            return Decision.deny(ViolationKind.PERMISSION_DENIED, f"no permission set for department {department_id}")
        if not permissions.grants(capability):
            return Decision.deny(ViolationKind.PERMISSION_DENIED, f"requires {capability.value}")
        return ALLOW

    # ---- Audit side effects ---------------------------------------------------------

    def _record_violation(self, actor: Actor, request: RequestScope, decision: Decision) -> None:
        self._sink.append(
            _record(
                actor,
                request,
                AuditAction.for_violation(decision.violation),
                f"{decision.violation.value}: Attempted {request.method} {request.target} ({decision.detail})",
            )
        )

    def _note_owner_oversight(self, actor: Actor, request: RequestScope, target: str) -> None:
        logger.info(
            "Owner cross-tenant access actor=%s college=%s method=%s path=%s",
            actor.id,
            target,
            request.method,
            request.path,
        )
        if self._audit_owner_cross_tenant:
            self._sink.append(
                _record(
                    actor,
                    request,
                    AuditAction.CROSS_TENANT_OVERSIGHT_ACCESS,
                    f"Owner oversight access to college {target}: {request.method} {request.target}",
                )
            )


def _record(actor: Actor, request: RequestScope, action: AuditAction, description: str) -> ViolationRecord:
    return ViolationRecord(
        actor_id=actor.id,
        college_id=actor.college_id,
        publisher_id=actor.publisher_id,
        action=action,
        description=description,
        request_path=request.path,
        request_method=request.method,
        request_params=request.params,
        ip_address=request.ip_address,
        user_agent=request.user_agent,
    )
