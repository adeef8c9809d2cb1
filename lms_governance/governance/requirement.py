from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from lms_governance.governance.enums import Capability, UserRole

GOVERNANCE_ATTR = "__governance_requirement__"
ROLES_ATTR = "__governance_allowed_roles__"


@dataclass(frozen=True)
class GovernanceRequirement:
    """
    Declarative governance constraints for one protected operation.

    Attached at startup (route table or decorator) and never changed per
    request. All fields false/absent means "no governance constraints".
    """

    require_tenant_isolation: bool = False
    require_department_scope: bool = False
    required_capability: Capability | None = None
    roles_forbidden: frozenset[UserRole] = frozenset()

    @classmethod
    def build(
        cls,
        *,
        require_tenant_isolation: bool = False,
        require_department_scope: bool = False,
        required_capability: Capability | str | None = None,
        roles_forbidden: Iterable[UserRole | str] = (),
    ) -> GovernanceRequirement:
        """
        Normalize loose inputs (strings from YAML or call sites) into enums.

        Unknown capability or role names raise ValueError here, at attach
        time, instead of silently evaluating to "no permission" later.
        """

        return cls(
            require_tenant_isolation=bool(require_tenant_isolation),
            require_department_scope=bool(require_department_scope),
            required_capability=Capability(required_capability) if required_capability is not None else None,
            roles_forbidden=frozenset(UserRole(r) for r in roles_forbidden),
        )

    @property
    def is_empty(self) -> bool:
        return not (
            self.require_tenant_isolation
            or self.require_department_scope
            or self.required_capability is not None
            or self.roles_forbidden
        )


def governance(
    *,
    require_tenant_isolation: bool = False,
    require_department_scope: bool = False,
    required_capability: Capability | str | None = None,
    roles_forbidden: Iterable[UserRole | str] = (),
) -> Callable:
    """
    Attach a GovernanceRequirement to a route handler.

    Implementation detail:
    - This decorator does NOT evaluate anything itself.
    - It stores plain metadata that the global governance dependency reads
      after routing. A decorator requirement replaces any route-table entry
      for the same operation.

    Example:
        @router.get("/departments/{departmentId}/analytics")
        @governance(required_capability=Capability.CAN_VIEW_ANALYTICS)
        def analytics(...): ...
    """

    requirement = GovernanceRequirement.build(
        require_tenant_isolation=require_tenant_isolation,
        require_department_scope=require_department_scope,
        required_capability=required_capability,
        roles_forbidden=roles_forbidden,
    )

    def decorator(fn: Callable) -> Callable:
        setattr(fn, GOVERNANCE_ATTR, requirement)
        return fn

    return decorator


def require_roles(roles: Iterable[UserRole | str]) -> Callable:
    """
    Attach a coarse role allow-list to a route handler.

    This is the plain role gate that runs before governance checks; a miss is
    a 403 but not a governance violation.
    """

    allowed = frozenset(UserRole(r) for r in roles)

    def decorator(fn: Callable) -> Callable:
        existing = frozenset(getattr(fn, ROLES_ATTR, frozenset()))
        setattr(fn, ROLES_ATTR, existing | allowed)
        return fn

    return decorator


def requirement_for(endpoint: Callable | None) -> GovernanceRequirement | None:
    if endpoint is None:
        return None
    return getattr(endpoint, GOVERNANCE_ATTR, None)


def allowed_roles_for(endpoint: Callable | None) -> frozenset[UserRole]:
    if endpoint is None:
        return frozenset()
    return frozenset(getattr(endpoint, ROLES_ATTR, frozenset()))
