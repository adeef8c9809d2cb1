from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from lms_governance.governance.enums import Capability, UserRole
from lms_governance.governance.errors import GovernanceConfigError
from lms_governance.governance.requirement import GovernanceRequirement


class AuthConfig(BaseModel):
    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"


class RouteRule(BaseModel):
    path: str
    methods: list[str] = Field(default_factory=lambda: ["GET"])

    # Coarse role allow-list; empty means any authenticated role.
    roles: list[UserRole] = Field(default_factory=list)

    require_tenant_isolation: bool = False
    require_department_scope: bool = False
    required_capability: Capability | None = None
    roles_forbidden: list[UserRole] = Field(default_factory=list)

    def normalized_methods(self) -> set[str]:
        return {m.upper() for m in self.methods}

    def requirement(self) -> GovernanceRequirement:
        return GovernanceRequirement.build(
            require_tenant_isolation=self.require_tenant_isolation,
            require_department_scope=self.require_department_scope,
            required_capability=self.required_capability,
            roles_forbidden=self.roles_forbidden,
        )


class GovernanceConfigModel(BaseModel):
    auth: AuthConfig = Field(default_factory=AuthConfig)
    routes: list[RouteRule] = Field(default_factory=list)


@dataclass(frozen=True)
class RouteGovernance:
    """
    Fully-resolved governance entry for one (path template, method).

    Built once at load time, so every request to the operation sees the same
    requirement object.
    """

    path: str
    allowed_roles: frozenset[UserRole]
    requirement: GovernanceRequirement


def _path_template_to_regex(path_template: str) -> re.Pattern[str]:
    # Convert "/colleges/{collegeId}" -> r"^/colleges/[^/]+$"
    regex = re.sub(r"\{[^/]+\}", r"[^/]+", path_template)
    return re.compile(rf"^{regex}$")


class GovernanceConfig:
    """
    Central route table: validated config + route matching.
    """

    def __init__(self, model: GovernanceConfigModel):
        self.model = model

        self._exact: dict[tuple[str, str], RouteGovernance] = {}
        self._templates: list[tuple[re.Pattern[str], str, RouteGovernance]] = []

        for rule in self.model.routes:
            entry = RouteGovernance(
                path=rule.path,
                allowed_roles=frozenset(rule.roles),
                requirement=rule.requirement(),
            )
            for method in sorted(rule.normalized_methods()):
                key = (rule.path, method)
                if key in self._exact:
                    raise GovernanceConfigError(f"duplicate governance route: {method} {rule.path}")
                self._exact[key] = entry
                self._templates.append((_path_template_to_regex(rule.path), method, entry))

    @property
    def auth(self) -> AuthConfig:
        return self.model.auth

    def match(self, path: str, method: str) -> RouteGovernance | None:
        """
        Find the governance entry for (path, method).

        `path` may be the concrete request path or the route template; exact
        matches win over template matches. None means "no constraints".
        """

        method = method.upper()

        exact = self._exact.get((path, method))
        if exact is not None:
            return exact

        for regex, rule_method, entry in self._templates:
            if rule_method == method and regex.match(path):
                return entry

        return None


def load_governance_config(path: Path) -> GovernanceConfig:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "governance" not in raw:
        raise GovernanceConfigError(f"Missing top-level 'governance' key in config: {path}")

    try:
        model = GovernanceConfigModel.model_validate(raw["governance"] or {})
    except ValidationError as exc:
        raise GovernanceConfigError(f"Invalid governance config {path}: {exc}") from exc
    return GovernanceConfig(model)
