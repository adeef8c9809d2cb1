from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from lms_governance.db.session import get_db
from lms_governance.governance.audit import DEFAULT_REDACTED_FIELDS, AuditSink, sanitize_params
from lms_governance.governance.config import GovernanceConfig
from lms_governance.governance.context import (
    COLLEGE_ID_KEYS,
    DEPARTMENT_ID_KEYS,
    Actor,
    RequestScope,
    addressed_id,
)
from lms_governance.governance.errors import DepartmentContextRequired, GovernanceStoreError
from lms_governance.governance.evaluator import PolicyEvaluator
from lms_governance.governance.requirement import allowed_roles_for, requirement_for
from lms_governance.governance.store import CapabilityStore
from lms_governance.security.auth import decode_user_id, extract_bearer_token, load_actor
from lms_governance.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Same detail for every denial; the violation kind stays in the audit log.
ACCESS_DENIED = "Access denied"


def get_governance_config(request: Request) -> GovernanceConfig:
    config = getattr(request.app.state, "governance_config", None)
    if config is None:
        raise RuntimeError("Governance config not loaded. Did app startup run?")
    return config


def get_audit_sink(request: Request) -> AuditSink:
    sink = getattr(request.app.state, "audit_sink", None)
    if sink is None:
        raise RuntimeError("Audit sink not configured. Did app startup run?")
    return sink


def get_current_actor(request: Request) -> Actor:
    actor = getattr(request.state, "actor", None)
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return actor


async def get_request_scope(request: Request, settings: Settings = Depends(get_settings)) -> RequestScope:
    """
    Collect what the request addresses (path -> body -> query) and the
    metadata a violation record captures.

    Async only so it can read the JSON body; Starlette caches the body on
    the request, so the route handler can still parse it.
    """

    path_params = dict(request.path_params)
    query = dict(request.query_params)
    body = await _json_body(request)
    redacted = DEFAULT_REDACTED_FIELDS | {f.lower() for f in settings.audit_redacted_fields}

    return RequestScope(
        method=request.method.upper(),
        path=request.url.path,
        college_id=addressed_id(COLLEGE_ID_KEYS, path_params, body, query),
        department_id=addressed_id(DEPARTMENT_ID_KEYS, path_params, body, query),
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
        params={"path": path_params, "query": query, "body": body},
        query_string=urlencode(sanitize_params(query, redacted), safe="[]"),
    )


async def _json_body(request: Request) -> Any:
    if "application/json" not in request.headers.get("content-type", ""):
        return None
    try:
        return await request.json()
    except ValueError:
        # Malformed JSON is the route's problem to report, not ours.
        return None


def enforce_governance(
    request: Request,
    config: GovernanceConfig = Depends(get_governance_config),
    scope: RequestScope = Depends(get_request_scope),
    sink: AuditSink = Depends(get_audit_sink),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db, use_cache=False),
) -> None:
    """
    Global governance dependency.

    Why dependency (not middleware)?
    - Runs after routing, so the route template, path params and any
      decorator metadata on the endpoint are available.
    - Applies to every route with zero changes to the handlers.

    Order: resolve actor -> authentication required on governed routes ->
    coarse role gate -> PolicyEvaluator.
    """

    endpoint = request.scope.get("endpoint")
    route = request.scope.get("route")
    route_path = getattr(route, "path", None) or request.url.path

    entry = config.match(route_path, scope.method)
    requirement = requirement_for(endpoint) or (entry.requirement if entry else None)
    allowed_roles = allowed_roles_for(endpoint) | (entry.allowed_roles if entry else frozenset())

    actor: Actor | None = None
    token = extract_bearer_token(request, config.auth)
    if token is not None:
        actor = load_actor(db, decode_user_id(token, settings))
        request.state.actor = actor

    governed = bool(allowed_roles) or (requirement is not None and not requirement.is_empty)
    if governed and actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    if allowed_roles and actor.role not in allowed_roles:
        logger.info(
            "Role gate rejected actor=%s role=%s method=%s path=%s",
            actor.id,
            actor.role.value,
            scope.method,
            scope.path,
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ACCESS_DENIED)

    evaluator = PolicyEvaluator(
        CapabilityStore(db),
        sink,
        audit_owner_cross_tenant=settings.audit_owner_cross_tenant,
    )

    try:
        decision = evaluator.evaluate(actor, scope, requirement)
    except DepartmentContextRequired as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except GovernanceStoreError as exc:
        logger.exception("Governance check could not complete method=%s path=%s", scope.method, scope.path)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authorization service unavailable",
        ) from exc

    if not decision.allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ACCESS_DENIED)
