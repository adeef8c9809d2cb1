from __future__ import annotations

import logging

import jwt
from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from lms_governance.governance.config import AuthConfig
from lms_governance.governance.context import Actor
from lms_governance.models.governance import User
from lms_governance.settings import Settings

logger = logging.getLogger(__name__)


def extract_bearer_token(request: Request, config: AuthConfig) -> str | None:
    """
    Read `Authorization: Bearer <jwt>`.

    - Missing header: None (anonymous; routes that need a user reject later).
    - Malformed header or empty token: 400.
    """

    header_name = config.authorization_header
    bearer_prefix = config.bearer_prefix

    raw = request.headers.get(header_name)
    if not raw:
        return None

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Expected '{bearer_prefix} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Missing token after '{bearer_prefix}'.",
        )
    return token


def decode_user_id(token: str, settings: Settings) -> str:
    """
    Verify the access token and return its subject (user id).

    Token issuance belongs to the login service; here we only check the
    signature and lifetime. Never log the token.
    """

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        logger.info("Token expired")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.info("Token invalid: %s", type(exc).__name__)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    return str(payload["sub"])


def load_actor(db: Session, user_id: str) -> Actor:
    """Build the request Actor from the persisted user row (token claims are not trusted for scope)."""

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or inactive user")

    return Actor(
        id=user.id,
        role=user.role,
        college_id=user.college_id,
        publisher_id=user.publisher_id,
        department_id=user.department_id,
    )
