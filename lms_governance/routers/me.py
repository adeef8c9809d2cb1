from __future__ import annotations

from fastapi import APIRouter, Depends

from lms_governance.governance.context import Actor
from lms_governance.schemas.governance import ActorOut
from lms_governance.security.dependencies import get_current_actor

router = APIRouter(tags=["me"])


@router.get("/me", response_model=ActorOut)
def me(actor: Actor = Depends(get_current_actor)) -> Actor:
    return actor
