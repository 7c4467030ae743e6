"""
Actor and service dependencies for the request routers.

Login and sessions live upstream: a trusted gateway authenticates the caller
and forwards its identity and organizational scope as headers.
"""
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from leaveflow.database import get_db
from leaveflow.models.enums import ActorRole
from leaveflow.repositories.sql import SqlLogStore, SqlRequestStore
from leaveflow.schemas.request import Actor
from leaveflow.services.workflow import RequestWorkflowService

logger = logging.getLogger(__name__)


def get_current_actor(
    x_actor_id: Optional[str] = Header(default=None),
    x_actor_role: Optional[str] = Header(default=None),
    x_actor_team_id: Optional[str] = Header(default=None),
    x_actor_department: Optional[str] = Header(default=None),
) -> Actor:
    """
    Builds the actor from gateway headers.
    X-Actor-Id and X-Actor-Role are required; team and department are optional scope data.
    """
    if not x_actor_id:
        logger.warning("Actor resolution failed: missing X-Actor-Id")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor identity",
        )
    try:
        role = ActorRole((x_actor_role or "").strip().lower())
    except ValueError:
        logger.warning(f"Actor resolution failed: unknown role {x_actor_role!r} for {x_actor_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unknown role. Expected one of: {[r.value for r in ActorRole]}",
        )
    return Actor(
        id=x_actor_id,
        role=role,
        team_id=x_actor_team_id or None,
        department_name=x_actor_department or None,
    )


def get_workflow(db: Session = Depends(get_db)) -> RequestWorkflowService:
    return RequestWorkflowService(SqlRequestStore(db), SqlLogStore(db))
