"""
Authorization evaluator for the request lifecycle.

Decides *who* may act on a request. Whether the request's current state
allows the action is decided by the lifecycle state machine.

Rules, in priority order:
1. Administrators may review (approve/reject, approve/reject cancellation)
   and delete any request.
2. Supervisors may review requests whose owner is in their scope: same team
   id when both sides carry one, otherwise same department name, otherwise
   the configured missing-scope policy decides.
3. Owners may edit, delete and request cancellation of their own request,
   and never review it.
4. Everything else is denied.
"""
import logging
from typing import Optional

from leaveflow.core.config import ScopeMatchPolicy, settings
from leaveflow.models.enums import ActorRole, OWNER_ACTIONS, REVIEW_ACTIONS, RequestAction
from leaveflow.schemas.request import Actor, Request

logger = logging.getLogger(__name__)


def _present(value: Optional[str]) -> bool:
    return value is not None and str(value).strip() != ""


def scope_matches(actor: Actor, request: Request, policy: Optional[ScopeMatchPolicy] = None) -> bool:
    """Compare a supervisor's team/department with the request owner's."""
    policy = ScopeMatchPolicy(policy or settings.lifecycle.scope_match_policy)

    if _present(actor.team_id) and _present(request.requester_team_id):
        return str(actor.team_id) == str(request.requester_team_id)

    if _present(actor.department_name) and _present(request.requester_department):
        return actor.department_name.strip().casefold() == request.requester_department.strip().casefold()

    return policy == ScopeMatchPolicy.PERMISSIVE


def can_perform(actor: Actor, request: Request, action: RequestAction, policy: Optional[ScopeMatchPolicy] = None) -> bool:
    is_owner = actor.id == request.requester_id

    if actor.role == ActorRole.ADMIN:
        if action in REVIEW_ACTIONS or action == RequestAction.DELETE:
            return True

    if actor.role == ActorRole.SUPERVISOR and action in REVIEW_ACTIONS:
        if is_owner:
            logger.warning(f"Supervisor {actor.id} attempted to review own request {request.id}")
            return False
        return scope_matches(actor, request, policy)

    if is_owner and action in OWNER_ACTIONS:
        return True

    return False
