"""
Lifecycle state machine shared by leave and overtime requests.

Main states: Pending -> {Approved, Rejected}. From Approved an orthogonal
cancellation sub-machine runs: None -> CancelPending -> {CancelApproved,
CancelRejected}, and CancelRejected re-arms so a new cancellation can be
filed. Rejected and Canceled/CancelApproved are terminal.

Every function here is pure: it takes a request, returns a new one, and never
mutates its input or performs I/O. Authorization is evaluated by the caller
beforehand; state preconditions are always re-validated here.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple, Union

from leaveflow.core.exceptions import AppException, ConflictError, DomainValidationError, InvalidTransitionError
from leaveflow.core.schemas import Result
from leaveflow.models.enums import CancelStatus, RequestAction, RequestStatus
from leaveflow.schemas.request import (
    LeavePayload,
    OvertimePayload,
    Request,
    TransitionOutcome,
    utcnow,
)
from leaveflow.services import duration, transaction_log

logger = logging.getLogger(__name__)

# Every status/cancel_status combination a stored request may be in
LEGAL_STATES = frozenset({
    (RequestStatus.PENDING, CancelStatus.NONE),
    (RequestStatus.APPROVED, CancelStatus.NONE),
    (RequestStatus.REJECTED, CancelStatus.NONE),
    (RequestStatus.APPROVED, CancelStatus.CANCEL_PENDING),
    (RequestStatus.APPROVED, CancelStatus.CANCEL_REJECTED),
    (RequestStatus.CANCELED, CancelStatus.CANCEL_APPROVED),
})

TERMINAL_STATUSES = frozenset({RequestStatus.REJECTED, RequestStatus.CANCELED})

# Payload fields an owner may change while the request is pending
EDITABLE_FIELDS = {
    "leave": {"leave_type", "leave_format", "start_date", "end_date", "reason", "attachments"},
    "overtime": {"work_date", "start_time", "end_time", "reason"},
}


def is_legal_state(status: RequestStatus, cancel_status: CancelStatus) -> bool:
    return (status, cancel_status) in LEGAL_STATES


def is_terminal(request: Request) -> bool:
    return request.is_cancelled or request.status in TERMINAL_STATUSES


def _state_details(request: Request, action: RequestAction) -> Dict[str, Any]:
    return {
        "request_id": request.id,
        "action": action.value,
        "status": request.status.value,
        "cancel_status": request.cancel_status.value,
    }


def _require_pending(request: Request, action: RequestAction) -> None:
    if request.status != RequestStatus.PENDING:
        raise InvalidTransitionError(
            f"{action.value} requires a pending request, current status is {request.status.value}",
            details=_state_details(request, action)
        )


def _require_cancel_eligible(request: Request, action: RequestAction) -> None:
    if request.status != RequestStatus.APPROVED:
        raise InvalidTransitionError(
            f"Only approved requests can be cancelled, current status is {request.status.value}",
            details=_state_details(request, action)
        )
    if request.cancel_status == CancelStatus.CANCEL_PENDING:
        raise ConflictError(
            "A cancellation request is already pending for this request",
            details=_state_details(request, action)
        )


def _require_cancel_pending(request: Request, action: RequestAction) -> None:
    if request.cancel_status != CancelStatus.CANCEL_PENDING:
        raise InvalidTransitionError(
            f"{action.value} requires a pending cancellation, current cancel status is {request.cancel_status.value}",
            details=_state_details(request, action)
        )


def _review_fields(status: RequestStatus) -> Callable[[str, Optional[str], datetime], Dict[str, Any]]:
    def effect(actor_id: str, comment: Optional[str], now: datetime) -> Dict[str, Any]:
        return {
            "status": status,
            "approver_id": actor_id,
            "approved_at": now,
            "approval_comment": comment,
        }
    return effect


def _request_cancel_fields(actor_id: str, reason: Optional[str], now: datetime) -> Dict[str, Any]:
    # A re-armed request starts a fresh cancellation round
    return {
        "cancel_status": CancelStatus.CANCEL_PENDING,
        "cancel_requester_id": actor_id,
        "cancel_requested_at": now,
        "cancel_reason": reason,
        "cancel_responder_id": None,
        "cancel_responded_at": None,
        "cancel_response_comment": None,
    }


def _cancel_response_fields(cancel_status: CancelStatus, status: Optional[RequestStatus] = None):
    def effect(actor_id: str, comment: Optional[str], now: datetime) -> Dict[str, Any]:
        fields = {
            "cancel_status": cancel_status,
            "cancel_responder_id": actor_id,
            "cancel_responded_at": now,
            "cancel_response_comment": comment,
        }
        if status is not None:
            fields["status"] = status
        return fields
    return effect


# action -> (precondition, effect)
TRANSITIONS: Dict[RequestAction, Tuple[Callable, Callable]] = {
    RequestAction.APPROVE: (_require_pending, _review_fields(RequestStatus.APPROVED)),
    RequestAction.REJECT: (_require_pending, _review_fields(RequestStatus.REJECTED)),
    RequestAction.REQUEST_CANCEL: (_require_cancel_eligible, _request_cancel_fields),
    RequestAction.APPROVE_CANCEL: (
        _require_cancel_pending,
        _cancel_response_fields(CancelStatus.CANCEL_APPROVED, RequestStatus.CANCELED),
    ),
    RequestAction.REJECT_CANCEL: (_require_cancel_pending, _cancel_response_fields(CancelStatus.CANCEL_REJECTED)),
}


def check_transition(request: Request, action: RequestAction) -> None:
    """Raise InvalidTransitionError or ConflictError when the action is not legal now."""
    if action not in TRANSITIONS:
        raise InvalidTransitionError(f"{action.value} is not a state transition")
    if is_terminal(request):
        raise InvalidTransitionError(
            f"Request is closed ({request.status.value}/{request.cancel_status.value})",
            details=_state_details(request, action)
        )
    precondition, _ = TRANSITIONS[action]
    precondition(request, action)


def transition(
    request: Request,
    action: RequestAction,
    actor_id: str,
    reason_or_comment: Optional[str] = None,
    now: Optional[datetime] = None
) -> TransitionOutcome:
    """Raising variant of apply_transition."""
    check_transition(request, action)
    now = now or utcnow()
    _, effect = TRANSITIONS[action]

    fields = effect(actor_id, reason_or_comment, now)
    fields["updated_at"] = now
    updated = request.model_copy(update=fields)

    if not is_legal_state(updated.status, updated.cancel_status):
        raise InvalidTransitionError(
            f"{action.value} would produce an illegal state {updated.status.value}/{updated.cancel_status.value}",
            details=_state_details(request, action)
        )

    entry = transaction_log.build_entry(
        request_id=request.id,
        type=action.transaction_type,
        actor_id=actor_id,
        reason_or_comment=reason_or_comment,
        created_at=now,
    )
    logger.info(
        f"Request {request.id}: {action.value} by {actor_id} "
        f"({request.status.value}/{request.cancel_status.value} -> {updated.status.value}/{updated.cancel_status.value})"
    )
    return TransitionOutcome(request=updated, entry=entry)


def apply_transition(
    request: Request,
    event: RequestAction,
    actor_id: str,
    reason_or_comment: Optional[str] = None,
    now: Optional[datetime] = None
) -> Result[TransitionOutcome]:
    """Validate and apply a transition, returning the updated request and its log entry."""
    try:
        return Result.ok(transition(request, event, actor_id, reason_or_comment, now))
    except AppException as e:
        logger.warning(f"Transition {event.value} refused for request {request.id}: {e.message}")
        return Result.from_exception(e)


def open_request(
    requester_id: str,
    payload: Union[LeavePayload, OvertimePayload],
    requester_team_id: Optional[str] = None,
    requester_department: Optional[str] = None,
    now: Optional[datetime] = None
) -> Result[Request]:
    """Create a new pending request with its duration computed once."""
    try:
        normalized = duration.normalize_payload(payload)
    except AppException as e:
        return Result.from_exception(e)
    return Result.ok(Request(
        requester_id=requester_id,
        requester_team_id=requester_team_id,
        requester_department=requester_department,
        payload=normalized,
        created_at=now or utcnow(),
    ))


def edit(request: Request, changes: Dict[str, Any], now: Optional[datetime] = None) -> Request:
    """Raising variant of apply_edit."""
    _require_pending(request, RequestAction.EDIT)

    allowed = EDITABLE_FIELDS[request.kind.value]
    unknown = set(changes) - allowed
    if unknown:
        raise DomainValidationError(
            f"Fields cannot be edited: {', '.join(sorted(unknown))}",
            details={"fields": sorted(unknown)}
        )

    merged = request.payload.model_dump()
    merged.update(changes)
    try:
        payload = type(request.payload).model_validate(merged)
    except ValueError as e:
        raise DomainValidationError(f"Invalid request data: {e}")

    return request.model_copy(update={
        "payload": duration.normalize_payload(payload),
        "updated_at": now or utcnow(),
    })


def apply_edit(request: Request, changes: Dict[str, Any], now: Optional[datetime] = None) -> Result[Request]:
    """Change non-status fields of a pending request and recompute its duration."""
    try:
        return Result.ok(edit(request, changes, now))
    except AppException as e:
        return Result.from_exception(e)


def ensure_deletable(request: Request, by_admin: bool = False) -> None:
    """Pending requests may be deleted; administrators may delete in any state."""
    if by_admin:
        return
    _require_pending(request, RequestAction.DELETE)


def check_delete(request: Request, by_admin: bool = False) -> Result[None]:
    try:
        ensure_deletable(request, by_admin)
        return Result.ok()
    except AppException as e:
        return Result.from_exception(e)
