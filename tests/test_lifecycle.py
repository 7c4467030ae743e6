from datetime import date

import pytest

from leaveflow.core.exceptions import ErrorKind
from leaveflow.models.enums import CancelStatus, RequestAction, RequestStatus, TransactionType
from leaveflow.schemas.request import Request
from leaveflow.services import lifecycle

TRANSITIONS = [
    RequestAction.APPROVE,
    RequestAction.REJECT,
    RequestAction.REQUEST_CANCEL,
    RequestAction.APPROVE_CANCEL,
    RequestAction.REJECT_CANCEL,
]


def _apply(request, action, actor_id="sup-1", text=None):
    result = lifecycle.apply_transition(request, action, actor_id, text)
    assert result.success, result.error
    return result.value


@pytest.fixture
def pending(employee, leave_payload):
    return lifecycle.open_request(employee.id, leave_payload, employee.team_id, employee.department_name).unwrap()


@pytest.fixture
def approved(pending):
    return _apply(pending, RequestAction.APPROVE, text="Enjoy").request


@pytest.fixture
def cancel_pending(approved, employee):
    return _apply(approved, RequestAction.REQUEST_CANCEL, employee.id, "Plans changed").request


def test_open_request_computes_duration(pending):
    assert pending.status == RequestStatus.PENDING
    assert pending.cancel_status == CancelStatus.NONE
    assert pending.payload.total_days == 3


def test_open_request_rejects_inverted_dates(employee, leave_payload):
    bad = leave_payload.model_copy(update={"end_date": date(2024, 1, 1)})
    result = lifecycle.open_request(employee.id, bad)
    assert result.error_kind == ErrorKind.VALIDATION_ERROR


def test_approve_sets_reviewer_fields(pending):
    outcome = _apply(pending, RequestAction.APPROVE, "sup-1", "Enjoy")
    assert outcome.request.status == RequestStatus.APPROVED
    assert outcome.request.approver_id == "sup-1"
    assert outcome.request.approval_comment == "Enjoy"
    assert outcome.request.approved_at is not None
    assert outcome.entry.type == TransactionType.APPROVE
    assert outcome.entry.request_id == pending.id


def test_input_request_is_not_mutated(pending):
    _apply(pending, RequestAction.APPROVE)
    assert pending.status == RequestStatus.PENDING
    assert pending.approver_id is None


def test_reject_is_terminal(pending):
    rejected = _apply(pending, RequestAction.REJECT, text="Busy period").request
    assert rejected.status == RequestStatus.REJECTED
    for action in TRANSITIONS:
        result = lifecycle.apply_transition(rejected, action, "admin-1")
        assert result.error_kind == ErrorKind.INVALID_TRANSITION


def test_cannot_approve_twice(approved):
    result = lifecycle.apply_transition(approved, RequestAction.APPROVE, "sup-1")
    assert result.error_kind == ErrorKind.INVALID_TRANSITION


def test_request_cancel_on_approved(cancel_pending, employee):
    assert cancel_pending.status == RequestStatus.APPROVED
    assert cancel_pending.cancel_status == CancelStatus.CANCEL_PENDING
    assert cancel_pending.cancel_requester_id == employee.id
    assert cancel_pending.cancel_reason == "Plans changed"


def test_request_cancel_on_pending_is_invalid(pending, employee):
    result = lifecycle.apply_transition(pending, RequestAction.REQUEST_CANCEL, employee.id)
    assert result.error_kind == ErrorKind.INVALID_TRANSITION


def test_second_cancel_request_conflicts(cancel_pending, employee):
    result = lifecycle.apply_transition(cancel_pending, RequestAction.REQUEST_CANCEL, employee.id)
    assert result.error_kind == ErrorKind.CONFLICT


def test_cancel_response_requires_pending_cancel(approved):
    for action in (RequestAction.APPROVE_CANCEL, RequestAction.REJECT_CANCEL):
        result = lifecycle.apply_transition(approved, action, "admin-1")
        assert result.error_kind == ErrorKind.INVALID_TRANSITION


def test_approve_cancel_closes_request(cancel_pending):
    outcome = _apply(cancel_pending, RequestAction.APPROVE_CANCEL, "admin-1", "OK")
    closed = outcome.request
    assert closed.is_cancelled
    assert closed.status == RequestStatus.CANCELED
    assert closed.cancel_status == CancelStatus.CANCEL_APPROVED
    assert closed.cancel_responder_id == "admin-1"
    assert outcome.entry.type == TransactionType.APPROVE_CANCEL

    for action in TRANSITIONS:
        assert lifecycle.apply_transition(closed, action, "admin-1").error_kind == ErrorKind.INVALID_TRANSITION
    assert lifecycle.apply_edit(closed, {"reason": "late"}).error_kind == ErrorKind.INVALID_TRANSITION


def test_reject_cancel_rearms(cancel_pending, employee):
    rejected = _apply(cancel_pending, RequestAction.REJECT_CANCEL, "admin-1", "Needed").request
    assert rejected.cancel_status == CancelStatus.CANCEL_REJECTED
    assert rejected.status == RequestStatus.APPROVED

    again = _apply(rejected, RequestAction.REQUEST_CANCEL, employee.id, "Still need to cancel").request
    assert again.cancel_status == CancelStatus.CANCEL_PENDING
    assert again.cancel_responder_id is None
    assert again.cancel_reason == "Still need to cancel"


def test_every_reachable_state_is_legal(pending, employee):
    """Walk every path through the machine and check each state combination."""
    seen = set()
    frontier = [pending]
    while frontier:
        current = frontier.pop()
        state = (current.status, current.cancel_status)
        assert lifecycle.is_legal_state(*state)
        if state in seen:
            continue
        seen.add(state)
        for action in TRANSITIONS:
            result = lifecycle.apply_transition(current, action, employee.id)
            if result.success:
                frontier.append(result.value.request)
    assert seen == set(lifecycle.LEGAL_STATES)


def test_edit_recomputes_duration(pending):
    edited = lifecycle.apply_edit(pending, {"end_date": date(2024, 1, 15)}).unwrap()
    assert edited.payload.total_days == 6
    assert edited.status == RequestStatus.PENDING


def test_edit_to_half_day_pins_end_date(pending):
    edited = lifecycle.apply_edit(pending, {"leave_format": "half-day-afternoon"}).unwrap()
    assert edited.payload.total_days == 0.5
    assert edited.payload.end_date == edited.payload.start_date


def test_edit_rejects_inverted_dates(pending):
    result = lifecycle.apply_edit(pending, {"end_date": date(2024, 1, 5)})
    assert result.error_kind == ErrorKind.VALIDATION_ERROR


def test_edit_rejects_unknown_fields(pending):
    result = lifecycle.apply_edit(pending, {"total_days": 10})
    assert result.error_kind == ErrorKind.VALIDATION_ERROR


def test_edit_after_approval_is_invalid(approved):
    result = lifecycle.apply_edit(approved, {"reason": "changed"})
    assert result.error_kind == ErrorKind.INVALID_TRANSITION


def test_overtime_edit_wraps_midnight(employee, overtime_payload):
    request = lifecycle.open_request(employee.id, overtime_payload).unwrap()
    assert request.payload.total_hours == 4.0
    edited = lifecycle.apply_edit(request, {"end_time": "23:30"}).unwrap()
    assert edited.payload.total_hours == 1.5


def test_delete_gate(pending, approved):
    assert lifecycle.check_delete(pending).success
    assert lifecycle.check_delete(approved).error_kind == ErrorKind.INVALID_TRANSITION
    assert lifecycle.check_delete(approved, by_admin=True).success


def test_edit_and_delete_are_not_transitions(pending):
    result = lifecycle.apply_transition(pending, RequestAction.EDIT, "emp-1")
    assert result.error_kind == ErrorKind.INVALID_TRANSITION


def test_is_cancelled_is_derived(employee, leave_payload):
    request = Request(requester_id=employee.id, payload=leave_payload)
    assert not request.is_cancelled
    assert request.model_dump()["is_cancelled"] is False
