from datetime import datetime, timedelta, timezone

import pytest

from leaveflow.core.exceptions import ConflictError, NotFoundError, StaleWriteError
from leaveflow.models.enums import (
    CancelStatus,
    LeaveFormat,
    RequestAction,
    RequestKind,
    RequestStatus,
    TransactionType,
)
from leaveflow.repositories.sql import SqlLogStore, SqlRequestStore
from leaveflow.services import lifecycle, transaction_log


@pytest.fixture
def stores(db_session):
    return SqlRequestStore(db_session), SqlLogStore(db_session)


@pytest.fixture
def stored_leave(stores, employee, leave_payload):
    requests, _ = stores
    request = lifecycle.open_request(employee.id, leave_payload, employee.team_id, employee.department_name).unwrap()
    return requests.save(request)


def test_insert_and_read_back(stores, stored_leave):
    requests, _ = stores
    loaded = requests.get(stored_leave.id)
    assert loaded.version == 1
    assert loaded.kind == RequestKind.LEAVE
    assert loaded.payload.total_days == 3
    assert loaded.payload.reason == "Family trip"
    assert loaded.requester_team_id == "team-a"
    assert loaded.status == RequestStatus.PENDING
    assert loaded.cancel_status == CancelStatus.NONE


def test_overtime_round_trip(stores, employee, overtime_payload):
    requests, _ = stores
    request = lifecycle.open_request(employee.id, overtime_payload).unwrap()
    loaded = requests.save(request)
    assert loaded.kind == RequestKind.OVERTIME
    assert loaded.payload.start_time == "22:00"
    assert loaded.payload.total_hours == 4.0


def test_duplicate_insert_conflicts(stores, stored_leave):
    requests, _ = stores
    with pytest.raises(ConflictError):
        requests.save(stored_leave)


def test_compare_and_set_update(stores, stored_leave):
    requests, _ = stores
    outcome = lifecycle.transition(stored_leave, RequestAction.APPROVE, "sup-1", "ok")

    saved = requests.save(outcome.request, expected_version=1)
    assert saved.version == 2
    assert saved.status == RequestStatus.APPROVED
    assert saved.approver_id == "sup-1"

    # A writer still holding version 1 loses
    stale = lifecycle.transition(stored_leave, RequestAction.REJECT, "sup-2")
    with pytest.raises(StaleWriteError):
        requests.save(stale.request, expected_version=1)
    assert requests.get(stored_leave.id).status == RequestStatus.APPROVED


def test_update_of_missing_request(stores, stored_leave):
    requests, _ = stores
    ghost = stored_leave.model_copy(update={"id": "f" * 32})
    with pytest.raises(NotFoundError):
        requests.save(ghost, expected_version=1)


def test_log_append_and_order(stores, stored_leave):
    requests, transactions = stores
    approved = lifecycle.transition(stored_leave, RequestAction.APPROVE, "sup-1")
    requests.save(approved.request, expected_version=1)
    transactions.append(approved.entry)

    cancel = lifecycle.transition(approved.request, RequestAction.REQUEST_CANCEL, "emp-1", "Plans changed")
    requests.save(cancel.request, expected_version=2)
    transactions.append(cancel.entry)

    entries = transactions.list_for(stored_leave.id)
    assert [e.type for e in entries] == [TransactionType.APPROVE, TransactionType.REQUEST_CANCEL]
    assert entries[1].reason_or_comment == "Plans changed"
    assert entries[1].id == cancel.entry.id


def test_delete_removes_request_and_log(stores, stored_leave):
    requests, transactions = stores
    approved = lifecycle.transition(stored_leave, RequestAction.APPROVE, "sup-1")
    requests.save(approved.request, expected_version=1)
    transactions.append(approved.entry)

    requests.delete(stored_leave.id)
    assert transactions.list_for(stored_leave.id) == []
    with pytest.raises(NotFoundError):
        requests.get(stored_leave.id)
    with pytest.raises(NotFoundError):
        requests.delete(stored_leave.id)


def test_list_filters(stores, stored_leave, employee, other_employee, overtime_payload, leave_payload):
    requests, _ = stores
    requests.save(lifecycle.open_request(employee.id, overtime_payload).unwrap())
    requests.save(lifecycle.open_request(other_employee.id, leave_payload).unwrap())

    assert len(requests.list()) == 3
    assert len(requests.list(kind=RequestKind.LEAVE)) == 2
    assert len(requests.list(requester_id=employee.id)) == 2
    assert [r.id for r in requests.list(requester_id=employee.id, kind=RequestKind.LEAVE)] == [stored_leave.id]
    assert requests.list(status=RequestStatus.APPROVED) == []


def test_delete_with_stale_version_keeps_request_and_log(stores, stored_leave):
    requests, transactions = stores
    approved = lifecycle.transition(stored_leave, RequestAction.APPROVE, "sup-1")
    requests.save(approved.request, expected_version=1)
    transactions.append(approved.entry)

    with pytest.raises(StaleWriteError):
        requests.delete(stored_leave.id, expected_version=1)

    assert requests.get(stored_leave.id).status == RequestStatus.APPROVED
    assert len(transactions.list_for(stored_leave.id)) == 1

    requests.delete(stored_leave.id, expected_version=2)
    with pytest.raises(NotFoundError):
        requests.get(stored_leave.id)


def test_log_is_listed_in_append_order_despite_clock_skew(stores, stored_leave):
    _, transactions = stores
    t0 = datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc)
    appended = [
        transaction_log.build_entry(stored_leave.id, TransactionType.REQUEST_CANCEL, "emp-1", created_at=t0),
        transaction_log.build_entry(
            stored_leave.id, TransactionType.REJECT_CANCEL, "sup-1", created_at=t0 + timedelta(seconds=1)
        ),
        transaction_log.build_entry(
            stored_leave.id, TransactionType.REQUEST_CANCEL, "emp-1", created_at=t0 - timedelta(seconds=1)
        ),
    ]
    for entry in appended:
        transactions.append(entry)

    entries = transactions.list_for(stored_leave.id)
    assert [e.id for e in entries] == [e.id for e in appended]
    assert transaction_log.derive_cancel_status(entries) == CancelStatus.CANCEL_PENDING


def test_leave_format_round_trips_as_enum(stores, employee, leave_payload):
    requests, _ = stores
    payload = leave_payload.model_copy(update={"leave_format": LeaveFormat.HALF_DAY_TH})
    saved = requests.save(lifecycle.open_request(employee.id, payload).unwrap())
    assert saved.payload.leave_format is LeaveFormat.HALF_DAY_TH
    assert saved.payload.total_days == 0.5
