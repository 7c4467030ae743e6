"""
SQLAlchemy-backed request and transaction-log stores.

Updates are conditional on the stored version (`UPDATE ... WHERE id = ? AND
version = ?`), which serializes concurrent transitions on the same request
without a table lock.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from leaveflow.core.exceptions import ConflictError, NotFoundError, StaleWriteError, StorageError
from leaveflow.models.enums import (
    CancelStatus,
    LeaveFormat,
    RequestKind,
    RequestStatus,
    TransactionResult,
    TransactionType,
)
from leaveflow.models.request import ApprovalRequest, RequestTransaction
from leaveflow.schemas.request import LeavePayload, OvertimePayload, Request, TransactionLogEntry

logger = logging.getLogger(__name__)

_LIFECYCLE_COLUMNS = (
    "approver_id", "approved_at", "approval_comment",
    "cancel_requester_id", "cancel_requested_at", "cancel_reason",
    "cancel_responder_id", "cancel_responded_at", "cancel_response_comment",
)


def _row_values(request: Request) -> Dict[str, Any]:
    values: Dict[str, Any] = {
        "kind": request.kind.value,
        "requester_id": request.requester_id,
        "requester_team_id": request.requester_team_id,
        "requester_department": request.requester_department,
        "status": request.status.value,
        "cancel_status": request.cancel_status.value,
        "updated_at": request.updated_at,
        "reason": request.payload.reason,
    }
    for column in _LIFECYCLE_COLUMNS:
        values[column] = getattr(request, column)

    payload = request.payload
    if isinstance(payload, LeavePayload):
        values.update(
            leave_type=payload.leave_type.value,
            leave_format=payload.leave_format.value,
            start_date=payload.start_date,
            end_date=payload.end_date,
            total_days=payload.total_days,
            attachments=list(payload.attachments),
        )
    else:
        values.update(
            work_date=payload.work_date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            total_hours=payload.total_hours,
        )
    return values


def _to_domain(row: ApprovalRequest) -> Request:
    if row.kind == RequestKind.LEAVE.value:
        payload = LeavePayload(
            leave_type=row.leave_type,
            leave_format=row.leave_format or LeaveFormat.FULL_DAY,
            start_date=row.start_date,
            end_date=row.end_date,
            total_days=row.total_days,
            reason=row.reason,
            attachments=row.attachments or [],
        )
    else:
        payload = OvertimePayload(
            work_date=row.work_date,
            start_time=row.start_time,
            end_time=row.end_time,
            total_hours=row.total_hours,
            reason=row.reason,
        )
    return Request(
        id=row.id,
        requester_id=row.requester_id,
        requester_team_id=row.requester_team_id,
        requester_department=row.requester_department,
        payload=payload,
        status=RequestStatus(row.status),
        cancel_status=CancelStatus(row.cancel_status),
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
        **{column: getattr(row, column) for column in _LIFECYCLE_COLUMNS},
    )


def _entry_to_domain(row: RequestTransaction) -> TransactionLogEntry:
    return TransactionLogEntry(
        id=row.id,
        request_id=row.request_id,
        type=TransactionType(row.type),
        actor_id=row.actor_id,
        created_at=row.created_at,
        reason_or_comment=row.reason_or_comment,
        result_status=TransactionResult(row.result_status),
    )


class SqlRequestStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: str) -> Request:
        # Bypass the identity map so the latest committed row is always read
        row = self.db.execute(
            select(ApprovalRequest)
            .where(ApprovalRequest.id == request_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Request {request_id} not found", details={"request_id": request_id})
        return _to_domain(row)

    def save(self, request: Request, expected_version: Optional[int] = None) -> Request:
        try:
            if expected_version is None:
                self._insert(request)
            else:
                self._update(request, expected_version)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Insert conflict for request {request.id}: {e.orig}")
            raise ConflictError(f"Request {request.id} already exists", details={"request_id": request.id})
        except (StaleWriteError, NotFoundError):
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save request {request.id}: {e}", exc_info=True)
            raise StorageError(f"Failed to save request {request.id}")
        return self.get(request.id)

    def _insert(self, request: Request) -> None:
        row = ApprovalRequest(
            id=request.id,
            version=1,
            created_at=request.created_at,
            **_row_values(request),
        )
        self.db.add(row)
        self.db.flush()

    def _update(self, request: Request, expected_version: int) -> None:
        result = self.db.execute(
            update(ApprovalRequest)
            .where(ApprovalRequest.id == request.id, ApprovalRequest.version == expected_version)
            .values(version=expected_version + 1, **_row_values(request))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._raise_missing_or_stale(request.id, expected_version)

    def _raise_missing_or_stale(self, request_id: str, expected_version: Optional[int]) -> None:
        exists = self.db.execute(
            select(ApprovalRequest.id).where(ApprovalRequest.id == request_id)
        ).first()
        if exists is None:
            raise NotFoundError(f"Request {request_id} not found", details={"request_id": request_id})
        raise StaleWriteError(request_id, expected_version)

    def delete(self, request_id: str, expected_version: Optional[int] = None) -> None:
        condition = [ApprovalRequest.id == request_id]
        if expected_version is not None:
            condition.append(ApprovalRequest.version == expected_version)
        try:
            self.db.execute(delete(RequestTransaction).where(RequestTransaction.request_id == request_id))
            result = self.db.execute(
                delete(ApprovalRequest).where(*condition).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                # Log rows come back with the rollback
                self.db.rollback()
                self._raise_missing_or_stale(request_id, expected_version)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete request {request_id}: {e}", exc_info=True)
            raise StorageError(f"Failed to delete request {request_id}")

    def list(
        self,
        requester_id: Optional[str] = None,
        kind: Optional[RequestKind] = None,
        status: Optional[RequestStatus] = None
    ) -> List[Request]:
        query = select(ApprovalRequest).order_by(ApprovalRequest.created_at)
        if requester_id is not None:
            query = query.where(ApprovalRequest.requester_id == requester_id)
        if kind is not None:
            query = query.where(ApprovalRequest.kind == kind.value)
        if status is not None:
            query = query.where(ApprovalRequest.status == status.value)
        rows = self.db.execute(query.execution_options(populate_existing=True)).scalars().all()
        return [_to_domain(row) for row in rows]


class SqlLogStore:
    def __init__(self, db: Session):
        self.db = db

    def append(self, entry: TransactionLogEntry) -> TransactionLogEntry:
        row = RequestTransaction(
            id=entry.id,
            request_id=entry.request_id,
            type=entry.type.value,
            actor_id=entry.actor_id,
            reason_or_comment=entry.reason_or_comment,
            result_status=entry.result_status.value,
            created_at=entry.created_at,
        )
        try:
            self.db.add(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to append {entry.type.value} for request {entry.request_id}: {e}", exc_info=True)
            raise StorageError(f"Failed to record transaction for request {entry.request_id}")
        return entry

    def list_for(self, request_id: str) -> List[TransactionLogEntry]:
        rows = self.db.execute(
            select(RequestTransaction)
            .where(RequestTransaction.request_id == request_id)
            .order_by(RequestTransaction.seq)
        ).scalars().all()
        return [_entry_to_domain(row) for row in rows]

    def delete_for(self, request_id: str) -> int:
        try:
            result = self.db.execute(delete(RequestTransaction).where(RequestTransaction.request_id == request_id))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete transactions for request {request_id}: {e}", exc_info=True)
            raise StorageError(f"Failed to delete transactions for request {request_id}")
        return result.rowcount
