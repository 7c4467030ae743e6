import logging
from datetime import datetime
from typing import Iterable, Optional

from leaveflow.models.enums import CANCEL_TRANSACTION_TYPES, CancelStatus, TransactionType
from leaveflow.schemas.request import Request, TransactionLogEntry, utcnow

logger = logging.getLogger(__name__)

_CANCEL_STATUS_AFTER = {
    TransactionType.REQUEST_CANCEL: CancelStatus.CANCEL_PENDING,
    TransactionType.APPROVE_CANCEL: CancelStatus.CANCEL_APPROVED,
    TransactionType.REJECT_CANCEL: CancelStatus.CANCEL_REJECTED,
}


def build_entry(
    request_id: str,
    type: TransactionType,
    actor_id: str,
    reason_or_comment: Optional[str] = None,
    created_at: Optional[datetime] = None
) -> TransactionLogEntry:
    return TransactionLogEntry(
        request_id=request_id,
        type=type,
        actor_id=actor_id,
        reason_or_comment=reason_or_comment,
        created_at=created_at or utcnow(),
    )


def latest_cancel_action(entries: Iterable[TransactionLogEntry]) -> Optional[TransactionLogEntry]:
    """
    Most recent RequestCancel / ApproveCancel / RejectCancel entry, if any.

    Entries must be in append order as the log store returns them. Timestamps
    come from each writer's clock and do not decide order.
    """
    latest = None
    for entry in entries:
        if entry.type in CANCEL_TRANSACTION_TYPES:
            latest = entry
    return latest


def derive_cancel_status(entries: Iterable[TransactionLogEntry]) -> CancelStatus:
    """Rebuild the cancellation sub-status from history alone."""
    latest = latest_cancel_action(entries)
    if latest is None:
        return CancelStatus.NONE
    return _CANCEL_STATUS_AFTER[latest.type]


def is_consistent(request: Request, entries: Iterable[TransactionLogEntry]) -> bool:
    """True when the cached cancel_status agrees with the latest cancel-related entry."""
    derived = derive_cancel_status(entries)
    if derived != request.cancel_status:
        logger.warning(
            f"Cancel status drift on request {request.id}: cached={request.cancel_status.value} log={derived.value}"
        )
        return False
    return True
