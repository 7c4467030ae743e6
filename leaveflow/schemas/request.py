"""
Domain types for leave and overtime requests.

These are plain pydantic models; the state machine, the authorization
evaluator and the duration calculator operate on them without any I/O.
"""
import uuid
from datetime import date, datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from leaveflow.models.enums import (
    ActorRole,
    CancelStatus,
    LeaveFormat,
    LeaveType,
    RequestKind,
    RequestStatus,
    TransactionResult,
    TransactionType,
)

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeavePayload(BaseModel):
    kind: Literal["leave"] = "leave"
    leave_type: LeaveType
    leave_format: LeaveFormat = LeaveFormat.FULL_DAY
    start_date: date
    end_date: date
    total_days: float = 0
    reason: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)


class OvertimePayload(BaseModel):
    kind: Literal["overtime"] = "overtime"
    work_date: date
    start_time: str = Field(pattern=TIME_OF_DAY_PATTERN)
    end_time: str = Field(pattern=TIME_OF_DAY_PATTERN)
    total_hours: float = 0
    reason: Optional[str] = None


RequestPayload = Annotated[Union[LeavePayload, OvertimePayload], Field(discriminator="kind")]


class Actor(BaseModel):
    """The identity invoking an operation, with its organizational scope."""
    model_config = ConfigDict(frozen=True)

    id: str
    role: ActorRole = ActorRole.EMPLOYEE
    team_id: Optional[str] = None
    department_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN


class Request(BaseModel):
    id: str = Field(default_factory=new_id)
    requester_id: str
    # Scope snapshot of the owner, used for supervisor scope matching
    requester_team_id: Optional[str] = None
    requester_department: Optional[str] = None
    payload: RequestPayload

    status: RequestStatus = RequestStatus.PENDING
    cancel_status: CancelStatus = CancelStatus.NONE

    approver_id: Optional[str] = None
    approved_at: Optional[datetime] = None
    approval_comment: Optional[str] = None

    cancel_requester_id: Optional[str] = None
    cancel_requested_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None

    cancel_responder_id: Optional[str] = None
    cancel_responded_at: Optional[datetime] = None
    cancel_response_comment: Optional[str] = None

    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def is_cancelled(self) -> bool:
        return self.cancel_status == CancelStatus.CANCEL_APPROVED

    @property
    def kind(self) -> RequestKind:
        return RequestKind(self.payload.kind)


class TransactionLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    request_id: str
    type: TransactionType
    actor_id: str
    created_at: datetime = Field(default_factory=utcnow)
    reason_or_comment: Optional[str] = None
    result_status: TransactionResult = TransactionResult.COMPLETED


class TransitionOutcome(BaseModel):
    request: Request
    entry: TransactionLogEntry
