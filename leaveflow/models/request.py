from sqlalchemy import Column, Integer, String, Date, Float, ForeignKey, DateTime, JSON, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from leaveflow.database import Base
from leaveflow.models.enums import CancelStatus, RequestStatus, TransactionResult


class ApprovalRequest(Base):
    """Leave and overtime requests share one table, told apart by `kind`."""
    __tablename__ = "approval_requests"

    id = Column(String(32), primary_key=True, index=True)
    kind = Column(String(16), index=True, nullable=False)
    requester_id = Column(String, index=True, nullable=False)
    requester_team_id = Column(String, nullable=True)
    requester_department = Column(String, nullable=True)

    # Using String to store enum values for simplicity with SQLite
    status = Column(String(16), default=RequestStatus.PENDING.value, nullable=False, index=True)
    cancel_status = Column(String(16), default=CancelStatus.NONE.value, nullable=False)

    # Leave payload
    leave_type = Column(String, nullable=True)
    leave_format = Column(String, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    total_days = Column(Float, nullable=True)
    attachments = Column(JSON, nullable=True)

    # Overtime payload
    work_date = Column(Date, nullable=True)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    total_hours = Column(Float, nullable=True)

    reason = Column(Text, nullable=True)

    approver_id = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approval_comment = Column(Text, nullable=True)

    cancel_requester_id = Column(String, nullable=True)
    cancel_requested_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(Text, nullable=True)

    cancel_responder_id = Column(String, nullable=True)
    cancel_responded_at = Column(DateTime(timezone=True), nullable=True)
    cancel_response_comment = Column(Text, nullable=True)

    # Bumped on every write; updates are compare-and-set on this column
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    transactions = relationship(
        "RequestTransaction",
        back_populates="request",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class RequestTransaction(Base):
    """Append-only transition history for a request."""
    __tablename__ = "request_transactions"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, nullable=False)
    request_id = Column(
        String(32),
        ForeignKey("approval_requests.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    type = Column(String(16), nullable=False)
    actor_id = Column(String, nullable=False)
    reason_or_comment = Column(Text, nullable=True)
    result_status = Column(String(16), default=TransactionResult.COMPLETED.value, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    request = relationship("ApprovalRequest", back_populates="transactions")
