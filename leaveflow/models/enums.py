import enum


class RequestKind(str, enum.Enum):
    LEAVE = "leave"
    OVERTIME = "overtime"


class RequestStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELED = "Canceled"


class CancelStatus(str, enum.Enum):
    NONE = "None"
    CANCEL_PENDING = "CancelPending"
    CANCEL_APPROVED = "CancelApproved"
    CANCEL_REJECTED = "CancelRejected"


class TransactionType(str, enum.Enum):
    """Transitions recorded in the transaction log."""
    APPROVE = "Approve"
    REJECT = "Reject"
    REQUEST_CANCEL = "RequestCancel"
    APPROVE_CANCEL = "ApproveCancel"
    REJECT_CANCEL = "RejectCancel"


CANCEL_TRANSACTION_TYPES = frozenset({
    TransactionType.REQUEST_CANCEL,
    TransactionType.APPROVE_CANCEL,
    TransactionType.REJECT_CANCEL,
})


class TransactionResult(str, enum.Enum):
    COMPLETED = "Completed"


class RequestAction(str, enum.Enum):
    """Everything an actor may attempt on a request, transitions plus edit/delete."""
    APPROVE = "Approve"
    REJECT = "Reject"
    REQUEST_CANCEL = "RequestCancel"
    APPROVE_CANCEL = "ApproveCancel"
    REJECT_CANCEL = "RejectCancel"
    EDIT = "Edit"
    DELETE = "Delete"

    @property
    def transaction_type(self) -> "TransactionType":
        if self in (RequestAction.EDIT, RequestAction.DELETE):
            raise ValueError(f"{self.value} is not a logged transition")
        return TransactionType(self.value)


REVIEW_ACTIONS = frozenset({
    RequestAction.APPROVE,
    RequestAction.REJECT,
    RequestAction.APPROVE_CANCEL,
    RequestAction.REJECT_CANCEL,
})

OWNER_ACTIONS = frozenset({
    RequestAction.EDIT,
    RequestAction.DELETE,
    RequestAction.REQUEST_CANCEL,
})


class ActorRole(str, enum.Enum):
    """
    Roles recognised by the approval lifecycle.

    - ADMIN: reviews and deletes any request
    - SUPERVISOR: reviews requests of employees in the same team or department
    - EMPLOYEE: self-service on their own requests
    """
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    EMPLOYEE = "employee"


class LeaveType(str, enum.Enum):
    SICK = "sick"
    PERSONAL = "personal"
    VACATION = "vacation"
    MATERNITY = "maternity"
    OTHER = "other"


class LeaveFormat(str, enum.Enum):
    """
    How much of each day a leave covers.

    The Thai labels match the request forms. Half-day detection
    matches the configured markers against the value.
    """
    FULL_DAY = "full-day"
    HALF_DAY_MORNING = "half-day-morning"
    HALF_DAY_AFTERNOON = "half-day-afternoon"
    FULL_DAY_TH = "เต็มวัน"
    HALF_DAY_TH = "ครึ่งวัน"
    HALF_DAY_MORNING_TH = "ครึ่งวันเช้า"
    HALF_DAY_AFTERNOON_TH = "ครึ่งวันบ่าย"
