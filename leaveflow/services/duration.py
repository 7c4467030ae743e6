"""
Duration calculator for leave days and overtime hours.

The calculator is authoritative: stored totals are always recomputed from the
start/end values here and never taken from caller input.
"""
import logging
import math
from datetime import timedelta
from typing import Iterable, Optional, Union

from leaveflow.core.config import settings
from leaveflow.core.exceptions import AppException, DomainValidationError
from leaveflow.core.schemas import Result
from leaveflow.schemas.request import LeavePayload, OvertimePayload

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
HALF_DAY = 0.5

Payload = Union[LeavePayload, OvertimePayload]


def is_half_day(leave_format: Optional[str], markers: Optional[Iterable[str]] = None) -> bool:
    """True when the leave format names a half-day variant."""
    if not leave_format:
        return False
    markers = settings.lifecycle.half_day_markers if markers is None else markers
    lowered = leave_format.lower()
    return any(marker.lower() in lowered for marker in markers)


def _minutes_of_day(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def leave_days(payload: LeavePayload) -> float:
    if is_half_day(payload.leave_format):
        return HALF_DAY
    if payload.end_date < payload.start_date:
        raise DomainValidationError(
            "End date must not precede start date",
            details={"start_date": payload.start_date.isoformat(), "end_date": payload.end_date.isoformat()}
        )
    span: timedelta = payload.end_date - payload.start_date
    # Inclusive of both endpoints
    return float(math.ceil(span.total_seconds() / 86400) + 1)


def overtime_hours(payload: OvertimePayload) -> float:
    minutes = _minutes_of_day(payload.end_time) - _minutes_of_day(payload.start_time)
    if minutes < 0:
        # Overnight shift crossing midnight
        minutes += MINUTES_PER_DAY
    if minutes <= 0:
        raise DomainValidationError(
            "End time must be after start time",
            details={"start_time": payload.start_time, "end_time": payload.end_time}
        )
    return round(minutes / 60, 2)


def compute(payload: Payload) -> float:
    if isinstance(payload, LeavePayload):
        return leave_days(payload)
    if isinstance(payload, OvertimePayload):
        return overtime_hours(payload)
    raise DomainValidationError(f"Unsupported payload type: {type(payload).__name__}")


def normalize_payload(payload: Payload) -> Payload:
    """
    Return a copy of the payload with its authoritative total.
    Half-day leave also pins the end date to the start date.
    Raises DomainValidationError on inconsistent input.
    """
    total = compute(payload)
    if isinstance(payload, LeavePayload):
        update = {"total_days": total}
        if is_half_day(payload.leave_format):
            update["end_date"] = payload.start_date
        return payload.model_copy(update=update)
    return payload.model_copy(update={"total_hours": total})


def calculate_duration(payload: Payload) -> Result[float]:
    """Total days (leave) or hours (overtime) for a payload, as an explicit result."""
    try:
        return Result.ok(compute(payload))
    except AppException as e:
        logger.info(f"Duration rejected: {e.message}", extra={"details": e.details})
        return Result.from_exception(e)
