from pydantic import BaseModel, ConfigDict, Field
from datetime import date
from typing import List, Optional

from leaveflow.models.enums import LeaveFormat, LeaveType
from leaveflow.schemas.request import TIME_OF_DAY_PATTERN


class OnBehalfOf(BaseModel):
    """Employee an administrator files a request for."""
    id: str
    team_id: Optional[str] = None
    department_name: Optional[str] = None


class LeaveRequestCreate(BaseModel):
    leave_type: LeaveType
    leave_format: LeaveFormat = LeaveFormat.FULL_DAY
    start_date: date
    end_date: date
    reason: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)
    on_behalf_of: Optional[OnBehalfOf] = None


class LeaveRequestUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    leave_type: Optional[LeaveType] = None
    leave_format: Optional[LeaveFormat] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    attachments: Optional[List[str]] = None


class OvertimeRequestCreate(BaseModel):
    work_date: date
    start_time: str = Field(pattern=TIME_OF_DAY_PATTERN)
    end_time: str = Field(pattern=TIME_OF_DAY_PATTERN)
    reason: Optional[str] = None
    on_behalf_of: Optional[OnBehalfOf] = None


class OvertimeRequestUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    work_date: Optional[date] = None
    start_time: Optional[str] = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    reason: Optional[str] = None


class TransitionBody(BaseModel):
    comment: Optional[str] = None


class CancelRequestBody(BaseModel):
    cancel_reason: Optional[str] = None
