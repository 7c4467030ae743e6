from typing import Any, Dict, Generic, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, timezone

from leaveflow.core.exceptions import AppException, ErrorKind, exception_for

T = TypeVar("T")


class ErrorInfo(BaseModel):
    code: ErrorKind
    message: str
    details: Optional[Dict[str, Any]] = None


class Result(BaseModel, Generic[T]):
    """
    Explicit success/failure value returned by every core operation.
    Exceptions stay inside the core; callers inspect `success` or call `unwrap()`.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    value: Optional[T] = None
    error: Optional[ErrorInfo] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.code if self.error else None

    def unwrap(self) -> T:
        """Return the value or raise the AppException matching the error kind."""
        if self.success:
            return self.value
        raise exception_for(self.error.code, self.error.message, self.error.details)

    @classmethod
    def ok(cls, value: T = None) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, details: Optional[Dict[str, Any]] = None) -> "Result[T]":
        return cls(success=False, error=ErrorInfo(code=kind, message=message, details=details))

    @classmethod
    def from_exception(cls, exc: AppException) -> "Result[T]":
        return cls.fail(ErrorKind(exc.error_code), exc.message, exc.details)


class ApiResponse(BaseModel, Generic[T]):
    model_config = ConfigDict(json_encoders={datetime: lambda v: v.isoformat()})

    success: bool
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None
    metadata: Dict[str, Any] = {}
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, data: T, metadata: Optional[Dict[str, Any]] = None) -> "ApiResponse[T]":
        return cls(success=True, data=data, metadata=metadata or {})
