from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Machine-readable error kinds surfaced at the core boundary."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    STORAGE_ERROR = "STORAGE_ERROR"


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class DomainValidationError(AppException):
    """Malformed or inconsistent input, e.g. an end date before the start date."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code=ErrorKind.VALIDATION_ERROR.value,
            details=details
        )


class InvalidTransitionError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=ErrorKind.INVALID_TRANSITION.value,
            details=details
        )


class ConflictError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code=ErrorKind.CONFLICT.value,
            details=details
        )


class StaleWriteError(ConflictError):
    """Raised by a store when a compare-and-set on the request version fails."""
    def __init__(self, request_id: str, expected_version: Optional[int]):
        super().__init__(
            message=f"Request {request_id} was modified concurrently",
            details={"request_id": request_id, "expected_version": expected_version}
        )


class AccessDeniedError(AppException):
    """Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=403,
            error_code=ErrorKind.UNAUTHORIZED.value,
            details=details
        )


class NotFoundError(AppException):
    def __init__(self, message: str = "Request not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=404,
            error_code=ErrorKind.NOT_FOUND.value,
            details=details
        )


class StorageError(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code=ErrorKind.STORAGE_ERROR.value,
            details=details
        )


_EXCEPTIONS_BY_KIND = {
    ErrorKind.VALIDATION_ERROR: DomainValidationError,
    ErrorKind.INVALID_TRANSITION: InvalidTransitionError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.UNAUTHORIZED: AccessDeniedError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.STORAGE_ERROR: StorageError,
}


def exception_for(kind: ErrorKind, message: str, details: Optional[Dict[str, Any]] = None) -> AppException:
    """Rebuild the exception matching an error kind."""
    return _EXCEPTIONS_BY_KIND[kind](message, details=details)
