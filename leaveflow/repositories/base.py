"""
Store interfaces consumed by the request lifecycle.

Implementations must make `RequestStore.save` a compare-and-set on the
request version so concurrent transitions on one request are serialized.
"""
from typing import List, Optional, Protocol

from leaveflow.models.enums import RequestKind, RequestStatus
from leaveflow.schemas.request import Request, TransactionLogEntry


class RequestStore(Protocol):
    def get(self, request_id: str) -> Request:
        """Return the latest committed request or raise NotFoundError."""
        ...

    def save(self, request: Request, expected_version: Optional[int] = None) -> Request:
        """
        Insert when expected_version is None, otherwise update only if the stored
        version still equals expected_version (StaleWriteError if not).
        Returns the stored request with its new version.
        """
        ...

    def delete(self, request_id: str, expected_version: Optional[int] = None) -> None:
        """
        Remove the request. With expected_version, only if the stored version
        still matches (StaleWriteError if not).
        """
        ...

    def list(
        self,
        requester_id: Optional[str] = None,
        kind: Optional[RequestKind] = None,
        status: Optional[RequestStatus] = None
    ) -> List[Request]:
        ...


class LogStore(Protocol):
    def append(self, entry: TransactionLogEntry) -> TransactionLogEntry:
        ...

    def list_for(self, request_id: str) -> List[TransactionLogEntry]:
        """Entries for one request in append order."""
        ...

    def delete_for(self, request_id: str) -> int:
        ...
