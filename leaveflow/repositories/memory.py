import threading
from collections import defaultdict
from typing import Dict, List, Optional

from leaveflow.core.exceptions import ConflictError, NotFoundError, StaleWriteError
from leaveflow.models.enums import RequestKind, RequestStatus
from leaveflow.schemas.request import Request, TransactionLogEntry


class InMemoryRequestStore:
    """Thread-safe request store; copies on the way in and out so callers never share state."""

    def __init__(self):
        self._lock = threading.Lock()
        self._requests: Dict[str, Request] = {}

    def get(self, request_id: str) -> Request:
        with self._lock:
            stored = self._requests.get(request_id)
            if stored is None:
                raise NotFoundError(f"Request {request_id} not found", details={"request_id": request_id})
            return stored.model_copy(deep=True)

    def save(self, request: Request, expected_version: Optional[int] = None) -> Request:
        with self._lock:
            current = self._requests.get(request.id)
            if expected_version is None:
                if current is not None:
                    raise ConflictError(f"Request {request.id} already exists", details={"request_id": request.id})
                new_version = 1
            else:
                if current is None:
                    raise NotFoundError(f"Request {request.id} not found", details={"request_id": request.id})
                if current.version != expected_version:
                    raise StaleWriteError(request.id, expected_version)
                new_version = expected_version + 1

            stored = request.model_copy(update={"version": new_version}, deep=True)
            self._requests[request.id] = stored
            return stored.model_copy(deep=True)

    def delete(self, request_id: str, expected_version: Optional[int] = None) -> None:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None:
                raise NotFoundError(f"Request {request_id} not found", details={"request_id": request_id})
            if expected_version is not None and current.version != expected_version:
                raise StaleWriteError(request_id, expected_version)
            del self._requests[request_id]

    def list(
        self,
        requester_id: Optional[str] = None,
        kind: Optional[RequestKind] = None,
        status: Optional[RequestStatus] = None
    ) -> List[Request]:
        with self._lock:
            found = [
                r.model_copy(deep=True) for r in self._requests.values()
                if (requester_id is None or r.requester_id == requester_id)
                and (kind is None or r.kind == kind)
                and (status is None or r.status == status)
            ]
        return sorted(found, key=lambda r: r.created_at)


class InMemoryLogStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, List[TransactionLogEntry]] = defaultdict(list)

    def append(self, entry: TransactionLogEntry) -> TransactionLogEntry:
        with self._lock:
            self._entries[entry.request_id].append(entry)
        return entry

    def list_for(self, request_id: str) -> List[TransactionLogEntry]:
        with self._lock:
            return list(self._entries.get(request_id, []))

    def delete_for(self, request_id: str) -> int:
        with self._lock:
            return len(self._entries.pop(request_id, []))
