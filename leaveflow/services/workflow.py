"""
Request workflow service.

Host-side orchestration around the pure lifecycle core: fetch the latest
request, evaluate authorization, apply the transition, persist it with a
compare-and-set on the version, and append the transaction log entry.

Every public method returns a Result; AppExceptions never escape.
"""
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from leaveflow.core.config import ScopeMatchPolicy, settings
from leaveflow.core.exceptions import (
    AccessDeniedError,
    AppException,
    NotFoundError,
    StaleWriteError,
    StorageError,
)
from leaveflow.core.schemas import Result
from leaveflow.models.enums import ActorRole, RequestAction, RequestKind, RequestStatus
from leaveflow.repositories.base import LogStore, RequestStore
from leaveflow.schemas.request import (
    Actor,
    LeavePayload,
    OvertimePayload,
    Request,
    TransactionLogEntry,
    TransitionOutcome,
)
from leaveflow.services import lifecycle, transaction_log
from leaveflow.services.authorization import can_perform, scope_matches
from leaveflow.services.base import BaseService

T = TypeVar("T")


class RequestWorkflowService(BaseService):

    def __init__(
        self,
        requests: RequestStore,
        transactions: LogStore,
        retry_attempts: Optional[int] = None,
        scope_policy: Optional[ScopeMatchPolicy] = None
    ):
        super().__init__(requests, transactions)
        self.retry_attempts = retry_attempts or settings.lifecycle.transition_retry_attempts
        self.scope_policy = scope_policy

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _as_result(self, operation: Callable[[], T]) -> Result[T]:
        try:
            return Result.ok(operation())
        except AppException as e:
            self.log_warning(f"{e.error_code}: {e.message}", error_details=e.details)
            return Result.from_exception(e)

    def _with_retry(self, operation: Callable[[], T]) -> T:
        """Re-run a read-modify-write when another writer got there first."""
        for attempt in Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            retry=retry_if_exception_type(StaleWriteError),
            reraise=True
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    self.log_info(f"Retrying after concurrent write (attempt {attempt.retry_state.attempt_number})")
                return operation()

    def _load(self, request_id: str, kind: Optional[RequestKind] = None) -> Request:
        request = self.requests.get(request_id)
        if kind is not None and request.kind != kind:
            raise NotFoundError(
                f"{kind.value.capitalize()} request {request_id} not found",
                details={"request_id": request_id}
            )
        return request

    def _authorize(self, actor: Actor, request: Request, action: RequestAction) -> None:
        if not can_perform(actor, request, action, self.scope_policy):
            raise AccessDeniedError(
                f"{actor.role.value} {actor.id} may not {action.value} request {request.id}",
                details={"request_id": request.id, "action": action.value}
            )

    def _ensure_can_view(self, actor: Actor, request: Request) -> None:
        if actor.is_admin or actor.id == request.requester_id:
            return
        if actor.role == ActorRole.SUPERVISOR and scope_matches(actor, request, self.scope_policy):
            return
        raise AccessDeniedError(f"No access to request {request.id}", details={"request_id": request.id})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, actor: Actor, request_id: str, kind: Optional[RequestKind] = None) -> Result[Request]:
        def run():
            request = self._load(request_id, kind)
            self._ensure_can_view(actor, request)
            return request
        return self._as_result(run)

    def list(
        self,
        actor: Actor,
        kind: Optional[RequestKind] = None,
        status: Optional[RequestStatus] = None,
        requester_id: Optional[str] = None
    ) -> Result[List[Request]]:
        def run():
            # Employees only ever see their own requests
            owner = actor.id if actor.role == ActorRole.EMPLOYEE else requester_id
            found = self.requests.list(requester_id=owner, kind=kind, status=status)
            if actor.role == ActorRole.SUPERVISOR:
                found = [
                    r for r in found
                    if r.requester_id == actor.id or scope_matches(actor, r, self.scope_policy)
                ]
            return found
        return self._as_result(run)

    def history(self, actor: Actor, request_id: str, kind: Optional[RequestKind] = None) -> Result[List[TransactionLogEntry]]:
        def run():
            request = self._load(request_id, kind)
            self._ensure_can_view(actor, request)
            return self.transactions.list_for(request_id)
        return self._as_result(run)

    def is_consistent(self, request_id: str, kind: Optional[RequestKind] = None) -> Result[bool]:
        """Check the cached cancel status against the transaction log."""
        def run():
            request = self._load(request_id, kind)
            return transaction_log.is_consistent(request, self.transactions.list_for(request_id))
        return self._as_result(run)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def submit(
        self,
        actor: Actor,
        payload: Union[LeavePayload, OvertimePayload],
        on_behalf_of: Optional[Actor] = None
    ) -> Result[Request]:
        """File a new pending request; administrators may file for another employee."""
        def run():
            owner = actor
            if on_behalf_of is not None and on_behalf_of.id != actor.id:
                if not actor.is_admin:
                    raise AccessDeniedError("Only administrators may file requests for other employees")
                owner = on_behalf_of
            request = lifecycle.open_request(
                requester_id=owner.id,
                payload=payload,
                requester_team_id=owner.team_id,
                requester_department=owner.department_name,
            ).unwrap()
            saved = self.requests.save(request)
            self.log_info(f"Request {saved.id} ({saved.kind.value}) submitted by {actor.id} for {owner.id}")
            return saved
        return self._as_result(run)

    def edit(
        self,
        actor: Actor,
        request_id: str,
        changes: Dict[str, Any],
        kind: Optional[RequestKind] = None
    ) -> Result[Request]:
        def attempt():
            request = self._load(request_id, kind)
            self._authorize(actor, request, RequestAction.EDIT)
            edited = lifecycle.edit(request, changes)
            return self.requests.save(edited, expected_version=request.version)
        return self._as_result(lambda: self._with_retry(attempt))

    def delete(self, actor: Actor, request_id: str, kind: Optional[RequestKind] = None) -> Result[None]:
        def attempt():
            request = self._load(request_id, kind)
            self._authorize(actor, request, RequestAction.DELETE)
            lifecycle.ensure_deletable(request, by_admin=actor.is_admin)
            # The state checked above must still be the stored one
            self.requests.delete(request_id, expected_version=request.version)
            self.transactions.delete_for(request_id)
            self.log_info(f"Request {request_id} deleted by {actor.id}")
        return self._as_result(lambda: self._with_retry(attempt))

    def transition(
        self,
        actor: Actor,
        request_id: str,
        event: RequestAction,
        reason_or_comment: Optional[str] = None,
        kind: Optional[RequestKind] = None
    ) -> Result[TransitionOutcome]:
        def attempt():
            request = self._load(request_id, kind)
            self._authorize(actor, request, event)
            outcome = lifecycle.transition(request, event, actor.id, reason_or_comment)
            saved = self.requests.save(outcome.request, expected_version=request.version)
            entry = self._append_or_restore(request, saved, outcome.entry)
            return TransitionOutcome(request=saved, entry=entry)
        return self._as_result(lambda: self._with_retry(attempt))

    def _append_or_restore(self, previous: Request, saved: Request, entry: TransactionLogEntry) -> TransactionLogEntry:
        """An unlogged state change breaks the audit trail, so undo the save if the append fails."""
        try:
            return self.transactions.append(entry)
        except Exception as append_error:
            self.log_error(f"Log append failed for request {previous.id}, restoring previous state: {append_error}")
            try:
                self.requests.save(previous, expected_version=saved.version)
            except Exception as restore_error:
                self.log_error(f"Restore failed for request {previous.id}: {restore_error}")
                raise StorageError(
                    f"Request {previous.id} changed but its transaction could not be recorded or undone",
                    details={"request_id": previous.id, "entry_type": entry.type.value}
                )
            if isinstance(append_error, AppException):
                raise append_error
            raise StorageError(
                f"Failed to record transaction for request {previous.id}",
                details={"request_id": previous.id}
            )
