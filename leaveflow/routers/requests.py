import logging
from typing import Optional, Type

from fastapi import APIRouter, Depends
from fastapi import status as http_status
from pydantic import BaseModel

from leaveflow.core.schemas import ApiResponse
from leaveflow.models.enums import RequestAction, RequestKind, RequestStatus
from leaveflow.routers.deps import get_current_actor, get_workflow
from leaveflow.schemas.api import (
    CancelRequestBody,
    LeaveRequestCreate,
    LeaveRequestUpdate,
    OvertimeRequestCreate,
    OvertimeRequestUpdate,
    TransitionBody,
)
from leaveflow.schemas.request import Actor, LeavePayload, OvertimePayload
from leaveflow.services.workflow import RequestWorkflowService

logger = logging.getLogger(__name__)

_PAYLOAD_TYPES = {
    RequestKind.LEAVE: LeavePayload,
    RequestKind.OVERTIME: OvertimePayload,
}


def build_router(
    kind: RequestKind,
    prefix: str,
    create_model: Type[BaseModel],
    update_model: Type[BaseModel]
) -> APIRouter:
    """Routes shared by leave and overtime: CRUD plus the approval and cancellation transitions."""
    router = APIRouter(prefix=prefix, tags=[f"{kind.value}-requests"])
    payload_type = _PAYLOAD_TYPES[kind]

    @router.post("", status_code=http_status.HTTP_201_CREATED)
    def create_request(
        body: create_model,
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        fields = body.model_dump(exclude={"on_behalf_of"})
        on_behalf_of = None
        if body.on_behalf_of is not None:
            on_behalf_of = Actor(**body.on_behalf_of.model_dump())
        request = workflow.submit(actor, payload_type(**fields), on_behalf_of=on_behalf_of).unwrap()
        return ApiResponse.ok(request.model_dump(mode="json"))

    @router.get("")
    def list_requests(
        status: Optional[RequestStatus] = None,
        requester_id: Optional[str] = None,
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        requests = workflow.list(actor, kind=kind, status=status, requester_id=requester_id).unwrap()
        return ApiResponse.ok(
            [r.model_dump(mode="json") for r in requests],
            metadata={"count": len(requests)}
        )

    @router.get("/{request_id}")
    def get_request(
        request_id: str,
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        request = workflow.get(actor, request_id, kind=kind).unwrap()
        return ApiResponse.ok(request.model_dump(mode="json"))

    @router.put("/{request_id}")
    def edit_request(
        request_id: str,
        body: update_model,
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        changes = body.model_dump(exclude_unset=True)
        request = workflow.edit(actor, request_id, changes, kind=kind).unwrap()
        return ApiResponse.ok(request.model_dump(mode="json"))

    @router.delete("/{request_id}")
    def delete_request(
        request_id: str,
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        workflow.delete(actor, request_id, kind=kind).unwrap()
        return ApiResponse.ok({"id": request_id, "deleted": True})

    @router.get("/{request_id}/transactions")
    def list_transactions(
        request_id: str,
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        entries = workflow.history(actor, request_id, kind=kind).unwrap()
        return ApiResponse.ok([e.model_dump(mode="json") for e in entries])

    def _transition(workflow, actor, request_id, event, text):
        outcome = workflow.transition(actor, request_id, event, text, kind=kind).unwrap()
        return ApiResponse.ok(
            outcome.request.model_dump(mode="json"),
            metadata={"transaction": outcome.entry.model_dump(mode="json")}
        )

    @router.post("/{request_id}/approve")
    def approve(
        request_id: str,
        body: TransitionBody = TransitionBody(),
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        return _transition(workflow, actor, request_id, RequestAction.APPROVE, body.comment)

    @router.post("/{request_id}/reject")
    def reject(
        request_id: str,
        body: TransitionBody = TransitionBody(),
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        return _transition(workflow, actor, request_id, RequestAction.REJECT, body.comment)

    @router.post("/{request_id}/cancel-request")
    def request_cancel(
        request_id: str,
        body: CancelRequestBody = CancelRequestBody(),
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        return _transition(workflow, actor, request_id, RequestAction.REQUEST_CANCEL, body.cancel_reason)

    @router.post("/{request_id}/approve-cancel")
    def approve_cancel(
        request_id: str,
        body: TransitionBody = TransitionBody(),
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        return _transition(workflow, actor, request_id, RequestAction.APPROVE_CANCEL, body.comment)

    @router.post("/{request_id}/reject-cancel")
    def reject_cancel(
        request_id: str,
        body: TransitionBody = TransitionBody(),
        actor: Actor = Depends(get_current_actor),
        workflow: RequestWorkflowService = Depends(get_workflow)
    ):
        return _transition(workflow, actor, request_id, RequestAction.REJECT_CANCEL, body.comment)

    return router


leave_router = build_router(RequestKind.LEAVE, "/leaves", LeaveRequestCreate, LeaveRequestUpdate)
overtime_router = build_router(RequestKind.OVERTIME, "/overtime", OvertimeRequestCreate, OvertimeRequestUpdate)
