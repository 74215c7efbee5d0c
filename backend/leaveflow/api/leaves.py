# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from leaveflow.api.deps import ActorDep, HrDep
from leaveflow.db import SessionDep
from leaveflow.schemas.leave import (
    ApprovalActionResponse,
    ApprovePayload,
    CreateLeavePayload,
    CreateLeaveResponse,
    DelegationHopResponse,
    LeaveDecisionResponse,
    LeaveRequestResponse,
    PendingApprovalResponse,
    RejectPayload,
    StatusLogEntryResponse,
    UploadDocumentPayload,
)
from leaveflow.services import leave as leave_service
from leaveflow.services.delegation import get_delegation_history

leave_requests_router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


@leave_requests_router.post("", response_model=CreateLeaveResponse, status_code=status.HTTP_201_CREATED)
async def create_leave_request(
    payload: CreateLeavePayload,
    session: SessionDep,
    actor: ActorDep,
) -> CreateLeaveResponse:
    """Submit a leave request for the acting employee."""
    return await leave_service.create_leave_request(session, actor.employee_id, payload)


@leave_requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveRequestResponse:
    return await leave_service.get_leave_request(session, request_id)


@leave_requests_router.get("/{request_id}/delegations", response_model=list[DelegationHopResponse])
async def get_delegations(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> list[DelegationHopResponse]:
    """Delegation history of a request, oldest hop first."""
    return await get_delegation_history(session, request_id)


@leave_requests_router.get("/{request_id}/status-log", response_model=list[StatusLogEntryResponse])
async def get_status_log(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> list[StatusLogEntryResponse]:
    return await leave_service.get_status_log(session, request_id)


@leave_requests_router.get("/{request_id}/actions", response_model=list[ApprovalActionResponse])
async def get_approval_actions(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> list[ApprovalActionResponse]:
    return await leave_service.get_approval_actions(session, request_id)


@leave_requests_router.post("/{request_id}/approve", response_model=LeaveDecisionResponse)
async def approve_leave(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
    payload: ApprovePayload | None = None,
) -> LeaveDecisionResponse:
    """Approve in whichever slot the acting employee fills."""
    return await leave_service.approve_leave(session, request_id, actor.employee_id, payload or ApprovePayload())


@leave_requests_router.post("/{request_id}/reject", response_model=LeaveRequestResponse)
async def reject_leave(
    request_id: uuid.UUID,
    payload: RejectPayload,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveRequestResponse:
    """Reject a request. Either approver's rejection is final."""
    return await leave_service.reject_leave(session, request_id, actor.employee_id, payload)


@leave_requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave(
    request_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveRequestResponse:
    """Cancel one's own request."""
    return await leave_service.cancel_leave(session, request_id, actor.employee_id)


@leave_requests_router.post("/{request_id}/document", response_model=LeaveRequestResponse)
async def upload_document(
    request_id: uuid.UUID,
    payload: UploadDocumentPayload,
    session: SessionDep,
    actor: ActorDep,
) -> LeaveRequestResponse:
    """Attach the medical document to a gated sick-leave request."""
    return await leave_service.upload_document(session, request_id, actor.employee_id, payload)


# ---------------------------------------------------------------------------
# Approval queues
# ---------------------------------------------------------------------------

approvals_router = APIRouter(prefix="/approvals", tags=["approvals"])


@approvals_router.get("/pending/manager", response_model=list[PendingApprovalResponse])
async def pending_for_manager(session: SessionDep, actor: ActorDep) -> list[PendingApprovalResponse]:
    """Requests whose manager slot waits on the acting employee."""
    return await leave_service.get_pending_for_manager(session, actor.employee_id)


@approvals_router.get("/pending/hr", response_model=list[PendingApprovalResponse])
async def pending_for_hr(session: SessionDep, actor: HrDep) -> list[PendingApprovalResponse]:
    """Requests waiting on HR (HR only)."""
    return await leave_service.get_pending_for_hr(session)
