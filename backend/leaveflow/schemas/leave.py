# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from leaveflow.models.enums import (
    ApprovalActionType,
    ApprovalDecision,
    ApprovalSlot,
    DelegationReason,
    LeaveStatus,
    LeaveType,
)

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateLeavePayload(BaseModel):
    """Request body for submitting a leave request.

    The date range is validated by the service so a reversed range is
    reported as a ValidationError like every other input problem.
    """

    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=2000)


class ApprovePayload(BaseModel):
    """Request body for approving a leave request."""

    comments: str | None = Field(default=None, max_length=1000)
    blackout_override: bool = False


class RejectPayload(BaseModel):
    """Request body for rejecting a leave request."""

    reason: str = Field(min_length=1, max_length=1000)
    comments: str | None = Field(default=None, max_length=1000)


class UploadDocumentPayload(BaseModel):
    """Request body for attaching a medical document."""

    document_url: str = Field(min_length=1, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: str | None
    status: LeaveStatus
    requires_dual_approval: bool
    manager_approval: ApprovalDecision
    hr_approval: ApprovalDecision
    team_capacity_warning: bool
    blackout_warning: bool
    blackout_override: bool
    rejection_reason: str | None
    current_approver_id: uuid.UUID | None
    escalation_count: int
    current_approver_assigned_at: datetime | None
    medical_document_url: str | None
    document_deadline: datetime | None
    document_reminder_count: int
    created_at: datetime
    updated_at: datetime


class CreateLeaveResponse(BaseModel):
    """A newly created request plus any advisory warnings."""

    leave_request: LeaveRequestResponse
    warnings: list[str]


class LeaveDecisionResponse(BaseModel):
    """Outcome of an approval, naming what is still outstanding."""

    leave_request: LeaveRequestResponse
    message: str


class PendingApprovalResponse(LeaveRequestResponse):
    """A request awaiting action, with warnings derived from its flags."""

    warnings: list[str]


class ApprovalActionResponse(BaseModel):
    """One entry of the approval trail."""

    id: uuid.UUID
    leave_request_id: uuid.UUID
    approver_id: uuid.UUID
    action: ApprovalActionType
    role_type: ApprovalSlot
    comments: str | None
    created_at: datetime


class DelegationHopResponse(BaseModel):
    """One hop of the delegation history."""

    id: uuid.UUID
    leave_request_id: uuid.UUID
    from_approver_id: uuid.UUID
    from_name: str | None
    to_approver_id: uuid.UUID
    to_name: str | None
    reason: DelegationReason
    created_at: datetime


class StatusLogEntryResponse(BaseModel):
    """One status transition."""

    id: uuid.UUID
    leave_request_id: uuid.UUID
    changed_by_id: uuid.UUID
    old_status: LeaveStatus | None
    new_status: LeaveStatus
    reason: str | None
    changed_at: datetime
