# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leaveflow.models.base import TimestampMixin, UUIDBase, now_utc
from leaveflow.models.enums import ApprovalDecision, LeaveStatus


class LeaveRequest(UUIDBase, TimestampMixin, table=True):
    """An employee's leave request with dual-approval and delegation state."""

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_date_range"),
        sa.Index("ix_leave_request_employee_dates", "employee_id", "start_date", "end_date"),
        sa.Index("ix_leave_request_status_approver", "status", "current_approver_id"),
    )

    employee_id: uuid.UUID = Field(index=True)
    leave_type: str = Field(max_length=20)
    start_date: date
    end_date: date
    reason: str | None = None
    status: str = Field(
        default=LeaveStatus.PENDING, max_length=30, index=True, sa_column_kwargs={"server_default": "PENDING"}
    )

    # Document gating for long sick leave.
    medical_document_url: str | None = None
    document_deadline: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    document_reminder_count: int = Field(default=0, sa_column_kwargs={"server_default": "0"})

    # Dual approval.
    requires_dual_approval: bool = False
    manager_approval: str = Field(default=ApprovalDecision.PENDING, max_length=20)
    hr_approval: str = Field(default=ApprovalDecision.NOT_REQUIRED, max_length=20)

    # Advisory flags; the blackout flag gates approval.
    team_capacity_warning: bool = False
    blackout_warning: bool = False
    blackout_override: bool = False

    rejection_reason: str | None = None

    # Delegation.
    current_approver_id: uuid.UUID | None = Field(default=None, index=True)
    escalation_count: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    current_approver_assigned_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]

    updated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": now_utc},
    )
