# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from leaveflow.models.enums import EmployeeRole, LeaveType, NotificationKind


class UpsertEmployeeRequest(BaseModel):
    """Request body for creating/updating an employee in the org stub."""

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=1, max_length=150)
    role: EmployeeRole = EmployeeRole.EMPLOYEE
    department: str = Field(min_length=1, max_length=50)
    reporting_manager_id: uuid.UUID | None = None


class EmployeeResponse(BaseModel):
    """Response schema for an employee."""

    id: uuid.UUID
    name: str
    email: str
    role: EmployeeRole
    department: str
    reporting_manager_id: uuid.UUID | None


class UpsertBalanceRequest(BaseModel):
    """Request body for granting a leave balance in the balance stub."""

    leave_type: LeaveType
    year: int = Field(ge=2000, le=2100)
    total_days: int = Field(ge=0)
    used_days: int = Field(default=0, ge=0)


class BalanceResponse(BaseModel):
    """Response schema for one leave balance."""

    employee_id: uuid.UUID
    leave_type: LeaveType
    year: int
    total_days: int
    used_days: int
    available_days: int


class NotificationResponse(BaseModel):
    """Response schema for one notification."""

    id: uuid.UUID
    employee_id: uuid.UUID
    kind: NotificationKind
    message: str
    related_request_id: uuid.UUID | None
    is_read: bool
    created_at: datetime
