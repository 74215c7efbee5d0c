# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from leaveflow.api.deps import ActorDep, HrDep, ensure_self_or_hr
from leaveflow.db import SessionDep
from leaveflow.exceptions import NotFoundError
from leaveflow.models.base import now_utc
from leaveflow.schemas.employee import (
    BalanceResponse,
    EmployeeResponse,
    NotificationResponse,
    UpsertBalanceRequest,
    UpsertEmployeeRequest,
)
from leaveflow.schemas.leave import LeaveRequestResponse
from leaveflow.services import leave as leave_service
from leaveflow.services.balance import BalanceInfo, get_balance_service
from leaveflow.services.notification import get_notification_service
from leaveflow.services.org import EmployeeInfo, get_org_graph

employees_router = APIRouter(prefix="/employees", tags=["employees"])


def _build_employee_response(employee: EmployeeInfo) -> EmployeeResponse:
    return EmployeeResponse(
        id=employee.id,
        name=employee.name,
        email=employee.email,
        role=employee.role,
        department=employee.department,
        reporting_manager_id=employee.reporting_manager_id,
    )


def _build_balance_response(balance: BalanceInfo) -> BalanceResponse:
    return BalanceResponse(
        employee_id=balance.employee_id,
        leave_type=balance.leave_type,
        year=balance.year,
        total_days=balance.total_days,
        used_days=balance.used_days,
        available_days=balance.available_days,
    )


@employees_router.put("/{employee_id}", response_model=EmployeeResponse)
async def upsert_employee(employee_id: uuid.UUID, payload: UpsertEmployeeRequest) -> EmployeeResponse:
    """Create or update an employee in the org graph stub (development only)."""
    employee = EmployeeInfo(
        id=employee_id,
        name=payload.name,
        email=payload.email,
        role=payload.role,
        department=payload.department,
        reporting_manager_id=payload.reporting_manager_id,
    )
    get_org_graph().seed(employee)  # ty: ignore[unresolved-attribute]
    return _build_employee_response(employee)


@employees_router.get("", response_model=list[EmployeeResponse])
async def list_employees(
    actor: ActorDep,
    department: str | None = Query(default=None),
) -> list[EmployeeResponse]:
    employees = await get_org_graph().list_employees(department)
    return [_build_employee_response(e) for e in employees]


@employees_router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: uuid.UUID, actor: ActorDep) -> EmployeeResponse:
    employee = await get_org_graph().get_employee(employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return _build_employee_response(employee)


@employees_router.get("/{employee_id}/leave-requests", response_model=list[LeaveRequestResponse])
async def list_employee_leave_requests(
    employee_id: uuid.UUID,
    session: SessionDep,
    actor: ActorDep,
) -> list[LeaveRequestResponse]:
    """An employee's leave requests, newest first."""
    ensure_self_or_hr(actor, employee_id)
    return await leave_service.list_requests_for_employee(session, employee_id)


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


@employees_router.put("/{employee_id}/balances", response_model=BalanceResponse)
async def upsert_balance(employee_id: uuid.UUID, payload: UpsertBalanceRequest, actor: HrDep) -> BalanceResponse:
    """Grant or reset a leave balance in the balance stub (HR only)."""
    if await get_org_graph().get_employee(employee_id) is None:
        raise NotFoundError("Employee not found")
    balance = BalanceInfo(
        employee_id=employee_id,
        leave_type=payload.leave_type,
        year=payload.year,
        total_days=payload.total_days,
        used_days=payload.used_days,
    )
    get_balance_service().seed(balance)  # ty: ignore[unresolved-attribute]
    return _build_balance_response(balance)


@employees_router.get("/{employee_id}/balances", response_model=list[BalanceResponse])
async def list_balances(
    employee_id: uuid.UUID,
    actor: ActorDep,
    year: int | None = Query(default=None, ge=2000, le=2100),
) -> list[BalanceResponse]:
    ensure_self_or_hr(actor, employee_id)
    balances = await get_balance_service().list_balances(employee_id, year or now_utc().year)
    return [_build_balance_response(b) for b in balances]


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@employees_router.get("/{employee_id}/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    employee_id: uuid.UUID,
    actor: ActorDep,
    unread_only: bool = Query(default=False),
) -> list[NotificationResponse]:
    """Notifications for an employee, newest first."""
    ensure_self_or_hr(actor, employee_id)
    notifications = await get_notification_service().list_for_employee(employee_id, unread_only=unread_only)
    return [
        NotificationResponse(
            id=n.id,
            employee_id=n.employee_id,
            kind=n.kind,
            message=n.message,
            related_request_id=n.related_request_id,
            is_read=n.is_read,
            created_at=n.created_at,
        )
        for n in notifications
    ]
