# ruff: noqa: TC003
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leaveflow.models.enums import LeaveStatus
from leaveflow.models.leave import LeaveRequest
from leaveflow.services.availability import approved_leave_in_range
from leaveflow.services.org import get_org_graph
from leaveflow.services.policy import TEAM_CAPACITY_RATIO, iter_dates

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class DailyCapacity:
    """Projected headcount on leave for one date."""

    date: date
    on_leave: int
    percentage: int


@dataclass
class CapacityCheck:
    """Outcome of projecting one more absence onto a department."""

    would_breach: bool = False
    details: list[DailyCapacity] = field(default_factory=list)

    @property
    def worst_day(self) -> DailyCapacity | None:
        if not self.details:
            return None
        return max(self.details, key=lambda d: (d.percentage, -d.date.toordinal()))


async def check_team_capacity(
    session: AsyncSession,
    department: str,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
    team_size: int,
) -> CapacityCheck:
    """Project the requester's absence onto each date and report breaching days.

    A date breaches when the projected number of people away exceeds
    floor(team_size * TEAM_CAPACITY_RATIO). Only dates that breach are listed.
    """
    check = CapacityCheck()
    if team_size <= 0:
        return check

    threshold = math.floor(team_size * TEAM_CAPACITY_RATIO)
    colleagues = await get_org_graph().list_employees(department)
    colleague_ids = [e.id for e in colleagues if e.id != employee_id]
    approved = await approved_leave_in_range(session, colleague_ids, start_date, end_date)

    for day in iter_dates(start_date, end_date):
        away = {lr.employee_id for lr in approved if lr.start_date <= day <= lr.end_date}
        projected = len(away) + 1
        if projected > threshold:
            check.would_breach = True
            check.details.append(
                DailyCapacity(date=day, on_leave=projected, percentage=round(projected / team_size * 100))
            )

    return check


async def reevaluate_capacity_warnings(session: AsyncSession, department: str) -> int:
    """Clear capacity warnings on open requests that no longer breach. Returns how many were cleared.

    Runs after approved leave in the department is cancelled. The caller commits.
    """
    members = await get_org_graph().list_employees(department)
    member_ids = [e.id for e in members]
    if not member_ids:
        return 0

    result = await session.execute(
        select(LeaveRequest).where(
            col(LeaveRequest.employee_id).in_(member_ids),
            col(LeaveRequest.team_capacity_warning).is_(True),
            col(LeaveRequest.status).in_([LeaveStatus.PENDING.value, LeaveStatus.PARTIALLY_APPROVED.value]),
        )
    )
    team_size = await get_org_graph().get_team_size(department)

    cleared = 0
    for request in result.scalars().all():
        check = await check_team_capacity(
            session, department, request.employee_id, request.start_date, request.end_date, team_size
        )
        if not check.would_breach:
            request.team_capacity_warning = False
            cleared += 1
    return cleared
