# ruff: noqa: TC003
from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leaveflow.models.enums import LeaveStatus
from leaveflow.models.leave import LeaveRequest

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def is_on_leave(session: AsyncSession, employee_id: uuid.UUID, start_date: date, end_date: date) -> bool:
    """True iff the employee has approved leave intersecting [start_date, end_date]."""
    result = await session.execute(
        select(col(LeaveRequest.id))
        .where(
            col(LeaveRequest.employee_id) == employee_id,
            col(LeaveRequest.status) == LeaveStatus.APPROVED.value,
            col(LeaveRequest.start_date) <= end_date,
            col(LeaveRequest.end_date) >= start_date,
        )
        .limit(1)
    )
    return result.first() is not None


async def approved_leave_in_range(
    session: AsyncSession,
    employee_ids: Iterable[uuid.UUID],
    start_date: date,
    end_date: date,
) -> list[LeaveRequest]:
    """Approved leave of any of the given employees intersecting the range."""
    ids = list(employee_ids)
    if not ids:
        return []
    result = await session.execute(
        select(LeaveRequest).where(
            col(LeaveRequest.employee_id).in_(ids),
            col(LeaveRequest.status) == LeaveStatus.APPROVED.value,
            col(LeaveRequest.start_date) <= end_date,
            col(LeaveRequest.end_date) >= start_date,
        )
    )
    return list(result.scalars().all())
