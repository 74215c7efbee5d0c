# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leaveflow.exceptions import NotFoundError
from leaveflow.models.blackout import BlackoutPeriod
from leaveflow.schemas.blackout import BlackoutPeriodResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leaveflow.schemas.blackout import CreateBlackoutPayload

logger = logging.getLogger(__name__)


def _build_blackout_response(period: BlackoutPeriod) -> BlackoutPeriodResponse:
    """Map a blackout model to its response schema."""
    return BlackoutPeriodResponse(
        id=period.id,
        department=period.department,
        name=period.name,
        start_date=period.start_date,
        end_date=period.end_date,
        reason=period.reason,
        created_at=period.created_at,
    )


async def check_blackout_conflict(
    session: AsyncSession,
    department: str,
    start_date: date,
    end_date: date,
) -> list[BlackoutPeriod]:
    """Blackout periods of the department intersecting the inclusive range."""
    result = await session.execute(
        select(BlackoutPeriod)
        .where(
            col(BlackoutPeriod.department) == department,
            col(BlackoutPeriod.start_date) <= end_date,
            col(BlackoutPeriod.end_date) >= start_date,
        )
        .order_by(col(BlackoutPeriod.start_date))
    )
    return list(result.scalars().all())


async def create_blackout_period(session: AsyncSession, payload: CreateBlackoutPayload) -> BlackoutPeriodResponse:
    period = BlackoutPeriod(
        department=payload.department,
        name=payload.name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
    )
    session.add(period)
    await session.commit()
    await session.refresh(period)
    logger.info("Created blackout period %s for %s", period.id, period.department)
    return _build_blackout_response(period)


async def list_blackout_periods(session: AsyncSession, department: str | None = None) -> list[BlackoutPeriodResponse]:
    query = select(BlackoutPeriod).order_by(col(BlackoutPeriod.start_date))
    if department is not None:
        query = query.where(col(BlackoutPeriod.department) == department)
    result = await session.execute(query)
    return [_build_blackout_response(p) for p in result.scalars().all()]


async def delete_blackout_period(session: AsyncSession, period_id: uuid.UUID) -> None:
    """Delete a blackout period. Existing requests keep their warning flag."""
    period = await session.get(BlackoutPeriod, period_id)
    if period is None:
        raise NotFoundError("Blackout period not found")
    await session.delete(period)
    await session.commit()
