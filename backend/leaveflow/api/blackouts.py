# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leaveflow.api.deps import ActorDep, HrDep
from leaveflow.db import SessionDep
from leaveflow.schemas.blackout import BlackoutPeriodResponse, CreateBlackoutPayload
from leaveflow.services import blackout as blackout_service

blackouts_router = APIRouter(prefix="/blackout-periods", tags=["blackout-periods"])


@blackouts_router.post("", response_model=BlackoutPeriodResponse, status_code=status.HTTP_201_CREATED)
async def create_blackout_period(
    payload: CreateBlackoutPayload,
    session: SessionDep,
    actor: HrDep,
) -> BlackoutPeriodResponse:
    """Declare a department blackout period (HR only)."""
    return await blackout_service.create_blackout_period(session, payload)


@blackouts_router.get("", response_model=list[BlackoutPeriodResponse])
async def list_blackout_periods(
    session: SessionDep,
    actor: ActorDep,
    department: str | None = Query(default=None),
) -> list[BlackoutPeriodResponse]:
    return await blackout_service.list_blackout_periods(session, department)


@blackouts_router.delete("/{period_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_blackout_period(
    period_id: uuid.UUID,
    session: SessionDep,
    actor: HrDep,
) -> None:
    """Remove a blackout period (HR only)."""
    await blackout_service.delete_blackout_period(session, period_id)
