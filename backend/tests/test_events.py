"""Tests for post-commit event dispatch and handler isolation."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from leaveflow.models.enums import LeaveEventType, LeaveStatus, LeaveType
from leaveflow.services.events import LeaveEvent, LeaveEventDispatcher
from leaveflow.services.handlers import (
    build_default_dispatcher,
    deduct_balance,
    get_dispatcher,
    notify_approved,
    set_dispatcher,
)

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from conftest import Org, Services


def _event(event_type: LeaveEventType = LeaveEventType.APPROVED) -> LeaveEvent:
    return LeaveEvent(
        type=event_type,
        request_id=uuid.uuid4(),
        employee_id=uuid.uuid4(),
        leave_type=LeaveType.CASUAL,
        start_date=date(2030, 3, 4),
        end_date=date(2030, 3, 5),
        status=LeaveStatus.APPROVED,
        requires_dual_approval=False,
        actor_id=uuid.uuid4(),
    )


async def _explode(session: AsyncSession, event: LeaveEvent) -> None:
    msg = "handler exploded"
    raise RuntimeError(msg)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


async def test_handlers_run_in_registration_order(db_session: AsyncSession) -> None:
    calls: list[str] = []

    async def first(session: AsyncSession, event: LeaveEvent) -> None:
        calls.append("first")

    async def second(session: AsyncSession, event: LeaveEvent) -> None:
        calls.append("second")

    dispatcher = LeaveEventDispatcher()
    dispatcher.register(LeaveEventType.APPROVED, first)
    dispatcher.register(LeaveEventType.APPROVED, second)

    assert await dispatcher.dispatch(db_session, _event()) == 0
    assert calls == ["first", "second"]


async def test_failing_handler_does_not_stop_the_rest(db_session: AsyncSession) -> None:
    calls: list[uuid.UUID] = []

    async def record(session: AsyncSession, event: LeaveEvent) -> None:
        calls.append(event.request_id)

    dispatcher = LeaveEventDispatcher()
    dispatcher.register(LeaveEventType.APPROVED, _explode)
    dispatcher.register(LeaveEventType.APPROVED, record)

    event = _event()
    assert await dispatcher.dispatch(db_session, event) == 1
    assert calls == [event.request_id]


async def test_dispatch_ignores_other_event_types(db_session: AsyncSession) -> None:
    dispatcher = LeaveEventDispatcher()
    dispatcher.register(LeaveEventType.REJECTED, _explode)

    assert await dispatcher.dispatch(db_session, _event(LeaveEventType.APPROVED)) == 0


async def test_dispatch_all_sums_failures(db_session: AsyncSession) -> None:
    dispatcher = LeaveEventDispatcher()
    dispatcher.register(LeaveEventType.APPROVED, _explode)
    dispatcher.register(LeaveEventType.CANCELLED, _explode)

    events = [_event(LeaveEventType.APPROVED), _event(LeaveEventType.CANCELLED), _event(LeaveEventType.REJECTED)]
    assert await dispatcher.dispatch_all(db_session, events) == 2


def test_default_dispatcher_wiring() -> None:
    dispatcher = build_default_dispatcher()
    assert dispatcher.handlers_for(LeaveEventType.APPROVED)[:2] == [deduct_balance, notify_approved]
    assert dispatcher.handlers_for(LeaveEventType.CREATED) == []


def test_set_dispatcher_none_restores_default() -> None:
    custom = LeaveEventDispatcher()
    set_dispatcher(custom)
    assert get_dispatcher() is custom

    set_dispatcher(None)
    assert get_dispatcher() is not custom
    assert get_dispatcher().handlers_for(LeaveEventType.APPROVED)


# ---------------------------------------------------------------------------
# Isolation from the transition
# ---------------------------------------------------------------------------


async def test_approval_survives_failing_handler(async_client: AsyncClient, org: Org, services: Services) -> None:
    dispatcher = LeaveEventDispatcher()
    dispatcher.register(LeaveEventType.APPROVED, _explode)
    dispatcher.register(LeaveEventType.APPROVED, deduct_balance)
    set_dispatcher(dispatcher)

    resp = await async_client.post(
        "/leave-requests",
        json={"leave_type": "CASUAL", "start_date": "2030-03-04", "end_date": "2030-03-05"},
        headers={"X-Employee-Id": str(org.alice)},
    )
    request_id = resp.json()["leave_request"]["id"]

    resp = await async_client.post(
        f"/leave-requests/{request_id}/approve",
        headers={"X-Employee-Id": str(org.manager)},
    )
    assert resp.status_code == 200
    assert resp.json()["leave_request"]["status"] == "APPROVED"

    resp = await async_client.get(f"/leave-requests/{request_id}", headers={"X-Employee-Id": str(org.alice)})
    assert resp.json()["status"] == "APPROVED"

    balance = await services.balances.get_balance(org.alice, LeaveType.CASUAL, 2030)
    assert balance is not None
    assert balance.used_days == 2


async def test_balance_failure_does_not_undo_approval(
    async_client: AsyncClient, org: Org, services: Services
) -> None:
    """The balance was drained between submit and approval; the approval stands."""
    from leaveflow.services.balance import BalanceInfo

    resp = await async_client.post(
        "/leave-requests",
        json={"leave_type": "CASUAL", "start_date": "2030-03-04", "end_date": "2030-03-05"},
        headers={"X-Employee-Id": str(org.alice)},
    )
    request_id = resp.json()["leave_request"]["id"]
    services.balances.seed(
        BalanceInfo(employee_id=org.alice, leave_type=LeaveType.CASUAL, year=2030, total_days=12, used_days=12)
    )

    resp = await async_client.post(
        f"/leave-requests/{request_id}/approve",
        headers={"X-Employee-Id": str(org.manager)},
    )
    assert resp.status_code == 200
    assert resp.json()["leave_request"]["status"] == "APPROVED"

    kinds = [n.kind for n in await services.notifications.list_for_employee(org.alice)]
    assert "LEAVE_APPROVED" in kinds
