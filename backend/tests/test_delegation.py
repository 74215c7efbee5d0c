"""Tests for the delegation engine: chain walk, loop detection, hop cap and HR fallback."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import pytest

from leaveflow.exceptions import ResolutionFailure
from leaveflow.models.enums import DelegationReason, EmployeeRole
from leaveflow.services.delegation import find_next_available_approver
from leaveflow.services.policy import MAX_ESCALATIONS

if TYPE_CHECKING:
    import uuid
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from conftest import Org, Services
    from leaveflow.models.leave import LeaveRequest
    from leaveflow.services.delegation import DelegationResult
    from leaveflow.services.org import EmployeeInfo

    ApprovedLeave = Callable[[uuid.UUID, date, date], Awaitable[LeaveRequest]]
    MakeEmployee = Callable[..., EmployeeInfo]

START = date(2030, 3, 4)
END = date(2030, 3, 5)
# Covers the request dates above.
AWAY_START = date(2030, 3, 1)
AWAY_END = date(2030, 3, 15)


async def _find(
    session: AsyncSession,
    start_approver_id: uuid.UUID,
    reason: DelegationReason = DelegationReason.UNAVAILABLE_ON_LEAVE,
    escalation_count: int = 0,
    requester_id: uuid.UUID | None = None,
) -> DelegationResult:
    return await find_next_available_approver(
        session, start_approver_id, START, END, reason, escalation_count, requester_id=requester_id
    )


# ---------------------------------------------------------------------------
# Chain walk
# ---------------------------------------------------------------------------


async def test_delegates_to_next_manager(db_session: AsyncSession, org: Org, approved_leave: ApprovedLeave) -> None:
    await approved_leave(org.manager, AWAY_START, AWAY_END)

    result = await _find(db_session, org.manager)

    assert result.approver_id == org.director
    assert result.reached_hr is False
    assert len(result.hops) == 1
    hop = result.hops[0]
    assert hop.from_approver_id == org.manager
    assert hop.to_approver_id == org.director
    assert hop.reason == DelegationReason.UNAVAILABLE_ON_LEAVE


async def test_starting_approver_is_never_the_resolution(db_session: AsyncSession, org: Org) -> None:
    """Even an available starting approver is moved past (timeout case)."""
    result = await _find(db_session, org.manager, DelegationReason.TIMEOUT)

    assert result.approver_id == org.director
    assert [h.reason for h in result.hops] == [DelegationReason.TIMEOUT]


async def test_later_hops_are_tagged_also_unavailable(
    db_session: AsyncSession, org: Org, approved_leave: ApprovedLeave
) -> None:
    await approved_leave(org.manager, AWAY_START, AWAY_END)
    await approved_leave(org.director, AWAY_START, AWAY_END)

    result = await _find(db_session, org.manager)

    assert result.approver_id == org.hr
    assert result.reached_hr is True
    assert [(h.from_approver_id, h.to_approver_id) for h in result.hops] == [
        (org.manager, org.director),
        (org.director, org.hr),
    ]
    assert [h.reason for h in result.hops] == [
        DelegationReason.UNAVAILABLE_ON_LEAVE,
        DelegationReason.ALSO_UNAVAILABLE,
    ]


async def test_leave_outside_request_dates_does_not_count(
    db_session: AsyncSession, org: Org, approved_leave: ApprovedLeave
) -> None:
    await approved_leave(org.director, date(2030, 4, 1), date(2030, 4, 5))

    result = await _find(db_session, org.manager, DelegationReason.TIMEOUT)

    assert result.approver_id == org.director


async def test_top_of_chain_falls_back_to_hr(
    db_session: AsyncSession, org: Org, make_employee: MakeEmployee
) -> None:
    """A manager with no reporting manager hands over to HR directly."""
    boss = make_employee("Boss", EmployeeRole.MANAGER)

    result = await _find(db_session, boss.id, DelegationReason.TIMEOUT)

    assert result.approver_id == org.hr
    assert result.reached_hr is True
    assert len(result.hops) == 1


async def test_no_manager_and_no_hr_fails(db_session: AsyncSession, make_employee: MakeEmployee) -> None:
    boss = make_employee("Boss", EmployeeRole.MANAGER)

    with pytest.raises(ResolutionFailure):
        await _find(db_session, boss.id, DelegationReason.TIMEOUT)


async def test_hr_start_cannot_be_replaced(db_session: AsyncSession, org: Org) -> None:
    """HR is terminal; with no other HR employee there is nobody to hand over to."""
    with pytest.raises(ResolutionFailure):
        await _find(db_session, org.hr, DelegationReason.TIMEOUT)


async def test_hr_start_moves_to_another_hr(db_session: AsyncSession, org: Org, make_employee: MakeEmployee) -> None:
    second_hr = make_employee("Second", EmployeeRole.HR, department="HR")

    result = await _find(db_session, org.hr, DelegationReason.TIMEOUT)

    assert result.approver_id == second_hr.id
    assert result.reached_hr is True
    assert [(h.from_approver_id, h.to_approver_id) for h in result.hops] == [(org.hr, second_hr.id)]


async def test_hr_fallback_skips_the_requester(db_session: AsyncSession, org: Org, make_employee: MakeEmployee) -> None:
    """An HR requester's request held by the other HR has nowhere else to go."""
    second_hr = make_employee("Second", EmployeeRole.HR, department="HR")

    with pytest.raises(ResolutionFailure):
        await _find(db_session, second_hr.id, DelegationReason.TIMEOUT, requester_id=org.hr)


async def test_hr_fallback_picks_a_third_hr_over_the_requester(
    db_session: AsyncSession, org: Org, make_employee: MakeEmployee
) -> None:
    second_hr = make_employee("Second", EmployeeRole.HR, department="HR")
    third_hr = make_employee("Third", EmployeeRole.HR, department="HR")

    result = await _find(db_session, second_hr.id, DelegationReason.TIMEOUT, requester_id=org.hr)

    assert result.approver_id == third_hr.id
    assert [(h.from_approver_id, h.to_approver_id) for h in result.hops] == [(second_hr.id, third_hr.id)]


async def test_chain_walk_never_lands_on_the_requester(
    db_session: AsyncSession, org: Org, approved_leave: ApprovedLeave
) -> None:
    """A request whose chain leads back to the requester goes to HR instead."""
    await approved_leave(org.manager, AWAY_START, AWAY_END)

    result = await _find(db_session, org.manager, requester_id=org.director)

    assert result.approver_id == org.hr
    assert result.reached_hr is True
    assert [(h.from_approver_id, h.to_approver_id) for h in result.hops] == [(org.manager, org.hr)]


async def test_cap_reached_with_only_hr_visited_fails(db_session: AsyncSession, org: Org) -> None:
    """Escalation count at the cap and the only HR is the current approver."""
    with pytest.raises(ResolutionFailure):
        await _find(db_session, org.hr, DelegationReason.TIMEOUT, escalation_count=MAX_ESCALATIONS)


async def test_cap_reached_falls_back_to_hr(db_session: AsyncSession, org: Org) -> None:
    result = await _find(db_session, org.manager, DelegationReason.TIMEOUT, escalation_count=MAX_ESCALATIONS)

    assert result.approver_id == org.hr
    assert [(h.from_approver_id, h.to_approver_id) for h in result.hops] == [(org.manager, org.hr)]


# ---------------------------------------------------------------------------
# Termination: cycles and the hop cap
# ---------------------------------------------------------------------------


async def test_cycle_falls_back_to_hr(
    db_session: AsyncSession,
    org: Org,
    make_employee: MakeEmployee,
    services: Services,
    approved_leave: ApprovedLeave,
) -> None:
    a = make_employee("CycleA", EmployeeRole.MANAGER)
    b = make_employee("CycleB", EmployeeRole.MANAGER, manager_id=a.id)
    services.org_graph.seed(a.model_copy(update={"reporting_manager_id": b.id}))
    await approved_leave(a.id, AWAY_START, AWAY_END)
    await approved_leave(b.id, AWAY_START, AWAY_END)

    result = await _find(db_session, a.id)

    assert result.approver_id == org.hr
    assert result.reached_hr is True
    assert len(result.hops) <= MAX_ESCALATIONS + 1


async def test_cycle_without_hr_fails(
    db_session: AsyncSession,
    make_employee: MakeEmployee,
    services: Services,
    approved_leave: ApprovedLeave,
) -> None:
    a = make_employee("CycleA", EmployeeRole.MANAGER)
    b = make_employee("CycleB", EmployeeRole.MANAGER, manager_id=a.id)
    services.org_graph.seed(a.model_copy(update={"reporting_manager_id": b.id}))
    await approved_leave(a.id, AWAY_START, AWAY_END)
    await approved_leave(b.id, AWAY_START, AWAY_END)

    with pytest.raises(ResolutionFailure):
        await _find(db_session, a.id)


async def _unavailable_chain(
    length: int, org: Org, make_employee: MakeEmployee, approved_leave: ApprovedLeave
) -> list[uuid.UUID]:
    """A chain of managers, all on leave, whose top reports to HR. Bottom first."""
    ids: list[uuid.UUID] = []
    manager_id = org.hr
    for i in range(length):
        info = make_employee(f"Chain{i}", EmployeeRole.MANAGER, manager_id=manager_id)
        await approved_leave(info.id, AWAY_START, AWAY_END)
        ids.append(info.id)
        manager_id = info.id
    return list(reversed(ids))


async def test_hop_cap_then_hr_fallback(
    db_session: AsyncSession, org: Org, make_employee: MakeEmployee, approved_leave: ApprovedLeave
) -> None:
    chain = await _unavailable_chain(8, org, make_employee, approved_leave)

    result = await _find(db_session, chain[0])

    assert result.approver_id == org.hr
    assert result.reached_hr is True
    assert len(result.hops) == MAX_ESCALATIONS + 1
    assert result.hops[-1].to_approver_id == org.hr


async def test_hop_cap_counts_prior_escalations(
    db_session: AsyncSession, org: Org, make_employee: MakeEmployee, approved_leave: ApprovedLeave
) -> None:
    chain = await _unavailable_chain(8, org, make_employee, approved_leave)

    result = await _find(db_session, chain[0], escalation_count=3)

    assert result.approver_id == org.hr
    assert len(result.hops) == 3


async def test_cap_reached_without_hr_fails(
    db_session: AsyncSession, make_employee: MakeEmployee, approved_leave: ApprovedLeave
) -> None:
    top = make_employee("Top", EmployeeRole.MANAGER)
    below = make_employee("Below", EmployeeRole.MANAGER, manager_id=top.id)

    with pytest.raises(ResolutionFailure):
        await _find(db_session, below.id, DelegationReason.TIMEOUT, escalation_count=MAX_ESCALATIONS)
