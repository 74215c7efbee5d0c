"""Delegation engine: walks the reporting chain to re-route the manager slot.

The walk stops at the first available employee above the starting approver,
treats HR as always available and terminal, and is bounded both by a visited
set (cycles) and by the per-request escalation cap.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import and_, or_, select
from sqlmodel import col

from leaveflow.exceptions import NotFoundError, ResolutionFailure
from leaveflow.models.base import now_utc
from leaveflow.models.enums import (
    ApprovalActionType,
    ApprovalDecision,
    ApprovalSlot,
    DelegationReason,
    EmployeeRole,
    LeaveStatus,
)
from leaveflow.models.leave import LeaveRequest
from leaveflow.schemas.leave import DelegationHopResponse
from leaveflow.services.audit import list_delegation_hops, record_approval_action, record_delegation_hop
from leaveflow.services.availability import is_on_leave
from leaveflow.services.org import any_hr, get_org_graph, is_hr
from leaveflow.services.policy import MAX_ESCALATIONS

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass
class DelegationStep:
    """One move of the manager slot from one employee to another."""

    from_approver_id: uuid.UUID
    to_approver_id: uuid.UUID
    reason: DelegationReason


@dataclass
class DelegationResult:
    """A resolved approver plus the ordered hops that led to them."""

    approver_id: uuid.UUID
    hops: list[DelegationStep] = field(default_factory=list)
    reached_hr: bool = False


# ---------------------------------------------------------------------------
# Chain walk
# ---------------------------------------------------------------------------


async def _first_unvisited_hr(visited: set[uuid.UUID]) -> uuid.UUID | None:
    for hr in await any_hr():
        if hr.id not in visited:
            return hr.id
    return None


async def find_next_available_approver(
    session: AsyncSession,
    start_approver_id: uuid.UUID,
    start_date: date,
    end_date: date,
    reason: DelegationReason,
    escalation_count: int = 0,
    requester_id: uuid.UUID | None = None,
) -> DelegationResult:
    """Find who should hold the manager slot instead of start_approver_id.

    The requester never becomes their own approver: they are treated as
    already visited, both on the chain and in the HR fallback.

    Raises ResolutionFailure when neither the chain nor HR can supply an
    approver other than the starting one. Callers keep the previous approver.
    """
    org = get_org_graph()
    visited: set[uuid.UUID] = {requester_id} if requester_id is not None else set()
    hops: list[DelegationStep] = []
    current_id = start_approver_id

    def _step(from_id: uuid.UUID, to_id: uuid.UUID) -> DelegationStep:
        return DelegationStep(
            from_approver_id=from_id,
            to_approver_id=to_id,
            reason=reason if not hops else DelegationReason.ALSO_UNAVAILABLE,
        )

    def _resolved(approver_id: uuid.UUID, reached_hr: bool) -> DelegationResult:
        return DelegationResult(approver_id=approver_id, hops=hops, reached_hr=reached_hr)

    while escalation_count + len(hops) < MAX_ESCALATIONS:
        if current_id in visited:
            logger.warning("Delegation loop detected at employee %s, falling back to HR", current_id)
            break
        visited.add(current_id)

        employee = await org.get_employee(current_id)
        if employee is None:
            logger.warning("Delegation walk reached unknown employee %s", current_id)
            break

        # HR is always available and ends the walk. A starting HR approver
        # can only be replaced by another HR employee.
        if employee.role == EmployeeRole.HR:
            if current_id != start_approver_id:
                return _resolved(current_id, reached_hr=True)
            break

        if current_id != start_approver_id and not await is_on_leave(session, current_id, start_date, end_date):
            return _resolved(current_id, reached_hr=False)

        next_id = employee.reporting_manager_id
        if next_id is None:
            hr_id = await _first_unvisited_hr(visited)
            if hr_id is None:
                raise ResolutionFailure(f"No HR available above employee {current_id}")
            hops.append(_step(current_id, hr_id))
            return _resolved(hr_id, reached_hr=True)

        if next_id in visited:
            logger.warning("Delegation loop detected at employee %s, falling back to HR", next_id)
            break

        hops.append(_step(current_id, next_id))
        current_id = next_id

    # The walk may have stopped on an HR employee it never got to evaluate.
    if current_id not in visited and await is_hr(current_id):
        return _resolved(current_id, reached_hr=True)

    # Cap reached, loop detected or HR start.
    visited.add(start_approver_id)
    hr_id = await _first_unvisited_hr(visited)
    if hr_id is None:
        raise ResolutionFailure(
            f"Delegation chain exhausted from approver {start_approver_id} "
            f"(escalations={escalation_count}, hops={len(hops)})"
        )
    hops.append(_step(current_id, hr_id))
    return _resolved(hr_id, reached_hr=True)


async def apply_delegation(session: AsyncSession, request: LeaveRequest, result: DelegationResult) -> None:
    """Point the manager slot at the resolved approver within the caller's transaction.

    Writes one DelegationHop and one DELEGATED approval action per hop. The
    caller commits; nothing here is visible until then.
    """
    org = get_org_graph()
    for sequence, hop in enumerate(result.hops):
        target = await org.get_employee(hop.to_approver_id)
        target_label = target.name if target is not None else str(hop.to_approver_id)
        record_delegation_hop(
            session,
            request,
            from_approver_id=hop.from_approver_id,
            to_approver_id=hop.to_approver_id,
            reason=hop.reason,
            sequence=sequence,
        )
        record_approval_action(
            session,
            request,
            approver_id=hop.from_approver_id,
            action=ApprovalActionType.DELEGATED,
            slot=ApprovalSlot.MANAGER,
            comments=f"Delegated to {target_label} (reason: {hop.reason})",
        )

    request.current_approver_id = result.approver_id
    request.escalation_count = min(request.escalation_count + len(result.hops), MAX_ESCALATIONS)
    request.current_approver_assigned_at = now_utc()

    logger.info(
        "Leave request %s delegated to %s (%d hop(s), reached_hr=%s)",
        request.id,
        result.approver_id,
        len(result.hops),
        result.reached_hr,
    )


async def delegate_if_unavailable(session: AsyncSession, request: LeaveRequest) -> DelegationResult | None:
    """Re-route the request now if its current approver is on leave over its dates.

    Returns None when nothing changed: the approver is available, there is no
    approver, or no replacement could be found (logged, request untouched).
    """
    approver_id = request.current_approver_id
    if approver_id is None:
        return None
    if not await is_on_leave(session, approver_id, request.start_date, request.end_date):
        return None

    try:
        result = await find_next_available_approver(
            session,
            approver_id,
            request.start_date,
            request.end_date,
            DelegationReason.UNAVAILABLE_ON_LEAVE,
            request.escalation_count,
            requester_id=request.employee_id,
        )
    except ResolutionFailure as exc:
        logger.warning("Leave request %s keeps unavailable approver %s: %s", request.id, approver_id, exc.message)
        return None

    await apply_delegation(session, request, result)
    return result


async def reassign_pending_approvals(
    session: AsyncSession,
    manager_id: uuid.UUID,
    leave_start: date,
    leave_end: date,
) -> list[tuple[LeaveRequest, DelegationResult]]:
    """Move pending manager-slot work away from a manager whose leave was just approved.

    Covers requests the manager currently holds, plus direct-report requests
    with no approver yet, whose dates overlap the manager's leave. Each
    request is locked and delegated with reason UNAVAILABLE_ON_LEAVE. The
    caller commits.
    """
    reports = await get_org_graph().get_direct_reports(manager_id)
    report_ids = [r.id for r in reports]

    ownership = col(LeaveRequest.current_approver_id) == manager_id
    if report_ids:
        ownership = or_(
            ownership,
            and_(col(LeaveRequest.employee_id).in_(report_ids), col(LeaveRequest.current_approver_id).is_(None)),
        )

    result = await session.execute(
        select(LeaveRequest)
        .where(
            ownership,
            col(LeaveRequest.status).in_([LeaveStatus.PENDING.value, LeaveStatus.PARTIALLY_APPROVED.value]),
            col(LeaveRequest.manager_approval) == ApprovalDecision.PENDING.value,
            col(LeaveRequest.start_date) <= leave_end,
            col(LeaveRequest.end_date) >= leave_start,
        )
        .order_by(col(LeaveRequest.created_at))
        .with_for_update()
        .execution_options(populate_existing=True)
    )

    reassigned: list[tuple[LeaveRequest, DelegationResult]] = []
    for request in result.scalars().all():
        try:
            delegation = await find_next_available_approver(
                session,
                manager_id,
                request.start_date,
                request.end_date,
                DelegationReason.UNAVAILABLE_ON_LEAVE,
                request.escalation_count,
                requester_id=request.employee_id,
            )
        except ResolutionFailure as exc:
            logger.warning(
                "Could not reassign leave request %s from manager %s: %s", request.id, manager_id, exc.message
            )
            continue
        await apply_delegation(session, request, delegation)
        reassigned.append((request, delegation))

    return reassigned


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


async def get_delegation_history(session: AsyncSession, request_id: uuid.UUID) -> list[DelegationHopResponse]:
    """Delegation hops of a request, oldest first, with employee names attached."""
    if await session.get(LeaveRequest, request_id) is None:
        raise NotFoundError("Leave request not found")

    org = get_org_graph()
    names: dict[uuid.UUID, str | None] = {}

    async def _name(employee_id: uuid.UUID) -> str | None:
        if employee_id not in names:
            employee = await org.get_employee(employee_id)
            names[employee_id] = employee.name if employee is not None else None
        return names[employee_id]

    return [
        DelegationHopResponse(
            id=hop.id,
            leave_request_id=hop.leave_request_id,
            from_approver_id=hop.from_approver_id,
            from_name=await _name(hop.from_approver_id),
            to_approver_id=hop.to_approver_id,
            to_name=await _name(hop.to_approver_id),
            reason=DelegationReason(hop.reason),
            created_at=hop.created_at,
        )
        for hop in await list_delegation_hops(session, request_id)
    ]
