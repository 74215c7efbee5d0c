# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leaveflow.models.audit import ApprovalAction, DelegationHop, StatusLogEntry

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leaveflow.models.enums import ApprovalActionType, ApprovalSlot, DelegationReason, LeaveStatus
    from leaveflow.models.leave import LeaveRequest


def record_status_change(
    session: AsyncSession,
    request: LeaveRequest,
    new_status: LeaveStatus,
    actor_id: uuid.UUID,
    reason: str | None = None,
    *,
    initial: bool = False,
) -> StatusLogEntry:
    """Move the request to new_status and log the transition in the same unit of work.

    The flush guard refuses any status change without a matching entry, so
    every status mutation in the code base goes through here.
    """
    entry = StatusLogEntry(
        leave_request_id=request.id,
        changed_by_id=actor_id,
        old_status=None if initial else request.status,
        new_status=new_status.value,
        reason=reason,
    )
    request.status = new_status.value
    session.add(entry)
    return entry


def record_approval_action(
    session: AsyncSession,
    request: LeaveRequest,
    *,
    approver_id: uuid.UUID,
    action: ApprovalActionType,
    slot: ApprovalSlot,
    comments: str | None = None,
) -> ApprovalAction:
    """Append one approval-trail row within the caller's transaction."""
    entry = ApprovalAction(
        leave_request_id=request.id,
        approver_id=approver_id,
        action=action.value,
        role_type=slot.value,
        comments=comments,
    )
    session.add(entry)
    return entry


def record_delegation_hop(
    session: AsyncSession,
    request: LeaveRequest,
    *,
    from_approver_id: uuid.UUID,
    to_approver_id: uuid.UUID,
    reason: DelegationReason,
    sequence: int,
) -> DelegationHop:
    entry = DelegationHop(
        leave_request_id=request.id,
        from_approver_id=from_approver_id,
        to_approver_id=to_approver_id,
        reason=reason.value,
        sequence=sequence,
    )
    session.add(entry)
    return entry


async def list_status_log(session: AsyncSession, request_id: uuid.UUID) -> list[StatusLogEntry]:
    """Status transitions of one request, oldest first."""
    result = await session.execute(
        select(StatusLogEntry)
        .where(col(StatusLogEntry.leave_request_id) == request_id)
        .order_by(col(StatusLogEntry.changed_at), col(StatusLogEntry.old_status).is_not(None))
    )
    return list(result.scalars().all())


async def list_approval_actions(session: AsyncSession, request_id: uuid.UUID) -> list[ApprovalAction]:
    result = await session.execute(
        select(ApprovalAction)
        .where(col(ApprovalAction.leave_request_id) == request_id)
        .order_by(col(ApprovalAction.created_at))
    )
    return list(result.scalars().all())


async def list_delegation_hops(session: AsyncSession, request_id: uuid.UUID) -> list[DelegationHop]:
    result = await session.execute(
        select(DelegationHop)
        .where(col(DelegationHop.leave_request_id) == request_id)
        .order_by(col(DelegationHop.created_at), col(DelegationHop.sequence))
    )
    return list(result.scalars().all())
