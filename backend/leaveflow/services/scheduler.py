"""Periodic sweeps: medical-document deadlines and stale approvals.

Both sweeps select candidates first, then re-read each one under a row lock
and re-check it before acting, so a concurrent approver's outcome wins.
Each item commits on its own; a failing item is rolled back, logged and
counted without stopping the sweep.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leaveflow.exceptions import ResolutionFailure
from leaveflow.models.base import SYSTEM_ACTOR_ID, as_utc, now_utc
from leaveflow.models.enums import ApprovalDecision, DelegationReason, LeaveEventType, LeaveStatus
from leaveflow.models.leave import LeaveRequest
from leaveflow.services.audit import record_status_change
from leaveflow.services.delegation import apply_delegation, find_next_available_approver
from leaveflow.services.events import LeaveEvent
from leaveflow.services.handlers import get_dispatcher
from leaveflow.services.policy import (
    APPROVAL_TIMEOUT,
    DOCUMENT_AUTO_REJECT_REASON,
    FIRST_REMINDER_HOURS,
    MAX_ESCALATIONS,
    URGENT_REMINDER_HOURS,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_AWAITING_MANAGER = [LeaveStatus.PENDING.value, LeaveStatus.PARTIALLY_APPROVED.value]


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class DocumentSweepResult:
    """Summary of a document-deadline sweep."""

    run_at: datetime
    processed: int = 0
    auto_rejected: int = 0
    reminders_sent: int = 0
    urgent_reminders_sent: int = 0
    errors: int = 0


@dataclass
class StaleApprovalSweepResult:
    """Summary of a stale-approval sweep."""

    run_at: datetime
    processed: int = 0
    escalated: int = 0
    unresolved: int = 0
    skipped: int = 0
    errors: int = 0


async def _lock(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequest | None:
    result = await session.execute(
        select(LeaveRequest)
        .where(col(LeaveRequest.id) == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Document deadlines
# ---------------------------------------------------------------------------


async def _process_document_deadline(
    session: AsyncSession, request_id: uuid.UUID, now: datetime, result: DocumentSweepResult
) -> None:
    request = await _lock(session, request_id)
    if request is None or request.status != LeaveStatus.PENDING_DOCUMENT or request.document_deadline is None:
        await session.commit()
        return

    hours_remaining = (as_utc(request.document_deadline) - now).total_seconds() / 3600

    if hours_remaining <= 0:
        request.rejection_reason = DOCUMENT_AUTO_REJECT_REASON
        record_status_change(session, request, LeaveStatus.REJECTED, SYSTEM_ACTOR_ID, DOCUMENT_AUTO_REJECT_REASON)
        await session.commit()
        result.auto_rejected += 1
        logger.info("Auto-rejected leave request %s: document deadline passed", request.id)
        event = LeaveEvent.from_request(LeaveEventType.DOCUMENT_EXPIRED, request, SYSTEM_ACTOR_ID)
    elif hours_remaining <= URGENT_REMINDER_HOURS and request.document_reminder_count < 2:
        request.document_reminder_count = 2
        await session.commit()
        result.urgent_reminders_sent += 1
        event = LeaveEvent.from_request(
            LeaveEventType.DOCUMENT_REMINDER,
            request,
            SYSTEM_ACTOR_ID,
            urgent=True,
            hours_remaining=round(hours_remaining),
        )
    elif hours_remaining <= FIRST_REMINDER_HOURS and request.document_reminder_count < 1:
        request.document_reminder_count = 1
        await session.commit()
        result.reminders_sent += 1
        event = LeaveEvent.from_request(
            LeaveEventType.DOCUMENT_REMINDER,
            request,
            SYSTEM_ACTOR_ID,
            urgent=False,
            hours_remaining=round(hours_remaining),
        )
    else:
        await session.commit()
        return

    await get_dispatcher().dispatch(session, event)


async def run_document_sweep(session: AsyncSession, now: datetime | None = None) -> DocumentSweepResult:
    """Send document reminders once per tier and auto-reject past the deadline.

    Tier 1 fires within 24 hours of the deadline, tier 2 within 12 hours,
    and the request is rejected by the system actor once the deadline passes.
    """
    now = now or now_utc()
    result = DocumentSweepResult(run_at=now)

    candidates = await session.execute(
        select(col(LeaveRequest.id))
        .where(
            col(LeaveRequest.status) == LeaveStatus.PENDING_DOCUMENT.value,
            col(LeaveRequest.document_deadline).is_not(None),
        )
        .order_by(col(LeaveRequest.document_deadline))
    )
    request_ids = list(candidates.scalars().all())

    for request_id in request_ids:
        result.processed += 1
        try:
            await _process_document_deadline(session, request_id, now, result)
        except Exception:
            await session.rollback()
            logger.exception("Error processing document deadline for leave request %s", request_id)
            result.errors += 1

    return result


# ---------------------------------------------------------------------------
# Stale approvals
# ---------------------------------------------------------------------------


def _is_stale(request: LeaveRequest, cutoff: datetime) -> bool:
    return (
        request.status in _AWAITING_MANAGER
        and request.manager_approval == ApprovalDecision.PENDING
        and request.current_approver_id is not None
        and request.current_approver_assigned_at is not None
        and as_utc(request.current_approver_assigned_at) < cutoff
        and request.escalation_count < MAX_ESCALATIONS
    )


async def run_stale_approval_sweep(session: AsyncSession, now: datetime | None = None) -> StaleApprovalSweepResult:
    """Escalate requests whose current approver has been silent past the timeout.

    A request with no resolvable replacement keeps its approver and is
    reported as unresolved.
    """
    now = now or now_utc()
    cutoff = now - APPROVAL_TIMEOUT
    result = StaleApprovalSweepResult(run_at=now)

    candidates = await session.execute(
        select(col(LeaveRequest.id))
        .where(
            col(LeaveRequest.status).in_(_AWAITING_MANAGER),
            col(LeaveRequest.manager_approval) == ApprovalDecision.PENDING.value,
            col(LeaveRequest.current_approver_id).is_not(None),
            col(LeaveRequest.current_approver_assigned_at).is_not(None),
            col(LeaveRequest.current_approver_assigned_at) < cutoff,
            col(LeaveRequest.escalation_count) < MAX_ESCALATIONS,
        )
        .order_by(col(LeaveRequest.current_approver_assigned_at))
    )
    request_ids = list(candidates.scalars().all())

    for request_id in request_ids:
        result.processed += 1
        try:
            request = await _lock(session, request_id)
            if request is None or not _is_stale(request, cutoff):
                await session.commit()
                result.skipped += 1
                continue

            previous_approver_id = request.current_approver_id
            try:
                delegation = await find_next_available_approver(
                    session,
                    previous_approver_id,
                    request.start_date,
                    request.end_date,
                    DelegationReason.TIMEOUT,
                    request.escalation_count,
                    requester_id=request.employee_id,
                )
            except ResolutionFailure as exc:
                await session.commit()
                result.unresolved += 1
                logger.warning(
                    "Leave request %s: no approver found after timeout, keeping %s (%s)",
                    request_id,
                    previous_approver_id,
                    exc.message,
                )
                continue

            await apply_delegation(session, request, delegation)
            await session.commit()
            result.escalated += 1
            logger.info(
                "Leave request %s escalated from %s to %s after timeout",
                request_id,
                previous_approver_id,
                delegation.approver_id,
            )

            await get_dispatcher().dispatch(
                session,
                LeaveEvent.from_request(
                    LeaveEventType.DELEGATED,
                    request,
                    SYSTEM_ACTOR_ID,
                    reason=DelegationReason.TIMEOUT,
                    previous_approver_id=previous_approver_id,
                    hop_count=len(delegation.hops),
                    reached_hr=delegation.reached_hr,
                ),
            )
        except Exception:
            await session.rollback()
            logger.exception("Error escalating stale approval for leave request %s", request_id)
            result.errors += 1

    return result
