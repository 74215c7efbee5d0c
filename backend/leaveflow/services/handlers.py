"""Default side-effect handlers run after a leave transition commits."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leaveflow.models.audit import ApprovalAction
from leaveflow.models.enums import (
    ApprovalActionType,
    DelegationReason,
    EmployeeRole,
    LeaveEventType,
    LeaveStatus,
    NotificationKind,
)
from leaveflow.services.balance import get_balance_service
from leaveflow.services.capacity import reevaluate_capacity_warnings
from leaveflow.services.delegation import reassign_pending_approvals
from leaveflow.services.events import LeaveEvent, LeaveEventDispatcher
from leaveflow.services.notification import get_notification_service
from leaveflow.services.org import get_org_graph
from leaveflow.services.policy import count_business_days

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _describe(event: LeaveEvent) -> str:
    return f"{event.leave_type} leave from {event.start_date} to {event.end_date}"


# ---------------------------------------------------------------------------
# Balance
# ---------------------------------------------------------------------------


async def deduct_balance(session: AsyncSession, event: LeaveEvent) -> None:
    days = count_business_days(event.start_date, event.end_date)
    await get_balance_service().deduct(event.employee_id, event.leave_type, event.start_date.year, days)
    logger.info("Deducted %d %s day(s) for employee %s", days, event.leave_type, event.employee_id)


async def credit_balance(session: AsyncSession, event: LeaveEvent) -> None:
    """Give days back, only when the cancelled request had been approved."""
    if event.metadata.get("previous_status") != LeaveStatus.APPROVED:
        return
    days = count_business_days(event.start_date, event.end_date)
    await get_balance_service().credit(event.employee_id, event.leave_type, event.start_date.year, days)
    logger.info("Credited %d %s day(s) back to employee %s", days, event.leave_type, event.employee_id)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


async def notify_approved(session: AsyncSession, event: LeaveEvent) -> None:
    notifier = get_notification_service()
    await notifier.notify(
        event.employee_id,
        NotificationKind.LEAVE_APPROVED,
        f"Your {_describe(event)} has been approved.",
        event.request_id,
    )

    employee = await get_org_graph().get_employee(event.employee_id)
    if employee is None:
        return
    for colleague in await get_org_graph().list_employees(employee.department):
        if colleague.id == employee.id:
            continue
        await notifier.notify(
            colleague.id,
            NotificationKind.TEAM_UPDATE,
            f"{employee.name} will be on {_describe(event)}.",
            event.request_id,
        )


async def notify_rejected(session: AsyncSession, event: LeaveEvent) -> None:
    """Tell the requester, and any approver of the other slot who had already signed off."""
    notifier = get_notification_service()
    reason = event.rejection_reason or "No reason provided"
    await notifier.notify(
        event.employee_id,
        NotificationKind.LEAVE_REJECTED,
        f"Your {_describe(event)} was rejected. Reason: {reason}",
        event.request_id,
    )

    if not event.requires_dual_approval:
        return
    result = await session.execute(
        select(col(ApprovalAction.approver_id))
        .where(
            col(ApprovalAction.leave_request_id) == event.request_id,
            col(ApprovalAction.action) == ApprovalActionType.APPROVED.value,
            col(ApprovalAction.role_type) != event.metadata.get("slot"),
        )
        .distinct()
    )
    for approver_id in result.scalars().all():
        await notifier.notify(
            approver_id,
            NotificationKind.DUAL_APPROVAL_REJECTED,
            f"Leave request {event.request_id} that you approved was rejected by the other approver. Reason: {reason}",
            event.request_id,
        )


async def notify_cancelled(session: AsyncSession, event: LeaveEvent) -> None:
    employee = await get_org_graph().get_employee(event.employee_id)
    if employee is None or employee.reporting_manager_id is None:
        return
    await get_notification_service().notify(
        employee.reporting_manager_id,
        NotificationKind.LEAVE_CANCELLED,
        f"{employee.name} has cancelled their {_describe(event)}.",
        event.request_id,
    )


async def notify_delegated(session: AsyncSession, event: LeaveEvent) -> None:
    """Tell the new approver; on timeout also tell the bypassed approver and the requester."""
    notifier = get_notification_service()
    org = get_org_graph()
    requester = await org.get_employee(event.employee_id)
    requester_name = requester.name if requester is not None else "unknown"
    hop_count = event.metadata.get("hop_count", 0)
    reached_hr = event.metadata.get("reached_hr", False)

    if event.current_approver_id is not None:
        await notifier.notify(
            event.current_approver_id,
            NotificationKind.APPROVAL_DELEGATED,
            f"Leave request {event.request_id} from {requester_name} needs your approval "
            f"({hop_count} hop(s) in chain, {'reached HR fallback' if reached_hr else 'next in chain'}).",
            event.request_id,
        )

    if event.metadata.get("reason") != DelegationReason.TIMEOUT:
        return

    previous_approver_id = event.metadata.get("previous_approver_id")
    if previous_approver_id is not None:
        await notifier.notify(
            previous_approver_id,
            NotificationKind.APPROVAL_ESCALATED_TIMEOUT,
            f"Leave request {event.request_id} from {requester_name} was escalated because you did not "
            "respond within 48 hours. It has been routed to the next approver in the chain.",
            event.request_id,
        )
    await notifier.notify(
        event.employee_id,
        NotificationKind.APPROVAL_DELEGATED_INFO,
        f"Your leave request {event.request_id} has been rerouted to a different approver because "
        "the original approver did not respond within 48 hours.",
        event.request_id,
    )


async def notify_document_reminder(session: AsyncSession, event: LeaveEvent) -> None:
    hours = event.metadata.get("hours_remaining", 0)
    if event.metadata.get("urgent"):
        kind = NotificationKind.DOCUMENT_REMINDER_URGENT
        message = (
            f"URGENT: Your sick leave request {event.request_id} requires a medical document. "
            f"Only {hours} hours remaining before auto-rejection."
        )
    else:
        kind = NotificationKind.DOCUMENT_REMINDER
        message = (
            f"Reminder: Your sick leave request {event.request_id} requires a medical document. "
            f"Please upload within {hours} hours to avoid auto-rejection."
        )
    await get_notification_service().notify(event.employee_id, kind, message, event.request_id)


async def notify_document_expired(session: AsyncSession, event: LeaveEvent) -> None:
    await get_notification_service().notify(
        event.employee_id,
        NotificationKind.DOCUMENT_EXPIRED,
        f"Your sick leave request {event.request_id} has been auto-rejected because the medical "
        "document was not uploaded within the 3-day deadline.",
        event.request_id,
    )


# ---------------------------------------------------------------------------
# Re-routing and capacity
# ---------------------------------------------------------------------------


async def reassign_manager_approvals(session: AsyncSession, event: LeaveEvent) -> None:
    """A manager's leave was approved: move the approvals they hold over those dates."""
    employee = await get_org_graph().get_employee(event.employee_id)
    if employee is None or employee.role != EmployeeRole.MANAGER:
        return

    reassigned = await reassign_pending_approvals(session, employee.id, event.start_date, event.end_date)
    if not reassigned:
        return
    await session.commit()
    logger.info("Reassigned %d pending approval(s) from manager %s", len(reassigned), employee.id)

    for request, result in reassigned:
        await notify_delegated(
            session,
            LeaveEvent.from_request(
                LeaveEventType.DELEGATED,
                request,
                event.actor_id,
                reason=DelegationReason.UNAVAILABLE_ON_LEAVE,
                previous_approver_id=employee.id,
                hop_count=len(result.hops),
                reached_hr=result.reached_hr,
            ),
        )


async def release_team_capacity(session: AsyncSession, event: LeaveEvent) -> None:
    """Approved leave was cancelled: clear capacity warnings that no longer apply."""
    if event.metadata.get("previous_status") != LeaveStatus.APPROVED:
        return
    employee = await get_org_graph().get_employee(event.employee_id)
    if employee is None:
        return
    cleared = await reevaluate_capacity_warnings(session, employee.department)
    await session.commit()
    if cleared:
        logger.info("Cleared capacity warnings on %d request(s) in %s", cleared, employee.department)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_default_dispatcher() -> LeaveEventDispatcher:
    """Dispatcher with the standard handler set, in execution order."""
    dispatcher = LeaveEventDispatcher()
    dispatcher.register(LeaveEventType.APPROVED, deduct_balance)
    dispatcher.register(LeaveEventType.APPROVED, notify_approved)
    dispatcher.register(LeaveEventType.APPROVED, reassign_manager_approvals)
    dispatcher.register(LeaveEventType.REJECTED, notify_rejected)
    dispatcher.register(LeaveEventType.CANCELLED, credit_balance)
    dispatcher.register(LeaveEventType.CANCELLED, notify_cancelled)
    dispatcher.register(LeaveEventType.CANCELLED, release_team_capacity)
    dispatcher.register(LeaveEventType.DELEGATED, notify_delegated)
    dispatcher.register(LeaveEventType.DOCUMENT_REMINDER, notify_document_reminder)
    dispatcher.register(LeaveEventType.DOCUMENT_EXPIRED, notify_document_expired)
    return dispatcher


_dispatcher: LeaveEventDispatcher | None = None


def get_dispatcher() -> LeaveEventDispatcher:
    """Return the process-wide dispatcher, building the default one on first use."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_default_dispatcher()
    return _dispatcher


def set_dispatcher(dispatcher: LeaveEventDispatcher | None) -> None:
    """Override the dispatcher (for testing). None restores the default on next use."""
    global _dispatcher
    _dispatcher = dispatcher
