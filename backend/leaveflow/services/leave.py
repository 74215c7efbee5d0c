# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import or_, select
from sqlmodel import col

from leaveflow.exceptions import (
    AuthorizationError,
    NotFoundError,
    PolicyViolationError,
    StateConflictError,
    ValidationError,
)
from leaveflow.models.base import now_utc
from leaveflow.models.enums import (
    ApprovalActionType,
    ApprovalDecision,
    ApprovalSlot,
    DelegationReason,
    EmployeeRole,
    LeaveEventType,
    LeaveStatus,
    LeaveType,
)
from leaveflow.models.leave import LeaveRequest
from leaveflow.schemas.leave import (
    ApprovalActionResponse,
    CreateLeaveResponse,
    LeaveDecisionResponse,
    LeaveRequestResponse,
    PendingApprovalResponse,
    StatusLogEntryResponse,
)
from leaveflow.services.audit import (
    list_approval_actions,
    list_status_log,
    record_approval_action,
    record_status_change,
)
from leaveflow.services.balance import get_balance_service
from leaveflow.services.blackout import check_blackout_conflict
from leaveflow.services.capacity import check_team_capacity
from leaveflow.services.delegation import delegate_if_unavailable
from leaveflow.services.events import LeaveEvent
from leaveflow.services.handlers import get_dispatcher
from leaveflow.services.org import get_org_graph, resolve_initial_approver
from leaveflow.services.policy import (
    DOCUMENT_DEADLINE,
    TEAM_CAPACITY_RATIO,
    count_business_days,
    requires_document,
    requires_dual_approval,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leaveflow.schemas.leave import (
        ApprovePayload,
        CreateLeavePayload,
        RejectPayload,
        UploadDocumentPayload,
    )
    from leaveflow.services.delegation import DelegationResult
    from leaveflow.services.org import EmployeeInfo

logger = logging.getLogger(__name__)

_APPROVABLE = frozenset({LeaveStatus.PENDING.value, LeaveStatus.PARTIALLY_APPROVED.value})
_REJECTABLE = frozenset(
    {LeaveStatus.PENDING.value, LeaveStatus.PARTIALLY_APPROVED.value, LeaveStatus.PENDING_DOCUMENT.value}
)
_NOT_CANCELLABLE = frozenset({LeaveStatus.REJECTED.value, LeaveStatus.CANCELLED.value})


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_leave_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a leave request model to its response schema."""
    return LeaveRequestResponse(
        id=request.id,
        employee_id=request.employee_id,
        leave_type=LeaveType(request.leave_type),
        start_date=request.start_date,
        end_date=request.end_date,
        reason=request.reason,
        status=LeaveStatus(request.status),
        requires_dual_approval=request.requires_dual_approval,
        manager_approval=ApprovalDecision(request.manager_approval),
        hr_approval=ApprovalDecision(request.hr_approval),
        team_capacity_warning=request.team_capacity_warning,
        blackout_warning=request.blackout_warning,
        blackout_override=request.blackout_override,
        rejection_reason=request.rejection_reason,
        current_approver_id=request.current_approver_id,
        escalation_count=request.escalation_count,
        current_approver_assigned_at=request.current_approver_assigned_at,
        medical_document_url=request.medical_document_url,
        document_deadline=request.document_deadline,
        document_reminder_count=request.document_reminder_count,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def _pending_warnings(request: LeaveRequest) -> list[str]:
    warnings: list[str] = []
    if request.team_capacity_warning:
        warnings.append(f"This request would breach the {TEAM_CAPACITY_RATIO:.0%} team capacity threshold.")
    if request.blackout_warning and not request.blackout_override:
        warnings.append("This request falls during a blackout period. Override required to approve.")
    return warnings


def _build_pending_response(request: LeaveRequest) -> PendingApprovalResponse:
    return PendingApprovalResponse(
        **_build_leave_response(request).model_dump(),
        warnings=_pending_warnings(request),
    )


async def _get_employee_or_404(employee_id: uuid.UUID, label: str = "Employee") -> EmployeeInfo:
    employee = await get_org_graph().get_employee(employee_id)
    if employee is None:
        raise NotFoundError(f"{label} not found")
    return employee


async def _get_request_or_404(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
    """Fetch a leave request by ID. Raises 404 if not found."""
    request = await session.get(LeaveRequest, request_id)
    if request is None:
        raise NotFoundError("Leave request not found")
    return request


async def _lock_request_or_404(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
    """Load a leave request with SELECT ... FOR UPDATE, refreshing any cached copy."""
    result = await session.execute(
        select(LeaveRequest)
        .where(col(LeaveRequest.id) == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError("Leave request not found")
    return request


async def _commit_and_refresh(session: AsyncSession, request: LeaveRequest) -> LeaveRequestResponse:
    await session.commit()
    await session.refresh(request)
    return _build_leave_response(request)


def _delegation_event(
    request: LeaveRequest,
    actor_id: uuid.UUID,
    result: DelegationResult,
    reason: DelegationReason,
    previous_approver_id: uuid.UUID | None,
) -> LeaveEvent:
    return LeaveEvent.from_request(
        LeaveEventType.DELEGATED,
        request,
        actor_id,
        reason=reason,
        previous_approver_id=previous_approver_id,
        hop_count=len(result.hops),
        reached_hr=result.reached_hr,
    )


async def _dispatch(session: AsyncSession, *events: LeaveEvent) -> None:
    await get_dispatcher().dispatch_all(session, list(events))


# ---------------------------------------------------------------------------
# Slot resolution
# ---------------------------------------------------------------------------


def resolve_approval_slot(approver: EmployeeInfo, requester: EmployeeInfo, request: LeaveRequest) -> ApprovalSlot:
    """Decide which approval slot the approver fills on this request.

    HR fills the manager slot while it is pending if the requester is a
    manager or HR whose reporting manager is this HR employee (or who has
    none), or if this HR employee is the current delegated approver. Either
    condition suffices. Otherwise HR fills the HR slot.

    A manager must be the requester's direct manager (which also covers a
    manager-role requester reporting to them) or the current delegated
    approver, and always fills the manager slot. Anyone else is unauthorized.
    """
    is_delegated_approver = request.current_approver_id == approver.id

    if approver.role == EmployeeRole.HR:
        hr_acts_as_manager = requester.role in (EmployeeRole.MANAGER, EmployeeRole.HR) and (
            requester.reporting_manager_id == approver.id or requester.reporting_manager_id is None
        )
        if (hr_acts_as_manager or is_delegated_approver) and request.manager_approval == ApprovalDecision.PENDING:
            return ApprovalSlot.MANAGER
        return ApprovalSlot.HR

    if approver.role == EmployeeRole.MANAGER:
        is_direct_manager = requester.reporting_manager_id == approver.id
        if not (is_direct_manager or is_delegated_approver):
            raise AuthorizationError("You are not authorized to act on this leave request")
        return ApprovalSlot.MANAGER

    raise AuthorizationError("Only managers and HR can approve or reject leave requests")


def _slot_decision(request: LeaveRequest, slot: ApprovalSlot) -> ApprovalDecision:
    value = request.manager_approval if slot == ApprovalSlot.MANAGER else request.hr_approval
    return ApprovalDecision(value)


def _set_slot_decision(request: LeaveRequest, slot: ApprovalSlot, decision: ApprovalDecision) -> None:
    if slot == ApprovalSlot.MANAGER:
        request.manager_approval = decision.value
    else:
        request.hr_approval = decision.value


def _require_pending_slot(request: LeaveRequest, slot: ApprovalSlot) -> None:
    decision = _slot_decision(request, slot)
    if decision != ApprovalDecision.PENDING:
        raise StateConflictError(f"The {slot} approval slot is {decision}, not PENDING")


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def create_leave_request(
    session: AsyncSession,
    actor_id: uuid.UUID,
    payload: CreateLeavePayload,
) -> CreateLeaveResponse:
    """Submit a leave request on behalf of the acting employee.

    Flow:
    1. Validate the requester and the date range (at least one business day)
    2. Check balance sufficiency for the business-day count
    3. Decide dual approval and document gating from the calendar-day span
    4. Run the advisory team-capacity and blackout checks
    5. Pick the initial manager-slot approver
    6. Insert the request and its creation status log entry
    7. Delegate immediately if the approver is on leave (not when gated)
    8. Commit, then dispatch post-commit side effects
    """
    employee = await _get_employee_or_404(actor_id)

    if payload.end_date < payload.start_date:
        raise ValidationError("End date must not be before start date")
    business_days = count_business_days(payload.start_date, payload.end_date)
    if business_days == 0:
        raise ValidationError("Leave request must include at least one business day")

    year = payload.start_date.year
    if not await get_balance_service().has_enough_balance(employee.id, payload.leave_type, year, business_days):
        raise PolicyViolationError(
            f"Insufficient {payload.leave_type} leave balance. Requested {business_days} day(s)."
        )

    dual = requires_dual_approval(payload.start_date, payload.end_date)
    gated = requires_document(payload.leave_type, payload.start_date, payload.end_date)
    now = now_utc()

    warnings: list[str] = []

    team_size = await get_org_graph().get_team_size(employee.department)
    capacity = await check_team_capacity(
        session, employee.department, employee.id, payload.start_date, payload.end_date, team_size
    )
    worst = capacity.worst_day
    if capacity.would_breach and worst is not None:
        warnings.append(
            f"Team capacity warning: approving this would put {worst.percentage}% of {employee.department} "
            f"on leave on {worst.date} ({worst.on_leave}/{team_size} people). "
            f"The {TEAM_CAPACITY_RATIO:.0%} threshold would be breached."
        )

    blackouts = await check_blackout_conflict(session, employee.department, payload.start_date, payload.end_date)
    for period in blackouts:
        warnings.append(
            f'Blackout period: "{period.name}" ({period.start_date} to {period.end_date}): {period.reason}. '
            "Approver must explicitly override."
        )

    approver_id = await resolve_initial_approver(employee)
    if approver_id is None:
        logger.warning("No approver could be assigned for employee %s", employee.id)

    request = LeaveRequest(
        employee_id=employee.id,
        leave_type=payload.leave_type.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        status=LeaveStatus.PENDING.value,
        document_deadline=now + DOCUMENT_DEADLINE if gated else None,
        requires_dual_approval=dual,
        manager_approval=ApprovalDecision.PENDING.value,
        hr_approval=(ApprovalDecision.PENDING if dual else ApprovalDecision.NOT_REQUIRED).value,
        team_capacity_warning=capacity.would_breach,
        blackout_warning=bool(blackouts),
        current_approver_id=approver_id,
        current_approver_assigned_at=now if approver_id is not None else None,
    )
    session.add(request)
    initial_status = LeaveStatus.PENDING_DOCUMENT if gated else LeaveStatus.PENDING
    record_status_change(session, request, initial_status, employee.id, "Leave request submitted", initial=True)

    delegation = None
    if not gated:
        delegation = await delegate_if_unavailable(session, request)
        if delegation is not None:
            warnings.append(
                "Your manager is currently on leave. "
                "Your request has been automatically routed to an alternate approver."
            )

    response = await _commit_and_refresh(session, request)
    logger.info("Created leave request %s for employee %s (%s)", request.id, employee.id, request.status)

    events = [LeaveEvent.from_request(LeaveEventType.CREATED, request, employee.id)]
    if delegation is not None:
        events.append(
            _delegation_event(request, employee.id, delegation, DelegationReason.UNAVAILABLE_ON_LEAVE, approver_id)
        )
    await _dispatch(session, *events)

    return CreateLeaveResponse(leave_request=response, warnings=warnings)


async def approve_leave(
    session: AsyncSession,
    request_id: uuid.UUID,
    actor_id: uuid.UUID,
    payload: ApprovePayload,
) -> LeaveDecisionResponse:
    """Record one approval and recompute the request status.

    1. Lock the request; it must be PENDING or PARTIALLY_APPROVED
    2. Forbid self-approval
    3. Enforce the blackout gate (a supplied override is kept for later approvals)
    4. Resolve the slot; it must still be PENDING
    5. Record the action, mark the slot, recompute status
    6. Commit; dispatch APPROVED once both slots are satisfied
    """
    request = await _lock_request_or_404(session, request_id)

    if request.status not in _APPROVABLE:
        raise StateConflictError(f'Cannot approve a leave request with status "{request.status}"')

    approver = await _get_employee_or_404(actor_id, "Approver")
    requester = await _get_employee_or_404(request.employee_id, "Requester")

    if approver.id == request.employee_id:
        raise AuthorizationError("Cannot approve your own leave request")

    if request.blackout_warning and not (request.blackout_override or payload.blackout_override):
        raise PolicyViolationError(
            "This leave falls during a blackout period. Set blackout_override=true to explicitly approve."
        )

    slot = resolve_approval_slot(approver, requester, request)
    _require_pending_slot(request, slot)

    if payload.blackout_override:
        request.blackout_override = True

    record_approval_action(
        session,
        request,
        approver_id=approver.id,
        action=ApprovalActionType.APPROVED,
        slot=slot,
        comments=payload.comments,
    )
    _set_slot_decision(request, slot, ApprovalDecision.APPROVED)

    manager_done = request.manager_approval == ApprovalDecision.APPROVED
    hr_done = request.hr_approval in (ApprovalDecision.APPROVED, ApprovalDecision.NOT_REQUIRED)
    if manager_done and hr_done:
        new_status = LeaveStatus.APPROVED
        message = "Leave request fully approved."
    else:
        new_status = LeaveStatus.PARTIALLY_APPROVED
        message = f"Your approval recorded. Still waiting for {'manager' if not manager_done else 'HR'} approval."
    record_status_change(session, request, new_status, approver.id, f"{slot} approval recorded")

    response = await _commit_and_refresh(session, request)
    logger.info("Leave request %s: %s slot approved by %s -> %s", request.id, slot, approver.id, new_status)

    if new_status == LeaveStatus.APPROVED:
        await _dispatch(session, LeaveEvent.from_request(LeaveEventType.APPROVED, request, approver.id, slot=slot))

    return LeaveDecisionResponse(leave_request=response, message=message)


async def reject_leave(
    session: AsyncSession,
    request_id: uuid.UUID,
    actor_id: uuid.UUID,
    payload: RejectPayload,
) -> LeaveRequestResponse:
    """Veto a request. One rejection from either slot is final."""
    request = await _lock_request_or_404(session, request_id)

    if request.status not in _REJECTABLE:
        raise StateConflictError(f'Cannot reject a leave request with status "{request.status}"')

    approver = await _get_employee_or_404(actor_id, "Approver")
    requester = await _get_employee_or_404(request.employee_id, "Requester")

    if approver.id == request.employee_id:
        raise AuthorizationError("Cannot reject your own leave request. Use cancel instead.")

    slot = resolve_approval_slot(approver, requester, request)
    _require_pending_slot(request, slot)

    record_approval_action(
        session,
        request,
        approver_id=approver.id,
        action=ApprovalActionType.REJECTED,
        slot=slot,
        comments=payload.comments,
    )
    _set_slot_decision(request, slot, ApprovalDecision.REJECTED)
    request.rejection_reason = payload.reason
    record_status_change(session, request, LeaveStatus.REJECTED, approver.id, payload.reason)

    response = await _commit_and_refresh(session, request)
    logger.info("Leave request %s rejected by %s in the %s slot", request.id, approver.id, slot)

    await _dispatch(session, LeaveEvent.from_request(LeaveEventType.REJECTED, request, approver.id, slot=slot))
    return response


async def cancel_leave(session: AsyncSession, request_id: uuid.UUID, actor_id: uuid.UUID) -> LeaveRequestResponse:
    """Withdraw a request. Only the requester may cancel; approved leave is credited back."""
    request = await _lock_request_or_404(session, request_id)

    if request.employee_id != actor_id:
        raise AuthorizationError("You can only cancel your own leave requests")
    if request.status in _NOT_CANCELLABLE:
        raise StateConflictError(f'Cannot cancel a leave request with status "{request.status}"')

    previous_status = LeaveStatus(request.status)
    record_status_change(session, request, LeaveStatus.CANCELLED, actor_id, "Cancelled by requester")

    response = await _commit_and_refresh(session, request)
    logger.info("Leave request %s cancelled (was %s)", request.id, previous_status)

    await _dispatch(
        session,
        LeaveEvent.from_request(LeaveEventType.CANCELLED, request, actor_id, previous_status=previous_status),
    )
    return response


async def upload_document(
    session: AsyncSession,
    request_id: uuid.UUID,
    actor_id: uuid.UUID,
    payload: UploadDocumentPayload,
) -> LeaveRequestResponse:
    """Attach the medical document and release the request for approval."""
    request = await _lock_request_or_404(session, request_id)

    if request.employee_id != actor_id:
        raise AuthorizationError("You can only upload documents for your own leave requests")
    if request.status != LeaveStatus.PENDING_DOCUMENT:
        raise StateConflictError("This leave request is not awaiting a medical document")

    request.medical_document_url = payload.document_url
    if request.current_approver_id is not None:
        request.current_approver_assigned_at = now_utc()
    record_status_change(session, request, LeaveStatus.PENDING, actor_id, "Medical document uploaded")

    previous_approver_id = request.current_approver_id
    delegation = await delegate_if_unavailable(session, request)

    response = await _commit_and_refresh(session, request)
    logger.info("Medical document uploaded for leave request %s", request.id)

    if delegation is not None:
        await _dispatch(
            session,
            _delegation_event(
                request, actor_id, delegation, DelegationReason.UNAVAILABLE_ON_LEAVE, previous_approver_id
            ),
        )
    return response


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_leave_request(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequestResponse:
    return _build_leave_response(await _get_request_or_404(session, request_id))


async def list_requests_for_employee(session: AsyncSession, employee_id: uuid.UUID) -> list[LeaveRequestResponse]:
    """All requests of one employee, newest first."""
    result = await session.execute(
        select(LeaveRequest)
        .where(col(LeaveRequest.employee_id) == employee_id)
        .order_by(col(LeaveRequest.created_at).desc())
    )
    return [_build_leave_response(r) for r in result.scalars().all()]


async def get_pending_for_manager(session: AsyncSession, manager_id: uuid.UUID) -> list[PendingApprovalResponse]:
    """Requests whose manager slot awaits this manager.

    Covers direct reports' requests and anything delegated to the manager.
    """
    reports = await get_org_graph().get_direct_reports(manager_id)
    report_ids = [r.id for r in reports]

    ownership = col(LeaveRequest.current_approver_id) == manager_id
    if report_ids:
        ownership = or_(ownership, col(LeaveRequest.employee_id).in_(report_ids))

    result = await session.execute(
        select(LeaveRequest)
        .where(
            col(LeaveRequest.status).in_([LeaveStatus.PENDING.value, LeaveStatus.PARTIALLY_APPROVED.value]),
            col(LeaveRequest.manager_approval) == ApprovalDecision.PENDING.value,
            ownership,
        )
        .order_by(col(LeaveRequest.created_at))
    )
    return [_build_pending_response(r) for r in result.scalars().all()]


async def get_pending_for_hr(session: AsyncSession) -> list[PendingApprovalResponse]:
    """Requests waiting on HR.

    Includes dual-approval requests with the HR slot pending, manager- or
    HR-role requesters whose manager slot is pending, and requests whose
    current approver is an HR employee.
    """
    result = await session.execute(
        select(LeaveRequest)
        .where(col(LeaveRequest.status).in_([LeaveStatus.PENDING.value, LeaveStatus.PARTIALLY_APPROVED.value]))
        .order_by(col(LeaveRequest.created_at))
    )

    org = get_org_graph()
    hr_ids = {e.id for e in await org.get_hr_employees()}
    pending: list[PendingApprovalResponse] = []
    for request in result.scalars().all():
        manager_slot_open = request.manager_approval == ApprovalDecision.PENDING
        if request.requires_dual_approval and request.hr_approval == ApprovalDecision.PENDING:
            pending.append(_build_pending_response(request))
            continue
        if manager_slot_open and request.current_approver_id in hr_ids:
            pending.append(_build_pending_response(request))
            continue
        requester = await org.get_employee(request.employee_id)
        if manager_slot_open and requester is not None and requester.role != EmployeeRole.EMPLOYEE:
            pending.append(_build_pending_response(request))
    return pending


async def get_approval_actions(session: AsyncSession, request_id: uuid.UUID) -> list[ApprovalActionResponse]:
    await _get_request_or_404(session, request_id)
    return [
        ApprovalActionResponse(
            id=a.id,
            leave_request_id=a.leave_request_id,
            approver_id=a.approver_id,
            action=ApprovalActionType(a.action),
            role_type=ApprovalSlot(a.role_type),
            comments=a.comments,
            created_at=a.created_at,
        )
        for a in await list_approval_actions(session, request_id)
    ]


async def get_status_log(session: AsyncSession, request_id: uuid.UUID) -> list[StatusLogEntryResponse]:
    """Every status transition of a request, creation first."""
    await _get_request_or_404(session, request_id)
    return [
        StatusLogEntryResponse(
            id=e.id,
            leave_request_id=e.leave_request_id,
            changed_by_id=e.changed_by_id,
            old_status=LeaveStatus(e.old_status) if e.old_status is not None else None,
            new_status=LeaveStatus(e.new_status),
            reason=e.reason,
            changed_at=e.changed_at,
        )
        for e in await list_status_log(session, request_id)
    ]
