# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, Self

from leaveflow.models.enums import LeaveEventType, LeaveStatus, LeaveType

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leaveflow.models.leave import LeaveRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveEvent:
    """Snapshot of a committed transition handed to side-effect handlers."""

    type: LeaveEventType
    request_id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    status: LeaveStatus
    requires_dual_approval: bool
    actor_id: uuid.UUID
    rejection_reason: str | None = None
    current_approver_id: uuid.UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_request(
        cls,
        event_type: LeaveEventType,
        request: LeaveRequest,
        actor_id: uuid.UUID,
        **metadata: Any,
    ) -> Self:
        return cls(
            type=event_type,
            request_id=request.id,
            employee_id=request.employee_id,
            leave_type=LeaveType(request.leave_type),
            start_date=request.start_date,
            end_date=request.end_date,
            status=LeaveStatus(request.status),
            requires_dual_approval=request.requires_dual_approval,
            actor_id=actor_id,
            rejection_reason=request.rejection_reason,
            current_approver_id=request.current_approver_id,
            metadata=metadata,
        )


LeaveEventHandler = Callable[["AsyncSession", LeaveEvent], Awaitable[None]]


class LeaveEventDispatcher:
    """Ordered post-commit dispatch of leave events.

    Handlers for an event type run one after another in registration order.
    A failing handler has its uncommitted work rolled back and is logged; the
    remaining handlers still run and the caller never sees the error.
    """

    def __init__(self) -> None:
        self._handlers: dict[LeaveEventType, list[LeaveEventHandler]] = {}

    def register(self, event_type: LeaveEventType, handler: LeaveEventHandler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def handlers_for(self, event_type: LeaveEventType) -> list[LeaveEventHandler]:
        return list(self._handlers.get(event_type, []))

    async def dispatch(self, session: AsyncSession, event: LeaveEvent) -> int:
        """Run every handler for the event. Returns how many failed."""
        failures = 0
        for handler in self.handlers_for(event.type):
            try:
                await handler(session, event)
            except Exception:
                failures += 1
                await session.rollback()
                logger.exception(
                    "Handler %s failed for %s on leave request %s",
                    getattr(handler, "__name__", repr(handler)),
                    event.type,
                    event.request_id,
                )
        return failures

    async def dispatch_all(self, session: AsyncSession, events: list[LeaveEvent]) -> int:
        failures = 0
        for event in events:
            failures += await self.dispatch(session, event)
        return failures
