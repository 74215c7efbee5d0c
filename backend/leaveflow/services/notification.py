# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field

from leaveflow.models.base import now_utc
from leaveflow.models.enums import NotificationKind

logger = logging.getLogger(__name__)


class NotificationInfo(BaseModel):
    """A message delivered to one employee."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    employee_id: uuid.UUID
    kind: NotificationKind
    message: str
    related_request_id: uuid.UUID | None = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=now_utc)


@runtime_checkable
class NotificationService(Protocol):
    """Notification sink. Delivery is fire-and-forget from the core's view."""

    async def notify(
        self,
        employee_id: uuid.UUID,
        kind: NotificationKind,
        message: str,
        related_request_id: uuid.UUID | None = None,
    ) -> NotificationInfo:
        """Deliver one notification."""
        ...

    async def list_for_employee(self, employee_id: uuid.UUID, unread_only: bool = False) -> list[NotificationInfo]:
        """Notifications for an employee, newest first."""
        ...


class InMemoryNotificationService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._notifications: list[NotificationInfo] = []

    async def notify(
        self,
        employee_id: uuid.UUID,
        kind: NotificationKind,
        message: str,
        related_request_id: uuid.UUID | None = None,
    ) -> NotificationInfo:
        notification = NotificationInfo(
            employee_id=employee_id,
            kind=kind,
            message=message,
            related_request_id=related_request_id,
        )
        self._notifications.append(notification)
        logger.info("Notified %s [%s] for request %s", employee_id, kind, related_request_id)
        return notification

    async def list_for_employee(self, employee_id: uuid.UUID, unread_only: bool = False) -> list[NotificationInfo]:
        items = [
            n for n in self._notifications if n.employee_id == employee_id and not (unread_only and n.is_read)
        ]
        return list(reversed(items))


_notification_service: NotificationService = InMemoryNotificationService()


def get_notification_service() -> NotificationService:
    """FastAPI dependency for the Notification Service."""
    return _notification_service


def set_notification_service(service: NotificationService) -> None:
    """Override the service (for testing or production wiring)."""
    global _notification_service
    _notification_service = service
