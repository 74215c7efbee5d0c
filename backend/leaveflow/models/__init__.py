from sqlmodel import SQLModel

from leaveflow.models.audit import APPEND_ONLY_MODELS, ApprovalAction, DelegationHop, StatusLogEntry
from leaveflow.models.base import SYSTEM_ACTOR_ID, TimestampMixin, UUIDBase
from leaveflow.models.blackout import BlackoutPeriod
from leaveflow.models.enums import (
    ApprovalActionType,
    ApprovalDecision,
    ApprovalSlot,
    DelegationReason,
    EmployeeRole,
    LeaveEventType,
    LeaveStatus,
    LeaveType,
    NotificationKind,
)
from leaveflow.models.leave import LeaveRequest

__all__ = [
    "APPEND_ONLY_MODELS",
    "SYSTEM_ACTOR_ID",
    "ApprovalAction",
    "ApprovalActionType",
    "ApprovalDecision",
    "ApprovalSlot",
    "BlackoutPeriod",
    "DelegationHop",
    "DelegationReason",
    "EmployeeRole",
    "LeaveEventType",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "NotificationKind",
    "SQLModel",
    "StatusLogEntry",
    "TimestampMixin",
    "UUIDBase",
]
