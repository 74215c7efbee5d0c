from __future__ import annotations

import enum


class EmployeeRole(enum.StrEnum):
    """Position of an employee in the approval hierarchy."""

    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR = "HR"


class LeaveType(enum.StrEnum):
    """Category of a leave request."""

    SICK = "SICK"
    CASUAL = "CASUAL"
    EARNED = "EARNED"


class LeaveStatus(enum.StrEnum):
    """State machine for leave requests."""

    PENDING = "PENDING"
    PENDING_DOCUMENT = "PENDING_DOCUMENT"
    PARTIALLY_APPROVED = "PARTIALLY_APPROVED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class ApprovalDecision(enum.StrEnum):
    """Decision recorded in one approval slot."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NOT_REQUIRED = "NOT_REQUIRED"


class ApprovalSlot(enum.StrEnum):
    """Which approval slot an actor fulfils."""

    MANAGER = "MANAGER"
    HR = "HR"


class ApprovalActionType(enum.StrEnum):
    """Kind of act recorded in the approval trail."""

    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DELEGATED = "DELEGATED"


class DelegationReason(enum.StrEnum):
    """Why a delegation hop happened."""

    UNAVAILABLE_ON_LEAVE = "UNAVAILABLE_ON_LEAVE"
    TIMEOUT = "TIMEOUT"
    ALSO_UNAVAILABLE = "ALSO_UNAVAILABLE"


class LeaveEventType(enum.StrEnum):
    """Post-commit events handed to the side-effect dispatcher."""

    CREATED = "CREATED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    DELEGATED = "DELEGATED"
    DOCUMENT_REMINDER = "DOCUMENT_REMINDER"
    DOCUMENT_EXPIRED = "DOCUMENT_EXPIRED"


class NotificationKind(enum.StrEnum):
    """Kind tag attached to a notification."""

    LEAVE_APPROVED = "LEAVE_APPROVED"
    LEAVE_REJECTED = "LEAVE_REJECTED"
    LEAVE_CANCELLED = "LEAVE_CANCELLED"
    TEAM_UPDATE = "TEAM_UPDATE"
    DUAL_APPROVAL_REJECTED = "DUAL_APPROVAL_REJECTED"
    APPROVAL_DELEGATED = "APPROVAL_DELEGATED"
    APPROVAL_ESCALATED_TIMEOUT = "APPROVAL_ESCALATED_TIMEOUT"
    APPROVAL_DELEGATED_INFO = "APPROVAL_DELEGATED_INFO"
    DOCUMENT_REMINDER = "DOCUMENT_REMINDER"
    DOCUMENT_REMINDER_URGENT = "DOCUMENT_REMINDER_URGENT"
    DOCUMENT_EXPIRED = "DOCUMENT_EXPIRED"
