# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Session
from sqlmodel import Field

from leaveflow.exceptions import AppendOnlyViolation
from leaveflow.models.base import UUIDBase, now_utc
from leaveflow.models.leave import LeaveRequest


def _leave_request_fk() -> sa.Column:  # type: ignore[type-arg]
    return sa.Column(
        sa.Uuid, sa.ForeignKey("leave_request.id", ondelete="CASCADE"), nullable=False, index=True
    )


class ApprovalAction(UUIDBase, table=True):
    """One approve, reject or delegate act against a leave request."""

    __tablename__ = "approval_action"

    leave_request_id: uuid.UUID = Field(sa_column=_leave_request_fk())
    approver_id: uuid.UUID
    action: str = Field(max_length=20)
    role_type: str = Field(max_length=20)
    comments: str | None = None
    created_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )


class DelegationHop(UUIDBase, table=True):
    """One step of a reporting-chain walk that moved the manager slot."""

    __tablename__ = "delegation_hop"

    leave_request_id: uuid.UUID = Field(sa_column=_leave_request_fk())
    from_approver_id: uuid.UUID
    to_approver_id: uuid.UUID
    reason: str = Field(max_length=50)
    # Orders hops written in the same transaction.
    sequence: int = 0
    created_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )


class StatusLogEntry(UUIDBase, table=True):
    """Immutable record of one status transition, creation included."""

    __tablename__ = "status_log_entry"
    __table_args__ = (sa.Index("ix_status_log_changed_at", "changed_at"),)

    leave_request_id: uuid.UUID = Field(sa_column=_leave_request_fk())
    changed_by_id: uuid.UUID
    old_status: str | None = Field(default=None, max_length=30)
    new_status: str = Field(max_length=30)
    reason: str | None = None
    changed_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )


APPEND_ONLY_MODELS: tuple[type[UUIDBase], ...] = (ApprovalAction, DelegationHop, StatusLogEntry)


# ---------------------------------------------------------------------------
# ORM guards
# ---------------------------------------------------------------------------


@event.listens_for(Session, "before_flush")
def _enforce_audit_invariants(session: Session, flush_context: object, instances: object) -> None:
    """Reject mutation of audit rows and status changes that were not logged."""
    for obj in session.deleted:
        if isinstance(obj, APPEND_ONLY_MODELS):
            raise AppendOnlyViolation(f"{obj.__tablename__} is append-only; deletes are forbidden")

    for obj in session.dirty:
        if isinstance(obj, APPEND_ONLY_MODELS) and session.is_modified(obj):
            raise AppendOnlyViolation(f"{obj.__tablename__} is append-only; updates are forbidden")

    logged = {(e.leave_request_id, e.new_status) for e in session.new if isinstance(e, StatusLogEntry)}

    for obj in session.new:
        if isinstance(obj, LeaveRequest) and (obj.id, obj.status) not in logged:
            raise AppendOnlyViolation(f"Leave request {obj.id} created without a status log entry")

    for obj in session.dirty:
        if not isinstance(obj, LeaveRequest):
            continue
        history = sa.inspect(obj).attrs.status.history
        if history.has_changes() and (obj.id, obj.status) not in logged:
            raise AppendOnlyViolation(f"Status change on leave request {obj.id} without a status log entry")


@event.listens_for(Session, "do_orm_execute")
def _block_bulk_audit_mutation(orm_execute_state: ORMExecuteState) -> None:
    """Bulk UPDATE/DELETE statements bypass the flush guard; refuse them here."""
    if not (orm_execute_state.is_update or orm_execute_state.is_delete):
        return
    mapper = orm_execute_state.bind_mapper
    if mapper is not None and mapper.class_ in APPEND_ONLY_MODELS:
        raise AppendOnlyViolation(f"{mapper.class_.__tablename__} is append-only")
