"""Initial schema: leave requests, audit trail, blackout periods.

Revision ID: 0001
Revises:
Create Date: 2026-03-02 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

APPEND_ONLY_TABLES = ("approval_action", "delegation_hop", "status_log_entry")


def _leave_request_fk() -> sa.Column:  # type: ignore[type-arg]
    return sa.Column(
        "leave_request_id",
        sa.Uuid(),
        sa.ForeignKey("leave_request.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def upgrade() -> None:
    op.create_table(
        "leave_request",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("employee_id", sa.Uuid(), nullable=False, index=True),
        sa.Column("leave_type", sa.String(length=20), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=30), server_default="PENDING", nullable=False, index=True),
        sa.Column("medical_document_url", sa.String(), nullable=True),
        sa.Column("document_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("document_reminder_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("requires_dual_approval", sa.Boolean(), nullable=False),
        sa.Column("manager_approval", sa.String(length=20), nullable=False),
        sa.Column("hr_approval", sa.String(length=20), nullable=False),
        sa.Column("team_capacity_warning", sa.Boolean(), nullable=False),
        sa.Column("blackout_warning", sa.Boolean(), nullable=False),
        sa.Column("blackout_override", sa.Boolean(), nullable=False),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        sa.Column("current_approver_id", sa.Uuid(), nullable=True, index=True),
        sa.Column("escalation_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("current_approver_assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_date_range"),
    )
    op.create_index("ix_leave_request_employee_dates", "leave_request", ["employee_id", "start_date", "end_date"])
    op.create_index("ix_leave_request_status_approver", "leave_request", ["status", "current_approver_id"])

    op.create_table(
        "approval_action",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _leave_request_fk(),
        sa.Column("approver_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("role_type", sa.String(length=20), nullable=False),
        sa.Column("comments", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "delegation_hop",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _leave_request_fk(),
        sa.Column("from_approver_id", sa.Uuid(), nullable=False),
        sa.Column("to_approver_id", sa.Uuid(), nullable=False),
        sa.Column("reason", sa.String(length=50), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "status_log_entry",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _leave_request_fk(),
        sa.Column("changed_by_id", sa.Uuid(), nullable=False),
        sa.Column("old_status", sa.String(length=30), nullable=True),
        sa.Column("new_status", sa.String(length=30), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_status_log_changed_at", "status_log_entry", ["changed_at"])

    op.create_table(
        "blackout_period",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("department", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.CheckConstraint("end_date >= start_date", name="ck_blackout_period_date_range"),
    )
    op.create_index("ix_blackout_department_dates", "blackout_period", ["department", "start_date", "end_date"])

    # Audit tables reject UPDATE and DELETE at the database level too.
    op.execute(
        """
        CREATE OR REPLACE FUNCTION prevent_audit_mutation() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION '% is append-only. Updates and deletes are forbidden.', TG_TABLE_NAME;
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    for table in APPEND_ONLY_TABLES:
        op.execute(
            f"CREATE TRIGGER trg_{table}_append_only BEFORE UPDATE OR DELETE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION prevent_audit_mutation()"
        )


def downgrade() -> None:
    for table in APPEND_ONLY_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_append_only ON {table}")
    op.execute("DROP FUNCTION IF EXISTS prevent_audit_mutation()")

    op.drop_index("ix_blackout_department_dates", table_name="blackout_period")
    op.drop_table("blackout_period")
    op.drop_index("ix_status_log_changed_at", table_name="status_log_entry")
    op.drop_table("status_log_entry")
    op.drop_table("delegation_hop")
    op.drop_table("approval_action")
    op.drop_index("ix_leave_request_status_approver", table_name="leave_request")
    op.drop_index("ix_leave_request_employee_dates", table_name="leave_request")
    op.drop_table("leave_request")
