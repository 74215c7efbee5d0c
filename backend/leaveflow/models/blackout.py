# ruff: noqa: TC003
from __future__ import annotations

from datetime import date

import sqlalchemy as sa
from sqlmodel import Field

from leaveflow.models.base import TimestampMixin, UUIDBase


class BlackoutPeriod(UUIDBase, TimestampMixin, table=True):
    """A department-scoped date range where approving leave needs an explicit override."""

    __tablename__ = "blackout_period"
    __table_args__ = (
        sa.CheckConstraint("end_date >= start_date", name="ck_blackout_period_date_range"),
        sa.Index("ix_blackout_department_dates", "department", "start_date", "end_date"),
    )

    department: str = Field(max_length=50)
    name: str = Field(max_length=100)
    start_date: date
    end_date: date
    reason: str | None = None
