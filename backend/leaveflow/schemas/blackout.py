# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator


class CreateBlackoutPayload(BaseModel):
    """Request body for creating a blackout period."""

    department: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date
    reason: str | None = None

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must be on or after start_date"
            raise ValueError(msg)
        return self


class BlackoutPeriodResponse(BaseModel):
    """Response schema for a blackout period."""

    id: uuid.UUID
    department: str
    name: str
    start_date: date
    end_date: date
    reason: str | None
    created_at: datetime
