# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from leaveflow.models.enums import EmployeeRole


class ActorContext(BaseModel):
    """The employee performing a call, resolved from the X-Employee-Id header."""

    employee_id: uuid.UUID
    role: EmployeeRole
