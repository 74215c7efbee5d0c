# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from leaveflow.exceptions import AuthorizationError
from leaveflow.models.enums import EmployeeRole
from leaveflow.schemas.auth import ActorContext
from leaveflow.services.org import get_org_graph


async def get_actor(x_employee_id: uuid.UUID = Header()) -> ActorContext:
    """Resolve the acting employee from the X-Employee-Id header."""
    employee = await get_org_graph().get_employee(x_employee_id)
    if employee is None:
        raise AuthorizationError("Unknown employee in X-Employee-Id")
    return ActorContext(employee_id=employee.id, role=employee.role)


ActorDep = Annotated[ActorContext, Depends(get_actor)]


async def require_hr(actor: ActorDep) -> ActorContext:
    """Require the HR role for the request."""
    if actor.role != EmployeeRole.HR:
        raise AuthorizationError("HR access required")
    return actor


HrDep = Annotated[ActorContext, Depends(require_hr)]


def ensure_self_or_hr(actor: ActorContext, employee_id: uuid.UUID) -> None:
    """Allow access to an employee's own data, or to HR."""
    if actor.employee_id != employee_id and actor.role != EmployeeRole.HR:
        raise AuthorizationError("You can only view your own records")
