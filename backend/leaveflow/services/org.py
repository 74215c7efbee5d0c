# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from leaveflow.models.enums import EmployeeRole


class EmployeeInfo(BaseModel):
    """Employee record from the org graph."""

    id: uuid.UUID
    name: str
    email: str
    role: EmployeeRole
    department: str
    reporting_manager_id: uuid.UUID | None = None  # None = top of chain


@runtime_checkable
class OrgGraphService(Protocol):
    """Read-only view of the employee hierarchy."""

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch one employee. Returns None if not found."""
        ...

    async def get_direct_reports(self, manager_id: uuid.UUID) -> list[EmployeeInfo]:
        """Employees whose reporting manager is manager_id."""
        ...

    async def get_hr_employees(self) -> list[EmployeeInfo]:
        """All HR employees, in a stable order. May be empty."""
        ...

    async def get_team_size(self, department: str) -> int:
        """Headcount of a department."""
        ...

    async def list_employees(self, department: str | None = None) -> list[EmployeeInfo]:
        """List employees, optionally restricted to one department."""
        ...


class InMemoryOrgGraphService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[uuid.UUID, EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed (or replace) an employee."""
        self._employees[employee.id] = employee

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        return self._employees.get(employee_id)

    async def get_direct_reports(self, manager_id: uuid.UUID) -> list[EmployeeInfo]:
        return [e for e in self._employees.values() if e.reporting_manager_id == manager_id]

    async def get_hr_employees(self) -> list[EmployeeInfo]:
        return [e for e in self._employees.values() if e.role == EmployeeRole.HR]

    async def get_team_size(self, department: str) -> int:
        return sum(1 for e in self._employees.values() if e.department == department)

    async def list_employees(self, department: str | None = None) -> list[EmployeeInfo]:
        return [e for e in self._employees.values() if department is None or e.department == department]


_org_graph: OrgGraphService = InMemoryOrgGraphService()


def get_org_graph() -> OrgGraphService:
    """FastAPI dependency for the org graph."""
    return _org_graph


def set_org_graph(service: OrgGraphService) -> None:
    """Override the org graph (for testing or production wiring)."""
    global _org_graph
    _org_graph = service


# ---------------------------------------------------------------------------
# Accessors used by the approval core
# ---------------------------------------------------------------------------


async def reporting_manager_of(employee_id: uuid.UUID) -> EmployeeInfo | None:
    """Return the employee's reporting manager, or None at the top of the chain."""
    org = get_org_graph()
    employee = await org.get_employee(employee_id)
    if employee is None or employee.reporting_manager_id is None:
        return None
    return await org.get_employee(employee.reporting_manager_id)


async def is_hr(employee_id: uuid.UUID) -> bool:
    """True if the employee exists and holds the HR role."""
    employee = await get_org_graph().get_employee(employee_id)
    return employee is not None and employee.role == EmployeeRole.HR


async def any_hr() -> list[EmployeeInfo]:
    """Ordered HR set; callers must handle the empty case."""
    return await get_org_graph().get_hr_employees()


async def resolve_initial_approver(employee: EmployeeInfo) -> uuid.UUID | None:
    """Pick who first holds the manager slot for this employee's leave.

    Employees go to their direct manager. Managers and HR go to their own
    manager, since nobody approves their own leave. Anyone without a
    manager falls back to the first HR employee (None if there is no HR).
    """
    if employee.reporting_manager_id is not None:
        return employee.reporting_manager_id
    hr_list = await any_hr()
    for hr in hr_list:
        if hr.id != employee.id:
            return hr.id
    return None
