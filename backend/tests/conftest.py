from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from leaveflow.db import get_session
from leaveflow.main import app
from leaveflow.models import SQLModel
from leaveflow.models.enums import ApprovalDecision, EmployeeRole, LeaveStatus, LeaveType
from leaveflow.models.leave import LeaveRequest
from leaveflow.services.audit import record_status_change
from leaveflow.services.balance import BalanceInfo, InMemoryBalanceService, set_balance_service
from leaveflow.services.handlers import set_dispatcher
from leaveflow.services.notification import InMemoryNotificationService, set_notification_service
from leaveflow.services.org import EmployeeInfo, InMemoryOrgGraphService, set_org_graph

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

BALANCE_YEAR = 2030
DEFAULT_BALANCES = {LeaveType.CASUAL: 12, LeaveType.SICK: 8, LeaveType.EARNED: 15}


@dataclass
class Org:
    """Standard org chart used across the tests.

    hr (HR, no manager)
      director (MANAGER, Engineering)
        manager (MANAGER, Engineering)
          alice, bob, carol (EMPLOYEE, Engineering)
    """

    hr: uuid.UUID
    director: uuid.UUID
    manager: uuid.UUID
    alice: uuid.UUID
    bob: uuid.UUID
    carol: uuid.UUID


@dataclass
class Services:
    org_graph: InMemoryOrgGraphService
    balances: InMemoryBalanceService
    notifications: InMemoryNotificationService


def _employee(
    name: str,
    role: EmployeeRole = EmployeeRole.EMPLOYEE,
    department: str = "Engineering",
    manager_id: uuid.UUID | None = None,
) -> EmployeeInfo:
    return EmployeeInfo(
        id=uuid.uuid4(),
        name=name,
        email=f"{name.lower()}@example.com",
        role=role,
        department=department,
        reporting_manager_id=manager_id,
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """A fresh in-memory database per test, schema created from the models."""
    _engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    session = AsyncSession(engine, expire_on_commit=False)
    yield session
    await session.close()


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Collaborator services
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def services() -> Iterator[Services]:
    """Fresh in-memory collaborators and the default dispatcher for every test."""
    svc = Services(
        org_graph=InMemoryOrgGraphService(),
        balances=InMemoryBalanceService(),
        notifications=InMemoryNotificationService(),
    )
    set_org_graph(svc.org_graph)
    set_balance_service(svc.balances)
    set_notification_service(svc.notifications)
    set_dispatcher(None)
    yield svc
    set_org_graph(InMemoryOrgGraphService())
    set_balance_service(InMemoryBalanceService())
    set_notification_service(InMemoryNotificationService())
    set_dispatcher(None)


def _grant_balances(services: Services, employee_id: uuid.UUID) -> None:
    for leave_type, total in DEFAULT_BALANCES.items():
        services.balances.seed(
            BalanceInfo(employee_id=employee_id, leave_type=leave_type, year=BALANCE_YEAR, total_days=total)
        )


@pytest.fixture
def org(services: Services) -> Org:
    hr = _employee("Hannah", EmployeeRole.HR, department="HR")
    director = _employee("Dora", EmployeeRole.MANAGER, manager_id=hr.id)
    manager = _employee("Mike", EmployeeRole.MANAGER, manager_id=director.id)
    alice = _employee("Alice", manager_id=manager.id)
    bob = _employee("Bob", manager_id=manager.id)
    carol = _employee("Carol", manager_id=manager.id)

    for e in (hr, director, manager, alice, bob, carol):
        services.org_graph.seed(e)
        _grant_balances(services, e.id)

    return Org(hr=hr.id, director=director.id, manager=manager.id, alice=alice.id, bob=bob.id, carol=carol.id)


# ---------------------------------------------------------------------------
# Fixtures for pre-existing leave
# ---------------------------------------------------------------------------


@pytest.fixture
def approved_leave(db_session: AsyncSession) -> Callable[[uuid.UUID, date, date], Awaitable[LeaveRequest]]:
    """Insert an already-approved leave request, with its status log entry."""

    async def _insert(employee_id: uuid.UUID, start: date, end: date) -> LeaveRequest:
        request = LeaveRequest(
            employee_id=employee_id,
            leave_type=LeaveType.CASUAL.value,
            start_date=start,
            end_date=end,
            manager_approval=ApprovalDecision.APPROVED.value,
            hr_approval=ApprovalDecision.NOT_REQUIRED.value,
        )
        db_session.add(request)
        record_status_change(db_session, request, LeaveStatus.APPROVED, employee_id, "Seeded", initial=True)
        await db_session.commit()
        return request

    return _insert


@pytest.fixture
def make_employee(services: Services) -> Callable[..., EmployeeInfo]:
    """Seed an extra employee (with default balances) into the org graph."""

    def _make(
        name: str,
        role: EmployeeRole = EmployeeRole.EMPLOYEE,
        department: str = "Engineering",
        manager_id: uuid.UUID | None = None,
    ) -> EmployeeInfo:
        info = _employee(name, role, department, manager_id)
        services.org_graph.seed(info)
        _grant_balances(services, info.id)
        return info

    return _make
