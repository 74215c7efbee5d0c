"""Integration tests for the employee, balance and notification endpoints."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from httpx import AsyncClient

    from conftest import Org, Services

EMPLOYEES_URL = "/employees"


def _headers(employee_id: uuid.UUID) -> dict[str, str]:
    return {"X-Employee-Id": str(employee_id)}


def _employee_payload(
    name: str = "Nina",
    email: str = "nina@example.com",
    role: str = "EMPLOYEE",
    department: str = "Finance",
    reporting_manager_id: uuid.UUID | None = None,
) -> dict:
    return {
        "name": name,
        "email": email,
        "role": role,
        "department": department,
        "reporting_manager_id": str(reporting_manager_id) if reporting_manager_id else None,
    }


# ---------------------------------------------------------------------------
# Actor header
# ---------------------------------------------------------------------------


async def test_missing_actor_header(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.get(EMPLOYEES_URL)
    assert resp.status_code == 422
    assert resp.json()["error"] == "ValidationError"


async def test_malformed_actor_header(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.get(EMPLOYEES_URL, headers={"X-Employee-Id": "not-a-uuid"})
    assert resp.status_code == 422


async def test_unknown_actor(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.get(EMPLOYEES_URL, headers=_headers(uuid.uuid4()))
    assert resp.status_code == 403
    assert resp.json() == {
        "error": "AuthorizationError",
        "detail": "Unknown employee in X-Employee-Id",
        "status_code": 403,
    }


# ---------------------------------------------------------------------------
# Employees
# ---------------------------------------------------------------------------


async def test_upsert_employee(async_client: AsyncClient, org: Org) -> None:
    employee_id = uuid.uuid4()
    resp = await async_client.put(
        f"{EMPLOYEES_URL}/{employee_id}",
        json=_employee_payload(reporting_manager_id=org.director),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == str(employee_id)
    assert data["department"] == "Finance"
    assert data["reporting_manager_id"] == str(org.director)

    resp = await async_client.get(f"{EMPLOYEES_URL}/{employee_id}", headers=_headers(org.alice))
    assert resp.status_code == 200
    assert resp.json()["name"] == "Nina"


async def test_upsert_replaces_existing(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.put(
        f"{EMPLOYEES_URL}/{org.carol}",
        json=_employee_payload(name="Carol", email="carol@example.com", role="MANAGER", department="Engineering"),
    )
    assert resp.status_code == 200

    resp = await async_client.get(f"{EMPLOYEES_URL}/{org.carol}", headers=_headers(org.alice))
    assert resp.json()["role"] == "MANAGER"
    assert resp.json()["reporting_manager_id"] is None


async def test_upsert_invalid_role(async_client: AsyncClient) -> None:
    resp = await async_client.put(f"{EMPLOYEES_URL}/{uuid.uuid4()}", json=_employee_payload(role="CEO"))
    assert resp.status_code == 422


async def test_get_employee_not_found(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.get(f"{EMPLOYEES_URL}/{uuid.uuid4()}", headers=_headers(org.alice))
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFoundError"


async def test_list_employees_by_department(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.get(EMPLOYEES_URL, headers=_headers(org.alice))
    assert len(resp.json()) == 6

    resp = await async_client.get(f"{EMPLOYEES_URL}?department=HR", headers=_headers(org.alice))
    assert [e["id"] for e in resp.json()] == [str(org.hr)]


async def test_employee_leave_requests_self_or_hr(async_client: AsyncClient, org: Org) -> None:
    await async_client.post(
        "/leave-requests",
        json={"leave_type": "CASUAL", "start_date": "2030-03-04", "end_date": "2030-03-05"},
        headers=_headers(org.alice),
    )
    url = f"{EMPLOYEES_URL}/{org.alice}/leave-requests"

    resp = await async_client.get(url, headers=_headers(org.alice))
    assert resp.status_code == 200
    assert len(resp.json()) == 1

    resp = await async_client.get(url, headers=_headers(org.hr))
    assert resp.status_code == 200

    resp = await async_client.get(url, headers=_headers(org.bob))
    assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


async def test_list_balances(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.get(f"{EMPLOYEES_URL}/{org.alice}/balances?year=2030", headers=_headers(org.alice))
    assert resp.status_code == 200
    balances = {b["leave_type"]: b for b in resp.json()}
    assert set(balances) == {"CASUAL", "SICK", "EARNED"}
    assert balances["CASUAL"]["total_days"] == 12
    assert balances["CASUAL"]["available_days"] == 12


async def test_list_balances_other_year_is_empty(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.get(f"{EMPLOYEES_URL}/{org.alice}/balances?year=2031", headers=_headers(org.alice))
    assert resp.json() == []


async def test_upsert_balance_hr_only(async_client: AsyncClient, org: Org, services: Services) -> None:
    payload = {"leave_type": "EARNED", "year": 2030, "total_days": 20, "used_days": 4}

    resp = await async_client.put(f"{EMPLOYEES_URL}/{org.alice}/balances", json=payload, headers=_headers(org.alice))
    assert resp.status_code == 403

    resp = await async_client.put(f"{EMPLOYEES_URL}/{org.alice}/balances", json=payload, headers=_headers(org.hr))
    assert resp.status_code == 200
    assert resp.json()["available_days"] == 16

    from leaveflow.models.enums import LeaveType

    balance = await services.balances.get_balance(org.alice, LeaveType.EARNED, 2030)
    assert balance is not None
    assert balance.total_days == 20


async def test_upsert_balance_unknown_employee(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.put(
        f"{EMPLOYEES_URL}/{uuid.uuid4()}/balances",
        json={"leave_type": "EARNED", "year": 2030, "total_days": 20},
        headers=_headers(org.hr),
    )
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


async def test_notifications_newest_first_and_private(async_client: AsyncClient, org: Org) -> None:
    resp = await async_client.post(
        "/leave-requests",
        json={"leave_type": "CASUAL", "start_date": "2030-03-04", "end_date": "2030-03-05"},
        headers=_headers(org.alice),
    )
    request_id = resp.json()["leave_request"]["id"]
    await async_client.post(f"/leave-requests/{request_id}/cancel", headers=_headers(org.alice))

    resp = await async_client.get(f"{EMPLOYEES_URL}/{org.manager}/notifications", headers=_headers(org.manager))
    assert resp.status_code == 200
    [notification] = resp.json()
    assert notification["kind"] == "LEAVE_CANCELLED"
    assert notification["related_request_id"] == request_id
    assert notification["is_read"] is False

    resp = await async_client.get(f"{EMPLOYEES_URL}/{org.manager}/notifications", headers=_headers(org.alice))
    assert resp.status_code == 403
