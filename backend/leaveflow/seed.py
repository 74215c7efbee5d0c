"""Seed script for development data.

Run with:  uv run python -m leaveflow.seed
Inside Docker:  docker compose exec api uv run python -m leaveflow.seed

The org graph and balance services are in-memory stubs, so re-run this
after every API restart. Blackout periods live in the database and are
skipped when an identical one already exists.
"""

from __future__ import annotations

import asyncio
import sys

import httpx

BASE_URL = "http://localhost:8000"
SEED_YEAR = 2026


def _uuid(n: int) -> str:
    return f"00000000-0000-0000-0000-{n:012d}"


HR_ID = _uuid(1)
ENG_MANAGER_ID = _uuid(2)
FIN_MANAGER_ID = _uuid(3)
MKT_MANAGER_ID = _uuid(4)

HR_HEADERS = {"Content-Type": "application/json", "X-Employee-Id": HR_ID}

# (id, name, email, role, department, reporting manager)
EMPLOYEES = [
    (HR_ID, "Priya Sharma", "priya.sharma@company.com", "HR", "HR", None),
    (ENG_MANAGER_ID, "Rajesh Kumar", "rajesh.kumar@company.com", "MANAGER", "Engineering", HR_ID),
    (FIN_MANAGER_ID, "Anita Desai", "anita.desai@company.com", "MANAGER", "Finance", HR_ID),
    (MKT_MANAGER_ID, "Vikram Patel", "vikram.patel@company.com", "MANAGER", "Marketing", HR_ID),
    (_uuid(5), "Amit Verma", "amit.verma@company.com", "EMPLOYEE", "Engineering", ENG_MANAGER_ID),
    (_uuid(6), "Sneha Reddy", "sneha.reddy@company.com", "EMPLOYEE", "Engineering", ENG_MANAGER_ID),
    (_uuid(7), "Karan Singh", "karan.singh@company.com", "EMPLOYEE", "Engineering", ENG_MANAGER_ID),
    (_uuid(8), "Deepa Nair", "deepa.nair@company.com", "EMPLOYEE", "Engineering", ENG_MANAGER_ID),
    (_uuid(9), "Rohit Mehta", "rohit.mehta@company.com", "EMPLOYEE", "Finance", FIN_MANAGER_ID),
    (_uuid(10), "Suman Joshi", "suman.joshi@company.com", "EMPLOYEE", "Finance", FIN_MANAGER_ID),
    (_uuid(11), "Pooja Gupta", "pooja.gupta@company.com", "EMPLOYEE", "Finance", FIN_MANAGER_ID),
    (_uuid(12), "Arjun Das", "arjun.das@company.com", "EMPLOYEE", "Finance", FIN_MANAGER_ID),
    (_uuid(13), "Neha Kapoor", "neha.kapoor@company.com", "EMPLOYEE", "Marketing", MKT_MANAGER_ID),
    (_uuid(14), "Ravi Shankar", "ravi.shankar@company.com", "EMPLOYEE", "Marketing", MKT_MANAGER_ID),
    (_uuid(15), "Meera Iyer", "meera.iyer@company.com", "EMPLOYEE", "Marketing", MKT_MANAGER_ID),
    (_uuid(16), "Tarun Bhatia", "tarun.bhatia@company.com", "EMPLOYEE", "Marketing", MKT_MANAGER_ID),
]

BALANCE_DEFAULTS = {"CASUAL": 12, "SICK": 8, "EARNED": 15}

BLACKOUT_PERIODS = [
    {
        "department": "Finance",
        "name": "Q1 Month-End Close",
        "start_date": "2026-03-28",
        "end_date": "2026-03-31",
        "reason": "Quarterly financial closing, all hands needed",
    },
    {
        "department": "Finance",
        "name": "Q2 Month-End Close",
        "start_date": "2026-06-27",
        "end_date": "2026-06-30",
        "reason": "Quarterly financial closing, all hands needed",
    },
    {
        "department": "Finance",
        "name": "Year-End Close",
        "start_date": "2026-12-28",
        "end_date": "2026-12-31",
        "reason": "Year-end financial closing",
    },
    {
        "department": "Engineering",
        "name": "Product Launch Week",
        "start_date": "2026-04-13",
        "end_date": "2026-04-17",
        "reason": "Major product launch, engineering freeze",
    },
    {
        "department": "Engineering",
        "name": "Hackathon Week",
        "start_date": "2026-09-07",
        "end_date": "2026-09-11",
        "reason": "Company hackathon, full participation expected",
    },
]


async def _safe_put(client: httpx.AsyncClient, url: str, json: dict, label: str) -> dict | None:
    """PUT (upsert), naturally idempotent."""
    resp = await client.put(url, json=json, headers=HR_HEADERS)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_employees(client: httpx.AsyncClient) -> None:
    """Seed the org chart via PUT (upsert). HR goes first so later calls can act as HR."""
    print("\n--- Seeding employees ---")
    for employee_id, name, email, role, department, manager_id in EMPLOYEES:
        await _safe_put(
            client,
            f"{BASE_URL}/employees/{employee_id}",
            {
                "name": name,
                "email": email,
                "role": role,
                "department": department,
                "reporting_manager_id": manager_id,
            },
            f"Employee: {name} ({role}, {department})",
        )


async def seed_balances(client: httpx.AsyncClient) -> None:
    print(f"\n--- Seeding {SEED_YEAR} balances ---")
    for employee_id, name, *_ in EMPLOYEES:
        for leave_type, total_days in BALANCE_DEFAULTS.items():
            await _safe_put(
                client,
                f"{BASE_URL}/employees/{employee_id}/balances",
                {"leave_type": leave_type, "year": SEED_YEAR, "total_days": total_days, "used_days": 0},
                f"Balance: {name} {leave_type}={total_days}",
            )


async def seed_blackouts(client: httpx.AsyncClient) -> None:
    print("\n--- Seeding blackout periods ---")
    resp = await client.get(f"{BASE_URL}/blackout-periods", headers=HR_HEADERS)
    resp.raise_for_status()
    existing = {(p["department"], p["name"], p["start_date"]) for p in resp.json()}

    for period in BLACKOUT_PERIODS:
        label = f"Blackout: {period['department']} {period['name']}"
        if (period["department"], period["name"], period["start_date"]) in existing:
            print(f"  [SKIP] {label} (already exists)")
            continue
        resp = await client.post(f"{BASE_URL}/blackout-periods", json=period, headers=HR_HEADERS)
        if resp.status_code == 201:
            print(f"  [OK] {label}")
        else:
            print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")


async def main() -> None:
    print("=" * 60)
    print("  Leaveflow - Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            print("Make sure the API is running")
            sys.exit(1)

        await seed_employees(client)
        await seed_balances(client)
        await seed_blackouts(client)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
