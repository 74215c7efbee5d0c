# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from leaveflow.exceptions import NotFoundError, PolicyViolationError
from leaveflow.models.enums import LeaveType


class BalanceInfo(BaseModel):
    """Leave entitlement for one employee, leave type and year."""

    employee_id: uuid.UUID
    leave_type: LeaveType
    year: int
    total_days: int
    used_days: int = 0

    @property
    def available_days(self) -> int:
        return self.total_days - self.used_days


@runtime_checkable
class BalanceService(Protocol):
    """Debit/credit bookkeeping for leave days."""

    async def get_balance(self, employee_id: uuid.UUID, leave_type: LeaveType, year: int) -> BalanceInfo | None:
        """Fetch a balance. Returns None if none was granted."""
        ...

    async def list_balances(self, employee_id: uuid.UUID, year: int) -> list[BalanceInfo]:
        """All balances for an employee in a year."""
        ...

    async def has_enough_balance(self, employee_id: uuid.UUID, leave_type: LeaveType, year: int, days: int) -> bool:
        """True if at least `days` are still available."""
        ...

    async def deduct(self, employee_id: uuid.UUID, leave_type: LeaveType, year: int, days: int) -> BalanceInfo:
        """Consume days. Raises if no balance exists or it would go negative."""
        ...

    async def credit(self, employee_id: uuid.UUID, leave_type: LeaveType, year: int, days: int) -> BalanceInfo:
        """Give days back, never below zero used."""
        ...


class InMemoryBalanceService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._balances: dict[tuple[uuid.UUID, LeaveType, int], BalanceInfo] = {}

    def seed(self, balance: BalanceInfo) -> None:
        """Seed (or replace) a balance."""
        self._balances[(balance.employee_id, balance.leave_type, balance.year)] = balance

    async def get_balance(self, employee_id: uuid.UUID, leave_type: LeaveType, year: int) -> BalanceInfo | None:
        return self._balances.get((employee_id, leave_type, year))

    async def list_balances(self, employee_id: uuid.UUID, year: int) -> list[BalanceInfo]:
        return [b for b in self._balances.values() if b.employee_id == employee_id and b.year == year]

    async def has_enough_balance(self, employee_id: uuid.UUID, leave_type: LeaveType, year: int, days: int) -> bool:
        balance = await self.get_balance(employee_id, leave_type, year)
        if balance is None:
            return False
        return balance.available_days >= days

    async def deduct(self, employee_id: uuid.UUID, leave_type: LeaveType, year: int, days: int) -> BalanceInfo:
        balance = await self.get_balance(employee_id, leave_type, year)
        if balance is None:
            raise NotFoundError(f"No {leave_type} balance for employee {employee_id} in {year}")
        if balance.used_days + days > balance.total_days:
            raise PolicyViolationError(f"Insufficient {leave_type} balance for employee {employee_id}")
        balance.used_days += days
        return balance

    async def credit(self, employee_id: uuid.UUID, leave_type: LeaveType, year: int, days: int) -> BalanceInfo:
        balance = await self.get_balance(employee_id, leave_type, year)
        if balance is None:
            raise NotFoundError(f"No {leave_type} balance for employee {employee_id} in {year}")
        balance.used_days = max(0, balance.used_days - days)
        return balance


_balance_service: BalanceService = InMemoryBalanceService()


def get_balance_service() -> BalanceService:
    """FastAPI dependency for the Balance Service."""
    return _balance_service


def set_balance_service(service: BalanceService) -> None:
    """Override the service (for testing or production wiring)."""
    global _balance_service
    _balance_service = service
