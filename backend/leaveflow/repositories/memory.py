"""In-memory repositories for tests and local development.

Writes are staged inside the unit of work and applied on commit. Rows carry a
``version``; commit compares the version each row had when it was read with
the version currently stored and refuses to apply anything if another unit of
work committed in between.
"""

# ruff: noqa: TC003
from __future__ import annotations

import asyncio
import uuid
from datetime import date
from typing import TYPE_CHECKING, Any, Self, TypeVar

from sqlmodel import SQLModel

from leaveflow.exceptions import ConcurrencyConflictError
from leaveflow.models import Holiday, LeaveAudit, LeaveBalance, LeaveRequest, LeaveType, User
from leaveflow.models.enums import RequestSortField, SortDirection

if TYPE_CHECKING:
    from collections.abc import Callable

    from leaveflow.repositories.base import RequestFilters

_ModelT = TypeVar("_ModelT", bound=SQLModel)

BalanceKey = tuple[uuid.UUID, uuid.UUID, int]


def _clone(model: _ModelT) -> _ModelT:
    """Detached copy so callers never mutate stored rows in place."""
    return type(model)(**model.model_dump())


def _balance_key(balance: LeaveBalance) -> BalanceKey:
    return (balance.user_id, balance.leave_type_id, balance.year)


class InMemoryStore:
    """Committed state shared by every unit of work created from it."""

    def __init__(self) -> None:
        self.users: dict[uuid.UUID, User] = {}
        self.leave_types: dict[uuid.UUID, LeaveType] = {}
        self.holidays: dict[uuid.UUID, Holiday] = {}
        self.balances: dict[BalanceKey, LeaveBalance] = {}
        self.requests: dict[uuid.UUID, LeaveRequest] = {}
        self.audits: list[LeaveAudit] = []

    def seed_user(self, user: User) -> User:
        self.users[user.id] = user
        return user

    def seed_leave_type(self, leave_type: LeaveType) -> LeaveType:
        self.leave_types[leave_type.id] = leave_type
        return leave_type

    def seed_holiday(self, holiday: Holiday) -> Holiday:
        self.holidays[holiday.id] = holiday
        return holiday

    def seed_balance(self, balance: LeaveBalance) -> LeaveBalance:
        self.balances[_balance_key(balance)] = balance
        return balance

    def unit_of_work(self) -> InMemoryUnitOfWork:
        """Factory suitable for ``LeaveLifecycleEngine``."""
        return InMemoryUnitOfWork(self)


class InMemoryReferenceRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def find_user(self, user_id: uuid.UUID) -> User | None:
        return self._store.users.get(user_id)

    async def list_users_by_role(self, role: str) -> list[User]:
        return sorted(
            (u for u in self._store.users.values() if u.role == role),
            key=lambda u: u.email,
        )

    async def get_leave_type(self, leave_type_id: uuid.UUID) -> LeaveType | None:
        return self._store.leave_types.get(leave_type_id)

    async def find_active_leave_type(
        self,
        *,
        leave_type_id: uuid.UUID | None = None,
        name: str | None = None,
    ) -> LeaveType | None:
        if leave_type_id is not None:
            leave_type = self._store.leave_types.get(leave_type_id)
            return leave_type if leave_type is not None and leave_type.active else None
        if name is None:
            return None
        needle = name.casefold()
        matches = sorted(
            (lt for lt in self._store.leave_types.values() if lt.active and needle in lt.name.casefold()),
            key=lambda lt: lt.name,
        )
        return matches[0] if matches else None

    async def list_leave_types(self) -> list[LeaveType]:
        return sorted(self._store.leave_types.values(), key=lambda lt: lt.name)

    async def holiday_dates(self, start: date, end: date) -> set[date]:
        return {h.date for h in self._store.holidays.values() if start <= h.date <= end}

    async def list_holidays(self, year: int | None = None) -> list[Holiday]:
        holidays = [h for h in self._store.holidays.values() if year is None or h.date.year == year]
        return sorted(holidays, key=lambda h: h.date)


class InMemoryLedgerRepository:
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow

    async def get(self, user_id: uuid.UUID, leave_type_id: uuid.UUID, year: int) -> LeaveBalance | None:
        key = (user_id, leave_type_id, year)
        staged = self._uow.staged_balances.get(key)
        if staged is not None:
            return staged
        stored = self._uow.store.balances.get(key)
        return _clone(stored) if stored is not None else None

    async def get_for_update(self, user_id: uuid.UUID, leave_type_id: uuid.UUID, year: int) -> LeaveBalance | None:
        key = (user_id, leave_type_id, year)
        staged = self._uow.staged_balances.get(key)
        if staged is not None:
            return staged
        stored = self._uow.store.balances.get(key)
        self._uow.balance_reads.setdefault(key, stored.version if stored is not None else None)
        # Yield like a real round trip would, so concurrent callers interleave.
        await asyncio.sleep(0)
        if stored is None:
            return None
        balance = _clone(stored)
        self._uow.staged_balances[key] = balance
        return balance

    async def list_for_user(self, user_id: uuid.UUID, year: int) -> list[LeaveBalance]:
        rows = [_clone(b) for b in self._uow.store.balances.values() if b.user_id == user_id and b.year == year]
        return sorted(rows, key=lambda b: str(b.leave_type_id))

    async def add(self, balance: LeaveBalance) -> None:
        key = _balance_key(balance)
        self._uow.balance_reads.setdefault(key, None)
        self._uow.staged_balances[key] = balance

    async def save(self, balance: LeaveBalance) -> None:
        self._uow.staged_balances[_balance_key(balance)] = balance


class InMemoryLeaveRequestRepository:
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow

    async def get(self, request_id: uuid.UUID) -> LeaveRequest | None:
        staged = self._uow.staged_requests.get(request_id)
        if staged is not None:
            return staged
        stored = self._uow.store.requests.get(request_id)
        return _clone(stored) if stored is not None else None

    async def get_for_update(self, request_id: uuid.UUID) -> LeaveRequest | None:
        staged = self._uow.staged_requests.get(request_id)
        if staged is not None:
            return staged
        stored = self._uow.store.requests.get(request_id)
        await asyncio.sleep(0)
        if stored is None:
            return None
        self._uow.request_reads.setdefault(request_id, stored.version)
        request = _clone(stored)
        self._uow.staged_requests[request_id] = request
        return request

    async def add(self, request: LeaveRequest) -> None:
        self._uow.request_reads.setdefault(request.id, None)
        self._uow.staged_requests[request.id] = request

    async def save(self, request: LeaveRequest) -> None:
        self._uow.staged_requests[request.id] = request

    async def search(
        self,
        filters: RequestFilters,
        offset: int = 0,
        limit: int = 50,
        sort_by: RequestSortField = RequestSortField.CREATED_AT,
        direction: SortDirection = SortDirection.DESC,
    ) -> tuple[list[LeaveRequest], int]:
        matches = [r for r in self._uow.store.requests.values() if _matches(r, filters)]
        # Stable sorts: newest first, then by the requested field.
        matches.sort(key=lambda r: r.created_at, reverse=True)
        matches.sort(key=self._sort_key(sort_by), reverse=direction == SortDirection.DESC)
        return [_clone(r) for r in matches[offset : offset + limit]], len(matches)

    def _sort_key(self, sort_by: RequestSortField) -> Callable[[LeaveRequest], Any]:
        if sort_by == RequestSortField.LEAVE_TYPE:
            names = {lt.id: lt.name for lt in self._uow.store.leave_types.values()}
            return lambda r: names.get(r.leave_type_id, "")
        return lambda r: getattr(r, sort_by.value)


def _matches(request: LeaveRequest, filters: RequestFilters) -> bool:
    if filters.user_id is not None and request.user_id != filters.user_id:
        return False
    if filters.leave_type_id is not None and request.leave_type_id != filters.leave_type_id:
        return False
    if filters.statuses is not None and request.status not in filters.statuses:
        return False
    if filters.end is not None and request.start_date > filters.end:
        return False
    return not (filters.start is not None and request.end_date < filters.start)


class InMemoryAuditRepository:
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow

    async def append(self, entry: LeaveAudit) -> None:
        self._uow.staged_audits.append(entry)

    async def count_for_request(self, leave_request_id: uuid.UUID) -> int:
        committed = sum(1 for a in self._uow.store.audits if a.leave_request_id == leave_request_id)
        staged = sum(1 for a in self._uow.staged_audits if a.leave_request_id == leave_request_id)
        return committed + staged

    async def list_for_request(self, leave_request_id: uuid.UUID) -> list[LeaveAudit]:
        rows = [_clone(a) for a in self._uow.store.audits if a.leave_request_id == leave_request_id]
        return sorted(rows, key=lambda a: (a.timestamp, a.sequence))


class InMemoryUnitOfWork:
    """Optimistic unit of work over an ``InMemoryStore``."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.balance_reads: dict[BalanceKey, int | None] = {}
        self.request_reads: dict[uuid.UUID, int | None] = {}
        self.staged_balances: dict[BalanceKey, LeaveBalance] = {}
        self.staged_requests: dict[uuid.UUID, LeaveRequest] = {}
        self.staged_audits: list[LeaveAudit] = []
        self.reference = InMemoryReferenceRepository(store)
        self.ledger = InMemoryLedgerRepository(self)
        self.requests = InMemoryLeaveRequestRepository(self)
        self.audit = InMemoryAuditRepository(self)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        self._reset()

    async def commit(self) -> None:
        # No awaits below: the check and the apply happen as one step.
        for key, read_version in self.balance_reads.items():
            stored = self.store.balances.get(key)
            if (stored.version if stored is not None else None) != read_version:
                self._reset()
                raise ConcurrencyConflictError("Leave balance was modified concurrently")
        for request_id, read_version in self.request_reads.items():
            stored_request = self.store.requests.get(request_id)
            if (stored_request.version if stored_request is not None else None) != read_version:
                self._reset()
                raise ConcurrencyConflictError("Leave request was modified concurrently")

        for key, balance in self.staged_balances.items():
            self.store.balances[key] = _clone(balance)
        for request_id, request in self.staged_requests.items():
            self.store.requests[request_id] = _clone(request)
        self.store.audits.extend(_clone(a) for a in self.staged_audits)
        self._reset()

    def _reset(self) -> None:
        self.balance_reads.clear()
        self.request_reads.clear()
        self.staged_balances.clear()
        self.staged_requests.clear()
        self.staged_audits.clear()
