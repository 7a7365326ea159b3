"""Persistence interfaces the lifecycle engine depends on.

The engine never touches a session or ORM client directly: every operation
opens a ``UnitOfWork``, works through its four repositories and commits once.
Nothing written through a unit of work is visible to other units of work
until ``commit()`` returns; leaving the context without committing discards
everything.
"""

# ruff: noqa: TC003
from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

from leaveflow.models.enums import RequestSortField, SortDirection

if TYPE_CHECKING:
    from leaveflow.models import Holiday, LeaveAudit, LeaveBalance, LeaveRequest, LeaveType, User


@dataclass(frozen=True)
class RequestFilters:
    """Filters for listing leave requests. ``start``/``end`` select overlapping requests."""

    user_id: uuid.UUID | None = None
    leave_type_id: uuid.UUID | None = None
    statuses: frozenset[str] | None = None
    start: date | None = None
    end: date | None = None


@runtime_checkable
class ReferenceRepository(Protocol):
    """Read-only access to users, leave types and holidays."""

    async def find_user(self, user_id: uuid.UUID) -> User | None: ...

    async def list_users_by_role(self, role: str) -> list[User]: ...

    async def get_leave_type(self, leave_type_id: uuid.UUID) -> LeaveType | None: ...

    async def find_active_leave_type(
        self,
        *,
        leave_type_id: uuid.UUID | None = None,
        name: str | None = None,
    ) -> LeaveType | None:
        """Find an active leave type by id, or by case-insensitive partial name."""
        ...

    async def list_leave_types(self) -> list[LeaveType]: ...

    async def holiday_dates(self, start: date, end: date) -> set[date]: ...

    async def list_holidays(self, year: int | None = None) -> list[Holiday]: ...


@runtime_checkable
class LedgerRepository(Protocol):
    """Balance rows keyed by (user, leave type, year)."""

    async def get(self, user_id: uuid.UUID, leave_type_id: uuid.UUID, year: int) -> LeaveBalance | None: ...

    async def get_for_update(self, user_id: uuid.UUID, leave_type_id: uuid.UUID, year: int) -> LeaveBalance | None:
        """Fetch the row so that concurrent writers of the same row serialize behind this unit of work."""
        ...

    async def list_for_user(self, user_id: uuid.UUID, year: int) -> list[LeaveBalance]: ...

    async def add(self, balance: LeaveBalance) -> None: ...

    async def save(self, balance: LeaveBalance) -> None: ...


@runtime_checkable
class LeaveRequestRepository(Protocol):
    async def get(self, request_id: uuid.UUID) -> LeaveRequest | None: ...

    async def get_for_update(self, request_id: uuid.UUID) -> LeaveRequest | None: ...

    async def add(self, request: LeaveRequest) -> None: ...

    async def save(self, request: LeaveRequest) -> None: ...

    async def search(
        self,
        filters: RequestFilters,
        offset: int = 0,
        limit: int = 50,
        sort_by: RequestSortField = RequestSortField.CREATED_AT,
        direction: SortDirection = SortDirection.DESC,
    ) -> tuple[list[LeaveRequest], int]:
        """Return one page of matching requests and the total match count.

        Ties on ``sort_by`` are broken newest first. ``LEAVE_TYPE`` orders by
        the leave type's name.
        """
        ...


@runtime_checkable
class AuditRepository(Protocol):
    """Append-only audit rows. There is no update or delete."""

    async def append(self, entry: LeaveAudit) -> None: ...

    async def count_for_request(self, leave_request_id: uuid.UUID) -> int: ...

    async def list_for_request(self, leave_request_id: uuid.UUID) -> list[LeaveAudit]:
        """Return rows in replay order: timestamp, then sequence."""
        ...


@runtime_checkable
class UnitOfWork(Protocol):
    reference: ReferenceRepository
    ledger: LedgerRepository
    requests: LeaveRequestRepository
    audit: AuditRepository

    async def __aenter__(self) -> Self: ...

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None: ...

    async def commit(self) -> None:
        """Make every write of this unit visible at once, or raise ``ConcurrencyConflictError``."""
        ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
