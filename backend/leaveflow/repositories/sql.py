"""SQLModel/SQLAlchemy repositories.

Ledger and request rows are read with ``SELECT ... FOR UPDATE`` so that two
transactions mutating the same row run one after the other. Lost races that
the lock cannot prevent (two first-time inserts of the same ledger key,
serialization failures, deadlocks) surface as ``ConcurrencyConflictError``
and are retried by the engine.
"""

# ruff: noqa: TC003
from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import TYPE_CHECKING, Self

from sqlalchemy import extract, func, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlmodel import col

from leaveflow.exceptions import ConcurrencyConflictError
from leaveflow.models import Holiday, LeaveAudit, LeaveBalance, LeaveRequest, LeaveType, User
from leaveflow.models.enums import RequestSortField, SortDirection

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from leaveflow.repositories.base import RequestFilters

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def _is_retryable(exc: DBAPIError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return sqlstate in _RETRYABLE_SQLSTATES


@asynccontextmanager
async def _conflicts_as_retryable(message: str) -> AsyncIterator[None]:
    try:
        yield
    except IntegrityError as exc:
        raise ConcurrencyConflictError(message) from exc
    except DBAPIError as exc:
        if _is_retryable(exc):
            raise ConcurrencyConflictError(message) from exc
        raise


class SqlReferenceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_user(self, user_id: uuid.UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def list_users_by_role(self, role: str) -> list[User]:
        result = await self._session.execute(
            select(User).where(col(User.role) == role).order_by(col(User.email))
        )
        return list(result.scalars().all())

    async def get_leave_type(self, leave_type_id: uuid.UUID) -> LeaveType | None:
        return await self._session.get(LeaveType, leave_type_id)

    async def find_active_leave_type(
        self,
        *,
        leave_type_id: uuid.UUID | None = None,
        name: str | None = None,
    ) -> LeaveType | None:
        query = select(LeaveType).where(col(LeaveType.active).is_(True))
        if leave_type_id is not None:
            query = query.where(col(LeaveType.id) == leave_type_id)
        elif name is not None:
            query = query.where(col(LeaveType.name).ilike(f"%{name}%")).order_by(col(LeaveType.name))
        else:
            return None
        result = await self._session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def list_leave_types(self) -> list[LeaveType]:
        result = await self._session.execute(select(LeaveType).order_by(col(LeaveType.name)))
        return list(result.scalars().all())

    async def holiday_dates(self, start: date, end: date) -> set[date]:
        result = await self._session.execute(
            select(col(Holiday.date)).where(
                col(Holiday.date) >= start,
                col(Holiday.date) <= end,
            )
        )
        return {row[0] for row in result.all()}

    async def list_holidays(self, year: int | None = None) -> list[Holiday]:
        query = select(Holiday)
        if year is not None:
            query = query.where(extract("year", col(Holiday.date)) == year)
        result = await self._session.execute(query.order_by(col(Holiday.date)))
        return list(result.scalars().all())


class SqlLedgerRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _select(self, user_id: uuid.UUID, leave_type_id: uuid.UUID, year: int):  # noqa: ANN202
        return select(LeaveBalance).where(
            col(LeaveBalance.user_id) == user_id,
            col(LeaveBalance.leave_type_id) == leave_type_id,
            col(LeaveBalance.year) == year,
        )

    async def get(self, user_id: uuid.UUID, leave_type_id: uuid.UUID, year: int) -> LeaveBalance | None:
        result = await self._session.execute(self._select(user_id, leave_type_id, year))
        return result.scalar_one_or_none()

    async def get_for_update(self, user_id: uuid.UUID, leave_type_id: uuid.UUID, year: int) -> LeaveBalance | None:
        async with _conflicts_as_retryable("Leave balance is locked by a concurrent transaction"):
            result = await self._session.execute(
                self._select(user_id, leave_type_id, year).with_for_update().execution_options(populate_existing=True)
            )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: uuid.UUID, year: int) -> list[LeaveBalance]:
        result = await self._session.execute(
            select(LeaveBalance)
            .where(col(LeaveBalance.user_id) == user_id, col(LeaveBalance.year) == year)
            .order_by(col(LeaveBalance.leave_type_id))
        )
        return list(result.scalars().all())

    async def add(self, balance: LeaveBalance) -> None:
        self._session.add(balance)
        async with _conflicts_as_retryable("Leave balance was created concurrently"):
            await self._session.flush()

    async def save(self, balance: LeaveBalance) -> None:
        self._session.add(balance)
        async with _conflicts_as_retryable("Leave balance was modified concurrently"):
            await self._session.flush()


class SqlLeaveRequestRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, request_id: uuid.UUID) -> LeaveRequest | None:
        return await self._session.get(LeaveRequest, request_id)

    async def get_for_update(self, request_id: uuid.UUID) -> LeaveRequest | None:
        async with _conflicts_as_retryable("Leave request is locked by a concurrent transaction"):
            result = await self._session.execute(
                select(LeaveRequest)
                .where(col(LeaveRequest.id) == request_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        return result.scalar_one_or_none()

    async def add(self, request: LeaveRequest) -> None:
        self._session.add(request)
        await self._session.flush()

    async def save(self, request: LeaveRequest) -> None:
        self._session.add(request)
        async with _conflicts_as_retryable("Leave request was modified concurrently"):
            await self._session.flush()

    async def search(
        self,
        filters: RequestFilters,
        offset: int = 0,
        limit: int = 50,
        sort_by: RequestSortField = RequestSortField.CREATED_AT,
        direction: SortDirection = SortDirection.DESC,
    ) -> tuple[list[LeaveRequest], int]:
        conditions = []
        if filters.user_id is not None:
            conditions.append(col(LeaveRequest.user_id) == filters.user_id)
        if filters.leave_type_id is not None:
            conditions.append(col(LeaveRequest.leave_type_id) == filters.leave_type_id)
        if filters.statuses is not None:
            conditions.append(col(LeaveRequest.status).in_(sorted(filters.statuses)))
        if filters.end is not None:
            conditions.append(col(LeaveRequest.start_date) <= filters.end)
        if filters.start is not None:
            conditions.append(col(LeaveRequest.end_date) >= filters.start)

        count_result = await self._session.execute(
            select(func.count()).select_from(LeaveRequest).where(*conditions)
        )
        total = count_result.scalar_one()

        query = select(LeaveRequest).where(*conditions)
        if sort_by == RequestSortField.LEAVE_TYPE:
            query = query.join(LeaveType, col(LeaveType.id) == col(LeaveRequest.leave_type_id))
            sort_column = col(LeaveType.name)
        else:
            sort_column = col(getattr(LeaveRequest, sort_by.value))
        ordering = sort_column.asc() if direction == SortDirection.ASC else sort_column.desc()

        result = await self._session.execute(
            query.order_by(ordering, col(LeaveRequest.created_at).desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total


class SqlAuditRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, entry: LeaveAudit) -> None:
        self._session.add(entry)
        async with _conflicts_as_retryable("Audit sequence was taken concurrently"):
            await self._session.flush()

    async def count_for_request(self, leave_request_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(LeaveAudit).where(col(LeaveAudit.leave_request_id) == leave_request_id)
        )
        return result.scalar_one()

    async def list_for_request(self, leave_request_id: uuid.UUID) -> list[LeaveAudit]:
        result = await self._session.execute(
            select(LeaveAudit)
            .where(col(LeaveAudit.leave_request_id) == leave_request_id)
            .order_by(col(LeaveAudit.timestamp), col(LeaveAudit.sequence))
        )
        return list(result.scalars().all())


class SqlUnitOfWork:
    """One database transaction spanning all four repositories."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._committed = False

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            msg = "SqlUnitOfWork used outside of 'async with'"
            raise RuntimeError(msg)
        return self._session

    async def __aenter__(self) -> Self:
        self._session = self._session_factory()
        self._committed = False
        self.reference = SqlReferenceRepository(self._session)
        self.ledger = SqlLedgerRepository(self._session)
        self.requests = SqlLeaveRequestRepository(self._session)
        self.audit = SqlAuditRepository(self._session)
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        # close() alone ends the transaction, discarding anything not committed,
        # and detaches rows without expiring them so reads stay usable.
        session = self.session
        try:
            if exc_type is not None and not self._committed:
                await session.rollback()
        finally:
            await session.close()
            self._session = None

    async def commit(self) -> None:
        async with _conflicts_as_retryable("Concurrent modification detected on commit"):
            await self.session.commit()
        self._committed = True


def sql_unit_of_work_factory(session_factory: async_sessionmaker[AsyncSession]) -> Callable[[], SqlUnitOfWork]:
    """Bind a session factory into a ``UnitOfWorkFactory`` for the engine."""

    def factory() -> SqlUnitOfWork:
        return SqlUnitOfWork(session_factory)

    return factory
