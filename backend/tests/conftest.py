from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leaveflow.config import Settings
from leaveflow.db import build_engine, get_session, init_models
from leaveflow.main import app
from leaveflow.models import Holiday, LeaveBalance, LeaveType, SQLModel, User
from leaveflow.models.enums import UserRole
from leaveflow.repositories.memory import InMemoryStore
from leaveflow.services.lifecycle import LeaveLifecycleEngine, get_lifecycle_engine
from leaveflow.services.notifications import RecordingNotificationDispatcher

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

HR_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
MANAGER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000b1")
OTHER_MANAGER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000b2")
EMPLOYEE_ID = uuid.UUID("00000000-0000-0000-0000-0000000000c1")
OTHER_EMPLOYEE_ID = uuid.UUID("00000000-0000-0000-0000-0000000000c2")

YEAR = 2025
# Monday 3 March 2025 .. Friday 7 March 2025
MONDAY = date(2025, 3, 3)
FRIDAY = date(2025, 3, 7)
SATURDAY = date(2025, 3, 8)
SUNDAY = date(2025, 3, 9)


def make_users() -> list[User]:
    return [
        User(id=HR_ID, email="hr@example.com", first_name="Hana", last_name="Reyes", role=UserRole.HR),
        User(id=MANAGER_ID, email="manager@example.com", first_name="Mark", last_name="Okafor", role=UserRole.MANAGER),
        User(
            id=OTHER_MANAGER_ID,
            email="manager2@example.com",
            first_name="Mina",
            last_name="Park",
            role=UserRole.MANAGER,
        ),
        User(id=EMPLOYEE_ID, email="alice@example.com", first_name="Alice", last_name="Johnson"),
        User(id=OTHER_EMPLOYEE_ID, email="bob@example.com", first_name="Bob", last_name="Smith"),
    ]


def make_leave_types() -> dict[str, LeaveType]:
    return {
        "annual": LeaveType(name="Annual", description="Paid annual leave", default_allocation=20.0),
        "sick": LeaveType(name="Sick", description="Sick leave", default_allocation=15.0),
        "retired": LeaveType(name="Sabbatical", active=False, default_allocation=30.0),
    }


# ---------------------------------------------------------------------------
# In-memory engine
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite://", environment="development")


@pytest.fixture
def store() -> InMemoryStore:
    """In-memory store seeded with users and leave types, no ledger rows."""
    memory = InMemoryStore()
    for user in make_users():
        memory.seed_user(user)
    for leave_type in make_leave_types().values():
        memory.seed_leave_type(leave_type)
    return memory


def leave_type_named(store: InMemoryStore, name: str) -> LeaveType:
    return next(lt for lt in store.leave_types.values() if lt.name == name)


@pytest.fixture
def annual(store: InMemoryStore) -> LeaveType:
    return leave_type_named(store, "Annual")


@pytest.fixture
def dispatcher() -> RecordingNotificationDispatcher:
    return RecordingNotificationDispatcher()


@pytest.fixture
def leave_engine(
    store: InMemoryStore,
    dispatcher: RecordingNotificationDispatcher,
    settings: Settings,
) -> LeaveLifecycleEngine:
    return LeaveLifecycleEngine(store.unit_of_work, dispatcher=dispatcher, settings=settings)


def seed_balance(
    store: InMemoryStore,
    leave_type: LeaveType,
    allocated: float,
    user_id: uuid.UUID = EMPLOYEE_ID,
    year: int = YEAR,
    used: float = 0.0,
    pending: float = 0.0,
) -> LeaveBalance:
    return store.seed_balance(
        LeaveBalance(
            user_id=user_id,
            leave_type_id=leave_type.id,
            year=year,
            allocated=allocated,
            used=used,
            pending=pending,
        )
    )


def stored_balance(
    store: InMemoryStore,
    leave_type: LeaveType,
    user_id: uuid.UUID = EMPLOYEE_ID,
    year: int = YEAR,
) -> tuple[float, float, float]:
    """(allocated, used, pending) of a committed ledger row."""
    row = store.balances[(user_id, leave_type.id, year)]
    return (row.allocated, row.used, row.pending)


# ---------------------------------------------------------------------------
# SQL (SQLite via aiosqlite)
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """A file-backed SQLite database with all tables created."""
    _engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'leaveflow.db'}")
    await init_models(_engine)
    yield _engine
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await _engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def sql_reference(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, LeaveType]:
    """Insert users, leave types and a holiday; return the leave types by key."""
    leave_types = make_leave_types()
    async with session_factory() as session:
        session.add_all(make_users())
        session.add_all(leave_types.values())
        session.add(Holiday(name="Founders Day", date=date(2025, 3, 5)))
        await session.commit()
    return leave_types


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
async def async_client(
    leave_engine: LeaveLifecycleEngine,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the in-memory engine and a SQLite session."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_lifecycle_engine] = lambda: leave_engine
    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def headers(user_id: uuid.UUID) -> dict[str, str]:
    return {"X-User-Id": str(user_id)}
