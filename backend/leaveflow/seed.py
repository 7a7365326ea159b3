"""Seed script for development data.

Run with:  uv run python -m leaveflow.seed
Inside Docker:  docker compose exec api uv run python -m leaveflow.seed

Creates tables if needed, then inserts well-known users, leave types and
holidays. Rows that already exist are left alone, so the script can be run
repeatedly.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leaveflow.config import get_settings
from leaveflow.db import dispose_engine, get_session_factory, init_models
from leaveflow.log import configure_logging
from leaveflow.models import Holiday, LeaveType, User
from leaveflow.models.enums import UserRole

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Well-known user UUIDs, usable directly as X-User-Id
HR_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
MANAGER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
ALICE_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")
BOB_ID = uuid.UUID("00000000-0000-0000-0000-000000000004")

USERS = [
    {"id": HR_ID, "email": "hana.hr@example.com", "first_name": "Hana", "last_name": "Reyes", "role": UserRole.HR},
    {
        "id": MANAGER_ID,
        "email": "mark.manager@example.com",
        "first_name": "Mark",
        "last_name": "Okafor",
        "role": UserRole.MANAGER,
    },
    {
        "id": ALICE_ID,
        "email": "alice.johnson@example.com",
        "first_name": "Alice",
        "last_name": "Johnson",
        "role": UserRole.EMPLOYEE,
    },
    {
        "id": BOB_ID,
        "email": "bob.smith@example.com",
        "first_name": "Bob",
        "last_name": "Smith",
        "role": UserRole.EMPLOYEE,
    },
]

LEAVE_TYPES = [
    {"name": "Annual", "description": "Paid annual leave", "color": "#2563eb", "default_allocation": 20.0},
    {"name": "Sick", "description": "Sick leave", "color": "#dc2626", "default_allocation": 15.0},
    {"name": "Personal", "description": "Personal days", "color": "#16a34a", "default_allocation": 3.0},
]


def _holidays(year: int) -> list[dict[str, object]]:
    return [
        {"name": "New Year's Day", "date": date(year, 1, 1)},
        {"name": "Independence Day", "date": date(year, 7, 4)},
        {"name": "Christmas Day", "date": date(year, 12, 25)},
    ]


async def _seed_users(session: AsyncSession) -> int:
    created = 0
    for data in USERS:
        if await session.get(User, data["id"]) is None:
            session.add(User(**data))
            created += 1
    return created


async def _seed_leave_types(session: AsyncSession) -> int:
    result = await session.execute(select(col(LeaveType.name)))
    existing = {row[0] for row in result.all()}
    created = 0
    for data in LEAVE_TYPES:
        if data["name"] not in existing:
            session.add(LeaveType(**data))
            created += 1
    return created


async def _seed_holidays(session: AsyncSession, years: list[int]) -> int:
    result = await session.execute(select(col(Holiday.date)))
    existing = {row[0] for row in result.all()}
    created = 0
    for year in years:
        for data in _holidays(year):
            if data["date"] not in existing:
                session.add(Holiday(**data))
                created += 1
    return created


async def seed() -> None:
    await init_models()
    this_year = date.today().year
    async with get_session_factory()() as session:
        users = await _seed_users(session)
        leave_types = await _seed_leave_types(session)
        holidays = await _seed_holidays(session, [this_year, this_year + 1])
        await session.commit()
    logger.info("Seeded %d users, %d leave types, %d holidays", users, leave_types, holidays)
    await dispose_engine()


def main() -> None:
    configure_logging(get_settings())
    asyncio.run(seed())


if __name__ == "__main__":
    main()
