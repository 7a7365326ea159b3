# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel


class LeaveTypeResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    color: str | None
    active: bool
    default_allocation: float


class LeaveTypeListResponse(BaseModel):
    items: list[LeaveTypeResponse]
    total: int


class HolidayResponse(BaseModel):
    """Response schema for a calendar holiday."""

    id: uuid.UUID
    name: str
    date: date
    description: str | None


class HolidayListResponse(BaseModel):
    items: list[HolidayResponse]
    total: int
