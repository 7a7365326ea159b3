# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class BalanceResponse(BaseModel):
    """Ledger row for one user, leave type and year."""

    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    year: int
    allocated: float
    used: float
    pending: float
    available: float
    updated_at: datetime | None


class BalanceListResponse(BaseModel):
    """All ledger rows of a user for one year."""

    items: list[BalanceResponse]
    total: int


class SetAllocationPayload(BaseModel):
    """Request body for an HR allocation change."""

    year: int = Field(ge=1970, le=9999)
    allocated: float = Field(ge=0, multiple_of=0.5)
