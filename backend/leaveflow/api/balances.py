# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from leaveflow.api.deps import AuthDep, EngineDep
from leaveflow.models.base import now_utc
from leaveflow.schemas.balance import BalanceListResponse, BalanceResponse, SetAllocationPayload
from leaveflow.services import queries

balances_router = APIRouter(prefix="/users/{user_id}/balances", tags=["balances"])


def _current_year() -> int:
    return now_utc().year


@balances_router.get("", response_model=BalanceListResponse)
async def list_balances(
    user_id: uuid.UUID,
    engine: EngineDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=1900, le=9999),
) -> BalanceListResponse:
    """List a user's ledger rows for a year (defaults to the current year)."""
    return await queries.list_balances(engine.unit_of_work_factory, auth.user_id, user_id, year or _current_year())


@balances_router.get("/{leave_type_id}", response_model=BalanceResponse)
async def get_balance(
    user_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    engine: EngineDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=1900, le=9999),
) -> BalanceResponse:
    """Allocated, used, pending and available units for one leave type."""
    await queries.authorize_balance_view(engine.unit_of_work_factory, auth.user_id, user_id)
    return await engine.get_balance(user_id, leave_type_id, year or _current_year())


@balances_router.put("/{leave_type_id}", response_model=BalanceResponse)
async def set_allocation(
    user_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    payload: SetAllocationPayload,
    engine: EngineDep,
    auth: AuthDep,
) -> BalanceResponse:
    """Replace a user's yearly allocation (HR only)."""
    return await engine.set_allocation(auth.user_id, user_id, leave_type_id, payload.year, payload.allocated)
