# ruff: noqa: B008
from __future__ import annotations

from fastapi import APIRouter, Query

from leaveflow.api.deps import AuthDep, EngineDep
from leaveflow.schemas.reference import HolidayListResponse, LeaveTypeListResponse
from leaveflow.services import queries

reference_router = APIRouter(tags=["reference"])


@reference_router.get("/leave-types", response_model=LeaveTypeListResponse)
async def list_leave_types(engine: EngineDep, auth: AuthDep) -> LeaveTypeListResponse:
    """List all leave types, active or not."""
    return await queries.list_leave_types(engine.unit_of_work_factory)


@reference_router.get("/holidays", response_model=HolidayListResponse)
async def list_holidays(
    engine: EngineDep,
    auth: AuthDep,
    year: int | None = Query(default=None),
) -> HolidayListResponse:
    """List holidays with an optional year filter."""
    return await queries.list_holidays(engine.unit_of_work_factory, year)
