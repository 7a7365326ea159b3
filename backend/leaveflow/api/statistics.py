from __future__ import annotations

from fastapi import APIRouter

from leaveflow.api.deps import AuthDep, EngineDep
from leaveflow.schemas.statistics import LeaveStatisticsResponse
from leaveflow.services import queries

statistics_router = APIRouter(tags=["statistics"])


@statistics_router.get("/leave-statistics", response_model=LeaveStatisticsResponse)
async def get_leave_statistics(engine: EngineDep, auth: AuthDep) -> LeaveStatisticsResponse:
    """Pending approvals, headcount, people on leave today and approvals per leave type."""
    return await queries.leave_statistics(engine.unit_of_work_factory, auth.user_id)
