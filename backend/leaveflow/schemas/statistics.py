from __future__ import annotations

from pydantic import BaseModel

from leaveflow.schemas.reference import LeaveTypeResponse


class LeaveTypeReport(BaseModel):
    """Finally approved requests of one active leave type."""

    leave_type: LeaveTypeResponse
    count: int
    percentage: float


class LeaveStatisticsResponse(BaseModel):
    """Dashboard counters for managers and HR."""

    pending_approvals: int
    total_employees: int
    on_leave_today: int
    leave_reports: list[LeaveTypeReport]
