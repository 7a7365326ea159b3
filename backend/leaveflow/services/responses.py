from __future__ import annotations

from typing import TYPE_CHECKING

from leaveflow.models.enums import HalfDayPeriod, LeaveRequestStatus
from leaveflow.schemas.balance import BalanceResponse
from leaveflow.schemas.reference import HolidayResponse, LeaveTypeResponse
from leaveflow.schemas.request import AuditEntryResponse, LeaveRequestResponse

if TYPE_CHECKING:
    from leaveflow.models import Holiday, LeaveAudit, LeaveBalance, LeaveRequest, LeaveType


def build_request_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=request.id,
        user_id=request.user_id,
        leave_type_id=request.leave_type_id,
        start_date=request.start_date,
        end_date=request.end_date,
        half_day=request.half_day,
        half_day_period=HalfDayPeriod(request.half_day_period) if request.half_day_period else None,
        reason=request.reason,
        status=LeaveRequestStatus(request.status),
        units=request.units,
        year=request.year,
        manager_id=request.manager_id,
        manager_comment=request.manager_comment,
        manager_action_at=request.manager_action_at,
        hr_id=request.hr_id,
        hr_comment=request.hr_comment,
        hr_action_at=request.hr_action_at,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def build_audit_response(entry: LeaveAudit) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=entry.id,
        leave_request_id=entry.leave_request_id,
        sequence=entry.sequence,
        action=entry.action,
        performed_by_id=entry.performed_by_id,
        timestamp=entry.timestamp,
        previous_status=LeaveRequestStatus(entry.previous_status) if entry.previous_status else None,
        new_status=LeaveRequestStatus(entry.new_status),
        details=entry.details,
    )


def build_balance_response(balance: LeaveBalance) -> BalanceResponse:
    return BalanceResponse(
        user_id=balance.user_id,
        leave_type_id=balance.leave_type_id,
        year=balance.year,
        allocated=balance.allocated,
        used=balance.used,
        pending=balance.pending,
        available=balance.available,
        updated_at=balance.updated_at,
    )


def build_leave_type_response(leave_type: LeaveType) -> LeaveTypeResponse:
    return LeaveTypeResponse(
        id=leave_type.id,
        name=leave_type.name,
        description=leave_type.description,
        color=leave_type.color,
        active=leave_type.active,
        default_allocation=leave_type.default_allocation,
    )


def build_holiday_response(holiday: Holiday) -> HolidayResponse:
    return HolidayResponse(
        id=holiday.id,
        name=holiday.name,
        date=holiday.date,
        description=holiday.description,
    )
