# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from leaveflow.api.deps import AuthDep, EngineDep
from leaveflow.models.enums import RequestSortField, SortDirection
from leaveflow.schemas.request import (
    AuditTrailResponse,
    DecisionPayload,
    LeaveBatchResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    SubmitLeaveBatchPayload,
    SubmitLeaveRequestPayload,
    UpdateLeaveRequestPayload,
)
from leaveflow.services import queries

leave_requests_router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


@leave_requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_leave_request(
    payload: SubmitLeaveRequestPayload,
    engine: EngineDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Submit a leave request covering a date range."""
    return await engine.submit_range(
        actor_id=auth.user_id,
        user_id=payload.user_id or auth.user_id,
        leave_type_id=payload.leave_type_id,
        start=payload.start_date,
        end=payload.end_date,
        half_day=payload.half_day,
        half_day_period=payload.half_day_period,
        reason=payload.reason,
    )


@leave_requests_router.post("/batch", response_model=LeaveBatchResponse, status_code=status.HTTP_201_CREATED)
async def submit_leave_batch(
    payload: SubmitLeaveBatchPayload,
    engine: EngineDep,
    auth: AuthDep,
) -> LeaveBatchResponse:
    """Submit one single-day request per entry, all or nothing."""
    submission = await engine.submit_batch(
        actor_id=auth.user_id,
        user_id=payload.user_id or auth.user_id,
        dates=[entry.leave_on for entry in payload.leaves],
        half_day_flags=[entry.is_half_day for entry in payload.leaves],
        leave_type_id=payload.leave_type_id,
        leave_type_name=payload.leave_type_name,
        reason=payload.reason,
    )
    return LeaveBatchResponse(
        items=submission.items,
        total_units=sum(item.units for item in submission.items),
        balances=submission.balances,
        remaining_balance={b.year: b.available for b in submission.balances},
    )


@leave_requests_router.get("", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    engine: EngineDep,
    auth: AuthDep,
    status_filter: str | None = Query(default=None, alias="status"),
    user_id: uuid.UUID | None = Query(default=None),
    leave_type_id: uuid.UUID | None = Query(default=None),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
    sort_by: RequestSortField = Query(default=RequestSortField.CREATED_AT),
    sort_direction: SortDirection = Query(default=SortDirection.DESC),
) -> LeaveRequestListResponse:
    """List leave requests with optional filters and ordering."""
    return await queries.list_requests(
        engine.unit_of_work_factory,
        auth.user_id,
        status_filter,
        user_id,
        leave_type_id,
        start,
        end,
        offset,
        limit,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )


@leave_requests_router.get("/pending-approvals", response_model=LeaveRequestListResponse)
async def list_pending_approvals(
    engine: EngineDep,
    auth: AuthDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """Requests waiting on the caller's decision (managers and HR only)."""
    return await queries.pending_approvals(engine.unit_of_work_factory, auth.user_id, offset, limit)


@leave_requests_router.get("/{request_id}", response_model=LeaveRequestResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    engine: EngineDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Get a single leave request."""
    return await queries.get_request(engine.unit_of_work_factory, auth.user_id, request_id)


@leave_requests_router.patch("/{request_id}", response_model=LeaveRequestResponse)
async def update_leave_request(
    request_id: uuid.UUID,
    payload: UpdateLeaveRequestPayload,
    engine: EngineDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Edit one of your own pending requests; dates or type changes re-price it."""
    return await engine.update_request(
        request_id,
        auth.user_id,
        leave_type_id=payload.leave_type_id,
        start=payload.start_date,
        end=payload.end_date,
        half_day=payload.half_day,
        half_day_period=payload.half_day_period,
        reason=payload.reason,
    )


@leave_requests_router.get("/{request_id}/audit", response_model=AuditTrailResponse)
async def get_audit_trail(
    request_id: uuid.UUID,
    engine: EngineDep,
    auth: AuthDep,
) -> AuditTrailResponse:
    """Audit trail of a leave request, oldest first."""
    return await queries.audit_trail(engine.unit_of_work_factory, auth.user_id, request_id)


@leave_requests_router.post("/{request_id}/manager-decision", response_model=LeaveRequestResponse)
async def manager_decision(
    request_id: uuid.UUID,
    payload: DecisionPayload,
    engine: EngineDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Approve or reject a pending request (managers only)."""
    return await engine.manager_decide(request_id, auth.user_id, payload.approve, payload.comment)


@leave_requests_router.post("/{request_id}/hr-decision", response_model=LeaveRequestResponse)
async def hr_decision(
    request_id: uuid.UUID,
    payload: DecisionPayload,
    engine: EngineDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Approve or reject a manager-approved request (HR only)."""
    return await engine.hr_decide(request_id, auth.user_id, payload.approve, payload.comment)


@leave_requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave_request(
    request_id: uuid.UUID,
    engine: EngineDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Cancel one of your own requests before HR has decided."""
    return await engine.cancel(request_id, auth.user_id)
