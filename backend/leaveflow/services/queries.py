# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from leaveflow.exceptions import NotFoundError, UnauthorizedError, ValidationError
from leaveflow.models.base import now_utc
from leaveflow.models.enums import LeaveRequestStatus, RequestSortField, SortDirection, UserRole
from leaveflow.repositories.base import RequestFilters
from leaveflow.schemas.balance import BalanceListResponse
from leaveflow.schemas.reference import HolidayListResponse, LeaveTypeListResponse
from leaveflow.schemas.request import AuditTrailResponse, LeaveRequestListResponse
from leaveflow.schemas.statistics import LeaveStatisticsResponse, LeaveTypeReport
from leaveflow.services.policy import can_view
from leaveflow.services.responses import (
    build_audit_response,
    build_balance_response,
    build_holiday_response,
    build_leave_type_response,
    build_request_response,
)

if TYPE_CHECKING:
    from leaveflow.models.leave_type import LeaveType
    from leaveflow.models.user import User
    from leaveflow.repositories.base import UnitOfWork, UnitOfWorkFactory
    from leaveflow.schemas.request import LeaveRequestResponse

# Which status each reviewer role has to act on next.
_AWAITING_REVIEW: dict[str, LeaveRequestStatus] = {
    UserRole.MANAGER: LeaveRequestStatus.PENDING,
    UserRole.HR: LeaveRequestStatus.MANAGER_APPROVED,
}


async def _viewer(uow: UnitOfWork, actor_id: uuid.UUID) -> User:
    actor = await uow.reference.find_user(actor_id)
    if actor is None:
        raise UnauthorizedError("Unknown acting user")
    return actor


def _parse_status(value: str) -> LeaveRequestStatus:
    try:
        return LeaveRequestStatus(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown leave request status: {value!r}") from exc


async def get_request(
    uow_factory: UnitOfWorkFactory,
    actor_id: uuid.UUID,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Get a single leave request. Employees only see their own."""
    async with uow_factory() as uow:
        actor = await _viewer(uow, actor_id)
        request = await uow.requests.get(request_id)
        if request is None:
            raise NotFoundError()
        if not can_view(actor.role, actor.id, request.user_id):
            raise UnauthorizedError("You can only view your own leave requests")
        return build_request_response(request)


async def list_requests(
    uow_factory: UnitOfWorkFactory,
    actor_id: uuid.UUID,
    status_filter: str | None = None,
    user_id: uuid.UUID | None = None,
    leave_type_id: uuid.UUID | None = None,
    start: date | None = None,
    end: date | None = None,
    offset: int = 0,
    limit: int = 50,
    sort_by: RequestSortField = RequestSortField.CREATED_AT,
    sort_direction: SortDirection = SortDirection.DESC,
) -> LeaveRequestListResponse:
    """List leave requests, newest first unless ``sort_by``/``sort_direction`` say otherwise.

    Employees are always scoped to their own requests. ``start``/``end``
    select requests that overlap the range.
    """
    if start is not None and end is not None and end < start:
        raise ValidationError("end must be on or after start")

    async with uow_factory() as uow:
        actor = await _viewer(uow, actor_id)
        if actor.role == UserRole.EMPLOYEE:
            if user_id is not None and user_id != actor.id:
                raise UnauthorizedError("You can only view your own leave requests")
            user_id = actor.id

        statuses = frozenset({_parse_status(status_filter).value}) if status_filter else None
        filters = RequestFilters(
            user_id=user_id,
            leave_type_id=leave_type_id,
            statuses=statuses,
            start=start,
            end=end,
        )
        items, total = await uow.requests.search(
            filters, offset=offset, limit=limit, sort_by=sort_by, direction=sort_direction
        )
        return LeaveRequestListResponse(items=[build_request_response(r) for r in items], total=total)


async def pending_approvals(
    uow_factory: UnitOfWorkFactory,
    actor_id: uuid.UUID,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """Requests waiting on the caller: ``pending`` for managers, ``manager_approved`` for HR."""
    async with uow_factory() as uow:
        actor = await _viewer(uow, actor_id)
        awaiting = _AWAITING_REVIEW.get(actor.role)
        if awaiting is None:
            raise UnauthorizedError("Only managers and HR have pending approvals")
        filters = RequestFilters(statuses=frozenset({awaiting.value}))
        items, total = await uow.requests.search(filters, offset=offset, limit=limit)
        return LeaveRequestListResponse(items=[build_request_response(r) for r in items], total=total)


async def audit_trail(
    uow_factory: UnitOfWorkFactory,
    actor_id: uuid.UUID,
    request_id: uuid.UUID,
) -> AuditTrailResponse:
    async with uow_factory() as uow:
        actor = await _viewer(uow, actor_id)
        request = await uow.requests.get(request_id)
        if request is None:
            raise NotFoundError()
        if not can_view(actor.role, actor.id, request.user_id):
            raise UnauthorizedError("You can only view your own leave requests")
        entries = await uow.audit.list_for_request(request_id)
        return AuditTrailResponse(items=[build_audit_response(e) for e in entries], total=len(entries))


async def authorize_balance_view(
    uow_factory: UnitOfWorkFactory,
    actor_id: uuid.UUID,
    user_id: uuid.UUID,
) -> None:
    """Employees may only look at their own balances."""
    async with uow_factory() as uow:
        actor = await _viewer(uow, actor_id)
        if not can_view(actor.role, actor.id, user_id):
            raise UnauthorizedError("You can only view your own balances")


async def list_balances(
    uow_factory: UnitOfWorkFactory,
    actor_id: uuid.UUID,
    user_id: uuid.UUID,
    year: int,
) -> BalanceListResponse:
    """Ledger rows that exist for a user and year."""
    async with uow_factory() as uow:
        actor = await _viewer(uow, actor_id)
        if not can_view(actor.role, actor.id, user_id):
            raise UnauthorizedError("You can only view your own balances")
        balances = await uow.ledger.list_for_user(user_id, year)
        return BalanceListResponse(items=[build_balance_response(b) for b in balances], total=len(balances))


async def list_leave_types(uow_factory: UnitOfWorkFactory) -> LeaveTypeListResponse:
    async with uow_factory() as uow:
        leave_types = await uow.reference.list_leave_types()
        return LeaveTypeListResponse(
            items=[build_leave_type_response(lt) for lt in leave_types],
            total=len(leave_types),
        )


async def list_holidays(uow_factory: UnitOfWorkFactory, year: int | None = None) -> HolidayListResponse:
    async with uow_factory() as uow:
        holidays = await uow.reference.list_holidays(year)
        return HolidayListResponse(items=[build_holiday_response(h) for h in holidays], total=len(holidays))


async def leave_statistics(
    uow_factory: UnitOfWorkFactory,
    actor_id: uuid.UUID,
    today: date | None = None,
) -> LeaveStatisticsResponse:
    """Dashboard counters. Managers and HR only.

    ``on_leave_today`` counts finally approved requests covering ``today``.
    Each active leave type reports its finally approved requests and their
    share of all finally approved requests across active types.
    """
    today = today or now_utc().date()
    approved = frozenset({LeaveRequestStatus.HR_APPROVED.value})

    async with uow_factory() as uow:
        actor = await _viewer(uow, actor_id)
        if actor.role not in (UserRole.MANAGER, UserRole.HR):
            raise UnauthorizedError("Only managers and HR can view leave statistics")

        _, pending = await uow.requests.search(
            RequestFilters(statuses=frozenset({LeaveRequestStatus.PENDING.value})), limit=1
        )
        employees = await uow.reference.list_users_by_role(UserRole.EMPLOYEE)
        _, on_leave = await uow.requests.search(RequestFilters(statuses=approved, start=today, end=today), limit=1)

        counts: list[tuple[LeaveType, int]] = []
        for leave_type in await uow.reference.list_leave_types():
            if not leave_type.active:
                continue
            _, count = await uow.requests.search(
                RequestFilters(leave_type_id=leave_type.id, statuses=approved), limit=1
            )
            counts.append((leave_type, count))

    total_approved = sum(count for _, count in counts)
    reports = [
        LeaveTypeReport(
            leave_type=build_leave_type_response(leave_type),
            count=count,
            percentage=count / total_approved * 100 if total_approved else 0.0,
        )
        for leave_type, count in counts
    ]
    return LeaveStatisticsResponse(
        pending_approvals=pending,
        total_employees=len(employees),
        on_leave_today=on_leave,
        leave_reports=reports,
    )
