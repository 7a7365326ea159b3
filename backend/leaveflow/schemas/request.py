# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from leaveflow.models.enums import HalfDayPeriod, LeaveRequestStatus
from leaveflow.schemas.balance import BalanceResponse

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitLeaveRequestPayload(BaseModel):
    """Request body for a single leave span."""

    user_id: uuid.UUID | None = Field(default=None, description="Defaults to the caller")
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    half_day: bool = False
    half_day_period: HalfDayPeriod | None = None
    reason: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must be on or after start_date"
            raise ValueError(msg)
        if self.half_day and self.start_date != self.end_date:
            msg = "a half-day request must start and end on the same day"
            raise ValueError(msg)
        return self


class BatchLeaveEntry(BaseModel):
    """One day in a batch submission. ``leave_on`` is parsed by the engine."""

    leave_on: str
    is_half_day: bool = False


class SubmitLeaveBatchPayload(BaseModel):
    """Request body for creating several single-day requests at once."""

    user_id: uuid.UUID | None = Field(default=None, description="Defaults to the caller")
    leave_type_id: uuid.UUID | None = None
    leave_type_name: str | None = None
    leaves: list[BatchLeaveEntry] = Field(min_length=1)
    reason: str | None = Field(default=None, max_length=2000)


class UpdateLeaveRequestPayload(BaseModel):
    """Request body for editing a pending request. Omitted fields keep their value."""

    leave_type_id: uuid.UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    half_day: bool | None = None
    half_day_period: HalfDayPeriod | None = None
    reason: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.start_date is not None and self.end_date is not None and self.end_date < self.start_date:
            msg = "end_date must be on or after start_date"
            raise ValueError(msg)
        return self


class DecisionPayload(BaseModel):
    """Request body for manager/HR decisions."""

    approve: bool
    comment: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    half_day: bool
    half_day_period: HalfDayPeriod | None
    reason: str | None
    status: LeaveRequestStatus
    units: float
    year: int
    manager_id: uuid.UUID | None
    manager_comment: str | None
    manager_action_at: datetime | None
    hr_id: uuid.UUID | None
    hr_comment: str | None
    hr_action_at: datetime | None
    created_at: datetime
    updated_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int


class LeaveBatchResponse(BaseModel):
    """Result of a batch submission.

    ``balances`` are the ledger rows the batch reserved on, as committed;
    ``remaining_balance`` maps each of their years to what is still available.
    """

    items: list[LeaveRequestResponse]
    total_units: float
    balances: list[BalanceResponse]
    remaining_balance: dict[int, float]


class AuditEntryResponse(BaseModel):
    """One row of a request's audit trail."""

    id: uuid.UUID
    leave_request_id: uuid.UUID
    sequence: int
    action: str
    performed_by_id: uuid.UUID
    timestamp: datetime
    previous_status: LeaveRequestStatus | None
    new_status: LeaveRequestStatus
    details: str | None


class AuditTrailResponse(BaseModel):
    items: list[AuditEntryResponse]
    total: int
