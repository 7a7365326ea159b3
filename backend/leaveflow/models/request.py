# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leaveflow.models.base import TimestampMixin, UUIDBase, VersionedMixin
from leaveflow.models.enums import LeaveRequestStatus


class LeaveRequest(UUIDBase, TimestampMixin, VersionedMixin, table=True):
    """An employee's leave request with its two-stage approval state.

    ``units`` and ``year`` are set at submission and re-priced only by an
    edit while pending; every other ledger adjustment moves exactly these
    units on exactly that year's row.
    """

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_leave_request_user_status", "user_id", "status"),
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_dates"),
    )

    user_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_type.id"), nullable=False, index=True),
    )
    start_date: date
    end_date: date
    half_day: bool = Field(default=False, sa_column_kwargs={"server_default": "0"})
    half_day_period: str | None = Field(default=None, max_length=20)
    reason: str | None = None
    status: str = Field(
        default=LeaveRequestStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "pending"}
    )
    units: float
    year: int
    manager_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("user.id"), nullable=True),
    )
    manager_comment: str | None = None
    manager_action_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    hr_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("user.id"), nullable=True),
    )
    hr_comment: str | None = None
    hr_action_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
