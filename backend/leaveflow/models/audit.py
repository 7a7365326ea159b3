# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from leaveflow.models.base import UUIDBase, now_utc


class LeaveAudit(UUIDBase, table=True):
    """Immutable record of one status transition of a leave request."""

    __tablename__ = "leave_audit"
    __table_args__ = (
        sa.UniqueConstraint("leave_request_id", "sequence", name="uq_leave_audit_sequence"),
        sa.Index("ix_leave_audit_request_timestamp", "leave_request_id", "timestamp"),
    )

    leave_request_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_request.id", ondelete="CASCADE"), nullable=False),
    )
    sequence: int
    action: str = Field(max_length=50)
    performed_by_id: uuid.UUID
    timestamp: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
    previous_status: str | None = Field(default=None, max_length=50)
    new_status: str = Field(max_length=50)
    details: str | None = None
