# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leaveflow.models.base import UUIDBase, VersionedMixin


class LeaveBalance(UUIDBase, VersionedMixin, table=True):
    """Per user, leave type and year ledger row.

    ``pending`` holds units reserved by requests awaiting a final decision,
    ``used`` holds units of fully approved requests. ``used + pending`` never
    exceeds ``allocated``.
    """

    __tablename__ = "leave_balance"
    __table_args__ = (sa.UniqueConstraint("user_id", "leave_type_id", "year", name="uq_balance_user_type_year"),)

    user_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_type.id", ondelete="CASCADE"), nullable=False),
    )
    year: int
    allocated: float = Field(default=0.0, sa_column_kwargs={"server_default": "0"})
    used: float = Field(default=0.0, sa_column_kwargs={"server_default": "0"})
    pending: float = Field(default=0.0, sa_column_kwargs={"server_default": "0"})

    @property
    def available(self) -> float:
        return self.allocated - self.used - self.pending
