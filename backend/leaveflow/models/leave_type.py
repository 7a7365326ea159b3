from __future__ import annotations

from sqlmodel import Field

from leaveflow.models.base import TimestampMixin, UUIDBase


class LeaveType(UUIDBase, TimestampMixin, table=True):
    """A category of leave (e.g. Annual Leave, Sick Leave).

    ``default_allocation`` is the quota granted when a balance row for this
    type is first referenced in a year that has no row yet.
    """

    __tablename__ = "leave_type"

    name: str = Field(max_length=255, unique=True)
    description: str | None = None
    color: str | None = Field(default=None, max_length=20)
    active: bool = Field(default=True, sa_column_kwargs={"server_default": "1"})
    default_allocation: float = Field(default=0.0, sa_column_kwargs={"server_default": "0"})
