from __future__ import annotations

from sqlmodel import Field

from leaveflow.models.base import TimestampMixin, UUIDBase
from leaveflow.models.enums import UserRole


class User(UUIDBase, TimestampMixin, table=True):
    """A person who requests leave or decides on it."""

    __tablename__ = "user"

    email: str = Field(max_length=255, unique=True, index=True)
    first_name: str = Field(max_length=255)
    last_name: str = Field(max_length=255)
    role: str = Field(default=UserRole.EMPLOYEE, max_length=50, sa_column_kwargs={"server_default": "employee"})

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
