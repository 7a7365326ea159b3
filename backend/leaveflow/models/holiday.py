# ruff: noqa: TC003
from __future__ import annotations

import datetime

from sqlmodel import Field

from leaveflow.models.base import UUIDBase


class Holiday(UUIDBase, table=True):
    """A public holiday on the company calendar."""

    __tablename__ = "holiday"

    name: str = Field(max_length=255)
    date: datetime.date = Field(unique=True, index=True)
    description: str | None = None
