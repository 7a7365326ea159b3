# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel


class AuthContext(BaseModel):
    """Dev auth context extracted from request headers.

    Only the identity is trusted from the header; the role is always read
    from the user record by the engine.
    """

    user_id: uuid.UUID
