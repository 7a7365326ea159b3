# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from leaveflow.schemas.auth import AuthContext
from leaveflow.services.lifecycle import LeaveLifecycleEngine, get_lifecycle_engine


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(user_id=x_user_id)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]

EngineDep = Annotated[LeaveLifecycleEngine, Depends(get_lifecycle_engine)]
