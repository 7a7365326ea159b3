# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol

from leaveflow.models.enums import LeaveAction, UserRole

_REVIEWER_ROLES = frozenset({UserRole.MANAGER, UserRole.HR})


class OwnedRequest(Protocol):
    """The parts of a leave request the policy looks at."""

    user_id: uuid.UUID
    manager_id: uuid.UUID | None


def can_perform(actor_role: str, actor_id: uuid.UUID, request: OwnedRequest, action: LeaveAction) -> bool:
    """Decide whether an actor may perform ``action`` on ``request``.

    Roles are flat: HR cannot stand in for a manager and vice versa.

    - submit: the requester, or a manager/HR filing on someone's behalf
    - manager approve/reject: a manager, the assigned one if already set
    - HR approve/reject: HR
    - update and cancel: only the original requester
    """
    match action:
        case LeaveAction.SUBMIT:
            return actor_id == request.user_id or actor_role in _REVIEWER_ROLES
        case LeaveAction.MANAGER_APPROVE | LeaveAction.MANAGER_REJECT:
            if actor_role != UserRole.MANAGER:
                return False
            return request.manager_id is None or request.manager_id == actor_id
        case LeaveAction.HR_APPROVE | LeaveAction.HR_REJECT:
            return actor_role == UserRole.HR
        case LeaveAction.UPDATE | LeaveAction.CANCEL:
            return actor_id == request.user_id
    return False


def can_view(actor_role: str, actor_id: uuid.UUID, owner_id: uuid.UUID) -> bool:
    """Employees only see their own requests and balances; managers and HR see everyone's."""
    return actor_id == owner_id or actor_role in _REVIEWER_ROLES
