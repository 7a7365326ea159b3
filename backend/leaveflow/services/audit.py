# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from leaveflow.models.audit import LeaveAudit

if TYPE_CHECKING:
    from leaveflow.models.enums import LeaveAuditAction, LeaveRequestStatus
    from leaveflow.repositories.base import UnitOfWork


async def record(
    uow: UnitOfWork,
    *,
    leave_request_id: uuid.UUID,
    action: LeaveAuditAction,
    performed_by_id: uuid.UUID,
    previous_status: LeaveRequestStatus | None,
    new_status: LeaveRequestStatus,
    details: str | None = None,
) -> LeaveAudit:
    """Append one audit row within the caller's unit of work.

    The caller must hold the lock on the leave request, which keeps the
    per-request ``sequence`` gap-free.
    """
    sequence = await uow.audit.count_for_request(leave_request_id) + 1
    entry = LeaveAudit(
        leave_request_id=leave_request_id,
        sequence=sequence,
        action=action.value,
        performed_by_id=performed_by_id,
        previous_status=previous_status.value if previous_status is not None else None,
        new_status=new_status.value,
        details=details,
    )
    await uow.audit.append(entry)
    return entry


def replay_statuses(entries: list[LeaveAudit]) -> list[str]:
    """Status history reconstructed from audit rows in replay order."""
    ordered = sorted(entries, key=lambda e: (e.timestamp, e.sequence))
    return [e.new_status for e in ordered]
