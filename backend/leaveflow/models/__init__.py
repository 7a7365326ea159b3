from sqlmodel import SQLModel

from leaveflow.models.audit import LeaveAudit
from leaveflow.models.balance import LeaveBalance
from leaveflow.models.base import TimestampMixin, UUIDBase, VersionedMixin
from leaveflow.models.enums import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    HalfDayPeriod,
    LeaveAction,
    LeaveAuditAction,
    LeaveRequestStatus,
    LifecycleEventType,
    UserRole,
)
from leaveflow.models.holiday import Holiday
from leaveflow.models.leave_type import LeaveType
from leaveflow.models.request import LeaveRequest
from leaveflow.models.user import User

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "HalfDayPeriod",
    "Holiday",
    "LeaveAction",
    "LeaveAudit",
    "LeaveAuditAction",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveRequestStatus",
    "LeaveType",
    "LifecycleEventType",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "User",
    "VersionedMixin",
]
