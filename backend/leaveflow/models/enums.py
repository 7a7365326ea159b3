from __future__ import annotations

import enum


class UserRole(enum.StrEnum):
    """Flat role set; no role inherits another's powers."""

    HR = "hr"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class LeaveRequestStatus(enum.StrEnum):
    """State machine for leave requests."""

    PENDING = "pending"
    MANAGER_APPROVED = "manager_approved"
    MANAGER_REJECTED = "manager_rejected"
    HR_APPROVED = "hr_approved"
    HR_REJECTED = "hr_rejected"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        LeaveRequestStatus.MANAGER_REJECTED,
        LeaveRequestStatus.HR_APPROVED,
        LeaveRequestStatus.HR_REJECTED,
        LeaveRequestStatus.CANCELLED,
    }
)

# Statuses that still hold units in the ledger (pending or used).
ACTIVE_STATUSES = frozenset(
    {
        LeaveRequestStatus.PENDING,
        LeaveRequestStatus.MANAGER_APPROVED,
        LeaveRequestStatus.HR_APPROVED,
    }
)


class HalfDayPeriod(enum.StrEnum):
    """Which half of the day a half-day request covers."""

    MORNING = "morning"
    AFTERNOON = "afternoon"


class LeaveAction(enum.StrEnum):
    """Actions an actor can perform against a leave request."""

    SUBMIT = "submit"
    UPDATE = "update"
    MANAGER_APPROVE = "manager_approve"
    MANAGER_REJECT = "manager_reject"
    HR_APPROVE = "hr_approve"
    HR_REJECT = "hr_reject"
    CANCEL = "cancel"


class LeaveAuditAction(enum.StrEnum):
    """Action recorded in the leave audit trail."""

    LEAVE_REQUEST_CREATED = "LEAVE_REQUEST_CREATED"
    LEAVE_REQUEST_UPDATED = "LEAVE_REQUEST_UPDATED"
    MANAGER_APPROVAL = "MANAGER_APPROVAL"
    MANAGER_REJECTION = "MANAGER_REJECTION"
    HR_APPROVAL = "HR_APPROVAL"
    HR_REJECTION = "HR_REJECTION"
    LEAVE_REQUEST_CANCELLED = "LEAVE_REQUEST_CANCELLED"


class LifecycleEventType(enum.StrEnum):
    """Events emitted to the notification dispatcher after a committed transition."""

    LEAVE_REQUEST_SUBMITTED = "LEAVE_REQUEST_SUBMITTED"
    LEAVE_REQUEST_MANAGER_APPROVED = "LEAVE_REQUEST_MANAGER_APPROVED"
    LEAVE_REQUEST_MANAGER_REJECTED = "LEAVE_REQUEST_MANAGER_REJECTED"
    LEAVE_REQUEST_HR_APPROVED = "LEAVE_REQUEST_HR_APPROVED"
    LEAVE_REQUEST_HR_REJECTED = "LEAVE_REQUEST_HR_REJECTED"
    LEAVE_REQUEST_CANCELLED = "LEAVE_REQUEST_CANCELLED"


class RequestSortField(enum.StrEnum):
    """Fields a leave request listing can be ordered by."""

    START_DATE = "start_date"
    END_DATE = "end_date"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    STATUS = "status"
    LEAVE_TYPE = "leave_type"


class SortDirection(enum.StrEnum):
    ASC = "asc"
    DESC = "desc"
