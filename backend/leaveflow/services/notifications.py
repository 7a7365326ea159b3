# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel

from leaveflow.models.enums import LeaveRequestStatus, LifecycleEventType, UserRole
from leaveflow.schemas.request import LeaveRequestResponse

if TYPE_CHECKING:
    from leaveflow.repositories.base import ReferenceRepository
    from leaveflow.services.policy import OwnedRequest

logger = logging.getLogger(__name__)


class NotificationEvent(BaseModel):
    """Payload handed to the dispatcher after a transition commits."""

    event_type: LifecycleEventType
    leave_request: LeaveRequestResponse
    relevant_users: list[uuid.UUID]
    actor_id: uuid.UUID


@runtime_checkable
class NotificationDispatcher(Protocol):
    """Delivers lifecycle events (email, queue, ...). Failures never affect the transition."""

    async def dispatch(self, event: NotificationEvent) -> None: ...


class LoggingNotificationDispatcher:
    """Delivery by log line, one per recipient."""

    async def dispatch(self, event: NotificationEvent) -> None:
        request = event.leave_request
        logger.info(
            "[NOTIFICATION] %s request=%s user=%s status=%s",
            event.event_type.value,
            request.id,
            request.user_id,
            request.status.value,
        )
        for user_id in event.relevant_users:
            logger.info("[EMAIL] to=%s event=%s request=%s", user_id, event.event_type.value, request.id)


class RecordingNotificationDispatcher:
    """Keeps every event in memory. Used by tests and local tooling."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    async def dispatch(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: LifecycleEventType) -> list[NotificationEvent]:
        return [e for e in self.events if e.event_type == event_type]


def _unique(ids: list[uuid.UUID | None]) -> list[uuid.UUID]:
    seen: dict[uuid.UUID, None] = {}
    for user_id in ids:
        if user_id is not None:
            seen.setdefault(user_id, None)
    return list(seen)


async def relevant_users(
    reference: ReferenceRepository,
    event_type: LifecycleEventType,
    request: OwnedRequest,
    actor_id: uuid.UUID,
    previous_status: LeaveRequestStatus | None = None,
) -> list[uuid.UUID]:
    """Who should hear about an event, requester first."""
    recipients: list[uuid.UUID | None] = [request.user_id]

    match event_type:
        case LifecycleEventType.LEAVE_REQUEST_SUBMITTED:
            recipients += [u.id for u in await reference.list_users_by_role(UserRole.MANAGER)]
        case LifecycleEventType.LEAVE_REQUEST_MANAGER_APPROVED:
            recipients.append(actor_id)
            recipients += [u.id for u in await reference.list_users_by_role(UserRole.HR)]
        case LifecycleEventType.LEAVE_REQUEST_MANAGER_REJECTED:
            recipients.append(actor_id)
        case LifecycleEventType.LEAVE_REQUEST_HR_APPROVED | LifecycleEventType.LEAVE_REQUEST_HR_REJECTED:
            recipients += [actor_id, request.manager_id]
        case LifecycleEventType.LEAVE_REQUEST_CANCELLED:
            recipients.append(request.manager_id)
            if previous_status == LeaveRequestStatus.MANAGER_APPROVED:
                recipients += [u.id for u in await reference.list_users_by_role(UserRole.HR)]

    return _unique(recipients)


_dispatcher: NotificationDispatcher = LoggingNotificationDispatcher()


def get_notification_dispatcher() -> NotificationDispatcher:
    return _dispatcher


def set_notification_dispatcher(dispatcher: NotificationDispatcher) -> None:
    """Override the dispatcher (for testing or production wiring)."""
    global _dispatcher
    _dispatcher = dispatcher
