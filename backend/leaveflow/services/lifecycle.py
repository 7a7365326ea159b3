"""Leave request lifecycle engine.

Owns the state machine::

    pending -> manager_approved -> hr_approved
    pending -> manager_rejected
    manager_approved -> hr_rejected
    pending | manager_approved -> cancelled

Every operation runs in one unit of work: the request row and the ledger row
are locked, the status changes, the ledger moves and exactly one audit row is
written, all or nothing. Lifecycle events go out only after commit.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Generic, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from leaveflow.config import Settings, get_settings
from leaveflow.exceptions import (
    ConcurrencyConflictError,
    InvalidTransitionError,
    NotFoundError,
    RetryExhaustedError,
    UnauthorizedError,
    ValidationError,
)
from leaveflow.models.base import now_utc
from leaveflow.models.enums import (
    ACTIVE_STATUSES,
    HalfDayPeriod,
    LeaveAction,
    LeaveAuditAction,
    LeaveRequestStatus,
    LifecycleEventType,
    UserRole,
)
from leaveflow.models.request import LeaveRequest
from leaveflow.repositories.base import RequestFilters
from leaveflow.schemas.balance import BalanceResponse
from leaveflow.services import audit, ledger
from leaveflow.services.notifications import (
    NotificationDispatcher,
    NotificationEvent,
    get_notification_dispatcher,
    relevant_users,
)
from leaveflow.services.policy import can_perform
from leaveflow.services.responses import build_balance_response, build_request_response
from leaveflow.services.units import compute_units

if TYPE_CHECKING:
    from leaveflow.models.leave_type import LeaveType
    from leaveflow.models.user import User
    from leaveflow.repositories.base import UnitOfWork, UnitOfWorkFactory
    from leaveflow.schemas.request import LeaveRequestResponse

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_date_adapter = TypeAdapter(date)
_datetime_adapter = TypeAdapter(datetime)

# Extended ISO-8601 calendar date, optionally followed by a time part.
_ISO_DATE_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}(?:[T ]|$)")


class LedgerEffect(StrEnum):
    NONE = "none"
    RELEASE = "release"
    CONSUME = "consume"


class ReviewStage(StrEnum):
    MANAGER = "manager"
    HR = "hr"


@dataclass(frozen=True)
class Transition:
    """One row of the transition table."""

    sources: frozenset[LeaveRequestStatus]
    target: LeaveRequestStatus
    ledger_effect: LedgerEffect
    audit_action: LeaveAuditAction
    event_type: LifecycleEventType
    stage: ReviewStage | None = None
    is_rejection: bool = False


TRANSITIONS: dict[LeaveAction, Transition] = {
    LeaveAction.MANAGER_APPROVE: Transition(
        sources=frozenset({LeaveRequestStatus.PENDING}),
        target=LeaveRequestStatus.MANAGER_APPROVED,
        ledger_effect=LedgerEffect.NONE,
        audit_action=LeaveAuditAction.MANAGER_APPROVAL,
        event_type=LifecycleEventType.LEAVE_REQUEST_MANAGER_APPROVED,
        stage=ReviewStage.MANAGER,
    ),
    LeaveAction.MANAGER_REJECT: Transition(
        sources=frozenset({LeaveRequestStatus.PENDING}),
        target=LeaveRequestStatus.MANAGER_REJECTED,
        ledger_effect=LedgerEffect.RELEASE,
        audit_action=LeaveAuditAction.MANAGER_REJECTION,
        event_type=LifecycleEventType.LEAVE_REQUEST_MANAGER_REJECTED,
        stage=ReviewStage.MANAGER,
        is_rejection=True,
    ),
    LeaveAction.HR_APPROVE: Transition(
        sources=frozenset({LeaveRequestStatus.MANAGER_APPROVED}),
        target=LeaveRequestStatus.HR_APPROVED,
        ledger_effect=LedgerEffect.CONSUME,
        audit_action=LeaveAuditAction.HR_APPROVAL,
        event_type=LifecycleEventType.LEAVE_REQUEST_HR_APPROVED,
        stage=ReviewStage.HR,
    ),
    LeaveAction.HR_REJECT: Transition(
        sources=frozenset({LeaveRequestStatus.MANAGER_APPROVED}),
        target=LeaveRequestStatus.HR_REJECTED,
        ledger_effect=LedgerEffect.RELEASE,
        audit_action=LeaveAuditAction.HR_REJECTION,
        event_type=LifecycleEventType.LEAVE_REQUEST_HR_REJECTED,
        stage=ReviewStage.HR,
        is_rejection=True,
    ),
    LeaveAction.CANCEL: Transition(
        sources=frozenset({LeaveRequestStatus.PENDING, LeaveRequestStatus.MANAGER_APPROVED}),
        target=LeaveRequestStatus.CANCELLED,
        ledger_effect=LedgerEffect.RELEASE,
        audit_action=LeaveAuditAction.LEAVE_REQUEST_CANCELLED,
        event_type=LifecycleEventType.LEAVE_REQUEST_CANCELLED,
    ),
}


@dataclass(frozen=True)
class LeaveSpan:
    """A contiguous span of leave to be filed as one request."""

    start: date
    end: date
    half_day: bool = False
    half_day_period: HalfDayPeriod | None = None


@dataclass
class SubmissionResult:
    """Requests created by one submission and the ledger rows they were reserved on, one per year."""

    items: list[LeaveRequestResponse]
    balances: list[BalanceResponse]


@dataclass(frozen=True)
class _PendingEvent:
    """Event data captured inside the transaction. Recipients are resolved after commit."""

    event_type: LifecycleEventType
    leave_request: LeaveRequestResponse
    actor_id: uuid.UUID
    previous_status: LeaveRequestStatus | None = None


@dataclass
class _Outcome(Generic[_T]):
    result: _T
    events: list[_PendingEvent] = field(default_factory=list)


@dataclass(frozen=True)
class _Owner:
    user_id: uuid.UUID
    manager_id: uuid.UUID | None = None


def parse_leave_date(value: date | datetime | str) -> date:
    """Accept a date, a datetime or an ISO-8601 date/datetime string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or _ISO_DATE_PREFIX.match(value.strip()) is None:
        raise ValidationError(f"Invalid date: {value!r}")
    value = value.strip()
    try:
        return _date_adapter.validate_python(value)
    except PydanticValidationError:
        pass
    try:
        return _datetime_adapter.validate_python(value).date()
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid date: {value!r}") from exc


def build_batch_spans(
    dates: list[date | datetime | str],
    half_day_flags: list[bool] | None = None,
) -> list[LeaveSpan]:
    """Turn a batch of dates into single-day spans, rejecting the whole batch on any bad entry."""
    if not dates:
        raise ValidationError("At least one leave date is required")
    flags = half_day_flags if half_day_flags is not None else [False] * len(dates)
    if len(flags) != len(dates):
        raise ValidationError(
            f"Got {len(dates)} leave dates but {len(flags)} half-day flags; counts must match"
        )

    spans: list[LeaveSpan] = []
    seen: set[date] = set()
    for raw, half_day in zip(dates, flags, strict=True):
        day = parse_leave_date(raw)
        if day in seen:
            raise ValidationError(f"Duplicate leave date: {day.isoformat()}")
        seen.add(day)
        spans.append(LeaveSpan(start=day, end=day, half_day=half_day))
    return spans


class LeaveLifecycleEngine:
    """Submits leave requests and drives them through the approval lifecycle."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        dispatcher: NotificationDispatcher | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._dispatcher = dispatcher
        self._settings = settings or get_settings()

    @property
    def unit_of_work_factory(self) -> UnitOfWorkFactory:
        return self._uow_factory

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher or get_notification_dispatcher()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        actor_id: uuid.UUID,
        user_id: uuid.UUID,
        dates: list[date | datetime | str],
        half_day_flags: list[bool] | None = None,
        *,
        leave_type_id: uuid.UUID | None = None,
        leave_type_name: str | None = None,
        reason: str | None = None,
    ) -> list[LeaveRequestResponse]:
        """File one single-day request per date; the whole batch succeeds or nothing is written."""
        submission = await self.submit_batch(
            actor_id,
            user_id,
            dates,
            half_day_flags,
            leave_type_id=leave_type_id,
            leave_type_name=leave_type_name,
            reason=reason,
        )
        return submission.items

    async def submit_batch(
        self,
        actor_id: uuid.UUID,
        user_id: uuid.UUID,
        dates: list[date | datetime | str],
        half_day_flags: list[bool] | None = None,
        *,
        leave_type_id: uuid.UUID | None = None,
        leave_type_name: str | None = None,
        reason: str | None = None,
    ) -> SubmissionResult:
        """Same as ``submit``, also returning the ledger rows as they stood when the batch committed."""
        spans = build_batch_spans(dates, half_day_flags)
        name = leave_type_name if leave_type_id is None and leave_type_name else None
        if leave_type_id is None and name is None:
            name = self._settings.default_leave_type_name

        async def operation(uow: UnitOfWork) -> _Outcome[SubmissionResult]:
            leave_type = await uow.reference.find_active_leave_type(leave_type_id=leave_type_id, name=name)
            if leave_type is None:
                raise ValidationError("Leave type not found or inactive")
            return await self._file(uow, actor_id, user_id, leave_type, spans, reason)

        submission = await self._transact(operation, "submit")
        logger.info(
            "Submitted %d leave request(s) for user %s (%g units)",
            len(submission.items),
            user_id,
            sum(r.units for r in submission.items),
        )
        return submission

    async def submit_range(
        self,
        actor_id: uuid.UUID,
        user_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        start: date,
        end: date,
        half_day: bool = False,
        half_day_period: HalfDayPeriod | None = None,
        reason: str | None = None,
    ) -> LeaveRequestResponse:
        """File a single request covering ``start`` to ``end``."""
        span = LeaveSpan(start=start, end=end, half_day=half_day, half_day_period=half_day_period)

        async def operation(uow: UnitOfWork) -> _Outcome[SubmissionResult]:
            leave_type = await uow.reference.find_active_leave_type(leave_type_id=leave_type_id)
            if leave_type is None:
                raise ValidationError("Leave type not found or inactive")
            return await self._file(uow, actor_id, user_id, leave_type, [span], reason)

        submission = await self._transact(operation, "submit_range")
        request = submission.items[0]
        logger.info(
            "Submitted leave request %s for user %s: %s..%s (%g units)",
            request.id,
            user_id,
            request.start_date,
            request.end_date,
            request.units,
        )
        return request

    async def _file(
        self,
        uow: UnitOfWork,
        actor_id: uuid.UUID,
        user_id: uuid.UUID,
        leave_type: LeaveType,
        spans: list[LeaveSpan],
        reason: str | None,
    ) -> _Outcome[SubmissionResult]:
        actor = await self._require_actor(uow, actor_id)
        if not can_perform(actor.role, actor.id, _Owner(user_id=user_id), LeaveAction.SUBMIT):
            raise UnauthorizedError("You can only create leave requests for yourself")
        if await uow.reference.find_user(user_id) is None:
            raise ValidationError("User not found")

        priced: list[tuple[LeaveSpan, float]] = []
        for span in spans:
            units = await self._units_for(uow, span)
            if units <= 0:
                raise ValidationError(
                    f"Leave from {span.start.isoformat()} to {span.end.isoformat()} covers no business days"
                )
            priced.append((span, units))

        units_by_year: dict[int, float] = {}
        for span, units in priced:
            units_by_year[span.start.year] = units_by_year.get(span.start.year, 0.0) + units
        outcome: _Outcome[SubmissionResult] = _Outcome(result=SubmissionResult(items=[], balances=[]))
        for year in sorted(units_by_year):
            balance = await ledger.reserve(uow, user_id, leave_type, year, units_by_year[year])
            outcome.result.balances.append(build_balance_response(balance))

        # Checked while the ledger rows are locked, so concurrent submissions
        # for the same user and type see each other's requests.
        if self._settings.reject_overlapping_requests:
            for span, _ in priced:
                await self._reject_overlap(uow, user_id, leave_type.id, span)

        for span, units in priced:
            request = LeaveRequest(
                user_id=user_id,
                leave_type_id=leave_type.id,
                start_date=span.start,
                end_date=span.end,
                half_day=span.half_day,
                half_day_period=span.half_day_period.value if span.half_day_period else None,
                reason=reason,
                status=LeaveRequestStatus.PENDING,
                units=units,
                year=span.start.year,
            )
            await uow.requests.add(request)
            await audit.record(
                uow,
                leave_request_id=request.id,
                action=LeaveAuditAction.LEAVE_REQUEST_CREATED,
                performed_by_id=actor.id,
                previous_status=None,
                new_status=LeaveRequestStatus.PENDING,
                details=f"{leave_type.name}: {units:g} day(s)",
            )
            response = build_request_response(request)
            outcome.result.items.append(response)
            outcome.events.append(_PendingEvent(LifecycleEventType.LEAVE_REQUEST_SUBMITTED, response, actor.id))
        return outcome

    async def _units_for(self, uow: UnitOfWork, span: LeaveSpan) -> float:
        holidays: set[date] = set()
        if self._settings.exclude_holidays_from_units:
            holidays = await uow.reference.holiday_dates(span.start, span.end)
        return compute_units(span.start, span.end, span.half_day, holidays)

    async def _reject_overlap(
        self,
        uow: UnitOfWork,
        user_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        span: LeaveSpan,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        filters = RequestFilters(
            user_id=user_id,
            leave_type_id=leave_type_id,
            statuses=frozenset(ACTIVE_STATUSES),
            start=span.start,
            end=span.end,
        )
        # The request being edited does not count against itself.
        items, total = await uow.requests.search(filters, offset=0, limit=2)
        if total - sum(1 for r in items if r.id == exclude_id) > 0:
            raise ValidationError(
                f"Leave from {span.start.isoformat()} to {span.end.isoformat()} overlaps an existing request"
            )

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    async def update_request(
        self,
        request_id: uuid.UUID,
        actor_id: uuid.UUID,
        *,
        leave_type_id: uuid.UUID | None = None,
        start: date | None = None,
        end: date | None = None,
        half_day: bool | None = None,
        half_day_period: HalfDayPeriod | None = None,
        reason: str | None = None,
    ) -> LeaveRequestResponse:
        """Edit one of your own pending requests.

        Omitted fields keep their current value. The request is re-priced and
        the reservation moves with it, so the ledger always holds exactly the
        edited units. Status is unchanged; one ``LEAVE_REQUEST_UPDATED`` audit
        row is written and no event is emitted.
        """

        async def operation(uow: UnitOfWork) -> _Outcome[LeaveRequestResponse]:
            request = await uow.requests.get_for_update(request_id)
            if request is None:
                raise NotFoundError()
            actor = await self._require_actor(uow, actor_id)
            if not can_perform(actor.role, actor.id, request, LeaveAction.UPDATE):
                raise UnauthorizedError("You can only edit your own leave requests")
            current = LeaveRequestStatus(request.status)
            if current != LeaveRequestStatus.PENDING:
                raise InvalidTransitionError(current.value, LeaveAction.UPDATE.value)

            span = self._edited_span(request, start, end, half_day, half_day_period)
            if leave_type_id is None or leave_type_id == request.leave_type_id:
                leave_type = await uow.reference.get_leave_type(request.leave_type_id)
            else:
                leave_type = await uow.reference.find_active_leave_type(leave_type_id=leave_type_id)
            if leave_type is None:
                raise ValidationError("Leave type not found or inactive")

            units = await self._units_for(uow, span)
            if units <= 0:
                raise ValidationError(
                    f"Leave from {span.start.isoformat()} to {span.end.isoformat()} covers no business days"
                )
            await ledger.reprice(uow, request, leave_type, span.start.year, units)
            if self._settings.reject_overlapping_requests:
                await self._reject_overlap(uow, request.user_id, leave_type.id, span, exclude_id=request.id)

            details = (
                f"{request.start_date.isoformat()}..{request.end_date.isoformat()} ({request.units:g}) -> "
                f"{span.start.isoformat()}..{span.end.isoformat()} ({units:g})"
            )
            request.leave_type_id = leave_type.id
            request.start_date = span.start
            request.end_date = span.end
            request.half_day = span.half_day
            request.half_day_period = span.half_day_period.value if span.half_day_period else None
            if reason is not None:
                request.reason = reason
            request.units = units
            request.year = span.start.year
            request.updated_at = now_utc()
            request.version += 1
            await uow.requests.save(request)

            await audit.record(
                uow,
                leave_request_id=request.id,
                action=LeaveAuditAction.LEAVE_REQUEST_UPDATED,
                performed_by_id=actor.id,
                previous_status=current,
                new_status=current,
                details=details,
            )
            return _Outcome(result=build_request_response(request))

        updated = await self._transact(operation, LeaveAction.UPDATE.value)
        logger.info("Leave request %s edited by %s (%g units)", request_id, actor_id, updated.units)
        return updated

    @staticmethod
    def _edited_span(
        request: LeaveRequest,
        start: date | None,
        end: date | None,
        half_day: bool | None,
        half_day_period: HalfDayPeriod | None,
    ) -> LeaveSpan:
        new_start = start or request.start_date
        new_end = end or request.end_date
        if new_end < new_start:
            raise ValidationError("end must be on or after start")
        is_half = request.half_day if half_day is None else half_day
        if is_half and new_start != new_end:
            raise ValidationError("A half-day request must start and end on the same day")
        period = half_day_period
        if period is None and request.half_day_period:
            period = HalfDayPeriod(request.half_day_period)
        return LeaveSpan(start=new_start, end=new_end, half_day=is_half, half_day_period=period if is_half else None)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    async def manager_decide(
        self,
        request_id: uuid.UUID,
        acting_user_id: uuid.UUID,
        approve: bool,
        comment: str | None = None,
    ) -> LeaveRequestResponse:
        action = LeaveAction.MANAGER_APPROVE if approve else LeaveAction.MANAGER_REJECT
        return await self._apply_transition(request_id, acting_user_id, action, comment)

    async def hr_decide(
        self,
        request_id: uuid.UUID,
        acting_user_id: uuid.UUID,
        approve: bool,
        comment: str | None = None,
    ) -> LeaveRequestResponse:
        action = LeaveAction.HR_APPROVE if approve else LeaveAction.HR_REJECT
        return await self._apply_transition(request_id, acting_user_id, action, comment)

    async def cancel(self, request_id: uuid.UUID, acting_user_id: uuid.UUID) -> LeaveRequestResponse:
        return await self._apply_transition(request_id, acting_user_id, LeaveAction.CANCEL)

    async def _apply_transition(
        self,
        request_id: uuid.UUID,
        actor_id: uuid.UUID,
        action: LeaveAction,
        comment: str | None = None,
    ) -> LeaveRequestResponse:
        transition = TRANSITIONS[action]

        async def operation(uow: UnitOfWork) -> _Outcome[LeaveRequestResponse]:
            request = await uow.requests.get_for_update(request_id)
            if request is None:
                raise NotFoundError()
            actor = await self._require_actor(uow, actor_id)
            if not can_perform(actor.role, actor.id, request, action):
                raise UnauthorizedError(f"Not authorized to {action.value.replace('_', ' ')} this leave request")

            previous = LeaveRequestStatus(request.status)
            if previous not in transition.sources:
                raise InvalidTransitionError(previous.value, action.value)
            if (
                transition.is_rejection
                and self._settings.require_rejection_comment
                and not (comment and comment.strip())
            ):
                raise ValidationError("A comment is required when rejecting a leave request")

            if transition.ledger_effect == LedgerEffect.RELEASE:
                await ledger.release(uow, request)
            elif transition.ledger_effect == LedgerEffect.CONSUME:
                await ledger.consume(uow, request)

            now = now_utc()
            request.status = transition.target
            request.updated_at = now
            request.version += 1
            if transition.stage == ReviewStage.MANAGER:
                request.manager_id = actor.id
                request.manager_comment = comment
                request.manager_action_at = now
            elif transition.stage == ReviewStage.HR:
                request.hr_id = actor.id
                request.hr_comment = comment
                request.hr_action_at = now
            await uow.requests.save(request)

            await audit.record(
                uow,
                leave_request_id=request.id,
                action=transition.audit_action,
                performed_by_id=actor.id,
                previous_status=previous,
                new_status=transition.target,
                details=comment,
            )
            response = build_request_response(request)
            event = _PendingEvent(transition.event_type, response, actor.id, previous)
            return _Outcome(result=response, events=[event])

        updated = await self._transact(operation, action.value)
        logger.info("Leave request %s: %s by %s -> %s", request_id, action.value, actor_id, updated.status.value)
        return updated

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    async def get_balance(self, user_id: uuid.UUID, leave_type_id: uuid.UUID, year: int) -> BalanceResponse:
        """Current ledger row. A row not created yet reads as the leave type's default allocation."""
        async with self._uow_factory() as uow:
            balance = await uow.ledger.get(user_id, leave_type_id, year)
            if balance is not None:
                return build_balance_response(balance)
            leave_type = await uow.reference.get_leave_type(leave_type_id)
            if leave_type is None:
                raise NotFoundError("Leave type not found")
            return BalanceResponse(
                user_id=user_id,
                leave_type_id=leave_type_id,
                year=year,
                allocated=leave_type.default_allocation,
                used=0.0,
                pending=0.0,
                available=leave_type.default_allocation,
                updated_at=None,
            )

    async def set_allocation(
        self,
        actor_id: uuid.UUID,
        user_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        year: int,
        allocated: float,
    ) -> BalanceResponse:
        """HR adjustment of a user's yearly allocation."""

        async def operation(uow: UnitOfWork) -> _Outcome[BalanceResponse]:
            actor = await self._require_actor(uow, actor_id)
            if actor.role != UserRole.HR:
                raise UnauthorizedError("Only HR can change leave allocations")
            if await uow.reference.find_user(user_id) is None:
                raise ValidationError("User not found")
            leave_type = await uow.reference.get_leave_type(leave_type_id)
            if leave_type is None:
                raise NotFoundError("Leave type not found")
            balance = await ledger.set_allocation(uow, user_id, leave_type, year, allocated)
            return _Outcome(result=build_balance_response(balance))

        updated = await self._transact(operation, "set_allocation")
        logger.info(
            "Allocation for user %s leave_type %s year %d set to %g by %s",
            user_id,
            leave_type_id,
            year,
            allocated,
            actor_id,
        )
        return updated

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _require_actor(self, uow: UnitOfWork, actor_id: uuid.UUID) -> User:
        actor = await uow.reference.find_user(actor_id)
        if actor is None:
            raise UnauthorizedError("Unknown acting user")
        return actor

    async def _transact(
        self,
        operation: Callable[[UnitOfWork], Awaitable[_Outcome[_T]]],
        name: str,
    ) -> _T:
        """Run ``operation`` in a fresh unit of work, retrying on concurrency conflicts."""
        attempts = max(1, self._settings.max_transaction_attempts)
        for attempt in range(1, attempts + 1):
            try:
                async with self._uow_factory() as uow:
                    outcome = await operation(uow)
                    await uow.commit()
            except ConcurrencyConflictError as exc:
                logger.warning("Concurrency conflict in %s (attempt %d/%d): %s", name, attempt, attempts, exc.message)
                continue
            await self._publish(outcome.events)
            return outcome.result

        logger.error("Giving up on %s after %d attempts", name, attempts)
        raise RetryExhaustedError(attempts)

    async def _publish(self, events: list[_PendingEvent]) -> None:
        """Resolve recipients and dispatch. Runs after commit; a failure is logged and dropped."""
        dispatcher = self.dispatcher
        for pending in events:
            try:
                async with self._uow_factory() as uow:
                    recipients = await relevant_users(
                        uow.reference,
                        pending.event_type,
                        pending.leave_request,
                        pending.actor_id,
                        pending.previous_status,
                    )
                await dispatcher.dispatch(
                    NotificationEvent(
                        event_type=pending.event_type,
                        leave_request=pending.leave_request,
                        relevant_users=recipients,
                        actor_id=pending.actor_id,
                    )
                )
            except Exception:
                logger.exception(
                    "Failed to dispatch %s for leave request %s",
                    pending.event_type.value,
                    pending.leave_request.id,
                )


_engine: LeaveLifecycleEngine | None = None


def get_lifecycle_engine() -> LeaveLifecycleEngine:
    """Return the process-wide engine, wiring it to the SQL repositories on first use."""
    global _engine
    if _engine is None:
        from leaveflow.db import get_session_factory
        from leaveflow.repositories.sql import sql_unit_of_work_factory

        _engine = LeaveLifecycleEngine(sql_unit_of_work_factory(get_session_factory()))
    return _engine


def set_lifecycle_engine(engine: LeaveLifecycleEngine | None) -> None:
    """Override the engine (for testing). ``None`` restores lazy default wiring."""
    global _engine
    _engine = engine
