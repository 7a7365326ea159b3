"""Balance ledger arithmetic.

Every function here runs inside the caller's unit of work and locks the
ledger row it touches. Invariants are checked before a row is mutated, so a
rejected call leaves the row exactly as it was.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from leaveflow.exceptions import InsufficientBalanceError, LedgerInvariantError, ValidationError
from leaveflow.models.balance import LeaveBalance
from leaveflow.models.base import now_utc

if TYPE_CHECKING:
    from leaveflow.models.leave_type import LeaveType
    from leaveflow.models.request import LeaveRequest
    from leaveflow.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)

# Tolerance for float comparisons; real quantities are multiples of 0.5.
_EPSILON = 1e-9


def _apply(balance: LeaveBalance, *, used_delta: float = 0.0, pending_delta: float = 0.0) -> None:
    """Shift used/pending by the given deltas, enforcing the ledger invariant first."""
    new_used = balance.used + used_delta
    new_pending = balance.pending + pending_delta

    if new_used < -_EPSILON or new_pending < -_EPSILON:
        raise LedgerInvariantError(
            f"Ledger row {balance.id} would go negative (used={new_used:g}, pending={new_pending:g})"
        )
    if new_used + new_pending > balance.allocated + _EPSILON:
        raise LedgerInvariantError(
            f"Ledger row {balance.id} would exceed its allocation "
            f"(used={new_used:g}, pending={new_pending:g}, allocated={balance.allocated:g})"
        )

    balance.used = max(new_used, 0.0)
    balance.pending = max(new_pending, 0.0)
    balance.updated_at = now_utc()
    balance.version += 1


async def get_or_create_balance(
    uow: UnitOfWork,
    user_id: uuid.UUID,
    leave_type: LeaveType,
    year: int,
) -> LeaveBalance:
    """Lock the ledger row, creating it from the leave type's default allocation if absent."""
    balance = await uow.ledger.get_for_update(user_id, leave_type.id, year)
    if balance is None:
        balance = LeaveBalance(
            user_id=user_id,
            leave_type_id=leave_type.id,
            year=year,
            allocated=leave_type.default_allocation,
            used=0.0,
            pending=0.0,
            version=1,
        )
        await uow.ledger.add(balance)
        logger.info(
            "Created ledger row user=%s leave_type=%s year=%d allocated=%g",
            user_id,
            leave_type.name,
            year,
            balance.allocated,
        )
    return balance


async def _locked_row_for(uow: UnitOfWork, request: LeaveRequest) -> LeaveBalance:
    balance = await uow.ledger.get_for_update(request.user_id, request.leave_type_id, request.year)
    if balance is None:
        raise LedgerInvariantError(f"No ledger row for leave request {request.id} (year {request.year})")
    return balance


async def reserve(
    uow: UnitOfWork,
    user_id: uuid.UUID,
    leave_type: LeaveType,
    year: int,
    units: float,
) -> LeaveBalance:
    """Check availability and move ``units`` into pending.

    Raises ``InsufficientBalanceError`` carrying the available and requested
    quantities when the row cannot cover the request.
    """
    balance = await get_or_create_balance(uow, user_id, leave_type, year)
    available = balance.available
    if units > available + _EPSILON:
        raise InsufficientBalanceError(available=available, requested=units)

    _apply(balance, pending_delta=units)
    await uow.ledger.save(balance)
    return balance


async def release(uow: UnitOfWork, request: LeaveRequest) -> LeaveBalance:
    """Give a rejected or cancelled request's reserved units back."""
    balance = await _locked_row_for(uow, request)
    _apply(balance, pending_delta=-request.units)
    await uow.ledger.save(balance)
    return balance


async def consume(uow: UnitOfWork, request: LeaveRequest) -> LeaveBalance:
    """Turn a finally approved request's reservation into usage."""
    balance = await _locked_row_for(uow, request)
    _apply(balance, pending_delta=-request.units, used_delta=request.units)
    await uow.ledger.save(balance)
    return balance


async def reprice(
    uow: UnitOfWork,
    request: LeaveRequest,
    leave_type: LeaveType,
    year: int,
    units: float,
) -> LeaveBalance:
    """Move a pending request's reservation to ``units`` on the (leave type, year) row.

    Same row: only the difference moves. Different row: the old reservation
    is released and the new one reserved, both in the caller's unit of work.
    """
    if request.leave_type_id != leave_type.id or request.year != year:
        await release(uow, request)
        return await reserve(uow, request.user_id, leave_type, year, units)

    balance = await _locked_row_for(uow, request)
    delta = units - request.units
    if delta > balance.available + _EPSILON:
        raise InsufficientBalanceError(available=balance.available + request.units, requested=units)
    _apply(balance, pending_delta=delta)
    await uow.ledger.save(balance)
    return balance


async def set_allocation(
    uow: UnitOfWork,
    user_id: uuid.UUID,
    leave_type: LeaveType,
    year: int,
    allocated: float,
) -> LeaveBalance:
    """Replace a row's allocation. It may not drop below what is already used or reserved."""
    if allocated < 0:
        raise ValidationError("Allocation cannot be negative")

    balance = await get_or_create_balance(uow, user_id, leave_type, year)
    committed = balance.used + balance.pending
    if allocated + _EPSILON < committed:
        raise ValidationError(
            f"Allocation {allocated:g} is below the {committed:g} days already used or pending"
        )

    balance.allocated = allocated
    balance.updated_at = now_utc()
    balance.version += 1
    await uow.ledger.save(balance)
    return balance
