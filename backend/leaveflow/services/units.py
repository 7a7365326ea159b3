from __future__ import annotations

from datetime import date, timedelta
from typing import TYPE_CHECKING

from leaveflow.exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator

HALF_DAY_UNITS = 0.5
FULL_DAY_UNITS = 1.0

_SATURDAY = 5


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, inclusive."""
    current = start
    one_day = timedelta(days=1)
    while current <= end:
        yield current
        current += one_day


def is_business_day(day: date, holidays: Collection[date] = ()) -> bool:
    """Saturdays, Sundays and the given holidays are not business days."""
    return day.weekday() < _SATURDAY and day not in holidays


def compute_units(
    start: date,
    end: date,
    half_day: bool = False,
    holidays: Collection[date] = (),
) -> float:
    """Convert a leave span into consumable units.

    Counts one unit per business day between start and end inclusive. A
    half-day request must cover a single day and yields 0.5 when that day is
    a business day. Only dates in ``holidays`` are treated as holidays; pass
    an empty collection to count public holidays as leave days.

    A result of 0 means the span grants no leave (weekend-only span); callers
    reject such requests.
    """
    if start > end:
        raise ValidationError("Start date must be on or before end date")
    if half_day and start != end:
        raise ValidationError("A half-day request must start and end on the same day")

    business_days = sum(1 for day in iter_days(start, end) if is_business_day(day, holidays))
    if half_day:
        return HALF_DAY_UNITS if business_days else 0.0
    return business_days * FULL_DAY_UNITS
