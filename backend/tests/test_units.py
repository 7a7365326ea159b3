"""Tests for the business-day unit calculator."""

from __future__ import annotations

from datetime import date

import pytest

from conftest import FRIDAY, MONDAY, SATURDAY, SUNDAY
from leaveflow.exceptions import ValidationError
from leaveflow.services.units import compute_units, is_business_day, iter_days


def test_single_weekday_is_one_unit() -> None:
    assert compute_units(MONDAY, MONDAY) == 1.0


def test_monday_to_friday_is_five_units() -> None:
    assert compute_units(MONDAY, FRIDAY) == 5.0


def test_weekends_are_not_counted() -> None:
    # Mon 3 March .. Fri 14 March 2025 spans one weekend.
    assert compute_units(MONDAY, date(2025, 3, 14)) == 10.0


def test_weekend_only_span_is_zero() -> None:
    assert compute_units(SATURDAY, SUNDAY) == 0.0


def test_half_day_on_weekday() -> None:
    assert compute_units(MONDAY, MONDAY, half_day=True) == 0.5


def test_half_day_on_weekend_is_zero() -> None:
    assert compute_units(SATURDAY, SATURDAY, half_day=True) == 0.0


def test_half_day_must_be_single_day() -> None:
    with pytest.raises(ValidationError):
        compute_units(MONDAY, FRIDAY, half_day=True)


def test_end_before_start_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        compute_units(FRIDAY, MONDAY)
    assert exc_info.value.status_code == 422


def test_holidays_are_counted_unless_passed() -> None:
    holiday = date(2025, 3, 5)
    assert compute_units(MONDAY, FRIDAY) == 5.0
    assert compute_units(MONDAY, FRIDAY, holidays={holiday}) == 4.0


def test_half_day_on_holiday_is_zero_when_excluded() -> None:
    holiday = date(2025, 3, 5)
    assert compute_units(holiday, holiday, half_day=True, holidays={holiday}) == 0.0


def test_is_business_day() -> None:
    assert is_business_day(MONDAY)
    assert not is_business_day(SATURDAY)
    assert not is_business_day(SUNDAY)
    assert not is_business_day(MONDAY, holidays={MONDAY})


def test_iter_days_is_inclusive() -> None:
    days = list(iter_days(MONDAY, FRIDAY))
    assert days[0] == MONDAY
    assert days[-1] == FRIDAY
    assert len(days) == 5


def test_span_across_year_boundary() -> None:
    # Wed 31 Dec 2025 and Thu 1 Jan 2026
    assert compute_units(date(2025, 12, 31), date(2026, 1, 1)) == 2.0
