from datetime import date, datetime, timedelta

import pytest

from app.core.exceptions import InvalidBillingDayError
from app.services.billing_period import (
    billing_date_in_month,
    calculate_billing_period,
    validate_billing_day,
)


def test_before_billing_day_bills_this_month():
    period = calculate_billing_period(15, date(2025, 3, 10))

    assert period.start == date(2025, 2, 15)
    assert period.end == date(2025, 3, 14)
    assert period.billing_date == date(2025, 3, 15)


def test_on_billing_day_starts_new_cycle():
    period = calculate_billing_period(15, date(2025, 3, 15))

    assert period.start == date(2025, 3, 15)
    assert period.end == date(2025, 4, 14)
    assert period.billing_date == date(2025, 4, 15)


def test_year_boundary():
    period = calculate_billing_period(20, date(2025, 12, 24))

    assert period.start == date(2025, 12, 20)
    assert period.billing_date == date(2026, 1, 20)

    period = calculate_billing_period(20, date(2026, 1, 5))
    assert period.start == date(2025, 12, 20)
    assert period.billing_date == date(2026, 1, 20)


def test_time_of_day_is_ignored():
    late = calculate_billing_period(15, datetime(2025, 3, 15, 23, 59))
    early = calculate_billing_period(15, datetime(2025, 3, 15, 0, 0))

    assert late == early
    assert late.billing_date == date(2025, 4, 15)


@pytest.mark.parametrize("billing_day", range(1, 29))
def test_period_invariants_for_common_days(billing_day):
    reference = date(2024, 1, 1)
    while reference < date(2025, 3, 1):
        period = calculate_billing_period(billing_day, reference)

        assert period.start < period.billing_date
        assert period.end == period.billing_date - timedelta(days=1)
        assert period.billing_date > reference
        assert period.start <= reference
        assert period.billing_date.day == billing_day
        reference += timedelta(days=3)


def test_day_31_clamps_to_end_of_february():
    period = calculate_billing_period(31, date(2025, 2, 10))

    assert period.start == date(2025, 1, 31)
    assert period.billing_date == date(2025, 2, 28)
    assert period.end == date(2025, 2, 27)


def test_day_31_on_clamped_date_rolls_to_next_month_end():
    period = calculate_billing_period(31, date(2025, 2, 28))

    assert period.start == date(2025, 2, 28)
    assert period.billing_date == date(2025, 3, 31)


def test_day_30_in_leap_february():
    assert billing_date_in_month(2024, 2, 30) == date(2024, 2, 29)
    assert billing_date_in_month(2024, 4, 31) == date(2024, 4, 30)
    assert billing_date_in_month(2024, 5, 31) == date(2024, 5, 31)


@pytest.mark.parametrize("billing_day", [0, 32, -1, True, "5", 5.0, None])
def test_invalid_billing_day(billing_day):
    with pytest.raises(InvalidBillingDayError):
        validate_billing_day(billing_day)
    with pytest.raises(InvalidBillingDayError):
        calculate_billing_period(billing_day, date(2025, 3, 1))
