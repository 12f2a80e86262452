"""
Billing period calculation.

A user is billed monthly on their billing day. The period a charge covers runs
from the previous billing date up to the day before the next one. Days past the
end of a short month are clamped to its last day (billing day 31 bills on
Feb 28/29, Apr 30, ...), so a billing date never rolls into the next month.
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from app.core.exceptions import InvalidBillingDayError


@dataclass(frozen=True)
class BillingPeriod:
    start: date
    end: date
    billing_date: date


def as_reference_date(value: Optional[Union[date, datetime]]) -> date:
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def billing_date_in_month(year: int, month: int, billing_day: int) -> date:
    """The billing date for a given month, clamped to the month's last day."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(billing_day, last_day))


def validate_billing_day(billing_day) -> int:
    if isinstance(billing_day, bool) or not isinstance(billing_day, int) or not 1 <= billing_day <= 31:
        raise InvalidBillingDayError(f"Billing day must be an integer between 1 and 31, got {billing_day!r}")
    return billing_day


def calculate_billing_period(
    billing_day: int,
    reference_date: Optional[Union[date, datetime]] = None,
) -> BillingPeriod:
    """
    Return the billing period that is open on reference_date (default: today).

    If this month's billing date has already arrived, the cycle started this
    month and the next charge falls on next month's billing day. Otherwise the
    cycle started last month and this month's billing date is the next charge.
    The returned billing_date is always strictly after reference_date.
    """
    validate_billing_day(billing_day)
    today = as_reference_date(reference_date)
    this_month = billing_date_in_month(today.year, today.month, billing_day)

    if today >= this_month:
        start = this_month
        next_year, next_month = _shift_month(today.year, today.month, 1)
        billing_date = billing_date_in_month(next_year, next_month, billing_day)
    else:
        prev_year, prev_month = _shift_month(today.year, today.month, -1)
        start = billing_date_in_month(prev_year, prev_month, billing_day)
        billing_date = this_month

    return BillingPeriod(start=start, end=billing_date - timedelta(days=1), billing_date=billing_date)
