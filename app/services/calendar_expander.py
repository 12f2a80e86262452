"""
Calendar event expansion.

Expands a recurrence definition (One Time / Weekly / Monthly / Annual) into
the concrete occurrences that fall inside one calendar month. Occurrences are
computed on read and never stored.

Dates are plain local calendar dates: "2025-03-05" always means March 5th
wherever the server runs, never an instant that a UTC offset could shift to
the 4th or 6th.
"""
import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Iterable, List, Optional

from app.core.exceptions import RecurrenceRuleError

logger = logging.getLogger(__name__)

ONE_TIME = "One Time"
WEEKLY = "Weekly"
MONTHLY = "Monthly"
ANNUAL = "Annual"
FREQUENCIES = (ONE_TIME, WEEKLY, MONTHLY, ANNUAL)

DEFAULT_TIME = time(9, 0)


@dataclass
class Occurrence:
    scheduled_at: datetime
    title: str
    description: Optional[str] = None
    metadata: dict = field(default_factory=dict)


@dataclass
class RecurrenceRule:
    event_id: Any
    title: str
    frequency: str
    start: date
    end: Optional[date] = None
    time_of_day: time = DEFAULT_TIME
    days_of_week: List[int] = field(default_factory=list)
    day_of_month: Optional[int] = None
    notes: Optional[str] = None
    category_id: Any = None

    def in_range(self, day: date) -> bool:
        if day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


def parse_local_date(value) -> date:
    """Parse YYYY-MM-DD as a local calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise RecurrenceRuleError(f"Expected a YYYY-MM-DD date, got {value!r}")
    try:
        year, month, day = (int(part) for part in value.strip()[:10].split("-"))
        return date(year, month, day)
    except ValueError as e:
        raise RecurrenceRuleError(f"Invalid date {value!r}") from e


def parse_time_of_day(value) -> time:
    if value is None or value == "":
        return DEFAULT_TIME
    if isinstance(value, time):
        return value
    try:
        parts = str(value).split(":")
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 and parts[1] else 0
        return time(hours, minutes)
    except ValueError as e:
        raise RecurrenceRuleError(f"Invalid time {value!r}, expected HH:MM") from e


def rule_from_event(event) -> RecurrenceRule:
    """Validate an event (ORM row or any object with the same attributes)."""
    frequency = getattr(event, "frequency", None)
    if frequency not in FREQUENCIES:
        raise RecurrenceRuleError(f"Unknown frequency {frequency!r}")

    start = parse_local_date(getattr(event, "date", None))
    raw_end = getattr(event, "end_date", None)
    end = parse_local_date(raw_end) if raw_end else None

    rule = RecurrenceRule(
        event_id=getattr(event, "id", None),
        title=getattr(event, "title", None) or "",
        frequency=frequency,
        start=start,
        end=end,
        time_of_day=parse_time_of_day(getattr(event, "time", None)),
        notes=getattr(event, "notes", None) or None,
        category_id=getattr(event, "category_id", None),
    )

    if frequency == WEEKLY:
        days = getattr(event, "days_of_week", None)
        if not isinstance(days, (list, tuple)) or not days:
            raise RecurrenceRuleError("Weekly events need at least one day of week")
        if any(isinstance(d, bool) or not isinstance(d, int) or not 0 <= d <= 6 for d in days):
            raise RecurrenceRuleError(f"Days of week must be integers 0-6 (0 = Sunday), got {days!r}")
        rule.days_of_week = sorted(set(days))
    elif frequency == MONTHLY:
        day_of_month = getattr(event, "day_of_month", None)
        if isinstance(day_of_month, bool) or not isinstance(day_of_month, int) or not 1 <= day_of_month <= 31:
            raise RecurrenceRuleError(f"Monthly events need a day of month 1-31, got {day_of_month!r}")
        rule.day_of_month = day_of_month

    return rule


def _sunday_based_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def _occurrence(rule: RecurrenceRule, day: date, **extra) -> Occurrence:
    metadata = {
        "referenceType": "calendar_event",
        "referenceId": rule.event_id,
        "categoryId": rule.category_id,
        "frequency": rule.frequency,
    }
    metadata.update(extra)
    return Occurrence(
        scheduled_at=datetime.combine(day, rule.time_of_day),
        title=rule.title,
        description=rule.notes,
        metadata=metadata,
    )


def expand_rule(rule: RecurrenceRule, year: int, month: int) -> List[Occurrence]:
    days_in_month = calendar.monthrange(year, month)[1]
    occurrences = []

    if rule.frequency == ONE_TIME:
        if rule.start.year == year and rule.start.month == month and rule.in_range(rule.start):
            occurrences.append(_occurrence(rule, rule.start))

    elif rule.frequency == WEEKLY:
        for day_number in range(1, days_in_month + 1):
            day = date(year, month, day_number)
            if _sunday_based_weekday(day) in rule.days_of_week and rule.in_range(day):
                occurrences.append(_occurrence(rule, day, daysOfWeek=list(rule.days_of_week)))

    elif rule.frequency == MONTHLY:
        # Day 30 in February etc. simply has no occurrence that month
        if rule.day_of_month <= days_in_month:
            day = date(year, month, rule.day_of_month)
            if rule.in_range(day):
                occurrences.append(_occurrence(rule, day, dayOfMonth=rule.day_of_month))

    elif rule.frequency == ANNUAL:
        # Feb 29 anchors only recur in leap years
        if month == rule.start.month and rule.start.day <= days_in_month:
            day = date(year, month, rule.start.day)
            if rule.in_range(day):
                occurrences.append(_occurrence(rule, day))

    return occurrences


def expand_event(event, year: int, month: int) -> List[Occurrence]:
    """Occurrences of `event` in the given month (1-12). Raises RecurrenceRuleError on a malformed rule."""
    if not 1 <= month <= 12:
        raise RecurrenceRuleError(f"Month must be 1-12, got {month}")
    return expand_rule(rule_from_event(event), year, month)


def expand_events(events: Iterable[Any], year: int, month: int) -> List[Occurrence]:
    """Expand many events, skipping (and logging) malformed ones; sorted by scheduled time."""
    occurrences = []
    for event in events:
        try:
            expanded = expand_event(event, year, month)
        except RecurrenceRuleError as e:
            logger.warning("[Calendar] Skipping event %s: %s", getattr(event, "id", None), e)
            continue
        logger.debug(
            "[Calendar] Event %s (%s) expanded to %s occurrence(s) for %04d-%02d",
            getattr(event, "id", None), getattr(event, "frequency", None), len(expanded), year, month,
        )
        occurrences.extend(expanded)
    occurrences.sort(key=lambda occ: occ.scheduled_at)
    return occurrences
