from datetime import date, datetime, time
from types import SimpleNamespace

import pytest

from app.core.exceptions import RecurrenceRuleError
from app.services.calendar_expander import (
    expand_event,
    expand_events,
    parse_local_date,
    parse_time_of_day,
    rule_from_event,
)


def event(**kwargs):
    defaults = {
        "id": 1,
        "title": "Walk the dog",
        "notes": None,
        "date": "2025-01-01",
        "end_date": None,
        "time": None,
        "frequency": "One Time",
        "days_of_week": None,
        "day_of_month": None,
        "category_id": None,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def days(occurrences):
    return [occ.scheduled_at.date() for occ in occurrences]


def test_weekly_wednesdays_in_march():
    occurrences = expand_event(event(frequency="Weekly", days_of_week=[3]), 2025, 3)

    assert days(occurrences) == [date(2025, 3, 5), date(2025, 3, 12), date(2025, 3, 19), date(2025, 3, 26)]
    assert all(occ.scheduled_at.time() == time(9, 0) for occ in occurrences)
    assert occurrences[0].metadata["daysOfWeek"] == [3]
    assert occurrences[0].metadata["referenceType"] == "calendar_event"


def test_weekly_several_days_with_sunday():
    occurrences = expand_event(event(frequency="Weekly", days_of_week=[0, 6]), 2025, 3)

    # March 2025 starts on a Saturday
    assert days(occurrences)[:3] == [date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 8)]
    assert len(occurrences) == 10


def test_weekly_respects_anchor_and_end_date():
    occurrences = expand_event(
        event(frequency="Weekly", days_of_week=[3], date="2025-03-10", end_date="2025-03-20"),
        2025, 3,
    )

    assert days(occurrences) == [date(2025, 3, 12), date(2025, 3, 19)]


def test_annual_feb_29_skips_non_leap_years():
    leap_day = event(frequency="Annual", date="2024-02-29")

    assert expand_event(leap_day, 2025, 2) == []
    assert days(expand_event(leap_day, 2028, 2)) == [date(2028, 2, 29)]
    assert expand_event(leap_day, 2028, 3) == []


def test_annual_before_anchor_year():
    birthday = event(frequency="Annual", date="2025-06-14")

    assert expand_event(birthday, 2024, 6) == []
    assert days(expand_event(birthday, 2030, 6)) == [date(2030, 6, 14)]


def test_monthly_day_missing_from_month():
    rent = event(frequency="Monthly", day_of_month=30)

    assert expand_event(rent, 2025, 2) == []
    occurrences = expand_event(rent, 2025, 4)
    assert days(occurrences) == [date(2025, 4, 30)]
    assert occurrences[0].metadata["dayOfMonth"] == 30


def test_one_time_with_time_of_day():
    dentist = event(date="2025-03-15", time="14:30", notes="Bring insurance card")

    occurrences = expand_event(dentist, 2025, 3)

    assert [occ.scheduled_at for occ in occurrences] == [datetime(2025, 3, 15, 14, 30)]
    assert occurrences[0].description == "Bring insurance card"
    assert expand_event(dentist, 2025, 4) == []


def test_local_date_is_not_shifted():
    assert parse_local_date("2025-03-05") == date(2025, 3, 5)
    assert parse_local_date("2025-03-05T23:30:00Z") == date(2025, 3, 5)
    assert parse_local_date(datetime(2025, 3, 5, 23, 59)) == date(2025, 3, 5)


def test_time_parsing():
    assert parse_time_of_day(None) == time(9, 0)
    assert parse_time_of_day("") == time(9, 0)
    assert parse_time_of_day("07:05") == time(7, 5)
    with pytest.raises(RecurrenceRuleError):
        parse_time_of_day("noon")
    with pytest.raises(RecurrenceRuleError):
        parse_time_of_day("25:00")


@pytest.mark.parametrize("bad", [
    {"frequency": "Fortnightly"},
    {"frequency": "Weekly", "days_of_week": []},
    {"frequency": "Weekly", "days_of_week": [7]},
    {"frequency": "Weekly", "days_of_week": ["3"]},
    {"frequency": "Monthly", "day_of_month": None},
    {"frequency": "Monthly", "day_of_month": 32},
    {"date": "2025-02-30"},
    {"date": None},
])
def test_malformed_rules_are_rejected(bad):
    with pytest.raises(RecurrenceRuleError):
        rule_from_event(event(**bad))


def test_invalid_month():
    with pytest.raises(RecurrenceRuleError):
        expand_event(event(), 2025, 13)


def test_expand_events_skips_malformed_and_sorts():
    events = [
        event(id=1, title="Late", date="2025-03-20", time="18:00"),
        event(id=2, title="Broken", frequency="Weekly", days_of_week=[]),
        event(id=3, title="Early", date="2025-03-02", time="08:00"),
        event(id=4, title="Trash day", frequency="Weekly", days_of_week=[1], date="2025-03-15"),
    ]

    occurrences = expand_events(events, 2025, 3)

    assert [occ.title for occ in occurrences] == ["Early", "Trash day", "Late", "Trash day", "Trash day"]
    assert days(occurrences)[1:] == [date(2025, 3, 17), date(2025, 3, 20), date(2025, 3, 24), date(2025, 3, 31)]
    assert occurrences[2].metadata["referenceId"] == 1
