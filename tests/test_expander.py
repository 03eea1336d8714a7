from __future__ import annotations

from datetime import date, datetime

import pytest

from tutoring_system.core.enums import RecurringFrequency
from tutoring_system.core.exceptions import ValidationError
from tutoring_system.recurrence import expand_occurrences, new_group_id


def test_weekly_series_includes_end_date():
    dates = expand_occurrences(date(2024, 1, 1), RecurringFrequency.WEEKLY, date(2024, 1, 22))

    assert dates == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22)]


def test_time_of_day_does_not_exclude_last_day():
    dates = expand_occurrences(datetime(2024, 1, 1, 17, 30), RecurringFrequency.DAILY, date(2024, 1, 3))

    assert dates == [
        datetime(2024, 1, 1, 17, 30),
        datetime(2024, 1, 2, 17, 30),
        datetime(2024, 1, 3, 17, 30),
    ]


def test_monthly_from_31st_clamps_without_drift():
    dates = expand_occurrences(date(2024, 1, 31), RecurringFrequency.MONTHLY, date(2024, 5, 31))

    assert dates == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
        date(2024, 5, 31),
    ]


def test_yearly_from_leap_day():
    dates = expand_occurrences(date(2024, 2, 29), RecurringFrequency.YEARLY, date(2028, 3, 1))

    assert dates == [date(2024, 2, 29), date(2025, 2, 28), date(2026, 2, 28), date(2027, 2, 28), date(2028, 2, 29)]


def test_anchor_after_end_date_yields_only_anchor():
    anchor = datetime(2024, 3, 10, 9, 0)

    assert expand_occurrences(anchor, RecurringFrequency.WEEKLY, date(2024, 3, 1)) == [anchor]


def test_series_over_limit_is_rejected():
    with pytest.raises(ValidationError):
        expand_occurrences(date(2024, 1, 1), RecurringFrequency.DAILY, date(2024, 1, 10), limit=5)


def test_group_ids_are_unique():
    assert new_group_id() != new_group_id()
