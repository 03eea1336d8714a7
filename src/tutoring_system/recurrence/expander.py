from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TypeVar

from dateutil.relativedelta import relativedelta

from ..common.datetime_utils import as_date
from ..core.constants import MAX_RECURRING_OCCURRENCES
from ..core.enums import RecurringFrequency
from ..core.exceptions import ValidationError

D = TypeVar("D", date, datetime)

_STEPS = {
    RecurringFrequency.DAILY: relativedelta(days=1),
    RecurringFrequency.WEEKLY: relativedelta(weeks=1),
    RecurringFrequency.MONTHLY: relativedelta(months=1),
    RecurringFrequency.YEARLY: relativedelta(years=1),
}


def new_group_id() -> str:
    return str(uuid.uuid4())


def expand_occurrences(
    anchor: D,
    frequency: RecurringFrequency,
    end_date: date,
    *,
    limit: int = MAX_RECURRING_OCCURRENCES,
) -> list[D]:
    """Dates of a recurring series from ``anchor`` up to ``end_date`` inclusive.

    Occurrence n is ``anchor + n * step``, always measured from the anchor, so a
    series starting on the 31st lands on the last day of shorter months and
    returns to the 31st afterwards (relativedelta clamps the day of month).
    The end date is compared on the calendar date only. An anchor already past
    the end date yields just the anchor.
    """
    end = as_date(end_date)
    if as_date(anchor) > end:
        return [anchor]

    step = _STEPS[RecurringFrequency(frequency)]
    occurrences: list[D] = []
    n = 0
    while True:
        current = anchor + step * n
        if as_date(current) > end:
            break
        if len(occurrences) >= limit:
            raise ValidationError(f"A recurring series cannot have more than {limit} occurrences")
        occurrences.append(current)
        n += 1
    return occurrences
