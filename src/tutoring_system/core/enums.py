from __future__ import annotations

from enum import Enum


class LessonStatus(str, Enum):
    """Lifecycle of a scheduled lesson."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RecurringFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class EditScope(str, Enum):
    """Which members of a recurring series an edit/delete touches."""

    SINGLE = "single"
    FUTURE = "future"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    CHEQUE = "cheque"
    OTHER = "other"


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
