from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..common.money import ZERO, as_float
from ..core.enums import LessonStatus, RecurringFrequency


@dataclass(frozen=True)
class NewLesson:
    student_id: int
    date_time: datetime
    duration: int
    subject: str
    price: Decimal
    status: LessonStatus = LessonStatus.SCHEDULED
    notes: Optional[str] = None
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_group_id: Optional[str] = None
    recurring_end_date: Optional[date] = None


@dataclass(frozen=True)
class Lesson:
    lesson_id: int
    student_id: int
    date_time: datetime
    duration: int
    subject: str
    price: Decimal
    status: LessonStatus = LessonStatus.SCHEDULED
    notes: Optional[str] = None
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_group_id: Optional[str] = None
    recurring_end_date: Optional[date] = None
    paid_amount: Decimal = ZERO
    is_paid: bool = False
    package_id: Optional[int] = None
    student_name: Optional[str] = field(default=None, compare=False)

    @property
    def occurrence_id(self) -> int:
        return self.lesson_id

    @property
    def occurs_at(self) -> datetime:
        return self.date_time

    @property
    def outstanding(self) -> Decimal:
        return max(self.price - self.paid_amount, ZERO)

    @property
    def hours(self) -> Decimal:
        return (Decimal(self.duration) / Decimal(60)).quantize(Decimal("0.01"))

    @property
    def is_cancelled(self) -> bool:
        return self.status == LessonStatus.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        return {
            "lesson_id": self.lesson_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "date_time": self.date_time.isoformat(),
            "duration": self.duration,
            "subject": self.subject,
            "price": as_float(self.price),
            "status": self.status.value,
            "notes": self.notes,
            "is_recurring": self.is_recurring,
            "recurring_frequency": self.recurring_frequency.value if self.recurring_frequency else None,
            "recurring_group_id": self.recurring_group_id,
            "recurring_end_date": self.recurring_end_date.isoformat() if self.recurring_end_date else None,
            "paid_amount": as_float(self.paid_amount),
            "is_paid": self.is_paid,
            "outstanding": as_float(self.outstanding),
            "package_id": self.package_id,
        }


@dataclass(frozen=True)
class LessonDeletion:
    """Everything one delete request changes, applied in a single transaction."""

    lesson_ids: list[int]
    # Money already paid on removed lessons goes back on account.
    credit_refunds: dict[int, Decimal] = field(default_factory=dict)
    # Hours returned to packages that covered removed lessons.
    package_hour_refunds: dict[int, Decimal] = field(default_factory=dict)
    # Series truncation: surviving members get a new end date.
    group_id: Optional[str] = None
    new_end_date: Optional[date] = None


@dataclass(frozen=True)
class PaidShare:
    """Money one payment put on a lesson, keyed to the student who made the payment."""

    lesson_id: int
    payer_id: int
    amount: Decimal
