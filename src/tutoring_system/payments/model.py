from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..common.money import ZERO, as_float
from ..core.constants import PACKAGE_NOTE_PREFIX
from ..core.enums import PaymentMethod


@dataclass(frozen=True)
class PaymentLink:
    """Part of a payment applied to one lesson (row of lesson_payments)."""

    lesson_id: int
    payment_id: int
    amount: Decimal
    student_id: Optional[int] = None
    lesson_date_time: Optional[datetime] = None
    subject: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "lesson_id": self.lesson_id,
            "student_id": self.student_id,
            "amount": as_float(self.amount),
            "lesson_date_time": self.lesson_date_time.isoformat() if self.lesson_date_time else None,
            "subject": self.subject,
        }


@dataclass(frozen=True)
class NewPayment:
    student_id: int
    amount: Decimal
    date: date
    method: PaymentMethod
    notes: Optional[str] = None
    family_id: Optional[str] = None
    package_id: Optional[int] = None


@dataclass(frozen=True)
class Payment:
    payment_id: int
    student_id: int
    amount: Decimal
    date: date
    method: PaymentMethod
    notes: Optional[str] = None
    family_id: Optional[str] = None
    package_id: Optional[int] = None
    created_at: Optional[datetime] = None
    student_name: Optional[str] = field(default=None, compare=False)
    links: list[PaymentLink] = field(default_factory=list, compare=False)

    @property
    def allocated(self) -> Decimal:
        return sum((link.amount for link in self.links), ZERO)

    @property
    def is_package_payment(self) -> bool:
        return self.package_id is not None or (self.notes or "").startswith(PACKAGE_NOTE_PREFIX)

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "amount": as_float(self.amount),
            "date": self.date.isoformat(),
            "method": self.method.value,
            "notes": self.notes,
            "family_id": self.family_id,
            "is_family_payment": self.family_id is not None,
            "package_id": self.package_id,
            "is_package_payment": self.is_package_payment,
            "allocated": as_float(self.allocated),
            "lessons": [link.to_dict() for link in self.links],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class LessonAllocation:
    """New paid state of one lesson after applying (or reversing) money."""

    lesson_id: int
    student_id: int
    amount: Decimal
    new_paid_amount: Decimal
    is_paid: bool


@dataclass(frozen=True)
class AllocationResult:
    allocations: list[LessonAllocation]
    credit: Decimal

    @property
    def applied(self) -> Decimal:
        return sum((a.amount for a in self.allocations), ZERO)

    @property
    def lessons_paid(self) -> int:
        return sum(1 for a in self.allocations if a.is_paid)

    @property
    def lessons_partially_paid(self) -> int:
        return sum(1 for a in self.allocations if not a.is_paid)
