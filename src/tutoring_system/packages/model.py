from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from ..common.money import ZERO, as_float


@dataclass(frozen=True)
class NewPackage:
    student_id: int
    name: str
    total_hours: Decimal
    price: Decimal
    purchased_at: date
    expires_at: Optional[date] = None


@dataclass(frozen=True)
class Package:
    """Prepaid bundle of lesson hours for one student."""

    package_id: int
    student_id: int
    name: str
    total_hours: Decimal
    hours_used: Decimal
    price: Decimal
    purchased_at: date
    expires_at: Optional[date] = None
    payment_id: Optional[int] = None
    student_name: Optional[str] = field(default=None, compare=False)

    @property
    def hours_remaining(self) -> Decimal:
        return max(self.total_hours - self.hours_used, ZERO)

    def is_expired(self, on: date) -> bool:
        return self.expires_at is not None and on > self.expires_at

    @property
    def is_exhausted(self) -> bool:
        return self.hours_remaining <= 0

    @property
    def utilization(self) -> Decimal:
        """Percentage of hours used (0-100)."""
        if self.total_hours <= 0:
            return ZERO
        return (self.hours_used * 100 / self.total_hours).quantize(Decimal("0.1"))

    def to_dict(self, *, today: Optional[date] = None) -> dict[str, Any]:
        data = {
            "package_id": self.package_id,
            "student_id": self.student_id,
            "student_name": self.student_name,
            "name": self.name,
            "total_hours": as_float(self.total_hours),
            "hours_used": as_float(self.hours_used),
            "hours_remaining": as_float(self.hours_remaining),
            "price": as_float(self.price),
            "purchased_at": self.purchased_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "payment_id": self.payment_id,
            "utilization": as_float(self.utilization),
            "exhausted": self.is_exhausted,
        }
        if today is not None:
            data["expired"] = self.is_expired(today)
        return data
