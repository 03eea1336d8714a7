from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from ..common.money import ZERO, as_float


@dataclass(frozen=True)
class Student:
    """A tutored student; ``family_id`` groups siblings billed together."""

    student_id: int
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    parent_full_name: Optional[str] = None
    parent_email: Optional[str] = None
    parent_phone: Optional[str] = None
    subject: Optional[str] = None
    price_per_lesson: Optional[Decimal] = None
    price_per_package: Optional[Decimal] = None
    use_packages: bool = False
    family_id: Optional[str] = None
    credit: Decimal = ZERO
    archived: bool = False
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "parent_full_name": self.parent_full_name,
            "parent_email": self.parent_email,
            "parent_phone": self.parent_phone,
            "subject": self.subject,
            "price_per_lesson": as_float(self.price_per_lesson) if self.price_per_lesson is not None else None,
            "price_per_package": as_float(self.price_per_package) if self.price_per_package is not None else None,
            "use_packages": self.use_packages,
            "family_id": self.family_id,
            "credit": as_float(self.credit),
            "archived": self.archived,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class Family:
    """Read-model: students sharing a family_id."""

    family_id: str
    members: list[Student] = field(default_factory=list)

    @property
    def credit(self) -> Decimal:
        return sum((m.credit for m in self.members), ZERO)

    def to_dict(self) -> dict[str, Any]:
        return {
            "family_id": self.family_id,
            "credit": as_float(self.credit),
            "members": [
                {"student_id": m.student_id, "full_name": m.full_name, "archived": m.archived}
                for m in self.members
            ],
        }
