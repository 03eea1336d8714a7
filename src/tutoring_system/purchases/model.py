from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from ..common.money import as_float
from ..core.constants import DEFAULT_CATEGORY
from ..core.enums import RecurringFrequency


@dataclass(frozen=True)
class NewPurchase:
    date: date
    description: str
    amount: Decimal
    category: str = DEFAULT_CATEGORY
    vendor: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_group_id: Optional[str] = None
    recurring_end_date: Optional[date] = None


@dataclass(frozen=True)
class Purchase:
    """Business expense; recurring ones share a recurring_group_id."""

    purchase_id: int
    date: date
    description: str
    amount: Decimal
    category: str = DEFAULT_CATEGORY
    vendor: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_group_id: Optional[str] = None
    recurring_end_date: Optional[date] = None

    @property
    def occurrence_id(self) -> int:
        return self.purchase_id

    @property
    def occurs_at(self) -> date:
        return self.date

    def to_dict(self) -> dict[str, Any]:
        return {
            "purchase_id": self.purchase_id,
            "date": self.date.isoformat(),
            "description": self.description,
            "amount": as_float(self.amount),
            "category": self.category,
            "vendor": self.vendor,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "is_recurring": self.is_recurring,
            "recurring_frequency": self.recurring_frequency.value if self.recurring_frequency else None,
            "recurring_group_id": self.recurring_group_id,
            "recurring_end_date": self.recurring_end_date.isoformat() if self.recurring_end_date else None,
        }
