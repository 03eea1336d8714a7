from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..common.money import as_float
from ..core.enums import PeriodType


@dataclass(frozen=True)
class NewDeduction:
    category: str
    amount: Decimal
    period_type: PeriodType
    period: date
    deduction_percent: Decimal
    deductible_amount: Decimal
    notes: Optional[str] = None


@dataclass(frozen=True)
class Deduction:
    """Home office cost for one month or year; ``period`` is the first day of it."""

    deduction_id: int
    category: str
    amount: Decimal
    period_type: PeriodType
    period: date
    deduction_percent: Decimal
    deductible_amount: Decimal
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "deduction_id": self.deduction_id,
            "category": self.category,
            "amount": as_float(self.amount),
            "period_type": self.period_type.value,
            "period": self.period.isoformat(),
            "deduction_percent": as_float(self.deduction_percent),
            "deductible_amount": as_float(self.deductible_amount),
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
