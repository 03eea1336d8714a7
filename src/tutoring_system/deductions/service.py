from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_date
from ..common.money import CENT, ZERO, as_float
from ..common.validators import optional_text, parse_enum, require_amount, require_non_empty
from ..core.constants import DEDUCTION_CATEGORIES
from ..core.enums import PeriodType
from ..core.exceptions import NotFoundError, ValidationError
from .model import Deduction, NewDeduction
from .repository import DeductionRepository

logger = logging.getLogger(__name__)

_LABELS = dict(DEDUCTION_CATEGORIES)
_HUNDRED = Decimal("100")


def normalize_period(day: date, period_type: PeriodType) -> date:
    """First day of the month (monthly) or of the year (yearly) containing ``day``."""
    if period_type == PeriodType.MONTHLY:
        return day.replace(day=1)
    return date(day.year, 1, 1)


def deductible(amount: Decimal, percent: Decimal) -> Decimal:
    return (amount * percent / _HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def _category(value: Any) -> str:
    category = require_non_empty(value, "Category")
    if category not in _LABELS:
        raise ValidationError("Invalid category")
    return category


def _percent(value: Any) -> Decimal:
    percent = require_amount(value, "Deduction percentage")
    if percent > _HUNDRED:
        raise ValidationError("Deduction percentage must be between 0 and 100")
    return percent


def _year(value: Any) -> int:
    if not 2000 <= value <= 2100:
        raise ValidationError("Year is out of range")
    return value


class DeductionService:
    def __init__(self, deductions: DeductionRepository):
        self._deductions = deductions

    def get(self, deduction_id: int) -> Deduction:
        deduction = self._deductions.get_by_id(int(deduction_id))
        if not deduction:
            raise NotFoundError("Home office deduction not found")
        return deduction

    def list(self, *, year: Optional[int] = None, category: Optional[str] = None) -> list[Deduction]:
        return list(
            self._deductions.list(
                year=_year(year) if year is not None else None,
                category=_category(category) if category else None,
            )
        )

    def categories(self) -> list[dict[str, str]]:
        return [{"value": value, "label": label} for value, label in DEDUCTION_CATEGORIES]

    def summary(self, *, year: Optional[int]) -> dict[str, Any]:
        """Amounts and deductible amounts per category for one calendar year."""
        if year is None:
            raise ValidationError("Year is required")
        year = _year(year)

        by_category: dict[str, dict] = {}
        total_deductible = ZERO
        for d in self._deductions.list(year=year):
            row = by_category.get(d.category)
            if not row:
                row = {
                    "category": d.category,
                    "label": _LABELS.get(d.category, d.category),
                    "total_amount": ZERO,
                    "total_deductible": ZERO,
                }
                by_category[d.category] = row
            row["total_amount"] += d.amount
            row["total_deductible"] += d.deductible_amount
            total_deductible += d.deductible_amount

        return {
            "year": year,
            "by_category": [
                {
                    **r,
                    "total_amount": as_float(r["total_amount"]),
                    "total_deductible": as_float(r["total_deductible"]),
                }
                for r in sorted(by_category.values(), key=lambda x: x["category"])
            ],
            "total_deductible": as_float(total_deductible),
        }

    def create(self, payload: Mapping[str, Any]) -> Deduction:
        category = _category(payload.get("category"))
        amount = require_amount(payload.get("amount"), "Amount")
        period_type = parse_enum(PeriodType, payload.get("period_type"), "Period type")
        period = parse_iso_date(require_non_empty(payload.get("period"), "Period"))
        percent = _percent(payload.get("deduction_percent"))

        deduction_id = self._deductions.create(
            NewDeduction(
                category=category,
                amount=amount,
                period_type=period_type,
                period=normalize_period(period, period_type),
                deduction_percent=percent,
                deductible_amount=deductible(amount, percent),
                notes=optional_text(payload.get("notes")),
            )
        )
        logger.info("Recorded %s home office deduction %s (%s)", category, deduction_id, period)
        return self.get(deduction_id)

    def update(self, deduction_id: int, payload: Mapping[str, Any]) -> Deduction:
        existing = self.get(deduction_id)

        fields: dict[str, Any] = {}
        if "category" in payload:
            fields["category"] = _category(payload.get("category"))
        if "amount" in payload:
            fields["amount"] = require_amount(payload.get("amount"), "Amount")
        if "period_type" in payload:
            fields["period_type"] = parse_enum(PeriodType, payload.get("period_type"), "Period type")
        if "deduction_percent" in payload:
            fields["deduction_percent"] = _percent(payload.get("deduction_percent"))
        if "notes" in payload:
            fields["notes"] = optional_text(payload.get("notes"))

        period_type = fields.get("period_type", existing.period_type)
        if payload.get("period"):
            fields["period"] = normalize_period(parse_iso_date(str(payload["period"])), period_type)
        elif "period_type" in fields:
            fields["period"] = normalize_period(existing.period, period_type)

        fields["deductible_amount"] = deductible(
            fields.get("amount", existing.amount),
            fields.get("deduction_percent", existing.deduction_percent),
        )
        self._deductions.update(existing.deduction_id, fields)
        return self.get(existing.deduction_id)

    def delete(self, deduction_id: int) -> None:
        if not self._deductions.delete(int(deduction_id)):
            raise NotFoundError("Home office deduction not found")
