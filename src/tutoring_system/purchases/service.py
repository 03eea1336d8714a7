from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_date
from ..common.validators import optional_text, parse_bool, parse_enum, require_amount, require_non_empty
from ..core.constants import DEFAULT_CATEGORY
from ..core.enums import EditScope, RecurringFrequency
from ..core.exceptions import NotFoundError, ValidationError
from ..recurrence import expand_occurrences, new_group_id, remaining_end_date, resolve_scope
from .model import NewPurchase, Purchase
from .repository import PurchaseRepository

logger = logging.getLogger(__name__)


class PurchaseService:
    def __init__(self, purchases: PurchaseRepository):
        self._purchases = purchases

    def get(self, purchase_id: int) -> Purchase:
        purchase = self._purchases.get_by_id(int(purchase_id))
        if not purchase:
            raise NotFoundError("Purchase not found")
        return purchase

    def list(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        category: Optional[str] = None,
    ) -> list[Purchase]:
        if start and end and start > end:
            raise ValidationError("Start date must be on or before end date")
        return list(self._purchases.list(start=start, end=end, category=optional_text(category)))

    def categories(self) -> list[str]:
        return list(self._purchases.categories())

    def create(self, payload: Mapping[str, Any]) -> list[Purchase]:
        purchase_date = parse_iso_date(require_non_empty(payload.get("date"), "Date"))
        description = require_non_empty(payload.get("description"), "Description")
        amount = require_amount(payload.get("amount"), "Amount")
        fields = dict(
            description=description,
            amount=amount,
            category=optional_text(payload.get("category")) or DEFAULT_CATEGORY,
            vendor=optional_text(payload.get("vendor")),
            payment_method=optional_text(payload.get("payment_method")),
            notes=optional_text(payload.get("notes")),
        )

        if not parse_bool(payload.get("is_recurring")):
            ids = self._purchases.create_many([NewPurchase(date=purchase_date, **fields)])
            return [self.get(ids[0])]

        if not payload.get("recurring_frequency") or not payload.get("recurring_end_date"):
            raise ValidationError("Frequency and end date are required for recurring purchases")
        frequency = parse_enum(RecurringFrequency, payload.get("recurring_frequency"), "Frequency")
        end_date = parse_iso_date(str(payload.get("recurring_end_date")))

        group_id = new_group_id()
        series = [
            NewPurchase(
                date=occurrence,
                is_recurring=True,
                recurring_frequency=frequency,
                recurring_group_id=group_id,
                recurring_end_date=end_date,
                **fields,
            )
            for occurrence in expand_occurrences(purchase_date, frequency, end_date)
        ]
        self._purchases.create_many(series)
        logger.info("Created %d %s purchases '%s' (group %s)", len(series), frequency.value, description, group_id)
        return list(self._purchases.list_group(group_id))

    def _targets(self, purchase: Purchase, scope: EditScope) -> list[Purchase]:
        siblings = self._purchases.list_group(purchase.recurring_group_id) if purchase.recurring_group_id else []
        return resolve_scope(purchase, siblings, scope)

    def update(
        self, purchase_id: int, payload: Mapping[str, Any], *, scope: EditScope = EditScope.SINGLE
    ) -> list[Purchase]:
        purchase = self.get(purchase_id)

        changes: dict[str, Any] = {}
        if "description" in payload:
            changes["description"] = require_non_empty(payload.get("description"), "Description")
        if "amount" in payload:
            changes["amount"] = require_amount(payload.get("amount"), "Amount")
        if "category" in payload:
            changes["category"] = optional_text(payload.get("category")) or DEFAULT_CATEGORY
        if "vendor" in payload:
            changes["vendor"] = optional_text(payload.get("vendor"))
        if "payment_method" in payload:
            changes["payment_method"] = optional_text(payload.get("payment_method"))
        if "notes" in payload:
            changes["notes"] = optional_text(payload.get("notes"))

        shift = timedelta(0)
        if payload.get("date"):
            shift = parse_iso_date(str(payload["date"])) - purchase.date

        updated = [replace(t, date=t.date + shift, **changes) for t in self._targets(purchase, scope)]
        self._purchases.update_many(updated)
        if len(updated) > 1:
            logger.info("Updated %d purchases of series %s", len(updated), purchase.recurring_group_id)
        return [self.get(p.purchase_id) for p in updated]

    def delete(self, purchase_id: int, *, scope: EditScope = EditScope.SINGLE) -> int:
        purchase = self.get(purchase_id)
        targets = self._targets(purchase, scope)

        group_id: Optional[str] = None
        new_end: Optional[date] = None
        if scope == EditScope.FUTURE and purchase.recurring_group_id:
            group_id = purchase.recurring_group_id
            new_end = remaining_end_date(self._purchases.list_group(group_id), targets)

        return self._purchases.delete_many(
            [t.purchase_id for t in targets], group_id=group_id, new_end_date=new_end
        )
