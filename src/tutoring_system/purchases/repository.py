from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import NewPurchase, Purchase


class PurchaseRepository(Protocol):
    def get_by_id(self, purchase_id: int) -> Optional[Purchase]:
        raise NotImplementedError

    def list(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        category: Optional[str] = None,
    ) -> Sequence[Purchase]:
        """Purchases ordered by date descending."""

        raise NotImplementedError

    def list_group(self, group_id: str) -> Sequence[Purchase]:
        raise NotImplementedError

    def categories(self) -> Sequence[str]:
        raise NotImplementedError

    def create_many(self, purchases: Sequence[NewPurchase]) -> list[int]:
        raise NotImplementedError

    def update_many(self, purchases: Sequence[Purchase]) -> None:
        raise NotImplementedError

    def delete_many(
        self,
        purchase_ids: Sequence[int],
        *,
        group_id: Optional[str] = None,
        new_end_date: Optional[date] = None,
    ) -> int:
        """Delete purchases; optionally move the surviving series' end date, atomically."""

        raise NotImplementedError
