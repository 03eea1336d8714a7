from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from .model import LessonAllocation, NewPayment, Payment


class PaymentRepository(Protocol):
    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        """Payment with its lesson links."""

        raise NotImplementedError

    def list(
        self,
        *,
        student_ids: Optional[Iterable[int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Payment]:
        """Payments ordered by date descending, with lesson links."""

        raise NotImplementedError

    def record(
        self,
        payment: NewPayment,
        allocations: Sequence[LessonAllocation],
        credit_deltas: Mapping[int, Decimal],
    ) -> int:
        """Insert the payment, its lesson links, lesson paid state and credit changes atomically."""

        raise NotImplementedError

    def link(self, payment_id: int, allocation: LessonAllocation, credit_deltas: Mapping[int, Decimal]) -> None:
        """Add ``allocation.amount`` to the (lesson, payment) link and update the lesson atomically."""

        raise NotImplementedError

    def update(self, payment_id: int, fields: Mapping[str, Any], credit_deltas: Mapping[int, Decimal]) -> None:
        raise NotImplementedError

    def delete(
        self,
        payment_id: int,
        reversals: Sequence[LessonAllocation],
        credit_deltas: Mapping[int, Decimal],
        *,
        package_id: Optional[int] = None,
    ) -> bool:
        """Reverse lesson state, adjust credit, drop the payment (and its package) atomically."""

        raise NotImplementedError
