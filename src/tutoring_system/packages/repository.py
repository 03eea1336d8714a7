from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..payments.model import NewPayment
from .model import NewPackage, Package


class PackageRepository(Protocol):
    def get_by_id(self, package_id: int) -> Optional[Package]:
        raise NotImplementedError

    def list(self, *, student_id: Optional[int] = None) -> Sequence[Package]:
        """Packages ordered by purchase date, newest first."""

        raise NotImplementedError

    def count_lessons(self, package_id: int) -> int:
        raise NotImplementedError

    def create(
        self,
        package: NewPackage,
        *,
        payment: Optional[NewPayment] = None,
        existing_payment_id: Optional[int] = None,
    ) -> int:
        """Insert the package and link its payment (new or existing) in one transaction."""

        raise NotImplementedError

    def update(self, package_id: int, fields: Mapping[str, Any]) -> None:
        raise NotImplementedError

    def add_hours_used(self, package_id: int, hours: Decimal) -> None:
        raise NotImplementedError

    def cover_lesson(self, package_id: int, *, lesson_id: int, hours: Decimal, price: Decimal) -> None:
        """Mark the lesson fully paid by the package and consume its hours atomically."""

        raise NotImplementedError

    def delete(self, package_id: int) -> bool:
        raise NotImplementedError
