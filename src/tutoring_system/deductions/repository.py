from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from .model import Deduction, NewDeduction


class DeductionRepository(Protocol):
    def get_by_id(self, deduction_id: int) -> Optional[Deduction]:
        raise NotImplementedError

    def list(self, *, year: Optional[int] = None, category: Optional[str] = None) -> Sequence[Deduction]:
        """Deductions ordered by period descending, then category."""

        raise NotImplementedError

    def create(self, deduction: NewDeduction) -> int:
        raise NotImplementedError

    def update(self, deduction_id: int, fields: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, deduction_id: int) -> bool:
        raise NotImplementedError
