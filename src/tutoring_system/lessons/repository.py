from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import LessonStatus
from .model import Lesson, LessonDeletion, NewLesson, PaidShare


class LessonRepository(Protocol):
    def get_by_id(self, lesson_id: int) -> Optional[Lesson]:
        raise NotImplementedError

    def list(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        student_ids: Optional[Iterable[int]] = None,
        status: Optional[LessonStatus] = None,
    ) -> Sequence[Lesson]:
        """Lessons ordered by date_time ascending (then lesson_id)."""

        raise NotImplementedError

    def list_group(self, group_id: str) -> Sequence[Lesson]:
        raise NotImplementedError

    def list_unpaid(self, student_ids: Iterable[int]) -> Sequence[Lesson]:
        """Not cancelled, not fully paid; ordered by (date_time, lesson_id)."""

        raise NotImplementedError

    def create_many(self, lessons: Sequence[NewLesson]) -> list[int]:
        """Insert all lessons in one transaction; returns new ids in input order."""

        raise NotImplementedError

    def update_many(self, lessons: Sequence[Lesson]) -> None:
        """Persist the mutable fields of every lesson in one transaction."""

        raise NotImplementedError

    def paid_shares(self, lesson_ids: Sequence[int]) -> Sequence[PaidShare]:
        """Payment links of the given lessons with the paying student of each."""

        raise NotImplementedError

    def delete_many(self, plan: LessonDeletion) -> int:
        raise NotImplementedError
