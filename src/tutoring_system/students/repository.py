from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from .model import Student

# Columns a caller may write through create()/update().
STUDENT_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "parent_full_name",
    "parent_email",
    "parent_phone",
    "subject",
    "price_per_lesson",
    "price_per_package",
    "use_packages",
    "family_id",
    "archived",
    "notes",
)


class StudentRepository(Protocol):
    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def list(self, *, include_archived: bool = False, search: Optional[str] = None) -> Sequence[Student]:
        raise NotImplementedError

    def list_family(self, family_id: str, *, include_archived: bool = False) -> Sequence[Student]:
        """Members of one family ordered by student_id."""

        raise NotImplementedError

    def create(self, fields: Mapping[str, Any]) -> int:
        raise NotImplementedError

    def update(self, student_id: int, fields: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, student_id: int) -> bool:
        raise NotImplementedError

    def has_activity(self, student_id: int) -> bool:
        """True when lessons, payments or packages reference the student."""

        raise NotImplementedError
