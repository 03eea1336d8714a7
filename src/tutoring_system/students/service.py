from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..common.validators import optional_email, optional_text, parse_bool, require_amount, require_non_empty
from ..core.exceptions import ConflictError, NotFoundError
from .model import Family, Student
from .repository import StudentRepository

logger = logging.getLogger(__name__)


def family_of(students: StudentRepository, student: Student, *, include_archived: bool = False) -> list[Student]:
    """The student's family (or just the student when not in one)."""
    if not student.family_id:
        return [student]
    members = list(students.list_family(student.family_id, include_archived=include_archived))
    if all(m.student_id != student.student_id for m in members):
        members.append(student)
    return members


class StudentService:
    def __init__(self, students: StudentRepository):
        self._students = students

    @staticmethod
    def _clean(payload: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
        fields: dict[str, Any] = {}

        for name, label in (("first_name", "First name"), ("last_name", "Last name")):
            if name in payload or not partial:
                fields[name] = require_non_empty(payload.get(name), label)

        for name, label in (("email", "Email"), ("parent_email", "Parent email")):
            if name in payload:
                fields[name] = optional_email(payload.get(name), label)

        for name in ("phone", "parent_full_name", "parent_phone", "subject", "family_id", "notes"):
            if name in payload:
                fields[name] = optional_text(payload.get(name))

        for name, label in (("price_per_lesson", "Price per lesson"), ("price_per_package", "Price per package")):
            if name in payload:
                raw = payload.get(name)
                fields[name] = None if raw in (None, "") else require_amount(raw, label)

        for name in ("use_packages", "archived"):
            if name in payload:
                fields[name] = parse_bool(payload.get(name))

        return fields

    def get(self, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        return student

    def list(self, *, include_archived: bool = False, search: Optional[str] = None) -> list[Student]:
        return list(self._students.list(include_archived=include_archived, search=search))

    def create(self, payload: Mapping[str, Any]) -> Student:
        fields = self._clean(payload, partial=False)
        student_id = self._students.create(fields)
        logger.info("Created student %s (%s %s)", student_id, fields["first_name"], fields["last_name"])
        return self.get(student_id)

    def update(self, student_id: int, payload: Mapping[str, Any]) -> Student:
        self.get(student_id)
        fields = self._clean(payload, partial=True)
        if not self._students.update(int(student_id), fields):
            raise NotFoundError("Student not found")
        return self.get(student_id)

    def set_archived(self, student_id: int, archived: bool) -> Student:
        return self.update(student_id, {"archived": archived})

    def delete(self, student_id: int) -> None:
        self.get(student_id)
        if self._students.has_activity(int(student_id)):
            raise ConflictError("Student has lessons, payments or packages; archive the student instead")
        if not self._students.delete(int(student_id)):
            raise NotFoundError("Student not found")
        logger.info("Deleted student %s", student_id)

    def list_families(self) -> list[Family]:
        grouped: dict[str, list[Student]] = {}
        for s in self._students.list(include_archived=False):
            if s.family_id:
                grouped.setdefault(s.family_id, []).append(s)
        return [Family(family_id=fid, members=members) for fid, members in sorted(grouped.items())]
