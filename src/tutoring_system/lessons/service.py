from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime, today_local
from ..common.money import ZERO
from ..common.validators import optional_text, parse_bool, parse_enum, require_amount, require_int, require_non_empty
from ..core.constants import MIN_LESSON_MINUTES
from ..core.enums import EditScope, LessonStatus, RecurringFrequency
from ..core.exceptions import NotFoundError, ValidationError
from ..recurrence import expand_occurrences, new_group_id, remaining_end_date, resolve_scope
from ..students.repository import StudentRepository
from .model import Lesson, LessonDeletion, NewLesson, PaidShare
from .repository import LessonRepository

logger = logging.getLogger(__name__)


class LessonService:
    def __init__(self, lessons: LessonRepository, students: StudentRepository):
        self._lessons = lessons
        self._students = students

    def get(self, lesson_id: int) -> Lesson:
        lesson = self._lessons.get_by_id(int(lesson_id))
        if not lesson:
            raise NotFoundError("Lesson not found")
        return lesson

    def list(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        student_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[Lesson]:
        return list(
            self._lessons.list(
                start=datetime.combine(start, time.min) if start else None,
                end=datetime.combine(end, time.max) if end else None,
                student_ids=[int(student_id)] if student_id else None,
                status=parse_enum(LessonStatus, status, "Status") if status else None,
            )
        )

    def upcoming(self, *, day: Optional[date] = None) -> list[Lesson]:
        """Scheduled lessons on ``day`` (tomorrow by default), for reminders."""
        day = day or today_local() + timedelta(days=1)
        return list(
            self._lessons.list(
                start=datetime.combine(day, time.min),
                end=datetime.combine(day, time.max),
                status=LessonStatus.SCHEDULED,
            )
        )

    def create(self, payload: Mapping[str, Any]) -> list[Lesson]:
        """Create one lesson, or a whole series when ``is_recurring`` is set."""
        student_id = require_int(payload.get("student_id"), "Student", minimum=1)
        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")

        date_time = parse_iso_datetime(require_non_empty(payload.get("date_time"), "Date/time"))
        duration = require_int(payload.get("duration", 60), "Duration", minimum=MIN_LESSON_MINUTES)
        subject = require_non_empty(payload.get("subject") or student.subject, "Subject")

        raw_price = payload.get("price")
        if raw_price in (None, ""):
            if student.price_per_lesson is None:
                raise ValidationError("Price is required (student has no default price per lesson)")
            price = student.price_per_lesson
        else:
            price = require_amount(raw_price, "Price")

        status = parse_enum(LessonStatus, payload.get("status") or LessonStatus.SCHEDULED.value, "Status")
        notes = optional_text(payload.get("notes"))

        if not parse_bool(payload.get("is_recurring")):
            ids = self._lessons.create_many(
                [
                    NewLesson(
                        student_id=student_id,
                        date_time=date_time,
                        duration=duration,
                        subject=subject,
                        price=price,
                        status=status,
                        notes=notes,
                    )
                ]
            )
            return [self.get(ids[0])]

        if not payload.get("recurring_frequency") or not payload.get("recurring_end_date"):
            raise ValidationError("Frequency and end date are required for recurring lessons")
        frequency = parse_enum(RecurringFrequency, payload.get("recurring_frequency"), "Frequency")
        end_date = parse_iso_date(str(payload.get("recurring_end_date")))

        group_id = new_group_id()
        series = [
            NewLesson(
                student_id=student_id,
                date_time=occurrence,
                duration=duration,
                subject=subject,
                price=price,
                status=status,
                notes=notes,
                is_recurring=True,
                recurring_frequency=frequency,
                recurring_group_id=group_id,
                recurring_end_date=end_date,
            )
            for occurrence in expand_occurrences(date_time, frequency, end_date)
        ]
        self._lessons.create_many(series)
        logger.info(
            "Created %d %s lessons for student %s (group %s)", len(series), frequency.value, student_id, group_id
        )
        return list(self._lessons.list_group(group_id))

    def _targets(self, lesson: Lesson, scope: EditScope) -> list[Lesson]:
        siblings = self._lessons.list_group(lesson.recurring_group_id) if lesson.recurring_group_id else []
        return resolve_scope(lesson, siblings, scope)

    def update(self, lesson_id: int, payload: Mapping[str, Any], *, scope: EditScope = EditScope.SINGLE) -> list[Lesson]:
        lesson = self.get(lesson_id)
        if "student_id" in payload and require_int(payload["student_id"], "Student") != lesson.student_id:
            raise ValidationError("A lesson cannot be moved to another student")

        changes: dict[str, Any] = {}
        if "subject" in payload:
            changes["subject"] = require_non_empty(payload.get("subject"), "Subject")
        if "duration" in payload:
            changes["duration"] = require_int(payload.get("duration"), "Duration", minimum=MIN_LESSON_MINUTES)
        if "price" in payload:
            changes["price"] = require_amount(payload.get("price"), "Price")
        if "status" in payload:
            changes["status"] = parse_enum(LessonStatus, payload.get("status"), "Status")
        if "notes" in payload:
            changes["notes"] = optional_text(payload.get("notes"))

        shift = timedelta(0)
        if payload.get("date_time"):
            shift = parse_iso_datetime(str(payload["date_time"])) - lesson.date_time

        updated: list[Lesson] = []
        for target in self._targets(lesson, scope):
            if target.package_id and "duration" in changes and changes["duration"] != target.duration:
                raise ValidationError("Lesson is covered by a package; its duration cannot change")

            new = replace(target, date_time=target.date_time + shift, **changes)
            if new.package_id:
                # Package coverage always pays the full price.
                new = replace(new, paid_amount=new.price)
            elif new.paid_amount > new.price:
                raise ValidationError(
                    f"Price {new.price} is below the {new.paid_amount} already paid for the lesson on "
                    f"{target.date_time:%Y-%m-%d}"
                )
            updated.append(replace(new, is_paid=new.paid_amount >= new.price))

        self._lessons.update_many(updated)
        if len(updated) > 1:
            logger.info("Updated %d lessons of series %s", len(updated), lesson.recurring_group_id)
        return [self.get(ls.lesson_id) for ls in updated]

    def delete(self, lesson_id: int, *, scope: EditScope = EditScope.SINGLE) -> int:
        lesson = self.get(lesson_id)
        targets = self._targets(lesson, scope)

        paid = [t for t in targets if not t.package_id and t.paid_amount > 0]
        shares: dict[int, list[PaidShare]] = {}
        for share in self._lessons.paid_shares([t.lesson_id for t in paid]):
            shares.setdefault(share.lesson_id, []).append(share)

        credit_refunds: dict[int, Decimal] = {}
        package_refunds: dict[int, Decimal] = {}
        for t in targets:
            if t.package_id:
                package_refunds[t.package_id] = package_refunds.get(t.package_id, ZERO) + t.hours
        for t in paid:
            # Credit goes back to whoever paid; paid money without a payment link to the lesson's student.
            left = t.paid_amount
            for share in shares.get(t.lesson_id, []):
                amount = min(share.amount, left)
                if amount > 0:
                    credit_refunds[share.payer_id] = credit_refunds.get(share.payer_id, ZERO) + amount
                    left -= amount
            if left > 0:
                credit_refunds[t.student_id] = credit_refunds.get(t.student_id, ZERO) + left

        group_id: Optional[str] = None
        new_end: Optional[date] = None
        if scope == EditScope.FUTURE and lesson.recurring_group_id:
            group_id = lesson.recurring_group_id
            new_end = remaining_end_date(self._lessons.list_group(group_id), targets)

        deleted = self._lessons.delete_many(
            LessonDeletion(
                lesson_ids=[t.lesson_id for t in targets],
                credit_refunds=credit_refunds,
                package_hour_refunds=package_refunds,
                group_id=group_id,
                new_end_date=new_end,
            )
        )
        if credit_refunds:
            logger.info("Deleted paid lessons; credit returned: %s", {k: str(v) for k, v in credit_refunds.items()})
        return deleted
