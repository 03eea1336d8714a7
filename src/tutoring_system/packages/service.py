from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from ..common.datetime_utils import as_date, parse_iso_date, parse_optional_date, today_local
from ..common.validators import parse_enum, require_amount, require_int, require_non_empty
from ..core.constants import PACKAGE_NOTE_PREFIX
from ..core.enums import PaymentMethod
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..lessons.repository import LessonRepository
from ..payments.model import NewPayment
from ..payments.repository import PaymentRepository
from ..payments.service import validate_package_payment
from ..students.repository import StudentRepository
from .model import NewPackage, Package
from .repository import PackageRepository

logger = logging.getLogger(__name__)


def _hours(value: Any, field_name: str) -> Decimal:
    try:
        hours = Decimal(str(value).strip()).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if hours <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return hours


class PackageService:
    def __init__(
        self,
        packages: PackageRepository,
        students: StudentRepository,
        lessons: LessonRepository,
        payments: PaymentRepository,
    ):
        self._packages = packages
        self._students = students
        self._lessons = lessons
        self._payments = payments

    def get(self, package_id: int) -> Package:
        package = self._packages.get_by_id(int(package_id))
        if not package:
            raise NotFoundError("Package not found")
        return package

    def list(self, *, student_id: Optional[int] = None) -> list[Package]:
        return list(self._packages.list(student_id=student_id))

    def create(self, payload: Mapping[str, Any]) -> Package:
        """Sell a package: records its payment (or adopts an existing one) and the package together.

        ``total_lessons`` is accepted as an alias for ``total_hours`` (one-hour lessons).
        """
        student_id = require_int(payload.get("student_id"), "Student", minimum=1)
        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")

        name = require_non_empty(payload.get("name"), "Package name")
        raw_hours = payload.get("total_hours", payload.get("total_lessons"))
        total_hours = _hours(raw_hours, "Total hours")
        purchased_at = parse_iso_date(str(payload["purchased_at"])) if payload.get("purchased_at") else today_local()
        expires_at = parse_optional_date(payload.get("expires_at"))
        if expires_at and expires_at < purchased_at:
            raise ValidationError("Expiry date cannot be before the purchase date")

        payment: Optional[NewPayment] = None
        existing_payment_id: Optional[int] = None
        if payload.get("payment_id"):
            existing = self._payments.get_by_id(require_int(payload["payment_id"], "Payment"))
            if not existing or existing.student_id != student_id:
                raise NotFoundError("Payment not found for this student")
            if existing.package_id is not None:
                raise ConflictError("Payment is already linked to a package")
            if not existing.is_package_payment:
                raise ValidationError("Only package payments can be attached to a package")
            existing_payment_id = existing.payment_id
            price = existing.amount
        else:
            raw_price = payload.get("price")
            price = student.price_per_package if raw_price in (None, "") else require_amount(raw_price, "Price")
            if price is None:
                raise ValidationError("Price is required (student has no package price)")
            payment = NewPayment(
                student_id=student_id,
                amount=price,
                date=purchased_at,
                method=parse_enum(PaymentMethod, payload.get("method") or PaymentMethod.CASH.value, "Payment method"),
                notes=f"{PACKAGE_NOTE_PREFIX}{name}",
            )
        validate_package_payment(student, price)

        package_id = self._packages.create(
            NewPackage(
                student_id=student_id,
                name=name,
                total_hours=total_hours,
                price=price,
                purchased_at=purchased_at,
                expires_at=expires_at,
            ),
            payment=payment,
            existing_payment_id=existing_payment_id,
        )
        logger.info("Created package %s (%s h) for student %s", package_id, total_hours, student_id)
        return self.get(package_id)

    def update(self, package_id: int, payload: Mapping[str, Any]) -> Package:
        package = self.get(package_id)
        fields: dict[str, Any] = {}
        if "name" in payload:
            fields["name"] = require_non_empty(payload.get("name"), "Package name")
        if "total_hours" in payload:
            total = _hours(payload.get("total_hours"), "Total hours")
            if total < package.hours_used:
                raise ValidationError("Total hours cannot be less than the hours already used")
            fields["total_hours"] = total
        if "expires_at" in payload:
            fields["expires_at"] = parse_optional_date(payload.get("expires_at"))
        self._packages.update(package.package_id, fields)
        return self.get(package.package_id)

    def apply_to_lesson(self, package_id: int, lesson_id: Any) -> Package:
        """Cover a lesson with package hours instead of money."""
        package = self.get(package_id)
        lesson = self._lessons.get_by_id(require_int(lesson_id, "Lesson"))
        if not lesson or lesson.student_id != package.student_id:
            raise NotFoundError("Lesson not found or does not belong to the package's student")
        if lesson.package_id is not None:
            raise ConflictError("Lesson is already covered by a package")
        if lesson.is_cancelled:
            raise ValidationError("Cancelled lessons cannot use package hours")
        if lesson.paid_amount > 0:
            raise ConflictError("Lesson already has payments applied")
        if package.is_expired(as_date(lesson.date_time)):
            raise ValidationError(f"Package expired on {package.expires_at:%Y-%m-%d}")
        if lesson.hours > package.hours_remaining:
            raise ValidationError(
                f"Package has {package.hours_remaining} hour(s) left; the lesson needs {lesson.hours}"
            )

        self._packages.cover_lesson(package.package_id, lesson_id=lesson.lesson_id, hours=lesson.hours, price=lesson.price)
        return self.get(package.package_id)

    def complete(self, package_id: int, hours: Any = None) -> Package:
        """Record hours used outside tracked lessons (clamped at the package total)."""
        package = self.get(package_id)
        used = _hours(hours if hours not in (None, "") else 1, "Hours used")
        self._packages.add_hours_used(package.package_id, used)
        return self.get(package.package_id)

    def delete(self, package_id: int) -> None:
        package = self.get(package_id)
        if self._packages.count_lessons(package.package_id) > 0:
            raise ConflictError("Package covers lessons and cannot be deleted")
        if not self._packages.delete(package.package_id):
            raise NotFoundError("Package not found")
        logger.info("Deleted package %s", package.package_id)
