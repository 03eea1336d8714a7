from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_date, today_local
from ..common.money import ZERO, as_float
from ..common.validators import optional_text, parse_bool, parse_enum, require_amount, require_int
from ..core.constants import PACKAGE_NOTE_PREFIX, PACKAGE_PRICE_TOLERANCE
from ..core.enums import PaymentMethod
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..lessons.repository import LessonRepository
from ..packages.repository import PackageRepository
from ..students.model import Student
from ..students.repository import StudentRepository
from ..students.service import family_of
from .allocator import allocate_payment, reverse_allocations
from .model import LessonAllocation, NewPayment, Payment
from .repository import PaymentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentReceipt:
    """Outcome of recording a payment, returned to the client."""

    payment: Payment
    lessons_paid: int
    lessons_partially_paid: int
    credit: Decimal
    family_members: list[Student]

    def to_dict(self) -> dict[str, Any]:
        data = self.payment.to_dict()
        data.update(
            {
                "lessons_paid": self.lessons_paid,
                "lessons_partially_paid": self.lessons_partially_paid,
                "current_credit": as_float(self.credit),
            }
        )
        if len(self.family_members) > 1:
            data["family_members"] = [
                {"student_id": m.student_id, "full_name": m.full_name} for m in self.family_members
            ]
        return data


def validate_package_payment(student: Student, amount: Decimal) -> None:
    if not student.use_packages:
        raise ValidationError("Student does not use packages. Enable packages for this student first.")
    if student.price_per_package is None:
        raise ValidationError("Student does not have a package price set")
    if abs(amount - student.price_per_package) > PACKAGE_PRICE_TOLERANCE:
        raise ValidationError(
            f"Package payment amount ({amount:.2f}) must match the student's package price "
            f"({student.price_per_package:.2f})"
        )


class PaymentService:
    def __init__(
        self,
        payments: PaymentRepository,
        lessons: LessonRepository,
        students: StudentRepository,
        packages: PackageRepository,
    ):
        self._payments = payments
        self._lessons = lessons
        self._students = students
        self._packages = packages

    def _student(self, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        return student

    def get(self, payment_id: int) -> Payment:
        payment = self._payments.get_by_id(int(payment_id))
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def list(
        self,
        *,
        student_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[Payment]:
        return list(self._payments.list(student_ids=[int(student_id)] if student_id else None, start=start, end=end))

    def record(self, payload: Mapping[str, Any]) -> PaymentReceipt:
        """Record a payment and apply it to the oldest unpaid lessons.

        With ``apply_to_family`` the unpaid lessons of every family member are
        pooled, as is any credit the members already hold. What is left after
        the lessons are covered becomes the paying student's credit.
        """
        student = self._student(require_int(payload.get("student_id"), "Student", minimum=1))
        amount = require_amount(payload.get("amount"), "Amount", allow_zero=False)
        if not payload.get("method"):
            raise ValidationError("Payment method is required")
        method = parse_enum(PaymentMethod, payload.get("method"), "Payment method")
        pay_date = parse_iso_date(str(payload["date"])) if payload.get("date") else today_local()
        notes = optional_text(payload.get("notes"))
        apply_to_family = parse_bool(payload.get("apply_to_family"))

        if notes and notes.startswith(PACKAGE_NOTE_PREFIX):
            if apply_to_family:
                raise ValidationError("Package payments cannot be applied to families. Select a single student.")
            validate_package_payment(student, amount)
            payment_id = self._payments.record(
                NewPayment(student_id=student.student_id, amount=amount, date=pay_date, method=method, notes=notes),
                [],
                {},
            )
            logger.info("Recorded package payment %s for student %s", payment_id, student.student_id)
            return PaymentReceipt(self.get(payment_id), 0, 0, student.credit, [student])

        payers = family_of(self._students, student) if apply_to_family else [student]
        pooled_credit = sum((m.credit for m in payers), ZERO)
        unpaid = self._lessons.list_unpaid([m.student_id for m in payers])
        result = allocate_payment(amount + pooled_credit, unpaid)

        credit_deltas: dict[int, Decimal] = {m.student_id: -m.credit for m in payers if m.credit}
        credit_deltas[student.student_id] = credit_deltas.get(student.student_id, ZERO) + result.credit

        family_id = student.family_id if apply_to_family and len(payers) > 1 else None
        payment_id = self._payments.record(
            NewPayment(
                student_id=student.student_id,
                amount=amount,
                date=pay_date,
                method=method,
                notes=notes,
                family_id=family_id,
            ),
            result.allocations,
            credit_deltas,
        )
        logger.info(
            "Recorded payment %s of %s for student %s: %d lesson(s) paid, %d partial, credit %s",
            payment_id,
            amount,
            student.student_id,
            result.lessons_paid,
            result.lessons_partially_paid,
            result.credit,
        )
        return PaymentReceipt(
            payment=self.get(payment_id),
            lessons_paid=result.lessons_paid,
            lessons_partially_paid=result.lessons_partially_paid,
            credit=result.credit,
            family_members=payers,
        )

    def link_lesson(self, payment_id: int, lesson_id: Any) -> Payment:
        """Apply the unapplied part of a payment to a chosen lesson."""
        if lesson_id in (None, ""):
            raise ValidationError("lesson_id is required")
        payment = self.get(payment_id)
        if payment.is_package_payment:
            raise ValidationError("Package payments are not applied to individual lessons")

        lesson = self._lessons.get_by_id(require_int(lesson_id, "Lesson"))
        payer = self._student(payment.student_id)
        allowed = {m.student_id for m in family_of(self._students, payer)} if payment.family_id else {payer.student_id}
        if not lesson or lesson.student_id not in allowed:
            raise NotFoundError("Lesson not found or does not belong to this student")
        if lesson.package_id:
            raise ValidationError("Lesson is covered by a package")
        if lesson.is_cancelled:
            raise ValidationError("Cancelled lessons cannot be paid")
        if lesson.outstanding <= 0:
            raise ValidationError("Lesson is already paid")

        unapplied = payment.amount - payment.allocated
        amount = min(unapplied, lesson.outstanding, payer.credit)
        if amount <= 0:
            raise ValidationError("Payment has no unapplied amount left")

        new_paid = lesson.paid_amount + amount
        self._payments.link(
            payment.payment_id,
            LessonAllocation(
                lesson_id=lesson.lesson_id,
                student_id=lesson.student_id,
                amount=amount,
                new_paid_amount=new_paid,
                is_paid=new_paid >= lesson.price,
            ),
            {payer.student_id: -amount},
        )
        return self.get(payment.payment_id)

    def update(self, payment_id: int, payload: Mapping[str, Any]) -> Payment:
        payment = self.get(payment_id)
        if "student_id" in payload and require_int(payload["student_id"], "Student") != payment.student_id:
            raise ValidationError("Delete and re-record the payment to change the student")

        fields: dict[str, Any] = {}
        credit_deltas: dict[int, Decimal] = {}
        if "method" in payload:
            fields["method"] = parse_enum(PaymentMethod, payload.get("method"), "Payment method")
        if payload.get("date"):
            fields["date"] = parse_iso_date(str(payload["date"]))
        if "notes" in payload:
            fields["notes"] = optional_text(payload.get("notes"))

        if "amount" in payload:
            amount = require_amount(payload.get("amount"), "Amount", allow_zero=False)
            if amount != payment.amount:
                if payment.is_package_payment:
                    raise ValidationError("Package payment amounts cannot be changed")
                delta = amount - payment.amount
                payer = self._student(payment.student_id)
                if payer.credit + delta < 0:
                    raise ValidationError("Amount is already applied to lessons; delete the payment instead")
                fields["amount"] = amount
                credit_deltas[payer.student_id] = delta

        self._payments.update(payment.payment_id, fields, credit_deltas)
        return self.get(payment.payment_id)

    def delete(self, payment_id: int) -> None:
        """Remove a payment and undo everything it paid for."""
        payment = self.get(payment_id)

        package_id: Optional[int] = None
        if payment.package_id is not None:
            if self._packages.count_lessons(payment.package_id) > 0:
                raise ConflictError("The package bought with this payment already covers lessons")
            package_id = payment.package_id

        lessons = {}
        for link in payment.links:
            lesson = self._lessons.get_by_id(link.lesson_id)
            if lesson:
                lessons[lesson.lesson_id] = lesson
        reversals = reverse_allocations(payment.links, lessons)

        credit_deltas: dict[int, Decimal] = {}
        if not payment.is_package_payment:
            # Remainder that went on account comes back off; credit consumed by the payment is restored.
            delta = payment.allocated - payment.amount
            payer = self._student(payment.student_id)
            if payer.credit + delta < 0:
                logger.warning(
                    "Credit of student %s (%s) cannot absorb reversal of payment %s (%s); clamping at 0",
                    payer.student_id,
                    payer.credit,
                    payment.payment_id,
                    delta,
                )
                delta = -payer.credit
            credit_deltas[payer.student_id] = delta

        if not self._payments.delete(payment.payment_id, reversals, credit_deltas, package_id=package_id):
            raise NotFoundError("Payment not found")
        logger.info("Deleted payment %s (%d lesson link(s) reversed)", payment.payment_id, len(reversals))
