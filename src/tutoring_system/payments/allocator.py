"""Greedy chronological allocation of money to unpaid lessons."""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Mapping

from ..common.money import ZERO
from ..core.exceptions import ValidationError
from ..lessons.model import Lesson
from .model import AllocationResult, LessonAllocation, PaymentLink


def allocation_order(lesson: Lesson) -> tuple:
    # Equal timestamps (siblings booked at the same hour) fall back to creation order.
    return (lesson.date_time, lesson.lesson_id)


def allocate_payment(amount: Decimal, lessons: Iterable[Lesson]) -> AllocationResult:
    """Apply ``amount`` to the oldest outstanding lessons first.

    Each lesson receives ``min(remaining, price - paid_amount)``; cancelled and
    fully paid lessons are skipped. Whatever is left becomes credit.
    """
    if amount < 0:
        raise ValidationError("Amount cannot be negative")

    remaining = amount
    allocations: list[LessonAllocation] = []
    for lesson in sorted(lessons, key=allocation_order):
        if remaining <= 0:
            break
        if lesson.is_cancelled:
            continue
        needed = lesson.outstanding
        if needed <= 0:
            continue

        applied = min(remaining, needed)
        new_paid = lesson.paid_amount + applied
        allocations.append(
            LessonAllocation(
                lesson_id=lesson.lesson_id,
                student_id=lesson.student_id,
                amount=applied,
                new_paid_amount=new_paid,
                is_paid=new_paid >= lesson.price,
            )
        )
        remaining -= applied

    return AllocationResult(allocations=allocations, credit=remaining)


def reverse_allocations(links: Iterable[PaymentLink], lessons: Mapping[int, Lesson]) -> list[LessonAllocation]:
    """Take a payment's money back off the lessons it was applied to."""
    reversals: list[LessonAllocation] = []
    for link in links:
        lesson = lessons.get(link.lesson_id)
        if lesson is None:
            continue
        new_paid = max(lesson.paid_amount - link.amount, ZERO)
        reversals.append(
            LessonAllocation(
                lesson_id=lesson.lesson_id,
                student_id=lesson.student_id,
                amount=-link.amount,
                new_paid_amount=new_paid,
                is_paid=new_paid >= lesson.price,
            )
        )
    return reversals
