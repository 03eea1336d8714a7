from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from tutoring_system.core.enums import LessonStatus
from tutoring_system.core.exceptions import ValidationError
from tutoring_system.lessons.model import Lesson
from tutoring_system.payments.allocator import allocate_payment, reverse_allocations
from tutoring_system.payments.model import PaymentLink


def _lesson(lesson_id, day, price="30", paid="0", student_id=1, status=LessonStatus.SCHEDULED, hour=10):
    return Lesson(
        lesson_id=lesson_id,
        student_id=student_id,
        date_time=datetime(2024, 1, day, hour, 0),
        duration=60,
        subject="Math",
        price=Decimal(price),
        status=status,
        paid_amount=Decimal(paid),
    )


def test_fifty_across_two_thirty_dollar_lessons():
    result = allocate_payment(Decimal("50"), [_lesson(2, 9), _lesson(1, 2)])

    assert [(a.lesson_id, a.amount, a.is_paid) for a in result.allocations] == [
        (1, Decimal("30"), True),
        (2, Decimal("20"), False),
    ]
    assert result.credit == Decimal("0")
    assert result.lessons_paid == 1
    assert result.lessons_partially_paid == 1


def test_overpayment_pays_everything_and_keeps_remainder_as_credit():
    lessons = [_lesson(1, 2), _lesson(2, 9, paid="10")]

    result = allocate_payment(Decimal("100"), lessons)

    assert result.applied == Decimal("50")
    assert result.credit == Decimal("50")
    assert all(a.is_paid for a in result.allocations)


def test_cancelled_and_paid_lessons_are_skipped():
    lessons = [
        _lesson(1, 2, status=LessonStatus.CANCELLED),
        _lesson(2, 3, paid="30"),
        _lesson(3, 4),
    ]

    result = allocate_payment(Decimal("30"), lessons)

    assert [a.lesson_id for a in result.allocations] == [3]


def test_equal_timestamps_follow_creation_order():
    lessons = [_lesson(8, 5, student_id=2), _lesson(5, 5, student_id=3)]

    result = allocate_payment(Decimal("30"), lessons)

    assert [a.lesson_id for a in result.allocations] == [5]


def test_negative_amount_is_rejected():
    with pytest.raises(ValidationError):
        allocate_payment(Decimal("-1"), [])


def test_reverse_allocations_takes_money_back():
    lesson = _lesson(1, 2, paid="30")
    links = [PaymentLink(lesson_id=1, payment_id=4, amount=Decimal("20"))]

    (rev,) = reverse_allocations(links, {1: lesson})

    assert rev.new_paid_amount == Decimal("10")
    assert rev.is_paid is False
    assert rev.amount == Decimal("-20")


def test_reversal_on_free_lesson_stays_paid():
    lesson = _lesson(1, 2, price="0", paid="0")
    links = [PaymentLink(lesson_id=1, payment_id=4, amount=Decimal("0"))]

    (rev,) = reverse_allocations(links, {1: lesson})

    assert rev.is_paid is True
