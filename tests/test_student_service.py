from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from fakes import add_lesson, add_student
from tutoring_system.core.exceptions import ConflictError, NotFoundError, ValidationError


def test_create_cleans_input(container):
    student = container.student_service.create(
        {"first_name": " Ana ", "last_name": "Lee", "email": "", "price_per_lesson": "30", "use_packages": "true"}
    )

    assert student.first_name == "Ana"
    assert student.email is None
    assert student.price_per_lesson == Decimal("30.00")
    assert student.use_packages is True


@pytest.mark.parametrize(
    "payload",
    [
        {"first_name": "", "last_name": "Lee"},
        {"first_name": "Ana", "last_name": "Lee", "email": "not-an-email"},
        {"first_name": "Ana", "last_name": "Lee", "price_per_lesson": "-1"},
    ],
)
def test_create_rejects_invalid_input(container, payload):
    with pytest.raises(ValidationError):
        container.student_service.create(payload)


def test_partial_update_keeps_other_fields(db, container):
    student = add_student(db, subject="Math")

    updated = container.student_service.update(student.student_id, {"phone": "555"})

    assert updated.phone == "555"
    assert updated.subject == "Math"


def test_archived_students_are_hidden_by_default(db, container):
    student = add_student(db)
    container.student_service.set_archived(student.student_id, True)

    assert container.student_service.list() == []
    assert len(container.student_service.list(include_archived=True)) == 1


def test_delete_refused_with_activity(db, container):
    student = add_student(db)
    add_lesson(db, student.student_id, datetime(2024, 1, 1, 10))

    with pytest.raises(ConflictError):
        container.student_service.delete(student.student_id)


def test_delete_unknown_student(container):
    with pytest.raises(NotFoundError):
        container.student_service.delete(42)


def test_families_group_members_and_credit(db, container):
    add_student(db, "Ana", "Lee", family_id="lee", credit=Decimal("5"))
    add_student(db, "Ben", "Lee", family_id="lee", credit=Decimal("2.50"))
    add_student(db, "Cy", "Ng")

    (family,) = container.student_service.list_families()

    assert family.family_id == "lee"
    assert [m.first_name for m in family.members] == ["Ana", "Ben"]
    assert family.credit == Decimal("7.50")
