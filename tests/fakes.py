from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from tutoring_system.common.money import ZERO
from tutoring_system.container import Container, wire
from tutoring_system.core.enums import LessonStatus
from tutoring_system.deductions.model import Deduction, NewDeduction
from tutoring_system.lessons.model import Lesson, LessonDeletion, NewLesson, PaidShare
from tutoring_system.packages.model import NewPackage, Package
from tutoring_system.payments.model import LessonAllocation, NewPayment, Payment, PaymentLink
from tutoring_system.purchases.model import NewPurchase, Purchase
from tutoring_system.students.model import Student


@dataclass
class InMemoryDB:
    """Tables shared by the fake repositories so cross-table writes stay consistent."""

    students: dict[int, Student] = field(default_factory=dict)
    lessons: dict[int, Lesson] = field(default_factory=dict)
    payments: dict[int, Payment] = field(default_factory=dict)
    links: dict[tuple[int, int], Decimal] = field(default_factory=dict)
    packages: dict[int, Package] = field(default_factory=dict)
    purchases: dict[int, Purchase] = field(default_factory=dict)
    deductions: dict[int, Deduction] = field(default_factory=dict)
    _seq: dict[str, int] = field(default_factory=dict)

    def next_id(self, table: str) -> int:
        self._seq[table] = self._seq.get(table, 0) + 1
        return self._seq[table]

    def add_credit(self, student_id: int, delta: Decimal) -> None:
        s = self.students[student_id]
        self.students[student_id] = replace(s, credit=max(s.credit + delta, ZERO))


class InMemoryStudents:
    def __init__(self, db: InMemoryDB):
        self.db = db

    def get_by_id(self, student_id: int) -> Optional[Student]:
        return self.db.students.get(int(student_id))

    def list(self, *, include_archived: bool = False, search: Optional[str] = None) -> list[Student]:
        out = [s for s in self.db.students.values() if include_archived or not s.archived]
        if search:
            needle = search.lower()
            out = [
                s
                for s in out
                if needle in s.first_name.lower() or needle in s.last_name.lower() or needle in (s.email or "").lower()
            ]
        return sorted(out, key=lambda s: (s.last_name, s.first_name))

    def list_family(self, family_id: str, *, include_archived: bool = False) -> list[Student]:
        out = [
            s
            for s in self.db.students.values()
            if s.family_id == family_id and (include_archived or not s.archived)
        ]
        return sorted(out, key=lambda s: s.student_id)

    def create(self, fields: Mapping[str, Any]) -> int:
        student_id = self.db.next_id("students")
        self.db.students[student_id] = Student(student_id=student_id, **fields)
        return student_id

    def update(self, student_id: int, fields: Mapping[str, Any]) -> bool:
        s = self.db.students.get(int(student_id))
        if not s:
            return False
        self.db.students[s.student_id] = replace(s, **fields)
        return True

    def delete(self, student_id: int) -> bool:
        return self.db.students.pop(int(student_id), None) is not None

    def has_activity(self, student_id: int) -> bool:
        sid = int(student_id)
        return (
            any(ls.student_id == sid for ls in self.db.lessons.values())
            or any(p.student_id == sid for p in self.db.payments.values())
            or any(pk.student_id == sid for pk in self.db.packages.values())
        )


class InMemoryLessons:
    def __init__(self, db: InMemoryDB):
        self.db = db

    def _named(self, ls: Lesson) -> Lesson:
        s = self.db.students.get(ls.student_id)
        return replace(ls, student_name=s.full_name if s else None)

    def _sorted(self, lessons: Iterable[Lesson]) -> list[Lesson]:
        return [self._named(ls) for ls in sorted(lessons, key=lambda ls: (ls.date_time, ls.lesson_id))]

    def get_by_id(self, lesson_id: int) -> Optional[Lesson]:
        ls = self.db.lessons.get(int(lesson_id))
        return self._named(ls) if ls else None

    def list(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        student_ids: Optional[Iterable[int]] = None,
        status: Optional[LessonStatus] = None,
    ) -> list[Lesson]:
        ids = set(student_ids) if student_ids is not None else None
        return self._sorted(
            ls
            for ls in self.db.lessons.values()
            if (start is None or ls.date_time >= start)
            and (end is None or ls.date_time <= end)
            and (ids is None or ls.student_id in ids)
            and (status is None or ls.status == status)
        )

    def list_group(self, group_id: str) -> list[Lesson]:
        return self._sorted(ls for ls in self.db.lessons.values() if ls.recurring_group_id == group_id)

    def list_unpaid(self, student_ids: Iterable[int]) -> list[Lesson]:
        ids = set(student_ids)
        return self._sorted(
            ls
            for ls in self.db.lessons.values()
            if ls.student_id in ids and not ls.is_paid and not ls.is_cancelled
        )

    def create_many(self, lessons: Sequence[NewLesson]) -> list[int]:
        ids = []
        for new in lessons:
            lesson_id = self.db.next_id("lessons")
            self.db.lessons[lesson_id] = Lesson(lesson_id=lesson_id, is_paid=new.price <= ZERO, **new.__dict__)
            ids.append(lesson_id)
        return ids

    def update_many(self, lessons: Sequence[Lesson]) -> None:
        for ls in lessons:
            self.db.lessons[ls.lesson_id] = replace(ls, student_name=None)

    def paid_shares(self, lesson_ids: Sequence[int]) -> list[PaidShare]:
        wanted = set(lesson_ids)
        return [
            PaidShare(lesson_id=lesson_id, payer_id=self.db.payments[payment_id].student_id, amount=amount)
            for (lesson_id, payment_id), amount in sorted(self.db.links.items())
            if lesson_id in wanted
        ]

    def delete_many(self, plan: LessonDeletion) -> int:
        for student_id, amount in plan.credit_refunds.items():
            self.db.add_credit(student_id, amount)
        for package_id, hours in plan.package_hour_refunds.items():
            pk = self.db.packages[package_id]
            self.db.packages[package_id] = replace(pk, hours_used=max(pk.hours_used - hours, ZERO))
        deleted = 0
        for lesson_id in plan.lesson_ids:
            if self.db.lessons.pop(lesson_id, None) is not None:
                deleted += 1
            for key in [k for k in self.db.links if k[0] == lesson_id]:
                del self.db.links[key]
        if plan.group_id and plan.new_end_date:
            for ls in list(self.db.lessons.values()):
                if ls.recurring_group_id == plan.group_id:
                    self.db.lessons[ls.lesson_id] = replace(ls, recurring_end_date=plan.new_end_date)
        return deleted


class InMemoryPayments:
    def __init__(self, db: InMemoryDB):
        self.db = db

    def _with_links(self, p: Payment) -> Payment:
        links = []
        for (lesson_id, payment_id), amount in self.db.links.items():
            if payment_id != p.payment_id:
                continue
            ls = self.db.lessons[lesson_id]
            links.append(
                PaymentLink(
                    lesson_id=lesson_id,
                    payment_id=payment_id,
                    amount=amount,
                    student_id=ls.student_id,
                    lesson_date_time=ls.date_time,
                    subject=ls.subject,
                )
            )
        links.sort(key=lambda link: (link.lesson_date_time, link.lesson_id))
        return replace(p, links=links)

    def _apply_lesson_state(self, a: LessonAllocation) -> None:
        ls = self.db.lessons[a.lesson_id]
        self.db.lessons[a.lesson_id] = replace(ls, paid_amount=a.new_paid_amount, is_paid=a.is_paid)

    def _apply_credit(self, credit_deltas: Mapping[int, Decimal]) -> None:
        for student_id, delta in credit_deltas.items():
            if delta:
                self.db.add_credit(student_id, delta)

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        p = self.db.payments.get(int(payment_id))
        return self._with_links(p) if p else None

    def list(
        self,
        *,
        student_ids: Optional[Iterable[int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[Payment]:
        ids = set(student_ids) if student_ids is not None else None
        out = [
            p
            for p in self.db.payments.values()
            if (ids is None or p.student_id in ids)
            and (start is None or p.date >= start)
            and (end is None or p.date <= end)
        ]
        out.sort(key=lambda p: (p.date, p.payment_id), reverse=True)
        return [self._with_links(p) for p in out]

    def record(self, payment: NewPayment, allocations: Sequence[LessonAllocation], credit_deltas) -> int:
        payment_id = self.db.next_id("payments")
        self.db.payments[payment_id] = Payment(payment_id=payment_id, **payment.__dict__)
        for a in allocations:
            self.db.links[(a.lesson_id, payment_id)] = a.amount
            self._apply_lesson_state(a)
        self._apply_credit(credit_deltas)
        return payment_id

    def link(self, payment_id: int, allocation: LessonAllocation, credit_deltas) -> None:
        key = (allocation.lesson_id, int(payment_id))
        self.db.links[key] = self.db.links.get(key, ZERO) + allocation.amount
        self._apply_lesson_state(allocation)
        self._apply_credit(credit_deltas)

    def update(self, payment_id: int, fields: Mapping[str, Any], credit_deltas) -> None:
        p = self.db.payments[int(payment_id)]
        self.db.payments[p.payment_id] = replace(p, **fields)
        self._apply_credit(credit_deltas)

    def delete(self, payment_id: int, reversals, credit_deltas, *, package_id: Optional[int] = None) -> bool:
        for r in reversals:
            self._apply_lesson_state(r)
        self._apply_credit(credit_deltas)
        deleted = self.db.payments.pop(int(payment_id), None) is not None
        for key in [k for k in self.db.links if k[1] == int(payment_id)]:
            del self.db.links[key]
        if package_id is not None:
            self.db.packages.pop(package_id, None)
        return deleted


class InMemoryPackages:
    def __init__(self, db: InMemoryDB):
        self.db = db

    def _named(self, pk: Package) -> Package:
        s = self.db.students.get(pk.student_id)
        return replace(pk, student_name=s.full_name if s else None)

    def get_by_id(self, package_id: int) -> Optional[Package]:
        pk = self.db.packages.get(int(package_id))
        return self._named(pk) if pk else None

    def list(self, *, student_id: Optional[int] = None) -> list[Package]:
        out = [pk for pk in self.db.packages.values() if student_id is None or pk.student_id == student_id]
        out.sort(key=lambda pk: (pk.purchased_at, pk.package_id), reverse=True)
        return [self._named(pk) for pk in out]

    def count_lessons(self, package_id: int) -> int:
        return sum(1 for ls in self.db.lessons.values() if ls.package_id == package_id)

    def create(
        self,
        package: NewPackage,
        *,
        payment: Optional[NewPayment] = None,
        existing_payment_id: Optional[int] = None,
    ) -> int:
        payment_id = existing_payment_id
        if payment is not None:
            payment_id = self.db.next_id("payments")
            self.db.payments[payment_id] = Payment(payment_id=payment_id, **payment.__dict__)
        package_id = self.db.next_id("packages")
        self.db.packages[package_id] = Package(
            package_id=package_id, hours_used=ZERO, payment_id=payment_id, **package.__dict__
        )
        if payment_id is not None:
            self.db.payments[payment_id] = replace(self.db.payments[payment_id], package_id=package_id)
        return package_id

    def update(self, package_id: int, fields: Mapping[str, Any]) -> None:
        pk = self.db.packages[int(package_id)]
        self.db.packages[pk.package_id] = replace(pk, **fields)

    def add_hours_used(self, package_id: int, hours: Decimal) -> None:
        pk = self.db.packages[int(package_id)]
        self.db.packages[pk.package_id] = replace(pk, hours_used=min(pk.hours_used + hours, pk.total_hours))

    def cover_lesson(self, package_id: int, *, lesson_id: int, hours: Decimal, price: Decimal) -> None:
        pk = self.db.packages[int(package_id)]
        self.db.packages[pk.package_id] = replace(pk, hours_used=pk.hours_used + hours)
        ls = self.db.lessons[int(lesson_id)]
        self.db.lessons[ls.lesson_id] = replace(ls, package_id=pk.package_id, paid_amount=price, is_paid=True)

    def delete(self, package_id: int) -> bool:
        for p in list(self.db.payments.values()):
            if p.package_id == package_id:
                self.db.payments[p.payment_id] = replace(p, package_id=None)
        for ls in list(self.db.lessons.values()):
            if ls.package_id == package_id:
                self.db.lessons[ls.lesson_id] = replace(ls, package_id=None)
        return self.db.packages.pop(int(package_id), None) is not None


class InMemoryPurchases:
    def __init__(self, db: InMemoryDB):
        self.db = db

    def get_by_id(self, purchase_id: int) -> Optional[Purchase]:
        return self.db.purchases.get(int(purchase_id))

    def list(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        category: Optional[str] = None,
    ) -> list[Purchase]:
        out = [
            p
            for p in self.db.purchases.values()
            if (start is None or p.date >= start)
            and (end is None or p.date <= end)
            and (not category or p.category == category)
        ]
        out.sort(key=lambda p: (p.date, p.purchase_id), reverse=True)
        return out

    def list_group(self, group_id: str) -> list[Purchase]:
        out = [p for p in self.db.purchases.values() if p.recurring_group_id == group_id]
        return sorted(out, key=lambda p: (p.date, p.purchase_id))

    def categories(self) -> list[str]:
        return sorted({p.category for p in self.db.purchases.values()})

    def create_many(self, purchases: Sequence[NewPurchase]) -> list[int]:
        ids = []
        for new in purchases:
            purchase_id = self.db.next_id("purchases")
            self.db.purchases[purchase_id] = Purchase(purchase_id=purchase_id, **new.__dict__)
            ids.append(purchase_id)
        return ids

    def update_many(self, purchases: Sequence[Purchase]) -> None:
        for p in purchases:
            self.db.purchases[p.purchase_id] = p

    def delete_many(
        self,
        purchase_ids: Sequence[int],
        *,
        group_id: Optional[str] = None,
        new_end_date: Optional[date] = None,
    ) -> int:
        deleted = sum(1 for i in purchase_ids if self.db.purchases.pop(i, None) is not None)
        if group_id and new_end_date:
            for p in list(self.db.purchases.values()):
                if p.recurring_group_id == group_id:
                    self.db.purchases[p.purchase_id] = replace(p, recurring_end_date=new_end_date)
        return deleted



class InMemoryDeductions:
    def __init__(self, db: InMemoryDB):
        self.db = db

    def get_by_id(self, deduction_id: int) -> Optional[Deduction]:
        return self.db.deductions.get(int(deduction_id))

    def list(self, *, year: Optional[int] = None, category: Optional[str] = None) -> list[Deduction]:
        out = [
            d
            for d in self.db.deductions.values()
            if (year is None or d.period.year == year) and (not category or d.category == category)
        ]
        out.sort(key=lambda d: d.category)
        out.sort(key=lambda d: d.period, reverse=True)
        return out

    def create(self, deduction: NewDeduction) -> int:
        deduction_id = self.db.next_id("deductions")
        self.db.deductions[deduction_id] = Deduction(deduction_id=deduction_id, **deduction.__dict__)
        return deduction_id

    def update(self, deduction_id: int, fields: Mapping[str, Any]) -> bool:
        d = self.db.deductions.get(int(deduction_id))
        if not d:
            return False
        self.db.deductions[d.deduction_id] = replace(d, **fields)
        return True

    def delete(self, deduction_id: int) -> bool:
        return self.db.deductions.pop(int(deduction_id), None) is not None

def build_fake_container(db: Optional[InMemoryDB] = None) -> Container:
    db = db or InMemoryDB()
    return wire(
        students_repo=InMemoryStudents(db),
        lessons_repo=InMemoryLessons(db),
        payments_repo=InMemoryPayments(db),
        packages_repo=InMemoryPackages(db),
        purchases_repo=InMemoryPurchases(db),
        deductions_repo=InMemoryDeductions(db),
    )


def add_student(db: InMemoryDB, first_name: str = "Ana", last_name: str = "Lee", **fields) -> Student:
    student_id = db.next_id("students")
    student = Student(student_id=student_id, first_name=first_name, last_name=last_name, **fields)
    db.students[student_id] = student
    return student


def add_lesson(
    db: InMemoryDB,
    student_id: int,
    date_time: datetime,
    price: str | Decimal = "30",
    **fields,
) -> Lesson:
    lesson_id = db.next_id("lessons")
    lesson = Lesson(
        lesson_id=lesson_id,
        student_id=student_id,
        date_time=date_time,
        duration=fields.pop("duration", 60),
        subject=fields.pop("subject", "Math"),
        price=Decimal(price),
        **fields,
    )
    db.lessons[lesson_id] = lesson
    return lesson
