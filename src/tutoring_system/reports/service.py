from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional

from ..common.datetime_utils import as_date, today_local
from ..common.money import ZERO, as_float
from ..core.enums import LessonStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..lessons.model import Lesson
from ..lessons.repository import LessonRepository
from ..packages.repository import PackageRepository
from ..payments.repository import PaymentRepository
from ..purchases.repository import PurchaseRepository
from ..students.repository import StudentRepository
from ..students.service import family_of


@dataclass(frozen=True)
class StatementData:
    header: dict
    entries: list[dict]
    totals: dict


def _day_bounds(start: Optional[date], end: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    return (
        datetime.combine(start, time.min) if start else None,
        datetime.combine(end, time.max) if end else None,
    )


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise ValidationError("Start date must be on or before end date")


def _billed(lessons: list[Lesson]) -> Decimal:
    return sum((ls.price for ls in lessons if not ls.is_cancelled), ZERO)


def _paid(lessons: list[Lesson]) -> Decimal:
    return sum((ls.paid_amount for ls in lessons if not ls.is_cancelled), ZERO)


class ReportService:
    def __init__(
        self,
        *,
        lessons: LessonRepository,
        payments: PaymentRepository,
        purchases: PurchaseRepository,
        students: StudentRepository,
        packages: PackageRepository,
    ):
        self._lessons = lessons
        self._payments = payments
        self._purchases = purchases
        self._students = students
        self._packages = packages

    def summary(self, *, start: Optional[date] = None, end: Optional[date] = None) -> dict[str, Any]:
        """Income, expenses and teaching load over a date range (open ends allowed)."""
        _check_range(start, end)
        lo, hi = _day_bounds(start, end)
        lessons = list(self._lessons.list(start=lo, end=hi))
        payments = list(self._payments.list(start=start, end=end))
        purchases = list(self._purchases.list(start=start, end=end))

        by_status = {s.value: 0 for s in LessonStatus}
        for ls in lessons:
            by_status[ls.status.value] += 1
        hours = sum((ls.hours for ls in lessons if ls.status == LessonStatus.COMPLETED), ZERO)

        billed = _billed(lessons)
        paid_on_lessons = _paid(lessons)
        received = sum((p.amount for p in payments), ZERO)

        by_category: dict[str, Decimal] = {}
        for p in purchases:
            by_category[p.category] = by_category.get(p.category, ZERO) + p.amount
        expenses = sum(by_category.values(), ZERO)

        return {
            "start": start.isoformat() if start else None,
            "end": end.isoformat() if end else None,
            "lessons": {"total": len(lessons), **by_status},
            "hours_taught": as_float(hours),
            "billed": as_float(billed),
            "received": as_float(received),
            "expenses": as_float(expenses),
            "expenses_by_category": [
                {"category": c, "amount": as_float(a)}
                for c, a in sorted(by_category.items(), key=lambda x: x[1], reverse=True)
            ],
            "net_income": as_float(received - expenses),
            "outstanding": as_float(billed - paid_on_lessons),
        }

    def outstanding(self, *, as_of: Optional[date] = None) -> dict[str, Any]:
        """Balance per student and per family for lessons held up to ``as_of`` (today)."""
        as_of = as_of or today_local()
        _, hi = _day_bounds(None, as_of)
        lessons = [ls for ls in self._lessons.list(end=hi) if not ls.is_cancelled]

        per_student: dict[int, list[Lesson]] = {}
        for ls in lessons:
            per_student.setdefault(ls.student_id, []).append(ls)

        rows: list[dict] = []
        total = ZERO
        families: dict[str, dict] = {}
        for s in self._students.list(include_archived=True):
            own = per_student.get(s.student_id, [])
            billed = _billed(own)
            paid = _paid(own)
            balance = billed - paid
            if balance <= 0 and s.credit <= 0:
                continue
            total += balance
            rows.append(
                {
                    "student_id": s.student_id,
                    "full_name": s.full_name,
                    "family_id": s.family_id,
                    "lessons": len(own),
                    "unpaid_lessons": sum(1 for ls in own if ls.outstanding > 0),
                    "billed": as_float(billed),
                    "paid": as_float(paid),
                    "balance": as_float(balance),
                    "credit": as_float(s.credit),
                }
            )

            if s.family_id:
                f = families.get(s.family_id)
                if not f:
                    f = {"family_id": s.family_id, "members": [], "billed": ZERO, "paid": ZERO, "credit": ZERO}
                    families[s.family_id] = f
                f["members"].append(s.full_name)
                f["billed"] += billed
                f["paid"] += paid
                f["credit"] += s.credit

        rows.sort(key=lambda r: r["balance"], reverse=True)
        family_rows = [
            {
                "family_id": f["family_id"],
                "members": f["members"],
                "billed": as_float(f["billed"]),
                "paid": as_float(f["paid"]),
                "balance": as_float(f["billed"] - f["paid"]),
                "credit": as_float(f["credit"]),
            }
            for f in families.values()
        ]
        family_rows.sort(key=lambda r: r["balance"], reverse=True)

        return {
            "as_of": as_of.isoformat(),
            "students": rows,
            "families": family_rows,
            "total_outstanding": as_float(total),
        }

    def packages(self, *, today: Optional[date] = None) -> list[dict]:
        today = today or today_local()
        rows = [p.to_dict(today=today) for p in self._packages.list()]
        rows.sort(key=lambda r: (r["expired"], -r["hours_remaining"]))
        return rows

    def monthly_student(self, *, year: int, month: int) -> dict[str, Any]:
        if not 1 <= month <= 12:
            raise ValidationError("Month must be between 1 and 12")
        if not 2000 <= year <= 2100:
            raise ValidationError("Year is out of range")
        start = date(year, month, 1)
        end = date(year, month, calendar.monthrange(year, month)[1])
        lo, hi = _day_bounds(start, end)

        names = {s.student_id: s.full_name for s in self._students.list(include_archived=True)}
        summary_map: dict[int, dict] = {}

        def row(student_id: int) -> dict:
            r = summary_map.get(student_id)
            if not r:
                r = {
                    "student_id": student_id,
                    "full_name": names.get(student_id, ""),
                    "lessons": 0,
                    "completed": 0,
                    "cancelled": 0,
                    "hours": ZERO,
                    "billed": ZERO,
                    "paid": ZERO,
                }
                summary_map[student_id] = r
            return r

        for ls in self._lessons.list(start=lo, end=hi):
            r = row(ls.student_id)
            r["lessons"] += 1
            if ls.is_cancelled:
                r["cancelled"] += 1
                continue
            if ls.status == LessonStatus.COMPLETED:
                r["completed"] += 1
            r["hours"] += ls.hours
            r["billed"] += ls.price

        for p in self._payments.list(start=start, end=end):
            row(p.student_id)["paid"] += p.amount

        students = []
        for r in sorted(summary_map.values(), key=lambda x: x["full_name"]):
            students.append(
                {
                    **r,
                    "hours": as_float(r["hours"]),
                    "billed": as_float(r["billed"]),
                    "paid": as_float(r["paid"]),
                }
            )

        return {
            "year": year,
            "month": month,
            "students": students,
            "totals": {
                "lessons": sum(r["lessons"] for r in summary_map.values()),
                "hours": as_float(sum((r["hours"] for r in summary_map.values()), ZERO)),
                "billed": as_float(sum((r["billed"] for r in summary_map.values()), ZERO)),
                "paid": as_float(sum((r["paid"] for r in summary_map.values()), ZERO)),
            },
        }

    def statement(
        self,
        student_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        family: bool = False,
    ) -> StatementData:
        """Account statement: charges are non-package lessons plus packages bought.

        Balance = charges - payments; a negative balance is money held on account.
        """
        _check_range(start, end)
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        members = family_of(self._students, student, include_archived=True) if family else [student]
        ids = [m.student_id for m in members]
        names = {m.student_id: m.full_name for m in members}

        _, hi = _day_bounds(None, end)
        charges: list[tuple[date, dict]] = []
        for ls in self._lessons.list(end=hi, student_ids=ids):
            if ls.is_cancelled or ls.package_id:
                continue
            charges.append(
                (
                    as_date(ls.date_time),
                    {
                        "type": "lesson",
                        "date": ls.date_time.isoformat(),
                        "student_id": ls.student_id,
                        "student_name": names.get(ls.student_id),
                        "description": ls.subject,
                        "duration": ls.duration,
                        "charge": ls.price,
                        "payment": ZERO,
                        "status": ls.status.value,
                    },
                )
            )
        for sid in ids:
            for pkg in self._packages.list(student_id=sid):
                if end and pkg.purchased_at > end:
                    continue
                charges.append(
                    (
                        pkg.purchased_at,
                        {
                            "type": "package",
                            "date": pkg.purchased_at.isoformat(),
                            "student_id": pkg.student_id,
                            "student_name": names.get(pkg.student_id),
                            "description": pkg.name,
                            "charge": pkg.price,
                            "payment": ZERO,
                        },
                    )
                )
        for p in self._payments.list(student_ids=ids, end=end):
            charges.append(
                (
                    p.date,
                    {
                        "type": "payment",
                        "date": p.date.isoformat(),
                        "student_id": p.student_id,
                        "student_name": names.get(p.student_id),
                        "description": p.notes or p.method.value,
                        "charge": ZERO,
                        "payment": p.amount,
                    },
                )
            )

        charges.sort(key=lambda x: (x[0], x[1]["type"] == "payment"))
        opening = ZERO
        running = ZERO
        total_charges = ZERO
        total_payments = ZERO
        entries: list[dict] = []
        for day, e in charges:
            running += e["charge"] - e["payment"]
            if start and day < start:
                opening = running
                continue
            total_charges += e["charge"]
            total_payments += e["payment"]
            entries.append(
                {**e, "charge": as_float(e["charge"]), "payment": as_float(e["payment"]), "balance": as_float(running)}
            )

        header = {
            "student_id": student.student_id,
            "full_name": student.full_name,
            "parent_full_name": student.parent_full_name,
            "parent_email": student.parent_email,
            "family_id": student.family_id if family else None,
            "members": [{"student_id": m.student_id, "full_name": m.full_name} for m in members],
            "start": start.isoformat() if start else None,
            "end": end.isoformat() if end else None,
        }
        totals = {
            "opening_balance": as_float(opening),
            "charges": as_float(total_charges),
            "payments": as_float(total_payments),
            "closing_balance": as_float(running),
            "credit": as_float(sum((m.credit for m in members), ZERO)),
        }
        return StatementData(header=header, entries=entries, totals=totals)
