from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..common.money import money_or_zero
from ..core.enums import LessonStatus, RecurringFrequency
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Lesson, LessonDeletion, NewLesson, PaidShare
from .repository import LessonRepository

_SELECT = """
    SELECT
        l.lesson_id, l.student_id, l.date_time, l.duration, l.subject, l.price, l.status, l.notes,
        l.is_recurring, l.recurring_frequency, l.recurring_group_id, l.recurring_end_date,
        l.paid_amount, l.is_paid, l.package_id,
        CONCAT(s.first_name, ' ', s.last_name) AS student_name
    FROM lessons l
    JOIN students s ON s.student_id = l.student_id
"""


def row_to_lesson(r: Mapping[str, Any]) -> Lesson:
    return Lesson(
        lesson_id=int(r["lesson_id"]),
        student_id=int(r["student_id"]),
        date_time=r["date_time"],
        duration=int(r["duration"]),
        subject=r["subject"],
        price=money_or_zero(r["price"]),
        status=LessonStatus(r["status"]),
        notes=r.get("notes"),
        is_recurring=bool(r.get("is_recurring")),
        recurring_frequency=RecurringFrequency(r["recurring_frequency"]) if r.get("recurring_frequency") else None,
        recurring_group_id=r.get("recurring_group_id"),
        recurring_end_date=r.get("recurring_end_date"),
        paid_amount=money_or_zero(r.get("paid_amount")),
        is_paid=bool(r.get("is_paid")),
        package_id=int(r["package_id"]) if r.get("package_id") is not None else None,
        student_name=r.get("student_name"),
    )


class MySQLLessonRepository(LessonRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, lesson_id: int) -> Optional[Lesson]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE l.lesson_id=%s", (int(lesson_id),))
            r = fetchone(cur)
            return row_to_lesson(r) if r else None

    def list(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        student_ids: Optional[Iterable[int]] = None,
        status: Optional[LessonStatus] = None,
    ) -> Sequence[Lesson]:
        clauses: list[str] = []
        params: list[object] = []
        if start is not None:
            clauses.append("l.date_time >= %s")
            params.append(start)
        if end is not None:
            clauses.append("l.date_time <= %s")
            params.append(end)
        if student_ids is not None:
            ids = [int(i) for i in student_ids]
            if not ids:
                return []
            clauses.append(f"l.student_id IN ({in_clause(ids)})")
            params.extend(ids)
        if status is not None:
            clauses.append("l.status=%s")
            params.append(status.value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + where + " ORDER BY l.date_time ASC, l.lesson_id ASC", tuple(params))
            return [row_to_lesson(r) for r in fetchall(cur)]

    def list_group(self, group_id: str) -> Sequence[Lesson]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE l.recurring_group_id=%s ORDER BY l.date_time ASC, l.lesson_id ASC",
                (group_id,),
            )
            return [row_to_lesson(r) for r in fetchall(cur)]

    def list_unpaid(self, student_ids: Iterable[int]) -> Sequence[Lesson]:
        ids = [int(i) for i in student_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT
                + f"""
                WHERE l.student_id IN ({in_clause(ids)})
                  AND l.is_paid=0
                  AND l.status <> %s
                ORDER BY l.date_time ASC, l.lesson_id ASC
                """,
                tuple(ids) + (LessonStatus.CANCELLED.value,),
            )
            return [row_to_lesson(r) for r in fetchall(cur)]

    def create_many(self, lessons: Sequence[NewLesson]) -> list[int]:
        ids: list[int] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for ls in lessons:
                cur.execute(
                    """
                    INSERT INTO lessons(
                        student_id, date_time, duration, subject, price, status, notes,
                        is_recurring, recurring_frequency, recurring_group_id, recurring_end_date, is_paid
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(ls.student_id),
                        ls.date_time,
                        int(ls.duration),
                        ls.subject,
                        ls.price,
                        ls.status.value,
                        ls.notes,
                        int(ls.is_recurring),
                        ls.recurring_frequency.value if ls.recurring_frequency else None,
                        ls.recurring_group_id,
                        ls.recurring_end_date,
                        int(ls.price <= 0),
                    ),
                )
                ids.append(int(cur.lastrowid))
        return ids

    def update_many(self, lessons: Sequence[Lesson]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            for ls in lessons:
                cur.execute(
                    """
                    UPDATE lessons
                    SET date_time=%s, duration=%s, subject=%s, price=%s, status=%s, notes=%s,
                        recurring_end_date=%s, paid_amount=%s, is_paid=%s
                    WHERE lesson_id=%s
                    """,
                    (
                        ls.date_time,
                        int(ls.duration),
                        ls.subject,
                        ls.price,
                        ls.status.value,
                        ls.notes,
                        ls.recurring_end_date,
                        ls.paid_amount,
                        int(ls.is_paid),
                        int(ls.lesson_id),
                    ),
                )

    def paid_shares(self, lesson_ids: Sequence[int]) -> Sequence[PaidShare]:
        if not lesson_ids:
            return []
        ids = [int(i) for i in lesson_ids]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT lp.lesson_id, p.student_id AS payer_id, lp.amount
                FROM lesson_payments lp
                JOIN payments p ON p.payment_id = lp.payment_id
                WHERE lp.lesson_id IN ({in_clause(ids)})
                ORDER BY lp.lesson_id ASC, lp.payment_id ASC
                """,
                tuple(ids),
            )
            return [
                PaidShare(lesson_id=int(r["lesson_id"]), payer_id=int(r["payer_id"]), amount=money_or_zero(r["amount"]))
                for r in fetchall(cur)
            ]

    def delete_many(self, plan: LessonDeletion) -> int:
        if not plan.lesson_ids:
            return 0
        ids = [int(i) for i in plan.lesson_ids]
        with db_cursor(self._conn_factory) as (_, cur):
            for student_id, amount in plan.credit_refunds.items():
                cur.execute(
                    "UPDATE students SET credit = credit + %s WHERE student_id=%s",
                    (amount, int(student_id)),
                )
            for package_id, hours in plan.package_hour_refunds.items():
                cur.execute(
                    "UPDATE packages SET hours_used = GREATEST(hours_used - %s, 0) WHERE package_id=%s",
                    (hours, int(package_id)),
                )
            cur.execute(f"DELETE FROM lessons WHERE lesson_id IN ({in_clause(ids)})", tuple(ids))
            deleted = int(cur.rowcount)
            if plan.group_id and plan.new_end_date:
                cur.execute(
                    "UPDATE lessons SET recurring_end_date=%s WHERE recurring_group_id=%s",
                    (plan.new_end_date, plan.group_id),
                )
            return deleted
