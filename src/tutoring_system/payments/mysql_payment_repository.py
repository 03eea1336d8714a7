from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..common.money import money_or_zero
from ..core.enums import PaymentMethod
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import LessonAllocation, NewPayment, Payment, PaymentLink
from .repository import PaymentRepository

_SELECT = """
    SELECT
        p.payment_id, p.student_id, p.amount, p.date, p.method, p.notes, p.family_id, p.package_id,
        p.created_at, CONCAT(s.first_name, ' ', s.last_name) AS student_name
    FROM payments p
    JOIN students s ON s.student_id = p.student_id
"""

_UPDATABLE = ("amount", "date", "method", "notes")


def _apply_credit_deltas(cur, credit_deltas: Mapping[int, Decimal]) -> None:
    for student_id, delta in credit_deltas.items():
        if not delta:
            continue
        cur.execute(
            "UPDATE students SET credit = GREATEST(credit + %s, 0) WHERE student_id=%s",
            (delta, int(student_id)),
        )


def _apply_lesson_state(cur, allocation: LessonAllocation) -> None:
    cur.execute(
        "UPDATE lessons SET paid_amount=%s, is_paid=%s WHERE lesson_id=%s",
        (allocation.new_paid_amount, int(allocation.is_paid), int(allocation.lesson_id)),
    )


class MySQLPaymentRepository(PaymentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_links(self, cur, payment_ids: Sequence[int]) -> dict[int, list[PaymentLink]]:
        if not payment_ids:
            return {}
        cur.execute(
            f"""
            SELECT lp.lesson_id, lp.payment_id, lp.amount, l.student_id, l.date_time, l.subject
            FROM lesson_payments lp
            JOIN lessons l ON l.lesson_id = lp.lesson_id
            WHERE lp.payment_id IN ({in_clause(payment_ids)})
            ORDER BY l.date_time ASC, l.lesson_id ASC
            """,
            tuple(payment_ids),
        )
        out: dict[int, list[PaymentLink]] = {}
        for r in fetchall(cur):
            out.setdefault(int(r["payment_id"]), []).append(
                PaymentLink(
                    lesson_id=int(r["lesson_id"]),
                    payment_id=int(r["payment_id"]),
                    amount=money_or_zero(r["amount"]),
                    student_id=int(r["student_id"]),
                    lesson_date_time=r.get("date_time"),
                    subject=r.get("subject"),
                )
            )
        return out

    @staticmethod
    def _row_to_payment(r: Mapping[str, Any], links: list[PaymentLink]) -> Payment:
        return Payment(
            payment_id=int(r["payment_id"]),
            student_id=int(r["student_id"]),
            amount=money_or_zero(r["amount"]),
            date=r["date"],
            method=PaymentMethod(r["method"]),
            notes=r.get("notes"),
            family_id=r.get("family_id"),
            package_id=int(r["package_id"]) if r.get("package_id") is not None else None,
            created_at=r.get("created_at"),
            student_name=r.get("student_name"),
            links=links,
        )

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE p.payment_id=%s", (int(payment_id),))
            r = fetchone(cur)
            if not r:
                return None
            links = self._load_links(cur, [int(payment_id)])
            return self._row_to_payment(r, links.get(int(payment_id), []))

    def list(
        self,
        *,
        student_ids: Optional[Iterable[int]] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[Payment]:
        clauses: list[str] = []
        params: list[object] = []
        if student_ids is not None:
            ids = [int(i) for i in student_ids]
            if not ids:
                return []
            clauses.append(f"p.student_id IN ({in_clause(ids)})")
            params.extend(ids)
        if start is not None:
            clauses.append("p.date >= %s")
            params.append(start)
        if end is not None:
            clauses.append("p.date <= %s")
            params.append(end)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + where + " ORDER BY p.date DESC, p.payment_id DESC", tuple(params))
            rows = fetchall(cur)
            links = self._load_links(cur, [int(r["payment_id"]) for r in rows])
            return [self._row_to_payment(r, links.get(int(r["payment_id"]), [])) for r in rows]

    def record(
        self,
        payment: NewPayment,
        allocations: Sequence[LessonAllocation],
        credit_deltas: Mapping[int, Decimal],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO payments(student_id, amount, date, method, notes, family_id, package_id)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(payment.student_id),
                    payment.amount,
                    payment.date,
                    payment.method.value,
                    payment.notes,
                    payment.family_id,
                    payment.package_id,
                ),
            )
            payment_id = int(cur.lastrowid)
            for a in allocations:
                cur.execute(
                    "INSERT INTO lesson_payments(lesson_id, payment_id, amount) VALUES(%s,%s,%s)",
                    (int(a.lesson_id), payment_id, a.amount),
                )
                _apply_lesson_state(cur, a)
            _apply_credit_deltas(cur, credit_deltas)
            return payment_id

    def link(self, payment_id: int, allocation: LessonAllocation, credit_deltas: Mapping[int, Decimal]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO lesson_payments(lesson_id, payment_id, amount)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE amount = amount + VALUES(amount)
                """,
                (int(allocation.lesson_id), int(payment_id), allocation.amount),
            )
            _apply_lesson_state(cur, allocation)
            _apply_credit_deltas(cur, credit_deltas)

    def update(self, payment_id: int, fields: Mapping[str, Any], credit_deltas: Mapping[int, Decimal]) -> None:
        cols = [c for c in _UPDATABLE if c in fields]
        with db_cursor(self._conn_factory) as (_, cur):
            if cols:
                values = [fields[c].value if c == "method" else fields[c] for c in cols]
                cur.execute(
                    f"UPDATE payments SET {', '.join(f'{c}=%s' for c in cols)} WHERE payment_id=%s",
                    tuple(values) + (int(payment_id),),
                )
            _apply_credit_deltas(cur, credit_deltas)

    def delete(
        self,
        payment_id: int,
        reversals: Sequence[LessonAllocation],
        credit_deltas: Mapping[int, Decimal],
        *,
        package_id: Optional[int] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            for r in reversals:
                _apply_lesson_state(cur, r)
            _apply_credit_deltas(cur, credit_deltas)
            cur.execute("DELETE FROM payments WHERE payment_id=%s", (int(payment_id),))
            deleted = cur.rowcount > 0
            if package_id is not None:
                cur.execute("DELETE FROM packages WHERE package_id=%s", (int(package_id),))
            return deleted
