from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..common.money import money_or_zero
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..payments.model import NewPayment
from .model import NewPackage, Package
from .repository import PackageRepository

_SELECT = """
    SELECT
        pk.package_id, pk.student_id, pk.name, pk.total_hours, pk.hours_used, pk.price,
        pk.purchased_at, pk.expires_at, pk.payment_id,
        CONCAT(s.first_name, ' ', s.last_name) AS student_name
    FROM packages pk
    JOIN students s ON s.student_id = pk.student_id
"""

_UPDATABLE = ("name", "total_hours", "expires_at")


def _row_to_package(r: Mapping[str, Any]) -> Package:
    return Package(
        package_id=int(r["package_id"]),
        student_id=int(r["student_id"]),
        name=r["name"],
        total_hours=Decimal(r["total_hours"]),
        hours_used=Decimal(r["hours_used"]),
        price=money_or_zero(r["price"]),
        purchased_at=r["purchased_at"],
        expires_at=r.get("expires_at"),
        payment_id=int(r["payment_id"]) if r.get("payment_id") is not None else None,
        student_name=r.get("student_name"),
    )


class MySQLPackageRepository(PackageRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, package_id: int) -> Optional[Package]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE pk.package_id=%s", (int(package_id),))
            r = fetchone(cur)
            return _row_to_package(r) if r else None

    def list(self, *, student_id: Optional[int] = None) -> Sequence[Package]:
        where, params = "", ()
        if student_id is not None:
            where, params = " WHERE pk.student_id=%s", (int(student_id),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + where + " ORDER BY pk.purchased_at DESC, pk.package_id DESC", params)
            return [_row_to_package(r) for r in fetchall(cur)]

    def count_lessons(self, package_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM lessons WHERE package_id=%s", (int(package_id),))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def create(
        self,
        package: NewPackage,
        *,
        payment: Optional[NewPayment] = None,
        existing_payment_id: Optional[int] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            payment_id = existing_payment_id
            if payment is not None:
                cur.execute(
                    """
                    INSERT INTO payments(student_id, amount, date, method, notes)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (int(payment.student_id), payment.amount, payment.date, payment.method.value, payment.notes),
                )
                payment_id = int(cur.lastrowid)

            cur.execute(
                """
                INSERT INTO packages(student_id, name, total_hours, price, purchased_at, expires_at, payment_id)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(package.student_id),
                    package.name,
                    package.total_hours,
                    package.price,
                    package.purchased_at,
                    package.expires_at,
                    payment_id,
                ),
            )
            package_id = int(cur.lastrowid)
            if payment_id is not None:
                cur.execute("UPDATE payments SET package_id=%s WHERE payment_id=%s", (package_id, int(payment_id)))
            return package_id

    def update(self, package_id: int, fields: Mapping[str, Any]) -> None:
        cols = [c for c in _UPDATABLE if c in fields]
        if not cols:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE packages SET {', '.join(f'{c}=%s' for c in cols)} WHERE package_id=%s",
                tuple(fields[c] for c in cols) + (int(package_id),),
            )

    def add_hours_used(self, package_id: int, hours: Decimal) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE packages SET hours_used = LEAST(hours_used + %s, total_hours) WHERE package_id=%s",
                (hours, int(package_id)),
            )

    def cover_lesson(self, package_id: int, *, lesson_id: int, hours: Decimal, price: Decimal) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE packages SET hours_used = hours_used + %s WHERE package_id=%s",
                (hours, int(package_id)),
            )
            cur.execute(
                "UPDATE lessons SET package_id=%s, paid_amount=%s, is_paid=1 WHERE lesson_id=%s",
                (int(package_id), price, int(lesson_id)),
            )

    def delete(self, package_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE payments SET package_id=NULL WHERE package_id=%s", (int(package_id),))
            cur.execute("DELETE FROM packages WHERE package_id=%s", (int(package_id),))
            return cur.rowcount > 0
