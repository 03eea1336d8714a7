from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional, Sequence

from ..common.money import money_or_zero
from ..core.enums import RecurringFrequency
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import NewPurchase, Purchase
from .repository import PurchaseRepository

_SELECT = """
    SELECT purchase_id, date, description, amount, category, vendor, payment_method, notes,
           is_recurring, recurring_frequency, recurring_group_id, recurring_end_date
    FROM purchases
"""


def _row_to_purchase(r: Mapping[str, Any]) -> Purchase:
    return Purchase(
        purchase_id=int(r["purchase_id"]),
        date=r["date"],
        description=r["description"],
        amount=money_or_zero(r["amount"]),
        category=r["category"],
        vendor=r.get("vendor"),
        payment_method=r.get("payment_method"),
        notes=r.get("notes"),
        is_recurring=bool(r.get("is_recurring")),
        recurring_frequency=RecurringFrequency(r["recurring_frequency"]) if r.get("recurring_frequency") else None,
        recurring_group_id=r.get("recurring_group_id"),
        recurring_end_date=r.get("recurring_end_date"),
    )


class MySQLPurchaseRepository(PurchaseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, purchase_id: int) -> Optional[Purchase]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE purchase_id=%s", (int(purchase_id),))
            r = fetchone(cur)
            return _row_to_purchase(r) if r else None

    def list(
        self,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        category: Optional[str] = None,
    ) -> Sequence[Purchase]:
        clauses: list[str] = []
        params: list[object] = []
        if start is not None:
            clauses.append("date >= %s")
            params.append(start)
        if end is not None:
            clauses.append("date <= %s")
            params.append(end)
        if category:
            clauses.append("category=%s")
            params.append(category)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + where + " ORDER BY date DESC, purchase_id DESC", tuple(params))
            return [_row_to_purchase(r) for r in fetchall(cur)]

    def list_group(self, group_id: str) -> Sequence[Purchase]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE recurring_group_id=%s ORDER BY date ASC, purchase_id ASC", (group_id,))
            return [_row_to_purchase(r) for r in fetchall(cur)]

    def categories(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT DISTINCT category FROM purchases ORDER BY category ASC")
            return [r["category"] for r in fetchall(cur)]

    def create_many(self, purchases: Sequence[NewPurchase]) -> list[int]:
        ids: list[int] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for p in purchases:
                cur.execute(
                    """
                    INSERT INTO purchases(
                        date, description, amount, category, vendor, payment_method, notes,
                        is_recurring, recurring_frequency, recurring_group_id, recurring_end_date
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        p.date,
                        p.description,
                        p.amount,
                        p.category,
                        p.vendor,
                        p.payment_method,
                        p.notes,
                        int(p.is_recurring),
                        p.recurring_frequency.value if p.recurring_frequency else None,
                        p.recurring_group_id,
                        p.recurring_end_date,
                    ),
                )
                ids.append(int(cur.lastrowid))
        return ids

    def update_many(self, purchases: Sequence[Purchase]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            for p in purchases:
                cur.execute(
                    """
                    UPDATE purchases
                    SET date=%s, description=%s, amount=%s, category=%s, vendor=%s,
                        payment_method=%s, notes=%s
                    WHERE purchase_id=%s
                    """,
                    (
                        p.date,
                        p.description,
                        p.amount,
                        p.category,
                        p.vendor,
                        p.payment_method,
                        p.notes,
                        int(p.purchase_id),
                    ),
                )

    def delete_many(
        self,
        purchase_ids: Sequence[int],
        *,
        group_id: Optional[str] = None,
        new_end_date: Optional[date] = None,
    ) -> int:
        if not purchase_ids:
            return 0
        ids = [int(i) for i in purchase_ids]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM purchases WHERE purchase_id IN ({in_clause(ids)})", tuple(ids))
            deleted = int(cur.rowcount)
            if group_id and new_end_date:
                cur.execute(
                    "UPDATE purchases SET recurring_end_date=%s WHERE recurring_group_id=%s",
                    (new_end_date, group_id),
                )
            return deleted
