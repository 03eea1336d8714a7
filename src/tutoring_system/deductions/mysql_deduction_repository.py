from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence

from ..common.money import money_or_zero
from ..core.enums import PeriodType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Deduction, NewDeduction
from .repository import DeductionRepository

_SELECT = """
    SELECT deduction_id, category, amount, period_type, period, deduction_percent,
           deductible_amount, notes, created_at
    FROM home_office_deductions
"""

DEDUCTION_FIELDS = ("category", "amount", "period_type", "period", "deduction_percent", "deductible_amount", "notes")


def _row_to_deduction(r: Mapping[str, Any]) -> Deduction:
    return Deduction(
        deduction_id=int(r["deduction_id"]),
        category=r["category"],
        amount=money_or_zero(r["amount"]),
        period_type=PeriodType(r["period_type"]),
        period=r["period"],
        deduction_percent=Decimal(r["deduction_percent"]),
        deductible_amount=money_or_zero(r["deductible_amount"]),
        notes=r.get("notes"),
        created_at=r.get("created_at"),
    )


class MySQLDeductionRepository(DeductionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, deduction_id: int) -> Optional[Deduction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE deduction_id=%s", (int(deduction_id),))
            r = fetchone(cur)
            return _row_to_deduction(r) if r else None

    def list(self, *, year: Optional[int] = None, category: Optional[str] = None) -> Sequence[Deduction]:
        clauses: list[str] = []
        params: list[object] = []
        if year is not None:
            clauses.append("period >= %s AND period < %s")
            params.extend([date(year, 1, 1), date(year + 1, 1, 1)])
        if category:
            clauses.append("category=%s")
            params.append(category)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + where + " ORDER BY period DESC, category ASC", tuple(params))
            return [_row_to_deduction(r) for r in fetchall(cur)]

    def create(self, deduction: NewDeduction) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO home_office_deductions(
                    category, amount, period_type, period, deduction_percent, deductible_amount, notes
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    deduction.category,
                    deduction.amount,
                    deduction.period_type.value,
                    deduction.period,
                    deduction.deduction_percent,
                    deduction.deductible_amount,
                    deduction.notes,
                ),
            )
            return int(cur.lastrowid)

    def update(self, deduction_id: int, fields: Mapping[str, Any]) -> bool:
        cols = [c for c in DEDUCTION_FIELDS if c in fields]
        if not cols:
            return True
        assignments = ", ".join(f"{c}=%s" for c in cols)
        values = tuple(fields[c].value if isinstance(fields[c], PeriodType) else fields[c] for c in cols)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE home_office_deductions SET {assignments} WHERE deduction_id=%s",
                values + (int(deduction_id),),
            )
            # MySQL reports 0 affected rows when values are unchanged.
            cur.execute("SELECT 1 AS ok FROM home_office_deductions WHERE deduction_id=%s", (int(deduction_id),))
            return fetchone(cur) is not None

    def delete(self, deduction_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM home_office_deductions WHERE deduction_id=%s", (int(deduction_id),))
            return cur.rowcount > 0
