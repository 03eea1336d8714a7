from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..common.money import money_or_zero
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Student
from .repository import STUDENT_FIELDS, StudentRepository

_COLUMNS = """
    student_id, first_name, last_name, email, phone, parent_full_name, parent_email,
    parent_phone, subject, price_per_lesson, price_per_package, use_packages, family_id,
    credit, archived, notes, created_at
"""


def row_to_student(r: Mapping[str, Any]) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        first_name=r["first_name"],
        last_name=r["last_name"],
        email=r.get("email"),
        phone=r.get("phone"),
        parent_full_name=r.get("parent_full_name"),
        parent_email=r.get("parent_email"),
        parent_phone=r.get("parent_phone"),
        subject=r.get("subject"),
        price_per_lesson=r.get("price_per_lesson"),
        price_per_package=r.get("price_per_package"),
        use_packages=bool(r.get("use_packages")),
        family_id=r.get("family_id"),
        credit=money_or_zero(r.get("credit")),
        archived=bool(r.get("archived")),
        notes=r.get("notes"),
        created_at=r.get("created_at"),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_id=%s", (int(student_id),))
            r = fetchone(cur)
            return row_to_student(r) if r else None

    def list(self, *, include_archived: bool = False, search: Optional[str] = None) -> Sequence[Student]:
        clauses: list[str] = []
        params: list[object] = []
        if not include_archived:
            clauses.append("archived=0")
        if search:
            clauses.append("(first_name LIKE %s OR last_name LIKE %s OR email LIKE %s)")
            like = f"%{search}%"
            params.extend([like, like, like])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students {where} ORDER BY last_name ASC, first_name ASC",
                tuple(params),
            )
            return [row_to_student(r) for r in fetchall(cur)]

    def list_family(self, family_id: str, *, include_archived: bool = False) -> Sequence[Student]:
        sql = f"SELECT {_COLUMNS} FROM students WHERE family_id=%s"
        if not include_archived:
            sql += " AND archived=0"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY student_id ASC", (family_id,))
            return [row_to_student(r) for r in fetchall(cur)]

    def create(self, fields: Mapping[str, Any]) -> int:
        cols = [c for c in STUDENT_FIELDS if c in fields]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO students ({', '.join(cols)}) VALUES ({', '.join(['%s'] * len(cols))})",
                tuple(fields[c] for c in cols),
            )
            return int(cur.lastrowid)

    def update(self, student_id: int, fields: Mapping[str, Any]) -> bool:
        cols = [c for c in STUDENT_FIELDS if c in fields]
        if not cols:
            return True
        assignments = ", ".join(f"{c}=%s" for c in cols)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE students SET {assignments} WHERE student_id=%s",
                tuple(fields[c] for c in cols) + (int(student_id),),
            )
            # MySQL reports 0 affected rows when values are unchanged.
            cur.execute("SELECT 1 AS ok FROM students WHERE student_id=%s", (int(student_id),))
            return fetchone(cur) is not None

    def delete(self, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM students WHERE student_id=%s", (int(student_id),))
            return cur.rowcount > 0

    def has_activity(self, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM lessons WHERE student_id=%s) +
                    (SELECT COUNT(*) FROM payments WHERE student_id=%s) +
                    (SELECT COUNT(*) FROM packages WHERE student_id=%s) AS refs
                """,
                (int(student_id), int(student_id), int(student_id)),
            )
            r = fetchone(cur)
            return bool(r and int(r["refs"]) > 0)
