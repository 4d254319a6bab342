from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee, Student
from .repository import DirectoryRepository


def _row_to_student(r: dict) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        class_id=int(r["class_id"]),
        name=r["name"],
        admission_number=r.get("admission_number"),
        phone=r.get("phone"),
    )


class MySQLDirectoryRepository(DirectoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def lookup_student(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, class_id, name, admission_number, phone
                FROM students
                WHERE student_id=%s
                """,
                (int(student_id),),
            )
            r = fetchone(cur)
            return _row_to_student(r) if r else None

    def lookup_students_by_class(self, class_id: int) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id, class_id, name, admission_number, phone
                FROM students
                WHERE class_id=%s
                ORDER BY name
                """,
                (int(class_id),),
            )
            return [_row_to_student(r) for r in fetchall(cur)]

    def lookup_employee(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, name, phone, designation, department
                FROM employees
                WHERE employee_id=%s
                """,
                (int(employee_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Employee(
                employee_id=int(r["employee_id"]),
                name=r["name"],
                phone=r.get("phone"),
                designation=r.get("designation"),
                department=r.get("department"),
            )
