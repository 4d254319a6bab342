from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .model import Employee, Student
from .repository import DirectoryRepository


class InMemoryDirectoryRepository(DirectoryRepository):
    """Directory held in process memory. Used by the `memory` storage backend and tests."""

    def __init__(self, *, students: Iterable[Student] = (), employees: Iterable[Employee] = ()):
        self._students: dict[int, Student] = {s.student_id: s for s in students}
        self._employees: dict[int, Employee] = {e.employee_id: e for e in employees}

    def add_student(self, student: Student) -> None:
        self._students[student.student_id] = student

    def add_employee(self, employee: Employee) -> None:
        self._employees[employee.employee_id] = employee

    def lookup_student(self, student_id: int) -> Optional[Student]:
        return self._students.get(int(student_id))

    def lookup_students_by_class(self, class_id: int) -> Sequence[Student]:
        items = [s for s in self._students.values() if s.class_id == int(class_id)]
        items.sort(key=lambda s: s.name)
        return items

    def lookup_employee(self, employee_id: int) -> Optional[Employee]:
        return self._employees.get(int(employee_id))
