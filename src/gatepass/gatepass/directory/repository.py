from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee, Student


class DirectoryRepository(Protocol):
    """Read-only view of the school directory (students, employees, classes)."""

    def lookup_student(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def lookup_students_by_class(self, class_id: int) -> Sequence[Student]:
        raise NotImplementedError

    def lookup_employee(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError
