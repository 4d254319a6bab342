from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Student:
    student_id: int
    class_id: int
    name: str
    admission_number: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class Employee:
    employee_id: int
    name: str
    phone: Optional[str] = None
    designation: Optional[str] = None
    department: Optional[str] = None
