from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Optional, Union

from ..common.datetime_utils import iso_or_none
from ..core.enums import GatePassStatus, GatePassType


@dataclass(frozen=True)
class StudentSubject:
    student_id: int
    type: ClassVar[GatePassType] = GatePassType.STUDENT


@dataclass(frozen=True)
class EmployeeSubject:
    employee_id: int
    type: ClassVar[GatePassType] = GatePassType.EMPLOYEE


@dataclass(frozen=True)
class VisitorSubject:
    visitor_name: str
    visitor_phone: Optional[str] = None
    type: ClassVar[GatePassType] = GatePassType.VISITOR


Subject = Union[StudentSubject, EmployeeSubject, VisitorSubject]


@dataclass(frozen=True)
class GatePass:
    id: str
    scope: str
    pass_no: str
    subject: Subject
    reason: str
    status: GatePassStatus
    issued_at: datetime
    destination: Optional[str] = None
    out_at: Optional[datetime] = None
    in_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    issued_by: Optional[int] = None

    @property
    def type(self) -> GatePassType:
        return self.subject.type

    @property
    def student_id(self) -> Optional[int]:
        return self.subject.student_id if isinstance(self.subject, StudentSubject) else None

    @property
    def employee_id(self) -> Optional[int]:
        return self.subject.employee_id if isinstance(self.subject, EmployeeSubject) else None

    @property
    def visitor_name(self) -> Optional[str]:
        return self.subject.visitor_name if isinstance(self.subject, VisitorSubject) else None

    @property
    def visitor_phone(self) -> Optional[str]:
        return self.subject.visitor_phone if isinstance(self.subject, VisitorSubject) else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pass_no": self.pass_no,
            "type": self.type.value,
            "student_id": self.student_id,
            "employee_id": self.employee_id,
            "visitor_name": self.visitor_name,
            "visitor_phone": self.visitor_phone,
            "reason": self.reason,
            "destination": self.destination,
            "status": self.status.value,
            "issued_at": iso_or_none(self.issued_at),
            "out_at": iso_or_none(self.out_at),
            "in_at": iso_or_none(self.in_at),
            "cancelled_at": iso_or_none(self.cancelled_at),
            "cancel_reason": self.cancel_reason,
        }


@dataclass(frozen=True)
class GatePassChanges:
    """Mutable details of a pass. None means "leave as is"."""

    reason: Optional[str] = None
    destination: Optional[str] = None
    clear_destination: bool = False
    visitor_name: Optional[str] = None
    visitor_phone: Optional[str] = None
    clear_visitor_phone: bool = False

    def is_empty(self) -> bool:
        return (
            self.reason is None
            and self.destination is None
            and not self.clear_destination
            and self.visitor_name is None
            and self.visitor_phone is None
            and not self.clear_visitor_phone
        )


@dataclass(frozen=True)
class CancelResult:
    gate_pass: GatePass
    already_cancelled: bool = False


@dataclass(frozen=True)
class PersonSummary:
    name: str
    phone: Optional[str] = None
    admission_number: Optional[str] = None
    class_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "phone": self.phone,
            "admission_number": self.admission_number,
            "class_id": self.class_id,
        }


@dataclass(frozen=True)
class GatePassView:
    """A pass joined with the person it was issued to, resolved at read time."""

    gate_pass: GatePass
    person: Optional[PersonSummary] = None

    @property
    def display_name(self) -> str:
        gp = self.gate_pass
        if gp.type == GatePassType.STUDENT:
            if self.person:
                return f"{self.person.name} ({self.person.admission_number or 'N/A'})"
            return f"Student ID: {gp.student_id}"
        if gp.type == GatePassType.EMPLOYEE:
            if self.person:
                return f"{self.person.name} ({self.person.phone})" if self.person.phone else self.person.name
            return f"Employee ID: {gp.employee_id}"
        if gp.visitor_phone:
            return f"{gp.visitor_name} ({gp.visitor_phone})"
        return gp.visitor_name or "Visitor"

    def to_dict(self) -> dict:
        data = self.gate_pass.to_dict()
        data["person"] = self.person.to_dict() if self.person else None
        data["person_display"] = self.display_name
        return data


@dataclass(frozen=True)
class GatePassFilters:
    status: Optional[GatePassStatus] = None
    type: Optional[GatePassType] = None
    q: Optional[str] = None
    limit: Optional[int] = None
    offset: int = 0


@dataclass(frozen=True)
class GatePassListing:
    rows: list[GatePassView] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    total: int = 0

    def to_dict(self) -> dict:
        return {
            "data": [v.to_dict() for v in self.rows],
            "counts": dict(self.counts),
            "total": self.total,
        }
