from __future__ import annotations

from enum import Enum
from typing import Iterable


class Role(str, Enum):
    """Roles allowed to operate the gate desk."""

    FRONT_OFFICE = "frontoffice"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @staticmethod
    def normalize(value: str) -> str:
        return str(value or "").strip().lower().replace("-", "").replace("_", "")

    @classmethod
    def normalize_all(cls, roles: Iterable[str] | str | None) -> frozenset[str]:
        if isinstance(roles, str):
            roles = (roles,)
        return frozenset(cls.normalize(r) for r in (roles or ()) if r)


GATE_OPERATOR_ROLES = frozenset({Role.FRONT_OFFICE.value, Role.ADMIN.value, Role.SUPERADMIN.value})


class GatePassType(str, Enum):
    STUDENT = "STUDENT"
    EMPLOYEE = "EMPLOYEE"
    VISITOR = "VISITOR"


class GatePassStatus(str, Enum):
    """Lifecycle states stored in the ledger."""

    ISSUED = "ISSUED"
    OUT = "OUT"
    IN = "IN"
    CANCELLED = "CANCELLED"


class GatePassEvent(str, Enum):
    MARK_OUT = "markOut"
    MARK_IN = "markIn"
    CANCEL = "cancel"
    EDIT = "edit"
