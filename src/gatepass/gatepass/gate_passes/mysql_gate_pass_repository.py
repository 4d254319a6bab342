from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable, Collection, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_SCOPE
from ..core.enums import GatePassStatus, GatePassType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .allocator import PassNumberAllocator
from .model import EmployeeSubject, GatePass, GatePassChanges, StudentSubject, Subject, VisitorSubject
from .repository import TIMESTAMP_COLUMNS, GatePassRepository

_COLUMNS = """
    id, scope, pass_no, type, student_id, employee_id, visitor_name, visitor_phone,
    reason, destination, status, issued_at, out_at, in_at, cancelled_at, cancel_reason, issued_by
"""


def _row_to_subject(r: dict) -> Subject:
    kind = GatePassType(r["type"])
    if kind == GatePassType.STUDENT:
        return StudentSubject(student_id=int(r["student_id"]))
    if kind == GatePassType.EMPLOYEE:
        return EmployeeSubject(employee_id=int(r["employee_id"]))
    return VisitorSubject(visitor_name=r["visitor_name"], visitor_phone=r.get("visitor_phone"))


def _row_to_gate_pass(r: dict) -> GatePass:
    return GatePass(
        id=r["id"],
        scope=r["scope"],
        pass_no=r["pass_no"],
        subject=_row_to_subject(r),
        reason=r["reason"],
        destination=r.get("destination"),
        status=GatePassStatus(r["status"]),
        issued_at=r["issued_at"],
        out_at=r.get("out_at"),
        in_at=r.get("in_at"),
        cancelled_at=r.get("cancelled_at"),
        cancel_reason=r.get("cancel_reason"),
        issued_by=r.get("issued_by"),
    )


def _in_clause(values: Collection) -> str:
    return ",".join(["%s"] * len(values))


class MySQLGatePassRepository(GatePassRepository):
    def __init__(
        self,
        conn_factory: DatabaseConnection,
        *,
        allocator: PassNumberAllocator | None = None,
        scope: str = DEFAULT_SCOPE,
        clock: Callable[[], datetime] = now_local,
    ):
        self._conn_factory = conn_factory
        self._allocator = allocator or PassNumberAllocator()
        self._scope = scope
        self._clock = clock

    def create(
        self,
        *,
        subject: Subject,
        reason: str,
        destination: Optional[str],
        issued_by: Optional[int] = None,
    ) -> GatePass:
        pass_id = uuid.uuid4().hex
        student_id = subject.student_id if isinstance(subject, StudentSubject) else None
        employee_id = subject.employee_id if isinstance(subject, EmployeeSubject) else None
        visitor_name = subject.visitor_name if isinstance(subject, VisitorSubject) else None
        visitor_phone = subject.visitor_phone if isinstance(subject, VisitorSubject) else None

        with db_cursor(self._conn_factory) as (_, cur):
            seq, pass_no = self._allocator.next_in_transaction(cur, scope=self._scope)
            # Stamped while the counter row is locked, so issued_at follows pass_no order.
            issued_at = self._clock()
            cur.execute(
                """
                INSERT INTO gate_passes(
                    id, scope, pass_seq, pass_no, type, student_id, employee_id,
                    visitor_name, visitor_phone, reason, destination, status, issued_at, issued_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    pass_id,
                    self._scope,
                    seq,
                    pass_no,
                    subject.type.value,
                    student_id,
                    employee_id,
                    visitor_name,
                    visitor_phone,
                    reason,
                    destination,
                    GatePassStatus.ISSUED.value,
                    issued_at,
                    issued_by,
                ),
            )

        return GatePass(
            id=pass_id,
            scope=self._scope,
            pass_no=pass_no,
            subject=subject,
            reason=reason,
            destination=destination,
            status=GatePassStatus.ISSUED,
            issued_at=issued_at,
            issued_by=issued_by,
        )

    def get(self, pass_id: str) -> Optional[GatePass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM gate_passes WHERE id=%s", (str(pass_id),))
            r = fetchone(cur)
            return _row_to_gate_pass(r) if r else None

    def apply_transition(
        self,
        *,
        pass_id: str,
        from_statuses: Collection[GatePassStatus],
        to_status: GatePassStatus,
        at: datetime,
        cancel_reason: Optional[str] = None,
    ) -> bool:
        column = TIMESTAMP_COLUMNS[to_status]
        sets = ["status=%s", f"{column}=%s"]
        params: list[object] = [to_status.value, at]
        if to_status == GatePassStatus.CANCELLED:
            sets.append("cancel_reason=%s")
            params.append(cancel_reason)

        sources = sorted(s.value for s in from_statuses)
        params.append(str(pass_id))
        params.extend(sources)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE gate_passes
                SET {", ".join(sets)}
                WHERE id=%s AND status IN ({_in_clause(sources)}) AND {column} IS NULL
                """,
                tuple(params),
            )
            return cur.rowcount > 0

    def update_details(
        self,
        *,
        pass_id: str,
        allowed_statuses: Collection[GatePassStatus],
        changes: GatePassChanges,
    ) -> bool:
        sets: list[str] = []
        params: list[object] = []

        if changes.reason is not None:
            sets.append("reason=%s")
            params.append(changes.reason)
        if changes.clear_destination:
            sets.append("destination=NULL")
        elif changes.destination is not None:
            sets.append("destination=%s")
            params.append(changes.destination)
        if changes.visitor_name is not None:
            sets.append("visitor_name=%s")
            params.append(changes.visitor_name)
        if changes.clear_visitor_phone:
            sets.append("visitor_phone=NULL")
        elif changes.visitor_phone is not None:
            sets.append("visitor_phone=%s")
            params.append(changes.visitor_phone)

        statuses = sorted(s.value for s in allowed_statuses)
        with db_cursor(self._conn_factory) as (_, cur):
            if not sets:
                cur.execute(
                    f"SELECT id FROM gate_passes WHERE id=%s AND status IN ({_in_clause(statuses)})",
                    tuple([str(pass_id)] + statuses),
                )
                return fetchone(cur) is not None

            cur.execute(
                f"""
                UPDATE gate_passes
                SET {", ".join(sets)}
                WHERE id=%s AND status IN ({_in_clause(statuses)})
                """,
                tuple(params + [str(pass_id)] + statuses),
            )
            if cur.rowcount > 0:
                return True
            # rowcount is 0 when the new values equal the stored ones; check the guard instead.
            cur.execute(
                f"SELECT id FROM gate_passes WHERE id=%s AND status IN ({_in_clause(statuses)})",
                tuple([str(pass_id)] + statuses),
            )
            return fetchone(cur) is not None

    def list(
        self,
        *,
        status: Optional[GatePassStatus] = None,
        type: Optional[GatePassType] = None,
    ) -> Sequence[GatePass]:
        clauses = ["scope=%s"]
        params: list[object] = [self._scope]

        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if type is not None:
            clauses.append("type=%s")
            params.append(type.value)

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM gate_passes
                WHERE {where}
                ORDER BY issued_at DESC, pass_seq DESC
                """,
                tuple(params),
            )
            return [_row_to_gate_pass(r) for r in fetchall(cur)]
