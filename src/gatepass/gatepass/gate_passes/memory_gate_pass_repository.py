from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Callable, Collection, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS, DEFAULT_SCOPE
from ..core.enums import GatePassStatus, GatePassType
from ..core.exceptions import TransientStorageError
from .allocator import InMemorySequence, PassNumberAllocator
from .model import GatePass, GatePassChanges, Subject, VisitorSubject
from .repository import TIMESTAMP_COLUMNS, GatePassRepository


class InMemoryGatePassRepository(GatePassRepository):
    """Thread-safe ledger kept in process memory.

    A single store lock plays the role of MySQL's row locks: reads and
    compare-and-swap writes happen under it, and records are immutable
    dataclasses swapped in whole, so readers never see half-applied writes.
    """

    def __init__(
        self,
        *,
        allocator: PassNumberAllocator | None = None,
        scope: str = DEFAULT_SCOPE,
        clock: Callable[[], datetime] = now_local,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
        sequence: InMemorySequence | None = None,
    ):
        self._allocator = allocator or PassNumberAllocator()
        self._scope = scope
        self._clock = clock
        self._lock_timeout = float(lock_timeout)
        self._sequence = sequence or InMemorySequence()
        self._lock = threading.RLock()
        self._passes: dict[str, GatePass] = {}

    @contextmanager
    def _locked(self):
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise TransientStorageError("Gate pass store is busy, try again")
        try:
            yield
        finally:
            self._lock.release()

    def create(
        self,
        *,
        subject: Subject,
        reason: str,
        destination: Optional[str],
        issued_by: Optional[int] = None,
    ) -> GatePass:
        with self._locked():
            seq = self._sequence.next_value(self._scope)
            gp = GatePass(
                id=uuid.uuid4().hex,
                scope=self._scope,
                pass_no=self._allocator.format(seq),
                subject=subject,
                reason=reason,
                destination=destination,
                status=GatePassStatus.ISSUED,
                issued_at=self._clock(),
                issued_by=issued_by,
            )
            self._passes[gp.id] = gp
            return gp

    def get(self, pass_id: str) -> Optional[GatePass]:
        with self._locked():
            return self._passes.get(str(pass_id))

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
        with self._locked():
            current = self._passes.get(str(pass_id))
            if current is None or current.status not in from_statuses:
                return False
            if getattr(current, column) is not None:
                return False
            fields = {"status": to_status, column: at}
            if to_status == GatePassStatus.CANCELLED:
                fields["cancel_reason"] = cancel_reason
            self._passes[current.id] = replace(current, **fields)
            return True

    def update_details(
        self,
        *,
        pass_id: str,
        allowed_statuses: Collection[GatePassStatus],
        changes: GatePassChanges,
    ) -> bool:
        with self._locked():
            current = self._passes.get(str(pass_id))
            if current is None or current.status not in allowed_statuses:
                return False

            fields: dict[str, object] = {}
            if changes.reason is not None:
                fields["reason"] = changes.reason
            if changes.clear_destination:
                fields["destination"] = None
            elif changes.destination is not None:
                fields["destination"] = changes.destination

            subject = current.subject
            if isinstance(subject, VisitorSubject):
                phone = subject.visitor_phone
                if changes.clear_visitor_phone:
                    phone = None
                elif changes.visitor_phone is not None:
                    phone = changes.visitor_phone
                fields["subject"] = VisitorSubject(
                    visitor_name=changes.visitor_name if changes.visitor_name is not None else subject.visitor_name,
                    visitor_phone=phone,
                )

            self._passes[current.id] = replace(current, **fields)
            return True

    def list(
        self,
        *,
        status: Optional[GatePassStatus] = None,
        type: Optional[GatePassType] = None,
    ) -> Sequence[GatePass]:
        with self._locked():
            items = [
                gp
                for gp in self._passes.values()
                if gp.scope == self._scope
                and (status is None or gp.status == status)
                and (type is None or gp.type == type)
            ]
        items.sort(key=lambda gp: (gp.issued_at, gp.pass_no), reverse=True)
        return items
