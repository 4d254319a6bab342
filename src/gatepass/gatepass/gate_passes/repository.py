from __future__ import annotations

from datetime import datetime
from typing import Collection, Optional, Protocol, Sequence

from ..core.enums import GatePassStatus, GatePassType
from .model import GatePass, GatePassChanges, Subject


class GatePassRepository(Protocol):
    """Authoritative store of gate passes.

    Every write is a compare-and-swap on `status`: it applies only while the
    record is still in one of the expected statuses and reports whether it did.
    """

    def create(
        self,
        *,
        subject: Subject,
        reason: str,
        destination: Optional[str],
        issued_by: Optional[int] = None,
    ) -> GatePass:
        """Allocate the next pass number and insert an ISSUED pass atomically."""

        raise NotImplementedError

    def get(self, pass_id: str) -> Optional[GatePass]:
        raise NotImplementedError

    def apply_transition(
        self,
        *,
        pass_id: str,
        from_statuses: Collection[GatePassStatus],
        to_status: GatePassStatus,
        at: datetime,
        cancel_reason: Optional[str] = None,
    ) -> bool:
        """Move the pass to `to_status` and stamp the matching timestamp column."""

        raise NotImplementedError

    def update_details(
        self,
        *,
        pass_id: str,
        allowed_statuses: Collection[GatePassStatus],
        changes: GatePassChanges,
    ) -> bool:
        raise NotImplementedError

    def list(
        self,
        *,
        status: Optional[GatePassStatus] = None,
        type: Optional[GatePassType] = None,
    ) -> Sequence[GatePass]:
        """Newest-issued first."""

        raise NotImplementedError


TIMESTAMP_COLUMNS = {
    GatePassStatus.OUT: "out_at",
    GatePassStatus.IN: "in_at",
    GatePassStatus.CANCELLED: "cancelled_at",
}
