"""Gate pass lifecycle.

ISSUED -> OUT -> IN is the normal path; CANCELLED is reachable from ISSUED or OUT.
IN and CANCELLED are terminal.
"""

from __future__ import annotations

from ..core.enums import GatePassEvent, GatePassStatus
from ..core.exceptions import InvalidTransition

TRANSITIONS: dict[tuple[GatePassStatus, GatePassEvent], GatePassStatus] = {
    (GatePassStatus.ISSUED, GatePassEvent.MARK_OUT): GatePassStatus.OUT,
    (GatePassStatus.OUT, GatePassEvent.MARK_IN): GatePassStatus.IN,
    (GatePassStatus.ISSUED, GatePassEvent.CANCEL): GatePassStatus.CANCELLED,
    (GatePassStatus.OUT, GatePassEvent.CANCEL): GatePassStatus.CANCELLED,
}

EDITABLE_STATUSES = frozenset({GatePassStatus.ISSUED, GatePassStatus.OUT})
EDITABLE_STATUSES_STRICT = frozenset({GatePassStatus.ISSUED})


def next_status(current: GatePassStatus, event: GatePassEvent) -> GatePassStatus:
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransition(current_status=current, attempted=event) from None
