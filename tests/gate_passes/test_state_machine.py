from __future__ import annotations

import pytest

from src.gatepass.gatepass.core.enums import GatePassEvent, GatePassStatus
from src.gatepass.gatepass.core.exceptions import InvalidTransition
from src.gatepass.gatepass.gate_passes.state_machine import next_status


def test_normal_path():
    assert next_status(GatePassStatus.ISSUED, GatePassEvent.MARK_OUT) == GatePassStatus.OUT
    assert next_status(GatePassStatus.OUT, GatePassEvent.MARK_IN) == GatePassStatus.IN


@pytest.mark.parametrize("status", [GatePassStatus.ISSUED, GatePassStatus.OUT])
def test_cancel_allowed_before_return(status):
    assert next_status(status, GatePassEvent.CANCEL) == GatePassStatus.CANCELLED


@pytest.mark.parametrize("status", [GatePassStatus.IN, GatePassStatus.CANCELLED])
@pytest.mark.parametrize("event", [GatePassEvent.MARK_OUT, GatePassEvent.MARK_IN, GatePassEvent.CANCEL])
def test_terminal_states_reject_everything(status, event):
    with pytest.raises(InvalidTransition) as exc:
        next_status(status, event)
    assert exc.value.current_status == status
    assert exc.value.attempted == event


def test_mark_in_requires_out():
    with pytest.raises(InvalidTransition) as exc:
        next_status(GatePassStatus.ISSUED, GatePassEvent.MARK_IN)
    assert "markIn" in str(exc.value)
    assert "ISSUED" in str(exc.value)
