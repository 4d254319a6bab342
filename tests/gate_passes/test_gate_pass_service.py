from __future__ import annotations

from datetime import datetime

import pytest

from src.gatepass.gatepass.core.enums import GatePassEvent, GatePassStatus, GatePassType
from src.gatepass.gatepass.core.exceptions import (
    AuthorizationError,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)
from src.gatepass.gatepass.gate_passes.model import StudentSubject, VisitorSubject
from src.gatepass.gatepass.gate_passes.service import GatePassService

FRONT_DESK = ["frontoffice"]


def _visitor(service, **overrides):
    data = dict(actor_roles=FRONT_DESK, type="VISITOR", visitor_name="Jane Doe", reason="Meeting")
    data.update(overrides)
    return service.issue(**data)


# -------- issue --------
def test_issue_visitor_with_formatted_phone(service):
    gp = _visitor(service, visitor_phone="98765-43210")

    assert gp.status == GatePassStatus.ISSUED
    assert gp.type == GatePassType.VISITOR
    assert gp.subject == VisitorSubject(visitor_name="Jane Doe", visitor_phone="98765-43210")
    assert gp.pass_no == "GP-00000001"
    assert gp.out_at is None and gp.in_at is None and gp.cancelled_at is None


def test_issue_visitor_rejects_short_phone(service):
    with pytest.raises(ValidationError) as exc:
        service.issue(actor_roles=FRONT_DESK, type="VISITOR", visitor_phone="12345", reason="x")
    assert "visitor_phone" in exc.value.fields
    assert "visitor_name" in exc.value.fields


def test_issue_visitor_rejects_too_long_phone(service):
    with pytest.raises(ValidationError) as exc:
        _visitor(service, visitor_phone="+91 98765 43210 99999")
    assert set(exc.value.fields) == {"visitor_phone"}


def test_issue_requires_reason_after_trim(service):
    with pytest.raises(ValidationError) as exc:
        _visitor(service, reason="   ")
    assert exc.value.fields == {"reason": "Reason is required"}


def test_issue_rejects_unknown_type(service):
    with pytest.raises(ValidationError) as exc:
        service.issue(actor_roles=FRONT_DESK, type="PARENT", reason="pickup")
    assert "type" in exc.value.fields


def test_issue_student_checks_class_membership(service):
    gp = service.issue(actor_roles=FRONT_DESK, type="student", class_id="5", student_id=2, reason="Sick")
    assert gp.subject == StudentSubject(student_id=2)
    assert gp.student_id == 2 and gp.employee_id is None and gp.visitor_name is None

    with pytest.raises(ValidationError) as exc:
        service.issue(actor_roles=FRONT_DESK, type="STUDENT", class_id=5, student_id=3, reason="Sick")
    assert "student_id" in exc.value.fields


def test_issue_student_requires_class_and_student(service):
    with pytest.raises(ValidationError) as exc:
        service.issue(actor_roles=FRONT_DESK, type="STUDENT", reason="Sick")
    assert set(exc.value.fields) == {"class_id", "student_id"}


def test_issue_student_accepts_json_float_ids(service):
    gp = service.issue(actor_roles=FRONT_DESK, type="STUDENT", class_id=5.0, student_id=1.0, reason="Sick")
    assert gp.subject == StudentSubject(student_id=1)


def test_issue_unknown_student_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.issue(actor_roles=FRONT_DESK, type="STUDENT", class_id=5, student_id=999, reason="Sick")


def test_issue_employee(service):
    gp = service.issue(actor_roles=["Admin"], type="EMPLOYEE", employee_id=10, reason="Bank", destination=" City ")
    assert gp.employee_id == 10
    assert gp.destination == "City"

    with pytest.raises(NotFoundError):
        service.issue(actor_roles=FRONT_DESK, type="EMPLOYEE", employee_id=11, reason="Bank")


@pytest.mark.parametrize("roles", [[], ["teacher"], ["accounts", "librarian"], None])
def test_issue_requires_gate_role(service, roles):
    with pytest.raises(AuthorizationError):
        _visitor(service, actor_roles=roles)


@pytest.mark.parametrize("roles", [["front-office"], ["FRONT_OFFICE"], ["superadmin"], ["teacher", "admin"]])
def test_gate_role_spellings(service, roles):
    assert _visitor(service, actor_roles=roles).status == GatePassStatus.ISSUED


@pytest.mark.parametrize("roles", ["admin", "Front-Office"])
def test_single_role_string_is_one_role(service, roles):
    assert _visitor(service, actor_roles=roles).status == GatePassStatus.ISSUED


def test_single_role_string_still_checked(service):
    with pytest.raises(AuthorizationError):
        _visitor(service, actor_roles="nimda")


def test_issue_records_actor(service):
    assert _visitor(service, actor_id=7).issued_by == 7


# -------- transitions --------
def test_issue_out_in_round_trip(service):
    gp = _visitor(service)
    out = service.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)
    back = service.mark_in(actor_roles=FRONT_DESK, pass_id=gp.id)

    assert out.status == GatePassStatus.OUT
    assert back.status == GatePassStatus.IN
    assert back.issued_at < back.out_at < back.in_at


def test_timestamps_strictly_increase_with_a_frozen_clock(passes_repo, directory):
    frozen = datetime(2026, 2, 1, 8, 0, 0)
    svc = GatePassService(passes_repo, directory, clock=lambda: frozen)
    gp = _visitor(svc)
    svc.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)
    back = svc.mark_in(actor_roles=FRONT_DESK, pass_id=gp.id)
    assert back.issued_at < back.out_at < back.in_at


def test_mark_in_from_issued_is_rejected_and_unchanged(service):
    gp = _visitor(service)
    with pytest.raises(InvalidTransition) as exc:
        service.mark_in(actor_roles=FRONT_DESK, pass_id=gp.id)

    assert exc.value.current_status == GatePassStatus.ISSUED
    assert exc.value.attempted == GatePassEvent.MARK_IN
    assert service.get(gp.id) == gp


def test_mark_out_twice_reports_current_status(service):
    gp = _visitor(service)
    service.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)
    with pytest.raises(InvalidTransition) as exc:
        service.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)
    assert exc.value.current_status == GatePassStatus.OUT


def test_unknown_id_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.mark_out(actor_roles=FRONT_DESK, pass_id="nope")
    with pytest.raises(NotFoundError):
        service.get("nope")


def test_transitions_require_gate_role(service):
    gp = _visitor(service)
    with pytest.raises(AuthorizationError):
        service.mark_out(actor_roles=["teacher"], pass_id=gp.id)
    assert service.get(gp.id).status == GatePassStatus.ISSUED


# -------- cancel --------
def test_cancel_twice_is_idempotent(service):
    gp = _visitor(service)
    first = service.cancel(actor_roles=FRONT_DESK, pass_id=gp.id, cancel_reason="Plans changed")
    second = service.cancel(actor_roles=FRONT_DESK, pass_id=gp.id, cancel_reason="Again")

    assert first.already_cancelled is False
    assert first.gate_pass.status == GatePassStatus.CANCELLED
    assert first.gate_pass.cancel_reason == "Plans changed"
    assert second.already_cancelled is True
    assert second.gate_pass.cancelled_at == first.gate_pass.cancelled_at
    assert second.gate_pass.cancel_reason == "Plans changed"


def test_cancel_while_out(service):
    gp = _visitor(service)
    service.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)
    result = service.cancel(actor_roles=FRONT_DESK, pass_id=gp.id)

    assert result.gate_pass.status == GatePassStatus.CANCELLED
    assert result.gate_pass.cancel_reason is None
    assert result.gate_pass.out_at < result.gate_pass.cancelled_at


def test_cancel_after_in_is_rejected(service):
    gp = _visitor(service)
    service.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)
    service.mark_in(actor_roles=FRONT_DESK, pass_id=gp.id)

    with pytest.raises(InvalidTransition) as exc:
        service.cancel(actor_roles=FRONT_DESK, pass_id=gp.id)
    assert exc.value.current_status == GatePassStatus.IN
    assert service.get(gp.id).status == GatePassStatus.IN


def test_no_transition_from_cancelled(service):
    gp = _visitor(service)
    service.cancel(actor_roles=FRONT_DESK, pass_id=gp.id)
    with pytest.raises(InvalidTransition):
        service.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)


# -------- edit --------
def test_edit_visitor_details(service):
    gp = _visitor(service, visitor_phone="9876543210", destination="Office")
    edited = service.edit(
        actor_roles=FRONT_DESK,
        pass_id=gp.id,
        reason="Parent meeting",
        destination="",
        visitor_name="Jane D.",
        visitor_phone="",
    )

    assert edited.reason == "Parent meeting"
    assert edited.destination is None
    assert edited.subject == VisitorSubject(visitor_name="Jane D.", visitor_phone=None)
    assert (edited.id, edited.pass_no, edited.type) == (gp.id, gp.pass_no, gp.type)


def test_edit_validates_fields(service):
    gp = _visitor(service)
    with pytest.raises(ValidationError) as exc:
        service.edit(actor_roles=FRONT_DESK, pass_id=gp.id, reason=" ", visitor_phone="123")
    assert set(exc.value.fields) == {"reason", "visitor_phone"}


def test_edit_rejects_visitor_fields_on_student_pass(service):
    gp = service.issue(actor_roles=FRONT_DESK, type="STUDENT", class_id=5, student_id=1, reason="Sick")
    with pytest.raises(ValidationError):
        service.edit(actor_roles=FRONT_DESK, pass_id=gp.id, visitor_name="Someone")


def test_edit_allowed_while_out_by_default(service):
    gp = _visitor(service)
    service.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)
    assert service.edit(actor_roles=FRONT_DESK, pass_id=gp.id, destination="Bank").destination == "Bank"


def test_edit_only_while_issued_when_configured(passes_repo, directory, clock):
    svc = GatePassService(passes_repo, directory, edit_while_out=False, clock=clock)
    gp = _visitor(svc)
    svc.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)
    with pytest.raises(InvalidTransition) as exc:
        svc.edit(actor_roles=FRONT_DESK, pass_id=gp.id, reason="Changed")
    assert exc.value.attempted == GatePassEvent.EDIT


@pytest.mark.parametrize("finish", ["in", "cancel"])
def test_edit_rejected_in_terminal_states(service, finish):
    gp = _visitor(service)
    if finish == "in":
        service.mark_out(actor_roles=FRONT_DESK, pass_id=gp.id)
        service.mark_in(actor_roles=FRONT_DESK, pass_id=gp.id)
    else:
        service.cancel(actor_roles=FRONT_DESK, pass_id=gp.id)

    with pytest.raises(InvalidTransition):
        service.edit(actor_roles=FRONT_DESK, pass_id=gp.id, reason="Too late")
