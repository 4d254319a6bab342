from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, Optional

from ..common.app_logger import get_logger
from ..common.datetime_utils import now_local, strictly_after
from ..common.validators import is_valid_phone, optional_text, parse_positive_int
from ..core.constants import PHONE_MAX_DIGITS, PHONE_MIN_DIGITS
from ..core.enums import GATE_OPERATOR_ROLES, GatePassEvent, GatePassStatus, GatePassType, Role
from ..core.exceptions import AuthorizationError, InvalidTransition, NotFoundError, ValidationError
from ..directory.repository import DirectoryRepository
from .model import CancelResult, EmployeeSubject, GatePass, GatePassChanges, StudentSubject, Subject, VisitorSubject
from .repository import GatePassRepository
from .state_machine import EDITABLE_STATUSES, EDITABLE_STATUSES_STRICT, next_status

logger = get_logger(__name__)

# A cancel races with markOut; retry the compare-and-swap against the fresh status.
_CANCEL_ATTEMPTS = 3


def require_gate_operator(actor_roles: Iterable[str] | None, action: str) -> None:
    roles = Role.normalize_all(actor_roles)
    if not roles & GATE_OPERATOR_ROLES:
        logger.warning("denied %s for roles=%s", action, sorted(roles))
        raise AuthorizationError(f"You are not allowed to {action} gate passes")


class GatePassService:
    """Issues gate passes and moves them through their lifecycle."""

    def __init__(
        self,
        passes: GatePassRepository,
        directory: DirectoryRepository,
        *,
        edit_while_out: bool = True,
        clock: Callable[[], datetime] = now_local,
    ):
        self._passes = passes
        self._directory = directory
        self._editable = EDITABLE_STATUSES if edit_while_out else EDITABLE_STATUSES_STRICT
        self._clock = clock

    # -------- Reads --------
    def get(self, pass_id: str) -> GatePass:
        gp = self._passes.get(str(pass_id))
        if gp is None:
            raise NotFoundError(f"Gate pass {pass_id} not found")
        return gp

    # -------- Issue --------
    def issue(
        self,
        *,
        actor_roles: Iterable[str],
        type: str,
        reason: Optional[str],
        destination: Optional[str] = None,
        class_id=None,
        student_id=None,
        employee_id=None,
        visitor_name: Optional[str] = None,
        visitor_phone: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> GatePass:
        require_gate_operator(actor_roles, "issue")

        errors: dict[str, str] = {}
        pass_type = self._parse_type(type, errors)
        reason_text = optional_text(reason)
        if not reason_text:
            errors["reason"] = "Reason is required"

        subject: Optional[Subject] = None
        if pass_type == GatePassType.STUDENT:
            cid = self._required_id(class_id, "class_id", "Please select Class", errors)
            sid = self._required_id(student_id, "student_id", "Please select Student", errors)
            if not errors:
                self._ensure_student_in_class(student_id=sid, class_id=cid)
                subject = StudentSubject(student_id=sid)
        elif pass_type == GatePassType.EMPLOYEE:
            eid = self._required_id(employee_id, "employee_id", "Please select an Employee", errors)
            if not errors:
                if self._directory.lookup_employee(eid) is None:
                    raise NotFoundError(f"Employee {eid} not found")
                subject = EmployeeSubject(employee_id=eid)
        elif pass_type == GatePassType.VISITOR:
            name = optional_text(visitor_name)
            phone = optional_text(visitor_phone)
            if not name:
                errors["visitor_name"] = "Visitor name is required for VISITOR gate pass"
            if phone and not is_valid_phone(phone):
                errors["visitor_phone"] = f"Visitor phone must be {PHONE_MIN_DIGITS}-{PHONE_MAX_DIGITS} digits"
            if not errors:
                subject = VisitorSubject(visitor_name=name, visitor_phone=phone)

        if errors or subject is None:
            raise ValidationError(next(iter(errors.values()), "Invalid gate pass"), fields=errors)

        gp = self._passes.create(
            subject=subject,
            reason=reason_text,
            destination=optional_text(destination),
            issued_by=actor_id,
        )
        logger.info("issued %s (%s) id=%s", gp.pass_no, gp.type.value, gp.id)
        return gp

    # -------- Transitions --------
    def mark_out(self, *, actor_roles: Iterable[str], pass_id: str) -> GatePass:
        require_gate_operator(actor_roles, "mark out")
        return self._transition(pass_id, GatePassEvent.MARK_OUT)

    def mark_in(self, *, actor_roles: Iterable[str], pass_id: str) -> GatePass:
        require_gate_operator(actor_roles, "mark in")
        return self._transition(pass_id, GatePassEvent.MARK_IN)

    def cancel(
        self,
        *,
        actor_roles: Iterable[str],
        pass_id: str,
        cancel_reason: Optional[str] = None,
    ) -> CancelResult:
        require_gate_operator(actor_roles, "cancel")
        reason = optional_text(cancel_reason)

        for _ in range(_CANCEL_ATTEMPTS):
            gp = self.get(pass_id)
            if gp.status == GatePassStatus.CANCELLED:
                logger.info("%s already cancelled", gp.pass_no)
                return CancelResult(gate_pass=gp, already_cancelled=True)
            if self._apply(gp, GatePassEvent.CANCEL, cancel_reason=reason):
                return CancelResult(gate_pass=self.get(pass_id))

        current = self.get(pass_id)
        if current.status == GatePassStatus.CANCELLED:
            return CancelResult(gate_pass=current, already_cancelled=True)
        raise InvalidTransition(current_status=current.status, attempted=GatePassEvent.CANCEL)

    def edit(
        self,
        *,
        actor_roles: Iterable[str],
        pass_id: str,
        reason: Optional[str] = None,
        destination: Optional[str] = None,
        visitor_name: Optional[str] = None,
        visitor_phone: Optional[str] = None,
    ) -> GatePass:
        """Change free-text details. None leaves a field alone; "" clears optional fields."""

        require_gate_operator(actor_roles, "edit")
        gp = self.get(pass_id)
        if gp.status not in self._editable:
            logger.warning("rejected edit of %s in status %s", gp.pass_no, gp.status.value)
            raise InvalidTransition(current_status=gp.status, attempted=GatePassEvent.EDIT)

        changes = self._build_changes(
            gp,
            reason=reason,
            destination=destination,
            visitor_name=visitor_name,
            visitor_phone=visitor_phone,
        )
        if changes.is_empty():
            return gp

        if not self._passes.update_details(pass_id=gp.id, allowed_statuses=self._editable, changes=changes):
            current = self.get(pass_id)
            logger.warning("edit of %s lost a race, status now %s", current.pass_no, current.status.value)
            raise InvalidTransition(current_status=current.status, attempted=GatePassEvent.EDIT)

        logger.info("edited %s", gp.pass_no)
        return self.get(pass_id)

    # -------- Helpers --------
    def _transition(self, pass_id: str, event: GatePassEvent) -> GatePass:
        gp = self.get(pass_id)
        if not self._apply(gp, event):
            current = self.get(pass_id)
            logger.warning("%s lost a race on %s, status now %s", current.pass_no, event.value, current.status.value)
            raise InvalidTransition(current_status=current.status, attempted=event)
        return self.get(pass_id)

    def _apply(self, gp: GatePass, event: GatePassEvent, *, cancel_reason: Optional[str] = None) -> bool:
        try:
            target = next_status(gp.status, event)
        except InvalidTransition:
            logger.warning("rejected %s on %s in status %s", event.value, gp.pass_no, gp.status.value)
            raise

        at = strictly_after(self._clock(), gp.issued_at, gp.out_at, gp.in_at)
        applied = self._passes.apply_transition(
            pass_id=gp.id,
            from_statuses={gp.status},
            to_status=target,
            at=at,
            cancel_reason=cancel_reason,
        )
        if applied:
            logger.info("%s %s -> %s", gp.pass_no, gp.status.value, target.value)
        return applied

    @staticmethod
    def _parse_type(value, errors: dict[str, str]) -> Optional[GatePassType]:
        raw = str(value or "").strip().upper()
        if not raw:
            errors["type"] = "Type is required"
            return None
        try:
            return GatePassType(raw)
        except ValueError:
            errors["type"] = f"Unknown gate pass type {value!r}"
            return None

    @staticmethod
    def _required_id(value, field: str, message: str, errors: dict[str, str]) -> Optional[int]:
        if value is None or not str(value).strip():
            errors[field] = message
            return None
        try:
            return parse_positive_int(value, field)
        except ValidationError as exc:
            errors[field] = str(exc)
            return None

    def _ensure_student_in_class(self, *, student_id: int, class_id: int) -> None:
        members = self._directory.lookup_students_by_class(class_id)
        if any(s.student_id == student_id for s in members):
            return
        if self._directory.lookup_student(student_id) is None:
            raise NotFoundError(f"Student {student_id} not found")
        raise ValidationError(
            "Student does not belong to the selected class",
            fields={"student_id": "Student does not belong to the selected class"},
        )

    @staticmethod
    def _build_changes(
        gp: GatePass,
        *,
        reason: Optional[str],
        destination: Optional[str],
        visitor_name: Optional[str],
        visitor_phone: Optional[str],
    ) -> GatePassChanges:
        errors: dict[str, str] = {}

        new_reason = None
        if reason is not None:
            new_reason = optional_text(reason)
            if not new_reason:
                errors["reason"] = "Reason is required"

        new_destination = optional_text(destination) if destination is not None else None
        clear_destination = destination is not None and new_destination is None

        new_name = None
        new_phone = None
        clear_phone = False
        if gp.type == GatePassType.VISITOR:
            if visitor_name is not None:
                new_name = optional_text(visitor_name)
                if not new_name:
                    errors["visitor_name"] = "Visitor name is required for VISITOR gate pass"
            if visitor_phone is not None:
                new_phone = optional_text(visitor_phone)
                clear_phone = new_phone is None
                if new_phone and not is_valid_phone(new_phone):
                    errors["visitor_phone"] = f"Visitor phone must be {PHONE_MIN_DIGITS}-{PHONE_MAX_DIGITS} digits"
        else:
            for field, value in (("visitor_name", visitor_name), ("visitor_phone", visitor_phone)):
                if optional_text(value):
                    errors[field] = f"{field} can only be set on VISITOR gate passes"

        if errors:
            raise ValidationError(next(iter(errors.values())), fields=errors)

        return GatePassChanges(
            reason=new_reason,
            destination=new_destination,
            clear_destination=clear_destination,
            visitor_name=new_name,
            visitor_phone=new_phone,
            clear_visitor_phone=clear_phone,
        )
