from __future__ import annotations

from typing import Optional

from ..core.constants import MAX_LIST_LIMIT
from ..core.enums import GatePassStatus, GatePassType
from ..core.exceptions import NotFoundError, ValidationError
from ..directory.repository import DirectoryRepository
from .model import GatePass, GatePassFilters, GatePassListing, GatePassView, PersonSummary
from .repository import GatePassRepository


def parse_filters(
    *,
    status: Optional[str] = None,
    type: Optional[str] = None,
    q: Optional[str] = None,
    limit=None,
    offset=None,
) -> GatePassFilters:
    """Build filters from raw request values ("" means no filter)."""

    errors: dict[str, str] = {}

    status_value = None
    if status and str(status).strip():
        try:
            status_value = GatePassStatus(str(status).strip().upper())
        except ValueError:
            errors["status"] = f"Unknown status {status!r}"

    type_value = None
    if type and str(type).strip():
        try:
            type_value = GatePassType(str(type).strip().upper())
        except ValueError:
            errors["type"] = f"Unknown type {type!r}"

    limit_value = None
    if limit not in (None, ""):
        try:
            limit_value = int(limit)
        except (TypeError, ValueError):
            limit_value = -1
        if limit_value < 0 or limit_value > MAX_LIST_LIMIT:
            errors["limit"] = f"limit must be between 0 and {MAX_LIST_LIMIT}"

    offset_value = 0
    if offset not in (None, ""):
        try:
            offset_value = int(offset)
        except (TypeError, ValueError):
            offset_value = -1
        if offset_value < 0:
            errors["offset"] = "offset must be >= 0"

    if errors:
        raise ValidationError(next(iter(errors.values())), fields=errors)

    return GatePassFilters(
        status=status_value,
        type=type_value,
        q=(q or "").strip() or None,
        limit=limit_value,
        offset=offset_value,
    )


class GatePassQueryService:
    """Read models for the gate pass table and dashboard tiles."""

    def __init__(self, passes: GatePassRepository, directory: DirectoryRepository):
        self._passes = passes
        self._directory = directory

    def get_view(self, pass_id: str) -> GatePassView:
        gp = self._passes.get(str(pass_id))
        if gp is None:
            raise NotFoundError(f"Gate pass {pass_id} not found")
        return GatePassView(gate_pass=gp, person=self._resolve_person(gp, {}))

    def list(self, filters: GatePassFilters | None = None) -> GatePassListing:
        filters = filters or GatePassFilters()
        matched = self._filtered_views(filters)

        # KPIs come from the filtered set so tiles and table always agree.
        counts = {s.value: 0 for s in GatePassStatus}
        for view in matched:
            counts[view.gate_pass.status.value] += 1
        counts["total"] = len(matched)

        rows = matched[filters.offset :]
        if filters.limit is not None:
            rows = rows[: filters.limit]
        return GatePassListing(rows=rows, counts=counts, total=len(matched))

    def counts(self, filters: GatePassFilters | None = None) -> dict[str, int]:
        return self.list(filters).counts

    def _filtered_views(self, filters: GatePassFilters) -> list[GatePassView]:
        cache: dict[tuple, Optional[PersonSummary]] = {}
        needle = (filters.q or "").lower()

        views: list[GatePassView] = []
        for gp in self._passes.list(status=filters.status, type=filters.type):
            view = GatePassView(gate_pass=gp, person=self._resolve_person(gp, cache))
            if needle and not _matches(view, needle):
                continue
            views.append(view)
        return views

    def _resolve_person(self, gp: GatePass, cache: dict) -> Optional[PersonSummary]:
        if gp.type == GatePassType.VISITOR:
            return PersonSummary(name=gp.visitor_name or "", phone=gp.visitor_phone)

        key = (gp.type, gp.student_id or gp.employee_id)
        if key in cache:
            return cache[key]

        person = None
        if gp.type == GatePassType.STUDENT:
            student = self._directory.lookup_student(gp.student_id)
            if student:
                person = PersonSummary(
                    name=student.name,
                    phone=student.phone,
                    admission_number=student.admission_number,
                    class_id=student.class_id,
                )
        else:
            employee = self._directory.lookup_employee(gp.employee_id)
            if employee:
                person = PersonSummary(name=employee.name, phone=employee.phone)

        cache[key] = person
        return person


def _matches(view: GatePassView, needle: str) -> bool:
    gp = view.gate_pass
    haystack = [gp.pass_no, gp.reason]
    if view.person:
        haystack.extend([view.person.name, view.person.phone])
    return any(needle in str(value).lower() for value in haystack if value)
