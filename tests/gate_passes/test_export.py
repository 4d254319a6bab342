from __future__ import annotations

import json

import pytest

from src.gatepass.gatepass.core.exceptions import AuthorizationError, NotFoundError
from src.gatepass.gatepass.gate_passes.export import Artifact, GatePassExportService, QRSlipRenderer

FRONT_DESK = ["frontoffice"]


class RecordingRenderer:
    def __init__(self):
        self.views = []

    def render(self, view):
        self.views.append(view)
        return Artifact(content=b"%PDF-1.4 fake", mimetype="application/pdf", filename=f"{view.gate_pass.pass_no}.pdf")


def test_export_delegates_to_renderer(service, query):
    gp = service.issue(actor_roles=FRONT_DESK, type="EMPLOYEE", employee_id=10, reason="Bank")
    renderer = RecordingRenderer()

    artifact = GatePassExportService(query, renderer).export(actor_roles=FRONT_DESK, pass_id=gp.id)

    assert artifact.mimetype == "application/pdf"
    assert artifact.filename == "GP-00000001.pdf"
    assert renderer.views[0].gate_pass.id == gp.id
    assert renderer.views[0].person.name == "Meera Iyer"


def test_export_checks_role_and_existence(query):
    export = GatePassExportService(query, RecordingRenderer())
    with pytest.raises(AuthorizationError):
        export.export(actor_roles=["parent"], pass_id="x")
    with pytest.raises(NotFoundError):
        export.export(actor_roles=FRONT_DESK, pass_id="x")


def test_qr_slip_is_png(service, query):
    gp = service.issue(actor_roles=FRONT_DESK, type="VISITOR", visitor_name="Jane Doe", reason="Meeting")
    view = query.get_view(gp.id)

    artifact = QRSlipRenderer(box_size=4).render(view)

    assert artifact.content.startswith(b"\x89PNG")
    assert artifact.mimetype == "image/png"
    assert artifact.filename == "GatePass_GP-00000001.png"

    payload = json.loads(QRSlipRenderer.payload(view))
    assert payload["pass_no"] == "GP-00000001"
    assert payload["person"] == "Jane Doe"
    assert payload["status"] == "ISSUED"
