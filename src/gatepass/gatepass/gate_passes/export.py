from __future__ import annotations

import io
import json
from dataclasses import dataclass
from typing import Iterable, Protocol

import qrcode

from ..common.app_logger import get_logger
from .model import GatePassView
from .query import GatePassQueryService
from .service import require_gate_operator

logger = get_logger(__name__)


@dataclass(frozen=True)
class Artifact:
    content: bytes
    mimetype: str
    filename: str


class GatePassRenderer(Protocol):
    """Turns one gate pass into a printable document."""

    def render(self, view: GatePassView) -> Artifact:
        raise NotImplementedError


class QRSlipRenderer(GatePassRenderer):
    """PNG slip: a QR code the gate guard can scan to look the pass up."""

    def __init__(self, *, box_size: int = 10, border: int = 2):
        self._box_size = box_size
        self._border = border

    @staticmethod
    def payload(view: GatePassView) -> str:
        gp = view.gate_pass
        return json.dumps(
            {
                "id": gp.id,
                "pass_no": gp.pass_no,
                "type": gp.type.value,
                "person": view.display_name,
                "status": gp.status.value,
                "issued_at": gp.issued_at.isoformat(),
            },
            ensure_ascii=False,
        )

    def render(self, view: GatePassView) -> Artifact:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self._box_size,
            border=self._border,
        )
        qr.add_data(self.payload(view))
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return Artifact(
            content=buf.getvalue(),
            mimetype="image/png",
            filename=f"GatePass_{view.gate_pass.pass_no}.png",
        )


class GatePassExportService:
    def __init__(self, query: GatePassQueryService, renderer: GatePassRenderer):
        self._query = query
        self._renderer = renderer

    def export(self, *, actor_roles: Iterable[str], pass_id: str) -> Artifact:
        require_gate_operator(actor_roles, "print")
        view = self._query.get_view(pass_id)
        artifact = self._renderer.render(view)
        logger.info("rendered %s (%s, %d bytes)", view.gate_pass.pass_no, artifact.mimetype, len(artifact.content))
        return artifact
