from __future__ import annotations

import io
from functools import wraps

from flask import Flask, jsonify, request, send_file, session

from ..common.app_logger import get_logger
from ..container import Container
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    InvalidTransition,
    NotFoundError,
    PassNumberExhausted,
    TransientStorageError,
    ValidationError,
)
from .query import parse_filters

logger = get_logger(__name__)

_EDITABLE_FIELDS = ("reason", "destination", "visitor_name", "visitor_phone")


def error_response(exc: DomainError):
    body: dict = {"success": False, "error": str(exc)}
    if isinstance(exc, ValidationError):
        body["fields"] = exc.fields
        return jsonify(body), 400
    if isinstance(exc, AuthorizationError):
        return jsonify(body), 403
    if isinstance(exc, NotFoundError):
        return jsonify(body), 404
    if isinstance(exc, InvalidTransition):
        body["current_status"] = getattr(exc.current_status, "value", exc.current_status)
        body["attempted"] = getattr(exc.attempted, "value", exc.attempted)
        return jsonify(body), 409
    if isinstance(exc, TransientStorageError):
        body["retriable"] = True
        return jsonify(body), 503
    if isinstance(exc, PassNumberExhausted):
        logger.error("%s", exc)
        body["retriable"] = False
        return jsonify(body), 500
    return jsonify(body), 400


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "error": "Please log in to continue"}), 401
            return view(*args, **kwargs)

        return wrapper

    def api_errors(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except DomainError as e:
                return error_response(e)
            except Exception:
                logger.exception("unexpected error in %s", request.path)
                return jsonify({"success": False, "error": "Internal server error"}), 500

        return wrapper

    def _current_roles() -> list[str]:
        # Roles are resolved by the login service and stored on the session.
        roles = session.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        if not roles and session.get("role"):
            roles = [session["role"]]
        return [str(r) for r in roles]

    def _current_actor_id():
        try:
            return int(session.get("user_id"))
        except (TypeError, ValueError):
            return None

    def _json_body() -> dict:
        data = request.get_json(silent=True)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    @app.route("/gate-pass", methods=["GET"], endpoint="gate_pass_list")
    @login_required
    @api_errors
    def gate_pass_list():
        filters = parse_filters(
            status=request.args.get("status"),
            type=request.args.get("type"),
            q=request.args.get("q"),
            limit=request.args.get("limit"),
            offset=request.args.get("offset"),
        )
        listing = container.gate_pass_query.list(filters)
        return jsonify({"success": True, **listing.to_dict()})

    @app.route("/gate-pass/kpis", methods=["GET"], endpoint="gate_pass_kpis")
    @login_required
    @api_errors
    def gate_pass_kpis():
        filters = parse_filters(
            status=request.args.get("status"),
            type=request.args.get("type"),
            q=request.args.get("q"),
        )
        return jsonify({"success": True, "counts": container.gate_pass_query.counts(filters)})

    @app.route("/gate-pass/<pass_id>", methods=["GET"], endpoint="gate_pass_get")
    @login_required
    @api_errors
    def gate_pass_get(pass_id: str):
        view = container.gate_pass_query.get_view(pass_id)
        return jsonify({"success": True, "data": view.to_dict()})

    @app.route("/gate-pass", methods=["POST"], endpoint="gate_pass_issue")
    @login_required
    @api_errors
    def gate_pass_issue():
        data = _json_body()
        gp = container.gate_pass_service.issue(
            actor_roles=_current_roles(),
            type=data.get("type"),
            reason=data.get("reason"),
            destination=data.get("destination"),
            class_id=data.get("class_id"),
            student_id=data.get("student_id"),
            employee_id=data.get("employee_id"),
            visitor_name=data.get("visitor_name"),
            visitor_phone=data.get("visitor_phone"),
            actor_id=_current_actor_id(),
        )
        return jsonify({"success": True, "data": gp.to_dict()}), 201

    @app.route("/gate-pass/<pass_id>", methods=["PUT"], endpoint="gate_pass_edit")
    @login_required
    @api_errors
    def gate_pass_edit(pass_id: str):
        data = _json_body()
        # Present-but-null clears an optional field; absent keys stay untouched.
        changes = {k: ("" if data[k] is None else data[k]) for k in _EDITABLE_FIELDS if k in data}
        gp = container.gate_pass_service.edit(actor_roles=_current_roles(), pass_id=pass_id, **changes)
        return jsonify({"success": True, "data": gp.to_dict()})

    @app.route("/gate-pass/<pass_id>/out", methods=["POST"], endpoint="gate_pass_out")
    @login_required
    @api_errors
    def gate_pass_out(pass_id: str):
        gp = container.gate_pass_service.mark_out(actor_roles=_current_roles(), pass_id=pass_id)
        return jsonify({"success": True, "data": gp.to_dict()})

    @app.route("/gate-pass/<pass_id>/in", methods=["POST"], endpoint="gate_pass_in")
    @login_required
    @api_errors
    def gate_pass_in(pass_id: str):
        gp = container.gate_pass_service.mark_in(actor_roles=_current_roles(), pass_id=pass_id)
        return jsonify({"success": True, "data": gp.to_dict()})

    @app.route("/gate-pass/<pass_id>/cancel", methods=["POST"], endpoint="gate_pass_cancel")
    @login_required
    @api_errors
    def gate_pass_cancel(pass_id: str):
        data = _json_body()
        result = container.gate_pass_service.cancel(
            actor_roles=_current_roles(),
            pass_id=pass_id,
            cancel_reason=data.get("cancel_reason"),
        )
        return jsonify(
            {
                "success": True,
                "already_cancelled": result.already_cancelled,
                "data": result.gate_pass.to_dict(),
            }
        )

    @app.route("/gate-pass/<pass_id>/print", methods=["GET"], endpoint="gate_pass_print")
    @login_required
    @api_errors
    def gate_pass_print(pass_id: str):
        artifact = container.gate_pass_export.export(actor_roles=_current_roles(), pass_id=pass_id)
        return send_file(
            io.BytesIO(artifact.content),
            mimetype=artifact.mimetype,
            as_attachment=True,
            download_name=artifact.filename,
        )
