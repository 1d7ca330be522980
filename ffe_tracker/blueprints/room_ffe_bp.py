"""
Room FFE Blueprint — per-room checklist state.

Endpoints (base: /api/v1/ffe):
    POST   /rooms/<room_id>/instantiate                 — copy a template into the room
    GET    /rooms/<room_id>                             — checklist + progress (?include_hidden=1)
    GET    /rooms/<room_id>/progress                    — progress only
    GET    /rooms/progress?room_ids=a,b                 — progress for several rooms
    GET    /rooms/<room_id>/changes                     — change log (?limit=100)
    POST   /rooms/<room_id>/sections                    — custom room-only section
    PATCH  /rooms/<room_id>/sections/<sid>              — rename a room section
    POST   /rooms/<room_id>/sections/<sid>/items        — custom room-only item
    POST   /rooms/<room_id>/assignments                 — assign a user (admin/designer)

    PUT    /items/<id>/visibility                       — {"visible": bool}
    POST   /items/<id>/logic-option                     — {"logic_option_id": int}
    DELETE /items/<id>/logic-option                     — revert to no option
    PUT    /items/<id>/status                           — {"status": "COMPLETED"}
    PUT    /items/<id>/notes                            — {"notes": "..."}
"""

import logging

from flask import Blueprint, jsonify, request

from ffe_tracker.core.exceptions import ValidationError
from ffe_tracker.middleware.jwt_auth import current_actor
from ffe_tracker.services import (
    instantiation_service,
    logic_expansion,
    progress_service,
    room_service,
    status_service,
    visibility_service,
)
from ffe_tracker.utils.errors import E, api_error, register_error_handlers

logger = logging.getLogger(__name__)

room_ffe_bp = Blueprint("room_ffe", __name__, url_prefix="/api/v1/ffe")
register_error_handlers(room_ffe_bp)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _require(data: dict, field: str):
    if field not in data or data[field] is None:
        return None, api_error(E.VALIDATION_REQUIRED, f"{field} is required")
    return data[field], None


# ═════════════════════════════════════════════════════════════════════════
# Room state
# ═════════════════════════════════════════════════════════════════════════


@room_ffe_bp.route("/rooms/<room_id>/instantiate", methods=["POST"])
def instantiate_room(room_id):
    """Instantiate a template for a room. Body: {"template_id": int}"""
    template_id, err = _require(_json_body(), "template_id")
    if err:
        return err
    result = instantiation_service.instantiate(room_id, template_id, actor=current_actor())
    return jsonify(result), 201


@room_ffe_bp.route("/rooms/progress", methods=["GET"])
def progress_summary():
    raw = request.args.get("room_ids", "")
    room_ids = [r for r in raw.split(",") if r.strip()]
    if not room_ids:
        return api_error(E.VALIDATION_REQUIRED, "room_ids is required")
    return jsonify(progress_service.get_progress_summary(room_ids)), 200


@room_ffe_bp.route("/rooms/<room_id>", methods=["GET"])
def get_room_state(room_id):
    include_hidden = request.args.get("include_hidden", "").lower() in ("1", "true", "yes")
    return jsonify(room_service.get_room_state(room_id, include_hidden=include_hidden)), 200


@room_ffe_bp.route("/rooms/<room_id>/progress", methods=["GET"])
def get_room_progress(room_id):
    return jsonify(progress_service.compute_progress(room_id)), 200


@room_ffe_bp.route("/rooms/<room_id>/changes", methods=["GET"])
def list_room_changes(room_id):
    limit = request.args.get("limit", 100, type=int)
    return jsonify(room_service.list_changes(room_id, limit=limit)), 200


@room_ffe_bp.route("/rooms/<room_id>/sections", methods=["POST"])
def add_custom_section(room_id):
    """Add a room-only section. Body: {name, items?: [{name, category?, notes?}]}"""
    data = _json_body()
    section = instantiation_service.add_custom_section(
        room_id, data.get("name"), items=data.get("items"), actor=current_actor(),
    )
    return jsonify(section), 201


@room_ffe_bp.route("/rooms/<room_id>/sections/<int:section_id>", methods=["PATCH"])
def rename_section(room_id, section_id):
    name, err = _require(_json_body(), "name")
    if err:
        return err
    return jsonify(
        instantiation_service.rename_section(room_id, section_id, name, actor=current_actor())
    ), 200


@room_ffe_bp.route("/rooms/<room_id>/sections/<int:section_id>/items", methods=["POST"])
def add_custom_item(room_id, section_id):
    """Add a room-only item. Body: {name, category?, notes?}"""
    data = _json_body()
    item = instantiation_service.add_custom_item(
        room_id,
        section_id,
        data.get("name"),
        category=data.get("category"),
        notes=data.get("notes"),
        actor=current_actor(),
    )
    return jsonify(item), 201


@room_ffe_bp.route("/rooms/<room_id>/assignments", methods=["POST"])
def assign_user(room_id):
    """Assign a user to a room. Body: {"user_id": "..."}"""
    user_id, err = _require(_json_body(), "user_id")
    if err:
        return err
    return jsonify(instantiation_service.assign_user(room_id, user_id, actor=current_actor())), 201


# ═════════════════════════════════════════════════════════════════════════
# Item mutations
# ═════════════════════════════════════════════════════════════════════════


@room_ffe_bp.route("/items/<int:item_id>/visibility", methods=["PUT"])
def set_visibility(item_id):
    visible, err = _require(_json_body(), "visible")
    if err:
        return err
    return jsonify(visibility_service.set_visibility(item_id, visible, actor=current_actor())), 200


@room_ffe_bp.route("/items/<int:item_id>/logic-option", methods=["POST"])
def apply_logic_option(item_id):
    option_id, err = _require(_json_body(), "logic_option_id")
    if err:
        return err
    result = logic_expansion.apply_logic_option(item_id, option_id, actor=current_actor())
    return jsonify(result), 201 if result["changed"] else 200


@room_ffe_bp.route("/items/<int:item_id>/logic-option", methods=["DELETE"])
def clear_logic_option(item_id):
    return jsonify(logic_expansion.clear_logic_option(item_id, actor=current_actor())), 200


@room_ffe_bp.route("/items/<int:item_id>/status", methods=["PUT"])
def set_status(item_id):
    status, err = _require(_json_body(), "status")
    if err:
        return err
    return jsonify(status_service.set_status(item_id, status, actor=current_actor())), 200


@room_ffe_bp.route("/items/<int:item_id>/notes", methods=["PUT"])
def set_notes(item_id):
    data = _json_body()
    if "notes" not in data:
        return api_error(E.VALIDATION_REQUIRED, "notes is required")
    return jsonify(status_service.set_notes(item_id, data["notes"], actor=current_actor())), 200
