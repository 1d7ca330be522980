"""
FFE Template Blueprint — admin/designer template authoring.

Endpoints (base: /api/v1/ffe):
    GET    /templates                    — list (?status=ACTIVE)
    POST   /templates                    — create
    GET    /templates/<id>               — detail with sections/items/options
    PUT    /templates/<id>               — update name/description/status/is_default
    POST   /templates/<id>/copy          — deep copy into a new DRAFT
    POST   /templates/<id>/sections      — add section
    POST   /sections/<id>/items          — add item (+ logic options)
"""

import logging

from flask import Blueprint, jsonify, request

from ffe_tracker.core.exceptions import ValidationError
from ffe_tracker.middleware.jwt_auth import current_actor
from ffe_tracker.services import template_service as svc
from ffe_tracker.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

template_bp = Blueprint("ffe_template", __name__, url_prefix="/api/v1/ffe")
register_error_handlers(template_bp)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@template_bp.route("/templates", methods=["GET"])
def list_templates():
    """List templates, newest first."""
    return jsonify(svc.list_templates(status=request.args.get("status"))), 200


@template_bp.route("/templates", methods=["POST"])
def create_template():
    return jsonify(svc.create_template(_json_body(), actor=current_actor())), 201


@template_bp.route("/templates/<int:template_id>", methods=["GET"])
def get_template(template_id):
    return jsonify(svc.get_template(template_id)), 200


@template_bp.route("/templates/<int:template_id>", methods=["PUT"])
def update_template(template_id):
    return jsonify(svc.update_template(template_id, _json_body(), actor=current_actor())), 200


@template_bp.route("/templates/<int:template_id>/copy", methods=["POST"])
def copy_template(template_id):
    """Deep-copy a template. Body: {"name": "..."}"""
    data = _json_body()
    return jsonify(svc.copy_template(template_id, data.get("name"), actor=current_actor())), 201


@template_bp.route("/templates/<int:template_id>/sections", methods=["POST"])
def add_section(template_id):
    data = _json_body()
    section = svc.add_section(
        template_id,
        data.get("name"),
        description=data.get("description"),
        order=data.get("order"),
        actor=current_actor(),
    )
    return jsonify(section), 201


@template_bp.route("/sections/<int:section_id>/items", methods=["POST"])
def add_item(section_id):
    """Add an item to a template section.

    Body: {name, description?, category?, is_required?, order?,
           logic_options?: [{name, description?, items_to_create, sub_items?}]}
    """
    data = _json_body()
    item = svc.add_item(
        section_id,
        {k: v for k, v in data.items() if k != "logic_options"},
        data.get("logic_options"),
        actor=current_actor(),
    )
    return jsonify(item), 201
