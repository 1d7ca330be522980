"""
Room Instantiation Engine — copy-on-instantiate of an FFE template.

instantiate(room_id, template_id) deep-copies every section and item into
room-scoped rows:

    visible=True, status=PENDING, notes="", active_logic_option_id=None

and snapshots each item's logic options, so later template edits never
reach an already-instantiated room.  A room can be instantiated once;
re-instantiation / merge is not supported.

After instantiation a room can grow room-only sections and items
(``add_custom_section``, ``add_custom_item``) and rename its sections;
none of that flows back to the template.

Transaction policy: one atomic() per call; the unique room_id on
RoomFFEInstance backs the up-front duplicate check.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import func, select

from ffe_tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from ffe_tracker.models import db
from ffe_tracker.models.audit import write_change
from ffe_tracker.models.room import (
    RoomAssignment,
    RoomFFEInstance,
    RoomFFEItem,
    RoomFFESection,
)
from ffe_tracker.models.template import FFETemplate
from ffe_tracker.services.helpers.transactions import atomic
from ffe_tracker.services.helpers.validation import clean_str, require_int
from ffe_tracker.services.permission import (
    ActingUser,
    actor_name,
    check_room_access,
    check_template_editor,
    is_assigned,
)
from ffe_tracker.services.status_service import MAX_NOTES_LENGTH

logger = logging.getLogger(__name__)


def _normalize_room_id(room_id) -> str:
    room_id = str(room_id or "").strip()
    if not room_id:
        raise ValidationError("room_id is required", details={"room_id": "missing"})
    if len(room_id) > 64:
        raise ValidationError("room_id must be ≤ 64 characters")
    return room_id


def get_instance(room_id) -> RoomFFEInstance | None:
    return db.session.execute(
        select(RoomFFEInstance).where(RoomFFEInstance.room_id == str(room_id))
    ).scalar_one_or_none()


def require_instance(room_id) -> RoomFFEInstance:
    instance = get_instance(room_id)
    if instance is None:
        raise NotFoundError(resource="RoomFFEState", resource_id=room_id)
    return instance


def instantiate(room_id, template_id: int, actor: ActingUser | None = None) -> dict:
    """Materialise a room-scoped copy of a template.

    Returns:
        {"instance": {...}, "items_created": int}

    Raises:
        ValidationError: blank room_id, non-integer template_id or ARCHIVED template.
        NotFoundError:   unknown template.
        ConflictError:   the room already has FFE state.
        PermissionDenied: actor is neither editor nor assigned to the room.
    """
    room_id = _normalize_room_id(room_id)
    template_id = require_int(template_id, "template_id")
    check_room_access(actor, room_id, "instantiate")

    template = db.session.get(FFETemplate, template_id)
    if template is None:
        raise NotFoundError(resource="FFETemplate", resource_id=template_id)
    if template.status == "ARCHIVED":
        raise ValidationError(
            f"Template {template_id} is archived and cannot be instantiated",
            details={"template_id": template_id, "status": template.status},
        )
    if get_instance(room_id) is not None:
        raise ConflictError("RoomFFEState", "room_id", room_id)

    actor_id = actor_name(actor)
    created = 0
    with atomic("RoomFFEState"):
        instance = RoomFFEInstance(
            room_id=room_id,
            template_id=template.id,
            template_name=template.name,
            created_by=actor_id,
        )
        db.session.add(instance)
        db.session.flush()

        for section in template.sections:
            room_section = RoomFFESection(
                instance_id=instance.id,
                template_section_id=section.id,
                name=section.name,
                order=section.order,
            )
            db.session.add(room_section)
            db.session.flush()

            for item in section.items:
                snapshot = [opt.to_dict() for opt in item.logic_options]
                db.session.add(RoomFFEItem(
                    instance_id=instance.id,
                    room_id=room_id,
                    section_id=room_section.id,
                    template_item_id=item.id,
                    name=item.name,
                    description=item.description,
                    category=item.category,
                    order=item.order,
                    is_required=item.is_required,
                    visible=True,
                    status="PENDING",
                    notes="",
                    active_logic_option_id=None,
                    logic_options_json=json.dumps(snapshot),
                    updated_by=actor_id,
                ))
                created += 1

        write_change(
            entity_type="room", entity_id=room_id, room_id=room_id,
            action="room.instantiated", actor=actor_id,
            new_value=template.id, meta={"items_created": created},
        )

    logger.info(
        "Instantiated FFE template %s for room %s (%d items)", template.id, room_id, created,
    )
    return {"instance": instance.to_dict(), "items_created": created}


def _room_section(instance: RoomFFEInstance, section_id) -> RoomFFESection:
    section = db.session.get(RoomFFESection, require_int(section_id, "section_id"))
    if section is None or section.instance_id != instance.id:
        raise NotFoundError(resource="RoomFFESection", resource_id=section_id)
    return section


def _custom_fields(data: dict, prefix: str = "") -> dict:
    notes = clean_str(data.get("notes"), f"{prefix}notes", required=False, max_len=MAX_NOTES_LENGTH)
    return {
        "name": clean_str(data.get("name"), f"{prefix}name", required=True),
        "category": clean_str(
            data.get("category"), f"{prefix}category", required=False, max_len=100,
        ),
        "notes": notes or "",
    }


def _new_custom_item(
    instance: RoomFFEInstance, section_id: int, fields: dict, order: int, actor_id: str,
) -> RoomFFEItem:
    item = RoomFFEItem(
        instance_id=instance.id,
        room_id=instance.room_id,
        section_id=section_id,
        template_item_id=None,
        name=fields["name"],
        category=fields["category"],
        order=order,
        is_custom=True,
        visible=True,
        status="PENDING",
        notes=fields["notes"],
        updated_by=actor_id,
    )
    db.session.add(item)
    return item


def add_custom_item(
    room_id,
    section_id: int,
    name: str,
    *,
    category: str | None = None,
    notes: str | None = None,
    actor: ActingUser | None = None,
) -> dict:
    """Append a room-only item (no template counterpart) to a room section."""
    room_id = _normalize_room_id(room_id)
    check_room_access(actor, room_id, "add_custom_item")
    instance = require_instance(room_id)
    section = _room_section(instance, section_id)
    fields = _custom_fields({"name": name, "category": category, "notes": notes})

    next_order = db.session.execute(
        select(func.coalesce(func.max(RoomFFEItem.order), -1)).where(
            RoomFFEItem.section_id == section.id,
            RoomFFEItem.parent_item_id.is_(None),
        )
    ).scalar_one() + 1

    actor_id = actor_name(actor)
    with atomic("RoomFFEItem"):
        item = _new_custom_item(instance, section.id, fields, next_order, actor_id)
        db.session.flush()
        write_change(
            entity_type="item", entity_id=item.id, room_id=room_id,
            action="item.custom_created", actor=actor_id, new_value=item.name,
        )

    return item.to_dict()


def add_custom_section(
    room_id,
    name: str,
    *,
    items: list | None = None,
    actor: ActingUser | None = None,
) -> dict:
    """Append a room-only section after the existing ones.

    ``items`` is an optional list of ``{name, category?, notes?}`` created
    as custom items in the new section.  Every entry is validated before
    anything is written: one bad entry and nothing is created.

    Returns the section dict with an ``items`` list.
    """
    room_id = _normalize_room_id(room_id)
    check_room_access(actor, room_id, "add_custom_section")
    instance = require_instance(room_id)
    name = clean_str(name, "name", required=True)

    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValidationError("items must be a list", details={"items": "type"})
    item_fields = []
    for idx, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        item_fields.append(_custom_fields(raw, prefix=f"items[{idx}]."))

    next_order = max((s.order for s in instance.sections), default=-1) + 1

    actor_id = actor_name(actor)
    with atomic("RoomFFESection"):
        section = RoomFFESection(
            instance_id=instance.id,
            template_section_id=None,
            name=name,
            order=next_order,
            is_custom=True,
        )
        db.session.add(section)
        db.session.flush()
        created = [
            _new_custom_item(instance, section.id, fields, position, actor_id)
            for position, fields in enumerate(item_fields)
        ]
        db.session.flush()
        write_change(
            entity_type="section", entity_id=section.id, room_id=room_id,
            action="section.custom_created", actor=actor_id, new_value=name,
            meta={"item_ids": [i.id for i in created]},
        )

    logger.info(
        "Added custom section %s (%r) to room %s with %d item(s)",
        section.id, name, room_id, len(created),
    )
    result = section.to_dict()
    result["items"] = [i.to_dict() for i in created]
    return result


def rename_section(room_id, section_id: int, name: str, actor: ActingUser | None = None) -> dict:
    """Rename one of the room's sections.  Template sections are unaffected."""
    room_id = _normalize_room_id(room_id)
    check_room_access(actor, room_id, "rename_section")
    instance = require_instance(room_id)
    section = _room_section(instance, section_id)
    name = clean_str(name, "name", required=True)

    old = section.name
    if old == name:
        return section.to_dict()

    with atomic("RoomFFESection"):
        section.name = name
        write_change(
            entity_type="section", entity_id=section.id, room_id=room_id,
            action="section.renamed", actor=actor_name(actor), field_name="name",
            old_value=old, new_value=name,
        )

    return section.to_dict()


def assign_user(room_id, user_id, actor: ActingUser | None = None) -> dict:
    """Record that a user may edit the room (idempotent)."""
    check_template_editor(actor, "room_assign")
    room_id = _normalize_room_id(room_id)
    user_id = str(user_id or "").strip()
    if not user_id:
        raise ValidationError("user_id is required", details={"user_id": "missing"})

    if is_assigned(room_id, user_id):
        return RoomAssignment.query.filter_by(room_id=room_id, user_id=user_id).first().to_dict()

    with atomic("RoomAssignment"):
        assignment = RoomAssignment(room_id=room_id, user_id=user_id)
        db.session.add(assignment)
        db.session.flush()
        write_change(
            entity_type="room", entity_id=room_id, room_id=room_id,
            action="room.assignment_added", actor=actor_name(actor), new_value=user_id,
        )
    return assignment.to_dict()
