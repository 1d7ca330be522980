"""
FFE Template Store — admin/designer-authored checklist definitions.

Rules:
  - Logic-option shape is validated here, at write time, never trusted later.
  - Template edits never touch room state: rooms hold their own snapshot.
  - Only one template may be ``is_default`` at a time.
  - db.session.commit() happens only inside ``atomic()`` in this file.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from ffe_tracker.core.exceptions import NotFoundError, ValidationError
from ffe_tracker.models import db
from ffe_tracker.models.audit import write_change
from ffe_tracker.models.template import (
    TEMPLATE_STATUSES,
    FFELogicOption,
    FFELogicOptionSubItem,
    FFETemplate,
    FFETemplateItem,
    FFETemplateSection,
)
from ffe_tracker.services.helpers.logic_options import (
    LogicOption,
    parse_logic_options_input,
)
from ffe_tracker.services.helpers.transactions import atomic
from ffe_tracker.services.helpers.validation import clean_str
from ffe_tracker.services.permission import (
    ActingUser,
    actor_name,
    check_template_editor,
)

logger = logging.getLogger(__name__)


# ── Lookups ───────────────────────────────────────────────────────────────────


def _get_template(template_id: int) -> FFETemplate:
    tpl = db.session.get(FFETemplate, template_id)
    if tpl is None:
        raise NotFoundError(resource="FFETemplate", resource_id=template_id)
    return tpl


def _get_section(section_id: int) -> FFETemplateSection:
    section = db.session.get(FFETemplateSection, section_id)
    if section is None:
        raise NotFoundError(resource="FFETemplateSection", resource_id=section_id)
    return section


def _require_name(value, field_name: str = "name") -> str:
    name = value.strip() if isinstance(value, str) else ""
    if not name:
        raise ValidationError(f"{field_name} is required", details={field_name: "missing"})
    if len(name) > 200:
        raise ValidationError(f"{field_name} must be ≤ 200 characters")
    return name


def _optional_int(value, field_name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer", details={field_name: value})
    return value


def _next_order(rows) -> int:
    return max((r.order for r in rows), default=-1) + 1


def attach_logic_option(
    item: FFETemplateItem, option: LogicOption, order: int,
) -> FFELogicOption:
    row = FFELogicOption(
        name=option.name,
        description=option.description,
        items_to_create=option.items_to_create,
        order=order,
    )
    for position, sub in enumerate(option.sub_items):
        row.sub_items.append(
            FFELogicOptionSubItem(position=position, name=sub.name, category=sub.category)
        )
    item.logic_options.append(row)
    return row


# ── Templates ─────────────────────────────────────────────────────────────────


def list_templates(status: str | None = None) -> list[dict]:
    """Return templates (newest first), optionally filtered by status."""
    stmt = select(FFETemplate).order_by(FFETemplate.id.desc())
    if status:
        status = status.upper()
        if status not in TEMPLATE_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(TEMPLATE_STATUSES)}",
                details={"status": status},
            )
        stmt = stmt.where(FFETemplate.status == status)
    return [t.to_dict() for t in db.session.execute(stmt).scalars().all()]


def get_template(template_id: int) -> dict:
    """Return one template with its sections, items and logic options."""
    return _get_template(template_id).to_dict(include_sections=True)


def create_template(data: dict, actor: ActingUser | None = None) -> dict:
    """Create an empty template.  Status defaults to DRAFT."""
    check_template_editor(actor, "template_create")
    name = _require_name(data.get("name"))
    description = clean_str(data.get("description"), "description", required=False, max_len=2000)
    status = (data.get("status") or "DRAFT").upper()
    if status not in TEMPLATE_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(TEMPLATE_STATUSES)}", details={"status": status},
        )

    with atomic("FFETemplate"):
        tpl = FFETemplate(
            name=name,
            description=description,
            status=status,
            created_by=actor_name(actor),
        )
        db.session.add(tpl)
        db.session.flush()
        if data.get("is_default"):
            make_default(tpl)
        write_change(
            entity_type="template", entity_id=tpl.id, action="template.created",
            actor=actor_name(actor), new_value=name,
        )

    logger.info("Created FFE template id=%s name=%r", tpl.id, tpl.name)
    return tpl.to_dict()


def make_default(tpl: FFETemplate) -> None:
    """Flag ``tpl`` as the default and unflag any other default template."""
    for other in FFETemplate.query.filter(
        FFETemplate.is_default.is_(True), FFETemplate.id != tpl.id,
    ).all():
        other.is_default = False
    tpl.is_default = True


def update_template(template_id: int, data: dict, actor: ActingUser | None = None) -> dict:
    """Update name/description/status/is_default.  Room state is never touched."""
    check_template_editor(actor, "template_update")
    tpl = _get_template(template_id)

    changes = {}
    if "name" in data:
        changes["name"] = _require_name(data["name"])
    if "description" in data:
        changes["description"] = clean_str(
            data["description"], "description", required=False, max_len=2000,
        )
    if "status" in data:
        status = (data["status"] or "").upper()
        if status not in TEMPLATE_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(TEMPLATE_STATUSES)}",
                details={"status": data["status"]},
            )
        changes["status"] = status

    with atomic("FFETemplate"):
        for field_name, value in changes.items():
            old = getattr(tpl, field_name)
            if old == value:
                continue
            setattr(tpl, field_name, value)
            write_change(
                entity_type="template", entity_id=tpl.id, action="template.updated",
                actor=actor_name(actor), field_name=field_name,
                old_value=old, new_value=value,
            )
        if "is_default" in data and bool(data["is_default"]) != bool(tpl.is_default):
            old_default = bool(tpl.is_default)
            if data["is_default"]:
                make_default(tpl)
            else:
                tpl.is_default = False
            write_change(
                entity_type="template", entity_id=tpl.id, action="template.updated",
                actor=actor_name(actor), field_name="is_default",
                old_value=old_default, new_value=not old_default,
            )

    logger.info("Updated FFE template id=%s fields=%s", tpl.id, sorted(changes))
    return tpl.to_dict()


def copy_template(template_id: int, new_name: str, actor: ActingUser | None = None) -> dict:
    """Deep-copy sections, items and logic options into a new DRAFT template."""
    check_template_editor(actor, "template_copy")
    source = _get_template(template_id)
    name = _require_name(new_name)

    with atomic("FFETemplate"):
        clone = FFETemplate(
            name=name,
            description=source.description,
            status="DRAFT",
            created_by=actor_name(actor),
        )
        for section in source.sections:
            new_section = FFETemplateSection(
                name=section.name, description=section.description, order=section.order,
            )
            for item in section.items:
                new_item = FFETemplateItem(
                    name=item.name,
                    description=item.description,
                    category=item.category,
                    is_required=item.is_required,
                    order=item.order,
                )
                for opt in item.logic_options:
                    new_opt = FFELogicOption(
                        name=opt.name,
                        description=opt.description,
                        items_to_create=opt.items_to_create,
                        order=opt.order,
                    )
                    for sub in opt.sub_items:
                        new_opt.sub_items.append(FFELogicOptionSubItem(
                            position=sub.position, name=sub.name, category=sub.category,
                        ))
                    new_item.logic_options.append(new_opt)
                new_section.items.append(new_item)
            clone.sections.append(new_section)
        db.session.add(clone)
        db.session.flush()
        write_change(
            entity_type="template", entity_id=clone.id, action="template.copied",
            actor=actor_name(actor), old_value=source.id, new_value=name,
        )

    logger.info("Copied FFE template %s → %s", source.id, clone.id)
    return clone.to_dict(include_sections=True)


# ── Sections & items ──────────────────────────────────────────────────────────


def add_section(
    template_id: int,
    name: str,
    *,
    description: str | None = None,
    order: int | None = None,
    actor: ActingUser | None = None,
) -> dict:
    """Append a section to a template (order defaults to last)."""
    check_template_editor(actor, "template_update")
    tpl = _get_template(template_id)
    name = _require_name(name)
    order = _optional_int(order, "order")
    description = clean_str(description, "description", required=False, max_len=2000)

    with atomic("FFETemplateSection"):
        section = FFETemplateSection(
            name=name,
            description=description,
            order=order if order is not None else _next_order(tpl.sections),
        )
        tpl.sections.append(section)
        db.session.flush()
        write_change(
            entity_type="template", entity_id=tpl.id, action="section.created",
            actor=actor_name(actor), new_value=name, meta={"section_id": section.id},
        )

    return section.to_dict()


def add_item(
    section_id: int,
    definition: dict,
    logic_options: list | None = None,
    actor: ActingUser | None = None,
) -> dict:
    """Add an item (with optional logic options) to a template section.

    Args:
        section_id:    Owning section.
        definition:    {name, description?, category?, is_required?, order?}
        logic_options: [{name, description?, items_to_create, sub_items: [{name, category?}]}]

    Raises:
        NotFoundError: unknown section.
        ValidationError: malformed definition or logic option.
    """
    check_template_editor(actor, "template_update")
    section = _get_section(section_id)
    if not isinstance(definition, dict):
        raise ValidationError("item definition must be an object")
    name = _require_name(definition.get("name"))
    description = clean_str(
        definition.get("description"), "description", required=False, max_len=2000,
    )
    category = clean_str(definition.get("category"), "category", required=False, max_len=100)
    order = _optional_int(definition.get("order"), "order")
    parsed = parse_logic_options_input(logic_options)

    with atomic("FFETemplateItem"):
        item = FFETemplateItem(
            name=name,
            description=description,
            category=category,
            is_required=bool(definition.get("is_required", False)),
            order=order if order is not None else _next_order(section.items),
        )
        section.items.append(item)
        for idx, option in enumerate(parsed):
            attach_logic_option(item, option, idx)
        db.session.flush()
        write_change(
            entity_type="template", entity_id=section.template_id, action="item.created",
            actor=actor_name(actor), new_value=name,
            meta={"item_id": item.id, "logic_options": len(parsed)},
        )

    logger.info(
        "Added FFE template item id=%s to section %s with %d logic option(s)",
        item.id, section.id, len(parsed),
    )
    return item.to_dict()
