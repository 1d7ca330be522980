"""
Default FFE template seed data.

``seed_default_templates()`` is idempotent: templates are matched by name
and skipped when present.  Called from ``flask seed-ffe-templates``.
"""

import logging

from ffe_tracker.models import db
from ffe_tracker.models.audit import write_change
from ffe_tracker.models.template import FFETemplate, FFETemplateItem, FFETemplateSection
from ffe_tracker.services import template_service
from ffe_tracker.services.helpers.logic_options import parse_logic_options_input
from ffe_tracker.services.helpers.transactions import atomic

logger = logging.getLogger(__name__)


def _default_templates() -> list[dict]:
    return [
        {
            "name": "Bathroom — Standard",
            "description": "Default bathroom FFE checklist",
            "is_default": True,
            "sections": [
                {
                    "name": "Plumbing Fixtures",
                    "items": [
                        {
                            "name": "Vanity",
                            "category": "Plumbing",
                            "is_required": True,
                            "logic_options": [
                                {"name": "Single Vanity", "items_to_create": 1,
                                 "sub_items": [{"name": "Vanity Cabinet"}]},
                                {"name": "Double Vanity", "items_to_create": 2,
                                 "sub_items": [{"name": "Left Vanity"}, {"name": "Right Vanity"}]},
                            ],
                        },
                        {
                            "name": "Shower / Tub",
                            "category": "Plumbing",
                            "is_required": True,
                            "logic_options": [
                                {"name": "Shower Only", "items_to_create": 2,
                                 "sub_items": [{"name": "Shower Valve"}, {"name": "Shower Head"}]},
                                {"name": "Tub + Shower", "items_to_create": 3,
                                 "sub_items": [
                                     {"name": "Bathtub"},
                                     {"name": "Tub Filler"},
                                     {"name": "Shower Head"},
                                 ]},
                            ],
                        },
                        {"name": "Toilet", "category": "Plumbing", "is_required": True},
                        {"name": "Faucet", "category": "Plumbing"},
                    ],
                },
                {
                    "name": "Lighting",
                    "items": [
                        {"name": "Vanity Light", "category": "Lighting"},
                        {"name": "Ceiling Fixture", "category": "Lighting"},
                    ],
                },
                {
                    "name": "Accessories",
                    "items": [
                        {
                            "name": "Mirror",
                            "category": "Accessories",
                            "logic_options": [
                                {"name": "Single Mirror", "items_to_create": 1},
                                {"name": "Mirror Pair", "items_to_create": 2},
                            ],
                        },
                        {"name": "Towel Bar", "category": "Accessories"},
                        {"name": "Toilet Paper Holder", "category": "Accessories"},
                    ],
                },
            ],
        },
    ]


def _build_template(definition: dict) -> FFETemplate:
    tpl = FFETemplate(
        name=definition["name"],
        description=definition.get("description"),
        status="ACTIVE",
        created_by="system",
    )
    for s_order, section_def in enumerate(definition["sections"]):
        section = FFETemplateSection(name=section_def["name"], order=s_order)
        for i_order, item_def in enumerate(section_def["items"]):
            item = FFETemplateItem(
                name=item_def["name"],
                category=item_def.get("category"),
                is_required=bool(item_def.get("is_required", False)),
                order=i_order,
            )
            options = parse_logic_options_input(item_def.get("logic_options"))
            for o_order, option in enumerate(options):
                template_service.attach_logic_option(item, option, o_order)
            section.items.append(item)
        tpl.sections.append(section)
    return tpl


def seed_default_templates() -> int:
    """Create missing default templates as ACTIVE.  Returns the number created.

    Each template is written in a single transaction, so a failure part
    way through leaves no half-seeded template behind and a re-run
    starts clean.
    """
    created = 0
    for definition in _default_templates():
        if FFETemplate.query.filter_by(name=definition["name"]).first():
            continue
        with atomic("FFETemplate"):
            tpl = _build_template(definition)
            db.session.add(tpl)
            db.session.flush()
            if definition.get("is_default"):
                template_service.make_default(tpl)
            write_change(
                entity_type="template", entity_id=tpl.id, action="template.created",
                new_value=tpl.name, meta={"seeded": True},
            )
        created += 1

    if created:
        logger.info("Seeded %d FFE template(s)", created)
    return created
