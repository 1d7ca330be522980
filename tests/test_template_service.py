"""
Tests: FFE Template Store — authoring, write-time logic-option validation,
copy and default handling.
"""

import pytest

from ffe_tracker.core.exceptions import NotFoundError, PermissionDenied, ValidationError
from ffe_tracker.models import db as _db
from ffe_tracker.models.audit import FFEChangeLog
from ffe_tracker.models.template import FFETemplate, FFETemplateItem, FFETemplateSection
from ffe_tracker.services import template_service as svc
from ffe_tracker.services.permission import ActingUser


def _template_with_section(name="Kitchen"):
    tpl = svc.create_template({"name": name})
    section = svc.add_section(tpl["id"], "Appliances")
    return tpl, section


def test_create_template_defaults_to_draft():
    tpl = svc.create_template({"name": "  Suite  "})
    assert tpl["name"] == "Suite"
    assert tpl["status"] == "DRAFT"
    assert tpl["is_default"] is False


def test_create_template_requires_name():
    with pytest.raises(ValidationError):
        svc.create_template({"name": "   "})


def test_create_template_rejects_unknown_status():
    with pytest.raises(ValidationError):
        svc.create_template({"name": "X", "status": "PUBLISHED"})


def test_sections_and_items_get_appended_order():
    tpl, section = _template_with_section()
    second = svc.add_section(tpl["id"], "Lighting")
    first_item = svc.add_item(section["id"], {"name": "Range"})
    second_item = svc.add_item(section["id"], {"name": "Hood"})

    assert (section["order"], second["order"]) == (0, 1)
    assert (first_item["order"], second_item["order"]) == (0, 1)


def test_add_item_stores_logic_options_in_order():
    _, section = _template_with_section()
    item = svc.add_item(
        section["id"],
        {"name": "Sink", "category": "Plumbing"},
        [
            {"name": "Single Bowl", "items_to_create": 1},
            {"name": "Double Bowl", "items_to_create": 2,
             "sub_items": [{"name": "Left Bowl"}, {"name": "Right Bowl", "category": "Fixtures"}]},
        ],
    )
    names = [o["name"] for o in item["logic_options"]]
    assert names == ["Single Bowl", "Double Bowl"]
    double = item["logic_options"][1]
    assert double["items_to_create"] == 2
    assert double["sub_items"] == [
        {"name": "Left Bowl"},
        {"name": "Right Bowl", "category": "Fixtures"},
    ]


@pytest.mark.parametrize("option", [
    {"name": "", "items_to_create": 1},
    {"name": "Zero", "items_to_create": 0},
    {"name": "Bool", "items_to_create": True},
    {"name": "Text", "items_to_create": "2"},
    {"name": "Too many subs", "items_to_create": 1,
     "sub_items": [{"name": "A"}, {"name": "B"}]},
    {"name": "Nameless sub", "items_to_create": 2, "sub_items": [{"category": "X"}]},
    {"name": "Subs not list", "items_to_create": 2, "sub_items": "A,B"},
])
def test_add_item_rejects_malformed_logic_options(option):
    _, section = _template_with_section()
    with pytest.raises(ValidationError):
        svc.add_item(section["id"], {"name": "Sink"}, [option])


def test_add_item_rejects_duplicate_option_names():
    _, section = _template_with_section()
    with pytest.raises(ValidationError):
        svc.add_item(
            section["id"], {"name": "Sink"},
            [{"name": "Double", "items_to_create": 2}, {"name": "double", "items_to_create": 2}],
        )


def test_fewer_sub_items_than_items_to_create_is_allowed():
    _, section = _template_with_section()
    item = svc.add_item(
        section["id"], {"name": "Chair"},
        [{"name": "Set of 4", "items_to_create": 4, "sub_items": [{"name": "Arm Chair"}]}],
    )
    assert item["logic_options"][0]["items_to_create"] == 4


@pytest.mark.parametrize("definition", [
    {"name": "Range", "category": ["Appliances"]},
    {"name": "Range", "category": {"x": 1}},
    {"name": "Range", "description": ["gas"]},
    {"name": "Range", "category": "x" * 101},
])
def test_add_item_rejects_non_string_free_text(definition):
    _, section = _template_with_section()
    with pytest.raises(ValidationError):
        svc.add_item(section["id"], definition)
    assert FFETemplateItem.query.count() == 0


def test_free_text_descriptions_must_be_strings():
    with pytest.raises(ValidationError):
        svc.create_template({"name": "K", "description": {"x": 1}})
    assert FFETemplate.query.count() == 0

    tpl, _ = _template_with_section()
    with pytest.raises(ValidationError):
        svc.add_section(tpl["id"], "Storage", description=["tall"])
    with pytest.raises(ValidationError):
        svc.update_template(tpl["id"], {"description": 7})
    assert FFETemplateSection.query.count() == 1


def test_add_item_to_unknown_section():
    with pytest.raises(NotFoundError):
        svc.add_item(9999, {"name": "Ghost"})


def test_setting_default_clears_previous_default():
    first = svc.create_template({"name": "A", "is_default": True})
    second = svc.create_template({"name": "B"})

    svc.update_template(second["id"], {"is_default": True})

    assert _db.session.get(FFETemplate, first["id"]).is_default is False
    assert _db.session.get(FFETemplate, second["id"]).is_default is True


def test_default_flag_changes_are_logged():
    tpl = svc.create_template({"name": "A"})

    svc.update_template(tpl["id"], {"is_default": True})
    svc.update_template(tpl["id"], {"is_default": True})
    svc.update_template(tpl["id"], {"is_default": False})

    rows = FFEChangeLog.query.filter_by(
        action="template.updated", field_name="is_default",
    ).order_by(FFEChangeLog.id).all()
    assert [(r.old_value, r.new_value) for r in rows] == [("false", "true"), ("true", "false")]
    assert all(r.entity_id == str(tpl["id"]) for r in rows)


def test_update_template_status():
    tpl = svc.create_template({"name": "A"})
    updated = svc.update_template(tpl["id"], {"status": "active", "description": "v2"})
    assert updated["status"] == "ACTIVE"
    assert updated["description"] == "v2"


def test_copy_template_deep_copies_as_draft(bathroom_template):
    clone = svc.copy_template(bathroom_template["id"], "Bathroom (copy)")

    assert clone["id"] != bathroom_template["id"]
    assert clone["status"] == "DRAFT"
    assert [s["name"] for s in clone["sections"]] == ["Plumbing", "Lighting"]
    vanity = clone["sections"][0]["items"][0]
    assert [o["name"] for o in vanity["logic_options"]] == [
        "Single Vanity", "Double Vanity", "Vanity Bank",
    ]
    source_ids = set(bathroom_template["options"].values())
    assert not source_ids & {o["id"] for o in vanity["logic_options"]}


def test_list_templates_filters_by_status():
    svc.create_template({"name": "Draft one"})
    svc.create_template({"name": "Live one", "status": "ACTIVE"})

    active = svc.list_templates(status="ACTIVE")
    assert [t["name"] for t in active] == ["Live one"]
    assert len(svc.list_templates()) == 2


def test_member_cannot_edit_templates():
    member = ActingUser(user_id="u-9", role="member")
    with pytest.raises(PermissionDenied):
        svc.create_template({"name": "Nope"}, actor=member)


def test_designer_can_edit_templates():
    designer = ActingUser(user_id="d-1", role="designer")
    tpl = svc.create_template({"name": "Designer's"}, actor=designer)
    assert tpl["created_by"] == "d-1"
