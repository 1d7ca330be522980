"""
Tests: FFE HTTP API — blueprints, status codes and the error envelope.

Auth is disabled in the testing config, so unauthenticated requests run as
the system actor.
"""

import pytest


def _create_template(client):
    res = client.post("/api/v1/ffe/templates", json={"name": "Guest Bath", "status": "ACTIVE"})
    assert res.status_code == 201
    tpl = res.get_json()

    res = client.post(f"/api/v1/ffe/templates/{tpl['id']}/sections", json={"name": "Fixtures"})
    assert res.status_code == 201
    section = res.get_json()

    res = client.post(f"/api/v1/ffe/sections/{section['id']}/items", json={
        "name": "Vanity",
        "category": "Plumbing",
        "logic_options": [
            {"name": "Double Vanity", "items_to_create": 2,
             "sub_items": [{"name": "Left Vanity"}, {"name": "Right Vanity"}]},
        ],
    })
    assert res.status_code == 201
    item = res.get_json()
    client.post(f"/api/v1/ffe/sections/{section['id']}/items", json={"name": "Mirror"})
    return tpl, item["logic_options"][0]["id"]


def _instantiate(client, room_id, template_id):
    res = client.post(f"/api/v1/ffe/rooms/{room_id}/instantiate", json={"template_id": template_id})
    assert res.status_code == 201
    return res.get_json()


def _room_items(client, room_id):
    state = client.get(f"/api/v1/ffe/rooms/{room_id}").get_json()
    return {i["name"]: i for s in state["sections"] for i in s["items"]}


def test_health(client):
    res = client.get("/api/v1/health")
    assert res.status_code == 200
    assert res.get_json()["status"] == "ok"


def test_full_room_workflow(client):
    tpl, double_id = _create_template(client)
    created = _instantiate(client, "101", tpl["id"])
    assert created["items_created"] == 2

    vanity = _room_items(client, "101")["Vanity"]
    res = client.post(f"/api/v1/ffe/items/{vanity['id']}/logic-option",
                      json={"logic_option_id": double_id})
    assert res.status_code == 201
    assert [c["name"] for c in res.get_json()["children"]] == ["Left Vanity", "Right Vanity"]

    items = _room_items(client, "101")
    assert list(items) == ["Vanity", "Left Vanity", "Right Vanity", "Mirror"]

    res = client.put(f"/api/v1/ffe/items/{items['Left Vanity']['id']}/status",
                     json={"status": "COMPLETED"})
    assert res.status_code == 200

    progress = client.get("/api/v1/ffe/rooms/101/progress").get_json()
    assert (progress["completed"], progress["total"], progress["percent"]) == (1, 4, 25)


def test_reapply_returns_200(client):
    tpl, double_id = _create_template(client)
    _instantiate(client, "101", tpl["id"])
    vanity = _room_items(client, "101")["Vanity"]
    url = f"/api/v1/ffe/items/{vanity['id']}/logic-option"

    client.post(url, json={"logic_option_id": double_id})
    res = client.post(url, json={"logic_option_id": double_id})

    assert res.status_code == 200
    assert res.get_json()["changed"] is False


def test_clear_logic_option_endpoint(client):
    tpl, double_id = _create_template(client)
    _instantiate(client, "101", tpl["id"])
    vanity = _room_items(client, "101")["Vanity"]
    url = f"/api/v1/ffe/items/{vanity['id']}/logic-option"
    client.post(url, json={"logic_option_id": double_id})

    res = client.delete(url)

    assert res.status_code == 200
    assert len(res.get_json()["hidden_item_ids"]) == 2
    assert list(_room_items(client, "101")) == ["Vanity", "Mirror"]


def test_duplicate_instantiation_is_409(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])

    res = client.post("/api/v1/ffe/rooms/101/instantiate", json={"template_id": tpl["id"]})

    assert res.status_code == 409
    assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"


def test_instantiate_requires_template_id(client):
    res = client.post("/api/v1/ffe/rooms/101/instantiate", json={})
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"


@pytest.mark.parametrize("template_id", [True, [1], "1"])
def test_instantiate_rejects_non_integer_template_id(client, template_id):
    _create_template(client)

    res = client.post("/api/v1/ffe/rooms/R-9/instantiate", json={"template_id": template_id})

    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"
    assert client.get("/api/v1/ffe/rooms/R-9").status_code == 404


def test_invalid_status_is_400(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])
    mirror = _room_items(client, "101")["Mirror"]

    res = client.put(f"/api/v1/ffe/items/{mirror['id']}/status", json={"status": "SHIPPED"})

    assert res.status_code == 400
    body = res.get_json()
    assert body["code"] == "ERR_VALIDATION_INVALID"
    assert "status" in body["error"]


def test_status_on_removed_item_is_409(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])
    mirror = _room_items(client, "101")["Mirror"]
    client.put(f"/api/v1/ffe/items/{mirror['id']}/visibility", json={"visible": False})

    res = client.put(f"/api/v1/ffe/items/{mirror['id']}/status", json={"status": "COMPLETED"})

    assert res.status_code == 409
    assert res.get_json()["code"] == "ERR_CONFLICT_STATE"


def test_notes_on_removed_item_succeed(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])
    mirror = _room_items(client, "101")["Mirror"]
    client.put(f"/api/v1/ffe/items/{mirror['id']}/visibility", json={"visible": False})

    res = client.put(f"/api/v1/ffe/items/{mirror['id']}/notes", json={"notes": "Not needed"})

    assert res.status_code == 200
    assert res.get_json()["notes"] == "Not needed"


def test_unknown_item_is_404(client):
    res = client.put("/api/v1/ffe/items/999/status", json={"status": "COMPLETED"})
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"


def test_unknown_room_is_404(client):
    assert client.get("/api/v1/ffe/rooms/none-here").status_code == 404


def test_room_state_can_include_hidden(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])
    mirror = _room_items(client, "101")["Mirror"]
    client.put(f"/api/v1/ffe/items/{mirror['id']}/visibility", json={"visible": False})

    state = client.get("/api/v1/ffe/rooms/101?include_hidden=1").get_json()
    names = [i["name"] for s in state["sections"] for i in s["items"]]

    assert "Mirror" in names
    assert state["progress"]["total"] == 1


def test_progress_summary_endpoint(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])

    res = client.get("/api/v1/ffe/rooms/progress?room_ids=101,102")

    assert res.status_code == 200
    assert [r["instantiated"] for r in res.get_json()] == [True, False]


def test_progress_summary_requires_room_ids(client):
    assert client.get("/api/v1/ffe/rooms/progress").status_code == 400


def test_custom_item_and_changes_endpoints(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])
    section_id = client.get("/api/v1/ffe/rooms/101").get_json()["sections"][0]["id"]

    res = client.post(f"/api/v1/ffe/rooms/101/sections/{section_id}/items",
                      json={"name": "Robe Hook", "category": "Accessories"})
    assert res.status_code == 201

    changes = client.get("/api/v1/ffe/rooms/101/changes?limit=1").get_json()
    assert [c["action"] for c in changes] == ["item.custom_created"]


def test_custom_item_with_object_category_is_400(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])
    section_id = client.get("/api/v1/ffe/rooms/101").get_json()["sections"][0]["id"]

    res = client.post(f"/api/v1/ffe/rooms/101/sections/{section_id}/items",
                      json={"name": "Robe Hook", "category": {"x": 1}})

    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_custom_section_endpoints(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])

    res = client.post("/api/v1/ffe/rooms/101/sections", json={
        "name": "Window Treatments",
        "items": [{"name": "Roller Blind", "category": "Soft Goods"}],
    })
    assert res.status_code == 201
    section = res.get_json()
    assert [i["name"] for i in section["items"]] == ["Roller Blind"]

    res = client.patch(f"/api/v1/ffe/rooms/101/sections/{section['id']}",
                       json={"name": "Drapery"})
    assert res.status_code == 200
    assert res.get_json()["name"] == "Drapery"

    state = client.get("/api/v1/ffe/rooms/101").get_json()
    assert [s["name"] for s in state["sections"]] == ["Fixtures", "Drapery"]
    assert "Roller Blind" in _room_items(client, "101")


def test_custom_section_requires_name(client):
    tpl, _ = _create_template(client)
    _instantiate(client, "101", tpl["id"])
    section_id = client.get("/api/v1/ffe/rooms/101").get_json()["sections"][0]["id"]

    assert client.post("/api/v1/ffe/rooms/101/sections", json={}).status_code == 400
    res = client.patch(f"/api/v1/ffe/rooms/101/sections/{section_id}", json={})
    assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"
    assert client.patch("/api/v1/ffe/rooms/101/sections/999999",
                        json={"name": "X"}).status_code == 404


def test_template_detail_and_copy(client):
    tpl, _ = _create_template(client)

    detail = client.get(f"/api/v1/ffe/templates/{tpl['id']}").get_json()
    assert detail["sections"][0]["items"][0]["name"] == "Vanity"

    res = client.post(f"/api/v1/ffe/templates/{tpl['id']}/copy", json={"name": "Guest Bath B"})
    assert res.status_code == 201
    assert res.get_json()["status"] == "DRAFT"

    res = client.put(f"/api/v1/ffe/templates/{tpl['id']}", json={"status": "ARCHIVED"})
    assert res.status_code == 200
    listed = client.get("/api/v1/ffe/templates?status=ARCHIVED").get_json()
    assert [t["id"] for t in listed] == [tpl["id"]]


def test_malformed_logic_option_is_400(client):
    res = client.post("/api/v1/ffe/templates", json={"name": "T"})
    tpl = res.get_json()
    section = client.post(f"/api/v1/ffe/templates/{tpl['id']}/sections", json={"name": "S"}).get_json()

    res = client.post(f"/api/v1/ffe/sections/{section['id']}/items", json={
        "name": "Vanity",
        "logic_options": [{"name": "Bad", "items_to_create": 0}],
    })

    assert res.status_code == 400


def test_template_item_with_list_category_is_400(client):
    tpl = client.post("/api/v1/ffe/templates", json={"name": "T"}).get_json()
    section = client.post(f"/api/v1/ffe/templates/{tpl['id']}/sections", json={"name": "S"}).get_json()

    res = client.post(f"/api/v1/ffe/sections/{section['id']}/items",
                      json={"name": "Vanity", "category": ["Plumbing"]})

    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"
    assert client.get(f"/api/v1/ffe/templates/{tpl['id']}").get_json()["sections"][0]["items"] == []


def test_non_json_body_is_415(client):
    res = client.post("/api/v1/ffe/templates", data="name=x", content_type="text/plain")
    assert res.status_code == 415


@pytest.mark.parametrize("path", ["/api/v1/ffe/nothing", "/api/v1/ffe/items/abc/status"])
def test_unknown_route_uses_error_envelope(client, path):
    res = client.get(path)
    assert res.status_code == 404
    assert res.get_json()["code"] == "ERR_NOT_FOUND"


def test_responses_carry_request_id(client):
    res = client.get("/api/v1/ffe/templates", headers={"X-Request-ID": "abc123"})
    assert res.headers["X-Request-ID"] == "abc123"
    assert "X-Request-Duration-Ms" in res.headers
