"""
Shared pytest fixtures for the FFE Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - bathroom_template: ACTIVE template with logic options on "Vanity"
    - room: room "R-101" instantiated from bathroom_template
    - auth_headers: factory for Bearer headers (user_id, role)
"""

import pytest

from ffe_tracker import create_app
from ffe_tracker.models import db as _db
from ffe_tracker.services import instantiation_service, template_service


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def auth_headers(app):
    """Return a factory building an Authorization header for (user_id, role)."""
    from ffe_tracker.services.jwt_service import generate_access_token

    def _make(user_id="u-1", role="member"):
        return {"Authorization": f"Bearer {generate_access_token(user_id, role)}"}

    return _make


# ── Domain fixtures ──────────────────────────────────────────────────────


@pytest.fixture()
def bathroom_template():
    """ACTIVE template:

        Plumbing
            Vanity   (Plumbing)  options: Single Vanity (1)
                                          Double Vanity (2: Left Vanity, Right Vanity)
                                          Vanity Bank   (4: Left Vanity, Right Vanity/Millwork)
            Toilet   (Plumbing)
        Lighting
            Sconce   (Lighting)

    Returns the template detail dict plus an ``options`` name → id map.
    """
    tpl = template_service.create_template({"name": "Bathroom", "status": "ACTIVE"})
    plumbing = template_service.add_section(tpl["id"], "Plumbing")
    lighting = template_service.add_section(tpl["id"], "Lighting")
    template_service.add_item(
        plumbing["id"],
        {"name": "Vanity", "category": "Plumbing", "is_required": True},
        [
            {"name": "Single Vanity", "items_to_create": 1},
            {
                "name": "Double Vanity",
                "items_to_create": 2,
                "sub_items": [{"name": "Left Vanity"}, {"name": "Right Vanity"}],
            },
            {
                "name": "Vanity Bank",
                "items_to_create": 4,
                "sub_items": [
                    {"name": "Left Vanity"},
                    {"name": "Right Vanity", "category": "Millwork"},
                ],
            },
        ],
    )
    template_service.add_item(plumbing["id"], {"name": "Toilet", "category": "Plumbing"})
    template_service.add_item(lighting["id"], {"name": "Sconce", "category": "Lighting"})

    detail = template_service.get_template(tpl["id"])
    vanity = detail["sections"][0]["items"][0]
    detail["options"] = {o["name"]: o["id"] for o in vanity["logic_options"]}
    return detail


@pytest.fixture()
def room(bathroom_template):
    """Room "R-101" instantiated from ``bathroom_template``."""
    instantiation_service.instantiate("R-101", bathroom_template["id"])
    return "R-101"
