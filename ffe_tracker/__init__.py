"""
FFE Tracker
Flask Application Factory.

Usage:
    from ffe_tracker import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from ffe_tracker.config import config
from ffe_tracker.middleware.jwt_auth import init_jwt_middleware
from ffe_tracker.middleware.logging_config import configure_logging
from ffe_tracker.middleware.rate_limiter import init_rate_limits
from ffe_tracker.middleware.timing import init_request_timing
from ffe_tracker.models import db
from ffe_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit — apply per-blueprint
    storage_uri=os.getenv("REDIS_URL") or "memory://",
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    app.config.from_object(config_cls() if config_name == "production" else config_cls)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    os.makedirs(app.instance_path, exist_ok=True)
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + acting-user resolution ──────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Request guards (Content-Type on mutating API calls) ──────────────
    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            if request.data and "json" not in (request.content_type or ""):
                return api_error(
                    E.VALIDATION_INVALID, "Content-Type must be application/json", status=415,
                )
        return None

    # ── Import all models so Alembic can detect them ─────────────────────
    from ffe_tracker.models import audit as _audit_models        # noqa: F401
    from ffe_tracker.models import room as _room_models          # noqa: F401
    from ffe_tracker.models import template as _template_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db.create_all()
        app.logger.info("db.create_all() completed successfully")

    # ── Blueprints ───────────────────────────────────────────────────────
    from ffe_tracker.blueprints.health_bp import health_bp
    from ffe_tracker.blueprints.room_ffe_bp import room_ffe_bp
    from ffe_tracker.blueprints.template_bp import template_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(template_bp)
    app.register_blueprint(room_ffe_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-ffe-templates")
    def seed_ffe_templates_cmd():
        """Seed the default bathroom FFE template."""
        from ffe_tracker.services.seed_service import seed_default_templates
        count = seed_default_templates()
        logger.info("Seeded %s new FFE templates.", count)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(413)
    def too_large(e):
        return api_error(E.VALIDATION_INVALID, "Request body too large", status=413)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(
            E.VALIDATION_INVALID, "Too many requests", status=429,
            details={"retry_after": e.description},
        )

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
