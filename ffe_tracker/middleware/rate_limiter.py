"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.  The Limiter
instance is created in ffe_tracker/__init__.py with no default limits;
this module applies limits per route category.

Usage:
    from ffe_tracker.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

TEMPLATE_LIMIT = "60/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Room FFE endpoints:  RATELIMIT_DEFAULT (checklist UIs poll often)
        - Template endpoints:  60/minute
        - Health check:        exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    room_limit = app.config.get("RATELIMIT_DEFAULT", "120/minute")
    bp = app.blueprints.get("room_ffe")
    if bp:
        limiter.limit(room_limit)(bp)

    bp = app.blueprints.get("ffe_template")
    if bp:
        limiter.limit(TEMPLATE_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — rooms: %s, templates: %s", room_limit, TEMPLATE_LIMIT)
