"""
JWT Auth Middleware — resolves the acting user for every FFE API request.

    Authorization: Bearer <token>  →  g.actor = ActingUser(sub, role)
    no token, API_AUTH_ENABLED off →  g.actor = SYSTEM_ACTOR
    no / bad token, auth enabled   →  401

Role resolution: a ``role`` claim wins; otherwise the most privileged known
entry of ``roles``; anything unrecognised is treated as ``member``.
"""

import logging

import jwt as pyjwt
from flask import current_app, g, request

from ffe_tracker.services.jwt_service import decode_access_token
from ffe_tracker.services.permission import ROLES, SYSTEM_ACTOR, ActingUser
from ffe_tracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
)


def _auth_enabled() -> bool:
    return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() in ("1", "true", "yes")


def role_from_claims(payload: dict) -> str:
    role = payload.get("role")
    if isinstance(role, str) and role in ROLES:
        return role
    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    for candidate in ROLES:   # ordered most → least privileged
        if candidate in roles:
            return candidate
    return "member"


def current_actor() -> ActingUser | None:
    """The acting user resolved for this request (None outside a request)."""
    return getattr(g, "actor", None)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.actor = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return None
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            if _auth_enabled():
                return api_error(E.UNAUTHORIZED, "Bearer token required")
            g.actor = SYSTEM_ACTOR
            return None

        try:
            payload = decode_access_token(auth_header[7:])
        except pyjwt.ExpiredSignatureError:
            return api_error(E.UNAUTHORIZED, "Token expired")
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected bearer token on %s: %s", path, exc)
            return api_error(E.UNAUTHORIZED, "Invalid token")

        g.actor = ActingUser(user_id=str(payload["sub"]), role=role_from_claims(payload))
        return None
