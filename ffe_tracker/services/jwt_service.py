"""
JWT Service — verification of the auth service's bearer tokens.

Tokens are issued by the external auth service; this module only decodes
them.  ``generate_access_token`` exists for development and tests.

Algorithm: HS256, shared secret ``JWT_SECRET_KEY`` (falls back to SECRET_KEY).

Token payload (access):
{
    "sub": "<user_id>",
    "role": "designer",            # or "roles": ["designer", ...]
    "type": "access",              # optional
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

DEFAULT_ACCESS_EXPIRES = 900       # 15 minutes
ALGORITHM = "HS256"


def _get_secret():
    """Get the JWT secret key from app config."""
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def generate_access_token(user_id, role: str, expires_in: int = DEFAULT_ACCESS_EXPIRES) -> str:
    """Generate a short-lived access token (dev/test helper)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token.

    Returns the payload dict on success.
    Raises jwt.exceptions on failure (ExpiredSignatureError, InvalidTokenError, etc.)
    """
    payload = jwt.decode(
        token, _get_secret(), algorithms=[ALGORITHM], options={"require": ["sub", "exp"]},
    )
    token_type = payload.get("type", "access")
    if token_type != "access":
        raise jwt.InvalidTokenError(f"Expected access token, got {token_type}")
    return payload
