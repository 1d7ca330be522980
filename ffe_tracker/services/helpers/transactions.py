"""
Transaction boundary for FFE service operations.

Every mutating service function runs its whole read-modify-write set inside
``atomic()``: one commit on success, one rollback on any failure, so a
half-applied cascade or option switch is never persisted.

Usage::

    with atomic("RoomFFEItem"):
        item.visible = False
        ...

IntegrityError → ConflictError (duplicate / unique constraint violation)
Anything else  → rolled back and re-raised unchanged
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError

from ffe_tracker.core.exceptions import ConflictError
from ffe_tracker.models import db

logger = logging.getLogger(__name__)


@contextmanager
def atomic(resource: str = "FFE"):
    try:
        yield db.session
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on %s commit: %s", resource, exc.orig)
        raise ConflictError(
            resource, "unique", message=f"{resource}: duplicate or constraint violation",
        ) from exc
    except Exception:
        db.session.rollback()
        raise
