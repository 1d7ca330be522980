"""
Status & Notes Tracker.

    PENDING ⇄ UNDECIDED ⇄ COMPLETED ⇄ NOT_APPLICABLE    (any → any)

Status writes require a visible item; notes may be edited on any item,
removed or not.  COMPLETED stamps completed_at/completed_by and leaving
COMPLETED clears them.
"""

import logging
from datetime import datetime, timezone

from ffe_tracker.core.exceptions import ParentNotVisibleError, ValidationError
from ffe_tracker.models.audit import write_change
from ffe_tracker.models.room import ITEM_STATUSES
from ffe_tracker.services.helpers.room_queries import get_item
from ffe_tracker.services.helpers.transactions import atomic
from ffe_tracker.services.permission import ActingUser, actor_name, check_room_access

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 10_000


def set_status(item_id: int, status, actor: ActingUser | None = None) -> dict:
    """Set an item's procurement status.

    Raises:
        ValidationError: status outside PENDING/UNDECIDED/COMPLETED/NOT_APPLICABLE.
        NotFoundError: unknown item.
        ParentNotVisibleError: item is removed.
        PermissionDenied: actor may not edit the room.
    """
    if not isinstance(status, str) or status.upper() not in ITEM_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(ITEM_STATUSES)}",
            details={"status": status},
        )
    status = status.upper()

    item = get_item(item_id)
    check_room_access(actor, item.room_id, "set_status")
    if not item.visible:
        raise ParentNotVisibleError(item.id, "set_status")

    old = item.status
    if old == status:
        return item.to_dict()

    actor_id = actor_name(actor)
    with atomic("RoomFFEItem"):
        item.status = status
        item.updated_by = actor_id
        if status == "COMPLETED":
            item.completed_at = datetime.now(timezone.utc)
            item.completed_by = actor_id
        else:
            item.completed_at = None
            item.completed_by = None
        write_change(
            entity_type="item", entity_id=item.id, room_id=item.room_id,
            action="item.status", actor=actor_id, field_name="status",
            old_value=old, new_value=status,
        )

    logger.info("Item %s status %s → %s", item.id, old, status)
    return item.to_dict()


def set_notes(item_id: int, notes, actor: ActingUser | None = None) -> dict:
    """Replace an item's free-text notes (None clears them)."""
    if notes is None:
        notes = ""
    if not isinstance(notes, str):
        raise ValidationError("notes must be a string", details={"notes": type(notes).__name__})
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes must be ≤ {MAX_NOTES_LENGTH} characters")

    item = get_item(item_id)
    check_room_access(actor, item.room_id, "set_notes")

    old = item.notes or ""
    if old == notes:
        return item.to_dict()

    actor_id = actor_name(actor)
    with atomic("RoomFFEItem"):
        item.notes = notes
        item.updated_by = actor_id
        write_change(
            entity_type="item", entity_id=item.id, room_id=item.room_id,
            action="item.notes", actor=actor_id, field_name="notes",
            old_value=old, new_value=notes,
        )

    return item.to_dict()
