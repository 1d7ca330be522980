"""
Visibility Controller — non-destructive Use/Remove toggle for room items.

    visible=False on an item  → the item AND all its current descendants
                                are hidden (recursively), in one commit.
    visible=True on an item   → only that item is restored; descendants
                                keep whatever visibility they last had.

Nothing is ever deleted; hidden rows stay as history and are filtered out
of every checklist read.
"""

import logging

from ffe_tracker.core.exceptions import ValidationError
from ffe_tracker.models.audit import write_change
from ffe_tracker.services.helpers.room_queries import descendants, get_item
from ffe_tracker.services.helpers.transactions import atomic
from ffe_tracker.services.permission import ActingUser, actor_name, check_room_access

logger = logging.getLogger(__name__)


def set_visibility(item_id: int, visible, actor: ActingUser | None = None) -> dict:
    """Flip an item between "in use" and "removed".

    Returns:
        {"item": {...}, "cascaded_item_ids": [ids hidden by the cascade]}

    Raises:
        ValidationError: ``visible`` is not a boolean.
        NotFoundError:   unknown item.
        PermissionDenied: actor may not edit the room.
    """
    if not isinstance(visible, bool):
        raise ValidationError("visible must be a boolean", details={"visible": visible})

    item = get_item(item_id)
    check_room_access(actor, item.room_id, "set_visibility")
    actor_id = actor_name(actor)

    cascaded: list[int] = []
    with atomic("RoomFFEItem"):
        old = item.visible
        item.visible = visible
        item.updated_by = actor_id

        if not visible:
            for child in descendants(item):
                if child.visible:
                    child.visible = False
                    child.updated_by = actor_id
                    cascaded.append(child.id)

        if old != visible or cascaded:
            write_change(
                entity_type="item", entity_id=item.id, room_id=item.room_id,
                action="item.visibility", actor=actor_id, field_name="visible",
                old_value=old, new_value=visible,
                meta={"cascaded_item_ids": cascaded} if cascaded else None,
            )

    if cascaded:
        logger.info("Hid item %s and %d descendant(s)", item.id, len(cascaded))
    return {"item": item.to_dict(), "cascaded_item_ids": cascaded}
