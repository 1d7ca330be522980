"""
Logic Expansion Engine — turns a logic-option selection into child items.

apply_logic_option(parent_item_id, logic_option_id):

  1. Validate: parent exists, is visible, and the option is declared in the
     parent's logic-option snapshot.
  2. Same option already active → no-op; return the visible children.
  3. Another option active → hide its children (and their descendants).
     Rows are kept as history.
  4. Create ``items_to_create`` children: sub-item names in order, then
     "<parent> – Item <n>" for the remainder; category falls back to the
     parent's.  All PENDING + visible.
  5. Point ``active_logic_option_id`` at the new option.

Steps 3–5 run in one transaction behind a compare-and-swap on the parent
row: the UPDATE only matches if ``active_logic_option_id`` and
``expansion_generation`` still hold the values read in step 1.  A lost race
raises ConflictError and nothing is written; the caller retries on fresh
state.  The unique (parent, option, generation, position) constraint on
room_ffe_items is the storage-level backstop.

Expansion is deterministic: the same (parent, option) always yields the
same names, categories and order.
"""

from __future__ import annotations

import logging

from sqlalchemy import update

from ffe_tracker.core.exceptions import (
    ConflictError,
    InvalidOptionError,
    ParentNotVisibleError,
)
from ffe_tracker.models import db
from ffe_tracker.models.audit import write_change
from ffe_tracker.models.room import RoomFFEItem
from ffe_tracker.services.helpers.logic_options import LogicOption
from ffe_tracker.services.helpers.room_queries import descendants, get_item, option_children
from ffe_tracker.services.helpers.transactions import atomic
from ffe_tracker.services.helpers.validation import require_int
from ffe_tracker.services.permission import ActingUser, actor_name, check_room_access

logger = logging.getLogger(__name__)


def declared_options(item: RoomFFEItem) -> list[LogicOption]:
    """Parse the item's logic-option snapshot (raises on a corrupt snapshot)."""
    return [LogicOption.from_snapshot(raw) for raw in item.logic_options_raw]


def _find_option(item: RoomFFEItem, logic_option_id: int) -> LogicOption:
    for option in declared_options(item):
        if option.id == logic_option_id:
            return option
    raise InvalidOptionError(item.id, logic_option_id)


def _compare_and_swap(
    parent: RoomFFEItem,
    observed_option: int | None,
    observed_generation: int,
    new_option: int | None,
    actor_id: str,
) -> int:
    """Move the parent's selection pointer iff nobody moved it since we read it.

    Returns the new expansion generation.
    """
    if observed_option is None:
        option_guard = RoomFFEItem.active_logic_option_id.is_(None)
    else:
        option_guard = RoomFFEItem.active_logic_option_id == observed_option

    new_generation = observed_generation + 1
    result = db.session.execute(
        update(RoomFFEItem)
        .where(
            RoomFFEItem.id == parent.id,
            RoomFFEItem.expansion_generation == observed_generation,
            option_guard,
        )
        .values(
            active_logic_option_id=new_option,
            expansion_generation=new_generation,
            updated_by=actor_id,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "Logic option CAS lost on item %s (observed option=%s generation=%s)",
            parent.id, observed_option, observed_generation,
        )
        raise ConflictError(
            "RoomFFEItem",
            "active_logic_option_id",
            observed_option,
            message=(
                f"Logic option selection on item {parent.id} changed concurrently; "
                "reload the room state and retry"
            ),
        )
    db.session.expire(parent)
    return new_generation


def _hide_current_children(parent: RoomFFEItem, actor_id: str) -> list[int]:
    """Hide every visible child of ``parent`` and everything below it."""
    hidden = []
    for node in descendants(parent):
        if node.visible:
            node.visible = False
            node.updated_by = actor_id
            hidden.append(node.id)
    return hidden


def _result(parent: RoomFFEItem, children, hidden: list[int], changed: bool) -> dict:
    return {
        "parent": parent.to_dict(),
        "children": [c.to_dict() for c in children],
        "hidden_item_ids": hidden,
        "changed": changed,
    }


def apply_logic_option(
    parent_item_id: int,
    logic_option_id: int,
    actor: ActingUser | None = None,
) -> dict:
    """Select a logic option on a room item and expand it into children.

    Returns:
        {"parent": {...}, "children": [visible children of the option],
         "hidden_item_ids": [...], "changed": bool}

    Raises:
        ValidationError / InvalidOptionError: bad id or option not declared.
        NotFoundError: unknown parent.
        ParentNotVisibleError: parent is removed.
        ConflictError: a concurrent selection won the compare-and-swap.
        PermissionDenied: actor may not edit the room.
    """
    logic_option_id = require_int(logic_option_id, "logic_option_id")
    parent = get_item(parent_item_id, for_update=True)
    check_room_access(actor, parent.room_id, "apply_logic_option")
    if not parent.visible:
        raise ParentNotVisibleError(parent.id, "apply_logic_option")
    option = _find_option(parent, logic_option_id)

    observed_option = parent.active_logic_option_id
    observed_generation = parent.expansion_generation

    if observed_option == logic_option_id:
        children = option_children(parent, logic_option_id, visible_only=True)
        logger.debug("Logic option %s already active on item %s", logic_option_id, parent.id)
        return _result(parent, children, [], changed=False)

    actor_id = actor_name(actor)
    with atomic("RoomFFEItem"):
        generation = _compare_and_swap(
            parent, observed_option, observed_generation, logic_option_id, actor_id,
        )
        hidden = _hide_current_children(parent, actor_id)

        children = []
        for position, spec in enumerate(option.child_specs(parent.name, parent.category)):
            child = RoomFFEItem(
                instance_id=parent.instance_id,
                room_id=parent.room_id,
                section_id=parent.section_id,
                template_item_id=None,
                parent_item_id=parent.id,
                source_logic_option_id=option.id,
                expansion_generation=generation,
                expansion_position=position,
                name=spec["name"],
                category=spec["category"],
                order=parent.order,
                visible=True,
                status="PENDING",
                notes="",
                updated_by=actor_id,
            )
            db.session.add(child)
            children.append(child)
        db.session.flush()

        write_change(
            entity_type="item", entity_id=parent.id, room_id=parent.room_id,
            action="logic_option.applied", actor=actor_id,
            field_name="active_logic_option_id",
            old_value=observed_option, new_value=option.id,
            meta={
                "option_name": option.name,
                "created_item_ids": [c.id for c in children],
                "hidden_item_ids": hidden,
            },
        )

    logger.info(
        "Applied logic option %s (%s) on item %s: created %d, hid %d",
        option.id, option.name, parent.id, len(children), len(hidden),
    )
    return _result(parent, children, hidden, changed=True)


def clear_logic_option(parent_item_id: int, actor: ActingUser | None = None) -> dict:
    """Revert a parent to "no option selected".

    Hides the active option's children (kept as history) and clears
    ``active_logic_option_id`` under the same compare-and-swap as
    ``apply_logic_option``.  A no-op when nothing is selected.
    """
    parent = get_item(parent_item_id, for_update=True)
    check_room_access(actor, parent.room_id, "clear_logic_option")
    if not parent.visible:
        raise ParentNotVisibleError(parent.id, "clear_logic_option")

    observed_option = parent.active_logic_option_id
    if observed_option is None:
        return _result(parent, [], [], changed=False)

    actor_id = actor_name(actor)
    with atomic("RoomFFEItem"):
        _compare_and_swap(parent, observed_option, parent.expansion_generation, None, actor_id)
        hidden = _hide_current_children(parent, actor_id)
        write_change(
            entity_type="item", entity_id=parent.id, room_id=parent.room_id,
            action="logic_option.cleared", actor=actor_id,
            field_name="active_logic_option_id",
            old_value=observed_option, new_value=None,
            meta={"hidden_item_ids": hidden},
        )

    logger.info("Cleared logic option %s on item %s (hid %d)", observed_option, parent.id, len(hidden))
    return _result(parent, [], hidden, changed=True)
