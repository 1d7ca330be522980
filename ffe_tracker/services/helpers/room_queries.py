"""
Room-item query helpers shared by the visibility, expansion, status and
progress services.

Every read path that reports "the checklist" goes through
``visible_items()``; removed rows are history and never count.
"""

import logging

from sqlalchemy import select

from ffe_tracker.core.exceptions import NotFoundError
from ffe_tracker.models import db
from ffe_tracker.models.room import RoomFFEItem, RoomFFESection

logger = logging.getLogger(__name__)


def get_item(item_id: int, *, for_update: bool = False) -> RoomFFEItem:
    """Fetch a RoomFFEItem by id or raise NotFoundError.

    ``for_update`` adds SELECT ... FOR UPDATE on backends that support it
    (ignored by SQLite), narrowing the window before a compare-and-swap.
    """
    stmt = select(RoomFFEItem).where(RoomFFEItem.id == item_id)
    if for_update:
        stmt = stmt.with_for_update()
    item = db.session.execute(stmt).scalar_one_or_none()
    if item is None:
        raise NotFoundError(resource="RoomFFEItem", resource_id=item_id)
    return item


def descendants(item: RoomFFEItem) -> list[RoomFFEItem]:
    """Return every current descendant of ``item`` (breadth-first, any depth)."""
    found: list[RoomFFEItem] = []
    seen = {item.id}
    frontier = [item.id]
    while frontier:
        rows = db.session.execute(
            select(RoomFFEItem)
            .where(RoomFFEItem.parent_item_id.in_(frontier))
            .order_by(RoomFFEItem.id)
        ).scalars().all()
        frontier = []
        for row in rows:
            if row.id in seen:
                logger.warning("Cycle in room item lineage at item %s", row.id)
                continue
            seen.add(row.id)
            found.append(row)
            frontier.append(row.id)
    return found


def option_children(parent: RoomFFEItem, logic_option_id: int, *, visible_only: bool = False):
    """Children of ``parent`` generated by ``logic_option_id`` in expansion order."""
    stmt = (
        select(RoomFFEItem)
        .where(
            RoomFFEItem.parent_item_id == parent.id,
            RoomFFEItem.source_logic_option_id == logic_option_id,
        )
        .order_by(
            RoomFFEItem.expansion_generation,
            RoomFFEItem.expansion_position,
            RoomFFEItem.id,
        )
    )
    if visible_only:
        stmt = stmt.where(RoomFFEItem.visible.is_(True))
    return db.session.execute(stmt).scalars().all()


def room_items(room_id: str, *, visible_only: bool = False) -> list[RoomFFEItem]:
    """All items of a room in checklist order.

    Order: section order, then top-level item order, with each parent's
    derived children placed directly after it in expansion order
    (recursively).
    """
    stmt = (
        select(RoomFFEItem)
        .join(RoomFFESection, RoomFFESection.id == RoomFFEItem.section_id)
        .where(RoomFFEItem.room_id == str(room_id))
        .order_by(RoomFFESection.order, RoomFFESection.id, RoomFFEItem.order, RoomFFEItem.id)
    )
    rows = db.session.execute(stmt).scalars().all()

    by_parent: dict[int, list[RoomFFEItem]] = {}
    roots = []
    for item in rows:
        if item.parent_item_id is None:
            roots.append(item)
        else:
            by_parent.setdefault(item.parent_item_id, []).append(item)
    for kids in by_parent.values():
        kids.sort(key=lambda c: (c.expansion_generation, c.expansion_position or 0, c.id))

    ordered: list[RoomFFEItem] = []

    def _walk(node):
        ordered.append(node)
        for child in by_parent.get(node.id, []):
            _walk(child)

    for root in roots:
        _walk(root)

    if visible_only:
        return [i for i in ordered if i.visible]
    return ordered


def visible_items(room_id: str) -> list[RoomFFEItem]:
    return room_items(room_id, visible_only=True)
