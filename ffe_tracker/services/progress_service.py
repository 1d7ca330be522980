"""
Progress Aggregator — read-only completion statistics for a room.

Only visible items count, parents and derived children alike.

    percent = floor(100 * completed / total)      (total == 0 → 100)

Room status:
    NOT_STARTED  nothing touched (every visible item still PENDING)
    COMPLETED    total > 0 and percent == 100
    IN_PROGRESS  anything else
"""

import logging

from ffe_tracker.models.room import ITEM_STATUSES
from ffe_tracker.services.helpers.room_queries import visible_items
from ffe_tracker.services.instantiation_service import get_instance, require_instance

logger = logging.getLogger(__name__)


def _percent(completed: int, total: int) -> int:
    if total == 0:
        return 100
    return (100 * completed) // total


def _room_status(by_status: dict, total: int, percent: int) -> str:
    if total > 0 and percent == 100:
        return "COMPLETED"
    if by_status["PENDING"] == total:
        return "NOT_STARTED"
    return "IN_PROGRESS"


def summarize(items) -> dict:
    """Aggregate an iterable of visible RoomFFEItems."""
    by_status = {s: 0 for s in ITEM_STATUSES}
    for item in items:
        by_status[item.status] = by_status.get(item.status, 0) + 1
    total = sum(by_status.values())
    completed = by_status["COMPLETED"]
    percent = _percent(completed, total)
    return {
        "total": total,
        "completed": completed,
        "percent": percent,
        "status": _room_status(by_status, total, percent),
        "by_status": by_status,
    }


def compute_progress(room_id) -> dict:
    """Progress for one room with a per-section breakdown.

    Raises:
        NotFoundError: the room has no FFE state.
    """
    instance = require_instance(room_id)
    items = visible_items(instance.room_id)

    per_section: dict[int, list] = {}
    for item in items:
        per_section.setdefault(item.section_id, []).append(item)

    sections = []
    for section in instance.sections:
        rows = per_section.get(section.id, [])
        completed = sum(1 for i in rows if i.status == "COMPLETED")
        sections.append({
            "section_id": section.id,
            "name": section.name,
            "total": len(rows),
            "completed": completed,
            "percent": _percent(completed, len(rows)),
        })

    result = summarize(items)
    result["room_id"] = instance.room_id
    result["sections"] = sections
    return result


def get_progress_summary(room_ids) -> list[dict]:
    """Progress for several rooms; rooms without state are flagged, not raised."""
    summary = []
    seen = set()
    for raw in room_ids or []:
        room_id = str(raw).strip()
        if not room_id or room_id in seen:
            continue
        seen.add(room_id)
        if get_instance(room_id) is None:
            summary.append({"room_id": room_id, "instantiated": False})
            continue
        entry = compute_progress(room_id)
        entry.pop("sections", None)
        entry["instantiated"] = True
        summary.append(entry)
    return summary
