"""Read models for a room's FFE state and change history."""

from sqlalchemy import select

from ffe_tracker.core.exceptions import ValidationError
from ffe_tracker.models import db
from ffe_tracker.models.audit import FFEChangeLog
from ffe_tracker.services.helpers.room_queries import room_items
from ffe_tracker.services.instantiation_service import require_instance
from ffe_tracker.services.progress_service import compute_progress

MAX_CHANGES_LIMIT = 500


def get_room_state(room_id, *, include_hidden: bool = False) -> dict:
    """Return the room's ordered checklist grouped by section, plus progress.

    Hidden items are omitted unless ``include_hidden`` is set (history view).
    """
    instance = require_instance(room_id)
    items = room_items(instance.room_id, visible_only=not include_hidden)

    grouped: dict[int, list] = {}
    for item in items:
        grouped.setdefault(item.section_id, []).append(item.to_dict())

    sections = []
    for section in instance.sections:
        data = section.to_dict()
        data["items"] = grouped.get(section.id, [])
        sections.append(data)

    return {
        "instance": instance.to_dict(),
        "sections": sections,
        "progress": compute_progress(instance.room_id),
    }


def list_changes(room_id, limit: int = 100) -> list[dict]:
    """Newest-first change log for a room."""
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError("limit must be a positive integer", details={"limit": limit})
    instance = require_instance(room_id)
    rows = db.session.execute(
        select(FFEChangeLog)
        .where(FFEChangeLog.room_id == instance.room_id)
        .order_by(FFEChangeLog.timestamp.desc(), FFEChangeLog.id.desc())
        .limit(min(limit, MAX_CHANGES_LIMIT))
    ).scalars().all()
    return [r.to_dict() for r in rows]
