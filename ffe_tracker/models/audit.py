"""
FFE change log model.

Models:
    - FFEChangeLog: immutable, append-only trail of room and template edits.
"""

import json
from datetime import datetime, timezone

from ffe_tracker.models import db

# ── Constants ────────────────────────────────────────────────────────────────

CHANGE_ENTITY_TYPES = {"template", "room", "section", "item"}

CHANGE_ACTIONS = {
    # Template store
    "template.created",
    "template.updated",
    "template.copied",
    "section.created",
    "item.created",
    # Room state
    "room.instantiated",
    "section.custom_created",
    "section.renamed",
    "item.visibility",
    "item.status",
    "item.notes",
    "item.custom_created",
    "logic_option.applied",
    "logic_option.cleared",
    "room.assignment_added",
}


class FFEChangeLog(db.Model):
    """
    One row per mutation.  ``old_value``/``new_value`` carry the changed
    field; ``meta_json`` carries anything structured (child ids, counts).
    """

    __tablename__ = "ffe_change_logs"
    __table_args__ = (
        db.Index("idx_ffe_change_entity", "entity_type", "entity_id"),
        db.Index("idx_ffe_change_room", "room_id"),
        db.Index("idx_ffe_change_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(64), nullable=True)
    entity_type = db.Column(db.String(30), nullable=False)
    entity_id = db.Column(db.String(64), nullable=False)
    action = db.Column(db.String(60), nullable=False)
    field_name = db.Column(db.String(60), nullable=True)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    actor = db.Column(db.String(100), nullable=False, default="system")
    meta_json = db.Column(db.Text, default="{}")
    timestamp = db.Column(
        db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
    )

    @property
    def meta(self) -> dict:
        try:
            return json.loads(self.meta_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "room_id": self.room_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "field_name": self.field_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "actor": self.actor,
            "meta": self.meta,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<FFEChangeLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def _as_text(value):
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def write_change(
    *,
    entity_type: str,
    entity_id,
    action: str,
    actor: str = "system",
    room_id: str | None = None,
    field_name: str | None = None,
    old_value=None,
    new_value=None,
    meta: dict | None = None,
) -> FFEChangeLog:
    """
    Append a single change row.  Only adds to the session so the caller's
    transaction commits (or rolls back) the row together with the change.
    """
    log = FFEChangeLog(
        room_id=room_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        field_name=field_name,
        old_value=_as_text(old_value),
        new_value=_as_text(new_value),
        actor=str(actor or "system"),
        meta_json=json.dumps(meta or {}, default=str),
    )
    db.session.add(log)
    return log
