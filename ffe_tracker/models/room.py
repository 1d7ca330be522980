"""
Room-scoped FFE state models.

Models:
    - RoomFFEInstance: marks that a room has FFE state (one per room).
    - RoomFFESection: room copy of a template section, or a room-only section.
    - RoomFFEItem: room-scoped, mutable working copy of a checklist line.
    - RoomAssignment: which users may edit which rooms.

Business rules:
    - RoomFFEItem rows are NEVER deleted.  Removal is ``visible = False``
      and every read path filters on it.
    - A derived item (produced by a logic option) always carries
      ``parent_item_id`` and ``source_logic_option_id``.
    - ``active_logic_option_id`` on a parent is the only source of truth
      for the current selection; it is never inferred from children.
    - ``expansion_generation`` on a parent is bumped on every option
      switch and is part of the compare-and-swap guard.
"""

import json
from datetime import datetime, timezone

from ffe_tracker.models import db

# ── Constants ────────────────────────────────────────────────────────────────

ITEM_STATUSES = ("PENDING", "UNDECIDED", "COMPLETED", "NOT_APPLICABLE")

INSTANCE_STATUSES = ("NOT_STARTED", "IN_PROGRESS", "COMPLETED")


class RoomFFEInstance(db.Model):
    __tablename__ = "room_ffe_instances"

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(64), nullable=False, unique=True)
    template_id = db.Column(
        db.Integer, db.ForeignKey("ffe_templates.id", ondelete="SET NULL"), nullable=True,
    )
    template_name = db.Column(db.String(200), comment="Snapshot of the template name")
    created_by = db.Column(db.String(100), nullable=False, default="system")
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    sections = db.relationship(
        "RoomFFESection",
        back_populates="instance",
        order_by="(RoomFFESection.order, RoomFFESection.id)",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "room_id": self.room_id,
            "template_id": self.template_id,
            "template_name": self.template_name,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class RoomFFESection(db.Model):
    __tablename__ = "room_ffe_sections"

    id = db.Column(db.Integer, primary_key=True)
    instance_id = db.Column(
        db.Integer, db.ForeignKey("room_ffe_instances.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    template_section_id = db.Column(db.Integer, nullable=True)
    name = db.Column(db.String(200), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    is_custom = db.Column(db.Boolean, nullable=False, default=False)

    instance = db.relationship("RoomFFEInstance", back_populates="sections")

    def to_dict(self):
        return {
            "id": self.id,
            "instance_id": self.instance_id,
            "template_section_id": self.template_section_id,
            "name": self.name,
            "order": self.order,
            "is_custom": bool(self.is_custom),
        }


class RoomFFEItem(db.Model):
    """One line of a room's FFE checklist.

    Created by instantiation (copy of a template item), by logic expansion
    (derived child) or as a custom room-only addition.  Archived, never
    destroyed.
    """

    __tablename__ = "room_ffe_items"
    __table_args__ = (
        db.UniqueConstraint("room_id", "template_item_id", name="uq_room_ffe_item_template"),
        db.UniqueConstraint(
            "parent_item_id", "source_logic_option_id",
            "expansion_generation", "expansion_position",
            name="uq_room_ffe_item_expansion",
        ),
        db.Index("ix_room_ffe_items_room_visible", "room_id", "visible"),
    )

    id = db.Column(db.Integer, primary_key=True)
    instance_id = db.Column(
        db.Integer, db.ForeignKey("room_ffe_instances.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    room_id = db.Column(db.String(64), nullable=False, index=True)
    section_id = db.Column(
        db.Integer, db.ForeignKey("room_ffe_sections.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    template_item_id = db.Column(
        db.Integer, db.ForeignKey("ffe_template_items.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Expansion lineage
    parent_item_id = db.Column(
        db.Integer, db.ForeignKey("room_ffe_items.id"), nullable=True, index=True,
    )
    source_logic_option_id = db.Column(db.Integer, nullable=True)
    active_logic_option_id = db.Column(db.Integer, nullable=True)
    expansion_generation = db.Column(db.Integer, nullable=False, default=0)
    expansion_position = db.Column(db.Integer, nullable=True)
    logic_options_json = db.Column(
        db.Text, nullable=False, default="[]",
        comment="Snapshot of the template item's logic options at instantiation",
    )

    # Checklist content
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(100))
    order = db.Column(db.Integer, nullable=False, default=0)
    is_required = db.Column(db.Boolean, nullable=False, default=False)
    is_custom = db.Column(db.Boolean, nullable=False, default=False)

    # Decision state
    visible = db.Column(db.Boolean, nullable=False, default=True)
    status = db.Column(db.String(20), nullable=False, default="PENDING")
    notes = db.Column(db.Text, nullable=False, default="")
    completed_at = db.Column(db.DateTime, nullable=True)
    completed_by = db.Column(db.String(100), nullable=True)

    updated_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    children = db.relationship(
        "RoomFFEItem",
        backref=db.backref("parent", remote_side=[id]),
        order_by="(RoomFFEItem.expansion_generation, RoomFFEItem.expansion_position, RoomFFEItem.id)",
    )

    @property
    def logic_options_raw(self) -> list:
        """Deserialise the logic-option snapshot; shape is validated by the caller."""
        try:
            value = json.loads(self.logic_options_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []
        return value if isinstance(value, list) else []

    @property
    def is_derived(self) -> bool:
        return self.parent_item_id is not None

    def to_dict(self):
        return {
            "id": self.id,
            "room_id": self.room_id,
            "section_id": self.section_id,
            "template_item_id": self.template_item_id,
            "parent_item_id": self.parent_item_id,
            "source_logic_option_id": self.source_logic_option_id,
            "active_logic_option_id": self.active_logic_option_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "order": self.order,
            "is_required": self.is_required,
            "is_custom": self.is_custom,
            "visible": self.visible,
            "status": self.status,
            "notes": self.notes or "",
            "logic_options": self.logic_options_raw,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "completed_by": self.completed_by,
            "updated_by": self.updated_by,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<RoomFFEItem {self.id}: {self.name} [{self.status}{'' if self.visible else ', removed'}]>"


class RoomAssignment(db.Model):
    """A user assigned to a room; assignment grants status/notes/visibility edits."""

    __tablename__ = "room_assignments"
    __table_args__ = (
        db.UniqueConstraint("room_id", "user_id", name="uq_room_assignment"),
    )

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.String(64), nullable=False, index=True)
    user_id = db.Column(db.String(100), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "room_id": self.room_id,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
