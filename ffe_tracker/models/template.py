"""
FFE template domain models.

Models:
    - FFETemplate: admin-authored, reusable checklist definition.
    - FFETemplateSection: ordered grouping inside a template.
    - FFETemplateItem: one checklist line; may declare logic options.
    - FFELogicOption: a named branch that expands into child items.
    - FFELogicOptionSubItem: ordered name/category hints for an option.

Templates are versionless. Rooms copy what they need at instantiation
time, so nothing here is read back by an already-instantiated room.
"""

from datetime import datetime, timezone

from ffe_tracker.models import db

TEMPLATE_STATUSES = ("DRAFT", "ACTIVE", "ARCHIVED")


class FFETemplate(db.Model):
    __tablename__ = "ffe_templates"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_by = db.Column(db.String(100), nullable=False, default="system")
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    sections = db.relationship(
        "FFETemplateSection",
        back_populates="template",
        order_by="(FFETemplateSection.order, FFETemplateSection.id)",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_sections=False):
        d = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "is_default": self.is_default,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_sections:
            d["sections"] = [s.to_dict() for s in self.sections]
        return d

    def __repr__(self):
        return f"<FFETemplate {self.id}: {self.name} [{self.status}]>"


class FFETemplateSection(db.Model):
    __tablename__ = "ffe_template_sections"

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(
        db.Integer, db.ForeignKey("ffe_templates.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    order = db.Column(db.Integer, nullable=False, default=0)

    template = db.relationship("FFETemplate", back_populates="sections")
    items = db.relationship(
        "FFETemplateItem",
        back_populates="section",
        order_by="(FFETemplateItem.order, FFETemplateItem.id)",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "name": self.name,
            "description": self.description,
            "order": self.order,
            "items": [i.to_dict() for i in self.items],
        }


class FFETemplateItem(db.Model):
    __tablename__ = "ffe_template_items"

    id = db.Column(db.Integer, primary_key=True)
    section_id = db.Column(
        db.Integer, db.ForeignKey("ffe_template_sections.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    category = db.Column(db.String(100))
    is_required = db.Column(db.Boolean, nullable=False, default=False)
    order = db.Column(db.Integer, nullable=False, default=0)

    section = db.relationship("FFETemplateSection", back_populates="items")
    logic_options = db.relationship(
        "FFELogicOption",
        back_populates="item",
        order_by="(FFELogicOption.order, FFELogicOption.id)",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "section_id": self.section_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "is_required": self.is_required,
            "order": self.order,
            "logic_options": [o.to_dict() for o in self.logic_options],
        }


class FFELogicOption(db.Model):
    """A branch declared on a template item.

    Selecting the option for a room item creates ``items_to_create``
    children, named from ``sub_items`` in position order.
    """

    __tablename__ = "ffe_logic_options"
    __table_args__ = (
        db.UniqueConstraint("item_id", "name", name="uq_ffe_logic_option_item_name"),
        db.CheckConstraint("items_to_create >= 1", name="ck_ffe_logic_option_items_to_create"),
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(
        db.Integer, db.ForeignKey("ffe_template_items.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    items_to_create = db.Column(db.Integer, nullable=False, default=1)
    order = db.Column(db.Integer, nullable=False, default=0)

    item = db.relationship("FFETemplateItem", back_populates="logic_options")
    sub_items = db.relationship(
        "FFELogicOptionSubItem",
        back_populates="option",
        order_by="FFELogicOptionSubItem.position",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "items_to_create": self.items_to_create,
            "sub_items": [s.to_dict() for s in self.sub_items],
        }


class FFELogicOptionSubItem(db.Model):
    __tablename__ = "ffe_logic_option_sub_items"
    __table_args__ = (
        db.UniqueConstraint("option_id", "position", name="uq_ffe_sub_item_position"),
    )

    id = db.Column(db.Integer, primary_key=True)
    option_id = db.Column(
        db.Integer, db.ForeignKey("ffe_logic_options.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    position = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(100))

    option = db.relationship("FFELogicOption", back_populates="sub_items")

    def to_dict(self):
        d = {"name": self.name}
        if self.category:
            d["category"] = self.category
        return d
