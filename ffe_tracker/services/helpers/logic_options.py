"""
Logic option structure + shape validation.

A logic option is authored as free-form JSON but handled everywhere else
as a typed ``LogicOption``.  Shape is validated when a template is written
(``parse_logic_option_input``) and again when a room snapshot is read back
(``LogicOption.from_snapshot``), so a corrupt snapshot fails loudly instead
of producing a half-built expansion.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ffe_tracker.core.exceptions import ValidationError
from ffe_tracker.services.helpers.validation import clean_str

MAX_ITEMS_TO_CREATE = 50


@dataclass(frozen=True)
class SubItem:
    name: str
    category: str | None = None

    def to_dict(self) -> dict:
        d = {"name": self.name}
        if self.category:
            d["category"] = self.category
        return d


@dataclass(frozen=True)
class LogicOption:
    id: int | None
    name: str
    description: str | None
    items_to_create: int
    sub_items: tuple[SubItem, ...] = field(default_factory=tuple)

    def child_specs(self, parent_name: str, parent_category: str | None) -> list[dict]:
        """Return the ordered ``{name, category}`` list this option expands into.

        Named sub-items first, then ``"<parent> – Item <n>"`` for the
        remainder, where ``n`` is the 1-based position among all children.
        """
        specs = []
        for i in range(self.items_to_create):
            if i < len(self.sub_items):
                sub = self.sub_items[i]
                specs.append({
                    "name": sub.name,
                    "category": sub.category or parent_category,
                })
            else:
                specs.append({
                    "name": f"{parent_name} – Item {i + 1}",
                    "category": parent_category,
                })
        return specs

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "items_to_create": self.items_to_create,
            "sub_items": [s.to_dict() for s in self.sub_items],
        }

    @classmethod
    def from_snapshot(cls, raw) -> "LogicOption":
        """Rebuild an option from a room snapshot; raise on any shape drift."""
        if not isinstance(raw, dict) or not isinstance(raw.get("id"), int):
            raise ValidationError("Corrupt logic option snapshot", details={"option": raw})
        parsed = parse_logic_option_input(raw)
        return cls(
            id=raw["id"],
            name=parsed.name,
            description=parsed.description,
            items_to_create=parsed.items_to_create,
            sub_items=parsed.sub_items,
        )


def parse_logic_option_input(data) -> LogicOption:
    """Validate one authored option dict and return it as a ``LogicOption`` (id unset).

    Rules:
      - ``name`` non-empty string
      - ``items_to_create`` integer in [1, MAX_ITEMS_TO_CREATE] (bools rejected)
      - ``sub_items`` list of ``{name, category?}``; may be shorter than
        ``items_to_create`` but never longer
    """
    if not isinstance(data, dict):
        raise ValidationError("Each logic option must be an object")

    name = clean_str(data.get("name"), "name", required=True)
    description = clean_str(data.get("description"), "description", required=False, max_len=2000)

    items_to_create = data.get("items_to_create", 1)
    if isinstance(items_to_create, bool) or not isinstance(items_to_create, int):
        raise ValidationError(
            f"Logic option '{name}': items_to_create must be an integer",
            details={"items_to_create": items_to_create},
        )
    if items_to_create < 1 or items_to_create > MAX_ITEMS_TO_CREATE:
        raise ValidationError(
            f"Logic option '{name}': items_to_create must be between 1 and {MAX_ITEMS_TO_CREATE}",
            details={"items_to_create": items_to_create},
        )

    raw_subs = data.get("sub_items") or []
    if not isinstance(raw_subs, list):
        raise ValidationError(f"Logic option '{name}': sub_items must be a list")
    if len(raw_subs) > items_to_create:
        raise ValidationError(
            f"Logic option '{name}': {len(raw_subs)} sub_items declared "
            f"but items_to_create is {items_to_create}",
            details={"sub_items": len(raw_subs), "items_to_create": items_to_create},
        )

    subs = []
    for idx, sub in enumerate(raw_subs):
        if not isinstance(sub, dict):
            raise ValidationError(f"Logic option '{name}': sub_items[{idx}] must be an object")
        subs.append(SubItem(
            name=clean_str(sub.get("name"), f"sub_items[{idx}].name", required=True),
            category=clean_str(sub.get("category"), f"sub_items[{idx}].category",
                                required=False, max_len=100),
        ))

    return LogicOption(
        id=None,
        name=name,
        description=description,
        items_to_create=items_to_create,
        sub_items=tuple(subs),
    )


def parse_logic_options_input(options) -> list[LogicOption]:
    """Validate a list of authored options; option names must be unique per item."""
    if options is None:
        return []
    if not isinstance(options, list):
        raise ValidationError("logic_options must be a list")
    parsed = [parse_logic_option_input(o) for o in options]
    seen = set()
    for opt in parsed:
        key = opt.name.lower()
        if key in seen:
            raise ValidationError(
                f"Duplicate logic option name '{opt.name}'", details={"name": opt.name},
            )
        seen.add(key)
    return parsed
