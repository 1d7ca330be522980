"""
FFE-wide exception hierarchy.

Every service raises these types; blueprints register one handler per type
and map it to a stable HTTP status and error code. None of them is retried
inside the engine: retry is the caller's decision.

Usage:
    from ffe_tracker.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="RoomFFEItem", resource_id=42)
    raise ValidationError("status is required", details={"status": "missing"})
"""


class NotFoundError(Exception):
    """Raised when a template, section, item, option or room state does not exist.

    Args:
        resource: Human-readable entity name (e.g. "FFETemplate", "RoomFFEItem").
        resource_id: The key that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or violates a write-time rule.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidOptionError(ValidationError):
    """Raised when a logic option is not declared on the parent item."""

    def __init__(self, item_id: int, logic_option_id) -> None:
        self.item_id = item_id
        self.logic_option_id = logic_option_id
        super().__init__(
            f"Logic option {logic_option_id!r} is not declared on item {item_id}",
            details={"logic_option_id": logic_option_id},
        )


class ConflictError(Exception):
    """Raised on duplicate state or a lost compare-and-swap.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique (or guarded) field.
        value: The conflicting value.
        message: Optional override for the default "already exists" wording.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value=None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists")


class ParentNotVisibleError(Exception):
    """Raised when a status or logic-option mutation targets a removed item.

    Maps to HTTP 409 (the item is in a state that forbids the action).
    """

    def __init__(self, item_id: int, action: str) -> None:
        self.item_id = item_id
        self.action = action
        super().__init__(
            f"Cannot '{action}' item {item_id}: item is removed (visible=false)"
        )


class PermissionDenied(Exception):
    """Raised when the acting user lacks the role or room assignment for an action."""

    def __init__(self, user_id, action: str, room_id: str | None = None) -> None:
        room_msg = f" in room {room_id}" if room_id else ""
        super().__init__(
            f"User {user_id} does not have permission for '{action}'{room_msg}"
        )
        self.user_id = user_id
        self.action = action
        self.room_id = room_id
