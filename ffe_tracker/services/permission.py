"""
FFE access policy.

The auth collaborator (outside this service) supplies the acting user's id
and role; this module only decides whether that user may perform an action.

Rules:
    - Template edits require ``admin`` or ``designer``.
    - Room edits (status, notes, visibility, logic options, custom items)
      require ``admin``/``designer`` or a RoomAssignment for the room.
    - ``actor=None`` means an internal/system call and skips all checks.

Usage:
    from ffe_tracker.services.permission import check_room_access

    check_room_access(actor, room_id, "set_status")   # raises PermissionDenied
"""

from dataclasses import dataclass

from ffe_tracker.core.exceptions import PermissionDenied
from ffe_tracker.models.room import RoomAssignment

ROLES = ("admin", "designer", "member")
TEMPLATE_EDITOR_ROLES = frozenset({"admin", "designer"})


@dataclass(frozen=True)
class ActingUser:
    user_id: str
    role: str = "member"

    @property
    def is_template_editor(self) -> bool:
        return self.role in TEMPLATE_EDITOR_ROLES


SYSTEM_ACTOR = ActingUser(user_id="system", role="admin")


def actor_name(actor: ActingUser | None) -> str:
    return actor.user_id if actor else "system"


def is_assigned(room_id: str, user_id: str) -> bool:
    return (
        RoomAssignment.query
        .filter_by(room_id=str(room_id), user_id=str(user_id))
        .first()
        is not None
    )


def has_room_access(actor: ActingUser | None, room_id: str) -> bool:
    if actor is None or actor.is_template_editor:
        return True
    return is_assigned(room_id, actor.user_id)


def check_room_access(actor: ActingUser | None, room_id: str, action: str) -> None:
    """Raise PermissionDenied unless the actor may edit the room."""
    if not has_room_access(actor, room_id):
        raise PermissionDenied(actor.user_id, action, room_id)


def check_template_editor(actor: ActingUser | None, action: str) -> None:
    """Raise PermissionDenied unless the actor may author templates."""
    if actor is not None and not actor.is_template_editor:
        raise PermissionDenied(actor.user_id, action)
