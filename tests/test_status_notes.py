"""
Tests: Status & Notes Tracker.
"""

import pytest

from ffe_tracker.core.exceptions import NotFoundError, ParentNotVisibleError, ValidationError
from ffe_tracker.models.audit import FFEChangeLog
from ffe_tracker.models.room import ITEM_STATUSES, RoomFFEItem
from ffe_tracker.services.status_service import set_notes, set_status
from ffe_tracker.services.visibility_service import set_visibility


def _toilet(room_id):
    return RoomFFEItem.query.filter_by(room_id=room_id, name="Toilet").one()


@pytest.mark.parametrize("start, target", [
    ("PENDING", "COMPLETED"),
    ("COMPLETED", "PENDING"),
    ("UNDECIDED", "NOT_APPLICABLE"),
    ("NOT_APPLICABLE", "UNDECIDED"),
])
def test_any_status_transition_is_allowed(room, start, target):
    item_id = _toilet(room).id
    set_status(item_id, start)
    assert set_status(item_id, target)["status"] == target


def test_status_is_case_insensitive(room):
    assert set_status(_toilet(room).id, "completed")["status"] == "COMPLETED"


def test_unknown_status_is_rejected(room):
    with pytest.raises(ValidationError):
        set_status(_toilet(room).id, "ORDERED")


def test_completed_stamps_and_clears_completion(room):
    item_id = _toilet(room).id

    done = set_status(item_id, "COMPLETED")
    assert done["completed_at"] is not None
    assert done["completed_by"] == "system"

    reopened = set_status(item_id, "UNDECIDED")
    assert reopened["completed_at"] is None
    assert reopened["completed_by"] is None


def test_status_on_hidden_item_is_rejected(room):
    item_id = _toilet(room).id
    set_visibility(item_id, False)
    with pytest.raises(ParentNotVisibleError):
        set_status(item_id, "COMPLETED")
    assert _toilet(room).status == "PENDING"


def test_notes_allowed_on_hidden_item(room):
    item_id = _toilet(room).id
    set_visibility(item_id, False)

    result = set_notes(item_id, "Removed: owner supplies own fixture")

    assert result["notes"] == "Removed: owner supplies own fixture"
    assert result["visible"] is False
    assert result["status"] == "PENDING"


def test_none_notes_are_stored_as_empty(room):
    item_id = _toilet(room).id
    set_notes(item_id, "temp")
    assert set_notes(item_id, None)["notes"] == ""


def test_notes_must_be_text(room):
    with pytest.raises(ValidationError):
        set_notes(_toilet(room).id, 42)


def test_status_change_is_logged(room):
    item_id = _toilet(room).id
    set_status(item_id, "UNDECIDED")

    log = FFEChangeLog.query.filter_by(action="item.status").one()
    assert (log.old_value, log.new_value) == ("PENDING", "UNDECIDED")


def test_unchanged_status_writes_no_log(room):
    set_status(_toilet(room).id, "PENDING")
    assert FFEChangeLog.query.filter_by(action="item.status").count() == 0


def test_status_unknown_item():
    with pytest.raises(NotFoundError):
        set_status(777, "COMPLETED")


def test_status_enum_is_closed():
    assert ITEM_STATUSES == ("PENDING", "UNDECIDED", "COMPLETED", "NOT_APPLICABLE")
