"""Scalar input checks shared by the write paths."""

from __future__ import annotations

from ffe_tracker.core.exceptions import ValidationError


def clean_str(value, field_name: str, *, required: bool, max_len: int = 200) -> str | None:
    """Return ``value`` stripped, or None when blank and optional.

    Anything that is not a string (dicts, lists, numbers) is rejected
    rather than coerced.
    """
    if value is None:
        if required:
            raise ValidationError(f"{field_name} is required", details={field_name: "missing"})
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", details={field_name: "type"})
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{field_name} is required", details={field_name: "empty"})
    if len(value) > max_len:
        raise ValidationError(
            f"{field_name} must be ≤ {max_len} characters", details={field_name: "too_long"},
        )
    return value or None


def require_int(value, field_name: str) -> int:
    # bool is an int subclass; True must not address row 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer", details={field_name: value})
    return value
