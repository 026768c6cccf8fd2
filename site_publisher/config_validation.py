"""Shared configuration validation helpers."""

from __future__ import annotations

import re

_TARGET_ID_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")


def require_positive_int(value: int, field_name: str) -> int:
    """Validate a positive integer input and return it."""
    if value <= 0:
        raise ValueError(f"{field_name} must be greater than zero.")
    return value


def require_positive_float(value: float, field_name: str) -> float:
    """Validate a positive float input and return it."""
    if value <= 0:
        raise ValueError(f"{field_name} must be greater than zero.")
    return value


def validate_target_id(value: str) -> str:
    """Validate a deployment target identifier (lowercase slug)."""
    cleaned = value.strip()
    if not _TARGET_ID_PATTERN.fullmatch(cleaned):
        raise ValueError(
            f"Invalid deployment target id '{value}'. Use lowercase letters, digits, '-' or '_'."
        )
    return cleaned


def is_blank(value: object) -> bool:
    """Return whether a settings value counts as missing."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False
