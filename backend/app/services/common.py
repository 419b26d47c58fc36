"""Validation helpers and the partial-update sentinel shared by the stores."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any


class _Unset:
    """Marker for a partial-update field that was not supplied."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def is_set(value: Any) -> bool:
    return value is not UNSET


def field_from(payload: dict[str, Any], *keys: str) -> Any:
    """Return the first of ``keys`` present in ``payload`` or :data:`UNSET`."""

    for key in keys:
        if key in payload:
            return payload[key]
    return UNSET


def normalize_name(value: Any, errors: list[str], field: str = "name") -> str:
    if not isinstance(value, str) or not value.strip():
        errors.append(f"{field} is required")
        return ""
    name = value.strip()
    if len(name) > 255:
        errors.append(f"{field} must be at most 255 characters")
    return name


def normalize_optional_text(value: Any, errors: list[str], field: str) -> str | None:
    """Empty strings and ``None`` both clear an optional text column."""

    if value is None:
        return None
    if not isinstance(value, str):
        errors.append(f"{field} must be a string")
        return None
    stripped = value.strip()
    return stripped or None


def normalize_choice(value: Any, choices: tuple[str, ...], errors: list[str], field: str) -> str:
    if not isinstance(value, str) or value.strip().upper() not in choices:
        errors.append(f"{field} must be one of {', '.join(choices)}")
        return ""
    return value.strip().upper()


def coerce_number(value: Any, errors: list[str], field: str) -> float | None:
    """Coerce numbers and numeric strings to ``float``; booleans are rejected."""

    if isinstance(value, bool) or value is None:
        errors.append(f"{field} must be a number")
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            errors.append(f"{field} must be a number")
            return None
    else:
        errors.append(f"{field} must be a number")
        return None
    if not math.isfinite(number):
        errors.append(f"{field} must be a finite number")
        return None
    return number


def normalize_optional_number(value: Any, errors: list[str], field: str) -> float | None:
    if value is None or value == "":
        return None
    return coerce_number(value, errors, field)


def normalize_boolean(value: Any, errors: list[str], field: str) -> bool:
    if not isinstance(value, bool):
        errors.append(f"{field} must be a boolean")
        return False
    return value


def parse_timestamp(value: Any, errors: list[str], field: str = "date") -> datetime | None:
    """Parse ISO-8601 text or a datetime into naive UTC."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            errors.append(f"{field} must be an ISO-8601 timestamp")
            return None
    else:
        errors.append(f"{field} must be an ISO-8601 timestamp")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def clamp_limit(value: Any, default: int, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return min(value, maximum)
