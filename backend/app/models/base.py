"""Column defaults shared by the models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""

    return datetime.now(UTC).replace(tzinfo=None)


def new_id() -> str:
    """Return a new opaque identifier."""

    return uuid.uuid4().hex


def isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat() + "Z"
