"""Fetch-and-authorize guard applied by every owner-scoped operation."""

from __future__ import annotations

from typing import Any, TypeVar

from ..errors import NotFound, Unauthorized

TModel = TypeVar("TModel")


def require_caller(user_id: str | None) -> str:
    """Refuse before touching storage when there is no caller identity."""

    if not user_id:
        raise Unauthorized()
    return user_id


def get_owned_or_404(model: type[TModel], entity_id: Any, user_id: str | None, label: str) -> TModel:
    """Return the row with ``entity_id`` owned by ``user_id``.

    Absent rows and rows owned by another user raise the same
    :class:`NotFound` so that foreign ids are not disclosed.
    """

    caller = require_caller(user_id)
    entity = model.query.filter_by(id=entity_id, user_id=caller).first()  # type: ignore[attr-defined]
    if entity is None:
        raise NotFound(f"{label} not found")
    return entity
