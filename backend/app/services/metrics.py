"""Metric store: owner-scoped metric definitions and their entries."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models.base import utcnow
from ..models.metric import METRIC_TYPES, Metric, MetricEntry
from ..utils.ownership import get_owned_or_404, require_caller
from .common import (
    UNSET,
    coerce_number,
    field_from,
    is_set,
    normalize_choice,
    normalize_name,
    normalize_optional_number,
    normalize_optional_text,
    parse_timestamp,
)

DEFAULT_ENTRY_LIMIT = 10
DEFAULT_HISTORY_LIMIT = 30


@dataclass(frozen=True)
class MetricUpdate:
    """Partial metric update; fields left as ``UNSET`` stay unchanged."""

    name: Any = UNSET
    description: Any = UNSET
    unit: Any = UNSET
    type: Any = UNSET
    category: Any = UNSET
    target: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> MetricUpdate:
        return cls(
            name=field_from(payload, "name"),
            description=field_from(payload, "description"),
            unit=field_from(payload, "unit"),
            type=field_from(payload, "type"),
            category=field_from(payload, "category"),
            target=field_from(payload, "target"),
        )


@dataclass
class MetricWithEntries:
    """A metric together with its most recent entries, newest first."""

    metric: Metric
    entries: list[MetricEntry] = field(default_factory=list)

    @property
    def trend(self) -> float | None:
        return compute_trend(self.entries)


def compute_trend(entries: Sequence[Any]) -> float | None:
    """Percent change between the two most recent entries.

    ``entries`` is ordered newest first. Returns ``None`` with fewer than two
    entries and ``0.0`` when the previous value is zero.
    """

    if len(entries) < 2:
        return None
    latest, previous = entries[0].value, entries[1].value
    if previous == 0:
        return 0.0
    return (latest - previous) / previous * 100


def create_metric(
    user_id: str | None,
    name: Any,
    type: Any,
    description: Any = None,
    unit: Any = None,
    category: Any = None,
    target: Any = None,
) -> Metric:
    caller = require_caller(user_id)
    errors: list[str] = []
    metric = Metric(
        user_id=caller,
        name=normalize_name(name, errors),
        type=normalize_choice(type, METRIC_TYPES, errors, "type"),
        description=normalize_optional_text(description, errors, "description"),
        unit=normalize_optional_text(unit, errors, "unit"),
        category=normalize_optional_text(category, errors, "category"),
        target=normalize_optional_number(target, errors, "target"),
        is_archived=False,
    )
    if errors:
        raise ValidationError(errors)

    db.session.add(metric)
    db.session.commit()
    current_app.logger.info("Metric %s created for user %s", metric.id, caller)
    return metric


def get_metric(user_id: str | None, metric_id: str) -> Metric:
    return get_owned_or_404(Metric, metric_id, user_id, "metric")


def update_metric(user_id: str | None, metric_id: str, update: MetricUpdate) -> Metric:
    metric = get_owned_or_404(Metric, metric_id, user_id, "metric")
    errors: list[str] = []
    changes: dict[str, Any] = {}

    if is_set(update.name):
        changes["name"] = normalize_name(update.name, errors)
    if is_set(update.type):
        changes["type"] = normalize_choice(update.type, METRIC_TYPES, errors, "type")
    for column in ("description", "unit", "category"):
        value = getattr(update, column)
        if is_set(value):
            changes[column] = normalize_optional_text(value, errors, column)
    if is_set(update.target):
        changes["target"] = normalize_optional_number(update.target, errors, "target")

    if errors:
        raise ValidationError(errors)

    for column, value in changes.items():
        setattr(metric, column, value)
    db.session.commit()
    current_app.logger.info("Metric %s updated (%s)", metric.id, ", ".join(sorted(changes)) or "no changes")
    return metric


def archive_metric(user_id: str | None, metric_id: str) -> Metric:
    metric = get_owned_or_404(Metric, metric_id, user_id, "metric")
    metric.is_archived = True
    db.session.commit()
    current_app.logger.info("Metric %s archived", metric.id)
    return metric


def delete_metric(user_id: str | None, metric_id: str) -> None:
    metric = get_owned_or_404(Metric, metric_id, user_id, "metric")
    db.session.delete(metric)
    db.session.commit()
    current_app.logger.info("Metric %s deleted", metric_id)


def log_entry(
    user_id: str | None,
    metric_id: str,
    value: Any,
    note: Any = None,
    date: Any = None,
) -> MetricEntry:
    metric = get_owned_or_404(Metric, metric_id, user_id, "metric")
    errors: list[str] = []
    number = coerce_number(value, errors, "value")
    note_text = normalize_optional_text(note, errors, "note")
    entry_date: datetime | None = None
    if date is not None and date != "":
        entry_date = parse_timestamp(date, errors)
    if errors:
        raise ValidationError(errors)

    entry = MetricEntry(
        metric_id=metric.id,
        user_id=metric.user_id,
        value=number,
        note=note_text,
        date=entry_date or utcnow(),
    )
    db.session.add(entry)
    db.session.commit()
    current_app.logger.info("Entry %s logged for metric %s", entry.id, metric.id)
    return entry


def _recent_entries(metric_id: str, limit: int) -> list[MetricEntry]:
    return (
        MetricEntry.query.filter_by(metric_id=metric_id)
        .order_by(MetricEntry.date.desc(), MetricEntry.created_at.desc())
        .limit(limit)
        .all()
    )


def list_active_metrics(user_id: str | None, entry_limit: int = DEFAULT_ENTRY_LIMIT) -> list[MetricWithEntries]:
    caller = require_caller(user_id)
    metrics = (
        Metric.query.filter_by(user_id=caller, is_archived=False)
        .order_by(Metric.created_at.desc())
        .all()
    )
    return [MetricWithEntries(metric, _recent_entries(metric.id, entry_limit)) for metric in metrics]


def get_entry_history(
    user_id: str | None, metric_id: str, limit: int = DEFAULT_HISTORY_LIMIT
) -> list[MetricEntry]:
    metric = get_owned_or_404(Metric, metric_id, user_id, "metric")
    return _recent_entries(metric.id, limit)
