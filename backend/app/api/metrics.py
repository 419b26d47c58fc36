"""REST endpoints for metrics and their entries."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, jsonify, request

from ..models.base import isoformat
from ..models.metric import Metric, MetricEntry
from ..services import metrics as store
from ..services.common import clamp_limit
from ..utils.auth import current_user_id, require_user
from ..utils.documents import request_object

bp = Blueprint("metrics", __name__)

MAX_ENTRY_LIMIT = 100


def _serialize_entry(entry: MetricEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "metricId": entry.metric_id,
        "value": entry.value,
        "note": entry.note,
        "date": isoformat(entry.date),
        "createdAt": isoformat(entry.created_at),
    }


def _serialize_metric(metric: Metric, entries: list[MetricEntry] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": metric.id,
        "name": metric.name,
        "description": metric.description,
        "unit": metric.unit,
        "type": metric.type,
        "category": metric.category,
        "target": metric.target,
        "isArchived": metric.is_archived,
        "createdAt": isoformat(metric.created_at),
        "updatedAt": isoformat(metric.updated_at),
    }
    if entries is not None:
        payload["entries"] = [_serialize_entry(entry) for entry in entries]
        payload["trend"] = store.compute_trend(entries)
    return payload


@bp.post("/metrics")
@require_user
def create_metric() -> tuple[object, int]:
    payload = request_object()
    metric = store.create_metric(
        current_user_id(),
        name=payload.get("name"),
        type=payload.get("type"),
        description=payload.get("description"),
        unit=payload.get("unit"),
        category=payload.get("category"),
        target=payload.get("target"),
    )
    return jsonify(_serialize_metric(metric, [])), HTTPStatus.CREATED


@bp.get("/metrics")
@require_user
def list_metrics() -> tuple[object, int]:
    entry_limit = clamp_limit(
        request.args.get("entries", type=int), store.DEFAULT_ENTRY_LIMIT, MAX_ENTRY_LIMIT
    )
    snapshots = store.list_active_metrics(current_user_id(), entry_limit)
    return (
        jsonify([_serialize_metric(item.metric, item.entries) for item in snapshots]),
        HTTPStatus.OK,
    )


@bp.get("/metrics/<metric_id>")
@require_user
def get_metric(metric_id: str) -> tuple[object, int]:
    metric = store.get_metric(current_user_id(), metric_id)
    entries = store.get_entry_history(current_user_id(), metric.id, store.DEFAULT_ENTRY_LIMIT)
    return jsonify(_serialize_metric(metric, entries)), HTTPStatus.OK


@bp.patch("/metrics/<metric_id>")
@require_user
def update_metric(metric_id: str) -> tuple[object, int]:
    payload = request_object()
    metric = store.update_metric(
        current_user_id(), metric_id, store.MetricUpdate.from_payload(payload)
    )
    return jsonify(_serialize_metric(metric)), HTTPStatus.OK


@bp.post("/metrics/<metric_id>/archive")
@require_user
def archive_metric(metric_id: str) -> tuple[object, int]:
    metric = store.archive_metric(current_user_id(), metric_id)
    return jsonify(_serialize_metric(metric)), HTTPStatus.OK


@bp.delete("/metrics/<metric_id>")
@require_user
def delete_metric(metric_id: str) -> tuple[object, int]:
    store.delete_metric(current_user_id(), metric_id)
    return "", HTTPStatus.NO_CONTENT


@bp.post("/metrics/<metric_id>/entries")
@require_user
def log_entry(metric_id: str) -> tuple[object, int]:
    payload = request_object()
    entry = store.log_entry(
        current_user_id(),
        metric_id,
        payload.get("value"),
        note=payload.get("note"),
        date=payload.get("date"),
    )
    return jsonify(_serialize_entry(entry)), HTTPStatus.CREATED


@bp.get("/metrics/<metric_id>/entries")
@require_user
def entry_history(metric_id: str) -> tuple[object, int]:
    limit = clamp_limit(
        request.args.get("limit", type=int), store.DEFAULT_HISTORY_LIMIT, MAX_ENTRY_LIMIT
    )
    entries = store.get_entry_history(current_user_id(), metric_id, limit)
    return jsonify([_serialize_entry(entry) for entry in entries]), HTTPStatus.OK
