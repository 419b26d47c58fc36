"""API endpoints exposing the caller's workflow run log entries."""

from __future__ import annotations

import json
from http import HTTPStatus

from flask import Blueprint, Response, jsonify, request

from ..models.base import isoformat
from ..models.logs import RUN_LOG_SOURCES, RunLog
from ..utils.auth import current_user_id, require_user

bp = Blueprint("logs", __name__)


def _serialize_entry(entry: RunLog) -> dict[str, object]:
    return {
        "id": entry.id,
        "runId": entry.run_id,
        "source": entry.source,
        "message": entry.message,
        "createdAt": isoformat(entry.created_at),
    }


def _user_query(source: str | None):
    query = RunLog.query.filter_by(user_id=current_user_id())
    if source:
        if source not in RUN_LOG_SOURCES:
            return None
        query = query.filter_by(source=source)
    return query


@bp.get("/logs")
@require_user
def get_logs() -> tuple[object, int]:
    source = request.args.get("source")
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 200))

    query = _user_query(source)
    if query is None:
        return jsonify({"error": "invalid source"}), HTTPStatus.BAD_REQUEST

    entries = query.order_by(RunLog.id.desc()).limit(limit).all()
    return jsonify([_serialize_entry(entry) for entry in entries]), HTTPStatus.OK


@bp.get("/logs/download")
@require_user
def download_logs() -> Response | tuple[object, int]:
    source = request.args.get("source")
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 1000))

    query = _user_query(source)
    if query is None:
        return jsonify({"error": "invalid source"}), HTTPStatus.BAD_REQUEST

    entries = query.order_by(RunLog.id.desc()).limit(limit).all()
    lines = [json.dumps(_serialize_entry(entry)) for entry in reversed(entries)]
    response = Response("\n".join(lines), mimetype="application/x-ndjson")
    response.headers["Content-Disposition"] = "attachment; filename=run-logs.ndjson"
    return response
