"""REST API endpoints for workflows, manual runs and run history."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, jsonify, request

from ..models.base import isoformat
from ..models.workflow import Workflow, WorkflowRun
from ..services import workflows as store
from ..services.common import clamp_limit
from ..utils.auth import current_user_id, require_user
from ..utils.documents import request_object
from ..workflow.dispatcher import dispatch_manual

bp = Blueprint("workflows", __name__)

MAX_RUN_LIMIT = 200


def serialize_run(run: WorkflowRun, include_logs: bool = False) -> dict[str, Any]:
    """Return a JSON serialisable representation of a workflow run."""

    payload: dict[str, Any] = {
        "id": run.id,
        "workflowId": run.workflow_id,
        "status": run.status,
        "startedAt": isoformat(run.started_at),
        "completedAt": isoformat(run.completed_at),
        "input": run.input,
        "output": run.output,
        "error": run.error,
    }
    if include_logs:
        payload["logs"] = [
            {
                "id": entry.id,
                "source": entry.source,
                "message": entry.message,
                "createdAt": isoformat(entry.created_at),
            }
            for entry in run.logs
        ]
    return payload


def _serialize_workflow(
    workflow: Workflow, latest_run: WorkflowRun | None = None, with_latest: bool = False
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": workflow.id,
        "name": workflow.name,
        "description": workflow.description,
        "trigger": workflow.trigger,
        "triggerConfig": workflow.trigger_config,
        "actions": workflow.actions,
        "isEnabled": workflow.is_enabled,
        "isArchived": workflow.is_archived,
        "createdAt": isoformat(workflow.created_at),
        "updatedAt": isoformat(workflow.updated_at),
    }
    if with_latest:
        payload["latestRun"] = serialize_run(latest_run) if latest_run is not None else None
    return payload


@bp.post("/workflows")
@require_user
def create_workflow() -> tuple[object, int]:
    payload = request_object()
    workflow = store.create_workflow(
        current_user_id(),
        name=payload.get("name"),
        trigger=payload.get("trigger"),
        description=payload.get("description"),
        trigger_config=payload.get("triggerConfig", payload.get("trigger_config")),
        actions=payload.get("actions"),
    )
    return jsonify(_serialize_workflow(workflow)), HTTPStatus.CREATED


@bp.get("/workflows")
@require_user
def list_workflows() -> tuple[object, int]:
    items = store.list_active_workflows(current_user_id())
    return (
        jsonify(
            [_serialize_workflow(item.workflow, item.latest_run, with_latest=True) for item in items]
        ),
        HTTPStatus.OK,
    )


@bp.get("/workflows/<workflow_id>")
@require_user
def get_workflow(workflow_id: str) -> tuple[object, int]:
    workflow = store.get_workflow(current_user_id(), workflow_id)
    return jsonify(_serialize_workflow(workflow)), HTTPStatus.OK


@bp.patch("/workflows/<workflow_id>")
@require_user
def update_workflow(workflow_id: str) -> tuple[object, int]:
    payload = request_object()
    workflow = store.update_workflow(
        current_user_id(), workflow_id, store.WorkflowUpdate.from_payload(payload)
    )
    return jsonify(_serialize_workflow(workflow)), HTTPStatus.OK


@bp.post("/workflows/<workflow_id>/toggle")
@require_user
def toggle_workflow(workflow_id: str) -> tuple[object, int]:
    workflow = store.toggle_workflow(current_user_id(), workflow_id)
    return jsonify(_serialize_workflow(workflow)), HTTPStatus.OK


@bp.post("/workflows/<workflow_id>/archive")
@require_user
def archive_workflow(workflow_id: str) -> tuple[object, int]:
    workflow = store.archive_workflow(current_user_id(), workflow_id)
    return jsonify(_serialize_workflow(workflow)), HTTPStatus.OK


@bp.delete("/workflows/<workflow_id>")
@require_user
def delete_workflow(workflow_id: str) -> tuple[object, int]:
    store.delete_workflow(current_user_id(), workflow_id)
    return "", HTTPStatus.NO_CONTENT


@bp.post("/workflows/<workflow_id>/run")
@require_user
def run_workflow(workflow_id: str) -> tuple[object, int]:
    run = dispatch_manual(workflow_id, current_user_id())
    return jsonify(serialize_run(run)), HTTPStatus.CREATED


@bp.get("/workflows/<workflow_id>/runs")
@require_user
def list_workflow_runs(workflow_id: str) -> tuple[object, int]:
    limit = clamp_limit(request.args.get("limit", type=int), store.DEFAULT_RUN_LIMIT, MAX_RUN_LIMIT)
    runs = store.list_runs(current_user_id(), workflow_id, limit)
    return jsonify([serialize_run(run) for run in runs]), HTTPStatus.OK


@bp.get("/runs")
@require_user
def list_runs() -> tuple[object, int]:
    limit = clamp_limit(request.args.get("limit", type=int), store.DEFAULT_RUN_LIMIT, MAX_RUN_LIMIT)
    runs = store.list_runs(current_user_id(), limit=limit)
    return jsonify([serialize_run(run) for run in runs]), HTTPStatus.OK


@bp.get("/runs/<run_id>")
@require_user
def get_run(run_id: str) -> tuple[object, int]:
    run = store.get_run(current_user_id(), run_id)
    return jsonify(serialize_run(run, include_logs=True)), HTTPStatus.OK
