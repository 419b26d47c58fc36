"""Summary counts for the dashboard overview."""

from __future__ import annotations

from datetime import datetime, time
from http import HTTPStatus

from flask import Blueprint, jsonify

from ..models.base import utcnow
from ..models.metric import Metric, MetricEntry
from ..models.workflow import Workflow, WorkflowRun
from ..services.workflows import list_runs
from ..utils.auth import current_user_id, require_user
from .workflow import serialize_run

bp = Blueprint("dashboard", __name__)

RECENT_RUNS = 5


@bp.get("/summary")
@require_user
def summary() -> tuple[object, int]:
    user_id = current_user_id()
    start_of_day = datetime.combine(utcnow().date(), time.min)

    active_workflows = Workflow.query.filter_by(user_id=user_id, is_archived=False)
    payload = {
        "activeMetrics": Metric.query.filter_by(user_id=user_id, is_archived=False).count(),
        "activeWorkflows": active_workflows.count(),
        "enabledWorkflows": active_workflows.filter_by(is_enabled=True).count(),
        "entriesToday": MetricEntry.query.filter_by(user_id=user_id)
        .filter(MetricEntry.created_at >= start_of_day)
        .count(),
        "runsToday": WorkflowRun.query.filter_by(user_id=user_id)
        .filter(WorkflowRun.started_at >= start_of_day)
        .count(),
        "recentRuns": [serialize_run(run) for run in list_runs(user_id, limit=RECENT_RUNS)],
    }
    return jsonify(payload), HTTPStatus.OK
