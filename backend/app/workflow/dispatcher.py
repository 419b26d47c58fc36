"""Trigger dispatcher resolving manual, webhook and cron triggers to runs."""
from __future__ import annotations

from typing import Any

from flask import current_app

from ..errors import NotFound
from ..extensions import db
from ..models.logs import RunLog
from ..models.workflow import RUN_RUNNING, Workflow, WorkflowRun
from ..utils.documents import parse_payload
from ..utils.ownership import get_owned_or_404
from .runner import ORIGIN_CRON, ORIGIN_MANUAL, ORIGIN_WEBHOOK, execute_run


def open_run(workflow: Workflow, origin: str, payload: Any = None) -> WorkflowRun:
    """Create the RUNNING row and commit it before any action executes."""

    run = WorkflowRun(workflow_id=workflow.id, user_id=workflow.user_id, status=RUN_RUNNING)
    run.input = payload
    db.session.add(run)
    db.session.flush()
    db.session.add(
        RunLog(
            run_id=run.id,
            user_id=workflow.user_id,
            source="dispatch",
            message=f"workflow {workflow.name} dispatched via {origin}",
        )
    )
    db.session.commit()
    current_app.logger.info("Workflow %s dispatched via %s as run %s", workflow.id, origin, run.id)
    return run


def _dispatch(workflow: Workflow, origin: str, payload: Any = None) -> WorkflowRun:
    run = open_run(workflow, origin, payload)
    return execute_run(run, workflow, origin)


def _find_triggerable(workflow_id: str, trigger: str) -> Workflow:
    """Resolve an unauthenticated trigger.

    Absent, disabled, archived and wrong-kind workflows are all reported as
    the same :class:`NotFound`.
    """

    workflow = Workflow.query.filter_by(
        id=workflow_id, trigger=trigger, is_enabled=True, is_archived=False
    ).first()
    if workflow is None:
        current_app.logger.warning(
            "No enabled %s workflow found for id %s", trigger.lower(), workflow_id
        )
        raise NotFound("workflow not found")
    return workflow


def dispatch_manual(workflow_id: str, caller_user_id: str | None) -> WorkflowRun:
    """Run a workflow on behalf of its owner, regardless of ``is_enabled``."""

    workflow = get_owned_or_404(Workflow, workflow_id, caller_user_id, "workflow")
    return _dispatch(workflow, ORIGIN_MANUAL)


def dispatch_webhook(workflow_id: str, raw_body: str | bytes | None) -> WorkflowRun:
    workflow = _find_triggerable(workflow_id, "WEBHOOK")
    payload = parse_payload(raw_body)
    return _dispatch(workflow, ORIGIN_WEBHOOK, payload)


def dispatch_cron(workflow_id: str) -> WorkflowRun:
    """Entry point for an external scheduler's tick."""

    workflow = _find_triggerable(workflow_id, "CRON")
    return _dispatch(workflow, ORIGIN_CRON)
