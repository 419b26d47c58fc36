"""Workflow runtime executing a workflow's action list against a run."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from flask import current_app

from ..errors import ActionError, RunTransitionError
from ..extensions import db
from ..models.base import utcnow
from ..models.logs import RunLog
from ..models.workflow import RUN_COMPLETED, RUN_FAILED, RUN_RUNNING, Workflow, WorkflowRun
from ..utils.documents import dump_document

ORIGIN_MANUAL = "manual"
ORIGIN_WEBHOOK = "webhook"
ORIGIN_CRON = "cron"

_SUCCESS_MESSAGES = {
    ORIGIN_WEBHOOK: "Webhook processed successfully",
}
_DEFAULT_SUCCESS_MESSAGE = "Workflow completed successfully"


@dataclass
class RunContext:
    """State shared by the actions of one run."""

    run_id: str
    workflow_id: str
    user_id: str
    origin: str
    input: Any = None
    recorded: list[str] = field(default_factory=list)


ActionHandler = Callable[[dict[str, str], RunContext], str]

_ACTION_HANDLERS: dict[str, ActionHandler] = {}


def register_action_handler(action_type: str, handler: ActionHandler) -> None:
    """Register the handler executed for actions of ``action_type``."""

    _ACTION_HANDLERS[action_type] = handler


def unregister_action_handler(action_type: str) -> None:
    _ACTION_HANDLERS.pop(action_type, None)


def _record_message(action: dict[str, str], context: RunContext) -> str:
    return action["message"]


register_action_handler("log", _record_message)


def _persist_run_log(context: RunContext, source: str, message: str) -> None:
    """Stage a run log row; it is committed with the run's terminal state."""

    if not message:
        return
    db.session.add(
        RunLog(run_id=context.run_id, user_id=context.user_id, source=source, message=message)
    )


def _validate_action(index: int, action: Any) -> dict[str, str]:
    if not isinstance(action, dict):
        raise ActionError(f"action {index} is not an object")
    message = action.get("message")
    if not isinstance(message, str):
        raise ActionError(f"action {index} has no message")
    action_type = action.get("type")
    if not isinstance(action_type, str) or not action_type:
        action_type = "log"
    return {"type": action_type, "message": message}


def execute_actions(actions: list[Any], context: RunContext) -> list[str]:
    """Run ``actions`` in order; the first error aborts the whole list."""

    for index, action in enumerate(actions, start=1):
        descriptor = _validate_action(index, action)
        handler = _ACTION_HANDLERS.get(descriptor["type"], _record_message)
        message = handler(descriptor, context)
        context.recorded.append(message)
        _persist_run_log(context, "action", message)
    return context.recorded


def _transition(run: WorkflowRun, status: str, values: dict[str, Any]) -> WorkflowRun:
    """Apply the single terminal transition of ``run``.

    The update is conditional on the stored status still being RUNNING, so
    a second transition changes nothing and raises :class:`RunTransitionError`.
    """

    run_id = run.id
    if run.is_terminal:
        raise RunTransitionError(f"run {run_id} already reached a terminal state")
    updated = (
        WorkflowRun.query.filter_by(id=run_id, status=RUN_RUNNING)
        .update(
            {"status": status, "completed_at": utcnow(), **values},
            synchronize_session=False,
        )
    )
    if updated != 1:
        db.session.rollback()
        raise RunTransitionError(f"run {run_id} already reached a terminal state")
    db.session.commit()
    db.session.refresh(run)
    return run


def complete_run(run: WorkflowRun, output: dict[str, Any]) -> WorkflowRun:
    return _transition(run, RUN_COMPLETED, {"output_json": dump_document(output), "error": None})


def fail_run(run: WorkflowRun, error: str) -> WorkflowRun:
    return _transition(run, RUN_FAILED, {"error": error, "output_json": None})


def _error_text(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


def execute_run(run: WorkflowRun, workflow: Workflow, origin: str = ORIGIN_MANUAL) -> WorkflowRun:
    """Execute ``workflow``'s actions for ``run`` and record the terminal state.

    A failing action is a normal outcome: the run becomes FAILED and the
    exception is not re-raised.
    """

    payload = run.input
    context = RunContext(
        run_id=run.id,
        workflow_id=workflow.id,
        user_id=run.user_id,
        origin=origin,
        input=payload,
    )

    try:
        recorded = execute_actions(workflow.actions, context)
    except Exception as exc:
        message = _error_text(exc)
        current_app.logger.warning("Workflow run %s failed: %s", run.id, message)
        _persist_run_log(context, "dispatch", f"workflow {workflow.name} failed: {message}")
        return fail_run(run, message)

    output: dict[str, Any] = {
        "message": _SUCCESS_MESSAGES.get(origin, _DEFAULT_SUCCESS_MESSAGE),
        "actions": recorded,
    }
    if payload is not None:
        output["input"] = payload
    _persist_run_log(
        context,
        "dispatch",
        f"workflow {workflow.name} executed {len(recorded)} action(s) via {origin}",
    )
    current_app.logger.info("Workflow run %s completed", run.id)
    return complete_run(run, output)
