"""Workflow store: owner-scoped workflow definitions and their run history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models.base import utcnow
from ..models.workflow import RUN_RUNNING, TRIGGER_KINDS, Workflow, WorkflowRun
from ..utils.documents import MAX_DOCUMENT_BYTES, dump_document, parse_document
from ..utils.ownership import get_owned_or_404, require_caller
from .common import (
    UNSET,
    field_from,
    is_set,
    normalize_boolean,
    normalize_choice,
    normalize_name,
    normalize_optional_text,
)

DEFAULT_RUN_LIMIT = 50

_INVALID = object()


@dataclass(frozen=True)
class WorkflowUpdate:
    """Partial workflow update; fields left as ``UNSET`` stay unchanged."""

    name: Any = UNSET
    description: Any = UNSET
    trigger: Any = UNSET
    trigger_config: Any = UNSET
    actions: Any = UNSET
    is_enabled: Any = UNSET

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> WorkflowUpdate:
        return cls(
            name=field_from(payload, "name"),
            description=field_from(payload, "description"),
            trigger=field_from(payload, "trigger"),
            trigger_config=field_from(payload, "triggerConfig", "trigger_config"),
            actions=field_from(payload, "actions"),
            is_enabled=field_from(payload, "isEnabled", "is_enabled"),
        )


@dataclass
class WorkflowWithLatestRun:
    workflow: Workflow
    latest_run: WorkflowRun | None


def _normalize_trigger_config(value: Any, errors: list[str]) -> Any:
    """Accept a JSON document or its textual form; empty text clears it."""

    if value is None:
        return None
    if isinstance(value, str):
        if not value.strip():
            return None
        parsed = parse_document(value, default=_INVALID)
        if parsed is _INVALID:
            errors.append("triggerConfig must be valid JSON")
            return None
        value = parsed
    try:
        text = dump_document(value)
    except (TypeError, ValueError):
        errors.append("triggerConfig must be serialisable")
        return None
    if len(text.encode("utf-8")) > MAX_DOCUMENT_BYTES:
        errors.append("triggerConfig exceeds the maximum size")
        return None
    return value


def _normalize_actions(value: Any, errors: list[str]) -> list[dict[str, str]]:
    if value is None:
        return []
    if not isinstance(value, list):
        errors.append("actions must be a list")
        return []

    actions: list[dict[str, str]] = []
    for index, action in enumerate(value, start=1):
        if not isinstance(action, dict):
            errors.append(f"actions[{index}] must be an object")
            continue
        action_type = action.get("type")
        message = action.get("message")
        if not isinstance(action_type, str) or not action_type.strip():
            errors.append(f"actions[{index}].type is required")
            continue
        if not isinstance(message, str):
            errors.append(f"actions[{index}].message must be a string")
            continue
        actions.append({"type": action_type.strip(), "message": message})
    return actions


def create_workflow(
    user_id: str | None,
    name: Any,
    trigger: Any,
    description: Any = None,
    trigger_config: Any = None,
    actions: Any = None,
) -> Workflow:
    caller = require_caller(user_id)
    errors: list[str] = []
    normalized_name = normalize_name(name, errors)
    normalized_trigger = normalize_choice(trigger, TRIGGER_KINDS, errors, "trigger")
    normalized_description = normalize_optional_text(description, errors, "description")
    normalized_config = _normalize_trigger_config(trigger_config, errors)
    normalized_actions = _normalize_actions(actions, errors)
    if errors:
        raise ValidationError(errors)

    workflow = Workflow(
        user_id=caller,
        name=normalized_name,
        description=normalized_description,
        trigger=normalized_trigger,
        is_enabled=True,
        is_archived=False,
    )
    workflow.trigger_config = normalized_config
    workflow.actions = normalized_actions
    db.session.add(workflow)
    db.session.commit()
    current_app.logger.info("Workflow %s created for user %s", workflow.id, caller)
    return workflow


def get_workflow(user_id: str | None, workflow_id: str) -> Workflow:
    return get_owned_or_404(Workflow, workflow_id, user_id, "workflow")


def update_workflow(user_id: str | None, workflow_id: str, update: WorkflowUpdate) -> Workflow:
    workflow = get_owned_or_404(Workflow, workflow_id, user_id, "workflow")
    errors: list[str] = []
    changes: dict[str, Any] = {}

    if is_set(update.name):
        changes["name"] = normalize_name(update.name, errors)
    if is_set(update.description):
        changes["description"] = normalize_optional_text(update.description, errors, "description")
    if is_set(update.trigger):
        changes["trigger"] = normalize_choice(update.trigger, TRIGGER_KINDS, errors, "trigger")
    if is_set(update.trigger_config):
        changes["trigger_config"] = _normalize_trigger_config(update.trigger_config, errors)
    if is_set(update.actions):
        changes["actions"] = _normalize_actions(update.actions, errors)
    if is_set(update.is_enabled):
        changes["is_enabled"] = normalize_boolean(update.is_enabled, errors, "isEnabled")

    if errors:
        raise ValidationError(errors)

    for column, value in changes.items():
        setattr(workflow, column, value)
    db.session.commit()
    current_app.logger.info(
        "Workflow %s updated (%s)", workflow.id, ", ".join(sorted(changes)) or "no changes"
    )
    return workflow


def toggle_workflow(user_id: str | None, workflow_id: str) -> Workflow:
    workflow = get_owned_or_404(Workflow, workflow_id, user_id, "workflow")
    workflow.is_enabled = not workflow.is_enabled
    db.session.commit()
    current_app.logger.info(
        "Workflow %s %s", workflow.id, "enabled" if workflow.is_enabled else "disabled"
    )
    return workflow


def archive_workflow(user_id: str | None, workflow_id: str) -> Workflow:
    workflow = get_owned_or_404(Workflow, workflow_id, user_id, "workflow")
    workflow.is_archived = True
    db.session.commit()
    current_app.logger.info("Workflow %s archived", workflow.id)
    return workflow


def delete_workflow(user_id: str | None, workflow_id: str) -> None:
    workflow = get_owned_or_404(Workflow, workflow_id, user_id, "workflow")
    db.session.delete(workflow)
    db.session.commit()
    current_app.logger.info("Workflow %s deleted", workflow_id)


def _latest_run(workflow_id: str) -> WorkflowRun | None:
    return (
        WorkflowRun.query.filter_by(workflow_id=workflow_id)
        .order_by(WorkflowRun.started_at.desc())
        .first()
    )


def list_active_workflows(user_id: str | None) -> list[WorkflowWithLatestRun]:
    caller = require_caller(user_id)
    workflows = (
        Workflow.query.filter_by(user_id=caller, is_archived=False)
        .order_by(Workflow.created_at.desc())
        .all()
    )
    return [WorkflowWithLatestRun(workflow, _latest_run(workflow.id)) for workflow in workflows]


def list_runs(
    user_id: str | None, workflow_id: str | None = None, limit: int = DEFAULT_RUN_LIMIT
) -> list[WorkflowRun]:
    caller = require_caller(user_id)
    query = WorkflowRun.query.filter_by(user_id=caller)
    if workflow_id is not None:
        workflow = get_owned_or_404(Workflow, workflow_id, caller, "workflow")
        query = query.filter_by(workflow_id=workflow.id)
    return query.order_by(WorkflowRun.started_at.desc()).limit(limit).all()


def get_run(user_id: str | None, run_id: str) -> WorkflowRun:
    return get_owned_or_404(WorkflowRun, run_id, user_id, "run")


def list_stuck_runs(older_than: timedelta) -> list[WorkflowRun]:
    """Runs still RUNNING that were started before ``now - older_than``."""

    cutoff = utcnow() - older_than
    return (
        WorkflowRun.query.filter(WorkflowRun.status == RUN_RUNNING)
        .filter(WorkflowRun.started_at < cutoff)
        .order_by(WorkflowRun.started_at.asc())
        .all()
    )
