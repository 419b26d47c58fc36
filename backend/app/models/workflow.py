"""Workflow and workflow run model definitions."""

from __future__ import annotations

from typing import Any

from ..extensions import db
from ..utils.documents import dump_document, load_column
from .base import new_id, utcnow

TRIGGER_KINDS = ("CRON", "WEBHOOK", "MANUAL", "EVENT")

RUN_RUNNING = "RUNNING"
RUN_COMPLETED = "COMPLETED"
RUN_FAILED = "FAILED"
RUN_STATUSES = (RUN_RUNNING, RUN_COMPLETED, RUN_FAILED)
TERMINAL_STATUSES = frozenset({RUN_COMPLETED, RUN_FAILED})


class Workflow(db.Model):
    """A named automation unit: a trigger kind and an ordered action list."""

    __tablename__ = "workflows"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    user_id = db.Column(
        db.String(32), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    trigger = db.Column(db.Enum(*TRIGGER_KINDS, name="workflow_trigger"), nullable=False)
    trigger_config_json = db.Column(db.Text, nullable=True)
    actions_json = db.Column(db.Text, nullable=False, default="[]")
    is_enabled = db.Column(db.Boolean, nullable=False, default=True)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    runs = db.relationship(
        "WorkflowRun",
        back_populates="workflow",
        cascade="all, delete-orphan",
        lazy="select",
    )

    @property
    def actions(self) -> list[Any]:
        actions = load_column(self.actions_json, default=[])
        return actions if isinstance(actions, list) else []

    @actions.setter
    def actions(self, value: list[Any]) -> None:
        self.actions_json = dump_document(list(value))

    @property
    def trigger_config(self) -> Any:
        if self.trigger_config_json is None:
            return None
        return load_column(self.trigger_config_json)

    @trigger_config.setter
    def trigger_config(self, value: Any) -> None:
        self.trigger_config_json = None if value is None else dump_document(value)

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<Workflow {self.name!r}>"


class WorkflowRun(db.Model):
    """One execution attempt of a workflow."""

    __tablename__ = "workflow_runs"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    workflow_id = db.Column(
        db.String(32), db.ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False, index=True)
    status = db.Column(
        db.Enum(*RUN_STATUSES, name="workflow_run_status"), nullable=False, default=RUN_RUNNING
    )
    started_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    input_json = db.Column(db.Text, nullable=True)
    output_json = db.Column(db.Text, nullable=True)
    error = db.Column(db.Text, nullable=True)

    workflow = db.relationship("Workflow", back_populates="runs")
    logs = db.relationship(
        "RunLog",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="RunLog.id",
        lazy="select",
    )

    @property
    def input(self) -> Any:
        return None if self.input_json is None else load_column(self.input_json)

    @input.setter
    def input(self, value: Any) -> None:
        self.input_json = None if value is None else dump_document(value)

    @property
    def output(self) -> Any:
        return None if self.output_json is None else load_column(self.output_json)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<WorkflowRun {self.id} {self.status}>"
