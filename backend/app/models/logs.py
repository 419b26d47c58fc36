"""Run log model definition."""

from __future__ import annotations

from ..extensions import db
from .base import utcnow

RUN_LOG_SOURCES = ("dispatch", "action")


class RunLog(db.Model):
    """Diagnostic line recorded while a workflow run executes."""

    __tablename__ = "run_logs"

    id = db.Column(db.Integer, primary_key=True)
    run_id = db.Column(
        db.String(32),
        db.ForeignKey("workflow_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False, index=True)
    source = db.Column(db.Enum(*RUN_LOG_SOURCES, name="runlog_source"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    run = db.relationship("WorkflowRun", back_populates="logs")

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<RunLog {self.id} from {self.source}>"
