"""Metric and metric entry model definitions."""

from __future__ import annotations

from ..extensions import db
from .base import new_id, utcnow

METRIC_TYPES = ("NUMBER", "CURRENCY", "PERCENTAGE", "DURATION", "BOOLEAN", "TEXT")


class Metric(db.Model):
    """A named, typed quantity tracked by one user."""

    __tablename__ = "metrics"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    user_id = db.Column(
        db.String(32), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    unit = db.Column(db.String(64), nullable=True)
    type = db.Column(db.Enum(*METRIC_TYPES, name="metric_type"), nullable=False)
    category = db.Column(db.String(120), nullable=True)
    target = db.Column(db.Float, nullable=True)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    entries = db.relationship(
        "MetricEntry",
        back_populates="metric",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<Metric {self.name!r}>"


class MetricEntry(db.Model):
    """One time-stamped observation of a metric."""

    __tablename__ = "metric_entries"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    metric_id = db.Column(
        db.String(32), db.ForeignKey("metrics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = db.Column(db.String(32), db.ForeignKey("users.id"), nullable=False, index=True)
    value = db.Column(db.Float, nullable=False)
    note = db.Column(db.Text, nullable=True)
    date = db.Column(db.DateTime, default=utcnow, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    metric = db.relationship("Metric", back_populates="entries")

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<MetricEntry {self.metric_id}={self.value}>"
