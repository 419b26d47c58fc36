"""User and authentication related database models."""

from __future__ import annotations

from ..extensions import db
from .base import new_id, utcnow


class User(db.Model):
    """Identity anchor owning every other entity."""

    __tablename__ = "users"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=True)
    image = db.Column(db.String(1024), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    tokens = db.relationship(
        "ApiToken", back_populates="user", cascade="all, delete-orphan", lazy="select"
    )

    def __repr__(self) -> str:  # pragma: no cover - repr not critical for tests
        return f"<User {self.email!r}>"


class ApiToken(db.Model):
    """API token used for authenticating requests on behalf of a user."""

    __tablename__ = "api_tokens"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.String(32), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = db.Column(db.String(120), nullable=False)
    token_hash = db.Column(db.String(64), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    revoked_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", back_populates="tokens")

    def is_active(self) -> bool:
        """Return whether the token is still active."""

        return self.revoked_at is None
