"""Assistant conversation models."""

from __future__ import annotations

from ..extensions import db
from .base import new_id, utcnow

MESSAGE_ROLES = ("USER", "ASSISTANT", "SYSTEM")


class ChatConversation(db.Model):
    """A conversation with the assistant; owns an ordered list of messages."""

    __tablename__ = "chat_conversations"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    user_id = db.Column(
        db.String(32), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = db.Column(db.String(255), nullable=False, default="New Conversation")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    messages = db.relationship(
        "ChatMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ChatMessage.id",
        lazy="select",
    )


class ChatMessage(db.Model):
    """Append-only message; insertion order is conversation order."""

    __tablename__ = "chat_messages"

    id = db.Column(db.Integer, primary_key=True)
    conversation_id = db.Column(
        db.String(32),
        db.ForeignKey("chat_conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = db.Column(db.Enum(*MESSAGE_ROLES, name="chat_role"), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    conversation = db.relationship("ChatConversation", back_populates="messages")
