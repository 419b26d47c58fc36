"""Assistant conversations: history, context and the injected chat client."""

from __future__ import annotations

from typing import Any

from flask import current_app

from ..errors import ChatClientNotConfigured, ValidationError
from ..extensions import db
from ..models.base import utcnow
from ..models.chat import ChatConversation, ChatMessage
from ..utils.ownership import get_owned_or_404, require_caller
from .client import get_chat_client
from .context import build_fallback_reply, build_metrics_context, build_system_prompt

TITLE_LENGTH = 50

_ROLE_NAMES = {"USER": "user", "ASSISTANT": "assistant", "SYSTEM": "system"}


def _history(conversation: ChatConversation | None, limit: int) -> list[dict[str, str]]:
    """Return the ``limit`` most recent stored messages, oldest first."""

    if conversation is None or limit <= 0:
        return []
    recent = (
        ChatMessage.query.filter_by(conversation_id=conversation.id)
        .order_by(ChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {"role": _ROLE_NAMES[message.role], "content": message.content}
        for message in reversed(recent)
    ]


def send_message(
    user_id: str | None, message: Any, conversation_id: str | None = None
) -> tuple[ChatConversation, str]:
    """Send ``message`` to the assistant and persist the exchange.

    The user message and the reply are committed together. When the chat
    client is not configured the reply is the fallback text built from the
    metrics context; any other upstream failure propagates and nothing is
    stored.
    """

    caller = require_caller(user_id)
    if not isinstance(message, str) or not message.strip():
        raise ValidationError("message is required")

    if conversation_id is not None and not isinstance(conversation_id, str):
        raise ValidationError("conversationId must be a string")

    conversation: ChatConversation | None = None
    if conversation_id:
        conversation = get_owned_or_404(ChatConversation, conversation_id, caller, "conversation")

    history_limit = int(current_app.config.get("CHAT_HISTORY_LIMIT", 50))
    entry_limit = int(current_app.config.get("ASSISTANT_ENTRY_LIMIT", 5))

    metrics_context = build_metrics_context(caller, entry_limit)
    messages = [{"role": "system", "content": build_system_prompt(metrics_context)}]
    messages.extend(_history(conversation, history_limit - 1))
    messages.append({"role": "user", "content": message})

    try:
        reply = get_chat_client().generate_reply(messages)
    except ChatClientNotConfigured:
        current_app.logger.warning("Chat client not configured; returning fallback reply")
        reply = build_fallback_reply(metrics_context)

    if conversation is None:
        conversation = ChatConversation(user_id=caller, title=message[:TITLE_LENGTH])
        db.session.add(conversation)
        db.session.flush()
    else:
        conversation.updated_at = utcnow()

    db.session.add(ChatMessage(conversation_id=conversation.id, role="USER", content=message))
    db.session.add(ChatMessage(conversation_id=conversation.id, role="ASSISTANT", content=reply))
    db.session.commit()
    current_app.logger.info("Assistant replied in conversation %s", conversation.id)
    return conversation, reply


def list_conversations(user_id: str | None) -> list[tuple[ChatConversation, ChatMessage | None]]:
    caller = require_caller(user_id)
    conversations = (
        ChatConversation.query.filter_by(user_id=caller)
        .order_by(ChatConversation.updated_at.desc())
        .all()
    )
    result = []
    for conversation in conversations:
        last_message = (
            ChatMessage.query.filter_by(conversation_id=conversation.id)
            .order_by(ChatMessage.id.desc())
            .first()
        )
        result.append((conversation, last_message))
    return result


def get_conversation(user_id: str | None, conversation_id: str) -> ChatConversation:
    return get_owned_or_404(ChatConversation, conversation_id, user_id, "conversation")


def rename_conversation(user_id: str | None, conversation_id: str, title: Any) -> ChatConversation:
    conversation = get_owned_or_404(ChatConversation, conversation_id, user_id, "conversation")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("title is required")
    conversation.title = title.strip()[:255]
    db.session.commit()
    return conversation


def delete_conversation(user_id: str | None, conversation_id: str) -> None:
    conversation = get_owned_or_404(ChatConversation, conversation_id, user_id, "conversation")
    db.session.delete(conversation)
    db.session.commit()
    current_app.logger.info("Conversation %s deleted", conversation_id)
