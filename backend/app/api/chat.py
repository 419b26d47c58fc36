"""REST endpoints for assistant conversations."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from flask import Blueprint, current_app, jsonify

from ..assistant import chat as service
from ..errors import UpstreamFailure
from ..extensions import configured_limit, db, limiter
from ..models.base import isoformat
from ..models.chat import ChatConversation, ChatMessage
from ..utils.auth import current_user_id, require_user
from ..utils.documents import request_object

bp = Blueprint("chat", __name__)


def _serialize_message(message: ChatMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "role": message.role,
        "content": message.content,
        "createdAt": isoformat(message.created_at),
    }


def _serialize_conversation(conversation: ChatConversation) -> dict[str, Any]:
    return {
        "id": conversation.id,
        "title": conversation.title,
        "createdAt": isoformat(conversation.created_at),
        "updatedAt": isoformat(conversation.updated_at),
    }


@bp.post("/chat")
@require_user
@limiter.limit(configured_limit("CHAT_RATE_LIMIT", "30 per minute"))
def send_message() -> tuple[object, int]:
    payload = request_object()
    message = payload.get("message")
    if not message or not isinstance(message, str):
        return jsonify({"error": "message is required"}), HTTPStatus.BAD_REQUEST

    try:
        conversation, reply = service.send_message(
            current_user_id(), message, payload.get("conversationId")
        )
    except UpstreamFailure as exc:
        db.session.rollback()
        current_app.logger.exception("Assistant reply failed")
        return jsonify({"error": exc.message}), HTTPStatus.INTERNAL_SERVER_ERROR

    return jsonify({"conversationId": conversation.id, "message": reply}), HTTPStatus.OK


@bp.get("/chat/conversations")
@require_user
def list_conversations() -> tuple[object, int]:
    items = []
    for conversation, last_message in service.list_conversations(current_user_id()):
        data = _serialize_conversation(conversation)
        data["lastMessage"] = _serialize_message(last_message) if last_message else None
        items.append(data)
    return jsonify(items), HTTPStatus.OK


@bp.get("/chat/conversations/<conversation_id>")
@require_user
def get_conversation(conversation_id: str) -> tuple[object, int]:
    conversation = service.get_conversation(current_user_id(), conversation_id)
    data = _serialize_conversation(conversation)
    data["messages"] = [_serialize_message(message) for message in conversation.messages]
    return jsonify(data), HTTPStatus.OK


@bp.patch("/chat/conversations/<conversation_id>")
@require_user
def rename_conversation(conversation_id: str) -> tuple[object, int]:
    payload = request_object()
    conversation = service.rename_conversation(
        current_user_id(), conversation_id, payload.get("title")
    )
    return jsonify(_serialize_conversation(conversation)), HTTPStatus.OK


@bp.delete("/chat/conversations/<conversation_id>")
@require_user
def delete_conversation(conversation_id: str) -> tuple[object, int]:
    service.delete_conversation(current_user_id(), conversation_id)
    return "", HTTPStatus.NO_CONTENT
