"""Profile settings for the signed-in user."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, g, jsonify

from ..extensions import db
from ..utils.auth import require_user
from ..utils.documents import request_object
from .auth import serialize_user

bp = Blueprint("settings", __name__)


@bp.get("/settings/profile")
@require_user
def get_profile() -> tuple[object, int]:
    return jsonify(serialize_user(g.current_user)), HTTPStatus.OK


@bp.patch("/settings/profile")
@require_user
def update_profile() -> tuple[object, int]:
    payload = request_object()
    user = g.current_user

    if "name" in payload:
        name = payload["name"]
        if name is not None and not isinstance(name, str):
            return jsonify({"error": "name must be a string"}), HTTPStatus.BAD_REQUEST
        user.name = (name or "").strip() or None

    db.session.commit()
    current_app.logger.info("Profile of user %s updated", user.id)
    return jsonify(serialize_user(user)), HTTPStatus.OK
