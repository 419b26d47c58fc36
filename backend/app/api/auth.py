"""Sign-in and API token management endpoints."""

from __future__ import annotations

import re
from http import HTTPStatus

from flask import Blueprint, current_app, g, jsonify

from ..errors import NotFound
from ..extensions import configured_limit, db, limiter
from ..models.auth import ApiToken, User
from ..models.base import isoformat, utcnow
from ..utils.auth import generate_token, hash_token, require_user
from ..utils.documents import request_object

bp = Blueprint("auth", __name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _serialize(token: ApiToken) -> dict[str, object | None]:
    return {
        "id": token.id,
        "name": token.name,
        "created_at": isoformat(token.created_at),
        "revoked_at": isoformat(token.revoked_at),
    }


def serialize_user(user: User) -> dict[str, object | None]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "image": user.image,
        "createdAt": isoformat(user.created_at),
    }


def _issue_token(user: User, name: str) -> tuple[ApiToken, str]:
    plaintext = generate_token()
    token = ApiToken(user_id=user.id, name=name, token_hash=hash_token(plaintext))
    db.session.add(token)
    return token, plaintext


@bp.post("/auth/sign-in")
@limiter.limit(configured_limit("SIGN_IN_RATE_LIMIT", "20 per minute"))
def sign_in() -> tuple[object, int]:
    """Demo credentials provider: find or create the user by e-mail."""

    payload = request_object()
    email = payload.get("email")
    if not isinstance(email, str) or not _EMAIL_PATTERN.match(email.strip()):
        return jsonify({"error": "a valid email is required"}), HTTPStatus.BAD_REQUEST

    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, name=email.split("@")[0])
        db.session.add(user)
        db.session.flush()
        current_app.logger.info("Created user %s", user.id)

    _, plaintext = _issue_token(user, "sign-in")
    db.session.commit()
    current_app.logger.info("User %s signed in", user.id)
    return jsonify({"user": serialize_user(user), "token": plaintext}), HTTPStatus.OK


@bp.post("/auth/tokens")
@require_user
def create_token() -> tuple[object, int]:
    payload = request_object()
    name = (payload.get("name") or "").strip()

    if not name:
        return jsonify({"error": "name is required"}), HTTPStatus.BAD_REQUEST

    token, plaintext = _issue_token(g.current_user, name)
    db.session.commit()

    response_payload = _serialize(token)
    response_payload["token"] = plaintext
    return jsonify(response_payload), HTTPStatus.CREATED


@bp.get("/auth/tokens")
@require_user
def list_tokens() -> tuple[object, int]:
    tokens = (
        ApiToken.query.filter_by(user_id=g.current_user.id)
        .order_by(ApiToken.created_at.desc())
        .all()
    )
    return jsonify([_serialize(token) for token in tokens]), HTTPStatus.OK


@bp.delete("/auth/tokens/<int:token_id>")
@require_user
def revoke_token(token_id: int) -> tuple[object, int]:
    token = ApiToken.query.filter_by(id=token_id, user_id=g.current_user.id).first()
    if token is None:
        raise NotFound("token not found")
    if token.revoked_at is None:
        token.revoked_at = utcnow()
        db.session.commit()
    return "", HTTPStatus.NO_CONTENT
