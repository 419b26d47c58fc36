"""Helper utilities for bearer token based authentication."""

from __future__ import annotations

import functools
import hashlib
import secrets
from collections.abc import Callable
from http import HTTPStatus
from typing import Any, TypeVar, cast

from flask import g, jsonify, request

from ..errors import Unauthorized
from ..models.auth import ApiToken, User

TCallable = TypeVar("TCallable", bound=Callable[..., Any])


def hash_token(token: str) -> str:
    """Return a SHA-256 hash for the given token."""

    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_token() -> str:
    """Generate a secure random token string."""

    return secrets.token_urlsafe(32)


def _extract_bearer_token() -> str | None:
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer" or not value:
        return None
    return value.strip()


def _find_token(token_hash: str) -> ApiToken | None:
    return ApiToken.query.filter_by(token_hash=token_hash).first()


def _unauthorized(message: str):
    response = jsonify({"error": message})
    response.status_code = HTTPStatus.UNAUTHORIZED
    response.headers["WWW-Authenticate"] = "Bearer"
    return response


def require_user(func: TCallable) -> TCallable:
    """Decorator resolving the bearer token to ``g.current_user``."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token_value = _extract_bearer_token()
        if not token_value:
            return _unauthorized("missing bearer token")

        token_hash = hash_token(token_value)
        api_token = _find_token(token_hash)
        if api_token is None:
            return _unauthorized("invalid token")

        if not api_token.is_active():
            return _unauthorized("token revoked")

        g.api_token = api_token
        g.current_user = api_token.user

        return func(*args, **kwargs)

    return cast(TCallable, wrapper)


def current_user_id() -> str:
    """Return the authenticated caller's id or raise :class:`Unauthorized`."""

    user: User | None = getattr(g, "current_user", None)
    if user is None:
        raise Unauthorized()
    return user.id
