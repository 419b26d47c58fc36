"""Error taxonomy shared by the services and the HTTP layer."""

from __future__ import annotations

from http import HTTPStatus

from flask import Flask, jsonify
from werkzeug.exceptions import InternalServerError


class LifeOSError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"error": self.message}


class Unauthorized(LifeOSError):
    """No authenticated caller identity is available."""

    status = HTTPStatus.UNAUTHORIZED

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)


class NotFound(LifeOSError):
    """The row is absent or owned by somebody else."""

    status = HTTPStatus.NOT_FOUND


class ValidationError(LifeOSError):
    """Malformed input; carries every problem found."""

    status = HTTPStatus.BAD_REQUEST

    def __init__(self, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))

    def to_dict(self) -> dict[str, object]:
        return {"error": self.message, "errors": self.errors}


class UpstreamFailure(LifeOSError):
    """The chat-completion dependency failed or is unreachable."""


class ChatClientNotConfigured(UpstreamFailure):
    """No chat-completion credential is configured."""

    def __init__(self, message: str = "chat client is not configured") -> None:
        super().__init__(message)


class ActionError(Exception):
    """Raised by a workflow action; recorded on the run as FAILED."""


class RunTransitionError(Exception):
    """Raised when a run that already reached a terminal state is transitioned again."""


def register_error_handlers(app: Flask) -> None:
    """Render :class:`LifeOSError` subclasses as JSON error payloads."""

    @app.errorhandler(LifeOSError)
    def _handle_lifeos_error(exc: LifeOSError):
        return jsonify(exc.to_dict()), exc.status

    @app.errorhandler(InternalServerError)
    def _handle_internal_error(exc: InternalServerError):
        original = getattr(exc, "original_exception", None)
        message = str(original) if original is not None and str(original) else "internal server error"
        app.logger.error("Unhandled error: %s", message)
        return jsonify({"error": message}), HTTPStatus.INTERNAL_SERVER_ERROR


__all__ = [
    "ActionError",
    "ChatClientNotConfigured",
    "LifeOSError",
    "NotFound",
    "RunTransitionError",
    "Unauthorized",
    "UpstreamFailure",
    "ValidationError",
    "register_error_handlers",
]
