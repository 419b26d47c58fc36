"""Helpers for the JSON documents stored as text columns."""

from __future__ import annotations

import json
from typing import Any

from flask import request

from ..errors import ValidationError

MAX_DOCUMENT_BYTES = 500_000


def parse_document(text: str | bytes | None, default: Any = None) -> Any:
    """Parse JSON text, returning ``default`` (an empty object) on failure."""

    fallback = {} if default is None else default
    if text is None:
        return fallback
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError:
            return fallback
    if not text.strip():
        return fallback
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return fallback


def parse_payload(text: str | bytes | None) -> dict[str, Any]:
    """Parse an inbound request body into an object document.

    Unparseable bodies become ``{}``; any other JSON value is wrapped as
    ``{"data": value}``.
    """

    document = parse_document(text)
    if isinstance(document, dict):
        return document
    return {"data": document}


def dump_document(value: Any) -> str:
    """Serialise a document back to its textual form."""

    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def load_column(text: str | None, default: Any = None) -> Any:
    """Load a stored document column, tolerating ``NULL`` and bad data."""

    if text is None:
        return default
    return parse_document(text, default={} if default is None else default)


__all__ = [
    "MAX_DOCUMENT_BYTES",
    "dump_document",
    "load_column",
    "parse_document",
    "parse_payload",
]


def request_object() -> dict[str, Any]:
    """Return the request's JSON body, which must be an object when present."""

    payload = request.get_json(force=True, silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")
    return payload
