"""Chat-completion clients injected into the application."""

from __future__ import annotations

from typing import Any, Protocol

import requests
from flask import Flask, current_app

from ..errors import ChatClientNotConfigured, UpstreamFailure

EMPTY_REPLY = "I could not generate a response."


class ChatClient(Protocol):
    def generate_reply(self, messages: list[dict[str, str]]) -> str:
        """Return the assistant reply for ``messages``."""


class NullChatClient:
    """Stands in for the real client when no credential is configured."""

    def generate_reply(self, messages: list[dict[str, str]]) -> str:
        raise ChatClientNotConfigured()


class OpenAIChatClient:
    """Client for an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/chat/completions"
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.session = session or requests.Session()

    def generate_reply(self, messages: list[dict[str, str]]) -> str:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        try:
            response = self.session.post(
                self.url,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise UpstreamFailure(f"chat completion request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamFailure("chat completion returned invalid JSON") from exc

        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        return content or EMPTY_REPLY


def init_chat_client(app: Flask) -> None:
    """Install the chat client matching the configured credential."""

    api_key = app.config.get("OPENAI_API_KEY") or ""
    if not api_key:
        app.logger.info("OPENAI_API_KEY not configured; assistant replies use the fallback text")
        app.extensions["chat_client"] = NullChatClient()
        return
    app.extensions["chat_client"] = OpenAIChatClient(
        api_key,
        model=app.config.get("OPENAI_MODEL", "gpt-4o-mini"),
        base_url=app.config.get("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        timeout=float(app.config.get("OPENAI_TIMEOUT", 30)),
    )


def get_chat_client() -> ChatClient:
    return current_app.extensions["chat_client"]
