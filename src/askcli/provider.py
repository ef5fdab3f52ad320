"""Chat-completion client.

Sends the full ordered history and returns exactly one assistant message.
Anything unexpected in the response is reported as a TransportError with the
raw body attached; nothing is retried.
"""

import json
import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from askcli.config import Settings
from askcli.errors import TransportError
from askcli.sessions.manager import Message, Role

logger = logging.getLogger(__name__)


# ── Response Models ────────────────────────────────────

class ResponseMessage(BaseModel):
    role: str
    content: str


class Choice(BaseModel):
    index: int = 0
    message: ResponseMessage
    finish_reason: str | None = None


class ChatCompletion(BaseModel):
    choices: list[Choice]
    model: str | None = None


class ChatClient:
    """Talks to an OpenAI-compatible /chat/completions endpoint.

    Usage:
        client = ChatClient(settings)
        reply = client.send(conversation.messages + [user_message])
    """

    def __init__(self, settings: Settings, http_client: httpx.Client | None = None):
        self.settings = settings
        self._http = http_client

    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=self.settings.timeout)
        return self._http

    def build_payload(self, messages: list[Message]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.settings.model,
            "messages": [m.to_dict() for m in messages],
            "user": self.settings.user,
        }
        # Reasoning models reject these parameters
        if not self.settings.is_reasoning_model():
            payload["max_tokens"] = self.settings.max_tokens
            payload["temperature"] = self.settings.temperature
        return payload

    def send(self, messages: list[Message]) -> Message:
        """Send the conversation and return the assistant's reply."""
        payload = self.build_payload(messages)
        headers = {"Authorization": f"Bearer {self.settings.api_key}"}
        logger.debug(f"POST {self.settings.url} ({len(messages)} messages)")

        try:
            resp = self._client().post(self.settings.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP request error: {e}") from e

        if resp.status_code >= 400:
            raise TransportError(
                "The model service returned an error",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            completion = ChatCompletion.model_validate(resp.json())
        except (json.JSONDecodeError, ValidationError) as e:
            raise TransportError(
                f"Error processing API return: {e}",
                status_code=resp.status_code,
                body=resp.text,
            ) from e

        if len(completion.choices) != 1:
            raise TransportError(
                f"Expected exactly one choice, got {len(completion.choices)}",
                status_code=resp.status_code,
                body=resp.text,
            )

        reply = completion.choices[0].message
        if reply.role != Role.ASSISTANT.value:
            raise TransportError(
                f"Expected an assistant message, got role {reply.role!r}",
                status_code=resp.status_code,
                body=resp.text,
            )
        return Message.text(Role.ASSISTANT, reply.content)

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
