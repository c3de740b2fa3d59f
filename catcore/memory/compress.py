"""LLM-based memory compressor.

:class:`LlmCompressor` sends a slice of messages to an OpenAI-compatible chat
completions endpoint in a single turn, with no tools, and returns the
model's summary for mid-term or long-term memory storage.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import httpx

from catcore.memory.tier import Message, Role

__all__ = ["CompressionError", "format_for_compression", "LlmCompressor", "COMPRESSION_SYSTEM"]

COMPRESSION_SYSTEM = (
    "You are a memory compression assistant. "
    "Compress the following conversation into a concise, information-dense summary in Chinese. "
    "Preserve all key facts, decisions, plans, and outcomes. "
    "Output only the summary text — no preamble, no commentary."
)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
_TIMEOUT_SECONDS = 120.0

_ROLE_LABELS = {
    Role.SYSTEM: "System",
    Role.USER: "User",
    Role.ASSISTANT: "Assistant",
    Role.TOOL: "Tool",
}


class CompressionError(Exception):
    """The model could not produce a summary."""


def format_for_compression(messages: Iterable[Message]) -> str:
    """Render messages as plain text blocks, leaving out tool responses and empty bodies."""
    blocks = [
        f"[{_ROLE_LABELS[m.role]}]\n{m.text_content()}"
        for m in messages
        if m.role is not Role.TOOL and m.text_content()
    ]
    return "\n\n".join(blocks)


def _summary_from_response(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list):
        return ""
    parts = []
    for choice in choices:
        message = choice.get("message") if isinstance(choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str):
            parts.append(content)
    return "".join(parts)


class LlmCompressor:
    """Summarises messages with a single-turn model call."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str],
        model: str,
        extra_options: Optional[dict[str, Any]] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.model = model
        self.extra_options = dict(extra_options or {})
        self._client = client

    def _request_body(self, text: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": COMPRESSION_SYSTEM},
                {"role": "user", "content": text},
            ],
            "stream": False,
        }
        body.update(self.extra_options)
        return body

    def _post(self, client: httpx.Client, body: dict[str, Any]) -> Any:
        response = client.post(
            f"{self.base_url}/chat/completions",
            json=body,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        response.raise_for_status()
        return response.json()

    def compress(self, messages: list[Message]) -> str:
        """Compress messages into a summary; tool responses are left out.

        Returns "" when there is nothing to summarise. Raises
        CompressionError when the request fails or the summary is empty.
        """
        if not messages:
            return ""
        text = format_for_compression(messages)
        if not text:
            return ""

        body = self._request_body(text)
        try:
            if self._client is not None:
                data = self._post(self._client, body)
            else:
                with httpx.Client(timeout=_TIMEOUT_SECONDS) as client:
                    data = self._post(client, body)
        except httpx.HTTPError as exc:
            raise CompressionError(f"LlmCompressor: request failed: {exc}") from exc
        except ValueError as exc:
            raise CompressionError(f"LlmCompressor: invalid response: {exc}") from exc

        summary = _summary_from_response(data)
        if not summary:
            raise CompressionError("LlmCompressor: model returned empty summary")
        return summary