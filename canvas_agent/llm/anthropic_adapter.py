"""Anthropic adapter: wraps the ``anthropic`` SDK for Claude models.

This is the **only** module that imports the ``anthropic`` package.

Key Anthropic API differences from OpenAI/Gemini:
- System prompt is a separate ``system`` parameter, not a message.
- Strict user/assistant alternation required: consecutive same-role messages
  must be merged.
- ``stop_reason`` tells whether the model stopped to call tools
  (``tool_use``) or finished with prose (``end_turn``).
"""

from __future__ import annotations

import logging
from typing import Any

import anthropic

from ..errors import MalformedResponse, MissingCredential, TransportFailure, UpstreamError
from .base import (
    FunctionSchema,
    LLMAdapter,
    LLMResponse,
    ToolCall,
    UsageMetadata,
)

logger = logging.getLogger("canvas_agent")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _build_tools(schemas: list[FunctionSchema] | None) -> list[dict] | None:
    """Convert FunctionSchema list to Anthropic tool format."""
    if not schemas:
        return None
    return [
        {
            "name": s.name,
            "description": s.description,
            "input_schema": s.parameters,
        }
        for s in schemas
    ]


def _parse_response(raw) -> LLMResponse:
    """Parse an Anthropic Messages response into a provider-agnostic LLMResponse."""
    content = getattr(raw, "content", None)
    if content is None:
        raise MalformedResponse("Anthropic response has no content")

    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []
    for block in content:
        if block.type == "text":
            text_parts.append(block.text)
        elif block.type == "tool_use":
            tool_calls.append(
                ToolCall(
                    name=block.name,
                    args=block.input if isinstance(block.input, dict) else {},
                    id=block.id,
                )
            )

    stop_reason = getattr(raw, "stop_reason", None)
    if stop_reason == "end_turn":
        tool_calls = []
    elif stop_reason != "tool_use":
        logger.warning(f"[Anthropic] Unexpected stop_reason {stop_reason!r}; ignoring tool calls")
        tool_calls = []

    usage = UsageMetadata()
    if getattr(raw, "usage", None):
        usage = UsageMetadata(
            input_tokens=getattr(raw.usage, "input_tokens", 0) or 0,
            output_tokens=getattr(raw.usage, "output_tokens", 0) or 0,
        )

    return LLMResponse(
        text="\n".join(text_parts) if text_parts else "",
        tool_calls=tool_calls,
        usage=usage,
        raw=raw,
    )


def _ensure_alternation(messages: list[dict]) -> list[dict]:
    """Merge consecutive same-role messages to satisfy Anthropic's alternation rule."""
    merged: list[dict] = []
    for msg in messages:
        if merged and merged[-1]["role"] == msg["role"]:
            merged[-1]["content"] = f"{merged[-1]['content']}\n\n{msg['content']}"
        else:
            merged.append({"role": msg["role"], "content": msg["content"]})
    return merged


# ---------------------------------------------------------------------------
# AnthropicAdapter
# ---------------------------------------------------------------------------


class AnthropicAdapter(LLMAdapter):
    """Adapter that wraps the ``anthropic`` SDK for Claude models."""

    provider = "anthropic"

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "claude-3-5-sonnet-20241022",
        base_url: str | None = None,
        timeout_ms: int = 10_000,
        max_tokens: int = 1024,
        client: Any = None,
    ):
        self.model_name = model
        self.max_tokens = max_tokens
        self._api_key = api_key
        self._client = client
        self._client_kwargs: dict[str, Any] = {
            "api_key": api_key,
            "timeout": timeout_ms / 1000.0,
            # Retry policy belongs to the dispatcher (currently: single attempt)
            "max_retries": 0,
        }
        if base_url:
            self._client_kwargs["base_url"] = base_url

    @property
    def client(self):
        """Escape hatch: the underlying ``anthropic.Anthropic`` client (built lazily)."""
        if self._client is None:
            self._client = anthropic.Anthropic(**self._client_kwargs)
        return self._client

    # -- LLMAdapter interface --------------------------------------------------

    def call(
        self,
        prompt: str,
        tools: list[FunctionSchema],
        context: list[dict] | None = None,
        *,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        if not self._api_key and self._client is None:
            raise MissingCredential(self.provider)

        messages = _ensure_alternation(list(context or []) + [{"role": "user", "content": prompt}])
        # Anthropic requires the first message to be from the user
        while messages and messages[0]["role"] != "user":
            messages.pop(0)

        kwargs: dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        anthropic_tools = _build_tools(tools)
        if anthropic_tools:
            kwargs["tools"] = anthropic_tools

        logger.debug(f"[Anthropic] Calling {self.model_name} with command: {prompt[:50]}...")
        try:
            raw = self.client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            logger.error(f"[Anthropic] API error: {e.status_code} - {e.body!r}")
            raise UpstreamError(e.status_code, e.body) from e
        except anthropic.APIConnectionError as e:
            # APITimeoutError is a subclass of APIConnectionError
            logger.error(f"[Anthropic] Request failed: {e}")
            raise TransportFailure(str(e) or type(e).__name__) from e
        return _parse_response(raw)
