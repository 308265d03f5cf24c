"""OpenAI adapter: wraps the ``openai`` SDK for OpenAI and compatible APIs.

Covers: OpenAI, Groq (``base_url=https://api.groq.com/openai/v1``), and any
other provider exposing an OpenAI-compatible ``/chat/completions`` endpoint.

This is the **only** module that imports the ``openai`` package.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import openai

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
    """Convert FunctionSchema list to OpenAI tool format."""
    if not schemas:
        return None
    return [
        {
            "type": "function",
            "function": {
                "name": s.name,
                "description": s.description,
                "parameters": s.parameters,
            },
        }
        for s in schemas
    ]


def _parse_tool_calls(raw_tool_calls) -> list[ToolCall]:
    """Parse OpenAI tool calls into our ToolCall dataclass.

    Arguments arrive as a JSON string; undecodable arguments become ``{}`` so
    one bad call doesn't sink its siblings.
    """
    if not raw_tool_calls:
        return []
    result = []
    for tc in raw_tool_calls:
        try:
            args = json.loads(tc.function.arguments) if tc.function.arguments else {}
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"[OpenAI] Could not decode arguments for {tc.function.name}: {tc.function.arguments!r}")
            args = {}
        result.append(
            ToolCall(
                name=tc.function.name,
                args=args if isinstance(args, dict) else {},
                id=tc.id,
            )
        )
    return result


def _parse_response(raw) -> LLMResponse:
    """Parse a raw OpenAI ChatCompletion into a provider-agnostic LLMResponse."""
    choices = getattr(raw, "choices", None)
    if not choices:
        raise MalformedResponse("completion has no choices")

    message = choices[0].message
    if message is None:
        raise MalformedResponse("completion choice has no message")

    usage = UsageMetadata()
    if getattr(raw, "usage", None):
        usage = UsageMetadata(
            input_tokens=raw.usage.prompt_tokens or 0,
            output_tokens=raw.usage.completion_tokens or 0,
        )

    return LLMResponse(
        text=message.content or "",
        tool_calls=_parse_tool_calls(message.tool_calls),
        usage=usage,
        raw=raw,
    )


# ---------------------------------------------------------------------------
# OpenAIAdapter
# ---------------------------------------------------------------------------


class OpenAIAdapter(LLMAdapter):
    """Adapter that wraps the ``openai`` SDK for OpenAI and compatible APIs."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str,
        provider: str = "openai",
        base_url: str | None = None,
        timeout_ms: int = 10_000,
        max_tokens: int = 1024,
        temperature: float | None = 0.1,
        client: Any = None,
    ):
        self.provider = provider
        self.model_name = model
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._api_key = api_key
        self._client = client
        self._client_kwargs: dict[str, Any] = {
            "api_key": api_key,
            "timeout": timeout_ms / 1000.0,  # openai SDK uses seconds
            "max_retries": 0,
        }
        if base_url:
            self._client_kwargs["base_url"] = base_url

    @property
    def client(self):
        """Escape hatch: the underlying ``openai.OpenAI`` client (built lazily)."""
        if self._client is None:
            self._client = openai.OpenAI(**self._client_kwargs)
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

        messages: list[dict] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.extend(context or [])
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": self.model_name,
            "messages": messages,
            "max_tokens": self.max_tokens,
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        openai_tools = _build_tools(tools)
        if openai_tools:
            kwargs["tools"] = openai_tools
            kwargs["tool_choice"] = "auto"

        logger.debug(f"[{self.provider}] Calling {self.model_name} with command: {prompt[:50]}...")
        try:
            raw = self.client.chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            logger.error(f"[{self.provider}] API error: {e.status_code} - {e.body!r}")
            raise UpstreamError(e.status_code, e.body) from e
        except openai.APIConnectionError as e:
            logger.error(f"[{self.provider}] Request failed: {e}")
            raise TransportFailure(str(e) or type(e).__name__) from e
        return _parse_response(raw)
