"""Gemini adapter: wraps all google-genai SDK calls.

This is the **only** module in the project that imports ``google.genai``.

Gemini quirks the rest of the pipeline must not care about:
- Function-call arguments come back as protobuf-ish maps whose integers are
  floats (``3.0``); the normalizer coerces them.
- Function calls usually carry no id; one is synthesized from the position.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors, types

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

def _build_function_declarations(
    tools: list[FunctionSchema] | None,
) -> list[types.FunctionDeclaration] | None:
    """Convert our FunctionSchema list to Gemini FunctionDeclaration list."""
    if not tools:
        return None
    return [
        types.FunctionDeclaration(
            name=t.name,
            description=t.description,
            parameters=t.parameters,
        )
        for t in tools
    ]


def _build_contents(prompt: str, context: list[dict] | None) -> list[dict]:
    """Map ``{"role", "content"}`` turns onto Gemini's user/model contents."""
    contents = []
    for msg in context or []:
        role = "model" if msg["role"] == "assistant" else "user"
        contents.append({"role": role, "parts": [{"text": msg["content"]}]})
    contents.append({"role": "user", "parts": [{"text": prompt}]})
    return contents


def _parse_response(raw) -> LLMResponse:
    """Parse a raw Gemini response into a provider-agnostic LLMResponse."""
    candidates = getattr(raw, "candidates", None)
    if candidates is None:
        raise MalformedResponse("Gemini response has no candidates")

    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []
    if candidates:
        content = candidates[0].content
        if content and content.parts:
            for part in content.parts:
                fc = getattr(part, "function_call", None)
                if fc and fc.name:
                    tool_calls.append(ToolCall(
                        name=fc.name.removeprefix("default_api:"),
                        args=dict(fc.args) if fc.args else {},
                        id=getattr(fc, "id", None) or f"gemini_call_{len(tool_calls)}",
                    ))
                elif getattr(part, "text", None) and not getattr(part, "thought", False):
                    text_parts.append(part.text)

    meta = getattr(raw, "usage_metadata", None)
    usage = UsageMetadata(
        input_tokens=getattr(meta, "prompt_token_count", 0) or 0,
        output_tokens=getattr(meta, "candidates_token_count", 0) or 0,
    ) if meta else UsageMetadata()

    return LLMResponse(
        text="\n".join(text_parts) if text_parts else "",
        tool_calls=tool_calls,
        usage=usage,
        raw=raw,
    )


# ---------------------------------------------------------------------------
# GeminiAdapter
# ---------------------------------------------------------------------------

class GeminiAdapter(LLMAdapter):
    """Adapter that wraps all ``google-genai`` SDK calls."""

    provider = "gemini"

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gemini-2.5-flash",
        timeout_ms: int = 10_000,
        max_tokens: int = 1024,
        temperature: float | None = 0.1,
        client: Any = None,
    ):
        self.model_name = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._api_key = api_key
        self._timeout_ms = timeout_ms
        self._client = client

    @property
    def client(self):
        """Escape hatch: the underlying ``genai.Client`` (built lazily)."""
        if self._client is None:
            self._client = genai.Client(
                api_key=self._api_key,
                http_options=types.HttpOptions(timeout=self._timeout_ms),
            )
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

        config_kwargs: dict[str, Any] = {
            "max_output_tokens": self.max_tokens,
            # The pipeline executes tool calls itself
            "automatic_function_calling": types.AutomaticFunctionCallingConfig(disable=True),
        }
        if system_prompt:
            config_kwargs["system_instruction"] = system_prompt
        if self.temperature is not None:
            config_kwargs["temperature"] = self.temperature
        declarations = _build_function_declarations(tools)
        if declarations:
            config_kwargs["tools"] = [types.Tool(function_declarations=declarations)]

        logger.debug(f"[Gemini] Calling {self.model_name} with command: {prompt[:50]}...")
        try:
            raw = self.client.models.generate_content(
                model=self.model_name,
                contents=_build_contents(prompt, context),
                config=types.GenerateContentConfig(**config_kwargs),
            )
        except genai_errors.APIError as e:
            status = getattr(e, "code", None) or 500
            logger.error(f"[Gemini] API error: {status} - {getattr(e, 'details', None)!r}")
            raise UpstreamError(status, getattr(e, "details", None) or str(e)) from e
        except httpx.TransportError as e:
            logger.error(f"[Gemini] Request failed: {e}")
            raise TransportFailure(str(e) or type(e).__name__) from e
        return _parse_response(raw)
