"""Provider-agnostic types and abstract base class for LLM adapters.

All pipeline code should depend on these types, never on provider-specific SDKs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolCall:
    """A single function/tool invocation extracted from the LLM response.

    Attributes:
        name: Tool/function name.
        args: Parsed arguments dict, exactly as the provider emitted it
            (ids may be strings or floats; the normalizer fixes that).
        id: Provider-assigned call ID (e.g. ``call_xxxxx`` for OpenAI/Groq,
            ``toolu_xxxxx`` for Anthropic). Synthesized for Gemini, which
            doesn't use explicit tool-call IDs.
    """
    name: str
    args: dict
    id: str | None = None


@dataclass
class UsageMetadata:
    """Normalized token counts."""
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class LLMResponse:
    """Provider-agnostic response from an LLM call.

    Attributes:
        text: Concatenated text output.
        tool_calls: Extracted function/tool calls, in the order emitted.
        usage: Token usage for this call.
        raw: The original provider-specific response object.
    """
    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: UsageMetadata = field(default_factory=UsageMetadata)
    raw: Any = None


@dataclass
class FunctionSchema:
    """Wraps a tool/function schema dict for type clarity.

    The ``parameters`` dict is already JSON-schema-shaped and provider-agnostic.
    """
    name: str
    description: str
    parameters: dict


# ---------------------------------------------------------------------------
# LLMAdapter ABC
# ---------------------------------------------------------------------------

class LLMAdapter(ABC):
    """Abstract interface that every LLM provider adapter must implement.

    Adapters make exactly one request per ``call`` (no retries) and translate
    every SDK failure into an ``AdapterError`` subclass.
    """

    provider: str = ""
    model_name: str = ""
    max_tokens: int = 1024

    @abstractmethod
    def call(
        self,
        prompt: str,
        tools: list[FunctionSchema],
        context: list[dict] | None = None,
        *,
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Ask the model to answer *prompt* with tool calls.

        Args:
            prompt: The context-enriched user command.
            tools: Tool schemas offered to the model.
            context: Prior conversation turns as ``{"role", "content"}`` dicts.
            system_prompt: System instruction for this call.

        Raises:
            MissingCredential, UpstreamError, TransportFailure, MalformedResponse
        """
