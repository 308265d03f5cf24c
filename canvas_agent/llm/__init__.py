"""LLM abstraction layer: provider-agnostic interface for tool-calling models.

Re-exports the public API so consumers can write:
    from canvas_agent.llm import LLMAdapter, AnthropicAdapter, OpenAIAdapter, LLMResponse, ...
"""

from .base import LLMAdapter, LLMResponse, ToolCall, UsageMetadata, FunctionSchema
from .gemini_adapter import GeminiAdapter
from .openai_adapter import OpenAIAdapter
from .anthropic_adapter import AnthropicAdapter
