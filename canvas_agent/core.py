"""
Command dispatcher: one natural-language command in, one CommandOutcome out.

Per invocation the dispatcher walks
    BUILDING_CONTEXT → AWAITING_PROVIDER → NORMALIZING → EXECUTING → DONE
and short-circuits to a ``DispatchError`` on any dispatch-level failure.
Nothing is retained between invocations; the recent-interaction log travels
in the caller's ``CommandContext``.

The provider call is the only blocking step. ``ExecutionSupervisor`` runs
``execute_command`` on a worker thread under a wall-clock timeout.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from enum import Enum

import config
from config import get_api_key
from . import circuit_breaker
from .batch import ExecutionContext, execute
from .errors import (
    AdapterError,
    DispatchErrorKind,
    MalformedToolCall,
    TransportFailure,
    UpstreamError,
)
from .llm import AnthropicAdapter, GeminiAdapter, LLMAdapter, OpenAIAdapter
from .logging import get_logger, log_error, set_command_id, tagged
from .models import (
    CommandContext,
    CommandOutcome,
    CommandResult,
    DispatchError,
    TextResponse,
)
from .normalizer import normalize_calls
from .prompts import build_command_prompt, get_system_prompt
from .store import CanvasStore
from .tool_timing import ToolTimer
from .tools import get_function_schemas


class DispatchState(Enum):
    BUILDING_CONTEXT = "building_context"
    AWAITING_PROVIDER = "awaiting_provider"
    NORMALIZING = "normalizing"
    EXECUTING = "executing"
    DONE = "done"


def create_adapter(provider: str | None = None) -> LLMAdapter:
    """Create the LLM adapter based on config (llm_provider, per-provider settings)."""
    provider = (provider or config.LLM_PROVIDER).lower()
    if provider not in ("anthropic", "openai", "groq", "gemini"):
        get_logger().warning(f"Unknown llm_provider '{provider}', using anthropic")
        provider = "anthropic"
    settings = {
        "model": config._provider_get("model", provider=provider),
        "timeout_ms": config._provider_get("timeout_ms", 10_000, provider=provider),
        "max_tokens": config._provider_get("max_tokens", 1024, provider=provider),
    }
    api_key = get_api_key(provider)
    if provider in ("openai", "groq"):
        return OpenAIAdapter(
            api_key=api_key,
            provider=provider,
            base_url=config._provider_get("base_url", provider=provider),
            temperature=config._provider_get("temperature", provider=provider),
            **settings,
        )
    if provider == "gemini":
        return GeminiAdapter(
            api_key=api_key,
            temperature=config._provider_get("temperature", provider=provider),
            **settings,
        )
    return AnthropicAdapter(
        api_key=api_key,
        base_url=config._provider_get("base_url", provider=provider),
        **settings,
    )


def _failure_message(exc: AdapterError) -> str:
    """One human-readable line for a provider failure."""
    if isinstance(exc, UpstreamError):
        if exc.status == 429:
            return "The AI provider is rate limiting requests. Please try again shortly."
        if exc.status in (502, 503, 529):
            return "The AI provider is temporarily unavailable. Please try again shortly."
        if exc.status in (401, 403):
            return "The AI provider rejected the configured API key."
    return str(exc)


class CommandAgent:
    """Translates canvas commands into tool calls and executes them.

    Args:
        store: Persistence collaborator for objects and canvases.
        adapter: LLM adapter; built from config when omitted.
    """

    def __init__(self, store: CanvasStore, adapter: LLMAdapter | None = None):
        self.store = store
        self.adapter = adapter if adapter is not None else create_adapter()
        self.logger = get_logger()
        self._tool_schemas = get_function_schemas()

    def execute_command(
        self,
        text: str,
        canvas_id: str,
        selected_ids: Sequence[int] = (),
        context: CommandContext | None = None,
        *,
        command_id: str | None = None,
        on_state: Callable[[DispatchState], None] | None = None,
    ) -> CommandOutcome:
        """Run one command end to end.

        Args:
            text: The user's natural-language instruction.
            canvas_id: Target canvas.
            selected_ids: Objects selected in the issuing client.
            context: Client context (current color, viewport, interaction log).
            command_id: Id stamped on log lines; generated when omitted.
            on_state: Called on every state transition (tracing/tests).

        Returns:
            ``CommandResult``, ``TextResponse`` or ``DispatchError``; never raises
            for provider, normalization or per-call failures.
        """
        context = context or CommandContext()
        set_command_id(command_id or uuid.uuid4().hex[:8])

        def enter(state: DispatchState) -> None:
            self.logger.debug(f"Command state -> {state.value}", extra=tagged("dispatch"))
            if on_state is not None:
                on_state(state)

        enter(DispatchState.BUILDING_CONTEXT)
        outcome = self._dispatch(text, canvas_id, tuple(selected_ids), context, enter)
        enter(DispatchState.DONE)

        if context.recent is not None:
            context.recent.record(text, _outcome_summary(outcome))
        return outcome

    def _dispatch(self, text, canvas_id, selected_ids, context, enter) -> CommandOutcome:
        if not self.store.canvas_exists(canvas_id):
            return DispatchError(DispatchErrorKind.CANVAS_NOT_FOUND, f"Canvas {canvas_id} not found")
        prompt = build_command_prompt(text, self.store.list_objects(canvas_id), selected_ids, context)

        enter(DispatchState.AWAITING_PROVIDER)
        provider = self.adapter.provider
        if circuit_breaker.is_open(provider):
            self.logger.warning(f"[CircuitBreaker] {provider} circuit open, rejecting command")
            return DispatchError(
                DispatchErrorKind.UPSTREAM_ERROR,
                "The AI provider is temporarily unavailable (circuit open). Please try again shortly.",
                status=503,
            )
        self.logger.info(f"Command: {text!r} on canvas {canvas_id} via {provider}/{self.adapter.model_name}")
        try:
            with ToolTimer() as timer:
                response = self.adapter.call(prompt, self._tool_schemas, system_prompt=get_system_prompt())
        except AdapterError as e:
            if isinstance(e, (UpstreamError, TransportFailure)):
                circuit_breaker.record_failure(provider)
            log_error(f"Provider call failed ({e.kind.value})", exc=e, context={"provider": provider})
            return DispatchError(e.kind, _failure_message(e), e.status)
        circuit_breaker.record_success(provider)
        self.logger.debug(
            f"{provider} answered in {timer.elapsed_ms}ms with {len(response.tool_calls)} tool calls "
            f"({response.usage.input_tokens} in / {response.usage.output_tokens} out tokens)"
        )

        enter(DispatchState.NORMALIZING)
        try:
            calls, dropped = normalize_calls(response.tool_calls)
        except MalformedToolCall as e:
            log_error("Provider returned malformed tool calls", exc=e)
            return DispatchError(DispatchErrorKind.MALFORMED_RESPONSE, str(e))
        if not calls and not dropped:
            return TextResponse(response.text)

        enter(DispatchState.EXECUTING)
        ctx = ExecutionContext(store=self.store, canvas_id=canvas_id, selected_ids=selected_ids, command=context)
        result = CommandResult(tuple(execute(calls, ctx)), tuple(dropped))
        self.logger.info(f"Command done: {result.summary()}")
        return result


def _outcome_summary(outcome: CommandOutcome) -> str:
    if isinstance(outcome, CommandResult):
        return outcome.summary()
    if isinstance(outcome, TextResponse):
        return outcome.text[:200]
    return f"error: {outcome.message}"


def create_agent(store: CanvasStore, adapter: LLMAdapter | None = None, verbose: bool = False) -> CommandAgent:
    """Factory function to create a new command agent.

    Args:
        store: Persistence collaborator.
        adapter: Optional adapter override (tests, alternate providers).
        verbose: If True, log debug output to the console.
    """
    if verbose:
        from .logging import setup_logging

        setup_logging(verbose=True)
    return CommandAgent(store, adapter)
