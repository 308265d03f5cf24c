from __future__ import annotations

import threading

from canvas_agent.llm.base import LLMAdapter, LLMResponse, ToolCall
from canvas_agent.models import ObjectAttrs, Position


class ScriptedAdapter(LLMAdapter):
    """Adapter that replays canned responses (or raises canned errors)."""

    provider = "scripted"
    model_name = "scripted-model"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts: list[str] = []
        self.system_prompts: list[str | None] = []

    def call(self, prompt, tools, context=None, *, system_prompt=None):
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class BlockingAgent:
    """Stand-in agent whose ``execute_command`` waits until released."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.release = threading.Event()
        self.finished = threading.Event()

    def execute_command(self, text, canvas_id, selected_ids=(), context=None, *, command_id=None):
        self.release.wait(timeout=5)
        self.finished.set()
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


def tool_response(*calls, text: str = "") -> LLMResponse:
    """Build an LLMResponse from ``(name, args)`` pairs."""
    return LLMResponse(
        text=text,
        tool_calls=[ToolCall(name=name, args=args, id=f"call_{i}") for i, (name, args) in enumerate(calls)],
    )


def add_shape(store, canvas_id, x=0, y=0, width=50, height=50, type="rectangle", **data):
    """Insert one object directly through the store and return it."""
    render_data = {"width": width, "height": height, **data}
    return store.insert_batch(canvas_id, [ObjectAttrs(type, Position(x, y), render_data)])[0]
