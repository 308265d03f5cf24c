from __future__ import annotations

import pytest

import config
from canvas_agent import circuit_breaker
from canvas_agent.core import CommandAgent, DispatchState, create_adapter
from canvas_agent.errors import (
    DispatchErrorKind,
    ErrorKind,
    MissingCredential,
    TransportFailure,
    UpstreamError,
)
from canvas_agent.llm import AnthropicAdapter, GeminiAdapter, OpenAIAdapter
from canvas_agent.llm.base import LLMResponse, ToolCall
from canvas_agent.models import (
    CommandContext,
    CommandResult,
    DispatchError,
    InteractionLog,
    ObjectListValue,
    TextResponse,
)
from canvas_agent.prompts import SYSTEM_PROMPT
from tests.helpers import ScriptedAdapter, add_shape, tool_response


def test_five_circles_in_one_call(store, canvas_id):
    adapter = ScriptedAdapter(tool_response(("create_shape", {"type": "circle", "x": 0, "y": 0, "count": 5, "fill": "red"})))
    outcome = CommandAgent(store, adapter).execute_command("five red circles", canvas_id)

    assert isinstance(outcome, CommandResult)
    [result] = outcome.results
    assert isinstance(result.value, ObjectListValue)
    assert len(result.value.objects) == 5
    assert {o.render_data["fill"] for o in result.value.objects} == {"#FF0000"}
    assert outcome.summary() == "Created 5"
    assert len(outcome.broadcast_messages()) == 5
    assert adapter.system_prompts == [SYSTEM_PROMPT]


def test_unknown_tools_are_tolerated(store, canvas_id):
    adapter = ScriptedAdapter(tool_response(
        ("summon_dragon", {}),
        ("create_shape", {"type": "rectangle", "x": 0, "y": 0}),
    ))
    outcome = CommandAgent(store, adapter).execute_command("make a box", canvas_id)

    assert isinstance(outcome, CommandResult)
    assert [r.tool for r in outcome.results] == ["create_shape"]
    assert outcome.results[0].ok
    assert outcome.dropped == ("summon_dragon",)


def test_only_unknown_tools_is_an_empty_result(store, canvas_id):
    adapter = ScriptedAdapter(tool_response(("summon_dragon", {})))
    outcome = CommandAgent(store, adapter).execute_command("dragon", canvas_id)
    assert outcome == CommandResult(results=(), dropped=("summon_dragon",))
    assert outcome.summary() == "No changes"


def test_prose_answer_becomes_text_response(store, canvas_id):
    adapter = ScriptedAdapter(LLMResponse(text="There are no objects yet."))
    outcome = CommandAgent(store, adapter).execute_command("what is here?", canvas_id)
    assert outcome == TextResponse("There are no objects yet.")


def test_unknown_canvas_skips_the_provider(store):
    adapter = ScriptedAdapter(tool_response(("list_objects", {})))
    outcome = CommandAgent(store, adapter).execute_command("anything", "missing-canvas")
    assert isinstance(outcome, DispatchError)
    assert outcome.kind is DispatchErrorKind.CANVAS_NOT_FOUND
    assert adapter.prompts == []


@pytest.mark.parametrize(
    "error, kind, status",
    [
        (MissingCredential("scripted"), DispatchErrorKind.MISSING_CREDENTIAL, None),
        (UpstreamError(429, {"error": "slow down"}), DispatchErrorKind.UPSTREAM_ERROR, 429),
        (TransportFailure("connection reset"), DispatchErrorKind.TRANSPORT_FAILURE, None),
    ],
)
def test_adapter_failures_become_dispatch_errors(store, canvas_id, error, kind, status):
    outcome = CommandAgent(store, ScriptedAdapter(error)).execute_command("draw", canvas_id)
    assert isinstance(outcome, DispatchError)
    assert outcome.kind is kind
    assert outcome.status == status
    assert store.list_objects(canvas_id) == []


def test_rate_limit_message_is_readable(store, canvas_id):
    outcome = CommandAgent(store, ScriptedAdapter(UpstreamError(429))).execute_command("draw", canvas_id)
    assert "rate limiting" in outcome.message


def test_malformed_tool_calls_abort_the_command(store, canvas_id):
    adapter = ScriptedAdapter(LLMResponse(tool_calls=[ToolCall(name="", args={})]))
    outcome = CommandAgent(store, adapter).execute_command("draw", canvas_id)
    assert isinstance(outcome, DispatchError)
    assert outcome.kind is DispatchErrorKind.MALFORMED_RESPONSE


def test_per_call_failures_do_not_fail_the_command(store, canvas_id):
    adapter = ScriptedAdapter(tool_response(
        ("create_shape", {"type": "circle", "x": 0, "y": 0}),
        ("move_object", {"object_id": 404, "x": 1, "y": 1}),
    ))
    outcome = CommandAgent(store, adapter).execute_command("draw and move", canvas_id)
    assert isinstance(outcome, CommandResult)
    assert outcome.results[0].ok
    assert outcome.results[1].error is ErrorKind.OBJECT_NOT_FOUND
    assert outcome.counts() == {"created": 1, "updated": 0, "deleted": 0, "failed": 1}


def test_stringified_relationship_fields_do_not_break_the_command(store, canvas_id):
    box = add_shape(store, canvas_id, x=100, y=100)
    title = add_shape(store, canvas_id, type="text", x=0, y=0, text="Title", height=20)
    adapter = ScriptedAdapter(tool_response(
        ("create_shape", {"type": "circle", "x": 0, "y": 0}),
        ("arrange_with_relationships", {"relationships": [
            {"subject_id": str(title.id), "relation": "above", "reference_id": str(box.id), "spacing": "30"},
        ]}),
        ("move_object", {"object_id": str(box.id), "x": "0", "y": "0"}),
    ))
    outcome = CommandAgent(store, adapter).execute_command("title above the box", canvas_id)

    assert isinstance(outcome, CommandResult)
    assert [r.ok for r in outcome.results] == [True, True, True]
    moved = store.get_object(title.id)
    assert (moved.position.x, moved.position.y) == (100, 50)
    assert outcome.counts() == {"created": 1, "updated": 2, "deleted": 0, "failed": 0}


def test_state_transitions(store, canvas_id):
    states = []
    adapter = ScriptedAdapter(tool_response(("list_objects", {})))
    CommandAgent(store, adapter).execute_command("list", canvas_id, on_state=states.append)
    assert states == [
        DispatchState.BUILDING_CONTEXT,
        DispatchState.AWAITING_PROVIDER,
        DispatchState.NORMALIZING,
        DispatchState.EXECUTING,
        DispatchState.DONE,
    ]

    states.clear()
    CommandAgent(store, ScriptedAdapter(LLMResponse(text="hi"))).execute_command("hi", canvas_id, on_state=states.append)
    assert DispatchState.EXECUTING not in states
    assert states[-1] is DispatchState.DONE


def test_prompt_carries_canvas_and_client_context(store, canvas_id):
    obj = add_shape(store, canvas_id, x=5, y=5, fill="#00FF00")
    adapter = ScriptedAdapter(LLMResponse(text="ok"))
    context = CommandContext(current_color="#ABCDEF", viewport={"x": 0, "y": 0, "width": 800, "height": 600})
    CommandAgent(store, adapter).execute_command("make it blue", canvas_id, [obj.id], context)

    prompt = adapter.prompts[0]
    assert f'"id": {obj.id}' in prompt
    assert f"[{obj.id}]" in prompt
    assert "#ABCDEF" in prompt
    assert '"width": 800' in prompt
    assert prompt.rstrip().endswith("make it blue")


def test_interaction_log_enriches_the_next_prompt(store, canvas_id):
    log = InteractionLog(maxlen=2)
    context = CommandContext(recent=log)
    adapter = ScriptedAdapter(tool_response(("create_shape", {"type": "circle", "x": 0, "y": 0})))
    agent = CommandAgent(store, adapter)

    agent.execute_command("first circle", canvas_id, context=context)
    agent.execute_command("second circle", canvas_id, context=context)
    assert '"first circle" -> Created 1' in adapter.prompts[1]

    agent.execute_command("third circle", canvas_id, context=context)
    assert [e.command for e in log.entries()] == ["second circle", "third circle"]


def test_failed_commands_are_logged_too(store, canvas_id):
    log = InteractionLog()
    CommandAgent(store, ScriptedAdapter(TransportFailure("down"))).execute_command(
        "draw", canvas_id, context=CommandContext(recent=log)
    )
    assert log.entries()[0].summary.startswith("error:")


# ---- circuit breaker integration ----


def test_circuit_opens_after_repeated_upstream_failures(store, canvas_id, monkeypatch):
    monkeypatch.setattr(config, "CIRCUIT_BREAKER_THRESHOLD", 2)
    adapter = ScriptedAdapter(UpstreamError(503))
    agent = CommandAgent(store, adapter)

    agent.execute_command("one", canvas_id)
    agent.execute_command("two", canvas_id)
    outcome = agent.execute_command("three", canvas_id)

    assert len(adapter.prompts) == 2
    assert outcome.kind is DispatchErrorKind.UPSTREAM_ERROR
    assert outcome.status == 503
    assert "circuit open" in outcome.message
    assert circuit_breaker.get_state("scripted") == circuit_breaker.OPEN


def test_missing_credentials_do_not_trip_the_circuit(store, canvas_id, monkeypatch):
    monkeypatch.setattr(config, "CIRCUIT_BREAKER_THRESHOLD", 1)
    agent = CommandAgent(store, ScriptedAdapter(MissingCredential("scripted")))
    agent.execute_command("one", canvas_id)
    assert circuit_breaker.get_state("scripted") == circuit_breaker.CLOSED


# ---- adapter factory ----


@pytest.mark.parametrize(
    "provider, adapter_type",
    [
        ("anthropic", AnthropicAdapter),
        ("openai", OpenAIAdapter),
        ("groq", OpenAIAdapter),
        ("gemini", GeminiAdapter),
        ("mystery", AnthropicAdapter),
    ],
)
def test_create_adapter_by_provider(provider, adapter_type):
    adapter = create_adapter(provider)
    assert isinstance(adapter, adapter_type)


def test_groq_uses_its_own_endpoint():
    adapter = create_adapter("groq")
    assert adapter.provider == "groq"
    assert adapter.base_url == "https://api.groq.com/openai/v1"
