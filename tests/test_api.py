from __future__ import annotations

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.streaming import CanvasBroadcaster
from canvas_agent.errors import MissingCredential, UpstreamError
from canvas_agent.llm.base import LLMResponse
from canvas_agent.store import InMemoryCanvasStore
from tests.helpers import ScriptedAdapter, tool_response


def _client(*responses) -> tuple[TestClient, ScriptedAdapter]:
    adapter = ScriptedAdapter(*responses)
    return TestClient(create_app(store=InMemoryCanvasStore(), adapter=adapter)), adapter


def _new_canvas(client: TestClient, name: str = "board") -> str:
    resp = client.post("/api/canvases", json={"name": name})
    assert resp.status_code == 201
    return resp.json()["canvas_id"]


def test_command_creates_objects_and_reports_summary():
    client, adapter = _client(tool_response(("create_shape", {"type": "circle", "x": 0, "y": 0, "count": 3})))
    with client:
        canvas_id = _new_canvas(client)
        resp = client.post(f"/api/canvases/{canvas_id}/commands", json={"text": "three circles"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"] == "Created 3"
        assert body["results"][0]["ok"] is True
        assert body["results"][0]["result"]["kind"] == "object_list"

        objects = client.get(f"/api/canvases/{canvas_id}/objects").json()["objects"]
        assert [o["type"] for o in objects] == ["circle"] * 3


def test_client_context_reaches_the_prompt():
    client, adapter = _client(LLMResponse(text="ok"))
    with client:
        canvas_id = _new_canvas(client)
        client.post(
            f"/api/canvases/{canvas_id}/commands",
            json={
                "text": "paint it",
                "selected_ids": [7],
                "current_color": "#ABCDEF",
                "viewport": {"x": 0, "y": 0, "width": 640, "height": 480},
            },
        )
        client.post(f"/api/canvases/{canvas_id}/commands", json={"text": "again"})

    assert "#ABCDEF" in adapter.prompts[0]
    assert '"width": 640' in adapter.prompts[0]
    assert '"paint it" -> ok' in adapter.prompts[1]


def test_text_only_answer():
    client, _ = _client(LLMResponse(text="The canvas is empty."))
    with client:
        canvas_id = _new_canvas(client)
        body = client.post(f"/api/canvases/{canvas_id}/commands", json={"text": "what's here?"}).json()
    assert body["text"] == "The canvas is empty."
    assert body["results"] == []


def test_dropped_tools_are_reported():
    client, _ = _client(tool_response(("fly_away", {})))
    with client:
        canvas_id = _new_canvas(client)
        body = client.post(f"/api/canvases/{canvas_id}/commands", json={"text": "fly"}).json()
    assert body["dropped"] == ["fly_away"]
    assert body["summary"] == "No changes"


@pytest.mark.parametrize(
    "error, status, kind",
    [
        (UpstreamError(500), 502, "upstream_error"),
        (MissingCredential("scripted"), 503, "missing_credential"),
    ],
)
def test_dispatch_errors_map_to_http_status(error, status, kind):
    client, _ = _client(error)
    with client:
        canvas_id = _new_canvas(client)
        resp = client.post(f"/api/canvases/{canvas_id}/commands", json={"text": "draw"})
    assert resp.status_code == status
    assert resp.json()["detail"]["error"] == kind


def test_unknown_canvas_and_bad_requests():
    client, _ = _client(LLMResponse(text="unused"))
    with client:
        assert client.post("/api/canvases/nope/commands", json={"text": "x"}).status_code == 404
        assert client.get("/api/canvases/missing/objects").status_code == 404
        canvas_id = _new_canvas(client)
        assert client.post(f"/api/canvases/{canvas_id}/commands", json={"text": ""}).status_code == 422
        bad_viewport = {"text": "x", "viewport": {"width": 0, "height": 10}}
        assert client.post(f"/api/canvases/{canvas_id}/commands", json=bad_viewport).status_code == 422


def test_status_reports_provider_and_circuit():
    client, _ = _client(LLMResponse(text="ok"))
    with client:
        _new_canvas(client)
        body = client.get("/api/status").json()
    assert body["provider"] == "scripted"
    assert body["model"] == "scripted-model"
    assert body["canvases"] == 1
    assert body["circuit_state"] == "closed"
    assert body["api_key_configured"] is False


@pytest.mark.asyncio
async def test_broadcaster_is_canvas_scoped():
    broadcaster = CanvasBroadcaster(asyncio.get_running_loop())
    mine = broadcaster.subscribe("a")
    other = broadcaster.subscribe("b")

    assert broadcaster.publish("a", [{"type": "object_created", "object": {"id": 1}}]) == 1
    message = await asyncio.wait_for(mine.get(), timeout=1)
    assert message["type"] == "object_created"
    assert other.empty()

    broadcaster.close()
    assert await asyncio.wait_for(other.get(), timeout=1) is None
    assert broadcaster.subscriber_count("a") == 0


@pytest.mark.asyncio
async def test_slow_subscriber_is_dropped_when_its_queue_fills():
    broadcaster = CanvasBroadcaster(asyncio.get_running_loop(), max_queue=2)
    slow = broadcaster.subscribe("a")
    other = broadcaster.subscribe("b")

    broadcaster.publish("a", [{"type": "object_created", "object": {"id": i}} for i in range(3)])
    await asyncio.sleep(0)

    assert broadcaster.subscriber_count("a") == 0
    assert (await slow.get())["object"]["id"] == 1
    assert await slow.get() is None
    assert broadcaster.subscriber_count("b") == 1
    assert other.empty()


def test_config_hides_secrets_and_carries_descriptions(monkeypatch):
    import config

    monkeypatch.setattr(config, "_load_config", lambda: {"api_key": "sk-secret", "providers": {"groq": {"model": "mixtral"}}})
    client, _ = _client(LLMResponse(text="unused"))
    with client:
        body = client.get("/api/config").json()
    assert "api_key" not in body
    assert body["providers"]["groq"]["model"] == "mixtral"
    assert body["providers"]["groq"]["base_url"] == "https://api.groq.com/openai/v1"
    assert "command_timeout_seconds" in body["_descriptions"]


def test_config_update_merges_and_reloads(monkeypatch, tmp_path):
    import config

    path = tmp_path / "config.json"
    path.write_text('{"circuit_breaker": {"threshold": 9, "enabled": true}}', encoding="utf-8")
    monkeypatch.setattr(config, "CONFIG_PATH", path)
    monkeypatch.setattr(config, "_LOCAL_CONFIG_PATH", tmp_path / "missing.json")
    # reload_config reassigns module globals; register them for restoration
    for name in (
        "_user_config", "LLM_PROVIDER", "COMMAND_TIMEOUT_SECONDS", "SUPERVISOR_MAX_WORKERS",
        "INTERACTION_LOG_SIZE", "DEFAULT_FILL", "BATCH_WARN_MS", "LAYOUT_WARN_MS",
        "CIRCUIT_BREAKER_ENABLED", "CIRCUIT_BREAKER_THRESHOLD", "CIRCUIT_BREAKER_RESET_SECONDS",
    ):
        monkeypatch.setattr(config, name, getattr(config, name))

    client, _ = _client(LLMResponse(text="unused"))
    with client:
        resp = client.put(
            "/api/config",
            json={"config": {"circuit_breaker": {"threshold": 4}, "interaction_log_size": 3, "api_key": "nope"}},
        )
    assert resp.json() == {"status": "saved", "needs_restart": True}

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved == {"circuit_breaker": {"threshold": 4, "enabled": True}, "interaction_log_size": 3}
    assert config.CIRCUIT_BREAKER_THRESHOLD == 4
    assert config.INTERACTION_LOG_SIZE == 3
