"""All REST + SSE endpoints for the FastAPI backend."""

import json
import os
import re
import time

import config
from fastapi import APIRouter, HTTPException
from sse_starlette.sse import EventSourceResponse

from canvas_agent import circuit_breaker
from canvas_agent.errors import DispatchErrorKind
from canvas_agent.models import CommandContext, DispatchError, InteractionLog, TextResponse
from canvas_agent.store import InMemoryCanvasStore
from canvas_agent.supervisor import ExecutionSupervisor

from .models import (
    CanvasCreateRequest,
    CanvasInfo,
    CommandRequest,
    CommandResponse,
    ConfigUpdate,
    ServerStatus,
)
from .streaming import CanvasBroadcaster

router = APIRouter(prefix="/api")

# These are injected by app.py lifespan
store: InMemoryCanvasStore = None  # type: ignore[assignment]
supervisor: ExecutionSupervisor = None  # type: ignore[assignment]
broadcaster: CanvasBroadcaster = None  # type: ignore[assignment]
_start_time: float = 0.0
_canvas_names: dict[str, str] = {}
_interaction_logs: dict[str, InteractionLog] = {}

_SAFE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")

# HTTP status for each command-aborting error
_ERROR_STATUS = {
    DispatchErrorKind.CANVAS_NOT_FOUND: 404,
    DispatchErrorKind.MISSING_CREDENTIAL: 503,
    DispatchErrorKind.UPSTREAM_ERROR: 502,
    DispatchErrorKind.TRANSPORT_FAILURE: 502,
    DispatchErrorKind.MALFORMED_RESPONSE: 502,
    DispatchErrorKind.TIMEOUT: 504,
    DispatchErrorKind.TASK_FAILURE: 500,
    DispatchErrorKind.CANCELLED: 409,
}


def _get_canvas_or_404(canvas_id: str) -> str:
    if not _SAFE_ID_RE.match(canvas_id) or not store.canvas_exists(canvas_id):
        raise HTTPException(status_code=404, detail=f"Canvas '{canvas_id}' not found")
    return canvas_id


def _interaction_log(canvas_id: str) -> InteractionLog:
    log = _interaction_logs.get(canvas_id)
    if log is None:
        log = _interaction_logs[canvas_id] = InteractionLog(maxlen=config.INTERACTION_LOG_SIZE)
    return log


# ---- Canvases ----


@router.post("/canvases", status_code=201)
async def create_canvas(req: CanvasCreateRequest):
    canvas_id = store.create_canvas(req.name)
    _canvas_names[canvas_id] = req.name or canvas_id
    return CanvasInfo(canvas_id=canvas_id, name=_canvas_names[canvas_id]).model_dump()


@router.get("/canvases/{canvas_id}/objects")
async def list_objects(canvas_id: str):
    _get_canvas_or_404(canvas_id)
    return {"objects": [o.to_dict() for o in store.list_objects(canvas_id)]}


# ---- Commands ----


@router.post("/canvases/{canvas_id}/commands")
async def execute_command(canvas_id: str, req: CommandRequest):
    """Run a natural-language command and broadcast the resulting changes."""
    _get_canvas_or_404(canvas_id)
    context = CommandContext(
        current_color=req.current_color,
        viewport=req.viewport.model_dump() if req.viewport else None,
        recent=_interaction_log(canvas_id),
    )
    outcome = await supervisor.run(req.text, canvas_id, req.selected_ids, context)

    if isinstance(outcome, DispatchError):
        raise HTTPException(status_code=_ERROR_STATUS.get(outcome.kind, 500), detail=outcome.to_dict())
    if isinstance(outcome, TextResponse):
        return CommandResponse(text=outcome.text).model_dump()

    broadcaster.publish(canvas_id, outcome.broadcast_messages())
    return CommandResponse(
        summary=outcome.summary(),
        results=[r.to_dict() for r in outcome.results],
        dropped=list(outcome.dropped),
    ).model_dump()


# ---- Events ----


@router.get("/canvases/{canvas_id}/events")
async def canvas_events(canvas_id: str):
    """Canvas-scoped SSE stream of object_created/updated/deleted messages."""
    _get_canvas_or_404(canvas_id)
    queue = broadcaster.subscribe(canvas_id)

    async def event_generator():
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield {"event": event.get("type", "message"), "data": json.dumps(event)}
        finally:
            broadcaster.unsubscribe(canvas_id, queue)

    return EventSourceResponse(event_generator())


# ---- Status ----


@router.get("/status")
async def server_status():
    """Server status (provider, canvases, uptime)."""
    from config import get_api_key

    adapter = supervisor.agent.adapter
    return ServerStatus(
        provider=adapter.provider,
        model=adapter.model_name,
        canvases=len(_canvas_names),
        uptime_seconds=time.time() - _start_time,
        api_key_configured=bool(get_api_key(adapter.provider)),
        circuit_state=circuit_breaker.get_state(adapter.provider),
    ).model_dump()


# ---- Config ----

_SECRET_KEYS = {"api_key", "anthropic_api_key", "openai_api_key", "groq_api_key", "google_api_key"}


@router.get("/config")
async def get_config():
    """Get current config (no secrets)."""
    loaded = config._load_config()
    providers = {p: {**defaults} for p, defaults in config._PROVIDER_DEFAULTS.items()}
    for prov, values in loaded.pop("providers", {}).items():
        providers.setdefault(prov, {}).update(values)
    cfg = {
        "llm_provider": config.LLM_PROVIDER,
        "command_timeout_seconds": config.COMMAND_TIMEOUT_SECONDS,
        "interaction_log_size": config.INTERACTION_LOG_SIZE,
        "default_fill": config.DEFAULT_FILL,
        **loaded,
        "providers": providers,
    }
    for key in _SECRET_KEYS:
        cfg.pop(key, None)
    cfg["_descriptions"] = config.CONFIG_DESCRIPTIONS
    return cfg


@router.put("/config")
async def update_config(req: ConfigUpdate):
    """Merge partial config into the user config.json and hot-reload it.

    The running agent keeps its adapter; a provider change only takes effect
    after a restart.
    """
    path = config.CONFIG_PATH
    current = {}
    if path.exists():
        try:
            current = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            pass

    def _merge(base, update):
        for k, v in update.items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                _merge(base[k], v)
            else:
                base[k] = v

    sanitized = {k: v for k, v in req.config.items() if k not in _SECRET_KEYS and k != "_descriptions"}
    _merge(current, sanitized)

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(current, indent=2), encoding="utf-8")
    os.replace(tmp, path)

    config.reload_config()
    needs_restart = config.LLM_PROVIDER != supervisor.agent.adapter.provider
    return {"status": "saved", "needs_restart": needs_restart}
