"""
Value types that flow through the command pipeline.

This module provides:
- Position, ObjectAttrs, CanvasObject: canvas rows before and after persistence
- NormalizedToolCall: a provider tool call after coercion and defaults
- ObjectValue / ObjectListValue / SelectionValue / ToggleValue / TextValue:
  the closed set of per-call result values
- ToolResult: one Ok/Err result per original tool call
- CommandResult / TextResponse / DispatchError: the three CommandOutcome shapes
- InteractionLog, CommandContext: the explicit per-invocation context
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Union

from .errors import DispatchErrorKind, ErrorKind
from .tools import CREATE_TOOLS, DELETE_TOOLS, READ_ONLY_TOOLS

DEFAULT_OBJECT_SIZE = 50


@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class ObjectAttrs:
    """Canonical creation payload for one canvas object.

    Attributes:
        type: "rectangle", "circle" or "text".
        position: Top-left corner in canvas coordinates.
        render_data: Opaque JSON-serializable map (fill, stroke, font, ...).
    """
    type: str
    position: Position
    render_data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "position": self.position.to_dict(),
            "data": dict(self.render_data),
        }


@dataclass(frozen=True)
class CanvasObject:
    """A persisted canvas object as returned by the store."""
    id: int
    canvas_id: str
    type: str
    position: Position
    render_data: dict = field(default_factory=dict)
    locked_by: str | None = None
    updated_at: float = 0.0

    @property
    def width(self) -> float:
        return _number(self.render_data.get("width"), DEFAULT_OBJECT_SIZE)

    @property
    def height(self) -> float:
        return _number(self.render_data.get("height"), DEFAULT_OBJECT_SIZE)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "canvas_id": self.canvas_id,
            "type": self.type,
            "position": self.position.to_dict(),
            "data": dict(self.render_data),
            "locked_by": self.locked_by,
            "updated_at": self.updated_at,
        }


def _number(value, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class NormalizedToolCall:
    """A tool call with canonical input types and defaults applied.

    ``call_id`` is provider-supplied and used only for traceability.
    """
    call_id: str
    name: str
    input: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Result values (closed sum type)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ObjectValue:
    object: CanvasObject


@dataclass(frozen=True)
class ObjectListValue:
    objects: tuple[CanvasObject, ...]


@dataclass(frozen=True)
class SelectionValue:
    object_ids: tuple[int, ...]


@dataclass(frozen=True)
class ToggleValue:
    value: bool
    object: CanvasObject | None = None


@dataclass(frozen=True)
class TextValue:
    text: str


ResultValue = Union[ObjectValue, ObjectListValue, SelectionValue, ToggleValue, TextValue]


def value_to_dict(value: ResultValue) -> dict:
    """Serialize a result value with an explicit ``kind`` discriminator."""
    if isinstance(value, ObjectValue):
        return {"kind": "object", "object": value.object.to_dict()}
    if isinstance(value, ObjectListValue):
        return {
            "kind": "object_list",
            "count": len(value.objects),
            "objects": [o.to_dict() for o in value.objects],
        }
    if isinstance(value, SelectionValue):
        return {"kind": "selection", "object_ids": list(value.object_ids)}
    if isinstance(value, ToggleValue):
        return {
            "kind": "toggle",
            "value": value.value,
            "object": value.object.to_dict() if value.object else None,
        }
    if isinstance(value, TextValue):
        return {"kind": "text", "text": value.text}
    raise TypeError(f"Unknown result value type: {type(value).__name__}")


@dataclass(frozen=True)
class ToolResult:
    """Ok(value) or Err(kind) for exactly one original tool call."""
    tool: str
    value: ResultValue | None = None
    error: ErrorKind | None = None
    message: str = ""
    call_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, tool: str, value: ResultValue, call_id: str | None = None) -> ToolResult:
        return cls(tool=tool, value=value, call_id=call_id)

    @classmethod
    def failure(
        cls, tool: str, error: ErrorKind, message: str = "", call_id: str | None = None
    ) -> ToolResult:
        return cls(tool=tool, error=error, message=message, call_id=call_id)

    def objects(self) -> tuple[CanvasObject, ...]:
        """All canvas objects embedded in this result (empty on error)."""
        if isinstance(self.value, ObjectValue):
            return (self.value.object,)
        if isinstance(self.value, ObjectListValue):
            return self.value.objects
        if isinstance(self.value, ToggleValue) and self.value.object is not None:
            return (self.value.object,)
        return ()

    def to_dict(self) -> dict:
        d: dict = {"tool": self.tool, "ok": self.ok, "call_id": self.call_id}
        if self.ok:
            d["result"] = value_to_dict(self.value)
        else:
            d["error"] = self.error.value
            d["message"] = self.message
        return d


# ---------------------------------------------------------------------------
# Command outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandResult:
    """Ok(list[ToolResult]): one result per executed call, in call order.

    Attributes:
        results: Per-call results, index-aligned with the normalized calls.
        dropped: Tool names the model emitted that are not in the tool set.
    """
    results: tuple[ToolResult, ...]
    dropped: tuple[str, ...] = ()

    def counts(self) -> dict[str, int]:
        created = updated = deleted = failed = 0
        for r in self.results:
            if not r.ok:
                failed += 1
            elif r.tool in READ_ONLY_TOOLS:
                continue
            elif r.tool in CREATE_TOOLS:
                created += len(r.objects())
            elif r.tool in DELETE_TOOLS:
                deleted += len(r.objects())
            else:
                updated += len(r.objects())
        return {"created": created, "updated": updated, "deleted": deleted, "failed": failed}

    def summary(self) -> str:
        """Human-readable "Created X, updated Y, N failed" line."""
        c = self.counts()
        parts = []
        if c["created"]:
            parts.append(f"created {c['created']}")
        if c["updated"]:
            parts.append(f"updated {c['updated']}")
        if c["deleted"]:
            parts.append(f"deleted {c['deleted']}")
        if c["failed"]:
            parts.append(f"{c['failed']} failed")
        for r in self.results:
            if r.ok and isinstance(r.value, TextValue):
                parts.append(r.value.text)
        if not parts:
            return "No changes"
        text = ", ".join(parts)
        return text[0].upper() + text[1:]

    def broadcast_messages(self) -> list[dict]:
        """Canvas-channel messages for every mutated object, in call order."""
        messages = []
        for r in self.results:
            if not r.ok or r.tool in READ_ONLY_TOOLS:
                continue
            if r.tool in CREATE_TOOLS:
                event = "object_created"
            elif r.tool in DELETE_TOOLS:
                event = "object_deleted"
            else:
                event = "object_updated"
            for obj in r.objects():
                messages.append({"type": event, "object": obj.to_dict()})
        return messages

    def to_dict(self) -> dict:
        return {
            "status": "ok",
            "summary": self.summary(),
            "results": [r.to_dict() for r in self.results],
            "dropped": list(self.dropped),
        }


@dataclass(frozen=True)
class TextResponse:
    """Ok(TextResponse): the model answered in prose without calling tools."""
    text: str

    def to_dict(self) -> dict:
        return {"status": "ok", "text": self.text}


@dataclass(frozen=True)
class DispatchError:
    """Err(DispatchErrorKind): the command was aborted as a whole."""
    kind: DispatchErrorKind
    message: str
    status: int | None = None

    def to_dict(self) -> dict:
        return {
            "status": "error",
            "error": self.kind.value,
            "message": self.message,
            "upstream_status": self.status,
        }


CommandOutcome = Union[CommandResult, TextResponse, DispatchError]


# ---------------------------------------------------------------------------
# Invocation context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Interaction:
    command: str
    summary: str
    timestamp: float


class InteractionLog:
    """Bounded log of recent commands, used only to enrich the next prompt.

    Owned by the caller and handed to each invocation through
    ``CommandContext.recent``; the dispatcher appends after every command.
    """

    def __init__(self, maxlen: int = 10):
        self._entries: deque[Interaction] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def record(self, command: str, summary: str) -> None:
        with self._lock:
            self._entries.append(Interaction(command, summary, time.time()))

    def entries(self) -> list[Interaction]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class CommandContext:
    """Per-invocation client context.

    Attributes:
        current_color: The client's active color; used when a create names none.
        viewport: ``{"x", "y", "width", "height"}`` of the client view, or None.
        recent: Recent-interaction log for prompt enrichment, or None.
    """
    current_color: str | None = None
    viewport: dict | None = None
    recent: InteractionLog | None = None
