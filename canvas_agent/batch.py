"""
Batch splitter & executor.

Creation calls are expanded (``count``) into one atomic ``insert_batch``;
every other call runs individually, in order, through ``TOOL_REGISTRY``. The
results are then re-interleaved so the caller gets exactly one ToolResult per
normalized call, index-aligned with its input.

Failure policy:
  - A failed ``insert_batch`` fails every create in the command, and nothing
    from the batch is persisted.
  - Individual calls fail independently and never roll back earlier calls or
    the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import config
from .colors import normalize_color
from .errors import (
    ConstraintViolation,
    ErrorKind,
    ObjectNotFound,
    StoreError,
    ToolExecutionError,
    ValidationFailure,
)
from .logging import log_error, log_tool_call, log_tool_result
from .models import (
    CanvasObject,
    CommandContext,
    NormalizedToolCall,
    ObjectAttrs,
    ObjectListValue,
    ObjectValue,
    Position,
    ToolResult,
)
from .store import CanvasStore
from .tool_handlers.params import number, text
from .tool_timing import ToolTimer, warn_if_slow
from .tools import CREATE_TOOLS

logger = logging.getLogger("canvas_agent")

BASE_WIDTH = 50
MAX_COUNT = 100


@dataclass
class ExecutionContext:
    """Everything a tool handler may touch while executing one command.

    Attributes:
        store: Persistence collaborator.
        canvas_id: Canvas the command targets; objects elsewhere are "not found".
        selected_ids: Client selection, used when a call names no objects.
        command: Client context (current color, viewport, recent log).
    """
    store: CanvasStore
    canvas_id: str
    selected_ids: tuple = ()
    command: CommandContext = field(default_factory=CommandContext)

    def require(self, object_id) -> CanvasObject:
        """Return the object with *object_id* on this canvas or raise."""
        if object_id is None and len(self.selected_ids) == 1:
            object_id = self.selected_ids[0]
        if object_id is None:
            raise ValidationFailure("'object_id' is required")
        if isinstance(object_id, bool) or not isinstance(object_id, int):
            raise ValidationFailure(f"'object_id' must be an integer, got {object_id!r}")
        obj = self.store.get_object(object_id)
        if obj is None or obj.canvas_id != self.canvas_id:
            raise ObjectNotFound(object_id)
        return obj

    def require_writable(self, objects: Iterable[CanvasObject]) -> None:
        """Raise ``ConstraintViolation`` if any of *objects* is locked for editing.

        Multi-object handlers call this before their first write so a locked
        target fails the call without leaving the others half-moved.
        """
        locked = [o.id for o in objects if o.locked_by]
        if locked:
            raise ConstraintViolation(f"Objects {locked} are locked by another user")

    def canvas_objects(self) -> list[CanvasObject]:
        return self.store.list_objects(self.canvas_id)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def execute(calls: Sequence[NormalizedToolCall], ctx: ExecutionContext) -> list[ToolResult]:
    """Execute *calls* and return one ToolResult per call, in call order."""
    creates = [c for c in calls if c.name in CREATE_TOOLS]
    others = [c for c in calls if c.name not in CREATE_TOOLS]

    with ToolTimer() as timer:
        create_results = execute_creates(creates, ctx)
        other_results = [execute_one(call, ctx) for call in others]
    warn_if_slow(logger, f"Batch of {len(calls)} tool calls", timer.elapsed_ms, config.BATCH_WARN_MS)

    # Walk the original order, consuming each sublist in its own order
    create_iter, other_iter = iter(create_results), iter(other_results)
    return [next(create_iter) if c.name in CREATE_TOOLS else next(other_iter) for c in calls]


# ---------------------------------------------------------------------------
# Creates (one atomic insert)
# ---------------------------------------------------------------------------

def execute_creates(creates: Sequence[NormalizedToolCall], ctx: ExecutionContext) -> list[ToolResult]:
    results: list[ToolResult | None] = [None] * len(creates)
    rows: list[ObjectAttrs] = []
    spans: list[tuple[int, int, int]] = []  # (create index, first row, row count)

    for i, call in enumerate(creates):
        log_tool_call(call.name, call.input)
        try:
            expanded = expand_create(call, ctx.command)
        except ToolExecutionError as e:
            log_tool_result(call.name, False, str(e))
            results[i] = ToolResult.failure(call.name, e.kind, str(e), call.call_id)
            continue
        spans.append((i, len(rows), len(expanded)))
        rows.extend(expanded)

    if not rows:
        return results  # type: ignore[return-value]

    try:
        created = ctx.store.insert_batch(ctx.canvas_id, rows)
        if len(created) != len(rows):
            raise StoreError(f"insert_batch returned {len(created)} objects for {len(rows)} rows")
    except StoreError as e:
        log_error(
            f"Batch insert of {len(rows)} objects failed",
            exc=e,
            context={"canvas_id": ctx.canvas_id, "calls": len(spans)},
        )
        for i, _, _ in spans:
            log_tool_result(creates[i].name, False, str(e))
            results[i] = ToolResult.failure(
                creates[i].name, ErrorKind.BATCH_FAILED, str(e), creates[i].call_id
            )
        return results  # type: ignore[return-value]

    logger.debug(f"Batch inserted {len(created)} objects from {len(spans)} create calls")
    for i, start, count in spans:
        chunk = created[start:start + count]
        value = ObjectValue(chunk[0]) if count == 1 else ObjectListValue(tuple(chunk))
        log_tool_result(creates[i].name, True)
        results[i] = ToolResult.success(creates[i].name, value, creates[i].call_id)
    return results  # type: ignore[return-value]


def expand_create(call: NormalizedToolCall, context: CommandContext) -> list[ObjectAttrs]:
    """Expand one create call into ``count`` rows laid out left to right.

    Row *i* sits at ``x + i * (width + spacing)``; spacing defaults to
    1.5 x width.

    Raises:
        ValidationFailure: for missing or out-of-range parameters.
    """
    args = call.input
    x = number(args, "x", required=True)
    y = number(args, "y", required=True)
    count = number(args, "count", default=1, minimum=1, maximum=MAX_COUNT)
    if count != int(count):
        raise ValidationFailure(f"'count' must be a whole number, got {count}")
    count = int(count)

    if call.name == "create_shape":
        shape = args.get("type")
        if shape not in ("rectangle", "circle"):
            raise ValidationFailure(f"Unknown shape type {shape!r}")
        width = number(args, "width", default=100, minimum=1)
        height = number(args, "height", default=100, minimum=1)
        data = {
            "width": width,
            "height": height,
            "fill": resolve_color(args.get("fill"), context),
            "stroke": normalize_color(args.get("stroke") or "#1E40AF"),
            "stroke_width": number(args, "stroke_width", default=2, minimum=0),
        }
        opacity = number(args, "opacity", minimum=0, maximum=1)
        if opacity is not None:
            data["opacity"] = opacity
        obj_type, base_width = shape, width
    else:
        data = {
            "text": text(args, "text", required=True),
            "font_size": number(args, "font_size", default=16, minimum=1),
            "font_family": args.get("font_family") or "Arial",
            "color": resolve_color(args.get("color"), context),
            "align": args.get("align") or "left",
        }
        obj_type, base_width = "text", BASE_WIDTH

    spacing = number(args, "spacing")
    if spacing is None:
        spacing = base_width * 1.5
    return [
        ObjectAttrs(type=obj_type, position=Position(x + i * (base_width + spacing), y), render_data=dict(data))
        for i in range(count)
    ]


def resolve_color(value, context: CommandContext) -> str:
    """Explicit color, else the client's current color, else the default fill."""
    return normalize_color(value or context.current_color or config.DEFAULT_FILL)


# ---------------------------------------------------------------------------
# Individual calls
# ---------------------------------------------------------------------------

def execute_one(call: NormalizedToolCall, ctx: ExecutionContext) -> ToolResult:
    from .tool_handlers import TOOL_REGISTRY

    log_tool_call(call.name, call.input)
    handler = TOOL_REGISTRY.get(call.name)
    if handler is None:
        log_tool_result(call.name, False, "no handler registered")
        return ToolResult.failure(
            call.name, ErrorKind.VALIDATION_FAILURE, f"No handler for tool '{call.name}'", call.call_id
        )
    try:
        with ToolTimer() as timer:
            value = handler(ctx, call.input)
    except (ToolExecutionError, StoreError) as e:
        log_tool_result(call.name, False, str(e))
        return ToolResult.failure(call.name, e.kind, str(e), call.call_id)
    except Exception as e:
        log_error(f"Tool {call.name} crashed", exc=e, context={"tool_name": call.name, "tool_args": call.input})
        log_tool_result(call.name, False, str(e))
        return ToolResult.failure(
            call.name, ErrorKind.VALIDATION_FAILURE, f"Internal error in {call.name}: {e}", call.call_id
        )
    logger.debug(f"{call.name} finished in {timer.elapsed_ms}ms")
    log_tool_result(call.name, True)
    return ToolResult.success(call.name, value, call.call_id)
