"""Read-only handlers: listing, selection, clarification."""

from __future__ import annotations

from typing import TYPE_CHECKING

from canvas_agent.canvas_stats import apply_filter
from canvas_agent.models import ObjectListValue, SelectionValue, TextValue
from canvas_agent.tool_handlers.params import text

if TYPE_CHECKING:
    from canvas_agent.batch import ExecutionContext

_FILTER_KEYS = ("color", "shape_type", "size_min", "size_max", "position")


def handle_list_objects(ctx: "ExecutionContext", tool_args: dict) -> ObjectListValue:
    objects = ctx.canvas_objects()
    if tool_args.get("type"):
        objects = [o for o in objects if o.type == tool_args["type"]]
    return ObjectListValue(tuple(objects))


def handle_select_objects_by_description(ctx: "ExecutionContext", tool_args: dict) -> SelectionValue:
    criteria = {k: tool_args[k] for k in _FILTER_KEYS if tool_args.get(k) is not None}
    ids = apply_filter(ctx.canvas_objects(), criteria, ctx.command.viewport)
    return SelectionValue(tuple(ids))


def handle_ask_clarification(ctx: "ExecutionContext", tool_args: dict) -> TextValue:
    return TextValue(text(tool_args, "question", required=True))
