from __future__ import annotations
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from canvas_agent.batch import ExecutionContext
    from canvas_agent.models import ResultValue

ToolHandler = Callable[["ExecutionContext", dict], "ResultValue"]

# Every non-create tool; creates are expanded and batch-inserted by batch.py
TOOL_REGISTRY: dict[str, ToolHandler] = {}

# ── Single-object mutations ──
from canvas_agent.tool_handlers.objects import (
    handle_move_object,
    handle_resize_object,
    handle_rotate_object,
    handle_change_style,
    handle_update_text,
    handle_delete_object,
    handle_group_objects,
    handle_toggle_visibility,
)

# ── Queries ──
from canvas_agent.tool_handlers.query import (
    handle_list_objects,
    handle_select_objects_by_description,
    handle_ask_clarification,
)

# ── Arrangements ──
from canvas_agent.tool_handlers.arrange import (
    handle_arrange_objects,
    handle_arrange_in_star,
    handle_arrange_along_path,
    handle_arrange_with_relationships,
    handle_align_objects,
    handle_arrange_objects_with_pattern,
)

TOOL_REGISTRY.update({
    # Mutations
    "move_object": handle_move_object,
    "resize_object": handle_resize_object,
    "rotate_object": handle_rotate_object,
    "change_style": handle_change_style,
    "update_text": handle_update_text,
    "delete_object": handle_delete_object,
    "group_objects": handle_group_objects,
    "toggle_visibility": handle_toggle_visibility,
    # Queries
    "list_objects": handle_list_objects,
    "select_objects_by_description": handle_select_objects_by_description,
    "ask_clarification": handle_ask_clarification,
    # Arrangements
    "arrange_objects": handle_arrange_objects,
    "arrange_in_star": handle_arrange_in_star,
    "arrange_along_path": handle_arrange_along_path,
    "arrange_with_relationships": handle_arrange_with_relationships,
    "align_objects": handle_align_objects,
    "arrange_objects_with_pattern": handle_arrange_objects_with_pattern,
})
