"""
System prompt and per-command prompt construction for the dispatcher.

The per-command prompt carries the canvas state the model needs to emit
tool calls by id: statistics always, the object list only while it is small,
the client's selection, color and viewport, and the recent-interaction log.
"""

import json

from .canvas_stats import calculate_stats, object_color
from .models import CanvasObject, CommandContext

# Above this, only statistics are sent and the model selects by description
MAX_LISTED_OBJECTS = 50

SYSTEM_PROMPT = """You are a canvas assistant. You turn the user's instruction into tool calls that create, modify and arrange objects on a shared 2D canvas.

## Rules
- Always act through tools. Reply in plain text only when no tool applies.
- Refer to existing objects by their numeric id from the canvas state below.
- When the user says "it", "these" or "selected", use the selected object ids.
- Several identical objects: call create_shape/create_text once with count.
- Arrangements (rows, grids, circles, stars, paths, "X above Y"): use the
  arrange_* tools and let them compute coordinates. Do not move objects one by
  one to build a layout.
- On a busy canvas, resolve descriptions ("the big red ones") with
  select_objects_by_description using the canvas statistics.
- Colors may be names (red, light blue) or hex (#FF0000).
- If the instruction is ambiguous, call ask_clarification instead of guessing.

## Coordinates
Positions are top-left corners in pixels; x grows right, y grows down.
Angles are degrees: 0 points right, 90 points down."""


def get_system_prompt() -> str:
    return SYSTEM_PROMPT


def _describe(obj: CanvasObject) -> dict:
    entry = {
        "id": obj.id,
        "type": obj.type,
        "x": obj.position.x,
        "y": obj.position.y,
        "width": obj.width,
        "height": obj.height,
    }
    color = object_color(obj)
    if color:
        entry["color"] = color
    if obj.type == "text" and "text" in obj.render_data:
        entry["text"] = obj.render_data["text"]
    return entry


def build_command_prompt(
    text: str,
    objects: list[CanvasObject],
    selected_ids: list | tuple = (),
    context: CommandContext | None = None,
) -> str:
    """Compose the user-turn prompt: canvas state, client context, then the command."""
    context = context or CommandContext()
    sections = [f"## Canvas statistics\n{json.dumps(calculate_stats(objects))}"]

    if objects and len(objects) <= MAX_LISTED_OBJECTS:
        lines = "\n".join(json.dumps(_describe(o)) for o in objects)
        sections.append(f"## Objects on canvas\n{lines}")
    elif objects:
        sections.append(
            f"## Objects on canvas\n{len(objects)} objects (too many to list; "
            "use select_objects_by_description)"
        )
    else:
        sections.append("## Objects on canvas\nThe canvas is empty.")

    if selected_ids:
        sections.append(f"## Selected object ids\n{list(selected_ids)}")
    if context.current_color:
        sections.append(f"## Current color\n{context.current_color} (use when no color is named)")
    if context.viewport:
        sections.append(f"## Viewport\n{json.dumps(context.viewport)}")
    if context.recent is not None and len(context.recent):
        history = "\n".join(f"- \"{i.command}\" -> {i.summary}" for i in context.recent.entries())
        sections.append(f"## Recent commands\n{history}")

    sections.append(f"## Command\n{text}")
    return "\n\n".join(sections)
