"""Single-object mutation handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from canvas_agent.colors import normalize_color
from canvas_agent.errors import ValidationFailure
from canvas_agent.models import ObjectListValue, ObjectValue, Position, ToggleValue
from canvas_agent.tool_handlers.params import number, object_ids, text

if TYPE_CHECKING:
    from canvas_agent.batch import ExecutionContext


def handle_move_object(ctx: "ExecutionContext", tool_args: dict) -> ObjectValue:
    obj = ctx.require(tool_args.get("object_id"))
    x = number(tool_args, "x", required=True)
    y = number(tool_args, "y", required=True)
    if tool_args.get("use_delta"):
        x, y = obj.position.x + x, obj.position.y + y
    return ObjectValue(ctx.store.update_one(obj.id, {"position": Position(x, y)}))


def handle_resize_object(ctx: "ExecutionContext", tool_args: dict) -> ObjectValue:
    obj = ctx.require(tool_args.get("object_id"))
    width = number(tool_args, "width", required=True, minimum=1)
    if tool_args.get("maintain_aspect_ratio"):
        height = width * (obj.height / obj.width) if obj.width else width
    else:
        height = number(tool_args, "height", default=obj.height, minimum=1)
    return ObjectValue(ctx.store.update_one(obj.id, {"data": {"width": width, "height": height}}))


def handle_rotate_object(ctx: "ExecutionContext", tool_args: dict) -> ObjectValue:
    obj = ctx.require(tool_args.get("object_id"))
    angle = number(tool_args, "angle", required=True, minimum=0, maximum=360)
    return ObjectValue(ctx.store.update_one(obj.id, {"data": {"rotation": angle}}))


def handle_change_style(ctx: "ExecutionContext", tool_args: dict) -> ObjectValue:
    obj = ctx.require(tool_args.get("object_id"))
    patch = {}
    for key in ("fill", "stroke"):
        if tool_args.get(key):
            patch[key] = normalize_color(tool_args[key])
    stroke_width = number(tool_args, "stroke_width", minimum=0)
    if stroke_width is not None:
        patch["stroke_width"] = stroke_width
    opacity = number(tool_args, "opacity", minimum=0, maximum=1)
    if opacity is not None:
        patch["opacity"] = opacity
    if not patch:
        raise ValidationFailure("change_style needs at least one of fill, stroke, stroke_width, opacity")
    return ObjectValue(ctx.store.update_one(obj.id, {"data": patch}))


def handle_update_text(ctx: "ExecutionContext", tool_args: dict) -> ObjectValue:
    obj = ctx.require(tool_args.get("object_id"))
    if obj.type != "text":
        raise ValidationFailure(f"Object {obj.id} is a {obj.type}, not a text object")
    patch = {}
    content = text(tool_args, "text")
    if content is not None:
        patch["text"] = content
    font_size = number(tool_args, "font_size", minimum=1)
    if font_size is not None:
        patch["font_size"] = font_size
    if tool_args.get("color"):
        patch["color"] = normalize_color(tool_args["color"])
    if not patch:
        raise ValidationFailure("update_text needs at least one of text, font_size, color")
    return ObjectValue(ctx.store.update_one(obj.id, {"data": patch}))


def handle_delete_object(ctx: "ExecutionContext", tool_args: dict) -> ObjectValue:
    obj = ctx.require(tool_args.get("object_id"))
    return ObjectValue(ctx.store.delete_one(obj.id))


def handle_group_objects(ctx: "ExecutionContext", tool_args: dict) -> ObjectListValue:
    # Resolve and lock-check everything first so a bad id leaves the group untouched
    targets = [ctx.require(i) for i in object_ids(tool_args, ctx.selected_ids)]
    ctx.require_writable(targets)
    name = text(tool_args, "group_name") or f"group-{targets[0].id}"
    return ObjectListValue(tuple(ctx.store.update_one(o.id, {"data": {"group": name}}) for o in targets))


def handle_toggle_visibility(ctx: "ExecutionContext", tool_args: dict) -> ToggleValue:
    obj = ctx.require(tool_args.get("object_id"))
    visible = tool_args.get("visible")
    if visible is None:
        visible = not obj.render_data.get("visible", True)
    elif not isinstance(visible, bool):
        raise ValidationFailure(f"'visible' must be true or false, got {visible!r}")
    updated = ctx.store.update_one(obj.id, {"data": {"visible": visible}})
    return ToggleValue(visible, updated)
