"""Arrangement handlers: build a LayoutSpec, run the layout engine, persist moves.

Only objects whose position actually changes are written back, so reference
objects in a relational layout are not reported as updated.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import config
from canvas_agent.errors import ValidationFailure
from canvas_agent.layout import (
    ALIGNMENTS,
    PATH_TYPES,
    PATTERNS,
    AlignSpec,
    CircularSpec,
    DistributeSpec,
    GridSpec,
    LayoutError,
    LayoutObject,
    PathSpec,
    PatternSpec,
    RelationalSpec,
    StackSpec,
    StarSpec,
    align,
    apply_placements,
    compute_layout,
)
from canvas_agent.models import ObjectListValue, Position
from canvas_agent.tool_handlers.params import choice, number, object_ids
from canvas_agent.tool_timing import ToolTimer, warn_if_slow

if TYPE_CHECKING:
    from canvas_agent.batch import ExecutionContext
    from canvas_agent.layout import LayoutSpec

logger = logging.getLogger("canvas_agent")

LAYOUT_TYPES = ("horizontal", "vertical", "grid", "circular", "stack")

_PATH_PARAMS = (
    "start_x", "start_y", "end_x", "end_y", "center_x", "center_y", "radius",
    "start_angle", "end_angle", "control1_x", "control1_y", "control2_x", "control2_y",
    "start_radius", "end_radius", "rotations",
)
_PATTERN_NUMBERS = ("spacing", "amplitude", "frequency", "start_x", "start_y")
PATTERN_DIRECTIONS = ("horizontal", "vertical", "diagonal-right", "diagonal-left")
SORT_KEYS = ("none", "x", "y", "size", "id")


def _run_layout(ctx: "ExecutionContext", spec: "LayoutSpec", alignment: str | None = None) -> ObjectListValue:
    targets = [ctx.require(i) for i in spec.object_ids]
    geometry = {o.id: LayoutObject.from_canvas_object(o) for o in targets}

    with ToolTimer() as timer:
        try:
            placements = compute_layout(spec, geometry)
            if alignment:
                moved = apply_placements([geometry[i] for i in spec.object_ids], placements)
                placements = align(moved, alignment)
        except LayoutError as e:
            raise ValidationFailure(str(e)) from e
    warn_if_slow(logger, f"{spec.kind} layout of {len(targets)} objects", timer.elapsed_ms, config.LAYOUT_WARN_MS)

    moves = [
        (obj, placement) for obj, placement in zip(targets, placements)
        if (placement.x, placement.y) != (obj.position.x, obj.position.y)
    ]
    ctx.require_writable(obj for obj, _ in moves)
    return ObjectListValue(tuple(
        ctx.store.update_one(obj.id, {"position": Position(placement.x, placement.y)}) for obj, placement in moves
    ))


def handle_arrange_objects(ctx: "ExecutionContext", tool_args: dict) -> ObjectListValue:
    ids = tuple(object_ids(tool_args, ctx.selected_ids))
    layout_type = choice(tool_args, "layout_type", LAYOUT_TYPES, required=True)
    alignment = choice(tool_args, "alignment", ALIGNMENTS)
    spacing = number(tool_args, "spacing", minimum=0)

    if layout_type in ("horizontal", "vertical"):
        spec = DistributeSpec(ids, axis=layout_type, spacing=spacing)
    elif layout_type == "grid":
        spec = GridSpec(
            ids,
            columns=number(tool_args, "columns", minimum=1),
            rows=number(tool_args, "rows", minimum=1),
            spacing=20 if spacing is None else spacing,
        )
    elif layout_type == "circular":
        spec = CircularSpec(ids, radius=number(tool_args, "radius", default=200, minimum=0))
    else:
        return _run_layout(ctx, StackSpec(ids, spacing=20 if spacing is None else spacing, alignment=alignment))
    return _run_layout(ctx, spec, alignment)


def handle_arrange_in_star(ctx: "ExecutionContext", tool_args: dict) -> ObjectListValue:
    spec = StarSpec(
        tuple(object_ids(tool_args, ctx.selected_ids)),
        points=number(tool_args, "points", default=5, minimum=3),
        outer_radius=number(tool_args, "outer_radius", default=300, minimum=0),
        inner_radius=number(tool_args, "inner_radius", minimum=0),
    )
    return _run_layout(ctx, spec)


def handle_arrange_along_path(ctx: "ExecutionContext", tool_args: dict) -> ObjectListValue:
    path_type = choice(tool_args, "path_type", PATH_TYPES, required=True)
    params = {}
    for key in _PATH_PARAMS:
        value = number(tool_args, key)
        if value is not None:
            params[key] = value
    spec = PathSpec(tuple(object_ids(tool_args, ctx.selected_ids)), path_type=path_type, params=params)
    return _run_layout(ctx, spec)


def handle_arrange_with_relationships(ctx: "ExecutionContext", tool_args: dict) -> ObjectListValue:
    relations = tool_args.get("relationships")
    if not isinstance(relations, list) or not relations:
        raise ValidationFailure("'relationships' must be a non-empty list")

    ids: list[int] = []
    for rel in relations:
        if not isinstance(rel, dict):
            raise ValidationFailure(f"Relationship entries must be objects, got {rel!r}")
        number(rel, "spacing", minimum=0)
        for key in ("subject_id", "reference_id", "reference_id_2"):
            object_id = rel.get(key)
            if object_id is not None and object_id not in ids:
                ids.append(object_id)
    spec = RelationalSpec(
        tuple(ids),
        relations=tuple(relations),
        spacing=number(tool_args, "spacing", default=20, minimum=0),
    )
    return _run_layout(ctx, spec)


def handle_align_objects(ctx: "ExecutionContext", tool_args: dict) -> ObjectListValue:
    spec = AlignSpec(
        tuple(object_ids(tool_args, ctx.selected_ids)),
        alignment=choice(tool_args, "alignment", ALIGNMENTS, required=True),
    )
    return _run_layout(ctx, spec)


def handle_arrange_objects_with_pattern(ctx: "ExecutionContext", tool_args: dict) -> ObjectListValue:
    pattern = choice(tool_args, "pattern", PATTERNS, required=True)
    params = {k: number(tool_args, k) for k in _PATTERN_NUMBERS if tool_args.get(k) is not None}
    if tool_args.get("direction"):
        params["direction"] = choice(tool_args, "direction", PATTERN_DIRECTIONS)
    if tool_args.get("sort_by"):
        params["sort_by"] = choice(tool_args, "sort_by", SORT_KEYS)
    spec = PatternSpec(tuple(object_ids(tool_args, ctx.selected_ids)), pattern=pattern, params=params)
    return _run_layout(ctx, spec)
