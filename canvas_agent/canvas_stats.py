"""
Canvas statistics for prompt enrichment and server-side selection.

Instead of sending every object on a large canvas to the model, the prompt
carries a compact summary (size percentiles, colors, types). The model turns a
description like "the big red ones" into filter criteria, and
``apply_filter`` resolves those criteria against the real objects.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .colors import normalize_color
from .models import CanvasObject

PERCENTILES = (10, 20, 30, 40, 50, 60, 70, 80, 90)

# Rectangles whose sides differ by at most this many pixels count as squares
SQUARE_TOLERANCE = 10
# "center" means within this fraction of the viewport size from its middle
CENTER_FRACTION = 0.2


def object_size(obj: CanvasObject) -> float | None:
    """max(width, height) from render data, or whichever is present, else None."""
    data = obj.render_data
    width, height = data.get("width"), data.get("height")
    if width is not None and height is not None:
        return max(width, height)
    if width is not None:
        return width
    return height


def object_color(obj: CanvasObject) -> str | None:
    return obj.render_data.get("fill") or obj.render_data.get("color")


def _percentile(sorted_values: list, p: int):
    return sorted_values[int(p / 100 * (len(sorted_values) - 1))]


def calculate_stats(objects: Sequence[CanvasObject]) -> dict:
    """Summarize *objects*: size percentiles, unique colors and types, count."""
    sizes = sorted(s for s in (object_size(o) for o in objects) if s is not None)
    if sizes:
        size_stats = {"min": sizes[0], "max": sizes[-1], "median": _percentile(sizes, 50)}
        size_stats.update({f"p{p}": _percentile(sizes, p) for p in PERCENTILES})
    else:
        size_stats = {"min": 0, "max": 0, "median": 0}
        size_stats.update({f"p{p}": 0 for p in PERCENTILES})

    return {
        "size_stats": size_stats,
        "colors": sorted({c for c in (object_color(o) for o in objects) if c}),
        "shape_types": sorted({o.type for o in objects}),
        "total_objects": len(objects),
    }


def apply_filter(
    objects: Sequence[CanvasObject],
    criteria: Mapping,
    viewport: Mapping | None = None,
) -> list[int]:
    """Return ids of *objects* matching every given criterion.

    Criteria keys: ``color``, ``size_min``, ``size_max``, ``shape_type``
    ("square" = near-square rectangle), ``position`` (needs *viewport*;
    ignored without one).
    """
    return [o.id for o in objects if _matches(o, criteria, viewport)]


def _matches(obj: CanvasObject, criteria: Mapping, viewport: Mapping | None) -> bool:
    color = criteria.get("color")
    if color is not None:
        actual = object_color(obj)
        if actual is None or normalize_color(actual) != normalize_color(color):
            return False

    size_min, size_max = criteria.get("size_min"), criteria.get("size_max")
    if size_min is not None or size_max is not None:
        size = object_size(obj)
        if size is None:
            return False
        if size_min is not None and size < size_min:
            return False
        if size_max is not None and size > size_max:
            return False

    shape_type = criteria.get("shape_type")
    if shape_type == "square":
        width, height = obj.render_data.get("width"), obj.render_data.get("height")
        if obj.type != "rectangle" or width is None or height is None:
            return False
        if abs(width - height) > SQUARE_TOLERANCE:
            return False
    elif shape_type is not None and obj.type != shape_type:
        return False

    position = criteria.get("position")
    if position is not None and viewport:
        return _in_region(obj, position, viewport)
    return True


def _in_region(obj: CanvasObject, region: str, viewport: Mapping) -> bool:
    cx = viewport.get("x", 0) + viewport["width"] / 2
    cy = viewport.get("y", 0) + viewport["height"] / 2
    x, y = obj.position.x, obj.position.y

    if region == "center":
        return (abs(x - cx) <= viewport["width"] * CENTER_FRACTION
                and abs(y - cy) <= viewport["height"] * CENTER_FRACTION)
    checks = {
        "top": y < cy,
        "bottom": y > cy,
        "left": x < cx,
        "right": x > cx,
    }
    return all(checks.get(part, True) for part in region.split("-"))
