"""
Layout engine: pure geometry for arrangement tool calls.

Every function takes the ordered target objects plus kind-specific parameters
and returns one ``Placement`` per input object, in input order. Callers zip
the result positionally against their id list, so that length/order equality
is checked once more in ``compute_layout``.

Conventions:
  - Positions are top-left corners; sizes default to 50x50.
  - Radial and path layouts center each object on its computed point.
  - Angles: 0 = +x (right), 90° = +y (down), i.e. screen coordinates.
  - Results are rounded to 2 decimals so identical input gives identical,
    readable output.

No I/O, no logging, no shared state.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import ClassVar, Union

import numpy as np

DEFAULT_SIZE = 50
DEFAULT_SPACING = 20


class LayoutError(ValueError):
    """Layout parameters are invalid for the requested kind."""


@dataclass(frozen=True)
class LayoutObject:
    """Geometry of one object as the layout engine sees it."""
    id: int
    x: float
    y: float
    width: float = DEFAULT_SIZE
    height: float = DEFAULT_SIZE

    @classmethod
    def from_canvas_object(cls, obj) -> LayoutObject:
        return cls(
            id=obj.id,
            x=float(obj.position.x),
            y=float(obj.position.y),
            width=float(obj.width),
            height=float(obj.height),
        )


@dataclass(frozen=True)
class Placement:
    object_id: int
    x: float
    y: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _r(value) -> float:
    return round(float(value), 2)


def _unchanged(objects: Sequence[LayoutObject]) -> list[Placement]:
    return [Placement(o.id, _r(o.x), _r(o.y)) for o in objects]


def _centered_at(objects: Sequence[LayoutObject], xs, ys) -> list[Placement]:
    """Place each object so its center sits on (xs[i], ys[i])."""
    return [
        Placement(o.id, _r(x - o.width / 2), _r(y - o.height / 2))
        for o, x, y in zip(objects, xs, ys)
    ]


def _centroid(objects: Sequence[LayoutObject]) -> tuple[float, float]:
    centers = np.array([(o.x + o.width / 2, o.y + o.height / 2) for o in objects])
    cx, cy = centers.mean(axis=0)
    return float(cx), float(cy)


def _path_t(n: int) -> np.ndarray:
    """Parameter values index/(n-1); a single object sits mid-path."""
    if n == 1:
        return np.array([0.5])
    return np.linspace(0.0, 1.0, n)


def _reorder(objects: Sequence[LayoutObject], order: list[int], placed: list[Placement]) -> list[Placement]:
    """Map placements computed in *order* back onto input order."""
    out: list[Placement | None] = [None] * len(objects)
    for idx, placement in zip(order, placed):
        out[idx] = placement
    return out  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Grid / radial
# ---------------------------------------------------------------------------

def grid(
    objects: Sequence[LayoutObject],
    *,
    columns: int | None = None,
    rows: int | None = None,
    spacing: float = DEFAULT_SPACING,
    cell_width: float | None = None,
    cell_height: float | None = None,
    start_x: float | None = None,
    start_y: float | None = None,
) -> list[Placement]:
    """Row-major grid anchored at (start_x, start_y), default: first object's position.

    ``columns`` and ``rows`` are mutually exclusive; with neither, the grid is
    ``ceil(sqrt(n))`` columns wide. Cells are as large as the largest object
    unless ``cell_width``/``cell_height`` are given.
    """
    n = len(objects)
    if n == 0:
        return []
    if columns and rows:
        raise LayoutError("Specify columns or rows for a grid, not both")
    if columns:
        cols = int(columns)
    elif rows:
        cols = math.ceil(n / int(rows))
    else:
        cols = math.ceil(math.sqrt(n))
    if cols < 1:
        raise LayoutError(f"Grid needs at least one column, got {cols}")

    cw = cell_width if cell_width is not None else max(o.width for o in objects)
    ch = cell_height if cell_height is not None else max(o.height for o in objects)
    x0 = objects[0].x if start_x is None else start_x
    y0 = objects[0].y if start_y is None else start_y

    placements = []
    for i, o in enumerate(objects):
        row, col = divmod(i, cols)
        placements.append(Placement(o.id, _r(x0 + col * (cw + spacing)), _r(y0 + row * (ch + spacing))))
    return placements


def circular(objects: Sequence[LayoutObject], *, radius: float = 200) -> list[Placement]:
    """Evenly spaced on a circle of *radius* around the objects' centroid."""
    n = len(objects)
    if n <= 1:
        return _unchanged(objects)
    cx, cy = _centroid(objects)
    angles = np.arange(n) * (2 * math.pi / n)
    return _centered_at(objects, cx + radius * np.cos(angles), cy + radius * np.sin(angles))


def star(
    objects: Sequence[LayoutObject],
    *,
    points: int = 5,
    outer_radius: float = 300,
    inner_radius: float | None = None,
) -> list[Placement]:
    """Alternate outer (even index) and inner (odd index) radii around the centroid.

    ``2 * points`` angles are spaced ``180/points`` degrees apart starting at
    the top (-90°). ``inner_radius`` defaults to 40% of ``outer_radius``.
    """
    if points != int(points):
        raise LayoutError(f"A star needs a whole number of points, got {points}")
    points = int(points)
    if points < 3:
        raise LayoutError(f"A star needs at least 3 points, got {points}")
    n = len(objects)
    if n <= 1:
        return _unchanged(objects)
    inner = inner_radius if inner_radius is not None else round(outer_radius * 0.4)
    cx, cy = _centroid(objects)
    idx = np.arange(n)
    radii = np.where(idx % 2 == 0, outer_radius, inner)
    angles = idx * (math.pi / points) - math.pi / 2
    return _centered_at(objects, cx + radii * np.cos(angles), cy + radii * np.sin(angles))


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

def path_line(
    objects: Sequence[LayoutObject],
    *,
    start: tuple[float, float] = (0, 0),
    end: tuple[float, float] = (100, 100),
) -> list[Placement]:
    if not objects:
        return []
    t = _path_t(len(objects))
    xs = start[0] + (end[0] - start[0]) * t
    ys = start[1] + (end[1] - start[1]) * t
    return _centered_at(objects, xs, ys)


def path_arc(
    objects: Sequence[LayoutObject],
    *,
    center: tuple[float, float] = (0, 0),
    radius: float = 200,
    start_angle: float = 0,
    end_angle: float = 180,
) -> list[Placement]:
    if not objects:
        return []
    t = _path_t(len(objects))
    angles = np.radians(start_angle + (end_angle - start_angle) * t)
    return _centered_at(objects, center[0] + radius * np.cos(angles), center[1] + radius * np.sin(angles))


def path_bezier(
    objects: Sequence[LayoutObject],
    *,
    start: tuple[float, float] = (0, 0),
    end: tuple[float, float] = (100, 100),
    control1: tuple[float, float] = (25, -25),
    control2: tuple[float, float] = (75, -25),
) -> list[Placement]:
    """Cubic Bézier: B(t) = (1-t)³P0 + 3(1-t)²t·C1 + 3(1-t)t²·C2 + t³P3."""
    if not objects:
        return []
    t = _path_t(len(objects))
    u = 1 - t
    basis = np.stack([u ** 3, 3 * u ** 2 * t, 3 * u * t ** 2, t ** 3], axis=1)
    control = np.array([start, control1, control2, end], dtype=float)
    pts = basis @ control
    return _centered_at(objects, pts[:, 0], pts[:, 1])


def path_spiral(
    objects: Sequence[LayoutObject],
    *,
    center: tuple[float, float] = (0, 0),
    start_radius: float = 50,
    end_radius: float = 300,
    rotations: float = 2,
) -> list[Placement]:
    if not objects:
        return []
    t = _path_t(len(objects))
    radii = start_radius + (end_radius - start_radius) * t
    angles = t * rotations * 2 * math.pi
    return _centered_at(objects, center[0] + radii * np.cos(angles), center[1] + radii * np.sin(angles))


PATH_TYPES = ("line", "arc", "bezier", "spiral")


def path(objects: Sequence[LayoutObject], path_type: str, params: Mapping | None = None) -> list[Placement]:
    """Dispatch on *path_type* using flat tool-style params (start_x, center_y, ...)."""
    p = dict(params or {})

    def pt(prefix: str, default: tuple[float, float]) -> tuple[float, float]:
        return (p.get(f"{prefix}_x", default[0]), p.get(f"{prefix}_y", default[1]))

    if path_type == "line":
        return path_line(objects, start=pt("start", (0, 0)), end=pt("end", (100, 100)))
    if path_type == "arc":
        return path_arc(
            objects,
            center=pt("center", (0, 0)),
            radius=p.get("radius", 200),
            start_angle=p.get("start_angle", 0),
            end_angle=p.get("end_angle", 180),
        )
    if path_type == "bezier":
        return path_bezier(
            objects,
            start=pt("start", (0, 0)),
            end=pt("end", (100, 100)),
            control1=pt("control1", (25, -25)),
            control2=pt("control2", (75, -25)),
        )
    if path_type == "spiral":
        return path_spiral(
            objects,
            center=pt("center", (0, 0)),
            start_radius=p.get("start_radius", 50),
            end_radius=p.get("end_radius", 300),
            rotations=p.get("rotations", 2),
        )
    raise LayoutError(f"Unknown path type '{path_type}' (expected one of {', '.join(PATH_TYPES)})")


# ---------------------------------------------------------------------------
# Relational constraints
# ---------------------------------------------------------------------------

RELATIONS = (
    "above", "below", "left_of", "right_of",
    "aligned_horizontally_with", "aligned_vertically_with", "centered_between",
)


def relational(
    objects: Sequence[LayoutObject],
    relations: Sequence[Mapping],
    *,
    spacing: float = DEFAULT_SPACING,
) -> list[Placement]:
    """Apply pairwise relations in declaration order against live positions.

    Each relation reads the *current* position of its reference(s), including
    moves made by earlier relations, and writes only its subject. There is no
    fixed-point re-solving: "A below B, B below C" depends on the order given.
    Relations naming unknown objects or relation types are skipped.
    """
    by_id = {o.id: o for o in objects}
    pos = {o.id: (o.x, o.y) for o in objects}

    for rel in relations:
        subject = by_id.get(rel.get("subject_id"))
        ref = by_id.get(rel.get("reference_id"))
        if subject is None or ref is None:
            continue
        gap = rel.get("spacing")
        gap = spacing if gap is None else gap
        rx, ry = pos[ref.id]
        sx, sy = pos[subject.id]
        kind = rel.get("relation")

        if kind == "below":
            pos[subject.id] = (rx, ry + ref.height + gap)
        elif kind == "above":
            pos[subject.id] = (rx, ry - subject.height - gap)
        elif kind == "right_of":
            pos[subject.id] = (rx + ref.width + gap, ry)
        elif kind == "left_of":
            pos[subject.id] = (rx - subject.width - gap, ry)
        elif kind == "aligned_horizontally_with":
            pos[subject.id] = (sx, ry)
        elif kind == "aligned_vertically_with":
            pos[subject.id] = (rx, sy)
        elif kind == "centered_between":
            ref2 = by_id.get(rel.get("reference_id_2"))
            if ref2 is None:
                continue
            r2x, r2y = pos[ref2.id]
            mid_x = ((rx + ref.width / 2) + (r2x + ref2.width / 2)) / 2
            mid_y = ((ry + ref.height / 2) + (r2y + ref2.height / 2)) / 2
            pos[subject.id] = (mid_x - subject.width / 2, mid_y - subject.height / 2)

    return [Placement(o.id, _r(pos[o.id][0]), _r(pos[o.id][1])) for o in objects]


# ---------------------------------------------------------------------------
# Distribution / alignment / patterns
# ---------------------------------------------------------------------------

def distribute(
    objects: Sequence[LayoutObject],
    axis: str = "horizontal",
    spacing: float | None = None,
) -> list[Placement]:
    """Line objects up along *axis* in their current order on that axis.

    With ``spacing=None`` the gaps are equalized within the current extent;
    otherwise a fixed gap is used from the first object on. The cross axis is
    set to the objects' average so they form a clean row/column.
    """
    n = len(objects)
    if n <= 1:
        return _unchanged(objects)
    horizontal = axis == "horizontal"
    if not horizontal and axis != "vertical":
        raise LayoutError(f"Unknown distribution axis '{axis}'")

    def main(o):
        return o.x if horizontal else o.y

    def size(o):
        return o.width if horizontal else o.height

    order = sorted(range(n), key=lambda i: main(objects[i]))
    first, last = objects[order[0]], objects[order[-1]]
    if spacing is None:
        extent = main(last) + size(last) - main(first)
        gap = (extent - sum(size(o) for o in objects)) / (n - 1)
    else:
        gap = spacing
    cross = float(np.mean([o.y if horizontal else o.x for o in objects]))

    placed = []
    cursor = main(first)
    for i in order:
        o = objects[i]
        placed.append(Placement(o.id, _r(cursor), _r(cross)) if horizontal
                      else Placement(o.id, _r(cross), _r(cursor)))
        cursor += size(o) + gap
    return _reorder(objects, order, placed)


ALIGNMENTS = ("left", "center", "right", "top", "middle", "bottom")


def align(objects: Sequence[LayoutObject], alignment: str) -> list[Placement]:
    """Align edges or center lines; the other axis is left untouched."""
    if alignment not in ALIGNMENTS:
        raise LayoutError(f"Unknown alignment '{alignment}'")
    if len(objects) <= 1:
        return _unchanged(objects)

    if alignment == "left":
        x = min(o.x for o in objects)
        return [Placement(o.id, _r(x), _r(o.y)) for o in objects]
    if alignment == "right":
        right = max(o.x + o.width for o in objects)
        return [Placement(o.id, _r(right - o.width), _r(o.y)) for o in objects]
    if alignment == "center":
        cx = float(np.mean([o.x + o.width / 2 for o in objects]))
        return [Placement(o.id, _r(cx - o.width / 2), _r(o.y)) for o in objects]
    if alignment == "top":
        y = min(o.y for o in objects)
        return [Placement(o.id, _r(o.x), _r(y)) for o in objects]
    if alignment == "bottom":
        bottom = max(o.y + o.height for o in objects)
        return [Placement(o.id, _r(o.x), _r(bottom - o.height)) for o in objects]
    cy = float(np.mean([o.y + o.height / 2 for o in objects]))
    return [Placement(o.id, _r(o.x), _r(cy - o.height / 2)) for o in objects]


def apply_placements(objects: Sequence[LayoutObject], placements: Sequence[Placement]) -> list[LayoutObject]:
    """Return *objects* moved to *placements* (positional zip)."""
    return [replace(o, x=p.x, y=p.y) for o, p in zip(objects, placements)]


def stack(
    objects: Sequence[LayoutObject],
    *,
    spacing: float = DEFAULT_SPACING,
    alignment: str | None = None,
) -> list[Placement]:
    """Vertical column with a fixed gap, optionally aligned afterwards."""
    placed = distribute(objects, "vertical", spacing)
    if alignment:
        placed = align(apply_placements(objects, placed), alignment)
    return placed


PATTERNS = ("line", "diagonal", "wave", "arc")


def pattern(
    objects: Sequence[LayoutObject],
    kind: str,
    *,
    direction: str | None = None,
    spacing: float = 50,
    amplitude: float = 100,
    frequency: float = 2,
    sort_by: str = "none",
    start_x: float | None = None,
    start_y: float | None = None,
) -> list[Placement]:
    """Decorative arrangements; ``sort_by`` changes placement order, not output order."""
    if kind not in PATTERNS:
        raise LayoutError(f"Unknown pattern '{kind}'")
    n = len(objects)
    if n == 0:
        return []

    sort_keys = {
        "x": lambda i: objects[i].x,
        "y": lambda i: objects[i].y,
        "size": lambda i: objects[i].width * objects[i].height,
        "id": lambda i: objects[i].id,
    }
    order = list(range(n))
    if sort_by in sort_keys:
        order.sort(key=sort_keys[sort_by])
    seq = [objects[i] for i in order]
    x0 = seq[0].x if start_x is None else start_x
    y0 = seq[0].y if start_y is None else start_y

    placed: list[Placement] = []
    if kind == "line":
        cursor = x0 if direction != "vertical" else y0
        for o in seq:
            if direction == "vertical":
                placed.append(Placement(o.id, _r(x0), _r(cursor)))
                cursor += o.height + spacing
            else:
                placed.append(Placement(o.id, _r(cursor), _r(y0)))
                cursor += o.width + spacing
    elif kind == "diagonal":
        dx = -1 if direction == "diagonal-left" else 1
        for i, o in enumerate(seq):
            placed.append(Placement(o.id, _r(x0 + dx * i * spacing), _r(y0 + i * spacing)))
    else:
        progress = np.arange(n) / max(n - 1, 1)
        if kind == "wave":
            offsets = amplitude * np.sin(frequency * progress * 2 * math.pi)
            ys = y0 + offsets
        else:
            normalized = (progress - 0.5) * 2
            ys = y0 - amplitude * (1 - normalized ** 2)
        for i, (o, y) in enumerate(zip(seq, ys)):
            placed.append(Placement(o.id, _r(x0 + i * spacing), _r(y)))
    return _reorder(objects, order, placed)


# ---------------------------------------------------------------------------
# LayoutSpec (tagged union) and dispatch
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GridSpec:
    kind: ClassVar[str] = "grid"
    object_ids: tuple
    columns: int | None = None
    rows: int | None = None
    spacing: float = DEFAULT_SPACING
    cell_width: float | None = None
    cell_height: float | None = None


@dataclass(frozen=True)
class CircularSpec:
    kind: ClassVar[str] = "circular"
    object_ids: tuple
    radius: float = 200


@dataclass(frozen=True)
class StarSpec:
    kind: ClassVar[str] = "star"
    object_ids: tuple
    points: int = 5
    outer_radius: float = 300
    inner_radius: float | None = None


@dataclass(frozen=True)
class PathSpec:
    kind: ClassVar[str] = "path"
    object_ids: tuple
    path_type: str = "line"
    params: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RelationalSpec:
    kind: ClassVar[str] = "relational"
    object_ids: tuple
    relations: tuple = ()
    spacing: float = DEFAULT_SPACING


@dataclass(frozen=True)
class DistributeSpec:
    kind: ClassVar[str] = "distribute"
    object_ids: tuple
    axis: str = "horizontal"
    spacing: float | None = None


@dataclass(frozen=True)
class AlignSpec:
    kind: ClassVar[str] = "align"
    object_ids: tuple
    alignment: str = "left"


@dataclass(frozen=True)
class StackSpec:
    kind: ClassVar[str] = "stack"
    object_ids: tuple
    spacing: float = DEFAULT_SPACING
    alignment: str | None = None


@dataclass(frozen=True)
class PatternSpec:
    kind: ClassVar[str] = "pattern"
    object_ids: tuple
    pattern: str = "line"
    params: dict = field(default_factory=dict)


LayoutSpec = Union[
    GridSpec, CircularSpec, StarSpec, PathSpec, RelationalSpec,
    DistributeSpec, AlignSpec, StackSpec, PatternSpec,
]


def compute_layout(spec: LayoutSpec, objects: Mapping[int, LayoutObject]) -> list[Placement]:
    """Run the engine for *spec* over ``objects[id]`` in ``spec.object_ids`` order.

    Raises:
        LayoutError: for invalid parameters or ids missing from *objects*.
    """
    missing = [i for i in spec.object_ids if i not in objects]
    if missing:
        raise LayoutError(f"No geometry for object ids {missing}")
    seq = [objects[i] for i in spec.object_ids]

    if isinstance(spec, GridSpec):
        result = grid(seq, columns=spec.columns, rows=spec.rows, spacing=spec.spacing,
                      cell_width=spec.cell_width, cell_height=spec.cell_height)
    elif isinstance(spec, CircularSpec):
        result = circular(seq, radius=spec.radius)
    elif isinstance(spec, StarSpec):
        result = star(seq, points=spec.points, outer_radius=spec.outer_radius,
                      inner_radius=spec.inner_radius)
    elif isinstance(spec, PathSpec):
        result = path(seq, spec.path_type, spec.params)
    elif isinstance(spec, RelationalSpec):
        result = relational(seq, spec.relations, spacing=spec.spacing)
    elif isinstance(spec, DistributeSpec):
        result = distribute(seq, spec.axis, spec.spacing)
    elif isinstance(spec, AlignSpec):
        result = align(seq, spec.alignment)
    elif isinstance(spec, StackSpec):
        result = stack(seq, spacing=spec.spacing, alignment=spec.alignment)
    elif isinstance(spec, PatternSpec):
        result = pattern(seq, spec.pattern, **spec.params)
    else:
        raise LayoutError(f"Unsupported layout spec {type(spec).__name__}")

    if len(result) != len(seq) or any(p.object_id != o.id for p, o in zip(result, seq)):
        raise RuntimeError(f"{spec.kind} layout broke the one-placement-per-object ordering")
    return result
