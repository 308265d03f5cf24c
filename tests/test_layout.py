from __future__ import annotations

import math

import pytest

from canvas_agent import layout
from canvas_agent.layout import (
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
    compute_layout,
)


def _row(n: int, size: float = 50, gap: float = 100) -> list[LayoutObject]:
    return [LayoutObject(id=i + 1, x=i * gap, y=0, width=size, height=size) for i in range(n)]


def _positions(placements) -> list[tuple[float, float]]:
    return [(p.x, p.y) for p in placements]


def _center(p, size: float = 50) -> tuple[float, float]:
    return p.x + size / 2, p.y + size / 2


# ---- grid ----


def test_grid_two_columns_with_spacing():
    placements = layout.grid(_row(4), columns=2, spacing=10)
    assert _positions(placements) == [(0, 0), (60, 0), (0, 60), (60, 60)]
    assert [p.object_id for p in placements] == [1, 2, 3, 4]


def test_grid_rows_derive_column_count():
    placements = layout.grid(_row(5), rows=2, spacing=0)
    # 5 objects over 2 rows -> 3 columns
    assert _positions(placements) == [(0, 0), (50, 0), (100, 0), (0, 50), (50, 50)]


def test_grid_defaults_to_square_ish():
    placements = layout.grid(_row(4), spacing=0)
    assert _positions(placements) == [(0, 0), (50, 0), (0, 50), (50, 50)]


def test_grid_rejects_columns_and_rows_together():
    with pytest.raises(LayoutError):
        layout.grid(_row(4), columns=2, rows=2)


def test_grid_uses_largest_object_as_cell_and_explicit_anchor():
    objects = [LayoutObject(1, 500, 500, 20, 20), LayoutObject(2, 0, 0, 80, 40)]
    placements = layout.grid(objects, columns=2, spacing=10, start_x=0, start_y=0)
    assert _positions(placements) == [(0, 0), (90, 0)]


def test_grid_is_deterministic():
    objects = _row(7)
    assert layout.grid(objects, columns=3) == layout.grid(objects, columns=3)


# ---- circular / star ----


def _stacked(n: int, cx: float = 500, cy: float = 500) -> list[LayoutObject]:
    return [LayoutObject(i + 1, cx - 25, cy - 25) for i in range(n)]


def test_circular_spreads_evenly_around_centroid():
    placements = layout.circular(_stacked(4), radius=200)
    centers = [_center(p) for p in placements]
    assert centers[0] == pytest.approx((700, 500))
    assert centers[1] == pytest.approx((500, 700))
    assert centers[2] == pytest.approx((300, 500))
    assert centers[3] == pytest.approx((500, 300))


def test_circular_single_object_is_unchanged():
    placements = layout.circular([LayoutObject(9, 12, 34)], radius=200)
    assert _positions(placements) == [(12, 34)]


def test_star_alternates_outer_and_inner_radius():
    placements = layout.star(_stacked(6), points=3, outer_radius=300, inner_radius=120)
    for i, p in enumerate(placements):
        cx, cy = _center(p)
        radius = math.hypot(cx - 500, cy - 500)
        assert radius == pytest.approx(300 if i % 2 == 0 else 120, abs=0.02)
        angle = math.degrees(math.atan2(cy - 500, cx - 500))
        expected = -90 + i * 60
        assert (angle - expected + 180) % 360 - 180 == pytest.approx(0, abs=0.01)


def test_star_default_inner_radius_is_forty_percent():
    placements = layout.star(_stacked(2), points=5, outer_radius=100)
    cx, cy = _center(placements[1])
    assert math.hypot(cx - 500, cy - 500) == pytest.approx(40, abs=0.02)


def test_star_needs_three_points():
    with pytest.raises(LayoutError):
        layout.star(_stacked(4), points=2)


def test_star_rejects_fractional_points():
    with pytest.raises(LayoutError, match="whole number"):
        layout.star(_stacked(4), points=3.7)
    assert len(layout.star(_stacked(4), points=4.0)) == 4


# ---- paths ----


def test_path_line_interpolates_endpoints():
    placements = layout.path_line(_row(3), start=(0, 0), end=(100, 100))
    assert _positions(placements) == [(-25, -25), (25, 25), (75, 75)]


def test_path_line_single_object_sits_mid_path():
    placements = layout.path_line(_row(1), start=(0, 0), end=(100, 100))
    assert _positions(placements) == [(25, 25)]


def test_path_arc_uses_screen_angles():
    placements = layout.path_arc(_row(3), center=(0, 0), radius=100, start_angle=0, end_angle=180)
    centers = [_center(p) for p in placements]
    assert centers[0] == pytest.approx((100, 0), abs=0.01)
    assert centers[1] == pytest.approx((0, 100), abs=0.01)
    assert centers[2] == pytest.approx((-100, 0), abs=0.01)


def test_path_bezier_hits_endpoints_and_blends_midpoint():
    placements = layout.path_bezier(
        _row(3), start=(0, 0), end=(100, 100), control1=(25, -25), control2=(75, -25)
    )
    centers = [_center(p) for p in placements]
    assert centers[0] == pytest.approx((0, 0))
    assert centers[1] == pytest.approx((50, -6.25))
    assert centers[2] == pytest.approx((100, 100))


def test_path_spiral_grows_radius_over_rotations():
    placements = layout.path_spiral(_row(2), center=(0, 0), start_radius=50, end_radius=300, rotations=2)
    centers = [_center(p) for p in placements]
    assert centers[0] == pytest.approx((50, 0), abs=0.01)
    assert centers[1] == pytest.approx((300, 0), abs=0.01)


def test_path_dispatch_reads_flat_params_and_rejects_unknown_type():
    placements = layout.path(_row(2), "line", {"start_x": 0, "start_y": 0, "end_x": 200, "end_y": 0})
    assert _positions(placements) == [(-25, -25), (175, -25)]
    with pytest.raises(LayoutError):
        layout.path(_row(2), "zigzag")


# ---- relational ----


def test_relational_below_uses_reference_height_and_spacing():
    a = LayoutObject(1, 0, 0, 50, 50)
    b = LayoutObject(2, 200, 200, 50, 30)
    placements = layout.relational([a, b], [{"subject_id": 2, "relation": "below", "reference_id": 1, "spacing": 10}])
    assert _positions(placements) == [(0, 0), (0, 60)]


@pytest.mark.parametrize(
    "relation, expected",
    [
        ("above", (100, 30)),
        ("right_of", (170, 100)),
        ("left_of", (30, 100)),
        ("aligned_horizontally_with", (400, 100)),
        ("aligned_vertically_with", (100, 400)),
    ],
)
def test_relational_pairwise_relations(relation, expected):
    ref = LayoutObject(1, 100, 100, 50, 50)
    subject = LayoutObject(2, 400, 400, 50, 50)
    placements = layout.relational(
        [ref, subject], [{"subject_id": 2, "relation": relation, "reference_id": 1}], spacing=20
    )
    assert (placements[1].x, placements[1].y) == expected


def test_relational_centered_between_two_references():
    a = LayoutObject(1, 0, 0, 50, 50)
    b = LayoutObject(2, 200, 0, 50, 50)
    c = LayoutObject(3, 999, 999, 20, 20)
    placements = layout.relational(
        [a, b, c],
        [{"subject_id": 3, "relation": "centered_between", "reference_id": 1, "reference_id_2": 2}],
    )
    assert (placements[2].x, placements[2].y) == (115, 15)


def test_relational_is_declaration_order_sensitive():
    a = LayoutObject(1, 0, 0)
    b = LayoutObject(2, 500, 500)
    c = LayoutObject(3, 900, 900)
    b_then_c = [
        {"subject_id": 2, "relation": "below", "reference_id": 1},
        {"subject_id": 3, "relation": "below", "reference_id": 2},
    ]
    c_then_b = list(reversed(b_then_c))

    chained = layout.relational([a, b, c], b_then_c, spacing=10)
    assert (chained[2].x, chained[2].y) == (0, 120)

    stale = layout.relational([a, b, c], c_then_b, spacing=10)
    # C was placed against B's old position before B moved
    assert (stale[2].x, stale[2].y) == (500, 560)
    assert (stale[1].x, stale[1].y) == (0, 60)


def test_relational_skips_unknown_objects_and_relations():
    a = LayoutObject(1, 0, 0)
    b = LayoutObject(2, 300, 300)
    placements = layout.relational(
        [a, b],
        [
            {"subject_id": 2, "relation": "below", "reference_id": 42},
            {"subject_id": 2, "relation": "inside", "reference_id": 1},
        ],
    )
    assert _positions(placements) == [(0, 0), (300, 300)]


# ---- distribute / align / stack / pattern ----


def test_distribute_horizontally_evens_gaps_and_keeps_input_order():
    objects = [LayoutObject(1, 0, 0), LayoutObject(2, 300, 30), LayoutObject(3, 100, 60)]
    placements = layout.distribute(objects, "horizontal")
    assert [p.object_id for p in placements] == [1, 2, 3]
    assert _positions(placements) == [(0, 30), (300, 30), (150, 30)]


def test_distribute_with_fixed_spacing():
    objects = [LayoutObject(1, 0, 0), LayoutObject(2, 300, 0), LayoutObject(3, 100, 0)]
    placements = layout.distribute(objects, "horizontal", spacing=10)
    assert _positions(placements) == [(0, 0), (120, 0), (60, 0)]


def test_distribute_vertically():
    objects = [LayoutObject(1, 10, 0), LayoutObject(2, 30, 200)]
    placements = layout.distribute(objects, "vertical", spacing=5)
    assert _positions(placements) == [(20, 0), (20, 55)]


@pytest.mark.parametrize(
    "alignment, expected",
    [
        ("left", [(0, 0), (0, 100)]),
        ("right", [(150, 0), (100, 100)]),
        ("center", [(62.5, 0), (37.5, 100)]),
        ("top", [(0, 0), (100, 0)]),
        ("bottom", [(0, 150), (100, 100)]),
        ("middle", [(0, 62.5), (100, 37.5)]),
    ],
)
def test_align(alignment, expected):
    objects = [LayoutObject(1, 0, 0, 50, 50), LayoutObject(2, 100, 100, 100, 100)]
    assert _positions(layout.align(objects, alignment)) == expected


def test_stack_places_column_then_aligns():
    objects = [LayoutObject(1, 40, 0, 50, 50), LayoutObject(2, 0, 10, 100, 20)]
    placements = layout.stack(objects, spacing=10, alignment="right")
    assert _positions(placements) == [(70, 0), (20, 60)]


def test_pattern_sort_by_changes_placement_not_output_order():
    objects = [LayoutObject(1, 300, 0), LayoutObject(2, 0, 0), LayoutObject(3, 100, 0)]
    placements = layout.pattern(objects, "line", spacing=10, sort_by="x")
    assert [p.object_id for p in placements] == [1, 2, 3]
    assert _positions(placements) == [(120, 0), (0, 0), (60, 0)]


def test_pattern_arc_and_diagonal():
    objects = _row(3)
    arc = layout.pattern(objects, "arc", spacing=50, amplitude=100, start_x=0, start_y=200)
    assert _positions(arc) == [(0, 200), (50, 100), (100, 200)]
    diagonal = layout.pattern(objects, "diagonal", direction="diagonal-left", spacing=10, start_x=0, start_y=0)
    assert _positions(diagonal) == [(0, 0), (-10, 10), (-20, 20)]


# ---- compute_layout ----


ALL_SPECS = [
    GridSpec((1, 2, 3, 4, 5), columns=2),
    CircularSpec((1, 2, 3, 4, 5)),
    StarSpec((1, 2, 3, 4, 5), points=4),
    PathSpec((1, 2, 3, 4, 5), path_type="line"),
    PathSpec((1, 2, 3, 4, 5), path_type="arc"),
    PathSpec((1, 2, 3, 4, 5), path_type="bezier"),
    PathSpec((1, 2, 3, 4, 5), path_type="spiral"),
    RelationalSpec((1, 2, 3, 4, 5), relations=({"subject_id": 2, "relation": "below", "reference_id": 1},)),
    DistributeSpec((1, 2, 3, 4, 5)),
    AlignSpec((1, 2, 3, 4, 5), alignment="top"),
    StackSpec((1, 2, 3, 4, 5)),
    PatternSpec((1, 2, 3, 4, 5), pattern="wave"),
]


@pytest.mark.parametrize("spec", ALL_SPECS, ids=lambda s: f"{s.kind}")
def test_compute_layout_returns_one_placement_per_id_in_order(spec):
    objects = {o.id: o for o in _row(5)}
    placements = compute_layout(spec, objects)
    assert [p.object_id for p in placements] == list(spec.object_ids)


def test_compute_layout_respects_spec_id_order():
    objects = {o.id: o for o in _row(3)}
    placements = compute_layout(GridSpec((3, 1, 2), columns=3, spacing=0), objects)
    assert [p.object_id for p in placements] == [3, 1, 2]


def test_compute_layout_missing_geometry():
    with pytest.raises(LayoutError):
        compute_layout(CircularSpec((1, 99)), {o.id: o for o in _row(2)})
