from __future__ import annotations

import pytest

from canvas_agent.canvas_stats import apply_filter, calculate_stats
from canvas_agent.models import CanvasObject, Position


def _obj(id, type="rectangle", x=0, y=0, **data):
    return CanvasObject(id=id, canvas_id="c", type=type, position=Position(x, y), render_data=data)


VIEWPORT = {"x": 0, "y": 0, "width": 1000, "height": 800}


def test_stats_for_empty_canvas():
    stats = calculate_stats([])
    assert stats["total_objects"] == 0
    assert stats["size_stats"]["max"] == 0
    assert stats["size_stats"]["p90"] == 0
    assert stats["colors"] == []


def test_stats_summarize_sizes_colors_and_types():
    objects = [
        _obj(i, width=10 * i, height=5, fill="#FF0000" if i % 2 else "#0000FF")
        for i in range(1, 11)
    ]
    objects.append(_obj(11, type="text", color="#000000", text="label"))
    stats = calculate_stats(objects)

    assert stats["total_objects"] == 11
    assert stats["size_stats"]["min"] == 10
    assert stats["size_stats"]["max"] == 100
    assert stats["size_stats"]["p50"] == stats["size_stats"]["median"] == 50
    assert stats["size_stats"]["p90"] == 90
    assert stats["colors"] == ["#000000", "#0000FF", "#FF0000"]
    assert stats["shape_types"] == ["rectangle", "text"]


def test_filter_by_color_normalizes_both_sides():
    objects = [_obj(1, fill="#ff0000"), _obj(2, fill="blue"), _obj(3, type="text", color="red")]
    assert apply_filter(objects, {"color": "RED"}) == [1, 3]


def test_filter_by_size_excludes_unsized_objects():
    objects = [_obj(1, width=20, height=20), _obj(2, width=200, height=50), _obj(3, type="text")]
    assert apply_filter(objects, {"size_min": 100}) == [2]
    assert apply_filter(objects, {"size_max": 100}) == [1]


def test_square_means_near_square_rectangle():
    objects = [
        _obj(1, width=100, height=108),
        _obj(2, width=100, height=150),
        _obj(3, type="circle", width=100, height=100),
    ]
    assert apply_filter(objects, {"shape_type": "square"}) == [1]
    assert apply_filter(objects, {"shape_type": "circle"}) == [3]


@pytest.mark.parametrize(
    "region, expected",
    [
        ("left", [1, 3]),
        ("right", [2, 4]),
        ("top", [1, 2]),
        ("bottom-right", [4]),
        ("center", [5]),
    ],
)
def test_filter_by_viewport_region(region, expected):
    objects = [
        _obj(1, x=100, y=100),
        _obj(2, x=900, y=100),
        _obj(3, x=100, y=700),
        _obj(4, x=900, y=700),
        _obj(5, x=500, y=400),
    ]
    assert apply_filter(objects, {"position": region}, VIEWPORT) == expected


def test_position_is_ignored_without_viewport():
    objects = [_obj(1, x=900, y=700)]
    assert apply_filter(objects, {"position": "top-left"}) == [1]


def test_criteria_combine():
    objects = [
        _obj(1, x=100, y=100, width=200, height=200, fill="red"),
        _obj(2, x=100, y=100, width=20, height=20, fill="red"),
        _obj(3, x=900, y=100, width=200, height=200, fill="red"),
    ]
    criteria = {"color": "#FF0000", "size_min": 100, "position": "left"}
    assert apply_filter(objects, criteria, VIEWPORT) == [1]
