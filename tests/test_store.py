from __future__ import annotations

import pytest

from canvas_agent.errors import BatchInsertError, ConstraintViolation, NotFoundError
from canvas_agent.models import ObjectAttrs, Position
from canvas_agent.store import CanvasStore, InMemoryCanvasStore


def _rows(*types):
    return [ObjectAttrs(t, Position(i * 10, 0), {"width": 10}) for i, t in enumerate(types)]


def test_satisfies_the_protocol(store):
    assert isinstance(store, CanvasStore)


def test_insert_batch_assigns_sequential_ids(store, canvas_id):
    created = store.insert_batch(canvas_id, _rows("rectangle", "circle", "text"))
    assert [o.id for o in created] == [1, 2, 3]
    assert [o.type for o in created] == ["rectangle", "circle", "text"]
    assert all(o.canvas_id == canvas_id for o in created)


@pytest.mark.parametrize(
    "make_store, rows",
    [
        (lambda: InMemoryCanvasStore(), _rows("rectangle", "hexagon")),
        (lambda: InMemoryCanvasStore(max_batch_size=1), _rows("rectangle", "circle")),
    ],
    ids=["invalid-type", "over-limit"],
)
def test_insert_batch_is_all_or_nothing(make_store, rows):
    store = make_store()
    canvas_id = store.create_canvas()
    with pytest.raises(BatchInsertError):
        store.insert_batch(canvas_id, rows)
    assert store.list_objects(canvas_id) == []


def test_insert_into_unknown_canvas(store):
    with pytest.raises(BatchInsertError):
        store.insert_batch("nope", _rows("circle"))


def test_update_merges_data_and_replaces_position(store, canvas_id):
    [obj] = store.insert_batch(canvas_id, [ObjectAttrs("rectangle", Position(0, 0), {"fill": "#000000", "width": 5})])
    updated = store.update_one(obj.id, {"position": Position(3, 4), "data": {"fill": "#FFFFFF"}})
    assert updated.position == Position(3, 4)
    assert updated.render_data == {"fill": "#FFFFFF", "width": 5}
    assert store.get_object(obj.id) == updated


def test_locked_objects_reject_writes_until_unlocked(store, canvas_id):
    [obj] = store.insert_batch(canvas_id, _rows("circle"))
    store.lock_object(obj.id, "alice")
    with pytest.raises(ConstraintViolation):
        store.update_one(obj.id, {"data": {"fill": "red"}})
    with pytest.raises(ConstraintViolation):
        store.delete_one(obj.id)
    store.unlock_object(obj.id)
    assert store.delete_one(obj.id).id == obj.id


def test_missing_objects(store):
    assert store.get_object(42) is None
    with pytest.raises(NotFoundError):
        store.update_one(42, {})
    with pytest.raises(NotFoundError):
        store.delete_one(42)


def test_objects_are_scoped_to_their_canvas(store):
    a, b = store.create_canvas("a"), store.create_canvas("b")
    store.insert_batch(a, _rows("circle"))
    store.insert_batch(b, _rows("circle", "circle"))
    assert len(store.list_objects(a)) == 1
    assert len(store.list_objects(b)) == 2
    assert store.canvas_exists(a) and not store.canvas_exists("c")
