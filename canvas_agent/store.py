"""
Persistence collaborator for canvases and their objects.

The pipeline only talks to the ``CanvasStore`` protocol. ``InMemoryCanvasStore``
is the implementation used by the API server and the tests; a database-backed
store needs to honour the same contract:

- ``insert_batch`` is atomic: every row is persisted or none is.
- ``update_one`` patches are ``{"position": Position, "data": {...}}``;
  either key may be absent.
- Mutations on an object locked by an editing user raise ``ConstraintViolation``.
- Missing objects raise ``NotFoundError``.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Protocol, runtime_checkable

from .errors import BatchInsertError, ConstraintViolation, NotFoundError
from .models import CanvasObject, ObjectAttrs

OBJECT_TYPES = frozenset({"rectangle", "circle", "text"})


@runtime_checkable
class CanvasStore(Protocol):
    """Structural type for canvas persistence."""

    def create_canvas(self, name: str | None = None) -> str: ...

    def canvas_exists(self, canvas_id: str) -> bool: ...

    def list_objects(self, canvas_id: str) -> list[CanvasObject]: ...

    def get_object(self, object_id: int) -> CanvasObject | None: ...

    def insert_batch(self, canvas_id: str, rows: Sequence[ObjectAttrs]) -> list[CanvasObject]: ...

    def update_one(self, object_id: int, patch: Mapping) -> CanvasObject: ...

    def delete_one(self, object_id: int) -> CanvasObject: ...


class InMemoryCanvasStore:
    """Thread-safe in-process store.

    Args:
        max_batch_size: Reject (atomically) any insert batch larger than this.
    """

    def __init__(self, max_batch_size: int | None = None):
        self.max_batch_size = max_batch_size
        self._canvases: dict[str, str] = {}
        self._objects: dict[int, CanvasObject] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    # ---- Canvases ----

    def create_canvas(self, name: str | None = None, canvas_id: str | None = None) -> str:
        canvas_id = canvas_id or uuid.uuid4().hex[:12]
        with self._lock:
            self._canvases[canvas_id] = name or canvas_id
        return canvas_id

    def canvas_exists(self, canvas_id: str) -> bool:
        with self._lock:
            return canvas_id in self._canvases

    # ---- Reads ----

    def list_objects(self, canvas_id: str) -> list[CanvasObject]:
        with self._lock:
            return [o for o in self._objects.values() if o.canvas_id == canvas_id]

    def get_object(self, object_id: int) -> CanvasObject | None:
        with self._lock:
            return self._objects.get(object_id)

    # ---- Writes ----

    def insert_batch(self, canvas_id: str, rows: Sequence[ObjectAttrs]) -> list[CanvasObject]:
        with self._lock:
            if canvas_id not in self._canvases:
                raise BatchInsertError(f"Canvas {canvas_id} does not exist")
            if self.max_batch_size is not None and len(rows) > self.max_batch_size:
                raise BatchInsertError(
                    f"Batch of {len(rows)} exceeds the limit of {self.max_batch_size} objects"
                )
            for row in rows:
                if row.type not in OBJECT_TYPES:
                    raise BatchInsertError(f"Invalid object type '{row.type}'")

            now = time.time()
            created = []
            for row in rows:
                obj = CanvasObject(
                    id=self._next_id,
                    canvas_id=canvas_id,
                    type=row.type,
                    position=row.position,
                    render_data=dict(row.render_data),
                    updated_at=now,
                )
                self._objects[obj.id] = obj
                self._next_id += 1
                created.append(obj)
            return created

    def update_one(self, object_id: int, patch: Mapping) -> CanvasObject:
        """Apply *patch*: ``position`` replaces, ``data`` merges into render data."""
        with self._lock:
            current = self._writable(object_id)
            render_data = dict(current.render_data)
            render_data.update(patch.get("data") or {})
            position = patch.get("position")
            updated = replace(
                current,
                position=position if position is not None else current.position,
                render_data=render_data,
                updated_at=time.time(),
            )
            self._objects[object_id] = updated
            return updated

    def delete_one(self, object_id: int) -> CanvasObject:
        with self._lock:
            obj = self._writable(object_id)
            del self._objects[object_id]
            return obj

    # ---- Edit locks ----

    def lock_object(self, object_id: int, user_id: str) -> CanvasObject:
        with self._lock:
            obj = self._objects.get(object_id)
            if obj is None:
                raise NotFoundError(f"Object {object_id} not found")
            locked = replace(obj, locked_by=user_id)
            self._objects[object_id] = locked
            return locked

    def unlock_object(self, object_id: int) -> None:
        with self._lock:
            obj = self._objects.get(object_id)
            if obj is not None:
                self._objects[object_id] = replace(obj, locked_by=None)

    def _writable(self, object_id: int) -> CanvasObject:
        obj = self._objects.get(object_id)
        if obj is None:
            raise NotFoundError(f"Object {object_id} not found")
        if obj.locked_by:
            raise ConstraintViolation(f"Object {object_id} is locked by {obj.locked_by}")
        return obj
