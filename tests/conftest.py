from __future__ import annotations

import pytest

from canvas_agent import circuit_breaker
from canvas_agent.store import InMemoryCanvasStore


@pytest.fixture(autouse=True)
def _reset_circuit_breaker():
    circuit_breaker.reset()
    yield
    circuit_breaker.reset()


@pytest.fixture
def store() -> InMemoryCanvasStore:
    return InMemoryCanvasStore()


@pytest.fixture
def canvas_id(store: InMemoryCanvasStore) -> str:
    return store.create_canvas("test canvas")
