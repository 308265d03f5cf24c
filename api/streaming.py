"""SSE bridge: canvas-scoped broadcast of object changes to connected clients."""

import asyncio
import logging
import threading

logger = logging.getLogger("canvas_agent")


class CanvasBroadcaster:
    """Fan-out of canvas change messages to every subscriber of that canvas.

    Each SSE connection subscribes a queue for one canvas. ``publish`` may be
    called from the event loop or from a worker thread. A subscriber that falls
    ``max_queue`` messages behind is dropped; its stream ends and the client is
    expected to reconnect and refetch the canvas.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, max_queue: int = 1000):
        self._loop = loop
        self._max_queue = max_queue
        self._subscribers: dict[str, list[asyncio.Queue[dict | None]]] = {}
        self._lock = threading.Lock()

    def publish(self, canvas_id: str, messages: list[dict]) -> int:
        """Queue *messages* for every subscriber of *canvas_id*; returns subscriber count."""
        with self._lock:
            queues = list(self._subscribers.get(canvas_id, ()))
        for q in queues:
            for message in messages:
                self._loop.call_soon_threadsafe(self._deliver, canvas_id, q, message)
        return len(queues)

    def subscribe(self, canvas_id: str) -> asyncio.Queue[dict | None]:
        """Create a new subscriber queue. Returns a queue that yields messages."""
        q: asyncio.Queue[dict | None] = asyncio.Queue(maxsize=self._max_queue)
        with self._lock:
            self._subscribers.setdefault(canvas_id, []).append(q)
        return q

    def unsubscribe(self, canvas_id: str, q: asyncio.Queue) -> None:
        with self._lock:
            queues = self._subscribers.get(canvas_id, [])
            if q in queues:
                queues.remove(q)
            if not queues:
                self._subscribers.pop(canvas_id, None)

    def subscriber_count(self, canvas_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(canvas_id, ()))

    def close(self) -> None:
        """Signal all subscribers to stop and clear the subscriber lists."""
        with self._lock:
            for queues in self._subscribers.values():
                for q in queues:
                    self._loop.call_soon_threadsafe(_end_stream, q)
            self._subscribers.clear()

    # Runs on the loop thread
    def _deliver(self, canvas_id: str, q: asyncio.Queue, message: dict) -> None:
        with self._lock:
            if q not in self._subscribers.get(canvas_id, ()):
                return
        try:
            q.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"SSE subscriber on canvas {canvas_id} is {q.qsize()} messages behind, dropping it")
            self.unsubscribe(canvas_id, q)
            _end_stream(q)


def _end_stream(q: asyncio.Queue) -> None:
    """Put the end-of-stream marker, evicting the oldest message if the queue is full."""
    if q.full():
        q.get_nowait()
    q.put_nowait(None)
