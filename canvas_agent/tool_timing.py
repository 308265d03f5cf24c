import time


class ToolTimer:
    """Context manager for timing batch, layout and tool execution."""
    def __init__(self):
        self._start = 0.0
        self.elapsed_ms = 0

    def __enter__(self):
        self._start = time.monotonic()
        return self

    def __exit__(self, *exc):
        self.elapsed_ms = int((time.monotonic() - self._start) * 1000)
        return False


def warn_if_slow(logger, label: str, elapsed_ms: int, target_ms: int) -> None:
    """Log at WARNING when *elapsed_ms* exceeds *target_ms*, else at DEBUG."""
    if elapsed_ms > target_ms:
        logger.warning(f"{label} took {elapsed_ms}ms (target {target_ms}ms)")
    else:
        logger.debug(f"{label} took {elapsed_ms}ms")
