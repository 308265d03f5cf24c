"""
Per-provider circuit breaker for language-model calls.

After ``CIRCUIT_BREAKER_THRESHOLD`` consecutive upstream/transport failures a
provider's circuit opens and commands fail fast without an HTTP call. Once
``CIRCUIT_BREAKER_RESET_SECONDS`` have passed, the next ``is_open`` check moves
it to half-open and lets one request through; a success closes it again.

States: "closed" (normal), "open" (rejecting), "half_open" (probing).
"""

import logging
import threading
import time

import config

logger = logging.getLogger("canvas_agent")

CLOSED = "closed"
OPEN = "open"
HALF_OPEN = "half_open"

_states: dict[str, str] = {}
_failures: dict[str, int] = {}
_opened_at: dict[str, float] = {}
_lock = threading.Lock()
_clock = time.monotonic


def is_open(provider: str) -> bool:
    """True if calls to *provider* should be rejected right now."""
    if not config.CIRCUIT_BREAKER_ENABLED:
        return False
    with _lock:
        state = _states.get(provider, CLOSED)
        if state != OPEN:
            return False
        if _clock() - _opened_at.get(provider, 0.0) >= config.CIRCUIT_BREAKER_RESET_SECONDS:
            _states[provider] = HALF_OPEN
            logger.info(f"[CircuitBreaker] {provider} timeout elapsed, probing (half-open)")
            return False
        return True


def record_success(provider: str) -> None:
    if not config.CIRCUIT_BREAKER_ENABLED:
        return
    with _lock:
        if _states.get(provider, CLOSED) == HALF_OPEN:
            logger.info(f"[CircuitBreaker] {provider} recovered, closing circuit")
            _states[provider] = CLOSED
            _opened_at.pop(provider, None)
        _failures[provider] = 0


def record_failure(provider: str) -> None:
    if not config.CIRCUIT_BREAKER_ENABLED:
        return
    with _lock:
        failures = _failures.get(provider, 0) + 1
        _failures[provider] = failures
        state = _states.get(provider, CLOSED)
        if state == HALF_OPEN or (state == CLOSED and failures >= config.CIRCUIT_BREAKER_THRESHOLD):
            _states[provider] = OPEN
            _opened_at[provider] = _clock()
            logger.warning(f"[CircuitBreaker] {provider} failed {failures} times, opening circuit")


def get_state(provider: str) -> str:
    with _lock:
        return _states.get(provider, CLOSED)


def reset(provider: str | None = None) -> None:
    """Close the circuit for *provider*, or for every provider when None."""
    with _lock:
        if provider is None:
            _states.clear()
            _failures.clear()
            _opened_at.clear()
        else:
            _states.pop(provider, None)
            _failures.pop(provider, None)
            _opened_at.pop(provider, None)
