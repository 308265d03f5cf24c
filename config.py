import json
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Secret: stays in .env (per-provider env vars: ANTHROPIC_API_KEY, OPENAI_API_KEY,
# GROQ_API_KEY, GOOGLE_API_KEY)

# User config: loaded from ~/.canvas_agent/config.json (overlay)
# on top of project-root config.json (base).
CONFIG_PATH = Path.home() / ".canvas_agent" / "config.json"
_LOCAL_CONFIG_PATH = Path(__file__).resolve().parent / "config.json"
_user_config: dict = {}


def _load_config() -> dict:
    # Project-local config.json as base, user home config overlaid on top
    merged: dict = {}
    for path in (_LOCAL_CONFIG_PATH, CONFIG_PATH):
        if path is not None and path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    merged.update(json.load(f))
            except (json.JSONDecodeError, OSError):
                pass
    return merged


def get(key: str, default=None):
    """Get a config value by dot-separated key. E.g. get('supervisor.max_workers', 8)"""
    keys = key.split(".")
    val = _user_config
    for k in keys:
        if isinstance(val, dict):
            val = val.get(k)
        else:
            return default
    return val if val is not None else default


_user_config = _load_config()


# ---- LLM provider config ------------------------------------------------------
LLM_PROVIDER = get("llm_provider", "anthropic")  # "anthropic", "openai", "groq", "gemini"

_PROVIDER_ENV_KEYS = {
    "anthropic": ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
    "groq": ("GROQ_API_KEY",),
    "gemini": ("GOOGLE_API_KEY",),
}


def get_api_key(provider: str | None = None) -> str | None:
    """Return the API key for the given provider.

    Each provider uses its own env var:
      anthropic → ANTHROPIC_API_KEY (CLAUDE_API_KEY accepted as an alias)
      openai    → OPENAI_API_KEY
      groq      → GROQ_API_KEY
      gemini    → GOOGLE_API_KEY

    Empty strings count as missing.
    """
    p = (provider or LLM_PROVIDER).lower()
    for env_key in _PROVIDER_ENV_KEYS.get(p, ()):
        val = os.getenv(env_key)
        if val:
            return val
    return None


# ---- Per-provider defaults ---------------------------------------------------
# Hardcoded defaults per provider. Used as final fallback when neither the
# providers.<active>.key nor a top-level key is set in config.json.
_PROVIDER_DEFAULTS = {
    "anthropic": {
        "model": "claude-3-5-sonnet-20241022",
        "base_url": None,
        "timeout_ms": 10_000,
        "max_tokens": 1024,
        "temperature": None,
    },
    "openai": {
        "model": "gpt-4o-mini",
        "base_url": None,
        "timeout_ms": 10_000,
        "max_tokens": 1024,
        "temperature": 0.1,
    },
    "groq": {
        "model": "llama-3.3-70b-versatile",
        "base_url": "https://api.groq.com/openai/v1",
        "timeout_ms": 10_000,
        "max_tokens": 1024,
        "temperature": 0.1,
    },
    "gemini": {
        "model": "gemini-2.5-flash",
        "base_url": None,
        "timeout_ms": 10_000,
        "max_tokens": 1024,
        "temperature": 0.1,
    },
}


def _provider_get(key: str, default=None, provider: str | None = None):
    """Get a config value with provider-section priority.

    Resolution order:
    1. providers.<provider>.key         (provider-specific)
    2. Top-level key                    (override)
    3. _PROVIDER_DEFAULTS[provider].key (hardcoded defaults)
    4. default argument
    """
    provider = (provider or get("llm_provider", "anthropic")).lower()
    # 1. Provider section
    val = get(f"providers.{provider}.{key}")
    if val is not None:
        return val
    # 2. Top-level key
    val = get(key)
    if val is not None:
        return val
    # 3. Hardcoded provider defaults
    provider_defaults = _PROVIDER_DEFAULTS.get(provider, {})
    if key in provider_defaults and provider_defaults[key] is not None:
        return provider_defaults[key]
    return default


# ---- Command execution -------------------------------------------------------
# Wall-clock budget for one command, independent of the adapter's own timeout.
COMMAND_TIMEOUT_SECONDS = get("command_timeout_seconds", 30)
SUPERVISOR_MAX_WORKERS = get("supervisor.max_workers", 8)
INTERACTION_LOG_SIZE = get("interaction_log_size", 10)
DEFAULT_FILL = get("default_fill", "#3B82F6")

# ---- Performance targets (warn-only) ----------------------------------------
BATCH_WARN_MS = get("performance.batch_warn_ms", 2000)
LAYOUT_WARN_MS = get("performance.layout_warn_ms", 500)

# ---- Circuit breaker ---------------------------------------------------------
CIRCUIT_BREAKER_ENABLED = get("circuit_breaker.enabled", True)
CIRCUIT_BREAKER_THRESHOLD = get("circuit_breaker.threshold", 5)
CIRCUIT_BREAKER_RESET_SECONDS = get("circuit_breaker.reset_seconds", 60)


# ---- Setting descriptions (single source of truth for UI) --------------------
CONFIG_DESCRIPTIONS: dict[str, str] = {
    "llm_provider": "Language-model backend: 'anthropic', 'openai', 'groq' or 'gemini'.",
    "command_timeout_seconds": "Wall-clock timeout for a single canvas command. The adapter's own HTTP timeout is separate.",
    "supervisor.max_workers": "Worker threads available for concurrent provider calls.",
    "interaction_log_size": "Number of recent commands kept per canvas to enrich the next prompt.",
    "default_fill": "Fill color used when a command names no color and the client sends none.",
    "performance.batch_warn_ms": "Log a warning when one atomic batch insert takes longer than this.",
    "performance.layout_warn_ms": "Log a warning when one arrangement takes longer than this.",
    "circuit_breaker.enabled": "Fail fast after repeated provider failures instead of waiting on a dead backend.",
    "circuit_breaker.threshold": "Consecutive provider failures before the circuit opens.",
    "circuit_breaker.reset_seconds": "Seconds an open circuit waits before letting a trial request through.",
}


def reload_config() -> None:
    """Re-read config from disk and reassign all module-level constants.

    Call this after writing config.json to make new values take effect
    without restarting the server. Agents already built keep their adapter;
    only new agents pick up changes.
    """
    global _user_config
    global LLM_PROVIDER
    global COMMAND_TIMEOUT_SECONDS, SUPERVISOR_MAX_WORKERS, INTERACTION_LOG_SIZE, DEFAULT_FILL
    global BATCH_WARN_MS, LAYOUT_WARN_MS
    global CIRCUIT_BREAKER_ENABLED, CIRCUIT_BREAKER_THRESHOLD, CIRCUIT_BREAKER_RESET_SECONDS

    load_dotenv(override=True)

    _user_config = _load_config()

    LLM_PROVIDER = get("llm_provider", "anthropic")
    COMMAND_TIMEOUT_SECONDS = get("command_timeout_seconds", 30)
    SUPERVISOR_MAX_WORKERS = get("supervisor.max_workers", 8)
    INTERACTION_LOG_SIZE = get("interaction_log_size", 10)
    DEFAULT_FILL = get("default_fill", "#3B82F6")
    BATCH_WARN_MS = get("performance.batch_warn_ms", 2000)
    LAYOUT_WARN_MS = get("performance.layout_warn_ms", 500)
    CIRCUIT_BREAKER_ENABLED = get("circuit_breaker.enabled", True)
    CIRCUIT_BREAKER_THRESHOLD = get("circuit_breaker.threshold", 5)
    CIRCUIT_BREAKER_RESET_SECONDS = get("circuit_breaker.reset_seconds", 60)
