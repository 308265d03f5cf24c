"""
Logging configuration for the canvas agent.

Two destinations:
  - Console: DEBUG if --verbose, WARNING+ otherwise
  - File (optional, via ``attach_log_file``): always DEBUG

  - Format: "timestamp | level | name | command_id | tag | message"
  - Config console_format options:
    - "simple": (default) bare messages for DEBUG/INFO, [LEVEL] prefix for WARNING+
    - "full"  : same structured format as the file handler
    - "clean" : no console output at all (file logging still active)

Every record carries the id of the command being executed on the current
thread, so interleaved concurrent commands can be told apart in the file log.
"""

import logging
import sys
import threading
import traceback
from pathlib import Path
from typing import Optional

import config

LOGGER_NAME = "canvas_agent"

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(command_id)s | %(log_tag)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def tagged(tag: str) -> dict:
    """Return ``extra`` dict for logger calls: ``logger.debug("...", extra=tagged("x"))``."""
    return {"log_tag": tag}


# Module-level state (shared across re-inits)
_command_filter: Optional["_CommandFilter"] = None


class _CommandFilter(logging.Filter):
    """Injects the current thread's command_id into every log record."""

    def __init__(self) -> None:
        super().__init__()
        self._local = threading.local()

    @property
    def command_id(self) -> str:
        return getattr(self._local, "command_id", "")

    @command_id.setter
    def command_id(self, value: str) -> None:
        self._local.command_id = value

    def filter(self, record: logging.LogRecord) -> bool:
        record.command_id = self.command_id or "-"
        if not hasattr(record, "log_tag"):
            record.log_tag = ""
        return True


class _ConsoleFormatter(logging.Formatter):
    """Console formatter: shows [LEVEL] prefix only for WARNING and above."""

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            return f"  [{record.levelname}] {record.getMessage()}"
        return f"  {record.getMessage()}"


def _ensure_filter() -> "_CommandFilter":
    global _command_filter
    if _command_filter is None:
        _command_filter = _CommandFilter()
    return _command_filter


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure console logging for the agent.

    Args:
        verbose: If True, show DEBUG level on console; otherwise WARNING+.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Capture everything, filter at handler level

    # Keep a file handler across re-inits; replace only the console handler
    logger.handlers = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]

    command_filter = _ensure_filter()
    if command_filter not in logger.filters:
        logger.addFilter(command_filter)

    console_format = config.get("console_format", "simple")
    if console_format != "clean":
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
        if console_format == "full":
            console_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
        else:
            console_handler.setFormatter(_ConsoleFormatter())
        logger.addHandler(console_handler)

    return logger


def attach_log_file(path: Path) -> None:
    """Attach a DEBUG file handler, replacing any previous one."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    _ensure_filter()
    if _command_filter not in logger.filters:
        logger.addFilter(_command_filter)
    logger.handlers = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)]

    file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(file_handler)
    logger.info(f"Log file: {path}")


def get_logger() -> logging.Logger:
    """Get the agent logger instance.

    Returns:
        The canvas_agent logger (creates with defaults if not configured)
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        return setup_logging(verbose=False)
    return logger


def set_command_id(command_id: str) -> None:
    """Set the command ID included in log lines emitted from the calling thread."""
    _ensure_filter().command_id = command_id


def log_error(
    message: str,
    exc: Optional[BaseException] = None,
    context: Optional[dict] = None,
) -> None:
    """Log an error with full details including stack trace.

    Args:
        message: Error description
        exc: Optional exception to include stack trace from
        context: Optional dict of additional context (tool name, args, etc.)
    """
    lines = [message]
    if context:
        lines.append("Context:")
        for key, value in context.items():
            lines.append(f"  {key}: {value}")
    if exc is not None:
        lines.append(f"Exception type: {type(exc).__name__}")
        lines.append(f"Exception message: {exc}")
        lines.append("Stack trace:")
        lines.append("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    get_logger().error("\n".join(lines), extra=tagged("error"))


def log_tool_call(tool_name: str, tool_args: dict) -> None:
    """Log a tool call for debugging."""
    get_logger().debug(f"Tool call: {tool_name}({tool_args})", extra=tagged("tool_call"))


def log_tool_result(tool_name: str, success: bool, detail: str = "") -> None:
    """Log a tool result.

    Args:
        tool_name: Name of the tool
        success: Whether the tool succeeded
        detail: Error message for failures
    """
    if success:
        get_logger().debug(f"Tool result: {tool_name} -> success", extra=tagged("tool_result"))
    else:
        get_logger().warning(
            f"Tool result: {tool_name} -> error: {detail or 'Unknown error'}",
            extra=tagged("tool_result"),
        )
