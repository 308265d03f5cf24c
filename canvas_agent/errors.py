"""
Error taxonomy for the command pipeline.

Two tiers:
  - Dispatch-level errors abort the whole command and become the sole
    ``DispatchError`` outcome (``DispatchErrorKind``).
  - Per-call errors stay local to one ``ToolResult`` (``ErrorKind``).

Exceptions are raised where the failure is detected (adapters, store,
handlers) and converted to the enum kinds at the dispatcher/executor seams.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Failure kinds local to a single tool call."""
    OBJECT_NOT_FOUND = "object_not_found"
    VALIDATION_FAILURE = "validation_failure"
    CONSTRAINT_VIOLATION = "constraint_violation"
    BATCH_FAILED = "batch_failed"


class DispatchErrorKind(Enum):
    """Failure kinds that abort an entire command."""
    MISSING_CREDENTIAL = "missing_credential"
    UPSTREAM_ERROR = "upstream_error"
    TRANSPORT_FAILURE = "transport_failure"
    MALFORMED_RESPONSE = "malformed_response"
    CANVAS_NOT_FOUND = "canvas_not_found"
    TIMEOUT = "timeout"
    TASK_FAILURE = "task_failure"
    CANCELLED = "cancelled"


class CanvasAgentError(Exception):
    """Base class for all errors raised inside the pipeline."""


# ---------------------------------------------------------------------------
# Provider adapter errors
# ---------------------------------------------------------------------------

class AdapterError(CanvasAgentError):
    """A provider call failed. Subclasses map 1:1 to a ``DispatchErrorKind``."""
    kind: DispatchErrorKind = DispatchErrorKind.UPSTREAM_ERROR
    status: int | None = None


class MissingCredential(AdapterError):
    kind = DispatchErrorKind.MISSING_CREDENTIAL

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"No API key configured for provider '{provider}'")


class UpstreamError(AdapterError):
    kind = DispatchErrorKind.UPSTREAM_ERROR

    def __init__(self, status: int, body=None):
        self.status = status
        self.body = body
        super().__init__(f"Provider returned HTTP {status}: {body!r}")


class TransportFailure(AdapterError):
    kind = DispatchErrorKind.TRANSPORT_FAILURE

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Provider request failed: {reason}")


class MalformedResponse(AdapterError):
    kind = DispatchErrorKind.MALFORMED_RESPONSE

    def __init__(self, detail: str = "unexpected response shape"):
        self.detail = detail
        super().__init__(f"Malformed provider response: {detail}")


class MalformedToolCall(CanvasAgentError):
    """A raw tool call is structurally invalid (adapter bug, not model quirk)."""


# ---------------------------------------------------------------------------
# Per-call execution errors
# ---------------------------------------------------------------------------

class ToolExecutionError(CanvasAgentError):
    """A single tool call failed; carries the ``ErrorKind`` for its result."""
    kind: ErrorKind = ErrorKind.VALIDATION_FAILURE


class ObjectNotFound(ToolExecutionError):
    kind = ErrorKind.OBJECT_NOT_FOUND

    def __init__(self, object_id):
        self.object_id = object_id
        super().__init__(f"Object {object_id} not found")


class ValidationFailure(ToolExecutionError):
    kind = ErrorKind.VALIDATION_FAILURE


# ---------------------------------------------------------------------------
# Persistence collaborator errors
# ---------------------------------------------------------------------------

class StoreError(CanvasAgentError):
    """Raised by a ``CanvasStore`` implementation."""
    kind: ErrorKind = ErrorKind.VALIDATION_FAILURE


class NotFoundError(StoreError):
    kind = ErrorKind.OBJECT_NOT_FOUND


class ConstraintViolation(StoreError):
    """E.g. the row is locked by another user's edit session."""
    kind = ErrorKind.CONSTRAINT_VIOLATION


class BatchInsertError(StoreError):
    kind = ErrorKind.BATCH_FAILED
