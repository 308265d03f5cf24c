"""Pydantic request/response schemas for the FastAPI backend."""

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---- Requests ----

class CanvasCreateRequest(BaseModel):
    name: Optional[str] = Field(default=None, description="Display name for the canvas")


class Viewport(BaseModel):
    x: float = 0
    y: float = 0
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class CommandRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Natural-language canvas command")
    selected_ids: list[int] = Field(default_factory=list, description="Objects selected in the client")
    current_color: Optional[str] = Field(default=None, description="Client's active color")
    viewport: Optional[Viewport] = None


# ---- Responses ----

class CanvasInfo(BaseModel):
    canvas_id: str
    name: str


class CommandResponse(BaseModel):
    status: str = "ok"
    summary: Optional[str] = None
    text: Optional[str] = None
    results: list[dict[str, Any]] = Field(default_factory=list)
    dropped: list[str] = Field(default_factory=list)


class ServerStatus(BaseModel):
    status: str = "ok"
    provider: str
    model: str
    canvases: int = 0
    uptime_seconds: float = 0.0
    api_key_configured: bool = False
    circuit_state: str = "closed"


class ConfigUpdate(BaseModel):
    config: dict[str, Any] = Field(..., description="Partial config to merge")
