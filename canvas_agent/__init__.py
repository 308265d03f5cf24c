"""Natural-language command pipeline for a shared 2D canvas.

Lazy imports keep ``import canvas_agent.layout`` (pure geometry) from pulling
in the provider SDKs.
"""


def __getattr__(name: str):
    if name in ("CommandAgent", "create_agent"):
        from .core import CommandAgent, create_agent
        return CommandAgent if name == "CommandAgent" else create_agent
    if name == "ExecutionSupervisor":
        from .supervisor import ExecutionSupervisor
        return ExecutionSupervisor
    if name in ("TOOLS", "get_tool_schemas"):
        from .tools import TOOLS, get_tool_schemas
        return TOOLS if name == "TOOLS" else get_tool_schemas
    if name == "get_system_prompt":
        from .prompts import get_system_prompt
        return get_system_prompt
    raise AttributeError(f"module 'canvas_agent' has no attribute {name!r}")
