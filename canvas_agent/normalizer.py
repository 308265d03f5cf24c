"""
Tool-call normalizer: raw provider tool calls → canonical NormalizedToolCall list.

Providers disagree on small things: Groq/Llama often emits ids as strings
("12"), Gemini emits every number as a float (12.0), some models send a list
of ids as a JSON string. All of that is fixed here, driven by the parameter
schemas in tools.py, so nothing downstream ever sees a provider quirk.

The normalizer is total for well-formed input: unknown tools are dropped,
unparseable values are passed through for the handler to reject. It raises
``MalformedToolCall`` only when the input isn't tool-call shaped at all.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence

from .errors import MalformedToolCall
from .llm.base import ToolCall
from .models import NormalizedToolCall
from .tools import ID_FIELDS, ID_LIST_FIELDS, TOOL_NAMES, TOOLS, get_defaults

logger = logging.getLogger("canvas_agent")

_INT_RE = re.compile(r"^[+-]?\d+$")
_PROPERTIES = {t["name"]: t["parameters"].get("properties", {}) for t in TOOLS}
_RELATIONSHIP_PROPERTIES = _PROPERTIES["arrange_with_relationships"]["relationships"]["items"]["properties"]


def normalize(raw: Sequence) -> list[NormalizedToolCall]:
    """Normalize raw tool calls, silently eliding unknown tools."""
    calls, _ = normalize_calls(raw)
    return calls


def normalize_calls(raw: Sequence) -> tuple[list[NormalizedToolCall], list[str]]:
    """Normalize raw tool calls.

    Args:
        raw: ``ToolCall`` objects (or ``{"id", "name", "input"}`` mappings).

    Returns:
        ``(calls, dropped)`` where *dropped* lists the unknown tool names in
        the order they were elided.

    Raises:
        MalformedToolCall: if *raw* or one of its items is structurally invalid.
    """
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise MalformedToolCall(f"Expected a list of tool calls, got {type(raw).__name__}")

    calls: list[NormalizedToolCall] = []
    dropped: list[str] = []
    for index, item in enumerate(raw):
        name, args, call_id = _unpack(item, index)
        if name not in TOOL_NAMES:
            logger.warning(f"Dropping unknown tool call '{name}' (call {call_id})")
            dropped.append(name)
            continue
        calls.append(NormalizedToolCall(
            call_id=call_id,
            name=name,
            input=_normalize_input(name, args),
        ))
    return calls, dropped


def _unpack(item, index: int) -> tuple[str, Mapping, str]:
    if isinstance(item, ToolCall):
        name, args, call_id = item.name, item.args, item.id
    elif isinstance(item, Mapping):
        name = item.get("name")
        args = item.get("input", item.get("args", {}))
        call_id = item.get("id")
    else:
        raise MalformedToolCall(f"Tool call #{index} is a {type(item).__name__}, not a tool call")
    if not isinstance(name, str) or not name:
        raise MalformedToolCall(f"Tool call #{index} has no valid name: {name!r}")
    if args is None:
        args = {}
    if not isinstance(args, Mapping):
        raise MalformedToolCall(f"Tool call #{index} ({name}) input is a {type(args).__name__}")
    return name, args, str(call_id) if call_id else f"call_{index}"


def _normalize_input(name: str, args: Mapping) -> dict:
    props = _PROPERTIES[name]
    out: dict = {}
    for key, value in args.items():
        if key in ID_FIELDS:
            out[key] = coerce_id(value)
        elif key in ID_LIST_FIELDS:
            out[key] = coerce_id_list(value)
        elif key == "relationships":
            out[key] = _normalize_relationships(value)
        elif key in props:
            out[key] = _coerce_to_schema(value, props[key])
        else:
            out[key] = value
    for key, default in get_defaults(name).items():
        if out.get(key) is None:
            out[key] = default
    return out


def coerce_id(value):
    """Return *value* as an int id when it is numeric-looking, else unchanged."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if _INT_RE.match(text):
            return int(text)
        try:
            f = float(text)
        except ValueError:
            return value
        if f.is_integer():
            return int(f)
    return value


def coerce_id_list(value):
    """Coerce a list of ids; also accepts a JSON array string or "1, 2, 3"."""
    if isinstance(value, str):
        text = value.strip()
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = [part for part in re.split(r"[,\s]+", text) if part]
        value = decoded if isinstance(decoded, list) else [decoded]
    if isinstance(value, (list, tuple)):
        return [coerce_id(v) for v in value]
    return value


def _normalize_relationships(value):
    if not isinstance(value, list):
        return value
    out = []
    for rel in value:
        if isinstance(rel, Mapping):
            rel = {
                k: _coerce_to_schema(v, _RELATIONSHIP_PROPERTIES[k]) if k in _RELATIONSHIP_PROPERTIES else v
                for k, v in rel.items()
            }
            if isinstance(rel.get("relation"), str):
                rel["relation"] = rel["relation"].strip().lower()
        out.append(rel)
    return out


def _coerce_to_schema(value, prop: dict):
    """Coerce scalar *value* to the JSON-schema type declared by *prop*."""
    kind = prop.get("type")
    if kind == "integer":
        return coerce_id(value)
    if kind == "number":
        if isinstance(value, str):
            try:
                f = float(value.strip())
            except ValueError:
                return value
            return int(f) if f.is_integer() else f
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value
    if kind == "boolean" and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
        return value
    if kind == "string" and "enum" in prop and isinstance(value, str):
        lowered = value.strip().lower()
        for option in prop["enum"]:
            if option.lower() == lowered:
                return option
    return value
