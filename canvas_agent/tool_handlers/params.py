"""Argument validation shared by the tool handlers and the create expander."""

from __future__ import annotations

from collections.abc import Mapping

from canvas_agent.errors import ValidationFailure


def number(
    args: Mapping,
    key: str,
    *,
    default=None,
    required: bool = False,
    minimum: float | None = None,
    maximum: float | None = None,
):
    """Return ``args[key]`` as a number, *default* when absent, or raise."""
    value = args.get(key)
    if value is None:
        value = default
    if value is None:
        if required:
            raise ValidationFailure(f"'{key}' is required")
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationFailure(f"'{key}' must be a number, got {value!r}")
    if minimum is not None and value < minimum:
        raise ValidationFailure(f"'{key}' must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ValidationFailure(f"'{key}' must be <= {maximum}, got {value}")
    return value


def text(args: Mapping, key: str, *, required: bool = False) -> str | None:
    value = args.get(key)
    if value is None or value == "":
        if required:
            raise ValidationFailure(f"'{key}' is required")
        return None
    if not isinstance(value, str):
        raise ValidationFailure(f"'{key}' must be a string, got {value!r}")
    return value


def choice(args: Mapping, key: str, options, *, default=None, required: bool = False):
    value = args.get(key, default)
    if value is None:
        if required:
            raise ValidationFailure(f"'{key}' is required")
        return None
    if value not in options:
        raise ValidationFailure(f"'{key}' must be one of {', '.join(options)}, got {value!r}")
    return value


def object_ids(args: Mapping, selected_ids=()) -> list[int]:
    """The call's ``object_ids``, or the client selection when omitted."""
    ids = args.get("object_ids")
    if ids is None:
        ids = list(selected_ids)
    if not isinstance(ids, list) or not ids:
        raise ValidationFailure("'object_ids' must be a non-empty list of object ids")
    bad = [i for i in ids if isinstance(i, bool) or not isinstance(i, int)]
    if bad:
        raise ValidationFailure(f"'object_ids' contains non-integer ids: {bad!r}")
    if len(set(ids)) != len(ids):
        raise ValidationFailure("'object_ids' contains duplicates")
    return ids
