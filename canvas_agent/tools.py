"""
Tool definitions for language-model function calling.

Each tool schema defines what the model can call and what parameters it needs.
Tools are executed by the batch executor based on model decisions; creation
tools go through one atomic multi-insert, everything else runs individually.

Adding a tool means: a schema here, a handler in tool_handlers/ (or membership
in CREATE_TOOLS), and nothing else: the normalizer reads its known-tool set
and defaults from this module.
"""

_OBJECT_ID = {
    "type": "integer",
    "description": "ID of the target object (from the canvas object list)",
}

_OBJECT_IDS = {
    "type": "array",
    "items": {"type": "integer"},
    "description": "IDs of the objects to operate on, in the order they should be placed",
}

_SPACING = {
    "type": "number",
    "description": "Gap between objects in pixels",
}

TOOLS = [
    # ---- Creation (batched) ----
    {
        "name": "create_shape",
        "description": """Create one or more shapes on the canvas. Use this when:
- User asks for a rectangle, square, box, circle or dot
- User asks for several identical shapes ("5 red circles"): set count instead of calling repeatedly

Multiple shapes are laid out in a row starting at (x, y), each offset by width + spacing.""",
        "parameters": {
            "type": "object",
            "properties": {
                "type": {"type": "string", "enum": ["rectangle", "circle"], "description": "Shape type"},
                "x": {"type": "number", "description": "X of the top-left corner"},
                "y": {"type": "number", "description": "Y of the top-left corner"},
                "width": {"type": "number", "default": 100, "description": "Width in pixels"},
                "height": {"type": "number", "default": 100, "description": "Height in pixels"},
                "fill": {"type": "string", "description": "Fill color as hex (#FF0000) or name (red)"},
                "stroke": {"type": "string", "default": "#1E40AF", "description": "Border color"},
                "stroke_width": {"type": "number", "default": 2, "description": "Border width in pixels"},
                "opacity": {"type": "number", "minimum": 0, "maximum": 1, "description": "Opacity 0-1"},
                "count": {"type": "integer", "minimum": 1, "maximum": 100, "default": 1, "description": "Number of shapes to create"},
                "spacing": _SPACING,
            },
            "required": ["type", "x", "y"],
        },
    },
    {
        "name": "create_text",
        "description": """Create a text label on the canvas. Use this for titles, captions and annotations.""",
        "parameters": {
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "Text content"},
                "x": {"type": "number", "description": "X position"},
                "y": {"type": "number", "description": "Y position"},
                "font_size": {"type": "number", "default": 16, "description": "Font size in pixels"},
                "font_family": {"type": "string", "default": "Arial", "description": "Font family"},
                "color": {"type": "string", "description": "Text color as hex or name"},
                "align": {"type": "string", "enum": ["left", "center", "right"], "default": "left"},
                "count": {"type": "integer", "minimum": 1, "maximum": 100, "default": 1, "description": "Number of copies"},
                "spacing": _SPACING,
            },
            "required": ["text", "x", "y"],
        },
    },
    # ---- Single-object mutations ----
    {
        "name": "move_object",
        "description": """Move an object. By default (x, y) is the new absolute position; with use_delta=true they are offsets from the current position.""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_id": _OBJECT_ID,
                "x": {"type": "number", "description": "New X (or X offset with use_delta)"},
                "y": {"type": "number", "description": "New Y (or Y offset with use_delta)"},
                "use_delta": {"type": "boolean", "default": False, "description": "Treat x/y as relative offsets"},
            },
            "required": ["object_id", "x", "y"],
        },
    },
    {
        "name": "resize_object",
        "description": """Resize an object. With maintain_aspect_ratio=true only width is required; height follows the current ratio.""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_id": _OBJECT_ID,
                "width": {"type": "number", "minimum": 1, "description": "New width"},
                "height": {"type": "number", "minimum": 1, "description": "New height"},
                "maintain_aspect_ratio": {"type": "boolean", "default": False},
            },
            "required": ["object_id", "width"],
        },
    },
    {
        "name": "rotate_object",
        "description": """Rotate an object to an absolute angle in degrees (clockwise).""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_id": _OBJECT_ID,
                "angle": {"type": "number", "minimum": 0, "maximum": 360, "description": "Rotation in degrees"},
            },
            "required": ["object_id", "angle"],
        },
    },
    {
        "name": "change_style",
        "description": """Change fill, border or opacity of an existing object. Only the given properties change.""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_id": _OBJECT_ID,
                "fill": {"type": "string", "description": "New fill color"},
                "stroke": {"type": "string", "description": "New border color"},
                "stroke_width": {"type": "number", "minimum": 0},
                "opacity": {"type": "number", "minimum": 0, "maximum": 1},
            },
            "required": ["object_id"],
        },
    },
    {
        "name": "update_text",
        "description": """Change the content or styling of an existing text object.""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_id": _OBJECT_ID,
                "text": {"type": "string"},
                "font_size": {"type": "number", "minimum": 1},
                "color": {"type": "string"},
            },
            "required": ["object_id"],
        },
    },
    {
        "name": "delete_object",
        "description": """Delete an object from the canvas.""",
        "parameters": {
            "type": "object",
            "properties": {"object_id": _OBJECT_ID},
            "required": ["object_id"],
        },
    },
    {
        "name": "group_objects",
        "description": """Tag several objects with a shared group name so they can be referred to together.""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_ids": _OBJECT_IDS,
                "group_name": {"type": "string", "description": "Name of the group"},
            },
            "required": ["object_ids"],
        },
    },
    {
        "name": "toggle_visibility",
        "description": """Show or hide an object. Omit visible to flip the current state.""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_id": _OBJECT_ID,
                "visible": {"type": "boolean"},
            },
            "required": ["object_id"],
        },
    },
    # ---- Queries ----
    {
        "name": "list_objects",
        "description": """List objects currently on the canvas, optionally filtered by type.""",
        "parameters": {
            "type": "object",
            "properties": {
                "type": {"type": "string", "enum": ["rectangle", "circle", "text"]},
            },
        },
    },
    {
        "name": "select_objects_by_description",
        "description": """Select objects matching a description ("the big red squares on the left").

Translate the description into filter criteria using the canvas statistics in
the prompt. All given criteria must match. Returns the matching object IDs.""",
        "parameters": {
            "type": "object",
            "properties": {
                "color": {"type": "string", "description": "Exact fill color (hex or name)"},
                "shape_type": {"type": "string", "enum": ["rectangle", "square", "circle", "text"]},
                "size_min": {"type": "number", "description": "Minimum of max(width, height)"},
                "size_max": {"type": "number", "description": "Maximum of max(width, height)"},
                "position": {
                    "type": "string",
                    "enum": ["top", "bottom", "left", "right", "center",
                             "top-left", "top-right", "bottom-left", "bottom-right"],
                    "description": "Region relative to the user's viewport",
                },
            },
        },
    },
    {
        "name": "ask_clarification",
        "description": """Ask the user a question when the command is ambiguous. Use this instead of guessing.""",
        "parameters": {
            "type": "object",
            "properties": {"question": {"type": "string"}},
            "required": ["question"],
        },
    },
    # ---- Arrangements (layout engine) ----
    {
        "name": "arrange_objects",
        "description": """Arrange objects in a standard layout. Use this when:
- User asks to line up, distribute, stack, or space objects
- User asks for a grid (give columns or rows, not both) or a circle of objects

horizontal/vertical distribute evenly when spacing is omitted.""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_ids": _OBJECT_IDS,
                "layout_type": {
                    "type": "string",
                    "enum": ["horizontal", "vertical", "grid", "circular", "stack"],
                },
                "spacing": _SPACING,
                "alignment": {
                    "type": "string",
                    "enum": ["left", "center", "right", "top", "middle", "bottom"],
                    "description": "Optional alignment pass after the layout",
                },
                "columns": {"type": "integer", "minimum": 1, "description": "Grid columns"},
                "rows": {"type": "integer", "minimum": 1, "description": "Grid rows"},
                "radius": {"type": "number", "default": 200, "description": "Circle radius"},
            },
            "required": ["object_ids", "layout_type"],
        },
    },
    {
        "name": "arrange_in_star",
        "description": """Arrange objects as a star: points alternate between an outer and inner radius around the objects' centroid, starting from the top.""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_ids": _OBJECT_IDS,
                "points": {"type": "integer", "minimum": 3, "default": 5},
                "outer_radius": {"type": "number", "default": 300},
                "inner_radius": {"type": "number", "description": "Defaults to 40% of outer_radius"},
            },
            "required": ["object_ids"],
        },
    },
    {
        "name": "arrange_along_path",
        "description": """Place objects evenly along a path.

- line: from (start_x, start_y) to (end_x, end_y)
- arc: circle of radius around (center_x, center_y) from start_angle to end_angle (degrees, 0 = right, 90 = down)
- bezier: cubic curve from start to end through control points 1 and 2
- spiral: from start_radius to end_radius around the center over the given rotations""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_ids": _OBJECT_IDS,
                "path_type": {"type": "string", "enum": ["line", "arc", "bezier", "spiral"]},
                "start_x": {"type": "number"},
                "start_y": {"type": "number"},
                "end_x": {"type": "number"},
                "end_y": {"type": "number"},
                "center_x": {"type": "number"},
                "center_y": {"type": "number"},
                "radius": {"type": "number"},
                "start_angle": {"type": "number"},
                "end_angle": {"type": "number"},
                "control1_x": {"type": "number"},
                "control1_y": {"type": "number"},
                "control2_x": {"type": "number"},
                "control2_y": {"type": "number"},
                "start_radius": {"type": "number"},
                "end_radius": {"type": "number"},
                "rotations": {"type": "number"},
            },
            "required": ["object_ids", "path_type"],
        },
    },
    {
        "name": "arrange_with_relationships",
        "description": """Position objects relative to each other ("put the title above the box").

Relations are applied in the order given, each against the current position
of its reference, so chain them from the anchor outwards.""",
        "parameters": {
            "type": "object",
            "properties": {
                "relationships": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "subject_id": {"type": "integer"},
                            "relation": {
                                "type": "string",
                                "enum": ["above", "below", "left_of", "right_of",
                                         "aligned_horizontally_with", "aligned_vertically_with",
                                         "centered_between"],
                            },
                            "reference_id": {"type": "integer"},
                            "reference_id_2": {"type": "integer", "description": "Second reference for centered_between"},
                            "spacing": {"type": "number"},
                        },
                        "required": ["subject_id", "relation", "reference_id"],
                    },
                },
                "spacing": {"type": "number", "default": 20},
            },
            "required": ["relationships"],
        },
    },
    {
        "name": "align_objects",
        "description": """Align objects along a shared edge or center line without changing the other axis.""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_ids": _OBJECT_IDS,
                "alignment": {
                    "type": "string",
                    "enum": ["left", "center", "right", "top", "middle", "bottom"],
                },
            },
            "required": ["object_ids", "alignment"],
        },
    },
    {
        "name": "arrange_objects_with_pattern",
        "description": """Arrange objects in a decorative pattern: line, diagonal, wave (sine) or arc (parabola).""",
        "parameters": {
            "type": "object",
            "properties": {
                "object_ids": _OBJECT_IDS,
                "pattern": {"type": "string", "enum": ["line", "diagonal", "wave", "arc"]},
                "direction": {
                    "type": "string",
                    "enum": ["horizontal", "vertical", "diagonal-right", "diagonal-left"],
                },
                "spacing": {"type": "number", "default": 50},
                "amplitude": {"type": "number", "default": 100},
                "frequency": {"type": "number", "default": 2},
                "sort_by": {"type": "string", "enum": ["none", "x", "y", "size", "id"], "default": "none"},
                "start_x": {"type": "number"},
                "start_y": {"type": "number"},
            },
            "required": ["object_ids", "pattern"],
        },
    },
]

TOOL_NAMES = frozenset(t["name"] for t in TOOLS)

# Batched through one atomic multi-insert
CREATE_TOOLS = frozenset({"create_shape", "create_text"})
DELETE_TOOLS = frozenset({"delete_object"})
# Never mutate the canvas; excluded from broadcast and change counts
READ_ONLY_TOOLS = frozenset({"list_objects", "select_objects_by_description", "ask_clarification"})

# Input fields holding object ids (scalars and lists)
ID_FIELDS = frozenset({"object_id", "subject_id", "reference_id", "reference_id_2"})
ID_LIST_FIELDS = frozenset({"object_ids"})


def get_tool_schemas(names: list[str] | None = None) -> list[dict]:
    """Return tool schemas for LLM function calling.

    Args:
        names: Optional list of tool names to include.
            If None, returns all tools.

    Returns:
        List of tool schema dicts.
    """
    if names is None:
        return list(TOOLS)
    wanted = set(names)
    return [t for t in TOOLS if t["name"] in wanted]


def get_function_schemas(names: list[str] | None = None) -> "list[FunctionSchema]":
    """Return tool schemas as ``FunctionSchema`` objects ready for LLM adapters."""
    from .llm.base import FunctionSchema
    return [
        FunctionSchema(
            name=ts["name"],
            description=ts["description"],
            parameters=ts["parameters"],
        )
        for ts in get_tool_schemas(names)
    ]


def get_defaults(name: str) -> dict:
    """Return ``{param: default}`` for every parameter of *name* that declares one."""
    for t in TOOLS:
        if t["name"] == name:
            props = t["parameters"].get("properties", {})
            return {k: v["default"] for k, v in props.items() if "default" in v}
    return {}
