"""Color name / hex normalization for model-supplied colors."""

import re

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6}|[0-9a-fA-F]{3})$")

NAMED_COLORS = {
    "red": "#FF0000",
    "green": "#00FF00",
    "blue": "#0000FF",
    "yellow": "#FFFF00",
    "cyan": "#00FFFF",
    "magenta": "#FF00FF",
    "orange": "#FFA500",
    "purple": "#800080",
    "pink": "#FFC0CB",
    "brown": "#A52A2A",
    "gray": "#808080",
    "grey": "#808080",
    "black": "#000000",
    "white": "#FFFFFF",
    "light blue": "#ADD8E6",
    "light green": "#90EE90",
    "light gray": "#D3D3D3",
    "light grey": "#D3D3D3",
    "dark blue": "#00008B",
    "dark green": "#006400",
    "dark red": "#8B0000",
    "dark gray": "#A9A9A9",
    "dark grey": "#A9A9A9",
    "navy": "#000080",
    "teal": "#008080",
}

FALLBACK_COLOR = "#000000"


def normalize_color(value) -> str:
    """Return *value* as an uppercase ``#RRGGBB`` string.

    Accepts hex with or without ``#`` (3- or 6-digit) and the names in
    ``NAMED_COLORS`` (case/underscore-insensitive). Anything else maps to
    ``FALLBACK_COLOR``.
    """
    if not isinstance(value, str):
        return FALLBACK_COLOR
    text = value.strip()
    m = _HEX_RE.match(text)
    if m:
        digits = m.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return "#" + digits.upper()
    name = " ".join(text.lower().replace("_", " ").replace("-", " ").split())
    return NAMED_COLORS.get(name, FALLBACK_COLOR)
