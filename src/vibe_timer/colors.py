"""Color palette offered for vibes."""

from __future__ import annotations

import re
from typing import Iterable, Optional

PALETTE: tuple[tuple[str, str], ...] = (
    ("Blue", "#0EA5E9"),
    ("Purple", "#9B87F5"),
    ("Green", "#10B981"),
    ("Orange", "#F97316"),
    ("Pink", "#D946EF"),
    ("Indigo", "#8B5CF6"),
    ("Hot Pink", "#EC4899"),
    ("Gold", "#F59E0B"),
    ("Cyan", "#06B6D4"),
    ("Emerald", "#22C55E"),
)

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

_KEYWORD_COLORS: tuple[tuple[str, str], ...] = (
    ("work", "#0EA5E9"),
    ("study", "#9B87F5"),
    ("exercise", "#10B981"),
    ("social", "#F97316"),
    ("self", "#D946EF"),
)

_FALLBACK_COLORS = ("#8B5CF6", "#EC4899", "#F59E0B", "#06B6D4", "#22C55E")


def keyword_color(vibe_name: str) -> Optional[str]:
    lowered = vibe_name.lower()
    for keyword, hex_value in _KEYWORD_COLORS:
        if keyword in lowered:
            return hex_value
    return None


def default_color(vibe_id: str, vibe_name: str) -> str:
    """Pick a stable color from the vibe's name, or from its id."""
    matched = keyword_color(vibe_name)
    if matched:
        return matched
    index = sum(ord(char) for char in vibe_id) % len(_FALLBACK_COLORS)
    return _FALLBACK_COLORS[index]


def chart_color(vibe_id: str, vibe_name: str, color: Optional[str]) -> str:
    """Hex color to draw a vibe with; free-form tokens fall back to a default."""
    if color and HEX_COLOR_PATTERN.match(color):
        return color
    return default_color(vibe_id, vibe_name)


def next_palette_color(used: Iterable[str]) -> str:
    """First palette color not in ``used``; cycles once all are taken."""
    used_list = [value.upper() for value in used]
    for _, hex_value in PALETTE:
        if hex_value not in used_list:
            return hex_value
    return PALETTE[len(used_list) % len(PALETTE)][1]
