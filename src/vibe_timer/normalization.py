"""Utilities to normalize vibe names and color tokens."""

from __future__ import annotations

import re
from typing import Optional

from .colors import HEX_COLOR_PATTERN, PALETTE

_PALETTE_BY_NAME = {name.casefold(): hex_value for name, hex_value in PALETTE}


def normalize_vibe_name(name: Optional[str]) -> str:
    """Trim and collapse whitespace; the result may be empty."""
    if not name:
        return ""
    return re.sub(r"\s+", " ", name).strip()


def name_key(name: str) -> str:
    return normalize_vibe_name(name).casefold()


def normalize_color(value: Optional[str]) -> Optional[str]:
    """Resolve palette names to hex and upper-case hex tokens.

    Anything else is returned stripped, since color is purely cosmetic.
    """
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    palette_hex = _PALETTE_BY_NAME.get(cleaned.casefold())
    if palette_hex:
        return palette_hex
    if HEX_COLOR_PATTERN.match(cleaned):
        return cleaned.upper()
    return cleaned
