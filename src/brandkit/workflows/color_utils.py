"""Color token discovery and normalization for CSS text."""

from __future__ import annotations

import re
from typing import Iterator, List, Optional

__all__ = [
    "normalize_color",
    "rgb_to_hex",
    "iter_color_tokens",
    "custom_property_colors",
    "extract_colors",
]

_HEX_RE = re.compile(r"#(?:[0-9a-f]{6}|[0-9a-f]{3})\b", re.I)
_RGB_RE = re.compile(r"rgb\(\s*\d+\s*,\s*\d+\s*,\s*\d+\s*\)", re.I)
_RGBA_RE = re.compile(r"rgba\(\s*\d+\s*,\s*\d+\s*,\s*\d+\s*,\s*[0-9.]+\s*\)", re.I)
_HSL_RE = re.compile(r"hsl\(\s*\d+\s*,\s*\d+%\s*,\s*\d+%\s*\)", re.I)
_COLOR_TOKEN_RE = re.compile(
    "|".join(p.pattern for p in (_HEX_RE, _RGBA_RE, _RGB_RE, _HSL_RE)),
    re.I,
)

_HEX_FULL = re.compile(r"#([0-9a-f]{3}|[0-9a-f]{6})")
_RGB_FULL = re.compile(r"rgb\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)")
_PASSTHROUGH_FULL = (
    re.compile(r"rgba\(\s*\d+\s*,\s*\d+\s*,\s*\d+\s*,\s*[0-9.]+\s*\)"),
    re.compile(r"hsl\(\s*\d+\s*,\s*\d+%\s*,\s*\d+%\s*\)"),
)

_CUSTOM_PROPERTY_RE = re.compile(r"--[a-zA-Z0-9_-]+\s*:\s*([^;}]+)")
_TRIPLET_RE = re.compile(r"(?<![\d.])(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})(?![\d.])")


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Encode channels as ``#rrggbb``.

    Channels are not clamped: ``rgb(999,0,0)`` becomes ``#3e70000``.
    """

    return "#" + "".join(format(channel, "02x") for channel in (r, g, b))


def normalize_color(token: str) -> Optional[str]:
    """Return the canonical form of a color token, or None when it is not one.

    Hex and ``rgb()`` values become lowercase ``#rrggbb``; ``rgba()`` and
    ``hsl()`` are kept as written, lowercased and trimmed.
    """

    if not token:
        return None
    trimmed = token.strip().lower()
    if not trimmed:
        return None
    match = _HEX_FULL.fullmatch(trimmed)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return f"#{digits}"
    match = _RGB_FULL.fullmatch(trimmed)
    if match:
        return rgb_to_hex(*(int(part) for part in match.groups()))
    for pattern in _PASSTHROUGH_FULL:
        if pattern.fullmatch(trimmed):
            return trimmed
    return None


def iter_color_tokens(text: str) -> Iterator[str]:
    """Yield canonical colors for every recognized token, in document order."""

    if not text:
        return
    for match in _COLOR_TOKEN_RE.finditer(text):
        normalized = normalize_color(match.group(0))
        if normalized:
            yield normalized


def custom_property_colors(text: str) -> List[str]:
    """Colors declared through CSS custom properties.

    A property value counts when it holds a color token, or failing that a
    bare ``R, G, B`` triplet (the form used with ``rgb(var(--x))``) whose
    channels all fit in 0-255.
    """

    colors: List[str] = []
    if not text:
        return colors
    for match in _CUSTOM_PROPERTY_RE.finditer(text):
        value = match.group(1).strip()
        found = next(iter_color_tokens(value), None)
        if found is None:
            triplet = _TRIPLET_RE.search(value)
            if triplet:
                channels = [int(part) for part in triplet.groups()]
                if all(channel <= 255 for channel in channels):
                    found = rgb_to_hex(*channels)
        if found and found not in colors:
            colors.append(found)
    return colors


def extract_colors(text: str) -> List[str]:
    """All distinct canonical colors in a block of CSS, custom properties first."""

    seen: List[str] = []
    for color in custom_property_colors(text):
        if color not in seen:
            seen.append(color)
    for color in iter_color_tokens(text):
        if color not in seen:
            seen.append(color)
    return seen
