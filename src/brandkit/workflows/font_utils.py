"""Font family extraction from CSS text and font-service link URLs."""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import parse_qs, urlparse

from .brand_config import FAMILY_PARAM_FONT_HOSTS, GENERIC_FONT_FAMILIES, PLACEHOLDER_FONT_SERVICES

__all__ = [
    "is_generic_font",
    "clean_font_name",
    "split_font_families",
    "parse_font_shorthand",
    "extract_font_families",
    "is_font_service_url",
    "font_service_families",
    "placeholder_font_service",
]

_FONT_FAMILY_RE = re.compile(r"(?<![\w-])font-family\s*:\s*([^;}]+)", re.I)
_FONT_SHORTHAND_RE = re.compile(r"(?<![\w-])font\s*:\s*([^;}]+)", re.I)
_IMPORTANT_RE = re.compile(r"!\s*important", re.I)
_SIZE_UNITS = r"(?:px|pt|pc|em|rem|ex|ch|%|vw|vh|vmin|vmax|cm|mm|in|q)"
_SIZE_KEYWORDS = r"(?:xx-small|x-small|small|medium|large|x-large|xx-large|xxx-large|larger|smaller)"
_SHORTHAND_FAMILY_RE = re.compile(
    r"(?:^|\s)(?:\d*\.?\d+" + _SIZE_UNITS + r"|" + _SIZE_KEYWORDS + r")"
    r"(?:\s*/\s*[^\s,]+)?\s+(?P<family>\S.*)$",
    re.I,
)


def is_generic_font(name: str) -> bool:
    return (name or "").strip().lower() in GENERIC_FONT_FAMILIES


def clean_font_name(raw: str) -> Optional[str]:
    """Strip quotes and ``!important``; None for generic, empty or non-name values."""

    name = _IMPORTANT_RE.sub("", raw or "")
    name = name.replace('"', "").replace("'", "").strip()
    if not name:
        return None
    if is_generic_font(name):
        return None
    if name[0].isdigit() or "(" in name or name.startswith("--"):
        return None
    return name


def split_font_families(value: str) -> List[str]:
    families: List[str] = []
    for part in (value or "").split(","):
        name = clean_font_name(part)
        if name and name not in families:
            families.append(name)
    return families


def parse_font_shorthand(value: str) -> List[str]:
    """Family list from a ``font:`` shorthand value.

    The family list is whatever follows the size token (with its optional
    ``/line-height``); system-font keywords such as ``caption`` yield nothing.
    """

    match = _SHORTHAND_FAMILY_RE.search((value or "").strip())
    if not match:
        return []
    return split_font_families(match.group("family"))


def extract_font_families(css: str) -> List[str]:
    """Distinct non-generic family names declared in a block of style text."""

    names: List[str] = []
    if not css:
        return names
    for match in _FONT_FAMILY_RE.finditer(css):
        for name in split_font_families(match.group(1)):
            if name not in names:
                names.append(name)
    for match in _FONT_SHORTHAND_RE.finditer(css):
        for name in parse_font_shorthand(match.group(1)):
            if name not in names:
                names.append(name)
    return names


def _host(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except Exception:
        return ""


def is_font_service_url(url: str) -> bool:
    host = _host(url)
    if not host:
        return False
    if host in FAMILY_PARAM_FONT_HOSTS:
        return True
    return any(host == service_host for service_host, _ in PLACEHOLDER_FONT_SERVICES)


def font_service_families(url: str) -> List[str]:
    """Family names from a Google/Bunny style ``family=`` link.

    Handles repeated ``family`` parameters (css2 API), ``|``-separated lists
    (css v1 API) and ``:``-suffixed weight/axis specs.
    """

    if _host(url) not in FAMILY_PARAM_FONT_HOSTS:
        return []
    try:
        query = parse_qs(urlparse(url).query)
    except Exception:
        return []
    families: List[str] = []
    for raw in query.get("family", []):
        for family in raw.split("|"):
            name = clean_font_name(family.split(":", 1)[0].replace("+", " "))
            if name and name not in families:
                families.append(name)
    return families


def placeholder_font_service(url: str) -> Optional[str]:
    host = _host(url)
    for service_host, label in PLACEHOLDER_FONT_SERVICES:
        if host == service_host:
            return label
    return None
