"""Logo classification, grouping and ranking.

Discovery over-collects on purpose (anything mentioning ``logo``, ``brand``,
``mark`` or ``icon``). This module collapses the resulting near-duplicates,
such as the same favicon published at five sizes, into one representative
per visual identity.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from .assets import Logo
from .brand_config import LOGO_GENERIC_TOKENS, LOGO_KEYWORDS, MEANINGFUL_ALT_MIN_CHARS

logger = logging.getLogger(__name__)

__all__ = [
    "LogoCandidate",
    "is_logo_like",
    "normalized_filename",
    "group_key",
    "size_area",
    "rank_key",
    "group_candidates",
    "dedupe_logos",
]

_SEPARATORS_RE = re.compile(r"[-_.]")
_SIZE_TOKEN_RE = re.compile(r"\d+x?\d*", re.I)
_GENERIC_TOKEN_RE = re.compile("|".join(LOGO_GENERIC_TOKENS), re.I)
_DIMENSIONS_RE = re.compile(r"(\d+)(?:\s*[xX]\s*(\d+))?")


@dataclass(frozen=True)
class LogoCandidate:
    """A discovered logo plus the markup hints that led to it."""

    asset: Logo
    class_hint: str = ""
    id_hint: str = ""
    size_hint: Optional[str] = None

    @property
    def url(self) -> str:
        return self.asset.url

    @property
    def alt(self) -> Optional[str]:
        return self.asset.alt


def is_logo_like(url: str = "", alt: str = "", class_names: Iterable[str] | str = "", element_id: str = "") -> bool:
    """True when any hint contains a logo keyword (case-insensitive substring)."""

    if not isinstance(class_names, str):
        class_names = " ".join(class_names)
    text = f"{url or ''} {alt or ''} {class_names or ''} {element_id or ''}".lower()
    return any(keyword in text for keyword in LOGO_KEYWORDS)


def normalized_filename(path: str) -> str:
    filename = (path or "").rstrip("/").rsplit("/", 1)[-1]
    stripped = _SEPARATORS_RE.sub("", filename)
    stripped = _SIZE_TOKEN_RE.sub("", stripped)
    stripped = _GENERIC_TOKEN_RE.sub("", stripped)
    return stripped.lower()


def group_key(url: str) -> str:
    """``host:normalized-filename`` for http(s) URLs; anything else stays unique."""

    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
    except Exception:
        host = ""
    if not host:
        return f"raw:{url}"
    return f"{host}:{normalized_filename(parsed.path)}"


def _parse_dimensions(text: str) -> Optional[int]:
    match = _DIMENSIONS_RE.search(text or "")
    if not match:
        return None
    width = int(match.group(1))
    height = int(match.group(2)) if match.group(2) else width
    return width * height


def size_area(candidate: LogoCandidate) -> Optional[int]:
    """Pixel area from the declared ``sizes`` attribute, else from the filename."""

    if candidate.size_hint:
        declared = _parse_dimensions(candidate.size_hint)
        if declared is not None:
            return declared
    try:
        path = urlparse(candidate.url).path
    except Exception:
        path = candidate.url
    filename = (path or "").rstrip("/").rsplit("/", 1)[-1]
    return _parse_dimensions(filename)


def _is_vector(candidate: LogoCandidate) -> bool:
    return "svg" in (candidate.url or "").lower()


def _has_meaningful_alt(candidate: LogoCandidate) -> bool:
    alt = (candidate.alt or "").strip()
    return len(alt) >= MEANINGFUL_ALT_MIN_CHARS and "favicon" not in alt.lower()


def rank_key(candidate: LogoCandidate, position: int) -> Tuple[int, int, int, int, int]:
    """Sort key: sized before unsized, larger first, vector, meaningful alt, input order."""

    area = size_area(candidate)
    return (
        0 if area is not None else 1,
        -(area or 0),
        0 if _is_vector(candidate) else 1,
        0 if _has_meaningful_alt(candidate) else 1,
        position,
    )


def group_candidates(candidates: Sequence[LogoCandidate]) -> Dict[str, List[Tuple[int, LogoCandidate]]]:
    groups: Dict[str, List[Tuple[int, LogoCandidate]]] = {}
    for position, candidate in enumerate(candidates):
        if not candidate.url:
            continue
        groups.setdefault(group_key(candidate.url), []).append((position, candidate))
    return groups


def dedupe_logos(candidates: Sequence[LogoCandidate]) -> List[Logo]:
    """Keep the best-ranked candidate of every group, in order of first appearance."""

    survivors: List[Logo] = []
    for key, members in group_candidates(candidates).items():
        best = min(members, key=lambda item: rank_key(item[1], item[0]))[1]
        if len(members) > 1:
            logger.debug("logo group %s: kept %s out of %d", key, best.url, len(members))
        survivors.append(best.asset)
    return survivors
