"""Markup decoding and sanitization helpers.

Sanitization works on the raw markup text, never on a rendered DOM, and only
ever deletes spans of it: whatever survives is byte-for-byte what the page
served. Two modes exist:

``STRICT``
    for re-serving fetched content to a consumer that will display it.
``EXTRACTION_PRESERVING``
    for markup about to be scanned for brand assets; only script blocks, a
    few event handlers and ``javascript:`` links are removed so that link,
    meta, style, image, svg, class and id markup (including ``data:`` URLs)
    reaches discovery untouched.

Every pass is a single left-to-right scan. Attribute rules apply to the
whole text rather than to parsed tags, and a removed attribute leaves its
leading separator behind so that no new attribute or tag name can be
spliced together from what surrounded it.
"""

from __future__ import annotations

import html
import logging
import re
import unicodedata
from enum import Enum
from typing import Callable, FrozenSet, Mapping, Optional

import ftfy
from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)

__all__ = [
    "SanitizeMode",
    "sanitize",
    "sanitize_strict",
    "sanitize_for_extraction",
    "escape_text",
    "decode_bytes_auto",
    "minimal_text_fix",
]

_ZERO_WIDTH = {0x200B, 0x200C, 0x200D, 0x2060, 0xFEFF}
_REMOVE = {0x00, 0x0B, 0x0C}
_C1_TO_SPACE = {cp: " " for cp in range(0x80, 0xA0)}
_TRANSLATE = {**{cp: None for cp in _ZERO_WIDTH | _REMOVE}, **_C1_TO_SPACE}

# Deleting text can splice new constructs together; passes beyond this are
# treated as hostile input and fall back to escaping.
MAX_PASSES = 16

_SCRIPT_TAG_RE = re.compile(r"<(/?)script\b", re.I)
_SCRIPT_END_RE = re.compile(r"</script\b", re.I)
_STRICT_TAGS_RE = re.compile(
    r"</?(?:iframe|object|embed|applet|form|input|button|textarea|select|frameset|frame)\b[^>]*>",
    re.I,
)
_STRICT_TAG_START_RE = re.compile(
    r"</?(?:iframe|object|embed|applet|form|input|button|textarea|select|frameset|frame)\b",
    re.I,
)
_STYLE_OPEN_RE = re.compile(r"<style\b", re.I)
_STYLE_CLOSE_RE = re.compile(r"</style\b", re.I)
_CSS_DELIMITER_RE = re.compile(r"([;{}])")
_EXPRESSION_RE = re.compile(r"expression\s*\(", re.I)

_ATTR_VALUE = r"""("[^"]*"|'[^']*'|[^\s>]*)"""
_ALL_EVENTS_RE = re.compile(r"""([\s/"'])on[a-z0-9_-]+\s*=\s*""" + _ATTR_VALUE, re.I)
_EXTRACTION_EVENTS_RE = re.compile(r"""([\s/"'])on(?:load|error|click)\s*=\s*""" + _ATTR_VALUE, re.I)
_URL_ATTR_RE = re.compile(r"""([\s/"'])(?:xlink:)?(?:href|src)\s*=\s*""" + _ATTR_VALUE, re.I)
_STYLE_ATTR_RE = re.compile(r"""([\s/"'])style\s*=\s*""" + _ATTR_VALUE, re.I)
# Browsers drop ASCII whitespace and control characters inside URLs before reading the scheme.
_URL_NOISE_RE = re.compile(r"[\x00-\x20\x7f]+")

_STRICT_SCHEMES = frozenset({"javascript", "data", "vbscript"})
_EXTRACTION_SCHEMES = frozenset({"javascript"})


class SanitizeMode(str, Enum):
    STRICT = "strict"
    EXTRACTION_PRESERVING = "extraction-preserving"

    @classmethod
    def parse(cls, value: "SanitizeMode | str") -> "SanitizeMode":
        if isinstance(value, SanitizeMode):
            return value
        token = (value or "").strip().lower().replace("_", "-")
        if token == "strict":
            return cls.STRICT
        if token in {"extraction", "extraction-preserving", "asset-extraction", "preserving"}:
            return cls.EXTRACTION_PRESERVING
        raise ValueError(f"Unknown sanitize mode: {value!r}")


def escape_text(text: str) -> str:
    """Entity-escape ``< > & " '``; the fallback when sanitization fails."""

    if not text:
        return ""
    return html.escape(text, quote=True)


def _attr_value(raw: str) -> str:
    if len(raw) >= 2 and raw[0] in "\"'" and raw[-1] == raw[0]:
        raw = raw[1:-1]
    return html.unescape(raw)


def url_scheme(raw_value: str) -> str:
    """Scheme a browser would see for an attribute value, lowercased ('' if none)."""

    decoded = _URL_NOISE_RE.sub("", _attr_value(raw_value)).lower()
    scheme, sep, _ = decoded.partition(":")
    return scheme if sep else ""


def _strip_scripts(markup: str) -> str:
    # An opening tag without a matching end swallows the rest of the
    # document in a browser, so everything from it onward goes too.
    pieces = []
    pos = 0
    while True:
        tag = _SCRIPT_TAG_RE.search(markup, pos)
        if tag is None:
            pieces.append(markup[pos:])
            break
        pieces.append(markup[pos : tag.start()])
        if not tag.group(1):
            tag = _SCRIPT_END_RE.search(markup, tag.end())
            if tag is None:
                break
        close = markup.find(">", tag.end())
        if close == -1:
            break
        pos = close + 1
    return "".join(pieces)


def _strip_strict_tags(markup: str) -> str:
    last_close = markup.rfind(">")
    head = _STRICT_TAGS_RE.sub("", markup[: last_close + 1])
    tail = markup[last_close + 1 :]
    dangling = _STRICT_TAG_START_RE.search(tail)
    if dangling is not None:
        tail = tail[: dangling.start()]
    return head + tail


def _drop_expression_declarations(css: str) -> str:
    parts = _CSS_DELIMITER_RE.split(css)
    return "".join(part for part in parts if not _EXPRESSION_RE.search(part))


def _strip_style_block_expressions(markup: str) -> str:
    pieces = []
    pos = 0
    while True:
        opening = _STYLE_OPEN_RE.search(markup, pos)
        if opening is None:
            break
        body_start = markup.find(">", opening.end())
        if body_start == -1:
            break
        body_start += 1
        closing = _STYLE_CLOSE_RE.search(markup, body_start)
        body_end = len(markup) if closing is None else closing.start()
        pieces.append(markup[pos:body_start])
        pieces.append(_drop_expression_declarations(markup[body_start:body_end]))
        pos = body_end
        if closing is None:
            break
    pieces.append(markup[pos:])
    return "".join(pieces)


def _drop_url_attrs(schemes: FrozenSet[str]) -> Callable[["re.Match[str]"], str]:
    def _apply(match: "re.Match[str]") -> str:
        if url_scheme(match.group(2)) in schemes:
            return match.group(1)
        return match.group(0)

    return _apply


def _drop_expression_style(match: "re.Match[str]") -> str:
    if _EXPRESSION_RE.search(_attr_value(match.group(2))):
        return match.group(1)
    return match.group(0)


_drop_strict_urls = _drop_url_attrs(_STRICT_SCHEMES)
_drop_extraction_urls = _drop_url_attrs(_EXTRACTION_SCHEMES)


def _strict_pass(markup: str) -> str:
    markup = _strip_scripts(markup)
    markup = _strip_strict_tags(markup)
    markup = _strip_style_block_expressions(markup)
    markup = _ALL_EVENTS_RE.sub(r"\1", markup)
    markup = _URL_ATTR_RE.sub(_drop_strict_urls, markup)
    return _STYLE_ATTR_RE.sub(_drop_expression_style, markup)


def _extraction_pass(markup: str) -> str:
    markup = _strip_scripts(markup)
    markup = _EXTRACTION_EVENTS_RE.sub(r"\1", markup)
    return _URL_ATTR_RE.sub(_drop_extraction_urls, markup)


def _until_stable(markup: str, step: Callable[[str], str], limit: int = MAX_PASSES) -> str:
    for _ in range(limit):
        cleaned = step(markup)
        if cleaned == markup:
            return cleaned
        markup = cleaned
    raise RuntimeError(f"markup still changing after {limit} passes")


def sanitize(raw_markup: str, mode: "SanitizeMode | str" = SanitizeMode.STRICT) -> str:
    """Remove executable content from markup.

    Repeated until nothing more changes, so the result is stable under a
    second application. If anything goes wrong internally the whole input
    is entity-escaped instead of returning partially cleaned markup.
    """

    if not raw_markup:
        return ""
    resolved = SanitizeMode.parse(mode)
    step = _strict_pass if resolved is SanitizeMode.STRICT else _extraction_pass
    try:
        return _until_stable(raw_markup, step)
    except Exception:
        logger.exception("sanitize(%s) failed; escaping %d chars", resolved.value, len(raw_markup))
        return escape_text(raw_markup)


def sanitize_strict(raw_markup: str) -> str:
    return sanitize(raw_markup, SanitizeMode.STRICT)


def sanitize_for_extraction(raw_markup: str) -> str:
    return sanitize(raw_markup, SanitizeMode.EXTRACTION_PRESERVING)


def decode_bytes_auto(body: bytes, headers: Optional[Mapping[str, str]] = None) -> str:
    """Decode HTTP bytes using charset header hints with charset-normalizer fallback."""

    enc = None
    if headers:
        ct = headers.get("content-type", "") or headers.get("Content-Type", "")
        match = re.search(r"charset=([^\s;]+)", ct, re.I)
        if match:
            enc = match.group(1).strip(' "\'').lower()
    if enc:
        try:
            return body.decode(enc, errors="replace")
        except LookupError:
            logger.debug("unknown charset %r; detecting instead", enc)
    result = from_bytes(body).best()
    if result is None:
        return body.decode("utf-8", errors="replace")
    return str(result)


def minimal_text_fix(text: str) -> str:
    """Fix mojibake and strip zero-width/control noise without collapsing structure."""

    if not text:
        return ""
    normalized = unicodedata.normalize("NFC", text)
    fixed = ftfy.fix_text(normalized, normalization="NFC")
    return fixed.translate(_TRANSLATE)
