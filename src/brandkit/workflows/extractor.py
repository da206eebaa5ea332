"""Pipeline entry point: markup + base URL in, ``ExtractedAssetSet`` out."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

from .assets import ExtractedAssetSet
from .brand_config import PLACEHOLDER_BASE_URL
from .discovery import AssetDiscovery, StylesheetLoader, parse_markup
from .html_sanitize import SanitizeMode, sanitize
from .logo_utils import dedupe_logos

logger = logging.getLogger(__name__)


def validate_base_url(base_url: Optional[str]) -> str:
    """Return ``base_url`` when it is an absolute http(s) URL, else the placeholder base."""

    raw = (base_url or "").strip()
    try:
        parsed = urlparse(raw)
    except ValueError:
        parsed = None
    if parsed is None or parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
        if raw:
            logger.info("invalid base URL %r; using %s", raw, PLACEHOLDER_BASE_URL)
        return PLACEHOLDER_BASE_URL
    return raw


def extract_assets(
    raw_markup: str,
    base_url: str,
    *,
    stylesheet_loader: Optional[StylesheetLoader] = None,
    stylesheet_limit: Optional[int] = None,
    sanitize_first: bool = True,
) -> ExtractedAssetSet:
    """Extract logos, colors, fonts and illustrations from one page.

    Never raises for malformed markup: any failure past base URL validation
    yields an empty (or partial) set. ``stylesheet_loader`` is called with
    absolute same-origin stylesheet URLs and returns their text (or None).
    """

    base = validate_base_url(base_url)
    if not raw_markup:
        return ExtractedAssetSet.empty()
    try:
        markup = sanitize(raw_markup, SanitizeMode.EXTRACTION_PRESERVING) if sanitize_first else raw_markup
        tree = parse_markup(markup)
        engine = AssetDiscovery(base, stylesheet_loader=stylesheet_loader, stylesheet_limit=stylesheet_limit)
        found = engine.discover(tree)
        result = ExtractedAssetSet.from_iterables(
            logos=dedupe_logos(found.logos),
            colors=found.colors.freeze(),
            fonts=found.fonts.freeze(),
            illustrations=found.illustrations.freeze(),
        )
    except Exception as exc:
        logger.warning("asset extraction failed for %s: %s", base, exc)
        return ExtractedAssetSet.empty()
    logger.debug("extracted %s from %s", result.counts(), base)
    return result


__all__ = ["validate_base_url", "extract_assets"]
