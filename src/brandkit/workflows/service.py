"""Request-level composition: rate limit, fetch, sanitize, extract.

``ExtractionService`` is built explicitly with its collaborators; nothing
here is a module-level singleton, so tests and callers can hand in a stub
fetcher or an in-memory store.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..core.keys import (
    K_ASSETS,
    K_DOMAIN,
    K_ERROR,
    K_EXTRACTED_AT,
    K_RATE_LIMIT,
    K_SUCCESS,
    K_URL,
)
from .assets import ExtractedAssetSet
from .brand_config import (
    CACHE_CONTROL_DEFAULT,
    CACHE_CONTROL_HTML,
    CACHE_CONTROL_STATIC,
    PURPOSE_ASSET_EXTRACTION,
    STATIC_CONTENT_TYPE_HINTS,
)
from .extractor import extract_assets
from .html_sanitize import SanitizeMode, sanitize
from .page_fetch import PageFetcher
from .rate_limiter import RateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

__all__ = ["ExtractionOutcome", "ProxyResponse", "ExtractionService", "cache_control_for"]


@dataclass
class ExtractionOutcome:
    success: bool
    url: str
    domain: Optional[str]
    assets: Optional[ExtractedAssetSet]
    error: Optional[str]
    extracted_at: str
    rate_limit: Optional[RateLimitResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            K_SUCCESS: self.success,
            K_URL: self.url,
            K_DOMAIN: self.domain,
            K_ASSETS: self.assets.to_dict() if self.assets is not None else None,
            K_ERROR: self.error,
            K_EXTRACTED_AT: self.extracted_at,
            K_RATE_LIMIT: self.rate_limit.to_dict() if self.rate_limit is not None else None,
        }


@dataclass
class ProxyResponse:
    status: int
    body: str
    headers: Dict[str, str] = field(default_factory=dict)


def cache_control_for(content_type: str) -> str:
    ct = (content_type or "").lower()
    if "text/html" in ct:
        return CACHE_CONTROL_HTML
    if any(hint in ct for hint in STATIC_CONTENT_TYPE_HINTS):
        return CACHE_CONTROL_STATIC
    return CACHE_CONTROL_DEFAULT


def _json_error(status: int, message: str, headers: Optional[Dict[str, str]] = None, **extra: Any) -> ProxyResponse:
    payload: Dict[str, Any] = {"error": message}
    payload.update(extra)
    merged = {"Content-Type": "application/json"}
    merged.update(headers or {})
    return ProxyResponse(status=status, body=json.dumps(payload), headers=merged)


def _stamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class ExtractionService:
    def __init__(self, fetcher: PageFetcher, limiter: Optional[RateLimiter] = None) -> None:
        self.fetcher = fetcher
        self.limiter = limiter

    def _check(self, identity: str) -> Optional[RateLimitResult]:
        if self.limiter is None:
            return None
        return self.limiter.check_and_increment(identity)

    def extract_url(self, url: str, identity: str = "local") -> ExtractionOutcome:
        """Fetch ``url`` and extract its brand assets; failures are reported, not raised."""

        rate = self._check(identity)
        if rate is not None and rate.limited:
            return ExtractionOutcome(False, url, None, None, "Too many requests. Please try again later.", _stamp(), rate)
        result = self.fetcher.fetch(url)
        domain = result.domain or None
        if result.error is not None:
            return ExtractionOutcome(False, url, domain, None, "Failed to fetch website content", _stamp(), rate)
        if not result.ok:
            return ExtractionOutcome(False, url, domain, None, f"Website returned {result.status}", _stamp(), rate)
        assets = extract_assets(result.text, result.url, stylesheet_loader=self.fetcher.load_stylesheet)
        return ExtractionOutcome(True, url, domain, assets, None, _stamp(), rate)

    def proxy(self, url: str, identity: str, purpose: Optional[str] = None) -> ProxyResponse:
        """Fetch ``url`` on behalf of a client and re-serve it sanitized.

        ``purpose == "asset-extraction"`` keeps the markup discovery needs;
        anything else gets strict sanitization.
        """

        rate = self._check(identity)
        rate_headers = rate.to_headers() if rate is not None else {}
        if rate is not None and rate.limited:
            return _json_error(429, "Too many requests. Please try again later.", rate_headers)

        result = self.fetcher.fetch(url)
        if result.error is not None:
            return _json_error(
                502,
                "Failed to fetch website content",
                details="The target website may be unavailable or blocking requests",
            )
        if not result.ok:
            return _json_error(result.status, f"Website returned {result.status}")

        headers = dict(rate_headers)
        headers["Cache-Control"] = cache_control_for(result.content_type)
        if result.content_type:
            headers["Content-Type"] = result.content_type
        body = result.text
        if "text/html" in result.content_type.lower():
            mode = (
                SanitizeMode.EXTRACTION_PRESERVING
                if purpose == PURPOSE_ASSET_EXTRACTION
                else SanitizeMode.STRICT
            )
            body = sanitize(body, mode)
            logger.info("sanitized %s (%s): %d -> %d chars", url, mode.value, len(result.text), len(body))
        return ProxyResponse(status=200, body=body, headers=headers)
