"""HTTP fetch adapter that hands the pipeline a decoded body and its final URL."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from .brand_config import (
    ACCEPT_HTML,
    ACCEPT_LANGUAGE,
    HDR_ACCEPT,
    HDR_ACCEPT_LANGUAGE,
    HDR_USER_AGENT,
    fetch_timeout,
    user_agent,
)
from .html_sanitize import decode_bytes_auto, minimal_text_fix

logger = logging.getLogger(__name__)

__all__ = ["FetchConfig", "FetchResult", "PageFetcher"]


@dataclass
class FetchConfig:
    """Configuration parameters for page and stylesheet fetching."""

    timeout: float = field(default_factory=fetch_timeout)
    user_agent: str = field(default_factory=user_agent)
    accept_language: str = ACCEPT_LANGUAGE
    max_bytes: int = 5 * 1024 * 1024


@dataclass
class FetchResult:
    """Container for a single fetch attempt."""

    url: str
    domain: str
    status: int
    content_type: str
    text: str
    fetched_at: str
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status < 300

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "domain": self.domain,
            "status": self.status,
            "content_type": self.content_type,
            "text_length": len(self.text),
            "fetched_at": self.fetched_at,
            "error": self.error,
            "metadata": self.metadata,
        }


def _domain(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def _stamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class PageFetcher:
    """Synchronous fetcher built on a ``requests.Session``."""

    def __init__(self, config: Optional[FetchConfig] = None, session: Optional[requests.Session] = None) -> None:
        self.config = config or FetchConfig()
        self.session = session or requests.Session()

    def _headers(self, accept: str) -> Dict[str, str]:
        return {
            HDR_USER_AGENT: self.config.user_agent,
            HDR_ACCEPT: accept,
            HDR_ACCEPT_LANGUAGE: self.config.accept_language,
        }

    def fetch(self, url: str, *, accept: str = ACCEPT_HTML) -> FetchResult:
        """GET ``url``; transport failures come back as ``status=-1`` with ``error`` set."""

        try:
            resp = self.session.get(url, headers=self._headers(accept), timeout=self.config.timeout)
        except requests.RequestException as exc:
            logger.warning("fetch failed for %s: %s", url, exc)
            return FetchResult(
                url=url,
                domain=_domain(url),
                status=-1,
                content_type="",
                text="",
                fetched_at=_stamp(),
                error=f"{type(exc).__name__}: {exc}",
            )
        final_url = resp.url or url
        body = resp.content[: self.config.max_bytes]
        text = minimal_text_fix(decode_bytes_auto(body, resp.headers)) if body else ""
        metadata: Dict[str, Any] = {"requested_url": url, "bytes": len(resp.content)}
        if len(resp.content) > self.config.max_bytes:
            metadata["truncated"] = True
        return FetchResult(
            url=final_url,
            domain=_domain(final_url),
            status=resp.status_code,
            content_type=resp.headers.get("content-type", "") or "",
            text=text,
            fetched_at=_stamp(),
            metadata=metadata,
        )

    def load_stylesheet(self, url: str) -> Optional[str]:
        """Stylesheet body for discovery, or None when it cannot be fetched."""

        result = self.fetch(url, accept="text/css,*/*;q=0.1")
        if not result.ok:
            logger.debug("stylesheet %s unavailable (status=%s)", url, result.status)
            return None
        return result.text
