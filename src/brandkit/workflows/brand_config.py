"""Brandkit defaults (keywords, font families, services, limits, headers).

Centralizes static defaults so the extraction modules have no embedded magic
strings. Values that operators may want to tune are also readable from the
environment through the ``env_*`` helpers at call time.
"""

from __future__ import annotations

import os

# Base URL used when the caller supplies one that cannot be parsed
PLACEHOLDER_BASE_URL = "https://example.com"
FALLBACK_FAVICON_PATH = "/favicon.ico"

# Logo heuristics
LOGO_KEYWORDS = ("logo", "brand", "mark", "icon")
LOGO_GENERIC_TOKENS = ("favicon", "android", "apple", "touch", "icon", "ms")
SOCIAL_LOGO_KEYWORDS = ("logo", "icon", "favicon")
ICON_REL_TOKENS = frozenset(
    {
        "icon",
        "apple-touch-icon",
        "apple-touch-icon-precomposed",
    }
)
WEBSITE_ICON_REL_TOKENS = frozenset({"mask-icon", "fluid-icon"})
SOCIAL_IMAGE_SELECTORS = (
    'meta[property="og:image"]',
    'meta[property="og:image:url"]',
    'meta[name="twitter:image"]',
)
THEME_COLOR_SELECTORS = (
    'meta[name="theme-color"]',
    'meta[name="msapplication-TileColor"]',
)
MEANINGFUL_ALT_MIN_CHARS = 4

# Fonts
GENERIC_FONT_FAMILIES = frozenset(
    {
        "serif",
        "sans-serif",
        "monospace",
        "cursive",
        "fantasy",
        "system-ui",
        "ui-serif",
        "ui-sans-serif",
        "ui-monospace",
        "ui-rounded",
        "math",
        "emoji",
        "fangsong",
        "-apple-system",
        "blinkmacsystemfont",
        "inherit",
        "initial",
        "unset",
        "revert",
        "revert-layer",
    }
)
# Services whose URLs carry a ``family`` query parameter
FAMILY_PARAM_FONT_HOSTS = ("fonts.googleapis.com", "fonts.bunny.net")
# Services recognized only by host; emitted under a placeholder name
PLACEHOLDER_FONT_SERVICES = (
    ("use.typekit.net", "Adobe Fonts"),
    ("use.adobe.com", "Adobe Fonts"),
    ("fast.fonts.net", "Fonts.com"),
)

# Linked stylesheet scanning
MAX_STYLESHEETS = 2

# Rate limiting
RATE_LIMIT_MAX_REQUESTS = 100
RATE_LIMIT_WINDOW_MS = 60 * 60 * 1000
RATE_LIMIT_KEY_PREFIX = "rate_limit:"

# Fetching
FETCH_TIMEOUT_SECONDS = 15.0
USER_AGENT = "brandkit/0.1 (+https://github.com/brandkit/brandkit)"
HDR_ACCEPT = "Accept"
HDR_ACCEPT_LANGUAGE = "Accept-Language"
HDR_USER_AGENT = "User-Agent"
ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
ACCEPT_LANGUAGE = "en-US,en;q=0.5"

# Proxy purposes / caching
PURPOSE_ASSET_EXTRACTION = "asset-extraction"
CACHE_CONTROL_HTML = "public, max-age=300"
CACHE_CONTROL_STATIC = "public, max-age=86400"
CACHE_CONTROL_DEFAULT = "public, max-age=3600"
STATIC_CONTENT_TYPE_HINTS = ("image/", "font/", "text/css", "application/javascript")


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


def rate_limit_max_requests() -> int:
    return max(1, env_int("BRANDKIT_RATE_LIMIT_MAX", RATE_LIMIT_MAX_REQUESTS))


def rate_limit_window_ms() -> int:
    return max(1000, env_int("BRANDKIT_RATE_LIMIT_WINDOW_MS", RATE_LIMIT_WINDOW_MS))


def max_stylesheets() -> int:
    return max(0, env_int("BRANDKIT_MAX_STYLESHEETS", MAX_STYLESHEETS))


def fetch_timeout() -> float:
    return max(1.0, env_float("BRANDKIT_FETCH_TIMEOUT", FETCH_TIMEOUT_SECONDS))


def user_agent() -> str:
    return os.getenv("BRANDKIT_USER_AGENT") or USER_AGENT
