"""Shared schema keys to avoid magic strings across brandkit modules."""

from __future__ import annotations

# Asset collections
K_LOGOS = "logos"
K_COLORS = "colors"
K_FONTS = "fonts"
K_ILLUSTRATIONS = "illustrations"

# Asset fields
K_KIND = "kind"
K_URL = "url"
K_ALT = "alt"
K_VALUE = "value"
K_NAME = "name"
K_SOURCE_KIND = "source_kind"

# Outcome / envelope fields
K_SUCCESS = "success"
K_DOMAIN = "domain"
K_ASSETS = "assets"
K_ERROR = "error"
K_EXTRACTED_AT = "extracted_at"
K_RATE_LIMIT = "rate_limit"
K_LIMITED = "limited"
K_REMAINING = "remaining"
K_RESET_EPOCH_MS = "reset_epoch_ms"
