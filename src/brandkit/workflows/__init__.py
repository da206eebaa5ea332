"""High-level exports for the brandkit workflows."""

from .assets import Color, ExtractedAssetSet, Font, Illustration, Logo, SourceKind
from .extractor import extract_assets
from .html_sanitize import SanitizeMode, sanitize
from .page_fetch import FetchConfig, FetchResult, PageFetcher
from .rate_limiter import InMemoryStore, RateLimiter, RateLimitResult, check_rate_limit
from .service import ExtractionOutcome, ExtractionService, ProxyResponse

__all__ = [
    "Color",
    "ExtractedAssetSet",
    "Font",
    "Illustration",
    "Logo",
    "SourceKind",
    "extract_assets",
    "SanitizeMode",
    "sanitize",
    "FetchConfig",
    "FetchResult",
    "PageFetcher",
    "InMemoryStore",
    "RateLimiter",
    "RateLimitResult",
    "check_rate_limit",
    "ExtractionOutcome",
    "ExtractionService",
    "ProxyResponse",
]
