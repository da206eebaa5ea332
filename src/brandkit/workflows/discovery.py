"""Asset discovery over a parsed page.

The engine only needs two things from a parser: ``parse_markup`` to build a
queryable tree and ``query`` to run a CSS selector against it. Both are
thin wrappers over BeautifulSoup so the rest of the module never touches
parser specifics. The tree is read, never modified.
"""

from __future__ import annotations

import base64
import logging
import re
import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning  # type: ignore

from .assets import AssetCollector, Color, Font, Illustration, Logo, SourceKind
from .brand_config import (
    FALLBACK_FAVICON_PATH,
    ICON_REL_TOKENS,
    SOCIAL_IMAGE_SELECTORS,
    SOCIAL_LOGO_KEYWORDS,
    THEME_COLOR_SELECTORS,
    WEBSITE_ICON_REL_TOKENS,
    max_stylesheets,
)
from .color_utils import extract_colors, normalize_color
from .font_utils import extract_font_families, font_service_families, placeholder_font_service
from .logo_utils import LogoCandidate, is_logo_like

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

logger = logging.getLogger(__name__)

StylesheetLoader = Callable[[str], Optional[str]]

_BACKGROUND_DECL_RE = re.compile(r"background(?:-image)?\s*:((?:url\([^)]*\)|[^;}])+)", re.I)
_CSS_URL_RE = re.compile(r"""url\(\s*['"]?([^'")]+?)['"]?\s*\)""", re.I)
_CSS_IMPORT_RE = re.compile(r"""@import\s+(?:url\(\s*)?['"]?([^'")\s;]+)""", re.I)
_SAFE_SCHEMES = {"http", "https"}


def parse_markup(markup: str) -> BeautifulSoup:
    """Parse with tolerant parsers, falling back to an empty document."""

    for parser in ("lxml", "html.parser"):
        try:
            return BeautifulSoup(markup or "", parser)
        except Exception:
            continue
    return BeautifulSoup("", "html.parser")


def query(tree: Any, selector: str) -> List[Any]:
    try:
        return list(tree.select(selector))
    except Exception:
        logger.debug("selector failed: %s", selector)
        return []


def resolve_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Absolute http(s) URL for ``href``, the href itself for ``data:image/``, else None."""

    raw = (href or "").strip()
    if not raw:
        return None
    if raw[:11].lower() == "data:image/":
        return raw
    try:
        resolved = urljoin(base_url, raw)
        parsed = urlparse(resolved)
    except ValueError:
        logger.debug("unresolvable URL %r against %s", raw, base_url)
        return None
    if parsed.scheme.lower() not in _SAFE_SCHEMES or not parsed.netloc:
        logger.debug("dropping non-http URL %r", raw)
        return None
    return resolved


def _attr_text(node: Any, name: str) -> str:
    value = node.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return str(value)


def _node_text(node: Any) -> str:
    text = node.string
    if text is None:
        text = node.get_text()
    return str(text or "")


def _rel_tokens(node: Any) -> set:
    return {token.lower() for token in _attr_text(node, "rel").split() if token}


def background_image_urls(css: str) -> List[str]:
    urls: List[str] = []
    for decl in _BACKGROUND_DECL_RE.finditer(css or ""):
        for match in _CSS_URL_RE.finditer(decl.group(1)):
            value = match.group(1).strip()
            if value and value not in urls:
                urls.append(value)
    return urls


def _svg_data_url(markup: str) -> str:
    encoded = base64.b64encode(markup.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


@dataclass
class RawCandidates:
    """Per-kind candidates before logo ranking."""

    logos: List[LogoCandidate] = field(default_factory=list)
    colors: AssetCollector = field(default_factory=AssetCollector)
    fonts: AssetCollector = field(default_factory=AssetCollector)
    illustrations: AssetCollector = field(default_factory=AssetCollector)


class AssetDiscovery:
    """Walk a parsed page and collect logo, color, font and illustration candidates."""

    def __init__(
        self,
        base_url: str,
        *,
        stylesheet_loader: Optional[StylesheetLoader] = None,
        stylesheet_limit: Optional[int] = None,
    ) -> None:
        self.base_url = base_url
        self.stylesheet_loader = stylesheet_loader
        self.stylesheet_limit = max_stylesheets() if stylesheet_limit is None else max(0, stylesheet_limit)
        try:
            self._base_host = (urlparse(base_url).hostname or "").lower()
        except ValueError:
            self._base_host = ""

    # -- entry point -----------------------------------------------------

    def discover(self, tree: Any) -> RawCandidates:
        found = RawCandidates()
        style_blocks = [_node_text(node) for node in query(tree, "style")]
        inline_styles = [_attr_text(node, "style") for node in query(tree, "[style]")]
        linked_css = self._load_linked_stylesheets(tree)

        self._collect_icon_links(tree, found)
        self._collect_images(tree, found)
        self._collect_inline_svgs(tree, found)
        self._collect_social_images(tree, found)
        self._add_fallback_favicon(found)

        for css in inline_styles:
            self._collect_backgrounds(css, SourceKind.INLINE_STYLE, found)
        for css in style_blocks:
            self._collect_backgrounds(css, SourceKind.STYLE_BLOCK, found)

        for css in inline_styles:
            self._collect_colors(css, SourceKind.INLINE_STYLE, found)
        for css in style_blocks:
            self._collect_colors(css, SourceKind.STYLE_BLOCK, found)
        for css in linked_css:
            self._collect_colors(css, SourceKind.LINK_REFERENCE, found)
        self._collect_theme_colors(tree, found)

        self._collect_font_links(tree, style_blocks, found)
        for css in style_blocks:
            self._collect_font_families(css, SourceKind.STYLE_BLOCK, found)
        for css in inline_styles:
            self._collect_font_families(css, SourceKind.INLINE_STYLE, found)
        for css in linked_css:
            self._collect_font_families(css, SourceKind.LINK_REFERENCE, found)
        return found

    # -- logos -----------------------------------------------------------

    def _collect_icon_links(self, tree: Any, found: RawCandidates) -> None:
        for node in query(tree, "link[rel]"):
            rel = _rel_tokens(node)
            if rel & ICON_REL_TOKENS:
                sizes = _attr_text(node, "sizes").strip() or None
                alt = f"Favicon ({sizes})" if sizes else "Favicon"
            elif rel & WEBSITE_ICON_REL_TOKENS:
                sizes = None
                alt = "Website icon"
            else:
                continue
            url = resolve_url(_attr_text(node, "href"), self.base_url)
            if url is None:
                continue
            found.logos.append(
                LogoCandidate(
                    asset=Logo(url=url, alt=alt, source_kind=SourceKind.LINK_REFERENCE),
                    size_hint=sizes,
                )
            )

    def _collect_images(self, tree: Any, found: RawCandidates) -> None:
        for node in query(tree, "img"):
            src = _attr_text(node, "src").strip() or _attr_text(node, "data-src").strip()
            if not src:
                continue
            alt = _attr_text(node, "alt").strip()
            classes = _attr_text(node, "class")
            element_id = _attr_text(node, "id")
            url = resolve_url(src, self.base_url)
            if url is None:
                continue
            if is_logo_like(src, alt, classes, element_id):
                found.logos.append(
                    LogoCandidate(
                        asset=Logo(url=url, alt=alt or None, source_kind=SourceKind.MARKUP_ATTRIBUTE),
                        class_hint=classes,
                        id_hint=element_id,
                    )
                )
            else:
                found.illustrations.add(
                    Illustration(url=url, alt=alt or None, source_kind=SourceKind.MARKUP_ATTRIBUTE)
                )

    def _collect_inline_svgs(self, tree: Any, found: RawCandidates) -> None:
        for node in query(tree, "svg"):
            classes = _attr_text(node, "class")
            element_id = _attr_text(node, "id")
            title_node = node.find("title")
            title = _node_text(title_node).strip() if title_node is not None else ""
            if not is_logo_like("", title, classes, element_id):
                continue
            try:
                url = _svg_data_url(str(node))
            except Exception:
                logger.debug("could not serialize inline svg", exc_info=True)
                continue
            found.logos.append(
                LogoCandidate(
                    asset=Logo(url=url, alt=title or "Inline SVG logo", source_kind=SourceKind.EMBEDDED_VECTOR),
                    class_hint=classes,
                    id_hint=element_id,
                )
            )

    def _collect_social_images(self, tree: Any, found: RawCandidates) -> None:
        for selector in SOCIAL_IMAGE_SELECTORS:
            for node in query(tree, selector):
                url = resolve_url(_attr_text(node, "content"), self.base_url)
                if url is None:
                    continue
                path = urlparse(url).path.lower()
                if any(keyword in path for keyword in SOCIAL_LOGO_KEYWORDS):
                    found.logos.append(
                        LogoCandidate(
                            asset=Logo(url=url, alt="Social media logo", source_kind=SourceKind.MARKUP_ATTRIBUTE)
                        )
                    )
                else:
                    found.illustrations.add(
                        Illustration(url=url, alt="Social media image", source_kind=SourceKind.MARKUP_ATTRIBUTE)
                    )

    def _add_fallback_favicon(self, found: RawCandidates) -> None:
        has_favicon = any(
            candidate.asset.source_kind is SourceKind.LINK_REFERENCE or "favicon" in candidate.url.lower()
            for candidate in found.logos
        )
        if has_favicon:
            return
        url = resolve_url(FALLBACK_FAVICON_PATH, self.base_url)
        if url is None:
            return
        found.logos.append(
            LogoCandidate(asset=Logo(url=url, alt="Default favicon", source_kind=SourceKind.MARKUP_ATTRIBUTE))
        )

    # -- illustrations ---------------------------------------------------

    def _collect_backgrounds(self, css: str, source: SourceKind, found: RawCandidates) -> None:
        for raw in background_image_urls(css):
            url = resolve_url(raw, self.base_url)
            if url is None:
                continue
            found.illustrations.add(Illustration(url=url, source_kind=source))

    # -- colors ----------------------------------------------------------

    def _collect_colors(self, css: str, source: SourceKind, found: RawCandidates) -> None:
        for value in extract_colors(css):
            found.colors.add(Color(value=value, source_kind=source))

    def _collect_theme_colors(self, tree: Any, found: RawCandidates) -> None:
        for selector in THEME_COLOR_SELECTORS:
            for node in query(tree, selector):
                value = normalize_color(_attr_text(node, "content"))
                if value:
                    found.colors.add(Color(value=value, source_kind=SourceKind.MARKUP_ATTRIBUTE))

    # -- fonts -----------------------------------------------------------

    def _font_service_assets(self, url: str) -> Iterable[Font]:
        for name in font_service_families(url):
            yield Font(name=name, url=url, source_kind=SourceKind.LINK_REFERENCE)
        label = placeholder_font_service(url)
        if label:
            yield Font(name=label, url=url, source_kind=SourceKind.LINK_REFERENCE)

    def _collect_font_links(self, tree: Any, style_blocks: List[str], found: RawCandidates) -> None:
        hrefs = [
            _attr_text(node, "href")
            for node in query(tree, "link[rel][href]")
            if "stylesheet" in _rel_tokens(node)
        ]
        for css in style_blocks:
            hrefs.extend(match.group(1) for match in _CSS_IMPORT_RE.finditer(css))
        for href in hrefs:
            url = resolve_url(href, self.base_url)
            if url is None:
                continue
            found.fonts.extend(self._font_service_assets(url))

    def _collect_font_families(self, css: str, source: SourceKind, found: RawCandidates) -> None:
        for name in extract_font_families(css):
            found.fonts.add(Font(name=name, source_kind=source))

    # -- linked stylesheets ----------------------------------------------

    def _same_origin(self, url: str) -> bool:
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return bool(host) and host == self._base_host

    def _load_linked_stylesheets(self, tree: Any) -> List[str]:
        if self.stylesheet_loader is None or self.stylesheet_limit <= 0:
            return []
        urls: List[str] = []
        for node in query(tree, "link[rel][href]"):
            if "stylesheet" not in _rel_tokens(node):
                continue
            url = resolve_url(_attr_text(node, "href"), self.base_url)
            if url and self._same_origin(url) and url not in urls:
                urls.append(url)
        bodies: List[str] = []
        for url in urls[: self.stylesheet_limit]:
            try:
                body = self.stylesheet_loader(url)
            except Exception as exc:
                logger.warning("stylesheet fetch failed for %s: %s", url, exc)
                continue
            if body:
                bodies.append(body)
        return bodies


__all__ = [
    "StylesheetLoader",
    "parse_markup",
    "query",
    "resolve_url",
    "background_image_urls",
    "RawCandidates",
    "AssetDiscovery",
]
