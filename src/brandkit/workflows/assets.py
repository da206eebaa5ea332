"""Brand asset data model.

Each asset kind is its own frozen dataclass so that a logo can never carry a
color value and a color can never carry a URL. ``ExtractedAssetSet`` holds the
four per-kind collections produced by a single extraction call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..core.keys import (
    K_ALT,
    K_COLORS,
    K_FONTS,
    K_ILLUSTRATIONS,
    K_KIND,
    K_LOGOS,
    K_NAME,
    K_SOURCE_KIND,
    K_URL,
    K_VALUE,
)


class SourceKind(str, Enum):
    """Where in the page an asset was found."""

    MARKUP_ATTRIBUTE = "markup-attribute"
    INLINE_STYLE = "inline-style"
    STYLE_BLOCK = "style-block"
    LINK_REFERENCE = "link-reference"
    EMBEDDED_VECTOR = "embedded-vector"


def _drop_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in payload.items() if v is not None}


@dataclass(frozen=True)
class Logo:
    url: str
    source_kind: SourceKind
    alt: Optional[str] = None

    kind = "logo"

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {K_KIND: self.kind, K_URL: self.url, K_ALT: self.alt, K_SOURCE_KIND: self.source_kind.value}
        )


@dataclass(frozen=True)
class Color:
    value: str
    source_kind: SourceKind

    kind = "color"

    def to_dict(self) -> Dict[str, Any]:
        return {K_KIND: self.kind, K_VALUE: self.value, K_SOURCE_KIND: self.source_kind.value}


@dataclass(frozen=True)
class Font:
    name: str
    source_kind: SourceKind
    url: Optional[str] = None

    kind = "font"

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {K_KIND: self.kind, K_NAME: self.name, K_URL: self.url, K_SOURCE_KIND: self.source_kind.value}
        )


@dataclass(frozen=True)
class Illustration:
    url: str
    source_kind: SourceKind
    alt: Optional[str] = None

    kind = "illustration"

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none(
            {K_KIND: self.kind, K_URL: self.url, K_ALT: self.alt, K_SOURCE_KIND: self.source_kind.value}
        )


BrandAsset = Union[Logo, Color, Font, Illustration]


def asset_key(asset: BrandAsset) -> str:
    """Return the identity used to de-duplicate assets of the same kind."""

    if isinstance(asset, Color):
        return asset.value
    if isinstance(asset, Font):
        return asset.name
    return asset.url


@dataclass
class AssetCollector:
    """Mutable, insertion-ordered, duplicate-free accumulator for one asset kind.

    Used only while a single extraction pass runs; ``freeze`` hands back the
    immutable tuple stored on ``ExtractedAssetSet``.
    """

    items: List[BrandAsset] = field(default_factory=list)
    _seen: set = field(default_factory=set, repr=False)

    def add(self, asset: Optional[BrandAsset]) -> bool:
        if asset is None:
            return False
        key = asset_key(asset)
        if not key or key in self._seen:
            return False
        self._seen.add(key)
        self.items.append(asset)
        return True

    def extend(self, assets: Iterable[Optional[BrandAsset]]) -> None:
        for asset in assets:
            self.add(asset)

    def __contains__(self, key: str) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self.items)

    def freeze(self) -> Tuple[BrandAsset, ...]:
        return tuple(self.items)


@dataclass(frozen=True)
class ExtractedAssetSet:
    """Final, immutable result of one extraction call."""

    logos: Tuple[Logo, ...] = ()
    colors: Tuple[Color, ...] = ()
    fonts: Tuple[Font, ...] = ()
    illustrations: Tuple[Illustration, ...] = ()

    @classmethod
    def empty(cls) -> "ExtractedAssetSet":
        return cls()

    @classmethod
    def from_iterables(
        cls,
        *,
        logos: Iterable[Logo] = (),
        colors: Iterable[Color] = (),
        fonts: Iterable[Font] = (),
        illustrations: Iterable[Illustration] = (),
    ) -> "ExtractedAssetSet":
        frozen = []
        for group in (logos, colors, fonts, illustrations):
            collector = AssetCollector()
            collector.extend(group)
            frozen.append(collector.freeze())
        return cls(*frozen)

    def is_empty(self) -> bool:
        return not (self.logos or self.colors or self.fonts or self.illustrations)

    def counts(self) -> Dict[str, int]:
        return {
            K_LOGOS: len(self.logos),
            K_COLORS: len(self.colors),
            K_FONTS: len(self.fonts),
            K_ILLUSTRATIONS: len(self.illustrations),
        }

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            K_LOGOS: [asset.to_dict() for asset in self.logos],
            K_COLORS: [asset.to_dict() for asset in self.colors],
            K_FONTS: [asset.to_dict() for asset in self.fonts],
            K_ILLUSTRATIONS: [asset.to_dict() for asset in self.illustrations],
        }


__all__ = [
    "SourceKind",
    "Logo",
    "Color",
    "Font",
    "Illustration",
    "BrandAsset",
    "asset_key",
    "AssetCollector",
    "ExtractedAssetSet",
]
