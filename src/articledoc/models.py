"""
Article document model - the contract between extraction and rendering.

An Article is built once (by the extractor, or from the browser extension's
JSON) and is treated as read-only by the renderer.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Segment:
    """A run of text sharing one style. Embedded newlines force line breaks."""

    text: str
    bold: bool = False
    italic: bool = False
    mono: bool = False
    link: Optional[str] = None

    def same_style(self, other: "Segment") -> bool:
        return (
            self.bold == other.bold
            and self.italic == other.italic
            and self.mono == other.mono
            and self.link == other.link
        )


@dataclass(frozen=True)
class Paragraph:
    segments: tuple[Segment, ...] = ()


@dataclass(frozen=True)
class ListBlock:
    ordered: bool = False
    items: tuple[tuple[Segment, ...], ...] = ()


@dataclass(frozen=True)
class Quote:
    segments: tuple[Segment, ...] = ()


@dataclass(frozen=True)
class CodeBlock:
    text: str = ""
    lang: Optional[str] = None


@dataclass(frozen=True)
class ImageBlock:
    src: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class Caption:
    segments: tuple[Segment, ...] = ()


@dataclass(frozen=True)
class Rule:
    """Horizontal rule; no payload."""


ContentItem = Union[Paragraph, ListBlock, Quote, CodeBlock, ImageBlock, Caption, Rule]


@dataclass(frozen=True)
class Block:
    """One heading-delimited section. An empty heading holds leading content."""

    heading: str = ""
    level: int = 2
    content: tuple[ContentItem, ...] = ()


@dataclass(frozen=True)
class Mention:
    title: str
    url: str
    subtitle: Optional[str] = None


@dataclass(frozen=True)
class HeroImage:
    src: str
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class Article:
    """The document to render."""

    title: str
    author: str = ""
    canonical_url: str = ""
    subtitle: Optional[str] = None
    published_date: Optional[str] = None  # YYYY-MM-DD
    reading_time_minutes: Optional[int] = None
    hero_image: Optional[HeroImage] = None
    blocks: tuple[Block, ...] = ()
    mentions: tuple[Mention, ...] = field(default_factory=tuple)


def merge_segments(segments: list[Segment]) -> tuple[Segment, ...]:
    """Merge adjacent segments with identical style and drop empty ones."""
    merged: list[Segment] = []
    for seg in segments:
        if not seg.text:
            continue
        if merged and merged[-1].same_style(seg):
            prev = merged[-1]
            merged[-1] = Segment(
                text=prev.text + seg.text,
                bold=prev.bold,
                italic=prev.italic,
                mono=prev.mono,
                link=prev.link,
            )
        else:
            merged.append(seg)
    return tuple(merged)


def _int_or_none(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _str_or_none(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _segments_from_list(raw: Any) -> tuple[Segment, ...]:
    segments = []
    for item in raw or []:
        if isinstance(item, str):
            segments.append(Segment(text=item))
            continue
        if not isinstance(item, dict):
            continue
        segments.append(
            Segment(
                text=str(item.get("text") or ""),
                bold=bool(item.get("bold")),
                italic=bool(item.get("italic")),
                mono=bool(item.get("mono")),
                link=item.get("link") or None,
            )
        )
    return tuple(segments)


def _content_item_from_dict(raw: dict) -> Optional[ContentItem]:
    kind = raw.get("type")
    if kind == "paragraph":
        if "segments" not in raw and raw.get("text"):
            return Paragraph(segments=(Segment(text=str(raw["text"])),))
        return Paragraph(segments=_segments_from_list(raw.get("segments")))
    if kind == "list":
        items = tuple(
            _segments_from_list([item] if isinstance(item, str) else item)
            for item in raw.get("items") or []
        )
        return ListBlock(ordered=bool(raw.get("ordered")), items=items)
    if kind == "quote":
        if "segments" not in raw and raw.get("text"):
            return Quote(segments=(Segment(text=str(raw["text"])),))
        return Quote(segments=_segments_from_list(raw.get("segments")))
    if kind == "code":
        return CodeBlock(text=str(raw.get("text") or ""), lang=_str_or_none(raw.get("lang")))
    if kind == "image":
        return ImageBlock(
            src=str(raw.get("src") or ""),
            width=_int_or_none(raw.get("width")),
            height=_int_or_none(raw.get("height")),
        )
    if kind == "caption":
        return Caption(segments=_segments_from_list(raw.get("segments")))
    if kind == "hr":
        return Rule()
    logger.debug("Skipping unknown content item type %r", kind)
    return None


def article_from_dict(data: dict) -> Article:
    """
    Build an Article from the JSON shape the browser extension emits.

    Keys are camelCase (``publishedDate``, ``readingTimeMinutes``,
    ``canonicalUrl``, ``heroImage``); content items are tagged by ``type``.
    """
    blocks = []
    for raw_block in data.get("blocks") or []:
        if not isinstance(raw_block, dict):
            logger.debug("Skipping malformed block %r", raw_block)
            continue
        items = []
        for raw_item in raw_block.get("content") or []:
            if not isinstance(raw_item, dict):
                continue
            item = _content_item_from_dict(raw_item)
            if item is not None:
                items.append(item)
        blocks.append(
            Block(
                heading=str(raw_block.get("heading") or ""),
                level=max(2, _int_or_none(raw_block.get("level")) or 2),
                content=tuple(items),
            )
        )

    hero = None
    raw_hero = data.get("heroImage")
    if isinstance(raw_hero, dict) and raw_hero.get("src"):
        hero = HeroImage(
            src=str(raw_hero["src"]),
            width=_int_or_none(raw_hero.get("width")),
            height=_int_or_none(raw_hero.get("height")),
        )

    mentions = tuple(
        Mention(
            title=str(m.get("title") or ""),
            url=str(m.get("url") or ""),
            subtitle=_str_or_none(m.get("subtitle")),
        )
        for m in data.get("mentions") or []
        if isinstance(m, dict)
    )

    return Article(
        title=str(data.get("title") or ""),
        subtitle=_str_or_none(data.get("subtitle")),
        author=str(data.get("author") or ""),
        published_date=_str_or_none(data.get("publishedDate")),
        reading_time_minutes=_int_or_none(data.get("readingTimeMinutes")),
        canonical_url=str(data.get("canonicalUrl") or ""),
        hero_image=hero,
        blocks=tuple(blocks),
        mentions=mentions,
    )
