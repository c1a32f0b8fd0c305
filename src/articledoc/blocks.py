"""
Block Renderers - draw one semantic block at the cursor.

Every vertically extending element (a line, an image, a code chunk) is
preceded by ``cursor.ensure_space``; renderers never break pages themselves.
"""

import logging
import math
import re
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Sequence

from .canvas import FontStyle, PageCanvas
from .config import DEFAULT_CONFIG, LayoutConfig
from .glyphs import GlyphCache, measure_string
from .images import ImageLoader, normalize_url
from .layout import LayoutLine, LinePart, layout_lines
from .models import (
    Caption,
    CodeBlock,
    ContentItem,
    ImageBlock,
    ListBlock,
    Paragraph,
    Quote,
    Rule,
    Segment,
)
from .outline import OutlineHeading
from .pagination import PageCursor
from .text import normalize

logger = logging.getLogger(__name__)

BLOCK_GAP = 6
CODE_PADDING = 12
BULLET = "•"


@dataclass
class RenderState:
    """Everything one document render mutates, owned by that render alone."""

    canvas: PageCanvas
    cursor: PageCursor
    glyphs: GlyphCache
    images: ImageLoader
    config: LayoutConfig = DEFAULT_CONFIG
    headings: list[OutlineHeading] = field(default_factory=list)
    seen_images: set[str] = field(default_factory=set)

    @classmethod
    def create(cls, canvas: PageCanvas, images: ImageLoader, config: LayoutConfig = DEFAULT_CONFIG) -> "RenderState":
        cursor = PageCursor(canvas, config.margin, config.margin)
        return cls(canvas=canvas, cursor=cursor, glyphs=GlyphCache(config), images=images, config=config)


@dataclass(frozen=True)
class CodeLine:
    text: str
    size: float
    height: float


class BlockRenderer:
    """Draws content items onto the state's canvas."""

    def __init__(self, state: RenderState):
        self.state = state
        self.canvas = state.canvas
        self.cursor = state.cursor
        self.config = state.config
        self._drawers: dict[type, Callable] = {
            Paragraph: lambda item: self.draw_paragraph(item.segments),
            ListBlock: self.draw_list,
            Quote: lambda item: self.draw_quote(item.segments),
            CodeBlock: self.draw_code,
            ImageBlock: self.draw_image,
            Caption: lambda item: self.draw_caption(item.segments),
            Rule: lambda item: self.draw_hr(),
        }

    @property
    def margin(self) -> float:
        return self.config.margin

    @property
    def text_width(self) -> float:
        return self.config.text_width

    def draw_item(self, item: ContentItem) -> None:
        drawer = self._drawers.get(type(item))
        if drawer is None:
            logger.debug("No renderer for %s", type(item).__name__)
            return
        drawer(item)

    # -- shared line drawing ---------------------------------------------------

    def _set_part_font(self, part: LinePart, size: float) -> None:
        style = part.style
        self.canvas.set_font(style.family, style.style)
        self.canvas.set_font_size(size)

    def _draw_fragments(self, part: LinePart, x: float, y: float, size: float) -> None:
        glyphs = self.state.glyphs
        for fragment in part.fragments or ():
            if fragment.kind == "emoji":
                bitmap = glyphs.rasterize_emoji(fragment.content, part.style, size)
                width = min(fragment.width, size * bitmap.pixel_width / bitmap.pixel_height)
                top = y - size * self.config.emoji_baseline
                self.canvas.draw_image(bitmap.png, "PNG", x, top, width, size)
            else:
                self.canvas.draw_text(fragment.content, x, y)
            x += fragment.width

    def _draw_line(
        self,
        line: LayoutLine,
        x: float,
        size: float,
        line_height: float,
        color: tuple[int, int, int],
    ) -> None:
        """Draw one laid-out line at the cursor's baseline, starting at ``x``."""
        y = self.cursor.y
        colors = self.config.colors
        for part in line.parts:
            self._set_part_font(part, size)
            self.canvas.set_text_color(*(colors.link if part.link else color))
            if part.fragments:
                self._draw_fragments(part, x, y, size)
            else:
                self.canvas.draw_text(normalize(part.text), x, y)
            if part.link:
                ascent, descent = self.canvas.ascent_descent()
                height = min(line_height, ascent - descent)
                self.canvas.add_link_region(x, y - ascent, part.width, height, part.link)
            x += part.width

    def draw_segments(
        self,
        segments: Sequence[Segment],
        size: float,
        line_height: float,
        color: tuple[int, int, int],
        *,
        indent: float = 0.0,
        step: Optional[float] = None,
        centered: bool = False,
    ) -> None:
        """Wrap and draw free-standing text such as the title or meta line.

        ``line_height`` is the space reserved per line, ``step`` how far the
        cursor moves after it (defaults to ``line_height``).
        """
        lines = layout_lines(segments, self.text_width - indent, size, self.state.glyphs)
        for line in lines:
            if not line:
                continue
            self.cursor.ensure_space(line_height)
            if centered:
                x = self.margin + (self.text_width - line.width) / 2
            else:
                x = self.margin + indent
            self._draw_line(line, x, size, line_height, color)
            self.cursor.advance(line_height if step is None else step)

    # -- block types -----------------------------------------------------------

    def draw_paragraph(self, segments: Sequence[Segment]) -> None:
        if not segments:
            return
        sizes, heights = self.config.sizes, self.config.line_heights
        self.draw_segments(segments, sizes.body, heights.body, self.config.colors.body)
        self.cursor.advance(BLOCK_GAP)

    def draw_list(self, item: ListBlock) -> None:
        sizes, heights, colors = self.config.sizes, self.config.line_heights, self.config.colors
        for index, segments in enumerate(item.items or (), start=1):
            marker = f"{index}." if item.ordered else BULLET
            marker_style = FontStyle("helvetica", "bold" if item.ordered else "normal")
            marker_width = measure_string(marker + " ", marker_style.font_name, sizes.body)

            lines = [line for line in layout_lines(segments, self.text_width - marker_width - 4, sizes.body, self.state.glyphs) if line]
            for line_index, line in enumerate(lines):
                self.cursor.ensure_space(heights.body)
                if line_index == 0:
                    self.canvas.set_font(marker_style.family, marker_style.style)
                    self.canvas.set_font_size(sizes.body)
                    self.canvas.set_text_color(*colors.body)
                    self.canvas.draw_text(marker, self.margin, self.cursor.y)
                self._draw_line(line, self.margin + marker_width, sizes.body, heights.body, colors.body)
                self.cursor.advance(heights.body)
            self.cursor.advance(BLOCK_GAP)

    def draw_quote(self, segments: Sequence[Segment]) -> None:
        if not segments:
            return
        indent = 14  # bar to text
        bar_x = self.margin - 8
        sizes, heights, colors = self.config.sizes, self.config.line_heights, self.config.colors
        line_height = heights.quote

        lines = layout_lines(segments, self.text_width - indent, sizes.quote, self.state.glyphs)
        for line in lines:
            if not line:
                continue
            self.cursor.ensure_space(line_height)
            # one bar segment per line, so the bar follows the quote across pages
            self.canvas.set_draw_color(*colors.quote_bar)
            self.canvas.set_line_width(2)
            y = self.cursor.y
            self.canvas.draw_line(bar_x, y - line_height + 4, bar_x, y + 2)
            self._draw_line(line, self.margin + indent, sizes.quote, line_height, colors.muted)
            self.cursor.advance(line_height)
        self.cursor.advance(BLOCK_GAP)

    def draw_caption(self, segments: Sequence[Segment]) -> None:
        if not segments:
            return
        size = self.config.sizes.meta
        line_height = round(size * 1.5)
        italic = [replace(seg, italic=True) for seg in segments]
        self.draw_segments(italic, size, line_height, self.config.colors.muted, centered=True)
        self.cursor.advance(BLOCK_GAP)

    def draw_heading(self, text: str, level: int) -> None:
        text = (text or "").strip()
        if not text:
            return
        size = self.config.sizes.heading(level)
        line_height = round(size * 1.5)
        self.cursor.ensure_space(line_height)

        heading = OutlineHeading(
            id=len(self.state.headings) + 1,
            text=text,
            level=level,
            page=self.cursor.page,
            y=self.cursor.y,
        )
        self.state.headings.append(heading)
        self.canvas.bookmark(heading.key, heading.y)

        self.draw_segments([Segment(text=text, bold=True)], size, line_height, self.config.colors.body)
        self.cursor.advance(4)

    def draw_hr(self) -> None:
        self.cursor.ensure_space(16)
        self.canvas.set_draw_color(*self.config.colors.hr)
        self.canvas.set_line_width(0.5)
        y = self.cursor.y
        self.canvas.draw_line(self.margin, y, self.margin + self.text_width, y)
        self.cursor.advance(12)

    def draw_image(self, item: ImageBlock) -> None:
        src = normalize_url(item.src, self.state.images.base_url)
        if src and src in self.state.seen_images:
            logger.debug("Skipping duplicate image %s", src[:80])
            return
        try:
            img = self.state.images.load(src)
        except Exception as e:
            logger.warning("Skipping image %s: %s", (src or "<empty>")[:80], e)
            return
        self.state.seen_images.add(src)

        width = min(self.text_width, float(img.width))  # never upscale
        height = img.height * (width / img.width)
        self.cursor.ensure_space(height + 6)
        x = self.margin + (self.text_width - width) / 2
        fmt = "PNG" if img.mode == "RGBA" else "JPEG"
        self.canvas.draw_image(img, fmt, x, self.cursor.y, width, height)
        self.cursor.advance(height + 10)

    # -- code ------------------------------------------------------------------

    def code_lines(self, text: str) -> list[CodeLine]:
        """Shrink and wrap code so no token is broken if it can be avoided.

        Each logical line whose longest token is wider than the column is
        set at a proportionally smaller size (not below the minimum).
        """
        sizes, heights = self.config.sizes, self.config.line_heights
        font = FontStyle("courier", "normal").font_name
        base = sizes.code
        normalized = re.sub(r"\r?\n$", "", text.replace("\u00a0", " ").replace("\t", "    "))
        if not normalized.strip():
            return []

        rendered: list[CodeLine] = []
        for raw in re.split(r"\r?\n", normalized):
            line = raw.rstrip(" \t")
            longest = max(
                (measure_string(tok, font, base) for tok in line.split() if tok),
                default=0.0,
            )
            size = base
            if longest > self.text_width:
                size = max(sizes.code_min, math.floor(base * self.text_width / longest))
            height = round(heights.code * size / base)
            for piece in wrap_code_line(line, self.text_width, font, size):
                rendered.append(CodeLine(piece, size, height))
        return rendered

    def draw_code(self, item: CodeBlock) -> None:
        lines = self.code_lines(item.text or "")
        if not lines:
            return
        colors = self.config.colors
        pad_bottom = CODE_PADDING / 2

        index = 0
        while index < len(lines):
            first = lines[index]
            self.cursor.ensure_space(first.height + pad_bottom)

            # as many lines as fit, and always at least one
            chunk = [first]
            used = first.height
            for line in lines[index + 1:]:
                if not self.cursor.fits(used + line.height + pad_bottom):
                    break
                chunk.append(line)
                used += line.height

            top = self.cursor.y - first.height + 4
            self.canvas.set_fill_color(*colors.code_background)
            self.canvas.fill_rect(self.margin - 6, top, self.text_width + 12, used + pad_bottom)

            self.canvas.set_font("courier", "normal")
            self.canvas.set_text_color(*colors.body)
            for line in chunk:
                self.canvas.set_font_size(line.size)
                self.canvas.draw_text(normalize(line.text), self.margin, self.cursor.y)
                self.cursor.advance(line.height)
            index += len(chunk)
        self.cursor.advance(4)


def wrap_code_line(line: str, max_width: float, font_name: str, size: float) -> list[str]:
    """Wrap at whitespace keeping indentation; split a token only if it cannot fit."""
    if not line:
        return [""]
    if measure_string(line, font_name, size) <= max_width:
        return [line]

    wrapped: list[str] = []
    current = ""
    for token in re.findall(r"\s+|\S+", line):
        candidate = current + token
        if measure_string(candidate, font_name, size) <= max_width:
            current = candidate
            continue
        if current.strip():
            wrapped.append(current.rstrip())
            current = ""
            if token.isspace():
                continue
        if measure_string(token, font_name, size) <= max_width:
            current = token
            continue
        # still too wide at the minimum size: break by characters
        for ch in token:
            if current and measure_string(current + ch, font_name, size) > max_width:
                wrapped.append(current)
                current = ""
            current += ch
    if current.strip():
        wrapped.append(current.rstrip())
    return wrapped or [""]
