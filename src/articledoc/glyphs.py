"""
Glyph measurement and emoji rasterization.

Text runs are measured with ReportLab's core-font metrics. Color emoji have
no glyphs in the PDF core fonts, so each distinct emoji is drawn once with
Pillow onto a transparent bitmap and embedded as an image. Raster widths are
converted to points with a per-(style, size) factor obtained by measuring a
reference glyph both ways.
"""

import io
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont
from reportlab.pdfbase import pdfmetrics

from .canvas import FontStyle
from .config import DEFAULT_CONFIG, LayoutConfig
from .text import is_emoji_grapheme, normalize, segment_graphemes

logger = logging.getLogger(__name__)

REFERENCE_GLYPH = "M"
# Bitmap-only color fonts (CBDT) only load at their native strike size.
COLOR_FONT_STRIKE = 109


@dataclass(frozen=True)
class Fragment:
    """A piece of a token: plain text or a single emoji grapheme."""

    kind: str  # "text" | "emoji"
    content: str
    width: float


@dataclass(frozen=True)
class EmojiBitmap:
    png: bytes
    pixel_width: int
    pixel_height: int


@dataclass
class _RasterFont:
    font: object
    scale: float = 1.0  # target px / loaded px

    def length(self, text: str) -> float:
        try:
            return float(self.font.getlength(text)) * self.scale
        except Exception:
            logger.debug("Raster font could not measure %r", text, exc_info=True)
            return 0.0


def _first_existing(paths: Sequence[Path]) -> Optional[Path]:
    for path in paths:
        try:
            if path.is_file():
                return path
        except OSError:
            continue
    return None


def _load_raster_font(path: Optional[Path], pixel_size: int) -> _RasterFont:
    if path is not None:
        try:
            return _RasterFont(ImageFont.truetype(str(path), pixel_size))
        except OSError:
            try:
                font = ImageFont.truetype(str(path), COLOR_FONT_STRIKE)
                return _RasterFont(font, pixel_size / COLOR_FONT_STRIKE)
            except OSError as exc:
                logger.warning("Could not load raster font %s: %s", path, exc)
    return _RasterFont(ImageFont.load_default(size=pixel_size))


def measure_string(text: str, font_name: str, size: float) -> float:
    """Core-font advance width, with a per-char estimate if metrics fail."""
    try:
        return float(pdfmetrics.stringWidth(text, font_name, size))
    except Exception:
        logger.debug("stringWidth failed for %r in %s", text, font_name, exc_info=True)
        return sum(size * (0.45 if ch.isspace() else 0.56) for ch in text)


class GlyphCache:
    """
    Per-document measurement and emoji bitmap cache.

    Keys are content-addressed: (grapheme, family, style, size). One instance
    is created per render call and never shared between documents.
    """

    def __init__(self, config: LayoutConfig = DEFAULT_CONFIG):
        self.config = config
        self._text_font_path = _first_existing(config.text_font_paths)
        self._emoji_font_path = _first_existing(config.emoji_font_paths)
        self._raster_fonts: dict[tuple[str, int], _RasterFont] = {}
        self._factors: dict[tuple[str, str, float], float] = {}
        self._emoji_widths: dict[tuple[str, str, str, float], float] = {}
        self._bitmaps: dict[tuple[str, str, str, float], EmojiBitmap] = {}
        self.rasterize_count = 0

    def _pixel_size(self, size: float) -> int:
        return max(1, int(round(size * self.config.emoji_pixel_ratio)))

    def _raster_font(self, kind: str, pixel_size: int) -> _RasterFont:
        key = (kind, pixel_size)
        font = self._raster_fonts.get(key)
        if font is None:
            path = self._emoji_font_path if kind == "emoji" else self._text_font_path
            font = _load_raster_font(path, pixel_size)
            self._raster_fonts[key] = font
        return font

    def _conversion_factor(self, style: FontStyle, size: float) -> float:
        """Points per raster pixel for this style and size."""
        key = (style.family, style.style, size)
        factor = self._factors.get(key)
        if factor is None:
            pixel_size = self._pixel_size(size)
            raster = self._raster_font("text", pixel_size).length(REFERENCE_GLYPH)
            points = measure_string(REFERENCE_GLYPH, style.font_name, size)
            if raster > 0 and points > 0:
                factor = points / raster
            else:
                factor = 1.0 / self.config.emoji_pixel_ratio
            self._factors[key] = factor
        return factor

    def measure_text_run(self, text: str, style: FontStyle, size: float) -> float:
        width = measure_string(normalize(text), style.font_name, size)
        return width * self.config.text_safety

    def measure_emoji_width(self, grapheme: str, style: FontStyle, size: float) -> float:
        key = (grapheme, style.family, style.style, size)
        width = self._emoji_widths.get(key)
        if width is None:
            pixel_size = self._pixel_size(size)
            pixels = self._raster_font("emoji", pixel_size).length(grapheme)
            if pixels <= 0:
                pixels = pixel_size
            width = pixels * self._conversion_factor(style, size) * self.config.emoji_safety
            self._emoji_widths[key] = width
        return width

    def rasterize_emoji(self, grapheme: str, style: FontStyle, size: float) -> EmojiBitmap:
        key = (grapheme, style.family, style.style, size)
        cached = self._bitmaps.get(key)
        if cached is not None:
            return cached

        pixel_size = self._pixel_size(size)
        raster = self._raster_font("emoji", pixel_size)
        width = max(1, math.ceil(max(raster.length(grapheme), 1.0) * self.config.emoji_safety))
        height = pixel_size
        baseline = height * self.config.emoji_baseline

        if raster.scale != 1.0:
            # draw at the font's strike size, then scale down to the target
            draw_w = max(1, math.ceil(width / raster.scale))
            draw_h = max(1, math.ceil(height / raster.scale))
            draw_baseline = baseline / raster.scale
        else:
            draw_w, draw_h, draw_baseline = width, height, baseline

        image = Image.new("RGBA", (draw_w, draw_h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(image)
        font = raster.font
        ascent = font.getmetrics()[0] if hasattr(font, "getmetrics") else draw_h
        try:
            draw.text((0, draw_baseline - ascent), grapheme, font=font, fill=(0, 0, 0, 255), embedded_color=True)
        except Exception:
            logger.debug("Color rendering failed for %r; retrying monochrome", grapheme, exc_info=True)
            draw.text((0, draw_baseline - ascent), grapheme, font=font, fill=(0, 0, 0, 255))
        if (draw_w, draw_h) != (width, height):
            image = image.resize((width, height), Image.Resampling.LANCZOS)

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        bitmap = EmojiBitmap(png=buffer.getvalue(), pixel_width=width, pixel_height=height)
        self._bitmaps[key] = bitmap
        self.rasterize_count += 1
        return bitmap

    def split_into_fragments(self, token: str, style: FontStyle, size: float) -> list[Fragment]:
        """Break a token into text runs and standalone emoji.

        Concatenating the fragments' content yields ``normalize(token)``.
        """
        fragments: list[Fragment] = []
        pending = ""
        for grapheme in segment_graphemes(normalize(token)):
            if is_emoji_grapheme(grapheme):
                if pending:
                    fragments.append(Fragment("text", pending, self.measure_text_run(pending, style, size)))
                    pending = ""
                fragments.append(Fragment("emoji", grapheme, self.measure_emoji_width(grapheme, style, size)))
            else:
                pending += grapheme
        if pending:
            fragments.append(Fragment("text", pending, self.measure_text_run(pending, style, size)))
        return fragments
