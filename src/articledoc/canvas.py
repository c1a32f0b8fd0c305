"""
Page canvas - the drawing surface the layout engine targets.

Wraps a ReportLab canvas. The engine works in top-origin coordinates
(y grows downward, text y is the baseline); conversion to PDF's bottom-origin
space happens here and nowhere else.
"""

import io
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas as rl_canvas

from .config import DEFAULT_CONFIG, LayoutConfig

logger = logging.getLogger(__name__)

FONT_NAMES = {
    ("helvetica", "normal"): "Helvetica",
    ("helvetica", "bold"): "Helvetica-Bold",
    ("helvetica", "italic"): "Helvetica-Oblique",
    ("helvetica", "bolditalic"): "Helvetica-BoldOblique",
    ("courier", "normal"): "Courier",
    ("courier", "bold"): "Courier-Bold",
    ("courier", "italic"): "Courier-Oblique",
    ("courier", "bolditalic"): "Courier-BoldOblique",
}


class DestinationError(LookupError):
    """An outline destination could not be resolved to a page."""


@dataclass(frozen=True)
class FontStyle:
    family: str = "helvetica"
    style: str = "normal"

    @property
    def font_name(self) -> str:
        return FONT_NAMES.get((self.family, self.style), "Helvetica")

    @classmethod
    def for_flags(cls, bold: bool = False, italic: bool = False, mono: bool = False) -> "FontStyle":
        if mono:
            return cls("courier", "normal")
        if bold and italic:
            return cls("helvetica", "bolditalic")
        if bold:
            return cls("helvetica", "bold")
        if italic:
            return cls("helvetica", "italic")
        return cls("helvetica", "normal")


def _rgb(color: tuple[int, int, int]) -> tuple[float, float, float]:
    return tuple(channel / 255.0 for channel in color)


class PageCanvas:
    """Top-origin drawing API over a ReportLab canvas."""

    def __init__(self, config: LayoutConfig = DEFAULT_CONFIG, title: str = "", author: str = ""):
        self.config = config
        self._buffer = io.BytesIO()
        self._canvas = rl_canvas.Canvas(self._buffer, pagesize=config.page_size)
        if title:
            self._canvas.setTitle(title)
        if author:
            self._canvas.setAuthor(author)
        self._page_count = 1
        self._font = FontStyle()
        self._font_size = config.sizes.body
        self._destinations: dict[str, int] = {}
        self._apply_font()

    # -- state ---------------------------------------------------------------

    def _apply_font(self) -> None:
        self._canvas.setFont(self._font.font_name, self._font_size)

    def set_font(self, family: str, style: str = "normal") -> None:
        self._font = FontStyle(family, style)
        self._apply_font()

    def set_font_size(self, size: float) -> None:
        self._font_size = size
        self._apply_font()

    @property
    def font(self) -> FontStyle:
        return self._font

    @property
    def font_size(self) -> float:
        return self._font_size

    def set_text_color(self, r: int, g: int, b: int) -> None:
        self._canvas.setFillColorRGB(*_rgb((r, g, b)))

    def set_fill_color(self, r: int, g: int, b: int) -> None:
        self._canvas.setFillColorRGB(*_rgb((r, g, b)))

    def set_draw_color(self, r: int, g: int, b: int) -> None:
        self._canvas.setStrokeColorRGB(*_rgb((r, g, b)))

    def set_line_width(self, width: float) -> None:
        self._canvas.setLineWidth(width)

    def measure_text(self, text: str) -> float:
        return pdfmetrics.stringWidth(text, self._font.font_name, self._font_size)

    def ascent_descent(self) -> tuple[float, float]:
        return pdfmetrics.getAscentDescent(self._font.font_name, self._font_size)

    # -- drawing -------------------------------------------------------------

    def _flip(self, y: float) -> float:
        return self.config.page_height - y

    def draw_text(self, text: str, x: float, y: float) -> None:
        self._canvas.drawString(x, self._flip(y), text)

    def draw_linked_text(self, text: str, x: float, y: float, url: str) -> None:
        self.draw_text(text, x, y)
        ascent, descent = self.ascent_descent()
        width = self.measure_text(text)
        self.add_link_region(x, y - ascent, width, ascent - descent, url)

    def draw_image(self, image: Any, fmt: str, x: float, y: float, width: float, height: float) -> None:
        """Draw a PIL image, PNG/JPEG bytes or a file path with its top-left at (x, y)."""
        if isinstance(image, (bytes, bytearray)):
            image = Image.open(io.BytesIO(image))
        reader = ImageReader(image)
        mask = "auto" if fmt.upper() == "PNG" else None
        self._canvas.drawImage(
            reader,
            x,
            self._flip(y) - height,
            width=width,
            height=height,
            mask=mask,
        )

    def draw_line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self._canvas.line(x1, self._flip(y1), x2, self._flip(y2))

    def fill_rect(self, x: float, y: float, width: float, height: float) -> None:
        self._canvas.rect(x, self._flip(y) - height, width, height, stroke=0, fill=1)

    def add_link_region(self, x: float, y: float, width: float, height: float, url: str) -> None:
        bottom = self._flip(y + height)
        self._canvas.linkURL(url, (x, bottom, x + width, bottom + height), relative=0)

    # -- pages ---------------------------------------------------------------

    def add_page(self) -> None:
        self._canvas.showPage()
        self._page_count += 1
        # showPage resets graphics state
        self._apply_font()

    def get_page_height(self) -> float:
        return self.config.page_height

    def get_page_width(self) -> float:
        return self.config.page_width

    def get_page_count(self) -> int:
        return self._page_count

    # -- outline -------------------------------------------------------------

    def bookmark(self, key: str, y: float) -> None:
        """Register a destination on the current page at top-origin ``y``."""
        self._canvas.bookmarkPage(key, fit="XYZ", left=0, top=self._flip(y))
        self._destinations[key] = self._page_count

    def destination_page(self, key: str) -> int:
        try:
            return self._destinations[key]
        except KeyError:
            raise DestinationError(f"No destination registered for {key!r}") from None

    def add_outline_node(self, title: str, key: str, level: int, page: Optional[int] = None) -> None:
        """Add a bookmark entry at nesting ``level`` (0 = root)."""
        registered = self.destination_page(key)
        if page is not None and registered != page:
            raise DestinationError(f"Destination {key!r} is on page {registered}, expected {page}")
        self._canvas.addOutlineEntry(title, key, level=level, closed=False)

    def show_outline(self) -> None:
        self._canvas.showOutline()

    def save(self) -> bytes:
        self._canvas.save()
        return self._buffer.getvalue()


_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def sanitize_title(title: str) -> str:
    """Title up to the first dash/colon/pipe separator, filename-safe."""
    base = str(title or "").strip()
    base = re.sub(r"[–—:\-|]+.*", "", base, flags=re.S)
    base = re.sub(r"\s+", "_", base)
    base = re.sub(r'[\\/:*?"<>|]+', "", base)
    base = re.sub(r"[^\w.\-]+", "", base)
    base = re.sub(r"_+", "_", base).strip("_")
    return base[:80].strip("_")


def build_filename(article: Any) -> str:
    """``YYYY-MM-DD-Title.pdf`` when the date is well formed, else ``Title.pdf``."""
    published = getattr(article, "published_date", None)
    ymd = str(published) if published and _DATE_RE.match(str(published)) else None
    title = getattr(article, "title", "") or getattr(article, "subtitle", "") or ""
    safe = sanitize_title(title) or "article"
    if ymd:
        return f"{ymd}-{safe}.pdf"
    return f"{safe}.pdf"
