"""
Layout configuration - page geometry, typography and raster font stacks.
"""

from dataclasses import dataclass, field
from pathlib import Path

from reportlab.lib.pagesizes import A4

RGB = tuple[int, int, int]


@dataclass(frozen=True)
class Colors:
    body: RGB = (20, 20, 20)
    muted: RGB = (110, 110, 110)
    link: RGB = (17, 85, 204)
    hr: RGB = (200, 200, 200)
    quote_bar: RGB = (200, 200, 200)
    code_background: RGB = (245, 245, 245)


@dataclass(frozen=True)
class Sizes:
    title: float = 22
    subtitle: float = 14.5
    meta: float = 11
    h2: float = 16
    h3: float = 14
    h4: float = 12.5
    body: float = 11
    quote: float = 11
    code: float = 10
    code_min: float = 7

    def heading(self, level: int) -> float:
        if level <= 2:
            return self.h2
        if level == 3:
            return self.h3
        return self.h4


@dataclass(frozen=True)
class LineHeights:
    body: float = 16
    quote: float = 16
    code: float = 14


TEXT_FONT_CANDIDATES = (
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    Path("/usr/share/fonts/TTF/DejaVuSans.ttf"),
    Path("/Library/Fonts/Arial.ttf"),
    Path("/System/Library/Fonts/Supplemental/Arial.ttf"),
    Path("C:/Windows/Fonts/arial.ttf"),
)

EMOJI_FONT_CANDIDATES = (
    Path("/usr/share/fonts/truetype/noto/NotoColorEmoji.ttf"),
    Path("/usr/share/fonts/noto/NotoColorEmoji.ttf"),
    Path("/usr/share/fonts/google-noto-emoji/NotoColorEmoji.ttf"),
    Path("/System/Library/Fonts/Apple Color Emoji.ttc"),
    Path("C:/Windows/Fonts/seguiemj.ttf"),
)


@dataclass(frozen=True)
class LayoutConfig:
    """Fixed page format and typography shared by every renderer."""

    page_size: tuple[float, float] = A4
    margin: float = 56  # ~0.78in
    colors: Colors = field(default_factory=Colors)
    sizes: Sizes = field(default_factory=Sizes)
    line_heights: LineHeights = field(default_factory=LineHeights)

    # Measurement under-reports slightly; these keep rendered runs inside the column.
    text_safety: float = 1.02
    emoji_safety: float = 1.08

    emoji_pixel_ratio: int = 4
    emoji_baseline: float = 0.85
    text_font_paths: tuple[Path, ...] = TEXT_FONT_CANDIDATES
    emoji_font_paths: tuple[Path, ...] = EMOJI_FONT_CANDIDATES

    @property
    def page_width(self) -> float:
        return self.page_size[0]

    @property
    def page_height(self) -> float:
        return self.page_size[1]

    @property
    def text_width(self) -> float:
        return self.page_width - 2 * self.margin


@dataclass
class RenderOptions:
    """Options for a single document render."""

    include_images: bool = True
    include_mentions: bool = True
    include_toc: bool = False
    toc_max_level: int = 3
    # read image paths and file:// URLs from this machine
    allow_local_images: bool = False


DEFAULT_CONFIG = LayoutConfig()
