"""Shared fixtures: a canvas that records drawing calls, images without network."""

from __future__ import annotations

import base64
import io
from typing import Callable, Optional

import pytest
from PIL import Image

from articledoc import renderer as renderer_module
from articledoc.blocks import BlockRenderer, RenderState
from articledoc.canvas import PageCanvas
from articledoc.config import DEFAULT_CONFIG, LayoutConfig
from articledoc.glyphs import GlyphCache
from articledoc.images import ImageLoader


class RecordingCanvas(PageCanvas):
    """PageCanvas that keeps a log of what was drawn, and where."""

    def __init__(self, config: LayoutConfig = DEFAULT_CONFIG, title: str = "", author: str = ""):
        self.calls: list[tuple] = []
        self.outline: list[tuple[str, str, int]] = []
        super().__init__(config, title=title, author=author)

    def draw_text(self, text: str, x: float, y: float) -> None:
        self.calls.append(("text", text, x, y, self.get_page_count()))
        super().draw_text(text, x, y)

    def draw_image(self, image, fmt: str, x: float, y: float, width: float, height: float) -> None:
        self.calls.append(("image", fmt, x, y, width, height, self.get_page_count()))
        super().draw_image(image, fmt, x, y, width, height)

    def draw_line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        self.calls.append(("line", x1, y1, x2, y2, self.get_page_count()))
        super().draw_line(x1, y1, x2, y2)

    def fill_rect(self, x: float, y: float, width: float, height: float) -> None:
        self.calls.append(("rect", x, y, width, height, self.get_page_count()))
        super().fill_rect(x, y, width, height)

    def add_link_region(self, x: float, y: float, width: float, height: float, url: str) -> None:
        self.calls.append(("link", x, y, width, height, url, self.get_page_count()))
        super().add_link_region(x, y, width, height, url)

    def add_page(self) -> None:
        super().add_page()
        self.calls.append(("page", self.get_page_count()))

    def add_outline_node(self, title: str, key: str, level: int, page: Optional[int] = None) -> None:
        super().add_outline_node(title, key, level, page=page)
        self.outline.append((title, key, level))

    # -- helpers -------------------------------------------------------------

    def of(self, kind: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == kind]

    def texts(self) -> list[str]:
        return [call[1] for call in self.of("text")]

    def joined_text(self) -> str:
        return "".join(self.texts())


def png_bytes(width: int, height: int, mode: str = "RGB", color=(200, 30, 30)) -> bytes:
    if mode == "RGBA" and len(color) == 3:
        color = (*color, 128)
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


@pytest.fixture
def config() -> LayoutConfig:
    return DEFAULT_CONFIG


@pytest.fixture
def glyphs() -> GlyphCache:
    return GlyphCache(DEFAULT_CONFIG)


@pytest.fixture
def canvas() -> RecordingCanvas:
    return RecordingCanvas(DEFAULT_CONFIG)


@pytest.fixture
def state(canvas: RecordingCanvas):
    with ImageLoader(allow_local=True) as images:
        yield RenderState.create(canvas, images, DEFAULT_CONFIG)


@pytest.fixture
def blocks(state: RenderState) -> BlockRenderer:
    return BlockRenderer(state)


@pytest.fixture
def image_uri() -> Callable[..., str]:
    """Factory for PNG data URIs of a given size."""

    def make(width: int = 100, height: int = 50, mode: str = "RGB") -> str:
        return data_uri(png_bytes(width, height, mode))

    return make


@pytest.fixture
def recorded(monkeypatch: pytest.MonkeyPatch) -> list[RecordingCanvas]:
    """Make PDFRenderer draw on RecordingCanvas; collects every canvas it creates."""
    created: list[RecordingCanvas] = []

    def factory(*args, **kwargs) -> RecordingCanvas:
        instance = RecordingCanvas(*args, **kwargs)
        created.append(instance)
        return instance

    monkeypatch.setattr(renderer_module, "PageCanvas", factory)
    return created
