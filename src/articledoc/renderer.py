"""
PDF Renderer - lay out an Article into paginated A4 pages.

Draws the header (title, subtitle, meta line, source URL, hero image), the
article blocks, an optional mentions appendix and table of contents, then
attaches the heading outline and serializes the document.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union
from urllib.parse import urlparse

from .blocks import BlockRenderer, RenderState
from .canvas import PageCanvas
from .config import DEFAULT_CONFIG, LayoutConfig, RenderOptions
from .images import ImageLoader, normalize_url
from .models import Article, ImageBlock, ListBlock, Mention, Segment
from .outline import attach, build_outline, build_toc

logger = logging.getLogger(__name__)

MENTIONS_HEADING = "Other mentions by Author"
TOC_HEADING = "Table of Contents"


@dataclass(frozen=True)
class Reference:
    id: str
    label: str
    url: str


def collect_references(mentions: Sequence[Mention]) -> list[Reference]:
    """Mentions deduplicated by URL; entries without a URL are dropped."""
    seen = set()
    refs = []
    for i, mention in enumerate(mentions or (), start=1):
        url = mention.url
        if not url or url in seen:
            continue
        seen.add(url)
        refs.append(Reference(id=f"ref_{i}", label=mention.title or url, url=url))
    return refs


def url_to_domain(url: str) -> str:
    host = urlparse(url).hostname
    return host or str(url or "").strip()


class PDFRenderer:
    """Render Articles to PDF."""

    def __init__(self, config: LayoutConfig = DEFAULT_CONFIG):
        self.config = config

    def render(
        self,
        article: Article,
        output_path: Optional[Union[str, Path]] = None,
        options: Optional[RenderOptions] = None,
    ) -> Optional[bytes]:
        """
        Render an article to PDF.

        Args:
            article: Article to render
            output_path: Path to save PDF. If None, returns bytes.
            options: Render options

        Returns:
            PDF bytes if output_path is None, otherwise None
        """
        if options is None:
            options = RenderOptions()

        canvas = PageCanvas(self.config, title=article.title, author=article.author)
        with ImageLoader(
            base_url=article.canonical_url,
            allow_local=options.allow_local_images,
        ) as images:
            state = RenderState.create(canvas, images, self.config)
            blocks = BlockRenderer(state)

            self._draw_header(article, blocks, options)

            for block in article.blocks:
                if block.heading and block.heading.strip():
                    blocks.draw_heading(block.heading, block.level)
                for item in block.content:
                    if isinstance(item, ImageBlock) and not options.include_images:
                        continue
                    blocks.draw_item(item)
                state.cursor.advance(6)

            if options.include_mentions:
                self._draw_mentions(article, blocks)

            if options.include_toc:
                self._draw_toc(blocks, options.toc_max_level)

        tree = build_outline(state.headings, canvas.get_page_height())
        entries = attach(tree, canvas)
        logger.info(
            "Rendered %r: %d pages, %d outline entries, %d emoji bitmaps",
            article.title,
            canvas.get_page_count(),
            entries,
            state.glyphs.rasterize_count,
        )
        pdf_bytes = canvas.save()

        if output_path:
            output_path = Path(output_path)
            output_path.write_bytes(pdf_bytes)
            return None
        return pdf_bytes

    def _draw_header(self, article: Article, blocks: BlockRenderer, options: RenderOptions) -> None:
        sizes, colors = self.config.sizes, self.config.colors

        title = (article.title or "").strip() or "Untitled"
        blocks.draw_segments(
            [Segment(text=title, bold=True)],
            sizes.title,
            round(sizes.title * 1.6),
            colors.body,
            step=round(sizes.title * 1.2),
        )

        subtitle = (article.subtitle or "").strip()
        if subtitle:
            blocks.draw_segments(
                [Segment(text=subtitle, italic=True)],
                sizes.subtitle,
                round(sizes.subtitle * 1.5),
                colors.muted,
            )

        blocks.draw_hr()

        meta = []
        if article.author:
            meta.append(article.author)
        if article.reading_time_minutes:
            meta.append(f"{article.reading_time_minutes} min read")
        if article.published_date:
            meta.append(str(article.published_date))
        meta_height = round(sizes.meta * 1.6)
        if meta:
            blocks.draw_segments(
                [Segment(text="  •  ".join(meta))],
                sizes.meta,
                meta_height,
                colors.muted,
                step=18,
                centered=True,
            )

        if article.canonical_url:
            blocks.draw_segments(
                [Segment(text=article.canonical_url, link=article.canonical_url)],
                sizes.meta,
                meta_height,
                colors.muted,
                step=18,
                centered=True,
            )

        blocks.draw_hr()

        hero = article.hero_image
        if hero and hero.src and options.include_images:
            blocks.draw_image(ImageBlock(src=hero.src, width=hero.width, height=hero.height))
            # never draw the hero twice, even if it failed to load
            blocks.state.seen_images.add(normalize_url(hero.src, article.canonical_url))

    def _draw_section_heading(self, blocks: BlockRenderer, text: str) -> None:
        size = self.config.sizes.h3
        blocks.draw_segments(
            [Segment(text=text, bold=True)],
            size,
            round(size * 1.5),
            self.config.colors.body,
            step=round(size * 1.6),
        )

    def _draw_mentions(self, article: Article, blocks: BlockRenderer) -> None:
        refs = collect_references(article.mentions)
        if not refs:
            return
        cursor = blocks.state.cursor
        body_height = self.config.line_heights.body
        cursor.ensure_space(body_height * 3)
        cursor.advance(body_height * 3)
        blocks.draw_hr()
        self._draw_section_heading(blocks, MENTIONS_HEADING)

        items = []
        for ref in refs:
            url = normalize_url(ref.url, article.canonical_url)
            items.append((Segment(text=f"{url_to_domain(url)} | {ref.label}", link=url),))
        blocks.draw_list(ListBlock(ordered=False, items=tuple(items)))

    def _draw_toc(self, blocks: BlockRenderer, max_level: int) -> None:
        entries = build_toc(blocks.state.headings, max_level)
        if not entries:
            return
        blocks.draw_hr()
        self._draw_section_heading(blocks, TOC_HEADING)

        for entry in entries:
            blocks.draw_segments(
                [Segment(text=f"{entry.text} ........ {entry.page}")],
                self.config.sizes.body,
                self.config.line_heights.body,
                self.config.colors.body,
                indent=12 * max(0, entry.level - 2),
            )


def render_to_pdf(
    article: Article,
    output_path: Union[str, Path],
    options: Optional[RenderOptions] = None,
) -> None:
    """
    Convenience function to render an article to a PDF file.

    Args:
        article: Article to render
        output_path: Path to save the PDF
        options: Render options
    """
    renderer = PDFRenderer()
    renderer.render(article, output_path=output_path, options=options)


def render_to_bytes(article: Article, options: Optional[RenderOptions] = None) -> bytes:
    """
    Convenience function to render an article to PDF bytes.

    Args:
        article: Article to render
        options: Render options

    Returns:
        PDF file as bytes
    """
    renderer = PDFRenderer()
    return renderer.render(article, output_path=None, options=options)
