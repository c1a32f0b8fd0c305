"""
ArticleDoc - Article to PDF Converter

Convert web articles into clean, paginated A4 PDFs with wrapped text,
color emoji, clickable links and a bookmark outline.
"""

__version__ = "0.1.0"

from .analyzer import ContentAnalyzer
from .config import LayoutConfig, RenderOptions
from .extractor import ContentExtractor
from .models import Article, article_from_dict
from .renderer import PDFRenderer, render_to_bytes, render_to_pdf

__all__ = [
    "__version__",
    "Article",
    "ContentAnalyzer",
    "ContentExtractor",
    "LayoutConfig",
    "PDFRenderer",
    "RenderOptions",
    "article_from_dict",
    "render_to_bytes",
    "render_to_pdf",
]
