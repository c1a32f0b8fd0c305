"""
ArticleDoc Web Interface - Browser-based UI for article conversion.

A small FastAPI application: a form page that downloads the PDF, a JSON API
returning the PDF base64-encoded, and an endpoint rendering an already
extracted article.
"""

import base64
import io
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, urlparse

from fastapi import Body, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, HttpUrl

from . import __version__
from .canvas import build_filename
from .config import RenderOptions
from .extractor import ContentExtractor
from .models import Article, article_from_dict
from .renderer import PDFRenderer

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="ArticleDoc",
    description="Convert web articles into paginated PDFs",
    version=__version__,
)

# Set up templates
templates_dir = Path(__file__).parent / "web_templates"
templates = Jinja2Templates(directory=str(templates_dir))


class ConversionRequest(BaseModel):
    """Request model for article conversion."""

    url: HttpUrl
    include_images: bool = True
    include_mentions: bool = True
    include_toc: bool = False
    toc_max_level: int = 3

    def options(self) -> RenderOptions:
        return RenderOptions(
            include_images=self.include_images,
            include_mentions=self.include_mentions,
            include_toc=self.include_toc,
            toc_max_level=self.toc_max_level,
        )


def extract_article(url: str) -> Article:
    with ContentExtractor() as extractor:
        return extractor.extract(url)


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback name; headers are latin-1 only."""
    ascii_name = filename.encode("ascii", "ignore").decode("ascii")
    stem = ascii_name[: -len(".pdf")] if ascii_name.endswith(".pdf") else ascii_name
    stem = stem.strip("_-")
    fallback = f"{stem}.pdf" if stem else "article.pdf"
    if fallback == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def pdf_response(pdf_bytes: bytes, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": content_disposition(filename),
            "Content-Length": str(len(pdf_bytes)),
        },
    )


@app.get("/", response_class=HTMLResponse)
def home(request: Request):
    """Render the home page with conversion form."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {"version": __version__},
    )


@app.post("/convert")
def convert_article(
    url: str = Form(...),
    include_images: bool = Form(True),
    include_mentions: bool = Form(True),
    include_toc: bool = Form(False),
):
    """
    Convert an article URL to PDF and return it for download.
    """
    parsed = urlparse(url)
    if not parsed.scheme:
        url = f"https://{url}"

    try:
        article = extract_article(url)
        pdf_bytes = PDFRenderer().render(
            article,
            options=RenderOptions(
                include_images=include_images,
                include_mentions=include_mentions,
                include_toc=include_toc,
            ),
        )
    except Exception as e:
        logger.exception("Conversion of %s failed", url)
        raise HTTPException(status_code=500, detail=str(e))

    return pdf_response(pdf_bytes, build_filename(article))


@app.post("/api/convert", response_class=JSONResponse)
def api_convert(request: ConversionRequest):
    """
    API endpoint for article conversion.

    Returns JSON with PDF bytes encoded as base64.
    """
    try:
        article = extract_article(str(request.url))
        pdf_bytes = PDFRenderer().render(article, options=request.options())
    except Exception as e:
        logger.exception("Conversion of %s failed", request.url)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e)},
        )

    return {
        "success": True,
        "title": article.title,
        "author": article.author,
        "published_date": article.published_date,
        "reading_time": article.reading_time_minutes,
        "filename": build_filename(article),
        "pdf_base64": base64.b64encode(pdf_bytes).decode("ascii"),
    }


@app.post("/api/render")
def api_render(
    article: dict[str, Any] = Body(...),
    include_images: bool = True,
    include_mentions: bool = True,
    include_toc: bool = False,
    toc_max_level: Optional[int] = None,
):
    """
    Render an article extracted elsewhere (the browser extension's JSON).

    Rendering options are query parameters.
    """
    doc = article_from_dict(article)
    options = RenderOptions(
        include_images=include_images,
        include_mentions=include_mentions,
        include_toc=include_toc,
        toc_max_level=toc_max_level or 3,
    )
    try:
        pdf_bytes = PDFRenderer().render(doc, options=options)
    except Exception as e:
        logger.exception("Rendering %r failed", doc.title)
        raise HTTPException(status_code=500, detail=str(e))

    return pdf_response(pdf_bytes, build_filename(doc))


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
