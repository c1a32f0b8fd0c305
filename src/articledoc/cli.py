"""
ArticleDoc CLI - Convert article URLs to paginated PDFs.

Usage:
    articledoc convert https://example.com/article
    articledoc convert https://example.com/article --output article.pdf --toc
    articledoc render article.json
    articledoc serve  # Start web interface
"""

import json
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .canvas import build_filename
from .config import RenderOptions
from .extractor import ContentExtractor
from .models import Article, article_from_dict
from .renderer import PDFRenderer

app = typer.Typer(
    name="articledoc",
    help="Convert web articles into clean, paginated A4 PDFs.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"ArticleDoc v{__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=verbose, show_path=False)],
        force=True,
    )
    # Pillow's plugin loader is chatty at DEBUG
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.INFO if verbose else logging.WARNING)


def validate_url(url: str) -> str:
    """Validate and normalize URL."""
    parsed = urlparse(url)
    if not parsed.scheme:
        url = f"https://{url}"
        parsed = urlparse(url)

    if parsed.scheme not in ("http", "https"):
        raise typer.BadParameter(f"Invalid URL scheme: {parsed.scheme}")

    if not parsed.netloc:
        raise typer.BadParameter("Invalid URL: missing domain")

    return url


def write_pdf(article: Article, output: Optional[Path], options: RenderOptions) -> Path:
    """Render to ``output``, or to ``output/<filename>`` when not given."""
    if output is None:
        output_dir = Path("output")
        output_dir.mkdir(exist_ok=True)
        output = output_dir / build_filename(article)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)

    renderer = PDFRenderer()
    renderer.render(article, output_path=output, options=options)
    return output


def print_summary(article: Article, output: Path) -> None:
    console.print()
    console.print(f"[green]Success![/green] PDF saved to: [bold]{output}[/bold]")
    console.print()
    console.print(f"  Title: {article.title}")
    if article.author:
        console.print(f"  Author: {article.author}")
    if article.published_date:
        console.print(f"  Published: {article.published_date}")
    if article.reading_time_minutes:
        console.print(f"  Reading time: ~{article.reading_time_minutes} min")
    console.print(f"  Sections: {len(article.blocks)}")
    if article.mentions:
        console.print(f"  Mentions: {len(article.mentions)}")
    console.print()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """
    Convert web articles into clean, paginated A4 PDFs.
    """


@app.command()
def convert(
    url: str = typer.Argument(..., help="URL of the article to convert"),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output PDF filename (default: output/<date>-<title>.pdf)",
    ),
    include_images: bool = typer.Option(True, "--images/--no-images", help="Include images in the PDF"),
    include_mentions: bool = typer.Option(
        True,
        "--mentions/--no-mentions",
        help="Append the author's other articles",
    ),
    include_toc: bool = typer.Option(False, "--toc/--no-toc", help="Append a table of contents"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show debug logging"),
):
    """
    Fetch an article and convert it to PDF.

    Example:
        articledoc convert https://medium.com/@someone/article-slug
    """
    setup_logging(verbose)
    try:
        url = validate_url(url)
    except typer.BadParameter as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"\n[bold]ArticleDoc[/bold] v{__version__}")
    console.print(f"Converting: [cyan]{url}[/cyan]\n")

    options = RenderOptions(
        include_images=include_images,
        include_mentions=include_mentions,
        include_toc=include_toc,
    )
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Fetching and extracting content...", total=None)
            with ContentExtractor() as extractor:
                article = extractor.extract(url)
            progress.update(task, completed=True)

            task = progress.add_task("Generating PDF...", total=None)
            output = write_pdf(article, output, options)
            progress.update(task, completed=True)
    except httpx.HTTPError as e:
        console.print(f"\n[red]Error:[/red] Could not fetch {url}: {e}")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)

    print_summary(article, output)


@app.command()
def render(
    article_json: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Article JSON as produced by the browser extension",
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output PDF filename"),
    include_images: bool = typer.Option(True, "--images/--no-images", help="Include images in the PDF"),
    include_mentions: bool = typer.Option(
        True,
        "--mentions/--no-mentions",
        help="Append the author's other articles",
    ),
    include_toc: bool = typer.Option(False, "--toc/--no-toc", help="Append a table of contents"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show debug logging"),
):
    """
    Render an already extracted article (JSON) to PDF.
    """
    setup_logging(verbose)
    try:
        data = json.loads(article_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] Could not read {article_json}: {e}")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        console.print(f"[red]Error:[/red] {article_json} does not contain an article object")
        raise typer.Exit(1)

    article = article_from_dict(data)
    options = RenderOptions(
        include_images=include_images,
        include_mentions=include_mentions,
        include_toc=include_toc,
        allow_local_images=True,
    )
    try:
        output = write_pdf(article, output, options)
    except Exception as e:
        console.print(f"\n[red]Error:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)

    print_summary(article, output)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
):
    """
    Start the web interface for ArticleDoc.
    """
    import uvicorn

    console.print("\n[bold]ArticleDoc[/bold] Web Interface")
    console.print(f"Starting server at [cyan]http://{host}:{port}[/cyan]\n")

    uvicorn.run(
        "articledoc.web:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
