"""Tests for the command line interface."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from articledoc import __version__, cli
from articledoc.models import Article, Block, Paragraph, Segment

runner = CliRunner()

ARTICLE_JSON = {
    "title": "My Great Post: a story",
    "author": "Jane Doe",
    "publishedDate": "2025-01-02",
    "blocks": [{"heading": "Part one", "level": 2, "content": [{"type": "paragraph", "text": "Hello."}]}],
}


def make_fake_extractor(result):
    """A ContentExtractor stand-in returning ``result`` (or raising it)."""
    requested: list[str] = []

    class FakeExtractor:
        def __init__(self, *args, **kwargs):
            pass

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            return False

        def extract(self, url: str) -> Article:
            requested.append(url)
            if isinstance(result, Exception):
                raise result
            return result

    return FakeExtractor, requested


@pytest.fixture
def article_file(tmp_path: Path) -> Path:
    path = tmp_path / "article.json"
    path.write_text(json.dumps(ARTICLE_JSON), encoding="utf-8")
    return path


def test_version() -> None:
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert f"ArticleDoc v{__version__}" in result.output


def test_render_to_explicit_output(article_file: Path, tmp_path: Path) -> None:
    out = tmp_path / "nested" / "out.pdf"
    result = runner.invoke(cli.app, ["render", str(article_file), "-o", str(out), "--toc"])
    assert result.exit_code == 0, result.output
    assert "Success!" in result.output
    assert out.read_bytes().startswith(b"%PDF")


def test_render_default_output_dir(article_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(cli.app, ["render", str(article_file)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "output" / "2025-01-02-My_Great_Post.pdf").exists()


def test_render_rejects_non_object_json(tmp_path: Path) -> None:
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")
    result = runner.invoke(cli.app, ["render", str(path)])
    assert result.exit_code == 1


def test_convert(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    article = Article(
        title="Fetched",
        published_date="2025-02-03",
        blocks=(Block(heading="Only", content=(Paragraph((Segment("Body."),)),)),),
    )
    fake, requested = make_fake_extractor(article)
    monkeypatch.setattr(cli, "ContentExtractor", fake)

    out = tmp_path / "fetched.pdf"
    result = runner.invoke(cli.app, ["convert", "example.com/post", "-o", str(out), "--no-images"])
    assert result.exit_code == 0, result.output
    assert requested == ["https://example.com/post"]
    assert out.read_bytes().startswith(b"%PDF")


def test_convert_fetch_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    fake, _ = make_fake_extractor(httpx.ConnectError("connection refused"))
    monkeypatch.setattr(cli, "ContentExtractor", fake)
    result = runner.invoke(cli.app, ["convert", "https://example.com/post", "-o", str(tmp_path / "x.pdf")])
    assert result.exit_code == 1
    assert "Could not fetch" in result.output
    assert not (tmp_path / "x.pdf").exists()


def test_convert_rejects_bad_scheme() -> None:
    result = runner.invoke(cli.app, ["convert", "ftp://example.com/file"])
    assert result.exit_code == 1
    assert "Invalid URL scheme" in result.output


def test_validate_url() -> None:
    assert cli.validate_url("example.com/a") == "https://example.com/a"
    assert cli.validate_url("http://example.com") == "http://example.com"


def test_render_reads_local_images(tmp_path: Path) -> None:
    from PIL import Image

    image = tmp_path / "figure.png"
    Image.new("RGB", (20, 20), (0, 0, 255)).save(image)
    data = dict(ARTICLE_JSON, blocks=[{"content": [{"type": "image", "src": str(image)}]}])
    path = tmp_path / "local.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    out = tmp_path / "local.pdf"

    result = runner.invoke(cli.app, ["render", str(path), "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert b"/Subtype /Image" in out.read_bytes()
