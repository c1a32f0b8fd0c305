"""Tests for the page canvas and output filenames."""

from __future__ import annotations

import pytest

from articledoc.canvas import DestinationError, FontStyle, PageCanvas, build_filename, sanitize_title
from articledoc.models import Article


# ---------------------------------------------------------------------------
# filenames
# ---------------------------------------------------------------------------

def test_filename_with_date_and_separator() -> None:
    article = Article(title="My Great Post — extra", published_date="2025-01-02")
    assert build_filename(article) == "2025-01-02-My_Great_Post.pdf"


def test_filename_falls_back_to_article() -> None:
    assert build_filename(Article(title="!!!", published_date=None)) == "article.pdf"
    assert build_filename(Article(title="")) == "article.pdf"


def test_filename_ignores_malformed_date() -> None:
    assert build_filename(Article(title="Notes", published_date="Jan 2, 2025")) == "Notes.pdf"
    assert build_filename(Article(title="Notes", published_date="2025-1-2")) == "Notes.pdf"


@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("Hello: World", "Hello"),
        ("Release notes | Blog", "Release_notes"),
        ("Self-driving cars", "Self"),
        ('What is a/b*c "really"?', "What_is_abc_really"),
        ("  lots   of    space  ", "lots_of_space"),
        ("Café culture", "Café_culture"),
    ],
)
def test_sanitize_title(title: str, expected: str) -> None:
    assert sanitize_title(title) == expected


def test_sanitize_title_caps_length() -> None:
    result = sanitize_title("word " * 40)
    assert len(result) <= 80
    assert not result.endswith("_")


# ---------------------------------------------------------------------------
# canvas
# ---------------------------------------------------------------------------

def test_font_style_for_flags() -> None:
    assert FontStyle.for_flags().font_name == "Helvetica"
    assert FontStyle.for_flags(bold=True).font_name == "Helvetica-Bold"
    assert FontStyle.for_flags(italic=True).font_name == "Helvetica-Oblique"
    assert FontStyle.for_flags(bold=True, italic=True).font_name == "Helvetica-BoldOblique"
    assert FontStyle.for_flags(bold=True, mono=True).font_name == "Courier"


def test_pages_are_counted() -> None:
    canvas = PageCanvas()
    assert canvas.get_page_count() == 1
    canvas.add_page()
    canvas.add_page()
    assert canvas.get_page_count() == 3


def test_page_geometry_is_a4() -> None:
    canvas = PageCanvas()
    assert canvas.get_page_width() == pytest.approx(595.27, abs=0.01)
    assert canvas.get_page_height() == pytest.approx(841.89, abs=0.01)


def test_font_survives_page_break() -> None:
    canvas = PageCanvas()
    canvas.set_font("courier", "bold")
    canvas.set_font_size(9)
    canvas.add_page()
    assert canvas.font == FontStyle("courier", "bold")
    assert canvas.font_size == 9


def test_measure_text_uses_current_font() -> None:
    canvas = PageCanvas()
    canvas.set_font_size(10)
    normal = canvas.measure_text("Wide")
    canvas.set_font("helvetica", "bold")
    assert canvas.measure_text("Wide") > normal


def test_unknown_destination_raises() -> None:
    canvas = PageCanvas()
    with pytest.raises(DestinationError):
        canvas.destination_page("heading-9")
    with pytest.raises(LookupError):
        canvas.add_outline_node("Missing", "heading-9", 0)


def test_bookmark_records_page() -> None:
    canvas = PageCanvas()
    canvas.add_page()
    canvas.bookmark("heading-1", 200)
    assert canvas.destination_page("heading-1") == 2


def test_save_produces_pdf_with_metadata() -> None:
    canvas = PageCanvas(title="A Title", author="Ann Author")
    canvas.draw_linked_text("link", 56, 100, "https://example.com/")
    canvas.bookmark("heading-1", 100)
    canvas.add_outline_node("Intro", "heading-1", 0)
    canvas.show_outline()
    data = canvas.save()
    assert data.startswith(b"%PDF")
    assert b"/Outlines" in data
    assert b"https://example.com/" in data
