"""Tests for HTML to block analysis and mention discovery."""

from __future__ import annotations

from articledoc.analyzer import (
    ContentAnalyzer,
    analyze_content,
    dedupe_key,
    normalize_mention_url,
)
from articledoc.models import (
    Block,
    Caption,
    CodeBlock,
    ImageBlock,
    ListBlock,
    Mention,
    Paragraph,
    Quote,
    Rule,
    Segment,
)

BASE = "https://example.com/posts/my-post"

ARTICLE_HTML = """
<article>
  <h1>My Post</h1>
  <p>Lead <a href="/intro">link</a>.</p>
  <h2>Introduction</h2>
  <p>Still lead.</p>
  <h2>Setup</h2>
  <p>Hello <strong>bold</strong> and <em>it</em></p>
  <p>Line one<br>Line two</p>
  <ul><li>Alpha</li><li><a href="b">Beta</a><ul><li>nested</li></ul></li></ul>
  <ol><li>First</li></ol>
  <blockquote><p>Quoted <em>text</em></p></blockquote>
  <pre><code class="language-Python">def f():
    return 1


x = 2
</code></pre>
  <h1>Top Again</h1>
  <figure><img src="/img/a.png" width="640" height="480"><figcaption>A caption</figcaption></figure>
  <img src="/avatar.png" class="avatar">
  <img src="/sq.png" width="64" height="64">
  <hr>
  <h3>   </h3>
  <div class="related-posts"><p>Should vanish</p></div>
</article>
"""


def analyze(html: str = ARTICLE_HTML) -> tuple[Block, ...]:
    return ContentAnalyzer().analyze(html, base_url=BASE, title="My Post")


# ---------------------------------------------------------------------------
# blocks
# ---------------------------------------------------------------------------

def test_block_structure() -> None:
    blocks = analyze()
    assert [(b.heading, b.level) for b in blocks] == [("", 2), ("Setup", 2), ("Top Again", 2)]


def test_leading_content_and_skipped_headings() -> None:
    lead = analyze()[0]
    assert lead.content == (
        Paragraph(
            (
                Segment("Lead "),
                Segment("link", link="https://example.com/intro"),
                Segment("."),
            )
        ),
        Paragraph((Segment("Still lead."),)),
    )


def test_inline_styles_and_line_breaks() -> None:
    setup = analyze()[1]
    assert setup.content[0] == Paragraph(
        (
            Segment("Hello "),
            Segment("bold", bold=True),
            Segment(" and "),
            Segment("it", italic=True),
        )
    )
    assert setup.content[1] == Paragraph((Segment("Line one\nLine two"),))


def test_lists_fold_nested_items() -> None:
    setup = analyze()[1]
    assert setup.content[2] == ListBlock(
        ordered=False,
        items=(
            (Segment("Alpha"),),
            (Segment("Beta", link="https://example.com/posts/b"), Segment("nested")),
        ),
    )
    assert setup.content[3] == ListBlock(ordered=True, items=((Segment("First"),),))


def test_quote_is_not_duplicated_as_paragraph() -> None:
    setup = analyze()[1]
    assert setup.content[4] == Quote((Segment("Quoted "), Segment("text", italic=True)))
    assert not any(
        isinstance(item, Paragraph) and item.segments[0].text.startswith("Quoted")
        for block in analyze()
        for item in block.content
    )


def test_code_block() -> None:
    setup = analyze()[1]
    assert setup.content[5] == CodeBlock("def f():\n    return 1\n\nx = 2", lang="python")
    assert len(setup.content) == 6


def test_images_captions_and_rules() -> None:
    last = analyze()[2]
    assert last.content == (
        ImageBlock("https://example.com/img/a.png", 640, 480),
        Caption((Segment("A caption"),)),
        Rule(),
    )


def test_related_container_removed() -> None:
    text = " ".join(
        seg.text
        for block in analyze()
        for item in block.content
        if isinstance(item, Paragraph)
        for seg in item.segments
    )
    assert "Should vanish" not in text


def test_title_heading_only_skipped_first() -> None:
    blocks = analyze("<p>Intro</p><h2>My Post</h2><p>Body</p>")
    assert [b.heading for b in blocks] == ["", "My Post"]


def test_consecutive_duplicate_code_blocks() -> None:
    blocks = analyze("<h2>Code</h2><pre>x = 1</pre><pre>x = 1</pre><pre>y = 2</pre>")
    assert blocks[0].content == (CodeBlock("x = 1"), CodeBlock("y = 2"))


def test_empty_heading_section_is_kept() -> None:
    blocks = analyze("<h2>Alone</h2><h2>Next</h2><p>Text</p>")
    assert blocks[0] == Block(heading="Alone", level=2, content=())
    assert blocks[1].heading == "Next"


def test_lazy_image_sources() -> None:
    blocks = analyze('<img data-src="/lazy.png"><img srcset="/s.png 1x, /l.png 2x"><img alt="no source">')
    assert blocks[0].content == (
        ImageBlock("https://example.com/lazy.png"),
        ImageBlock("https://example.com/s.png"),
    )


def test_boilerplate_text_dropped() -> None:
    blocks = analyze("<p>Press enter or click to view image in full size</p><p>Real text</p>")
    assert blocks[0].content == (Paragraph((Segment("Real text"),)),)


def test_analyze_content_empty() -> None:
    assert analyze_content("") == ()


# ---------------------------------------------------------------------------
# mentions
# ---------------------------------------------------------------------------

PAGE_HTML = """
<html><body>
<article><p>Body</p></article>
<section class="more-from-author">
  <a href="https://example.com/a?source=rss#x">First story</a>
  <a href="https://www.example.com/a/">Dup</a>
  <a href="/b">Second</a>
  <a href="https://example.com/posts/my-post">Self</a>
  <a href="#top">Top</a>
  <a href="mailto:x@example.com">Mail</a>
  <div class="recommended"><a href="/c">Nested container</a></div>
</section>
</body></html>
"""


def test_find_mentions() -> None:
    mentions = ContentAnalyzer().find_mentions(PAGE_HTML, base_url=BASE, exclude=(BASE,))
    assert mentions == (
        Mention("First story", "https://example.com/a"),
        Mention("Second", "https://example.com/b"),
        Mention("Nested container", "https://example.com/c"),
    )


def test_find_mentions_without_containers() -> None:
    assert ContentAnalyzer().find_mentions("<p><a href='/x'>x</a></p>", base_url=BASE) == ()


def test_normalize_mention_url_unwraps_redirectors() -> None:
    assert (
        normalize_mention_url("https://medium.com/r/?url=https%3A%2F%2Fblog.example.com%2Fpost%3Fsource%3Dx")
        == "https://blog.example.com/post"
    )
    assert normalize_mention_url("https://www.google.com/url?q=https://example.com/x&sa=D") == "https://example.com/x"
    assert normalize_mention_url("https://example.com/amp/s/news.example.org/story") == "https://news.example.org/story"
    assert normalize_mention_url("/b?x=1#f", "https://example.com/p") == "https://example.com/b"


def test_dedupe_key() -> None:
    assert dedupe_key("http://www.Example.com:443/a//b/") == "https://example.com/a/b"
    assert dedupe_key("https://example.com:8080/") == "https://example.com:8080/"
