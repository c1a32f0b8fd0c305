"""Tests for the article model and its JSON loader."""

from __future__ import annotations

from articledoc.models import (
    Article,
    Block,
    Caption,
    CodeBlock,
    HeroImage,
    ImageBlock,
    ListBlock,
    Mention,
    Paragraph,
    Quote,
    Rule,
    Segment,
    article_from_dict,
    merge_segments,
)


def test_merge_segments_joins_same_style_and_drops_empty() -> None:
    merged = merge_segments(
        [
            Segment("Hello "),
            Segment(""),
            Segment("world"),
            Segment(" bold", bold=True),
            Segment(" too", bold=True),
            Segment(" linked", link="https://x.example"),
        ]
    )
    assert merged == (
        Segment("Hello world"),
        Segment(" bold too", bold=True),
        Segment(" linked", link="https://x.example"),
    )


def test_article_defaults() -> None:
    article = Article(title="T")
    assert article.blocks == ()
    assert article.mentions == ()
    assert article.hero_image is None


def test_article_from_dict_camel_case() -> None:
    article = article_from_dict(
        {
            "title": "My Post",
            "subtitle": "Sub",
            "author": "Jane",
            "publishedDate": "2025-01-02",
            "readingTimeMinutes": 7,
            "canonicalUrl": "https://example.com/post",
            "heroImage": {"src": "https://example.com/hero.png", "width": "800", "height": 400},
            "blocks": [],
            "mentions": [{"title": "Other", "url": "https://example.com/other"}, "junk"],
        }
    )
    assert article.title == "My Post"
    assert article.subtitle == "Sub"
    assert article.author == "Jane"
    assert article.published_date == "2025-01-02"
    assert article.reading_time_minutes == 7
    assert article.canonical_url == "https://example.com/post"
    assert article.hero_image == HeroImage("https://example.com/hero.png", 800, 400)
    assert article.mentions == (Mention("Other", "https://example.com/other"),)


def test_article_from_dict_content_items() -> None:
    article = article_from_dict(
        {
            "title": "T",
            "blocks": [
                {
                    "heading": "",
                    "content": [
                        {"type": "paragraph", "text": "Plain"},
                        {"type": "paragraph", "segments": [{"text": "B", "bold": True}, "tail"]},
                        {"type": "list", "ordered": True, "items": ["one", [{"text": "two", "italic": True}]]},
                        {"type": "quote", "text": "Q"},
                        {"type": "code", "text": "x = 1", "lang": "python"},
                        {"type": "image", "src": "a.png", "width": 0, "height": "nope"},
                        {"type": "caption", "segments": [{"text": "cap"}]},
                        {"type": "hr"},
                        {"type": "video", "src": "v.mp4"},
                        "not a dict",
                    ],
                },
                {"heading": "Deep", "level": 1, "content": []},
                {"heading": "Sub", "level": 4},
            ],
        }
    )
    first, second, third = article.blocks
    assert first.content == (
        Paragraph((Segment("Plain"),)),
        Paragraph((Segment("B", bold=True), Segment("tail"))),
        ListBlock(ordered=True, items=((Segment("one"),), (Segment("two", italic=True),))),
        Quote((Segment("Q"),)),
        CodeBlock("x = 1", lang="python"),
        ImageBlock("a.png", None, None),
        Caption((Segment("cap"),)),
        Rule(),
    )
    assert second == Block(heading="Deep", level=2, content=())
    assert third.level == 4


def test_article_from_dict_missing_fields() -> None:
    article = article_from_dict({})
    assert article.title == ""
    assert article.author == ""
    assert article.published_date is None
    assert article.reading_time_minutes is None
    assert article.hero_image is None
    assert article.blocks == ()


def test_hero_without_src_is_ignored() -> None:
    assert article_from_dict({"title": "T", "heroImage": {"width": 10}}).hero_image is None


def test_article_from_dict_tolerates_wrong_types() -> None:
    article = article_from_dict(
        {
            "title": "T",
            "subtitle": 42,
            "publishedDate": ["2025-01-02"],
            "blocks": ["junk", None, {"heading": "Kept", "content": [{"type": "code", "text": "x", "lang": 3}]}],
            "mentions": [{"title": "M", "url": "https://m.example", "subtitle": {"a": 1}}],
        }
    )
    assert article.subtitle == "42"
    assert article.published_date is None
    assert [block.heading for block in article.blocks] == ["Kept"]
    assert article.blocks[0].content == (CodeBlock("x", lang="3"),)
    assert article.mentions[0].subtitle is None
