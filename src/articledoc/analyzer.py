"""
Content Analyzer - Turn article HTML into heading-delimited blocks.

Walks the cleaned article HTML in document order and maps elements to
content items (paragraphs, lists, quotes, code, images, captions, rules),
keeping inline bold/italic/mono/link styling as segments. Also finds the
"more from the author" link cards that sit next to an article.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union
from urllib.parse import parse_qs, unquote, urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .models import (
    Block,
    Caption,
    CodeBlock,
    ContentItem,
    ImageBlock,
    ListBlock,
    Mention,
    Paragraph,
    Quote,
    Rule,
    Segment,
    merge_segments,
)

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
CONTENT_TAGS = HEADING_TAGS + ["p", "ul", "ol", "blockquote", "pre", "img", "figcaption", "hr"]

# Paragraphs inside these are handled by their container
CONTAINER_TAGS = ["blockquote", "ul", "ol", "li", "pre", "code", "figure", "figcaption"]


@dataclass
class _Section:
    heading: str = ""
    level: int = 2
    content: list[ContentItem] = field(default_factory=list)

    def freeze(self) -> Block:
        return Block(heading=self.heading, level=self.level, content=tuple(self.content))


def _int_attr(el: Tag, name: str) -> Optional[int]:
    try:
        value = int(str(el.get(name, "")).strip().rstrip("px"))
    except ValueError:
        return None
    return value if value > 0 else None


def normalize_mention_url(href: str, base_url: str = "") -> str:
    """Absolute URL without query or fragment; common redirectors unwrapped."""
    url = urljoin(base_url, href) if base_url else href
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    query = parse_qs(parsed.query)

    inner = None
    if (host == "medium.com" or host.endswith(".medium.com")) and parsed.path.startswith("/r/"):
        inner = (query.get("url") or [None])[0]
    elif parsed.path.lower() == "/redirect":
        inner = (query.get("url") or query.get("to") or [None])[0]
    elif (host == "google.com" or host.endswith(".google.com")) and parsed.path.lower() == "/url":
        inner = (query.get("q") or [None])[0]
    elif parsed.path.lower().startswith("/amp/s/"):
        inner = "https://" + parsed.path[len("/amp/s/"):]
    if inner:
        return normalize_mention_url(inner)

    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))


def dedupe_key(url: str) -> str:
    """Forgiving identity for URLs: https, no www, no default port, no trailing slash."""
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    port = parsed.port
    netloc = host if port in (None, 80, 443) else f"{host}:{port}"
    path = re.sub(r"/+", "/", unquote(parsed.path or "/"))
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return f"https://{netloc}{path}"


class ContentAnalyzer:
    """Analyze article HTML into blocks of content items."""

    # Boilerplate lines some publishers inject into article bodies
    DROP_TEXT_PATTERNS = [
        re.compile(r"press\s+enter\s+or\s+click\s+to\s+view\s+image\s+in\s+full\s+size", re.I),
        re.compile(r"^\s*members?[-\s]?only\s+story\s*$", re.I),
    ]

    # A bare "Introduction" heading adds nothing to the outline
    INTRO_HEADING_RE = re.compile(r"^\s*introduction\s*[:.\-—–]*\s*$", re.I)

    # Related/recirculation containers holding link cards
    MENTION_CONTAINER_RE = re.compile(r"related|more-from|recommended|read-next", re.I)

    AVATAR_RE = re.compile(r"avatar|author|profile|face|userpic", re.I)

    BOLD_TAGS = {"b", "strong"}
    ITALIC_TAGS = {"i", "em"}
    MONO_TAGS = {"code", "kbd", "samp"}
    SKIP_TAGS = {"script", "style", "noscript", "template"}

    def analyze(self, html: str, base_url: str = "", title: str = "") -> tuple[Block, ...]:
        """
        Build blocks from article HTML.

        Args:
            html: Article HTML (typically the readability summary)
            base_url: URL used to resolve relative links and image sources
            title: Article title; a heading repeating it is skipped

        Returns:
            Blocks in document order. Content before the first heading goes
            into a block with an empty heading.
        """
        soup = BeautifulSoup(html or "", "lxml")
        for container in self._mention_containers(soup):
            container.decompose()

        sections: list[_Section] = []
        current = _Section()
        title_key = " ".join((title or "").split()).lower()

        for el in soup.find_all(CONTENT_TAGS):
            tag = el.name

            if tag in HEADING_TAGS:
                text = " ".join(el.get_text(" ", strip=True).split())
                if not text or self.INTRO_HEADING_RE.match(text):
                    continue
                if title_key and text.lower() == title_key and not sections and not current.content:
                    continue
                if current.content or current.heading:
                    sections.append(current)
                current = _Section(heading=text, level=max(2, int(tag[1])))
                continue

            item = self._extract_item(el, base_url)
            if item is None:
                continue
            if isinstance(item, CodeBlock) and current.content and current.content[-1] == item:
                continue
            current.content.append(item)

        if current.content or current.heading:
            sections.append(current)

        blocks = tuple(section.freeze() for section in sections)
        logger.debug(
            "Analyzed %d blocks, %d items",
            len(blocks),
            sum(len(block.content) for block in blocks),
        )
        return blocks

    def _extract_item(self, el: Tag, base_url: str) -> Optional[ContentItem]:
        tag = el.name
        if tag == "p":
            if el.find_parent(CONTAINER_TAGS):
                return None
            segments = self._paragraph_segments(el, base_url)
            return Paragraph(segments=segments) if segments else None
        if tag in ("ul", "ol"):
            # nested lists are folded into their parent item
            if el.find_parent("li"):
                return None
            return self._extract_list(el, base_url)
        if tag == "blockquote":
            if el.find_parent("blockquote"):
                return None
            segments = self._paragraph_segments(el, base_url)
            return Quote(segments=segments) if segments else None
        if tag == "pre":
            if el.find_parent("pre"):
                return None
            return self._extract_code(el)
        if tag == "img":
            return self._extract_image(el, base_url)
        if tag == "figcaption":
            segments = self._paragraph_segments(el, base_url)
            return Caption(segments=segments) if segments else None
        if tag == "hr":
            return Rule()
        return None

    # -- inline text -----------------------------------------------------------

    def _should_drop(self, text: str) -> bool:
        stripped = (text or "").strip()
        if not stripped:
            return True
        return any(pattern.search(stripped) for pattern in self.DROP_TEXT_PATTERNS)

    def segments_from_node(
        self,
        node: Union[Tag, NavigableString],
        base_url: str = "",
        style: Optional[Segment] = None,
    ) -> list[Segment]:
        """Flatten a node into styled segments. ``<br>`` becomes a newline."""
        if style is None:
            style = Segment(text="")
        if isinstance(node, Comment):
            return []
        if isinstance(node, NavigableString):
            raw = str(node)
            if style.mono:
                text = raw.replace("\xa0", " ")
            else:
                text = re.sub(r"[\s\xa0]+", " ", raw)
            if not text or (text.strip() and self._should_drop(text)):
                return []
            return [Segment(text=text, bold=style.bold, italic=style.italic, mono=style.mono, link=style.link)]
        if not isinstance(node, Tag) or node.name in self.SKIP_TAGS:
            return []

        name = node.name
        bold = style.bold or name in self.BOLD_TAGS
        italic = style.italic or name in self.ITALIC_TAGS
        mono = style.mono or name in self.MONO_TAGS
        link = style.link
        if name == "a" and node.get("href"):
            href = str(node["href"]).strip()
            link = urljoin(base_url, href) if base_url else href
        inner = Segment(text="", bold=bold, italic=italic, mono=mono, link=link)

        if name == "br":
            return [Segment(text="\n", bold=bold, italic=italic, mono=mono, link=link)]

        segments = []
        for child in node.children:
            segments.extend(self.segments_from_node(child, base_url, inner))
        return segments

    def _paragraph_segments(self, el: Tag, base_url: str) -> tuple[Segment, ...]:
        merged = merge_segments(self.segments_from_node(el, base_url))
        combined = "".join(seg.text for seg in merged)
        if self._should_drop(combined):
            return ()
        return merged

    def _extract_list(self, el: Tag, base_url: str) -> Optional[ListBlock]:
        items = []
        for li in el.find_all("li", recursive=False):
            segments = self._paragraph_segments(li, base_url)
            if segments:
                items.append(segments)
        if not items:
            return None
        return ListBlock(ordered=el.name == "ol", items=tuple(items))

    # -- code ------------------------------------------------------------------

    def _code_text(self, node: Tag) -> str:
        parts = []
        for child in node.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                parts.append(str(child))
                continue
            if not isinstance(child, Tag):
                continue
            if child.name == "br":
                parts.append("\n")
                continue
            inner = self._code_text(child)
            # highlighters wrap each line in a block element
            if child.name in ("div", "p", "li", "pre") and not inner.endswith("\n"):
                inner += "\n"
            parts.append(inner)
        return "".join(parts)

    def _extract_code(self, el: Tag) -> Optional[CodeBlock]:
        code_el = el.find("code") or el
        lang = code_el.get("data-lang") or el.get("data-lang")
        if not lang:
            classes = " ".join(code_el.get("class") or el.get("class") or [])
            match = re.search(r"language-([A-Za-z0-9+#]+)", classes) or re.search(
                r"lang-([A-Za-z0-9+#]+)", classes
            )
            if match:
                lang = match.group(1)

        text = self._code_text(code_el)
        text = text.replace("\xa0", " ").replace("\r", "")
        text = re.sub(r"\n{3,}", "\n\n", text).rstrip()
        if not text.strip():
            return None
        return CodeBlock(text=text, lang=str(lang).lower() if lang else None)

    # -- images ----------------------------------------------------------------

    def looks_like_avatar(self, img: Tag) -> bool:
        """Author pictures and other small square heads."""
        classes = img.get("class") or []
        if isinstance(classes, list):
            classes = " ".join(classes)
        if self.AVATAR_RE.search(f"{img.get('alt', '')} {classes}"):
            return True
        width, height = _int_attr(img, "width"), _int_attr(img, "height")
        if width and height and abs(width - height) <= 4 and max(width, height) <= 128:
            return True
        return False

    def _extract_image(self, el: Tag, base_url: str) -> Optional[ImageBlock]:
        src = el.get("src") or el.get("data-src") or el.get("data-lazy-src")
        if not src:
            srcset = el.get("srcset") or el.get("data-srcset")
            if srcset:
                src = srcset.split(",")[0].strip().split(" ")[0]
        if not src or self.looks_like_avatar(el):
            return None
        src = str(src).strip()
        if base_url and not src.startswith("data:"):
            src = urljoin(base_url, src)
        return ImageBlock(src=src, width=_int_attr(el, "width"), height=_int_attr(el, "height"))

    # -- mentions --------------------------------------------------------------

    def _mention_containers(self, soup: BeautifulSoup) -> list[Tag]:
        found = soup.find_all(attrs={"class": self.MENTION_CONTAINER_RE})
        found += soup.find_all(attrs={"id": self.MENTION_CONTAINER_RE})
        # outermost only
        ids = {id(el) for el in found}
        outer = []
        for el in found:
            if any(id(parent) in ids for parent in el.parents):
                continue
            if not any(el is kept for kept in outer):
                outer.append(el)
        return outer

    def find_mentions(
        self,
        html: Union[str, BeautifulSoup],
        base_url: str = "",
        exclude: tuple[str, ...] = (),
    ) -> tuple[Mention, ...]:
        """
        Collect link cards from related/recirculation sections.

        Args:
            html: Full page HTML or an already parsed soup
            base_url: Page URL used to resolve relative links
            exclude: URLs to leave out (the article itself)

        Returns:
            Mentions deduplicated by URL, in page order
        """
        soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html or "", "lxml")
        seen = {dedupe_key(normalize_mention_url(url, base_url)) for url in exclude if url}
        mentions = []
        for container in self._mention_containers(soup):
            for a in container.find_all("a", href=True):
                href = str(a["href"]).strip()
                if not href or href.startswith(("#", "javascript:", "mailto:")):
                    continue
                url = normalize_mention_url(href, base_url)
                if urlparse(url).scheme not in ("http", "https"):
                    continue
                key = dedupe_key(url)
                if key in seen:
                    continue

                heading = a.find(HEADING_TAGS)
                title = " ".join((heading or a).get_text(" ", strip=True).split())
                if not title:
                    continue
                subtitle = None
                if heading is not None:
                    rest = " ".join(a.get_text(" ", strip=True).split())
                    rest = rest.replace(title, "", 1).strip()
                    subtitle = rest or None

                seen.add(key)
                mentions.append(Mention(title=title, url=url, subtitle=subtitle))
        logger.debug("Found %d mentions", len(mentions))
        return tuple(mentions)


def analyze_content(html: str, base_url: str = "", title: str = "") -> tuple[Block, ...]:
    """Convenience function to analyze article HTML."""
    analyzer = ContentAnalyzer()
    return analyzer.analyze(html, base_url=base_url, title=title)
