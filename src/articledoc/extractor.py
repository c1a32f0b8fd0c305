"""
Content Extractor - Fetch and extract article content from web URLs.

Uses httpx for fetching and readability-lxml for content extraction, then
builds an Article: metadata from the original page, blocks from the
readability summary, mentions from related-article sections.
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Iterator, Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from readability import Document

from .analyzer import ContentAnalyzer
from .models import Article, HeroImage

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200


def format_date(value: str) -> Optional[str]:
    """Normalize a published date to ``YYYY-MM-DD``; None if unparseable."""
    value = str(value or "").strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        pass
    for fmt in ["%Y/%m/%d", "%d-%m-%Y", "%m/%d/%Y", "%B %d, %Y", "%b %d, %Y", "%d %B %Y"]:
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    match = re.search(r"(\d{4}-\d{2}-\d{2})", value)
    return match.group(1) if match else None


def _json_ld_objects(soup: BeautifulSoup) -> Iterator[dict]:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        text = script.string or script.get_text() or ""
        if not text.strip():
            continue
        try:
            data: Any = json.loads(text)
        except ValueError:
            logger.debug("Ignoring malformed JSON-LD block")
            continue
        for obj in data if isinstance(data, list) else [data]:
            if not isinstance(obj, dict):
                continue
            yield obj
            for node in obj.get("@graph") or []:
                if isinstance(node, dict):
                    yield node


def _meta(soup: BeautifulSoup, *keys: str) -> Optional[str]:
    """First non-empty ``content`` of a meta tag matched by property or name."""
    for key in keys:
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        if tag and tag.get("content") and str(tag["content"]).strip():
            return str(tag["content"]).strip()
    return None


class ContentExtractor:
    """Extract article content from web URLs."""

    # Common user agents to avoid bot detection
    USER_AGENTS = [
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    ]

    READ_TIME_RE = re.compile(r"(\d+)\s*min(?:ute)?s?\s+read", re.I)

    def __init__(self, timeout: float = 30.0):
        """Initialize extractor with configurable timeout."""
        self.timeout = timeout
        self._client: Optional[httpx.Client] = None
        self.analyzer = ContentAnalyzer()

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                headers={
                    "User-Agent": self.USER_AGENTS[0],
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-US,en;q=0.9",
                },
            )
        return self._client

    def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def extract(self, url: str) -> Article:
        """
        Extract an article from a URL.

        Args:
            url: The article URL to extract from

        Returns:
            Article ready to render

        Raises:
            httpx.HTTPError: If the page cannot be fetched
        """
        response = self.client.get(url)
        response.raise_for_status()
        return self.extract_from_html(response.text, str(response.url))

    def extract_from_html(self, html: str, url: str = "") -> Article:
        """
        Extract an article from already fetched HTML.

        Args:
            html: The full page HTML
            url: The page URL, used to resolve relative links

        Returns:
            Article ready to render
        """
        original_soup = BeautifulSoup(html, "lxml")

        doc = Document(html)
        summary_html = doc.summary(html_partial=True)
        summary_soup = BeautifulSoup(summary_html, "lxml")

        title = _meta(original_soup, "og:title") or (doc.title() or "").strip()
        canonical_url = self._extract_canonical(original_soup, url)
        base_url = canonical_url or url

        blocks = self.analyzer.analyze(summary_html, base_url=base_url, title=title)
        mentions = self.analyzer.find_mentions(
            original_soup, base_url=base_url, exclude=(url, canonical_url)
        )

        article = Article(
            title=title,
            subtitle=self._extract_subtitle(original_soup, title),
            author=self._extract_author(original_soup),
            published_date=self._extract_date(original_soup),
            reading_time_minutes=self._extract_reading_time(original_soup, summary_soup),
            canonical_url=canonical_url,
            hero_image=self._extract_hero(original_soup, base_url),
            blocks=blocks,
            mentions=mentions,
        )
        logger.info(
            "Extracted %r: %d blocks, %d mentions",
            article.title,
            len(article.blocks),
            len(article.mentions),
        )
        return article

    def _extract_subtitle(self, soup: BeautifulSoup, title: str) -> Optional[str]:
        """Extract a subtitle/deck from meta tags or the page."""
        description = _meta(soup, "og:description", "description", "twitter:description")
        if description and description != title:
            return description

        for cls in ["subtitle", "deck", "standfirst", "dek", "subheadline"]:
            elem = soup.find(class_=re.compile(cls, re.I))
            if elem:
                text = " ".join(elem.get_text(" ", strip=True).split())
                if text and text != title:
                    return text
        return None

    def _extract_author(self, soup: BeautifulSoup) -> str:
        """Extract author from meta tags or common patterns."""
        author = _meta(soup, "author", "article:author")
        if author and not author.startswith(("http://", "https://")):
            return author

        for obj in _json_ld_objects(soup):
            value = obj.get("author")
            if isinstance(value, list) and value:
                value = value[0]
            if isinstance(value, dict):
                value = value.get("name")
            if isinstance(value, str) and value.strip():
                return value.strip()

        # Try schema.org
        author_elem = soup.find(attrs={"itemprop": "author"})
        if author_elem:
            name_elem = author_elem.find(attrs={"itemprop": "name"})
            text = (name_elem or author_elem).get_text(strip=True)
            if text:
                return text

        # Try common class patterns
        for cls in ["author", "byline", "post-author", "entry-author"]:
            elem = soup.find(class_=re.compile(cls, re.I))
            if elem:
                text = elem.get_text(" ", strip=True)
                # Clean up "By Author Name" patterns
                text = re.sub(r"^[Bb]y\s+", "", text)
                if text and len(text) < 100:
                    return text

        return ""

    def _extract_date(self, soup: BeautifulSoup) -> Optional[str]:
        """Extract publication date as YYYY-MM-DD."""
        value = _meta(soup, "article:published_time", "pubdate", "date", "datePublished")

        if not value:
            for obj in _json_ld_objects(soup):
                if obj.get("datePublished"):
                    value = str(obj["datePublished"])
                    break

        if not value:
            time_elem = soup.find("time", attrs={"datetime": True})
            if time_elem:
                value = str(time_elem["datetime"])

        if not value:
            date_elem = soup.find(attrs={"itemprop": "datePublished"})
            if date_elem:
                value = date_elem.get("content") or date_elem.get("datetime")

        return format_date(value) if value else None

    def _extract_reading_time(self, soup: BeautifulSoup, summary: BeautifulSoup) -> Optional[int]:
        """Publisher's reading time if stated, else an estimate at 200 words/min."""
        for obj in _json_ld_objects(soup):
            match = re.search(r"PT(\d+)M", str(obj.get("timeRequired") or ""))
            if match:
                return int(match.group(1))

        label = _meta(soup, "twitter:data1")
        for text in ([label] if label else []) + [soup.get_text(" ", strip=True)]:
            match = self.READ_TIME_RE.search(text)
            if match and int(match.group(1)) > 0:
                return int(match.group(1))

        words = len(summary.get_text(" ", strip=True).split())
        if not words:
            return None
        return max(1, round(words / WORDS_PER_MINUTE))

    def _extract_canonical(self, soup: BeautifulSoup, url: str) -> str:
        link = soup.find("link", rel="canonical")
        if link and link.get("href"):
            return urljoin(url, str(link["href"]).strip())
        og_url = _meta(soup, "og:url")
        if og_url:
            return urljoin(url, og_url)
        return url

    def _extract_hero(self, soup: BeautifulSoup, base_url: str) -> Optional[HeroImage]:
        src = _meta(soup, "og:image", "og:image:url", "twitter:image")
        if not src:
            return None

        def dimension(key: str) -> Optional[int]:
            try:
                value = int(_meta(soup, key) or 0)
            except ValueError:
                return None
            return value or None

        return HeroImage(
            src=urljoin(base_url, src) if base_url else src,
            width=dimension("og:image:width"),
            height=dimension("og:image:height"),
        )


def extract_from_url(url: str) -> Article:
    """Convenience function to extract an article from a URL."""
    with ContentExtractor() as extractor:
        return extractor.extract(url)
