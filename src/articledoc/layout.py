"""
Line Layout - wrap styled segments into lines of measured parts.

Breaks only at whitespace. A token wider than the line is placed alone on
its own line rather than split.
"""

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, Sequence

from .canvas import FontStyle
from .glyphs import Fragment, GlyphCache
from .models import Segment

TOKEN_RE = re.compile(r"\S+\s*|\s+")


@dataclass
class LinePart:
    """A styled sub-run of a line with its measured width."""

    text: str
    width: float
    bold: bool = False
    italic: bool = False
    mono: bool = False
    link: Optional[str] = None
    # Only set when the run contains emoji and must be drawn piecewise.
    fragments: Optional[list[Fragment]] = None

    @property
    def style(self) -> FontStyle:
        return FontStyle.for_flags(self.bold, self.italic, self.mono)


@dataclass
class LayoutLine:
    parts: list[LinePart] = field(default_factory=list)

    @property
    def width(self) -> float:
        return sum(part.width for part in self.parts)

    def __bool__(self) -> bool:
        return bool(self.parts)


def _is_space(token: str) -> bool:
    return token.isspace()


def _is_single_char(token: str) -> bool:
    core = token.rstrip()
    return len(core) == 1 and core.isalnum()


def coalesce_single_chars(
    tokens: Iterable[str],
    measure: Callable[[str], float],
    max_width: float,
) -> list[str]:
    """Merge runs of single letter/digit tokens into one token.

    Over-split dense scripts otherwise wrap one character per line.
    Whitespace-only tokens are never pulled into a run, and a run is cut
    before ``measure`` puts it over ``max_width``, so every merged token
    still fits on a line of its own.
    """
    merged: list[str] = []
    run = ""
    for token in tokens:
        if _is_single_char(token):
            if run and measure(run + token) > max_width:
                merged.append(run)
                run = ""
            run += token
            continue
        if run:
            merged.append(run)
            run = ""
        merged.append(token)
    if run:
        merged.append(run)
    return merged


def tokenize(chunk: str, measure: Callable[[str], float], max_width: float) -> list[str]:
    return coalesce_single_chars(TOKEN_RE.findall(chunk), measure, max_width)


def layout_lines(
    segments: Sequence[Segment],
    max_width: float,
    size: float,
    glyphs: GlyphCache,
) -> list[LayoutLine]:
    """Wrap segments into lines no wider than ``max_width`` points.

    Embedded newlines force a break; a newline directly following another
    break yields an empty line which renderers skip.
    """
    lines: list[LayoutLine] = []
    current = LayoutLine()
    line_width = 0.0

    def push(force: bool = False) -> None:
        nonlocal current, line_width
        if current.parts or force:
            lines.append(current)
        current = LayoutLine()
        line_width = 0.0

    for seg in segments or ():
        style = FontStyle.for_flags(seg.bold, seg.italic, seg.mono)

        def measure(text: str, style: FontStyle = style) -> float:
            return sum(f.width for f in glyphs.split_into_fragments(text, style, size))

        for chunk in re.split(r"(\n)", seg.text or ""):
            if chunk == "\n":
                push(force=True)
                continue
            if not chunk:
                continue
            for token in tokenize(chunk, measure, max_width):
                if not current.parts and _is_space(token):
                    continue
                fragments = glyphs.split_into_fragments(token, style, size)
                width = sum(f.width for f in fragments)
                if line_width + width > max_width and current.parts:
                    push()
                    if _is_space(token):
                        continue
                has_emoji = any(f.kind == "emoji" for f in fragments)
                current.parts.append(
                    LinePart(
                        text=token,
                        width=width,
                        bold=seg.bold,
                        italic=seg.italic,
                        mono=seg.mono,
                        link=seg.link,
                        fragments=fragments if has_emoji else None,
                    )
                )
                line_width += width
    push()
    return lines
