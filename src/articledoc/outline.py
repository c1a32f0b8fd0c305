"""
Outline Builder - turn rendered headings into a PDF bookmark tree.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .canvas import DestinationError, PageCanvas

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutlineHeading:
    """A heading as it was placed: page and top-origin y at draw time."""

    id: int
    text: str
    level: int
    page: int
    y: float

    @property
    def key(self) -> str:
        return f"heading-{self.id}"


@dataclass
class OutlineNode:
    heading: OutlineHeading
    destination_y: float  # bottom-origin, as PDF destinations expect
    children: list["OutlineNode"] = field(default_factory=list)
    parent: Optional["OutlineNode"] = None

    @property
    def title(self) -> str:
        return self.heading.text

    @property
    def level(self) -> int:
        return self.heading.level


def build_outline(headings: Sequence[OutlineHeading], page_height: float) -> list[OutlineNode]:
    """
    Nest headings by level.

    A heading closes every open heading of the same or deeper level and
    becomes a child of the nearest shallower one, or a new root. A deep
    heading seen before any shallower one stays a root; nothing is
    re-parented afterwards.
    """
    roots: list[OutlineNode] = []
    stack: list[OutlineNode] = []
    for heading in headings:
        node = OutlineNode(heading=heading, destination_y=page_height - heading.y)
        while stack and stack[-1].level >= heading.level:
            stack.pop()
        if stack:
            node.parent = stack[-1]
            stack[-1].children.append(node)
        else:
            roots.append(node)
        stack.append(node)
    return roots


def attach(tree: Sequence[OutlineNode], canvas: PageCanvas) -> int:
    """Emit the tree as bookmarks. Returns the number of entries added.

    A node whose destination cannot be resolved is skipped; its children
    move up to the skipped node's depth.
    """
    added = 0

    def emit(nodes: Sequence[OutlineNode], depth: int) -> None:
        nonlocal added
        for node in nodes:
            try:
                canvas.add_outline_node(node.title, node.heading.key, depth, page=node.heading.page)
            except DestinationError as e:
                logger.warning("Skipping outline entry %r: %s", node.title, e)
                emit(node.children, depth)
                continue
            added += 1
            emit(node.children, depth + 1)

    emit(tree, 0)
    if added:
        canvas.show_outline()
    return added


@dataclass(frozen=True)
class TocEntry:
    text: str
    level: int
    page: int


def build_toc(headings: Sequence[OutlineHeading], max_level: int = 3) -> list[TocEntry]:
    """Headings at or above ``max_level`` depth, in render order."""
    if max_level < 1:
        max_level = 3
    return [TocEntry(h.text, h.level, h.page) for h in headings if h.level <= max_level]
