"""
Pagination - the vertical cursor and the single page-break decision point.
"""

import logging

from .canvas import PageCanvas

logger = logging.getLogger(__name__)


class PageCursor:
    """
    Tracks the y position on the current page.

    Pages are append-only: the cursor moves down the current page or resets
    to the top margin of a newly added page. ``ensure_space`` is the only
    place a page break is decided.
    """

    def __init__(self, canvas: PageCanvas, top_margin: float, bottom_margin: float):
        self.canvas = canvas
        self.top = top_margin
        self.bottom = canvas.get_page_height() - bottom_margin
        self.y = top_margin

    @property
    def page(self) -> int:
        return self.canvas.get_page_count()

    @property
    def remaining(self) -> float:
        return self.bottom - self.y

    def fits(self, height: float) -> bool:
        return self.y + height <= self.bottom

    def ensure_space(self, height: float) -> bool:
        """Start a new page unless ``height`` fits below the cursor.

        Returns True when a page was added.
        """
        if self.fits(height):
            return False
        self.canvas.add_page()
        self.y = self.top
        logger.debug("Page break before %.1fpt element; now on page %d", height, self.page)
        return True

    def advance(self, height: float) -> None:
        self.y += height
