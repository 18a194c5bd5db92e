"""Virtual scrolling: which slice of the list is on screen."""

from dataclasses import dataclass

SCROLL_MARGIN = 2


@dataclass
class Viewport:
    """Scroll window over the filtered items.

    The renderer reports ``height`` every frame; only
    ``visible_range(total)`` rows are ever drawn.
    """

    height: int = 20
    scroll_offset: int = 0

    def update_height(self, height: int) -> None:
        self.height = max(1, height)

    def ensure_visible(self, selected: int, total: int, margin: int = SCROLL_MARGIN) -> None:
        """Scroll as little as possible to keep ``selected`` away from the edges."""
        if total <= 0:
            self.scroll_offset = 0
            return
        # Short viewports cannot honour the full margin on both sides
        margin = max(0, min(margin, (self.height - 1) // 2))

        if selected < self.scroll_offset + margin:
            self.scroll_offset = max(0, selected - margin)
        elif selected >= self.scroll_offset + self.height - margin:
            self.scroll_offset = max(0, selected - (self.height - margin - 1))

        max_offset = max(0, total - self.height)
        self.scroll_offset = max(0, min(self.scroll_offset, max_offset))

    def visible_range(self, total: int) -> range:
        return range(self.scroll_offset, min(self.scroll_offset + self.height, total))

    def reset(self) -> None:
        self.scroll_offset = 0
