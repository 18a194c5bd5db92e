"""
Curses rendering.

Layout, top to bottom: header (project, zone, resource), breadcrumb,
column headings, the visible slice of the table, and one status line.
Modal overlays are drawn as centered boxes on top of the table.

The text helpers at the top are pure and do not touch the terminal.
"""

import curses
from typing import Any, Optional, Sequence

from tgcp.app.controller import App
from tgcp.app.state import Mode
from tgcp.resources.models import ColumnDef
from tgcp.resources.values import display_value
from tgcp.ui.theme import Theme

# Header, breadcrumb, column headings and status line
CHROME_LINES = 4
COLUMN_GAP = 1

HELP_LINES = (
    ("j/k, arrows", "Move down / up"),
    ("gg / G", "Top / bottom"),
    ("PgDn/PgUp, Ctrl-D/U", "Scroll a page"),
    ("1-9", "Jump to row"),
    ("Enter, d", "Describe"),
    ("/", "Filter"),
    (":", "Command"),
    ("space", "Mark row and move down"),
    ("v / V", "Visual mode / mark all"),
    ("J / K", "Extend marks down / up"),
    ("Esc", "Clear marks"),
    ("F1-F6 / F12", "Sort by column / clear sort"),
    ("] / [", "Next / previous page"),
    ("R", "Reload"),
    ("b, Backspace", "Back to parent"),
    ("p / z", "Projects / zones"),
    ("n", "Notifications"),
    ("o", "Columns"),
    ("Delete", "Delete resource"),
    ("q", "Quit"),
)

COLOR_NAMES = {
    "black": curses.COLOR_BLACK,
    "red": curses.COLOR_RED,
    "green": curses.COLOR_GREEN,
    "yellow": curses.COLOR_YELLOW,
    "blue": curses.COLOR_BLUE,
    "magenta": curses.COLOR_MAGENTA,
    "cyan": curses.COLOR_CYAN,
    "white": curses.COLOR_WHITE,
}


def fit(text: str, width: int) -> str:
    """Pad or truncate to exactly ``width`` characters."""
    if width <= 0:
        return ""
    if len(text) > width:
        return text[: max(0, width - 1)] + "~" if width > 1 else text[:width]
    return text.ljust(width)


def format_row(item: Any, columns: Sequence[ColumnDef]) -> list[str]:
    return [fit(display_value(item, column.json_path), column.width) for column in columns]


def header_text(app: App) -> str:
    definition = app.current_resource
    title = definition.display_name if definition else app.current_resource_key
    parts = [
        " tgcp",
        f"project: {app.project}",
        f"zone: {app.zone}",
        f"{title} ({len(app.filtered_items)})",
    ]
    if app.pagination.current_page > 1 or app.pagination.has_more:
        more = "+" if app.pagination.has_more else ""
        parts.append(f"page {app.pagination.current_page}{more}")
    if app.readonly:
        parts.append("READ-ONLY")
    return " | ".join(parts)


def breadcrumb_text(app: App) -> str:
    text = " > ".join(app.breadcrumb())
    if app.filter.text or app.filter.active:
        text += f"  /{app.filter.text}"
    if len(app.selection):
        text += f"  [{len(app.selection)} marked]"
    if app.selection.visual_mode:
        text += "  -- VISUAL --"
    return f" {text}"


def status_bar_text(app: App, now: Optional[float] = None) -> str:
    if app.mode == Mode.COMMAND:
        preview = app.command.preview
        hint = f"  ({preview})" if preview and preview != app.command.text else ""
        return f":{app.command.text}{hint}"
    if app.filter.active:
        return f"/{app.filter.text}"
    status = app.status_text(now)
    if status:
        return f" {status}"
    pending = app.tracker.in_progress_count
    suffix = f" | {pending} operation(s) running" if pending else ""
    return f" ? help | : command | q quit{suffix}"


class Renderer:
    """Draws App state onto a curses screen."""

    PAIR_HEADER = 1
    PAIR_SELECTED = 2
    PAIR_MARKED = 3
    PAIR_ERROR = 4
    PAIR_BORDER = 5
    PAIR_ACCENT = 6
    # Column color map pairs start here
    PAIR_STATUS_BASE = 10

    def __init__(self, stdscr) -> None:
        self.stdscr = stdscr
        self._theme: Optional[Theme] = None
        self._status_pairs: dict[str, int] = {}
        self.colors = False
        try:
            curses.start_color()
            curses.use_default_colors()
            self.colors = curses.has_colors()
        except curses.error:
            self.colors = False

    # --- colors ---

    def _apply_theme(self, theme: Theme) -> None:
        if theme is self._theme:
            return
        self._theme = theme
        self._status_pairs = {}
        if not self.colors:
            return

        def color(name: str) -> int:
            return COLOR_NAMES.get(name, -1)

        try:
            curses.init_pair(self.PAIR_HEADER, color(theme.header_fg), color(theme.header_bg))
            curses.init_pair(self.PAIR_SELECTED, color(theme.selection_fg), color(theme.selection_bg))
            curses.init_pair(self.PAIR_MARKED, color(theme.marked), -1)
            curses.init_pair(self.PAIR_ERROR, color(theme.error), -1)
            curses.init_pair(self.PAIR_BORDER, color(theme.border), -1)
            curses.init_pair(self.PAIR_ACCENT, color(theme.accent), -1)
            for offset, name in enumerate(COLOR_NAMES):
                pair = self.PAIR_STATUS_BASE + offset
                curses.init_pair(pair, color(name), -1)
                self._status_pairs[name] = pair
        except curses.error:
            self.colors = False

    def _attr(self, pair: int, fallback: int = curses.A_NORMAL) -> int:
        return curses.color_pair(pair) if self.colors else fallback

    def _status_attr(self, semantic: str) -> int:
        if not self.colors or self._theme is None:
            return curses.A_NORMAL
        pair = self._status_pairs.get(self._theme.status_color(semantic))
        return curses.color_pair(pair) if pair else curses.A_NORMAL

    def _put(self, y: int, x: int, text: str, attr: int = curses.A_NORMAL) -> None:
        height, width = self.stdscr.getmaxyx()
        if y < 0 or y >= height or x >= width:
            return
        try:
            self.stdscr.addnstr(y, x, text, width - x, attr)
        except curses.error:
            # Writing the bottom-right cell raises after the text is drawn
            pass

    # --- frame ---

    def table_height(self) -> int:
        height, _ = self.stdscr.getmaxyx()
        return max(1, height - CHROME_LINES)

    def draw(self, app: App, now: Optional[float] = None) -> None:
        self._apply_theme(app.themes.current)
        self.stdscr.erase()
        height, width = self.stdscr.getmaxyx()

        app.update_viewport(self.table_height())
        app.ensure_visible()

        self._put(0, 0, fit(header_text(app), width), self._attr(self.PAIR_HEADER, curses.A_REVERSE))
        self._put(1, 0, fit(breadcrumb_text(app), width), self._attr(self.PAIR_ACCENT))
        self._draw_table(app, width)

        status = status_bar_text(app, now)
        status_attr = self._attr(self.PAIR_ERROR) if app.status_error else curses.A_NORMAL
        self._put(height - 1, 0, fit(status, width), status_attr)

        self._draw_overlay(app, height, width, now)
        self.stdscr.refresh()

    def _draw_table(self, app: App, width: int) -> None:
        columns = app.visible_columns()
        headings = "".join(
            fit(column.header, column.width) + " " * COLUMN_GAP for column in columns
        )
        self._put(2, 0, fit(f"  {headings}", width), curses.A_BOLD)

        if not app.filtered_items:
            message = "Loading..." if app.loading else "No resources found"
            self._put(3, 2, message, curses.A_DIM)
            return

        for line, index in enumerate(app.visible_range()):
            item = app.filtered_items[index]
            marked = index in app.selection
            prefix = "* " if marked else "  "
            y = 3 + line
            if index == app.selected:
                text = prefix + "".join(
                    cell + " " * COLUMN_GAP for cell in format_row(item, columns)
                )
                self._put(y, 0, fit(text, width), self._attr(self.PAIR_SELECTED, curses.A_REVERSE))
                continue

            base = self._attr(self.PAIR_MARKED) if marked else curses.A_NORMAL
            self._put(y, 0, prefix, base)
            x = len(prefix)
            for column, cell in zip(columns, format_row(item, columns)):
                attr = base
                if column.color_map and not marked:
                    semantic = column.color_map.get(display_value(item, column.json_path))
                    if semantic:
                        attr = self._status_attr(semantic)
                self._put(y, x, cell, attr)
                x += column.width + COLUMN_GAP

    # --- overlays ---

    def _draw_box(
        self,
        title: str,
        lines: Sequence[str],
        selected: Optional[int] = None,
        scroll: int = 0,
        min_width: int = 40,
    ) -> None:
        height, width = self.stdscr.getmaxyx()
        inner = max([min_width, len(title) + 4, *(len(line) + 2 for line in lines)])
        box_w = min(width - 2, inner + 2)
        visible = max(1, min(len(lines), height - 6))
        box_h = visible + 2
        top = max(0, (height - box_h) // 2)
        left = max(0, (width - box_w) // 2)
        border = self._attr(self.PAIR_BORDER)

        heading = (f"- {title} " + "-" * box_w)[: box_w - 2]
        self._put(top, left, f"+{heading}+", border)
        shown = list(lines[scroll : scroll + visible])
        for row in range(visible):
            text = shown[row] if row < len(shown) else ""
            index = scroll + row
            attr = (
                self._attr(self.PAIR_SELECTED, curses.A_REVERSE)
                if selected is not None and index == selected
                else curses.A_NORMAL
            )
            self._put(top + 1 + row, left, "|", border)
            self._put(top + 1 + row, left + 1, fit(f" {text}", box_w - 2), attr)
            self._put(top + 1 + row, left + box_w - 1, "|", border)
        self._put(top + box_h - 1, left, "+" + "-" * (box_w - 2) + "+", border)

    def _draw_overlay(self, app: App, height: int, width: int, now: Optional[float]) -> None:
        mode = app.mode
        if mode == Mode.HELP:
            self._draw_box("Help", [f"{keys:<22} {what}" for keys, what in HELP_LINES])
        elif mode == Mode.CONFIRM and app.pending_action is not None:
            pending = app.pending_action
            yes = "[ Yes ]" if pending.default_yes else "  Yes  "
            no = "  No  " if pending.default_yes else "[ No ]"
            title = "Confirm (destructive)" if pending.destructive else "Confirm"
            self._draw_box(title, [pending.message, "", f"{yes}   {no}", "", "y/n, h/l, Enter, Esc"])
        elif mode == Mode.WARNING and app.warning_message:
            self._draw_box("Warning", [app.warning_message, "", "Enter or Esc to close"])
        elif mode in (Mode.PROJECTS, Mode.ZONES):
            picker = app.projects if mode == Mode.PROJECTS else app.zones
            title = "Projects" if mode == Mode.PROJECTS else "Zones"
            lines = [f"> {picker.search_text}", *picker.filtered]
            visible = max(1, height - 6)
            scroll = max(0, picker.selected + 2 - visible)
            self._draw_box(title, lines, selected=picker.selected + 1, scroll=scroll)
        elif mode == Mode.DESCRIBE:
            lines = app.describe_text().splitlines() or [""]
            scroll = min(app.describe.scroll, max(0, len(lines) - 1))
            self._draw_box("Describe", lines, scroll=scroll, min_width=min(100, width - 6))
        elif mode == Mode.NOTIFICATIONS:
            notifications = app.tracker.notifications
            lines = [
                app.tracker.message_for(n) for n in notifications
            ] or ["No notifications"]
            self._draw_box(
                "Notifications (c clears)",
                lines,
                selected=app.notifications_selected if notifications else None,
            )
        elif mode == Mode.COLUMN_CONFIG and app.column_config is not None:
            state = app.column_config
            lines = [
                f"[{'x' if column.visible else ' '}] {column.header}" for column in state.columns
            ]
            self._draw_box("Columns (space toggles, Enter saves)", lines, selected=state.selected)
