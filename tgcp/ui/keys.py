"""
Key bindings.

KeyHandler maps one key name to one App transition. Key names are
produced by the terminal loop: printable characters stand for
themselves, everything else is a lower-case name such as "up", "enter",
"esc", "f1" or "ctrl-d".
"""

import time
from typing import Callable, Optional

from tgcp.app import actions, commands
from tgcp.app.controller import App
from tgcp.app.state import Mode
from tgcp.logging import get_logger

logger = get_logger(__name__)

PAGE_SCROLL_SIZE = 10
DOUBLE_KEY_TIMEOUT = 1.0
SORT_KEYS = {f"f{n}": n - 1 for n in range(1, 7)}


def is_printable(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


class KeyHandler:
    """Dispatches keys to the App according to its mode."""

    def __init__(self, app: App, clock: Callable[[], float] = time.monotonic) -> None:
        self.app = app
        self.clock = clock
        self._last_g: Optional[float] = None

    async def handle(self, key: str) -> bool:
        """Apply one key.

        Returns:
            True if the application should quit
        """
        if key == "ctrl-c":
            return True
        handler = {
            Mode.NORMAL: self._normal,
            Mode.COMMAND: self._command,
            Mode.HELP: self._help,
            Mode.CONFIRM: self._confirm,
            Mode.WARNING: self._warning,
            Mode.PROJECTS: self._picker,
            Mode.ZONES: self._picker,
            Mode.DESCRIBE: self._describe,
            Mode.NOTIFICATIONS: self._notifications,
            Mode.COLUMN_CONFIG: self._column_config,
        }[self.app.mode]
        return bool(await handler(key))

    # --- normal mode ---

    async def _filter_input(self, key: str) -> None:
        app = self.app
        if key == "esc":
            app.clear_filter()
        elif key == "enter":
            app.filter.active = False
        elif key == "backspace":
            app.set_filter_text(app.filter.text[:-1])
        elif is_printable(key):
            app.set_filter_text(app.filter.text + key)

    async def _normal(self, key: str) -> bool:
        app = self.app
        if app.filter.active:
            await self._filter_input(key)
            return False

        if key == "g":
            now = self.clock()
            if self._last_g is not None and now - self._last_g < DOUBLE_KEY_TIMEOUT:
                app.go_to_top()
                self._last_g = None
            else:
                self._last_g = now
            return False
        self._last_g = None

        if key == "q":
            return True

        # Multi-selection
        if key == " ":
            app.toggle_selection()
            app.next()
        elif key == "v":
            app.toggle_visual_mode()
        elif key == "V":
            app.select_all()
        elif key == "esc":
            if len(app.selection) or app.selection.visual_mode:
                app.clear_selection()
        elif key == "J":
            app.extend_selection_down()
        elif key == "K":
            app.extend_selection_up()

        # Cursor
        elif key in ("j", "down"):
            app.next()
        elif key in ("k", "up"):
            app.previous()
        elif key == "home":
            app.go_to_top()
        elif key in ("end", "G"):
            app.go_to_bottom()
        elif key in ("pgdn", "ctrl-d"):
            app.page_down(PAGE_SCROLL_SIZE)
        elif key in ("pgup", "ctrl-u"):
            app.page_up(PAGE_SCROLL_SIZE)
        elif len(key) == 1 and key in "123456789":
            app.jump_to(int(key) - 1)

        # Sorting
        elif key in SORT_KEYS:
            app.sort_by_visible_column(SORT_KEYS[key])
        elif key == "f12":
            app.clear_sort()

        # Pagination
        elif key == "]":
            await app.next_page()
        elif key == "[":
            await app.prev_page()
        elif key == "R":
            await app.reload()

        # Modes
        elif key in ("enter", "d"):
            await app.enter_describe_mode()
        elif key == "/":
            app.filter.active = True
        elif key == ":":
            app.enter_command_mode()
        elif key == "?":
            app.enter_help_mode()
        elif key in ("backspace", "left", "b"):
            await app.navigate_back()
        elif key == "p":
            app.enter_projects_mode()
        elif key == "z":
            app.enter_zones_mode()
        elif key == "n":
            app.enter_notifications_mode()
        elif key == "o":
            app.enter_column_config_mode()
        elif key == "delete":
            definition = app.current_resource
            action = definition.delete_action() if definition else None
            if action is not None:
                await actions.request_action(app, action)
        elif is_printable(key):
            await self._shortcut(key)
        return False

    async def _shortcut(self, key: str) -> None:
        """Sub-resource shortcuts first, then action shortcuts."""
        app = self.app
        definition = app.current_resource
        if definition is None:
            return
        for sub in definition.sub_resources:
            if sub.shortcut == key and app.selected_item() is not None:
                await app.navigate_to_sub_resource(sub.resource_key)
                return
        for action in definition.actions:
            if action.shortcut == key:
                await actions.request_action(app, action)
                return

    # --- overlays ---

    async def _command(self, key: str) -> bool:
        app = self.app
        if key == "esc":
            app.exit_mode()
        elif key == "enter":
            # The command may open another mode, so leave this one first
            app.exit_mode()
            return await commands.execute_command(app)
        elif key == "backspace":
            commands.backspace(app)
        elif key in ("tab", "right"):
            commands.apply_suggestion(app)
        elif key == "down":
            commands.next_suggestion(app)
        elif key == "up":
            commands.prev_suggestion(app)
        elif is_printable(key):
            commands.type_text(app, key)
        return False

    async def _help(self, key: str) -> bool:
        if key in ("esc", "q", "?", "enter"):
            self.app.exit_mode()
        return False

    async def _confirm(self, key: str) -> bool:
        app = self.app
        pending = app.pending_action
        if key in ("esc", "N", "n"):
            await actions.confirm_pending(app, accepted=False)
        elif key in ("left", "h") and pending is not None:
            pending.default_yes = True
        elif key in ("right", "l") and pending is not None:
            pending.default_yes = False
        elif key in ("y", "Y"):
            await actions.confirm_pending(app, accepted=True)
        elif key == "enter":
            await actions.confirm_pending(app, accepted=bool(pending and pending.default_yes))
        return False

    async def _warning(self, key: str) -> bool:
        if key in ("esc", "enter"):
            self.app.exit_mode()
        return False

    async def _picker(self, key: str) -> bool:
        app = self.app
        picker = app.projects if app.mode == Mode.PROJECTS else app.zones
        if key == "esc":
            app.exit_mode()
        elif key == "enter":
            if app.mode == Mode.PROJECTS:
                await app.select_project()
            else:
                await app.select_zone()
        elif key in ("j", "down"):
            app.next()
        elif key in ("k", "up"):
            app.previous()
        elif key == "home":
            app.go_to_top()
        elif key in ("end", "G"):
            app.go_to_bottom()
        elif key == "pgdn":
            app.page_down(PAGE_SCROLL_SIZE)
        elif key == "pgup":
            app.page_up(PAGE_SCROLL_SIZE)
        elif key == "backspace":
            picker.search_text = picker.search_text[:-1]
            picker.apply_filter()
        elif is_printable(key):
            picker.search_text += key
            picker.apply_filter()
        return False

    async def _describe(self, key: str) -> bool:
        app = self.app
        if key in ("esc", "q", "backspace", "d"):
            app.exit_mode()
        elif key in ("j", "down"):
            app.scroll_describe(1)
        elif key in ("k", "up"):
            app.scroll_describe(-1)
        elif key in ("pgdn", "ctrl-d"):
            app.scroll_describe(PAGE_SCROLL_SIZE)
        elif key in ("pgup", "ctrl-u"):
            app.scroll_describe(-PAGE_SCROLL_SIZE)
        elif key in ("g", "home"):
            app.describe.scroll = 0
        elif key in ("G", "end"):
            app.describe_scroll_to_bottom()
        return False

    async def _notifications(self, key: str) -> bool:
        app = self.app
        count = len(app.tracker)
        if key in ("esc", "q", "n"):
            app.exit_mode()
        elif key in ("j", "down"):
            if app.notifications_selected < count - 1:
                app.notifications_selected += 1
        elif key in ("k", "up"):
            app.notifications_selected = max(0, app.notifications_selected - 1)
        elif key in ("g", "home"):
            app.notifications_selected = 0
        elif key in ("G", "end"):
            app.notifications_selected = max(0, count - 1)
        elif key == "c":
            app.clear_notifications()
        return False

    async def _column_config(self, key: str) -> bool:
        app = self.app
        state = app.column_config
        if key in ("esc", "q"):
            app.cancel_column_config()
        elif key == "enter":
            app.apply_column_config()
        elif state is None:
            return False
        elif key in ("j", "down"):
            state.selected = min(state.selected + 1, max(0, len(state.columns) - 1))
        elif key in ("k", "up"):
            state.selected = max(0, state.selected - 1)
        elif key == " ":
            app.toggle_column_visibility()
        elif key in ("g", "home"):
            state.selected = 0
        elif key in ("G", "end"):
            state.selected = max(0, len(state.columns) - 1)
        return False
