"""
Application state machine.

App owns everything the screen shows: the current resource and its
ancestors, the fetched and filtered records, filter/sort/selection,
pagination, the scroll window and the modal overlays. It drives the
fetch engine and the notification tracker and is itself driven by the
key handler, one key at a time.

Navigation and actions are coroutines that await the network. Each fetch
carries a generation number; a result that arrives after a newer fetch
was started is dropped.
"""

import json
import time
from typing import Any, Callable, Optional

from tgcp.app.commands import available_commands
from tgcp.app.listing import filter_items, sort_items
from tgcp.app.state import (
    ActionTarget,
    ColumnConfigItem,
    ColumnConfigState,
    CommandState,
    DescribeState,
    FilterState,
    Mode,
    NavigationState,
    PaginationState,
    ParentContext,
    PendingAction,
    PickerState,
    SelectionSet,
    SortState,
)
from tgcp.app.viewport import Viewport
from tgcp.config.store import ConfigStore
from tgcp.errors import TgcpError
from tgcp.gcp.auth import TokenSource
from tgcp.gcp.client import GcpClientError, format_error
from tgcp.logging import get_logger
from tgcp.notifications import NotificationTracker, OperationPoller, apply_poll_result
from tgcp.resources.backend import ResourceBackend
from tgcp.resources.fetcher import fetch_page
from tgcp.resources.models import ColumnDef, ResourceDef
from tgcp.resources.registry import ResourceRegistry
from tgcp.resources.values import PLACEHOLDER, text_value
from tgcp.shell import ShellRunner
from tgcp.ui.theme import ThemeManager

logger = get_logger(__name__)

DEFAULT_RESOURCE = "compute-instances"
LOADING_TEXT = "Loading..."
DESCRIBE_PAGE_LINES = 30

# Errors that end up on the status line instead of propagating
RECOVERABLE_ERRORS = (GcpClientError, TgcpError)


class App:
    """The interactive session.

    Args:
        registry: Resource definitions
        backend: Executes calls; its ``context`` tracks project and zone
        tracker: Notification history
        store: Persisted user configuration
        credentials: Token source, refreshed on project switches
        shell: Runner for SSH and browser actions
        poller: Operation poller; None disables polling
        readonly: Block every API action
        initial_resource: Resource shown at start
        clock: Monotonic clock
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        backend: ResourceBackend,
        tracker: NotificationTracker,
        store: ConfigStore,
        credentials: Optional[TokenSource] = None,
        shell: Optional[ShellRunner] = None,
        poller: Optional[OperationPoller] = None,
        readonly: bool = False,
        initial_resource: str = DEFAULT_RESOURCE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registry = registry
        self.backend = backend
        self.tracker = tracker
        self.store = store
        self.credentials = credentials
        self.shell = shell or ShellRunner()
        self.poller = poller
        self.readonly = readonly
        self.clock = clock

        self.mode = Mode.NORMAL
        self.nav = NavigationState(initial_resource)
        self.items: list[Any] = []
        self.filtered_items: list[Any] = []
        self.selected = 0
        self.filter = FilterState()
        self.sort: Optional[SortState] = None
        self.selection = SelectionSet()
        self.pagination = PaginationState()
        self.viewport = Viewport()

        self.loading = False
        self.status_error: Optional[str] = None
        self.warning_message: Optional[str] = None
        self.pending_action: Optional[PendingAction] = None
        self.describe = DescribeState()
        self.column_config: Optional[ColumnConfigState] = None
        self.command = CommandState()
        self.projects = PickerState()
        self.zones = PickerState()
        self.notifications_selected = 0
        self.themes = ThemeManager(self.config.effective_theme(self.project))

        self._generation = 0

    # --- accessors ---

    @property
    def config(self):
        return self.store.config

    @property
    def project(self) -> str:
        return self.backend.context.project

    @property
    def zone(self) -> str:
        return self.backend.context.zone

    @property
    def current_resource_key(self) -> str:
        return self.nav.current_resource_key

    @property
    def current_resource(self) -> Optional[ResourceDef]:
        return self.registry.get(self.nav.current_resource_key)

    @property
    def generation(self) -> int:
        return self._generation

    def selected_item(self) -> Optional[dict[str, Any]]:
        if 0 <= self.selected < len(self.filtered_items):
            return self.filtered_items[self.selected]
        return None

    def visible_columns(self) -> list[ColumnDef]:
        definition = self.current_resource
        if definition is None:
            return []
        hidden = self.store.get_hidden_columns(definition.key)
        return [c for c in definition.columns if c.header not in hidden]

    def resource_id(self, item: dict[str, Any]) -> Optional[str]:
        definition = self.current_resource
        if definition is None:
            return None
        return text_value(item, definition.id_field) or text_value(item, definition.name_field)

    def resource_name(self, item: dict[str, Any]) -> Optional[str]:
        definition = self.current_resource
        if definition is None:
            return None
        return text_value(item, definition.name_field) or text_value(item, definition.id_field)

    # --- fetching ---

    def build_filters(self) -> dict[str, list[str]]:
        """Request params implied by the parent record, if any."""
        parent = self.nav.parent
        if parent is None:
            return {}
        parent_def = self.registry.get(parent.resource_key)
        sub = parent_def.sub_resource(self.current_resource_key) if parent_def else None
        if sub is None:
            return {}
        value = text_value(parent.item, sub.parent_id_field)
        if value is None:
            return {}
        filters = {sub.filter_param: [sub.filter_template.format(value=value)]}
        for param, path in sub.extra_params.items():
            extra = text_value(parent.item, path)
            if extra is not None:
                filters[param] = [extra]
        return filters

    async def fetch(self, page_token: Optional[str]) -> None:
        """Load one page of the current resource into the view."""
        key = self.current_resource_key
        if self.current_resource is None:
            self.status_error = f"Unknown resource: {key}"
            return

        self._generation += 1
        generation = self._generation
        self.loading = True
        self.status_error = None

        try:
            result = await fetch_page(self.backend, key, self.build_filters(), page_token)
        except RECOVERABLE_ERRORS as e:
            if generation != self._generation:
                logger.debug(f"Discarding stale error for {key}: {e}")
                return
            logger.warning(f"Fetching {key} failed: {e}")
            self.status_error = format_error(e)
            self.items = []
            self.filtered_items = []
            self.selected = 0
            self.selection.indices = set()
            self.pagination.reset()
            self.loading = False
            return

        if generation != self._generation:
            logger.debug(f"Discarding stale page of {key} (generation {generation})")
            return

        previous = self.selected
        self.items = result.items
        self.apply_filter()
        self.pagination.has_more = result.has_more
        self.pagination.next_token = result.next_token
        self.selected = previous if previous < len(self.filtered_items) else 0
        self.loading = False

    async def refresh_current(self) -> None:
        await self.fetch(self.pagination.current_token)

    async def next_page(self) -> None:
        if not self.pagination.has_more:
            return
        token = self.pagination.next_token
        self.pagination.token_stack.append(token)
        self.pagination.current_page += 1
        await self.fetch(token)

    async def prev_page(self) -> None:
        if self.pagination.current_page <= 1:
            return
        self.pagination.token_stack.pop()
        self.pagination.current_page -= 1
        await self.fetch(self.pagination.current_token)

    async def reload(self) -> None:
        """Back to page 1, unsorted, and fetch again."""
        self.pagination.reset()
        self.sort = None
        await self.refresh_current()

    # --- filter and sort ---

    def apply_filter(self) -> None:
        definition = self.current_resource
        columns = definition.columns if definition is not None else None
        self.filtered_items = filter_items(self.items, self.filter.text, columns)
        if self.filtered_items and self.selected >= len(self.filtered_items):
            self.selected = len(self.filtered_items) - 1
        self.selection.indices = set()
        self.viewport.reset()
        if self.sort is not None:
            self.apply_sort()

    def set_filter_text(self, text: str) -> None:
        self.filter.text = text
        self.apply_filter()

    def clear_filter(self) -> None:
        self.filter.reset()
        self.apply_filter()

    def sort_by_column(self, column_index: int) -> None:
        """Sort on a column; the same column again flips the direction."""
        if self.sort is not None and self.sort.column_index == column_index:
            self.sort = SortState(column_index, not self.sort.ascending)
        else:
            self.sort = SortState(column_index, True)
        self.apply_sort()

    def sort_by_visible_column(self, position: int) -> None:
        """Sort on the n-th displayed column (0 based)."""
        definition = self.current_resource
        visible = self.visible_columns()
        if definition is None or position >= len(visible):
            return
        self.sort_by_column(list(definition.columns).index(visible[position]))

    def apply_sort(self) -> None:
        definition = self.current_resource
        if self.sort is None or definition is None:
            return
        if self.sort.column_index >= len(definition.columns):
            return
        column = definition.columns[self.sort.column_index]
        self.filtered_items = sort_items(
            self.filtered_items, column.json_path, self.sort.ascending
        )
        self.selection.indices = set()

    def clear_sort(self) -> None:
        self.sort = None
        self.apply_filter()

    # --- cursor ---

    def _picker(self) -> Optional[PickerState]:
        if self.mode == Mode.PROJECTS:
            return self.projects
        if self.mode == Mode.ZONES:
            return self.zones
        return None

    def _move(self, index: int) -> None:
        picker = self._picker()
        total = len(picker.filtered) if picker else len(self.filtered_items)
        if total == 0:
            return
        index = max(0, min(index, total - 1))
        if picker:
            picker.selected = index
        else:
            self.selected = index

    def _cursor(self) -> int:
        picker = self._picker()
        return picker.selected if picker else self.selected

    def next(self) -> None:
        self._move(self._cursor() + 1)

    def previous(self) -> None:
        self._move(self._cursor() - 1)

    def go_to_top(self) -> None:
        self._move(0)

    def go_to_bottom(self) -> None:
        picker = self._picker()
        self._move((len(picker.filtered) if picker else len(self.filtered_items)) - 1)

    def page_down(self, page_size: int) -> None:
        self._move(self._cursor() + page_size)

    def page_up(self, page_size: int) -> None:
        self._move(self._cursor() - page_size)

    def jump_to(self, index: int) -> None:
        if 0 <= index < len(self.filtered_items):
            self.selected = index

    # --- scrolling ---

    def update_viewport(self, height: int) -> None:
        self.viewport.update_height(height)

    def ensure_visible(self) -> None:
        self.viewport.ensure_visible(self.selected, len(self.filtered_items))

    def visible_range(self) -> range:
        return self.viewport.visible_range(len(self.filtered_items))

    # --- multi-selection ---

    def toggle_selection(self) -> None:
        if self.filtered_items:
            self.selection.toggle(self.selected)

    def select_all(self) -> None:
        self.selection.indices = set(range(len(self.filtered_items)))

    def clear_selection(self) -> None:
        self.selection.clear()

    def toggle_visual_mode(self) -> None:
        self.selection.visual_mode = not self.selection.visual_mode

    def extend_selection_down(self) -> None:
        if not self.filtered_items:
            return
        self.selection.indices.add(self.selected)
        if self.selected < len(self.filtered_items) - 1:
            self.selected += 1
            self.selection.indices.add(self.selected)

    def extend_selection_up(self) -> None:
        if not self.filtered_items:
            return
        self.selection.indices.add(self.selected)
        if self.selected > 0:
            self.selected -= 1
            self.selection.indices.add(self.selected)

    def selected_targets(self) -> list[ActionTarget]:
        """Targets for the marked rows, in list order."""
        targets = []
        for index in sorted(self.selection.indices):
            if index >= len(self.filtered_items):
                continue
            item = self.filtered_items[index]
            resource_id = self.resource_id(item)
            if resource_id is not None:
                targets.append(ActionTarget(resource_id, item))
        return targets

    # --- navigation ---

    def _reset_view(self) -> None:
        self.selected = 0
        self.filter.reset()
        self.sort = None
        self.selection.clear()
        self.viewport.reset()
        self.pagination.reset()
        self.items = []
        self.filtered_items = []

    async def navigate_to_resource(self, resource_key: str) -> bool:
        """Switch to another resource type, dropping the ancestor chain."""
        if resource_key not in self.registry:
            self.status_error = f"Unknown resource: {resource_key}"
            return False
        self.nav = NavigationState(resource_key)
        self._reset_view()
        self.mode = Mode.NORMAL
        self.store.set_last_resource(resource_key)
        await self.refresh_current()
        return True

    async def navigate_to_sub_resource(self, resource_key: str) -> bool:
        """Drill from the selected record into a related collection."""
        item = self.selected_item()
        definition = self.current_resource
        if item is None or definition is None:
            return False
        if not definition.has_sub_resource(resource_key):
            self.status_error = (
                f"{resource_key} is not a sub-resource of {self.current_resource_key}"
            )
            return False

        display_name = self.resource_name(item) or PLACEHOLDER
        if self.nav.parent is not None:
            self.nav.stack.append(self.nav.parent)
        self.nav.parent = ParentContext(
            resource_key=self.current_resource_key,
            item=item,
            display_name=display_name,
        )
        self.nav.current_resource_key = resource_key
        self._reset_view()
        self.mode = Mode.NORMAL
        await self.refresh_current()
        return True

    async def navigate_back(self) -> bool:
        """Return to the parent collection, one level up."""
        parent = self.nav.parent
        if parent is None:
            return False
        self.nav.parent = self.nav.stack.pop() if self.nav.stack else None
        self.nav.current_resource_key = parent.resource_key
        self._reset_view()
        await self.refresh_current()
        return True

    def breadcrumb(self) -> list[str]:
        path = [f"{ctx.resource_key}:{ctx.display_name}" for ctx in self.nav.stack]
        if self.nav.parent is not None:
            path.append(f"{self.nav.parent.resource_key}:{self.nav.parent.display_name}")
        path.append(self.current_resource_key)
        return path

    # --- project and zone ---

    def _restart_listing(self) -> None:
        # Page tokens belong to the old project or zone
        self.pagination.reset()
        self.selected = 0
        self.selection.clear()
        self.viewport.reset()

    async def switch_zone(self, zone: str) -> None:
        self.backend.context = self.backend.context.with_zone(zone)
        self.store.set_zone(zone)
        self._restart_listing()

    async def switch_project(self, project: str) -> bool:
        if self.credentials is not None:
            try:
                await self.credentials.refresh_token()
            except RECOVERABLE_ERRORS as e:
                self.status_error = format_error(e)
                return False
        self.backend.context = self.backend.context.with_project(project)
        self.store.set_project(project)
        self._restart_listing()
        self.themes.set_theme(self.config.effective_theme(project))
        return True

    async def select_project(self) -> None:
        project = self.projects.current
        if project is not None and await self.switch_project(project):
            await self.refresh_current()
        self.exit_mode()

    async def select_zone(self) -> None:
        zone = self.zones.current
        if zone is not None:
            await self.switch_zone(zone)
            await self.refresh_current()
        self.exit_mode()

    def set_projects(self, projects: list[str]) -> None:
        self.projects.options = list(projects)

    def set_zones(self, zones: list[str]) -> None:
        self.zones.options = list(zones)

    # --- modes ---

    def exit_mode(self) -> None:
        self.mode = Mode.NORMAL
        self.pending_action = None
        self.describe = DescribeState()
        self.warning_message = None
        self.column_config = None

    def enter_help_mode(self) -> None:
        self.mode = Mode.HELP

    def enter_projects_mode(self) -> None:
        self.projects.open(self.project)
        self.mode = Mode.PROJECTS

    def enter_zones_mode(self) -> None:
        self.zones.open(self.zone)
        self.mode = Mode.ZONES

    def enter_notifications_mode(self) -> None:
        self.notifications_selected = 0
        self.mode = Mode.NOTIFICATIONS

    def enter_confirm_mode(self, pending: PendingAction) -> None:
        self.pending_action = pending
        self.mode = Mode.CONFIRM

    def show_warning(self, message: str) -> None:
        self.warning_message = message
        self.mode = Mode.WARNING

    def enter_command_mode(self) -> None:
        self.command = CommandState(suggestions=available_commands(self))
        self.mode = Mode.COMMAND

    # --- describe ---

    async def enter_describe_mode(self) -> None:
        item = self.selected_item()
        definition = self.current_resource
        if item is None or definition is None:
            return
        self.mode = Mode.DESCRIBE
        self.describe = DescribeState(data=item)
        if definition.describe is None:
            return
        try:
            self.describe.data = await self.backend.describe(
                definition, self.resource_id(item), item, self.build_filters()
            )
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Describe failed, showing listed record: {e}")
            self.status_error = format_error(e)

    def describe_text(self) -> str:
        data = self.describe.data if self.describe.data is not None else self.selected_item()
        if data is None:
            return ""
        return json.dumps(data, indent=2, sort_keys=True)

    def describe_line_count(self) -> int:
        text = self.describe_text()
        return len(text.splitlines()) if text else 0

    def scroll_describe(self, delta: int) -> None:
        self.describe.scroll = max(0, self.describe.scroll + delta)

    def describe_scroll_to_bottom(self, visible_lines: int = DESCRIBE_PAGE_LINES) -> None:
        self.describe.scroll = max(0, self.describe_line_count() - visible_lines)

    # --- column visibility ---

    def enter_column_config_mode(self) -> None:
        definition = self.current_resource
        if definition is None:
            return
        hidden = self.store.get_hidden_columns(definition.key)
        self.column_config = ColumnConfigState(
            resource_key=definition.key,
            columns=[
                ColumnConfigItem(column.header, column.header not in hidden)
                for column in definition.columns
            ],
        )
        self.mode = Mode.COLUMN_CONFIG

    def toggle_column_visibility(self) -> None:
        if self.column_config is not None:
            self.column_config.toggle()

    def apply_column_config(self) -> None:
        state = self.column_config
        if state is not None:
            if not self.store.set_hidden_columns(state.resource_key, set(state.hidden_headers())):
                logger.warning("Failed to save column config")
        self.exit_mode()

    def cancel_column_config(self) -> None:
        self.exit_mode()

    # --- notifications ---

    def create_notification(self, method: str, resource_type: str, resource_id: str) -> Optional[str]:
        """New notification id, or None when notifications are disabled."""
        if not self.config.notifications.enabled:
            return None
        return self.tracker.create(method, resource_type, resource_id)

    def mark_notification_in_progress(
        self, notification_id: Optional[str], operation_url: Optional[str]
    ) -> None:
        if notification_id is not None:
            self.tracker.mark_in_progress(notification_id, operation_url)

    def mark_notification_success(self, notification_id: Optional[str]) -> None:
        if notification_id is not None:
            self.tracker.mark_success(notification_id)

    def mark_notification_error(self, notification_id: Optional[str], error: str) -> None:
        if notification_id is not None:
            self.tracker.mark_error(notification_id, error)

    def clear_notifications(self) -> None:
        self.tracker.clear()
        self.notifications_selected = 0

    def poll_tick(self, now: Optional[float] = None) -> int:
        """Start polls for due operations without waiting on them."""
        if self.poller is None or not self.config.notifications.enabled:
            return 0
        return self.poller.tick(now)

    async def apply_poll_results(self) -> int:
        """Apply queued poll results; refresh once if anything completed."""
        if self.poller is None:
            return 0
        results = self.poller.drain()
        refresh = False
        for result in results:
            refresh = apply_poll_result(self.tracker, result) or refresh
        if refresh:
            await self.refresh_current()
        return len(results)

    # --- status line ---

    def status_text(self, now: Optional[float] = None) -> Optional[str]:
        """Error, then toast, then loading indicator."""
        if self.status_error:
            return self.status_error
        toast = self.tracker.toast_text(now)
        if toast:
            return toast
        if self.loading:
            return LOADING_TEXT
        return None
