"""
State containers for the application.

Plain mutable dataclasses owned by App. They hold no references to the
network or the terminal, which keeps every transition testable on its own.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Mode(str, Enum):
    """Which screen has the keyboard."""

    NORMAL = "normal"
    COMMAND = "command"
    HELP = "help"
    CONFIRM = "confirm"
    WARNING = "warning"
    PROJECTS = "projects"
    ZONES = "zones"
    DESCRIBE = "describe"
    NOTIFICATIONS = "notifications"
    COLUMN_CONFIG = "column_config"


@dataclass
class PaginationState:
    """Cursor bookkeeping for the current listing.

    ``token_stack`` holds the token that produced each earlier page, so
    ``len(token_stack) == current_page - 1`` whenever no fetch is running.
    """

    next_token: Optional[str] = None
    token_stack: list[Optional[str]] = field(default_factory=list)
    current_page: int = 1
    has_more: bool = False

    @property
    def current_token(self) -> Optional[str]:
        """Token that produced the page on screen (None for page 1)."""
        return self.token_stack[-1] if self.token_stack else None

    def reset(self) -> None:
        self.next_token = None
        self.token_stack = []
        self.current_page = 1
        self.has_more = False


@dataclass(frozen=True)
class ParentContext:
    """The record a sub-resource view was opened from."""

    resource_key: str
    item: dict[str, Any]
    display_name: str


@dataclass
class NavigationState:
    current_resource_key: str
    parent: Optional[ParentContext] = None
    stack: list[ParentContext] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return len(self.stack) + (1 if self.parent is not None else 0)


@dataclass
class SelectionSet:
    """Multi-selection as absolute indices into the filtered items."""

    indices: set[int] = field(default_factory=set)
    visual_mode: bool = False

    def toggle(self, index: int) -> None:
        if index in self.indices:
            self.indices.discard(index)
        else:
            self.indices.add(index)

    def clear(self) -> None:
        self.indices = set()
        self.visual_mode = False

    def __contains__(self, index: object) -> bool:
        return index in self.indices

    def __len__(self) -> int:
        return len(self.indices)


@dataclass
class FilterState:
    text: str = ""
    active: bool = False

    def reset(self) -> None:
        self.text = ""
        self.active = False


@dataclass(frozen=True)
class SortState:
    column_index: int
    ascending: bool = True


@dataclass(frozen=True)
class ActionTarget:
    """One resource an action applies to."""

    resource_id: str
    item: dict[str, Any]


@dataclass
class PendingAction:
    """An action waiting for the user's confirmation.

    ``default_yes`` is the focused button; it changes as the user moves
    between Yes and No.
    """

    resource_key: str
    action_key: str
    service: str
    method: str
    targets: tuple[ActionTarget, ...]
    message: str
    destructive: bool = False
    default_yes: bool = False

    @property
    def resource_ids(self) -> tuple[str, ...]:
        return tuple(target.resource_id for target in self.targets)

    @property
    def is_bulk(self) -> bool:
        return len(self.targets) > 1


@dataclass
class ColumnConfigItem:
    header: str
    visible: bool


@dataclass
class ColumnConfigState:
    resource_key: str
    columns: list[ColumnConfigItem]
    selected: int = 0

    @property
    def visible_count(self) -> int:
        return sum(1 for column in self.columns if column.visible)

    def toggle(self) -> bool:
        """Flip the selected column. The last visible column stays visible.

        Returns:
            True if the column changed
        """
        if not self.columns:
            return False
        column = self.columns[self.selected]
        if column.visible and self.visible_count <= 1:
            return False
        column.visible = not column.visible
        return True

    def hidden_headers(self) -> list[str]:
        return [column.header for column in self.columns if not column.visible]


@dataclass
class PickerState:
    """Searchable list used by the project and zone pickers."""

    options: list[str] = field(default_factory=list)
    search_text: str = ""
    filtered: list[str] = field(default_factory=list)
    selected: int = 0

    def open(self, current: Optional[str]) -> None:
        self.search_text = ""
        self.filtered = list(self.options)
        self.selected = self.filtered.index(current) if current in self.filtered else 0

    def apply_filter(self) -> None:
        needle = self.search_text.lower()
        self.filtered = [o for o in self.options if needle in o.lower()]
        if self.selected >= len(self.filtered):
            self.selected = 0

    @property
    def current(self) -> Optional[str]:
        if 0 <= self.selected < len(self.filtered):
            return self.filtered[self.selected]
        return None


@dataclass
class CommandState:
    text: str = ""
    suggestions: list[str] = field(default_factory=list)
    selected: int = 0
    preview: Optional[str] = None


@dataclass
class DescribeState:
    data: Optional[Any] = None
    scroll: int = 0
