"""
Application state machine: modes, navigation, listing and actions.
"""

from tgcp.app.controller import App
from tgcp.app.state import (
    ActionTarget,
    ColumnConfigState,
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

__all__ = [
    "App",
    "ActionTarget",
    "ColumnConfigState",
    "FilterState",
    "Mode",
    "NavigationState",
    "PaginationState",
    "ParentContext",
    "PendingAction",
    "PickerState",
    "SelectionSet",
    "SortState",
    "Viewport",
]
