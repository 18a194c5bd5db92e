"""
The ':' command line.

Suggestions are every resource key, the built-in commands, one entry per
theme and the user's aliases, filtered by substring as the user types.
Enter runs the highlighted suggestion when it contains the typed text,
otherwise the text itself.
"""

from typing import TYPE_CHECKING, Optional

from tgcp.logging import get_logger
from tgcp.ui.theme import list_available

if TYPE_CHECKING:
    from tgcp.app.controller import App

logger = get_logger(__name__)

BUILTIN_COMMANDS = ("projects", "zones", "notifications", "notifications clear", "theme")


def available_commands(app: "App") -> list[str]:
    commands = list(app.registry)
    commands.extend(BUILTIN_COMMANDS)
    commands.extend(f"theme {name}" for name in list_available())
    for alias in app.config.aliases:
        if alias not in commands:
            commands.append(alias)
    return sorted(commands)


def _update_preview(app: "App") -> None:
    state = app.command
    state.preview = state.suggestions[state.selected] if state.suggestions else None


def update_suggestions(app: "App") -> None:
    state = app.command
    needle = state.text.lower()
    commands = available_commands(app)
    state.suggestions = [c for c in commands if needle in c] if needle else commands
    if state.selected >= len(state.suggestions):
        state.selected = 0
    _update_preview(app)


def next_suggestion(app: "App") -> None:
    state = app.command
    if state.suggestions:
        state.selected = (state.selected + 1) % len(state.suggestions)
        _update_preview(app)


def prev_suggestion(app: "App") -> None:
    state = app.command
    if state.suggestions:
        state.selected = (state.selected - 1) % len(state.suggestions)
        _update_preview(app)


def apply_suggestion(app: "App") -> None:
    if app.command.preview is not None:
        app.command.text = app.command.preview
        update_suggestions(app)


def type_text(app: "App", text: str) -> None:
    app.command.text += text
    update_suggestions(app)


def backspace(app: "App") -> None:
    app.command.text = app.command.text[:-1]
    update_suggestions(app)


def resolve_command_text(text: str, preview: Optional[str]) -> str:
    """The command Enter will run."""
    if not text:
        return preview or ""
    if preview is not None and text in preview:
        return preview
    return text


async def execute_command(app: "App") -> bool:
    """Run the command line.

    Returns:
        True if the application should quit
    """
    command_text = resolve_command_text(app.command.text, app.command.preview)
    parts = command_text.split()
    if not parts:
        return False

    command, args = parts[0], parts[1:]
    logger.debug(f"Executing command: {command_text}")

    if command in ("q", "quit"):
        return True
    if command == "back":
        await app.navigate_back()
    elif command == "projects":
        app.enter_projects_mode()
    elif command == "zones":
        app.enter_zones_mode()
    elif command == "notifications":
        if args and args[0] == "clear":
            app.clear_notifications()
        else:
            app.enter_notifications_mode()
    elif command == "zone" and args:
        await app.switch_zone(args[0])
        await app.refresh_current()
    elif command == "project" and args:
        if await app.switch_project(args[0]):
            await app.refresh_current()
    elif command == "theme":
        _theme_command(app, args)
    elif command == "alias" and len(args) >= 2:
        _alias_command(app, args[0], args[1])
    else:
        await _navigate_command(app, command)
    return False


def _theme_command(app: "App", args: list[str]) -> None:
    if not args:
        app.status_error = f"Available themes: {', '.join(list_available())}"
        return
    name = args[0]
    if app.themes.set_theme(name):
        if not app.store.set_theme(name):
            logger.warning("Failed to save theme to config")
    else:
        app.status_error = f"Unknown theme: {name}"


def _alias_command(app: "App", alias: str, resource_key: str) -> None:
    if resource_key not in app.registry:
        app.status_error = f"Unknown resource: {resource_key}"
        return
    if not app.store.add_alias(alias, resource_key):
        app.status_error = f"Failed to save alias: {alias}"


async def _navigate_command(app: "App", command: str) -> None:
    resource_key = app.config.resolve_alias(command) or command
    if resource_key not in app.registry:
        app.status_error = f"Unknown command: {command}"
        return
    definition = app.current_resource
    if (
        definition is not None
        and definition.has_sub_resource(resource_key)
        and app.selected_item() is not None
    ):
        await app.navigate_to_sub_resource(resource_key)
    else:
        await app.navigate_to_resource(resource_key)
