"""
Running resource actions.

An API action on one record either waits in Confirm mode or runs at once;
both end in execute_target(), which creates the notification, calls the
backend and marks the outcome. Bulk actions always confirm and then run
execute_target() once per selected record, sequentially.

Shell actions (SSH, console) run in the foreground terminal and never
create notifications. Read-only mode blocks API actions only.
"""

from typing import TYPE_CHECKING, Optional

from tgcp.app.state import ActionTarget, PendingAction
from tgcp.errors import TgcpError
from tgcp.gcp.client import GcpClientError, format_error
from tgcp.gcp.operations import extract_operation_url
from tgcp.logging import get_logger
from tgcp.resources.models import ActionDef, ApiAction, ResourceDef, ShellAction
from tgcp.resources.values import text_value
from tgcp.shell import Failed, SpawnError, SshOptions, Success, console_url

if TYPE_CHECKING:
    from tgcp.app.controller import App

logger = get_logger(__name__)

READONLY_WARNING = "Read-only mode: actions are disabled"


def confirm_message(action: ActionDef, name: str) -> str:
    message = action.confirm.message if action.confirm and action.confirm.message else None
    return f"{message or action.display_name} '{name}'?"


def bulk_message(action: ActionDef, count: int) -> str:
    noun = "resource" if count == 1 else "resources"
    return f"{action.display_name} {count} {noun}?"


async def request_action(app: "App", action: ActionDef) -> None:
    """Entry point for an action shortcut in Normal mode."""
    definition = app.current_resource
    if definition is None:
        return
    if app.readonly and isinstance(action, ApiAction):
        app.show_warning(READONLY_WARNING)
        return

    if isinstance(action, ApiAction):
        targets = app.selected_targets()
        if len(targets) > 1:
            app.enter_confirm_mode(
                PendingAction(
                    resource_key=definition.key,
                    action_key=action.key,
                    service=definition.service,
                    method=action.method,
                    targets=tuple(targets),
                    message=bulk_message(action, len(targets)),
                    destructive=bool(action.confirm and action.confirm.destructive),
                    default_yes=False,
                )
            )
            return

    item = app.selected_item()
    if item is None:
        return
    resource_id = app.resource_id(item)
    if resource_id is None:
        logger.warning(f"No identifier for selected {definition.key} record")
        return
    target = ActionTarget(resource_id, item)

    if isinstance(action, ShellAction):
        run_shell_action(app, action, target)
        return

    if action.requires_confirm:
        app.enter_confirm_mode(
            PendingAction(
                resource_key=definition.key,
                action_key=action.key,
                service=definition.service,
                method=action.method,
                targets=(target,),
                message=confirm_message(action, app.resource_name(item) or resource_id),
                destructive=action.confirm.destructive,
                default_yes=action.confirm.default_yes,
            )
        )
        return

    await run_single(app, definition, action, target)


async def confirm_pending(app: "App", accepted: bool) -> None:
    """Leave Confirm mode, running the pending action if accepted."""
    pending = app.pending_action
    app.exit_mode()
    if pending is None or not accepted:
        return

    definition = app.registry.get(pending.resource_key)
    action = definition.action(pending.action_key) if definition else None
    if not isinstance(action, ApiAction):
        logger.error(f"Pending action {pending.resource_key}/{pending.action_key} vanished")
        return

    if pending.is_bulk:
        await run_bulk(app, definition, action, pending.targets)
    else:
        await run_single(app, definition, action, pending.targets[0])


async def execute_target(
    app: "App", definition: ResourceDef, action: ApiAction, target: ActionTarget
) -> Optional[str]:
    """Run one action against one record.

    Returns:
        None on success, otherwise the formatted error
    """
    notification_id = app.create_notification(
        action.method, definition.service, target.resource_id
    )
    try:
        response = await app.backend.execute_action(
            definition, action, target.resource_id, target.item, app.build_filters()
        )
    except (GcpClientError, TgcpError) as e:
        message = format_error(e)
        logger.warning(f"{action.method} on {target.resource_id} failed: {message}")
        app.mark_notification_error(notification_id, message)
        return message

    operation_url = extract_operation_url(response)
    app.mark_notification_in_progress(notification_id, operation_url)
    if operation_url is None:
        app.mark_notification_success(notification_id)
    return None


async def run_single(
    app: "App", definition: ResourceDef, action: ApiAction, target: ActionTarget
) -> bool:
    error = await execute_target(app, definition, action, target)
    if error is not None:
        app.status_error = error
        return False
    await app.refresh_current()
    return True


async def run_bulk(
    app: "App",
    definition: ResourceDef,
    action: ApiAction,
    targets: tuple[ActionTarget, ...],
) -> tuple[int, int]:
    """Run an action on every target in order; partial success is expected.

    Returns:
        (succeeded, failed)
    """
    succeeded = failed = 0
    for target in targets:
        if await execute_target(app, definition, action, target) is None:
            succeeded += 1
        else:
            failed += 1

    total = len(targets)
    logger.info(f"Bulk {action.method}: {succeeded} succeeded, {failed} failed of {total}")
    app.clear_selection()
    await app.refresh_current()
    # Set after the refresh, which clears the status line
    app.status_error = f"Bulk action: {succeeded} succeeded, {failed} failed of {total}"
    return succeeded, failed


def _target_zone(app: "App", item: dict) -> str:
    return text_value(item, "zone_short") or app.zone


def run_shell_action(app: "App", action: ShellAction, target: ActionTarget) -> None:
    if action.command in ("ssh", "ssh_iap"):
        _ssh(app, target, force_iap=action.command == "ssh_iap")
    elif action.command == "open_console":
        _open_console(app, target)
    else:
        app.status_error = f"Unknown shell action: {action.command}"


def _ssh(app: "App", target: ActionTarget, force_iap: bool) -> None:
    settings = app.config.ssh
    options = SshOptions(
        instance=target.resource_id,
        zone=_target_zone(app, target.item),
        project=app.project,
        use_iap=force_iap or settings.use_iap,
        extra_args=list(settings.extra_args),
    )
    label = " (IAP)" if options.use_iap else ""
    outcome = app.shell.ssh(options)
    if isinstance(outcome, Success):
        logger.info(f"SSH{label} session to {target.resource_id} completed")
    elif isinstance(outcome, Failed):
        app.status_error = f"SSH{label} exited with code {outcome.code}"
    elif isinstance(outcome, SpawnError):
        app.status_error = outcome.message


def _open_console(app: "App", target: ActionTarget) -> None:
    url = console_url(
        app.current_resource_key,
        target.resource_id,
        app.project,
        _target_zone(app, target.item),
    )
    outcome = app.shell.open_browser(url)
    if isinstance(outcome, Success):
        logger.info(f"Opened console URL: {url}")
    elif isinstance(outcome, Failed):
        app.status_error = f"Failed to open browser: exited with code {outcome.code}"
    elif isinstance(outcome, SpawnError):
        app.status_error = f"Failed to open browser: {outcome.message}"
