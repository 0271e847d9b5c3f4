from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from ..config import Theme
from ..dispatcher import COMPATIBILITY, allowed_actions
from ..errors import FetchError, UnknownResource
from ..logger import logger
from ..schemas.cloudpc import Action, ActionRequest, CloudPCResource
from ..session import Session
from .actions import report_result
from .inventory import build_table

ACTION_ORDER = list(Action)


def _details_table(resource: CloudPCResource, theme: Theme) -> Table:
    table = Table(title=resource.label, title_style=theme.title, show_header=False)
    table.add_column("Field", style=theme.muted)
    table.add_column("Value")
    table.add_row("Id", resource.id)
    table.add_row("User", resource.user_principal_name or "-")
    table.add_row("Device", resource.managed_device_name or "-")
    table.add_row("Type", resource.provisioning_type.value)
    table.add_row("Service plan", resource.service_plan_name or "-")
    table.add_row("Status", resource.status)
    table.add_row("Power", resource.power_state.value)
    table.add_row(
        "Last modified",
        resource.last_modified.strftime("%Y-%m-%d %H:%M") if resource.last_modified else "-",
    )
    table.add_row(
        "Grace period end",
        resource.grace_period_end.strftime("%Y-%m-%d %H:%M")
        if resource.grace_period_end
        else "-",
    )
    return table


def _action_menu(resource: CloudPCResource, theme: Theme) -> Table:
    available = set(allowed_actions(resource))
    table = Table(show_header=False, box=None)
    table.add_column("#", justify="right")
    table.add_column("Action")
    for idx, action in enumerate(ACTION_ORDER, start=1):
        if action in available:
            table.add_row(str(idx), action.value)
        else:
            table.add_row(
                f"[{theme.muted}]{idx}[/{theme.muted}]",
                f"[{theme.muted}]{action.value} (unavailable)[/{theme.muted}]",
            )
    return table


def _confirm_destructive(resource: CloudPCResource, console: Console, theme: Theme) -> bool:
    console.print(
        f"[{theme.warning}]Reprovisioning resets {resource.label} to its provisioned "
        f"image. All user data on it is lost.[/{theme.warning}]"
    )
    typed = Prompt.ask(
        f"Type [bold]{resource.label}[/bold] to confirm", console=console, default=""
    )
    return typed.strip() == resource.label


def _parse_index(choice: str, upper: int) -> int | None:
    # isdigit() also accepts superscripts that int() rejects
    if not choice.isdecimal():
        return None
    idx = int(choice)
    if 1 <= idx <= upper:
        return idx - 1
    return None


def _handle_resource(session: Session, resource: CloudPCResource, console: Console) -> None:
    theme = session.settings.theme
    console.print(_details_table(resource, theme))
    console.print(_action_menu(resource, theme))

    choice = Prompt.ask("Choose an action number, or b to go back", console=console, default="b")
    if choice.strip().lower() == "b":
        return

    idx = _parse_index(choice.strip(), len(ACTION_ORDER))
    if idx is None:
        console.print(f"[{theme.error}]Invalid choice: {choice}[/{theme.error}]")
        return
    action = ACTION_ORDER[idx]

    confirmed = False
    if COMPATIBILITY[action].requires_confirmation and action in allowed_actions(resource):
        confirmed = _confirm_destructive(resource, console, theme)
        if not confirmed:
            console.print(f"[{theme.warning}]Aborted.[/{theme.warning}]")
            return

    result = session.dispatcher.dispatch(
        ActionRequest(resource_id=resource.id, action=action, confirmed=confirmed)
    )
    report_result(result, action, resource.label, console)

    if result.accepted and action != Action.REFRESH:
        try:
            latest = session.registry.reload(resource.id)
        except (UnknownResource, FetchError) as e:
            logger.warning(f"Could not re-fetch {resource.id}: {e}")
            return
        console.print(_details_table(latest, theme))
    elif result.resource is not None:
        console.print(_details_table(result.resource, theme))


def run_menu(session: Session, console: Console) -> None:
    """Interactive loop: list, pick a Cloud PC, pick an action."""
    theme = session.settings.theme
    needs_refresh = True

    while True:
        if needs_refresh:
            try:
                session.registry.refresh()
            except FetchError as e:
                console.print(f"[{theme.error}]Could not list Cloud PCs:[/{theme.error}] {e}")
                if not session.registry.resources:
                    return
            needs_refresh = False

        resources = list(session.registry.resources)
        if resources:
            console.print(build_table(resources, theme))
        else:
            console.print(f"[{theme.warning}]No Cloud PCs found.[/{theme.warning}]")

        choice = Prompt.ask(
            "Select a Cloud PC number, r to refresh, q to quit", console=console, default="q"
        ).strip().lower()

        if choice == "q":
            return
        if choice == "r":
            needs_refresh = True
            continue

        idx = _parse_index(choice, len(resources))
        if idx is None:
            console.print(f"[{theme.error}]Invalid choice: {choice}[/{theme.error}]")
            continue

        _handle_resource(session, resources[idx], console)
