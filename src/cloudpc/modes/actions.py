import argparse
from concurrent.futures import ThreadPoolExecutor, as_completed

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from ..dispatcher import COMPATIBILITY, allowed_actions
from ..errors import FetchError, UnknownResource
from ..logger import logger
from ..schemas.cloudpc import Action, ActionRequest, ActionResult, CloudPCResource
from ..session import Session
from .inventory import build_table, filter_resources


def _confirm(action: Action, targets: list[CloudPCResource], assume_yes: bool) -> bool:
    if assume_yes:
        return True
    names = ", ".join(t.label for t in targets[:5])
    if len(targets) > 5:
        names += f" and {len(targets) - 5} more"
    warning = ""
    if COMPATIBILITY[action].requires_confirmation:
        warning = " This resets the Cloud PC to its provisioned image and cannot be undone."
    return Confirm.ask(f"{action.value} {names}?{warning}", default=False)


def report_result(
    result: ActionResult, action: Action, resource_id: str, console: Console
) -> None:
    if result.accepted and action == Action.REFRESH:
        console.print(f"[green]Refreshed {resource_id}.[/green]")
        return
    if result.accepted:
        console.print(
            f"[green]{action.value} accepted for {resource_id}.[/green] "
            "[dim]The change completes asynchronously.[/dim]"
        )
        return
    console.print(f"[bold red]{action.value} failed:[/bold red] {result.reason}")
    if result.error is not None and result.error.__cause__ is not None:
        logger.debug(f"Cause for {resource_id}: {result.error.__cause__!r}")


def _show_latest(session: Session, resource_id: str, console: Console) -> None:
    try:
        resource = session.registry.reload(resource_id)
    except (UnknownResource, FetchError) as e:
        logger.warning(f"Could not re-fetch {resource_id}: {e}")
        return
    console.print(build_table([resource], session.settings.theme, title="Current state"))


def run_single_action(
    args: argparse.Namespace, session: Session, log_console: Console, out_console: Console
) -> int:
    """Dispatches one action against one Cloud PC id."""
    action: Action = args.action
    session.registry.refresh()

    resource = session.registry.get(args.id)
    confirmed = False
    if resource is not None and COMPATIBILITY[action].requires_confirmation:
        confirmed = _confirm(action, [resource], args.yes)
        if not confirmed:
            log_console.print("[yellow]Aborted.[/yellow]")
            return 1

    result = session.dispatcher.dispatch(
        ActionRequest(resource_id=args.id, action=action, confirmed=confirmed)
    )
    report_result(result, action, args.id, out_console)

    if result.accepted and action != Action.REFRESH:
        _show_latest(session, args.id, out_console)
    elif result.accepted and result.resource is not None:
        out_console.print(
            build_table([result.resource], session.settings.theme, title="Current state")
        )
    return 0 if result.accepted else 1


def run_bulk_action(
    args: argparse.Namespace, session: Session, log_console: Console, out_console: Console
) -> int:
    """Dispatches one action against every eligible Cloud PC in parallel."""
    action: Action = args.action
    resources = filter_resources(session.registry.refresh(), args.filter)
    targets = [r for r in resources if action in allowed_actions(r)]

    skipped = len(resources) - len(targets)
    if skipped:
        log_console.print(
            f"[dim]Skipping {skipped} Cloud PCs where {action.value} "
            "is unsupported or would be a no-op.[/dim]"
        )
    if not targets:
        out_console.print(f"[yellow]No Cloud PCs eligible for {action.value}.[/yellow]")
        return 0

    out_console.print(
        build_table(targets, session.settings.theme, title=f"{action.value} candidates")
    )
    if not _confirm(action, targets, args.yes):
        log_console.print("[yellow]Aborted.[/yellow]")
        return 1

    results: dict[str, ActionResult] = {}
    with ThreadPoolExecutor(max_workers=args.concurrency) as executor:
        futures = {
            executor.submit(
                session.dispatcher.dispatch,
                ActionRequest(resource_id=t.id, action=action, confirmed=True),
            ): t
            for t in targets
        }
        for future in as_completed(futures):
            results[futures[future].id] = future.result()

    table = Table(title=f"{action.value} results")
    table.add_column("Name", style="cyan")
    table.add_column("Result")
    for t in targets:
        result = results[t.id]
        table.add_row(
            t.label,
            "[green]accepted[/green]"
            if result.accepted
            else f"[red]{result.reason}[/red]",
        )
    out_console.print(table)

    failures = sum(1 for r in results.values() if not r.accepted)
    return 1 if failures else 0
