import argparse
import json

import pandas as pd
from rich.console import Console
from rich.table import Table

from ..config import Theme
from ..reporter import write_inventory_html
from ..schemas.cloudpc import CloudPCResource, PowerState, ProvisioningType
from ..session import Session


def filter_resources(
    resources: list[CloudPCResource], kinds: list[str] | None
) -> list[CloudPCResource]:
    if not kinds:
        return list(resources)
    wanted = {ProvisioningType(k) for k in kinds}
    return [r for r in resources if r.provisioning_type in wanted]


def _power_cell(resource: CloudPCResource, theme: Theme) -> str:
    state = resource.power_state
    if state == PowerState.RUNNING:
        return f"[{theme.running}]{state.value}[/{theme.running}]"
    if state in (PowerState.STOPPED, PowerState.POWERED_OFF):
        return f"[{theme.stopped}]{state.value}[/{theme.stopped}]"
    return f"[{theme.muted}]{state.value}[/{theme.muted}]"


def build_table(
    resources: list[CloudPCResource], theme: Theme, title: str = "Cloud PCs"
) -> Table:
    """Numbered table; the row number is what the interactive menu asks for."""
    table = Table(title=title, title_style=theme.title)
    table.add_column("#", justify="right", style=theme.muted)
    table.add_column("Name", style=theme.accent)
    table.add_column("User")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Power")

    for idx, r in enumerate(resources, start=1):
        table.add_row(
            str(idx),
            r.display_name or r.id,
            r.user_principal_name or "-",
            r.provisioning_type.value,
            r.status,
            _power_cell(r, theme),
        )
    return table


def run_inventory(
    args: argparse.Namespace, session: Session, log_console: Console, out_console: Console
) -> None:
    """Lists Cloud PCs to the terminal and/or JSON, CSV and HTML."""
    log_console.print("Fetching Cloud PCs...")
    resources = filter_resources(session.registry.refresh(), args.filter)

    if not resources:
        if args.json:
            print("[]")
        else:
            out_console.print("[yellow]No Cloud PCs found.[/yellow]")
        return

    records = [r.model_dump(mode="json") for r in resources]

    if args.json:
        print(json.dumps(records, indent=2))
    else:
        out_console.print(build_table(resources, session.settings.theme))
        out_console.print(f"\nTotal Cloud PCs: [bold]{len(resources)}[/bold]")

    if args.csv:
        pd.DataFrame(records).to_csv(args.csv, index=False)
        log_console.print(f"Data saved to [bold]{args.csv}[/bold]")

    if args.html:
        write_inventory_html(resources, args.html)
        log_console.print(f"Report saved to [bold]{args.html}[/bold]")
