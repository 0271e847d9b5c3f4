import argparse
import sys
from importlib.metadata import version

from rich.console import Console

from .config import load_settings
from .errors import CloudPCError
from .logger import logger, set_verbosity
from .modes import actions, inventory, menu
from .schemas.cloudpc import Action, ProvisioningType
from .session import build_session


def _parse_action(value: str) -> Action:
    for action in Action:
        if action.value.lower() == value.lower():
            return action
    raise argparse.ArgumentTypeError(
        f"invalid action {value!r} (choose from {', '.join(a.value for a in Action)})"
    )


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        number = 0
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cloudpc",
        description="Windows 365 Cloud PC lifecycle console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Interactive menu (default)
  cloudpc

  # List every Cloud PC and save an HTML report
  cloudpc --list --html cloudpcs.html

  # Restart one Cloud PC
  cloudpc --action restart --id 1b2c3d4e-...

  # Start every stopped Frontline dedicated Cloud PC
  cloudpc --action start --all --filter FrontlineDedicated
""",
    )
    try:
        ver = version("cloudpc")
    except Exception:
        ver = "unknown"
    parser.add_argument("--version", action="version", version=f"cloudpc v{ver}")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--list", action="store_true", help="List Cloud PCs and exit")
    mode.add_argument(
        "--action",
        type=_parse_action,
        metavar="ACTION",
        help="Action to dispatch: " + ", ".join(a.value for a in Action),
    )

    target = parser.add_mutually_exclusive_group()
    target.add_argument("--id", help="Cloud PC id to act on")
    target.add_argument(
        "--all", action="store_true", help="Act on every eligible Cloud PC"
    )

    parser.add_argument(
        "--filter",
        nargs="+",
        choices=[t.value for t in ProvisioningType],
        help="Only include these provisioning types",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Skip confirmation prompts (including Reprovision)",
    )
    parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=5,
        help="Parallel requests for --all (default: 5)",
    )

    parser.add_argument("--json", action="store_true", help="Output --list as JSON")
    parser.add_argument("--csv", help="Save --list output to a CSV file")
    parser.add_argument("--html", help="Save --list output to an HTML report")

    parser.add_argument("--tenant-id", help="Entra tenant id (overrides config)")
    parser.add_argument("--client-id", help="App registration client id")
    parser.add_argument("--verbose", action="store_true", help="Log progress")
    parser.add_argument("--debug", action="store_true", help="Log HTTP-level detail")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.action is not None and not (args.id or args.all):
        parser.error("--action requires --id or --all")
    if (args.id or args.all) and args.action is None:
        parser.error("--id/--all require --action")

    set_verbosity(verbose=args.verbose, debug=args.debug)

    # Use stderr for logs/progress if stdout is piped for JSON
    log_console = Console(stderr=True, quiet=args.json)
    out_console = Console(quiet=args.json)

    try:
        settings = load_settings(tenant_id=args.tenant_id, client_id=args.client_id)
        session = build_session(settings)

        if args.list:
            inventory.run_inventory(args, session, log_console, out_console)
            return 0
        if args.action is not None and args.all:
            return actions.run_bulk_action(args, session, log_console, out_console)
        if args.action is not None:
            return actions.run_single_action(args, session, log_console, out_console)

        menu.run_menu(session, out_console)
        return 0
    except CloudPCError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console = Console(stderr=True)
        console.print("\n[bold red]Operation cancelled by user.[/bold red]")
        sys.exit(130)


if __name__ == "__main__":
    run()
