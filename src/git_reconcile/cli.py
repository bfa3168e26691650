import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import Config, parse_time
from .constants import APP_NAME, CONFIG_FILE, LOG_FILE, STRATEGIES
from .errors import ReconcileError
from .models import OutcomeKind, Partition, SyncOutcome
from .reconcile import ReconcileReport, plan, reconcile

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)

OUTCOME_STYLES = {
    OutcomeKind.CLONED: "green",
    OutcomeKind.PULLED_CLEAN: "green",
    OutcomeKind.PULLED_WITH_STASH_RESTORED: "green",
    OutcomeKind.PULLED_WITH_STASH_CONFLICT: "yellow",
    OutcomeKind.FAILED: "bold red",
}


def setup_logging(verbose: bool = False, max_log_size: int = 5 * 1024 * 1024) -> None:
    """Configures the logging subsystem.

    Logs go to stderr and to a rotating file in the state directory.

    Args:
        verbose (bool): If True, DEBUG records (every git command) are emitted.
        max_log_size (int): Max bytes for the log file before rotation.
    """
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if logger.handlers:
        return

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=max_log_size,
            backupCount=5,
        )
    except OSError as e:
        logger.warning(f"Could not open log file {LOG_FILE}: {e}")
        return
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def apply_log_limits(max_log_size: int) -> None:
    """Applies the configured rotation size to the log file handler."""
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler):
            handler.maxBytes = max_log_size


def render_partition(partition: Partition) -> None:
    """Prints which repositories exist on which side."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Status")
    table.add_column("Default Branch", style="dim")

    rows = [
        (record, "[green]Both[/green]") for record in partition.matching.values()
    ]
    rows += [
        (record, "[blue]Remote only[/blue]")
        for record in partition.missing_locally.values()
    ]
    rows += [
        (record, "[yellow]Local only[/yellow]")
        for record in partition.missing_remotely.values()
    ]

    for record, status in sorted(rows, key=lambda row: row[0].name):
        table.add_row(
            escape(record.name), status, escape(record.default_branch or "-")
        )

    console.print(table)
    console.print(
        f"{len(partition.matching)} matching, "
        f"{len(partition.missing_locally)} missing locally, "
        f"{len(partition.missing_remotely)} missing remotely."
    )


def _detail(outcome: SyncOutcome) -> str:
    if outcome.kind is OutcomeKind.PULLED_WITH_STASH_CONFLICT:
        return f"Changes preserved in {outcome.stash_ref}"
    return outcome.cause or ""


def render_report(report: ReconcileReport) -> None:
    """Prints one row per outcome, then the follow-ups the operator must handle."""
    if not report.outcomes:
        console.print("[green]Nothing to do.[/green]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Outcome")
    table.add_column("Detail", style="dim")

    for outcome in report.outcomes:
        style = OUTCOME_STYLES[outcome.kind]
        table.add_row(
            escape(outcome.name),
            f"[{style}]{outcome.kind.value}[/{style}]",
            escape(_detail(outcome)),
        )

    console.print(table)

    for outcome in report.conflicts:
        console.print(
            f"[bold yellow]WARNING:[/bold yellow] Stash conflicts in "
            f"{escape(outcome.name)}. Changes preserved in {outcome.stash_ref}. "
            "Manual resolution required."
        )
    if report.failed:
        console.print(
            f"[bold red]{len(report.failed)} repositor"
            f"{'y' if len(report.failed) == 1 else 'ies'} failed.[/bold red] "
            "Re-run once the cause is fixed."
        )


def show_config(config: Config, source: Path) -> None:
    """Prints the effective configuration."""
    table = Table(title=f"Configuration ({source})", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Value", style="yellow")

    for section_name in ("core", "sync", "limits"):
        section = getattr(config, section_name)
        for key in section.__dataclass_fields__:
            value = getattr(section, key)
            table.add_row(
                section_name, key, escape(repr(value)) if value != "" else "-"
            )

    console.print(table)


def _common_options() -> argparse.ArgumentParser:
    # Defaults are suppressed so values given before the subcommand survive.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=argparse.SUPPRESS,
        help=f"Config file (default: {CONFIG_FILE})",
    )
    common.add_argument(
        "--root", default=argparse.SUPPRESS, help="Local directory of repositories"
    )
    common.add_argument(
        "--account", default=argparse.SUPPRESS, help="Hosting account to list"
    )
    common.add_argument(
        "--strategy",
        choices=list(STRATEGIES),
        default=argparse.SUPPRESS,
        help="Pull integration strategy",
    )
    common.add_argument(
        "--workers",
        type=int,
        default=argparse.SUPPRESS,
        help="Repositories processed in parallel (default: 1)",
    )
    common.add_argument(
        "--timeout",
        type=parse_time,
        default=argparse.SUPPRESS,
        help="Per git command timeout, e.g. 90s or 5m (default: none)",
    )
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Log every git command",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Reconcile a local directory of repositories with a GitHub account.",
        parents=[common],
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser(
        "status", parents=[common], help="Show which repositories exist where"
    )
    subparsers.add_parser("clone", parents=[common], help="Clone missing repositories")
    subparsers.add_parser(
        "pull", parents=[common], help="Pull repositories present on both sides"
    )
    subparsers.add_parser(
        "sync", parents=[common], help="Pull matching, then clone missing (default)"
    )
    subparsers.add_parser(
        "config", parents=[common], help="Show the effective configuration"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the Git Reconcile CLI.

    Returns:
        int: The process exit status.
    """
    args = build_parser().parse_args(argv)
    command = args.command or "sync"

    # Logging comes first so config warnings reach the configured handlers.
    setup_logging(getattr(args, "verbose", False))

    config_path = getattr(args, "config", None)
    config = Config.load(config_path).with_overrides(
        local_root=getattr(args, "root", None),
        account=getattr(args, "account", None),
        strategy=getattr(args, "strategy", None),
        workers=getattr(args, "workers", None),
        command_timeout=getattr(args, "timeout", None),
    )
    apply_log_limits(config.limits.max_log_size)

    if command == "config":
        show_config(config, config_path or CONFIG_FILE)
        return 0

    try:
        if command == "status":
            with console.status("Listing repositories...", spinner="dots"):
                partition = plan(config)
            render_partition(partition)
            return 0

        report = reconcile(
            config,
            clone=command in ("clone", "sync"),
            pull=command in ("pull", "sync"),
        )
    except ReconcileError as e:
        partial = getattr(e, "report", None)
        if partial is not None:
            render_report(partial)
        err_console.print(f"[bold red]ERROR:[/bold red] {escape(str(e))}")
        return 1

    render_report(report)
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
