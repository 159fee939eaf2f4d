"""Main Typer application — imports and registers all CLI commands.

Entry point: ``leasewatch`` (configured via pyproject.toml console_scripts).

Commands: watch, leases, events.
"""

from __future__ import annotations

import typer

from leasewatch.cli import runtime
from leasewatch.cli.commands.events_cmd import events_cmd
from leasewatch.cli.commands.leases_cmd import leases_cmd
from leasewatch.cli.commands.watch_cmd import watch_cmd

app = typer.Typer(
    name="leasewatch",
    help="leasewatch: live DHCP lease monitor over a server-push change stream.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="watch", help="Watch the lease table live.")(watch_cmd)
app.command(name="leases", help="Print the current lease table once.")(leases_cmd)
app.command(name="events", help="Tail decoded stream events.")(events_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (default: LEASEWATCH_LOG_LEVEL or INFO).",
    ),
) -> None:
    """Configure logging before any command runs."""
    runtime.configure_logging(log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
