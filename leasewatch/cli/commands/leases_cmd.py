"""``leasewatch leases`` — print the current lease table once.

Fetches one lease snapshot (and the pool list for the stats line) and
renders it without connecting to the stream.
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from leasewatch.api.client import LeaseApiError
from leasewatch.cli import runtime
from leasewatch.config import LeaseWatchConfig
from leasewatch.models.display import DisplayState
from leasewatch.models.leases import DhcpLease, DhcpPool
from leasewatch.monitor.renderer import LeaseRenderer
from leasewatch.monitor.stats import calculate_stats
from leasewatch.monitor.views import SortableField


async def _fetch(cfg: LeaseWatchConfig) -> tuple[list[DhcpLease], list[DhcpPool]]:
    api = runtime.build_api_client(cfg)
    try:
        leases = await api.fetch_leases()
        try:
            pools = await api.fetch_pools()
        except LeaseApiError as exc:
            # Stats degrade to zero available IPs; the table is still useful.
            typer.echo(f"Pool list unavailable: {exc}", err=True)
            pools = []
        return leases, pools
    finally:
        await api.aclose()


def leases_cmd(
    search: str = typer.Option(
        "",
        "--search",
        "-s",
        help="Only show leases whose IP, MAC, hostname, vendor or status contains this text.",
    ),
    sort: SortableField = typer.Option(
        None,
        "--sort",
        help="Column to sort by (default: server order).",
    ),
    descending: bool = typer.Option(
        False,
        "--desc",
        help="Sort descending.",
    ),
    api_url: str = typer.Option(
        None,
        "--api-url",
        help="Lease API base URL (overrides LEASEWATCH_API_BASE_URL).",
    ),
) -> None:
    """Print the current DHCP lease table."""
    console = Console()
    cfg = runtime.resolve_config(api_url)

    try:
        leases, pools = asyncio.run(_fetch(cfg))
    except LeaseApiError as exc:
        console.print(f"[bold red]Lease API error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    renderer = LeaseRenderer(
        console,
        search_term=search,
        sort_config=runtime.build_sort_config(sort, descending),
    )
    console.print(renderer.render_stats(calculate_stats(leases, pools)))
    console.print(renderer.render_table(DisplayState(records=tuple(leases))))
