"""``leasewatch watch`` — live lease table driven by the change stream.

Keeps a stream subscription open, refetches the lease listing whenever
the server reports a change and highlights added, updated and removed
rows for one animation window.  Rendering happens only when the view
changes (``Live`` runs without its auto-refresh thread).
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.live import Live

from leasewatch.cli import runtime
from leasewatch.config import LeaseWatchConfig
from leasewatch.monitor.renderer import LeaseRenderer
from leasewatch.monitor.session import LeaseMonitor, MonitorView
from leasewatch.monitor.views import SortableField


async def _run_until(duration: float) -> None:
    if duration > 0:
        await asyncio.sleep(duration)
    else:
        await asyncio.Event().wait()


async def _watch(cfg: LeaseWatchConfig, renderer: LeaseRenderer, duration: float) -> None:
    transport = runtime.build_transport(cfg)
    api = runtime.build_api_client(cfg)
    monitor = LeaseMonitor(
        runtime.build_connection(cfg, transport),
        runtime.build_engine(cfg),
        api,
    )

    try:
        with Live(console=renderer.console, auto_refresh=False, transient=False) as live:

            def _on_change(view: MonitorView) -> None:
                live.update(renderer.render_view(view), refresh=True)

            monitor.changed.subscribe(_on_change)
            await monitor.start()
            live.update(renderer.render_view(monitor.view()), refresh=True)
            await _run_until(duration)
    finally:
        await monitor.stop()
        await api.aclose()
        await runtime.close_transport(transport)


def watch_cmd(
    search: str = typer.Option(
        "",
        "--search",
        "-s",
        help="Only show leases whose IP, MAC, hostname, vendor or status contains this text.",
    ),
    sort: SortableField = typer.Option(
        None,
        "--sort",
        help="Column to sort by.  Rows keep server order when omitted.",
    ),
    descending: bool = typer.Option(
        False,
        "--desc",
        help="Sort descending.",
    ),
    duration: float = typer.Option(
        0.0,
        "--duration",
        "-d",
        help="Stop after this many seconds (0 = run until Ctrl+C).",
    ),
    api_url: str = typer.Option(
        None,
        "--api-url",
        help="Lease API base URL (overrides LEASEWATCH_API_BASE_URL).",
    ),
) -> None:
    """Watch DHCP leases live.

    The table is never blanked: when the stream drops or a fetch fails,
    the last known leases stay on screen under a degraded-mode banner.
    """
    console = Console()
    cfg = runtime.resolve_config(api_url)
    renderer = LeaseRenderer(
        console,
        search_term=search,
        sort_config=runtime.build_sort_config(sort, descending),
    )

    if duration <= 0:
        console.print(f"[dim]Watching {cfg.stream_url}. Press Ctrl+C to exit.[/dim]")
    try:
        asyncio.run(_watch(cfg, renderer, duration))
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
