"""``leasewatch events`` — tail decoded stream events and status changes."""

from __future__ import annotations

import asyncio
from datetime import datetime

import typer
from rich.console import Console

from leasewatch.cli import runtime
from leasewatch.config import LeaseWatchConfig
from leasewatch.models.events import ChangeEvent, HeartbeatEvent
from leasewatch.models.status import ConnectionStatus
from leasewatch.monitor.renderer import LeaseRenderer


async def _tail(
    cfg: LeaseWatchConfig,
    renderer: LeaseRenderer,
    *,
    count: int,
    duration: float,
    show_heartbeats: bool,
) -> int:
    transport = runtime.build_transport(cfg)
    connection = runtime.build_connection(cfg, transport)
    done = asyncio.Event()
    seen = 0

    def _on_event(event: ChangeEvent) -> None:
        nonlocal seen
        seen += 1
        if show_heartbeats or not isinstance(event, HeartbeatEvent):
            renderer.console.print(renderer.render_event(event, datetime.now()))
        if count and seen >= count:
            done.set()

    def _on_status(status: ConnectionStatus) -> None:
        renderer.console.print(renderer.render_status_change(status))

    connection.event_received.subscribe(_on_event)
    connection.status_changed.subscribe(_on_status)
    connection.connect()
    try:
        if duration > 0:
            try:
                await asyncio.wait_for(done.wait(), timeout=duration)
            except asyncio.TimeoutError:
                pass
        else:
            await done.wait()
    finally:
        connection.close()
        await runtime.close_transport(transport)
    return seen


def events_cmd(
    count: int = typer.Option(
        0,
        "--count",
        "-n",
        help="Exit after this many events (0 = no limit).",
    ),
    duration: float = typer.Option(
        0.0,
        "--duration",
        "-d",
        help="Exit after this many seconds (0 = no limit).",
    ),
    heartbeats: bool = typer.Option(
        True,
        "--heartbeats/--no-heartbeats",
        help="Print heartbeat events.",
    ),
    api_url: str = typer.Option(
        None,
        "--api-url",
        help="Lease API base URL (overrides LEASEWATCH_API_BASE_URL).",
    ),
) -> None:
    """Print stream events as they arrive."""
    console = Console()
    cfg = runtime.resolve_config(api_url)
    renderer = LeaseRenderer(console)

    console.print(f"[dim]Subscribing to {cfg.stream_url}[/dim]")
    try:
        seen = asyncio.run(
            _tail(
                cfg,
                renderer,
                count=count,
                duration=duration,
                show_heartbeats=heartbeats,
            )
        )
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")
        return
    console.print(f"[dim]{seen} events received.[/dim]")
