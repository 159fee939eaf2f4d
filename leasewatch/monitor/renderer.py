"""Rich terminal renderer for the live lease view.

Turns a ``MonitorView`` into Rich renderables: a status badge, a stats
line and the lease table.  Rows changed by the last refresh are styled by
their annotation for as long as the animation window lasts.

Color scheme
------------
- bold green       : added
- yellow           : updated
- dim red, struck  : removing
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from leasewatch.models.display import ChangeTag, DisplayState
from leasewatch.models.events import (
    ChangeEvent,
    ConnectionEstablishedEvent,
    DataChangedEvent,
    HeartbeatEvent,
)
from leasewatch.models.leases import DhcpLease, lease_identity
from leasewatch.models.status import ConnectionState, ConnectionStatus
from leasewatch.monitor.session import MonitorView
from leasewatch.monitor.stats import LeaseStats
from leasewatch.monitor.views import (
    SortConfig,
    filter_leases,
    format_lease_expiration,
    format_mac_address,
    lease_status,
    lease_status_display,
    sort_leases,
)

# ---------------------------------------------------------------------------
# Style mapping
# ---------------------------------------------------------------------------

_CHANGE_STYLES: dict[ChangeTag, str] = {
    ChangeTag.ADDED: "bold green",
    ChangeTag.UPDATED: "yellow",
    ChangeTag.REMOVING: "dim red strike",
}

_STATUS_BADGES: dict[ConnectionState, tuple[str, str]] = {
    ConnectionState.CONNECTED: ("Live", "bold green"),
    ConnectionState.CONNECTING: ("Connecting...", "bold yellow"),
    ConnectionState.DISCONNECTED: ("Disconnected", "dim"),
    ConnectionState.ERROR: ("Connection Error", "bold red"),
}


def format_connection_status(status: ConnectionStatus) -> str:
    """Human label for a connection state."""
    return _STATUS_BADGES[status.state][0]


class LeaseRenderer:
    """Renders ``MonitorView`` as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    search_term:
        Only rows matching this term are shown.
    sort_config:
        Column ordering.  The default keeps server order, so rows do not
        move while an animation window is open.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        search_term: str = "",
        sort_config: SortConfig | None = None,
    ) -> None:
        self.console = console or Console()
        self.search_term = search_term
        self.sort_config = sort_config or SortConfig()

    # ------------------------------------------------------------------
    # Full view
    # ------------------------------------------------------------------

    def render_view(self, view: MonitorView, *, now: datetime | None = None) -> Panel:
        """Render the whole live view as a Panel."""
        parts: list[Any] = [self.render_status_line(view.status)]

        banner = self.render_banner(view)
        if banner is not None:
            parts.append(banner)

        parts.append(self.render_stats(view.stats))
        parts.append(Text(""))
        parts.append(self.render_table(view.display, now=now))

        return Panel(
            Group(*parts),
            title="[bold]DHCP Leases[/bold]",
            subtitle=f"Last updated: {view.display.updated_at.strftime('%Y-%m-%d %H:%M:%S UTC')}",
            border_style="blue",
            padding=(1, 2),
        )

    def render_status_line(self, status: ConnectionStatus) -> Text:
        label, style = _STATUS_BADGES[status.state]
        text = Text.assemble(("Status: ", "bold"), (label, style))
        if status.reconnect_attempt_count and status.state != ConnectionState.CONNECTED:
            text.append(f"  (attempt {status.reconnect_attempt_count})", style="dim")
        if status.last_event_time is not None:
            text.append(
                f"  last event {status.last_event_time.strftime('%H:%M:%S')}",
                style="dim",
            )
        return text

    def render_banner(self, view: MonitorView) -> Text | None:
        """Degraded-mode notice.  The table below it is always kept."""
        messages: list[str] = []
        if view.status.state in (ConnectionState.ERROR, ConnectionState.DISCONNECTED):
            reason = view.status.error_message or format_connection_status(view.status)
            messages.append(f"Live updates paused: {reason}")
        if view.fetch_error:
            messages.append(f"Showing last known leases: {view.fetch_error}")
        if not messages:
            return None
        return Text("\n".join(messages), style="bold red")

    def render_stats(self, stats: LeaseStats) -> Text:
        parts = [
            f"[bold]Active:[/bold] {stats.total_active}",
            f"[bold]Available IPs:[/bold] {stats.available_ips}",
            f"[bold]Expiring today:[/bold] {stats.expiring_today}",
            f"[bold]Device types:[/bold] {stats.device_types}",
        ]
        return Text.from_markup("  |  ".join(parts))

    def render_table(self, display: DisplayState, *, now: datetime | None = None) -> Table:
        """Lease table with rows styled by change annotation."""
        table = Table(
            show_header=True,
            header_style="bold cyan",
            expand=True,
            show_lines=False,
            pad_edge=True,
        )
        table.add_column("IP Address", min_width=15)
        table.add_column("MAC Address", min_width=17)
        table.add_column("Hostname", min_width=12)
        table.add_column("Vendor", min_width=10)
        table.add_column("Pool", min_width=8)
        table.add_column("Status", justify="center", min_width=8)
        table.add_column("Expires", justify="right", min_width=8)

        for lease in self._visible(display.records):
            annotation = display.annotation_for(lease_identity(lease))
            row_style = _CHANGE_STYLES[annotation.tag] if annotation is not None else None

            label, status_style = lease_status_display(lease_status(lease))
            table.add_row(
                lease.ip_address,
                format_mac_address(lease.mac_address),
                lease.hostname or "[dim]-[/dim]",
                lease.vendor or "[dim]-[/dim]",
                lease.pool_name or "[dim]-[/dim]",
                f"[{status_style}]{label}[/{status_style}]",
                format_lease_expiration(lease.lease_time, now),
                style=row_style,
            )

        if not table.row_count:
            table.add_row("[dim]No leases[/dim]", "", "", "", "", "", "")
        return table

    # ------------------------------------------------------------------
    # Event tail
    # ------------------------------------------------------------------

    def render_event(self, event: ChangeEvent, received_at: datetime) -> Text:
        """One line per decoded stream event."""
        stamp = received_at.strftime("%H:%M:%S")
        if isinstance(event, DataChangedEvent):
            body = f"[yellow]data_changed[/yellow] at {event.timestamp}"
        elif isinstance(event, HeartbeatEvent):
            body = (
                f"[dim]heartbeat[/dim] ts={event.timestamp} "
                f"connections={event.active_connections}"
            )
        elif isinstance(event, ConnectionEstablishedEvent):
            body = (
                f"[green]connection_established[/green] client={event.client_id} "
                f"connections={event.active_connections}"
            )
        else:
            body = str(event)
        return Text.from_markup(f"[dim]{stamp}[/dim] {body}")

    def render_status_change(self, status: ConnectionStatus) -> Text:
        label, style = _STATUS_BADGES[status.state]
        text = Text.assemble(("status ", "bold"), (label, style))
        if status.error_message:
            text.append(f" ({status.error_message})", style="red")
        return text

    # ------------------------------------------------------------------
    # Standalone print
    # ------------------------------------------------------------------

    def print_view(self, view: MonitorView) -> None:
        self.console.print(self.render_view(view))

    def _visible(self, records: Iterable[DhcpLease]) -> list[DhcpLease]:
        return sort_leases(filter_leases(list(records), self.search_term), self.sort_config)
