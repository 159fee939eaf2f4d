"""Live lease monitor — refresh coordination, views, stats and rendering."""

from leasewatch.monitor.renderer import LeaseRenderer, format_connection_status
from leasewatch.monitor.session import LeaseMonitor, MonitorView
from leasewatch.monitor.stats import LeaseStats, calculate_stats
from leasewatch.monitor.views import (
    SortConfig,
    SortDirection,
    SortableField,
    filter_leases,
    next_sort_config,
    sort_leases,
)

__all__ = [
    "LeaseMonitor",
    "LeaseRenderer",
    "LeaseStats",
    "MonitorView",
    "SortConfig",
    "SortDirection",
    "SortableField",
    "calculate_stats",
    "filter_leases",
    "format_connection_status",
    "next_sort_config",
    "sort_leases",
]
