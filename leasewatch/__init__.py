"""leasewatch: live DHCP lease monitor over a server-push change stream.

  - Resilient SSE stream connection with exponential backoff and a
    heartbeat liveness deadline
  - Keyed snapshot reconciliation with a frozen merged view held for one
    animation window, and coalesced follow-up refreshes
  - Rich terminal renderer and Typer CLI (watch, leases, events)
"""

__version__ = "0.1.0"
__description__ = "Live DHCP lease monitor over a server-push change stream"

from leasewatch.reconcile.engine import ReconciliationEngine
from leasewatch.stream.connection import StreamConnection
from leasewatch.monitor.session import LeaseMonitor
from leasewatch.cli.app import app as cli

__all__ = [
    "LeaseMonitor",
    "ReconciliationEngine",
    "StreamConnection",
    "cli",
    "__version__",
]
