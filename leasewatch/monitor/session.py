"""LeaseMonitor — wires the stream, the lease API and the reconciliation engine.

Flow::

    StreamConnection --data_changed--> request_refresh() --yes--> fetch
                                              |no (window open)
                                              v
    ReconciliationEngine --refresh_due----------------------------> fetch
    fetch --> LeaseApiClient.fetch_leases() --> ReconciliationEngine.apply()

At most one fetch runs at a time.  A refresh requested while one is in
flight is folded into a single follow-up fetch.  A failed fetch keeps the
last display on screen and records the error for the renderer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from leasewatch.api.client import LeaseApiClient, LeaseApiError
from leasewatch.core.dispatcher import MessageDispatcher
from leasewatch.models.display import DisplayState, ReconciliationState
from leasewatch.models.events import ChangeEvent, DataChangedEvent
from leasewatch.models.leases import DhcpPool
from leasewatch.models.status import ConnectionStatus
from leasewatch.monitor.stats import LeaseStats, calculate_stats
from leasewatch.reconcile.engine import ReconciliationEngine
from leasewatch.stream.connection import StreamConnection

logger = logging.getLogger(__name__)


class MonitorView(BaseModel):
    """Everything the renderer needs for one frame."""

    model_config = ConfigDict(frozen=True)

    status: ConnectionStatus
    display: DisplayState
    pools: tuple[DhcpPool, ...] = ()
    stats: LeaseStats = LeaseStats()
    fetch_error: str | None = None
    fetch_count: int = 0


class LeaseMonitor:
    """Refresh coordinator for one live lease listing.

    Parameters
    ----------
    connection:
        Stream whose ``data_changed`` events trigger refreshes.
    engine:
        Receives every fetched snapshot.
    api:
        Source of lease and pool snapshots.
    clock:
        Reference time for the expiring-today statistic.
    """

    def __init__(
        self,
        connection: StreamConnection,
        engine: ReconciliationEngine,
        api: LeaseApiClient,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._connection = connection
        self._engine = engine
        self._api = api
        self._clock = clock or (lambda: datetime.now().astimezone())

        self.changed: MessageDispatcher[MonitorView] = MessageDispatcher("monitor_changed")

        self._pools: tuple[DhcpPool, ...] = ()
        self._fetch_error: str | None = None
        self._fetch_count = 0
        self._fetch_task: asyncio.Task[None] | None = None
        self._refetch = False
        self._started = False
        self._unsubscribers: list[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def connection(self) -> StreamConnection:
        return self._connection

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @property
    def fetch_count(self) -> int:
        """Number of lease fetches attempted so far."""
        return self._fetch_count

    @property
    def fetch_error(self) -> str | None:
        return self._fetch_error

    @property
    def is_fetching(self) -> bool:
        return self._fetch_task is not None and not self._fetch_task.done()

    def view(self) -> MonitorView:
        display = self._engine.display
        return MonitorView(
            status=self._connection.status,
            display=display,
            pools=self._pools,
            stats=calculate_stats(display.records, self._pools, self._clock()),
            fetch_error=self._fetch_error,
            fetch_count=self._fetch_count,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load pools, request the initial snapshot, then connect the stream."""
        if self._started:
            return
        self._started = True
        self._unsubscribers = [
            self._connection.event_received.subscribe(self._on_event),
            self._connection.status_changed.subscribe(self._on_status),
            self._engine.refresh_due.subscribe(self._on_refresh_due),
            self._engine.display_updated.subscribe(self._on_display),
        ]
        await self.load_pools()
        self.request_refresh()
        # Change notifications before this point are covered by the initial fetch.
        self._connection.connect()
        await self.wait_idle()

    async def stop(self) -> None:
        """Unsubscribe, disconnect and dispose the engine."""
        if not self._started:
            return
        self._started = False
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._connection.disconnect()
        self._engine.dispose()

        task, self._fetch_task = self._fetch_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> LeaseMonitor:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Refreshing
    # ------------------------------------------------------------------

    def request_refresh(self) -> bool:
        """Fetch now unless an animation window defers it.

        Returns ``True`` if a fetch was started or folded into the one in
        flight.
        """
        if not self._engine.request_refresh():
            logger.debug("LeaseMonitor: refresh deferred until window closes")
            return False
        self._schedule_fetch()
        return True

    async def refresh(self) -> bool:
        """Fetch the lease snapshot once and hand it to the engine."""
        self._fetch_count += 1
        try:
            leases = await self._api.fetch_leases()
        except LeaseApiError as exc:
            logger.warning("LeaseMonitor: lease fetch failed: %s", exc)
            self._fetch_error = str(exc)
            self._emit()
            return False

        self._fetch_error = None
        self._engine.apply(leases)
        return True

    async def load_pools(self) -> bool:
        try:
            pools = await self._api.fetch_pools()
        except LeaseApiError as exc:
            logger.warning("LeaseMonitor: pool fetch failed: %s", exc)
            return False
        self._pools = tuple(pools)
        self._emit()
        return True

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight."""
        while self._fetch_task is not None and not self._fetch_task.done():
            await asyncio.shield(self._fetch_task)

    def _schedule_fetch(self) -> None:
        if self.is_fetching:
            self._refetch = True
            return
        loop = asyncio.get_running_loop()
        self._fetch_task = loop.create_task(self._fetch_loop(), name="leasewatch:fetch")

    async def _fetch_loop(self) -> None:
        while True:
            self._refetch = False
            await self.refresh()
            if not self._refetch or not self._engine.request_refresh():
                return

    # ------------------------------------------------------------------
    # Message handlers
    # ------------------------------------------------------------------

    def _on_event(self, event: ChangeEvent) -> None:
        if isinstance(event, DataChangedEvent):
            logger.debug("LeaseMonitor: server reported change at %s", event.timestamp)
            self.request_refresh()

    def _on_status(self, status: ConnectionStatus) -> None:
        self._emit()

    def _on_display(self, display: DisplayState) -> None:
        self._emit()

    def _on_refresh_due(self, state: ReconciliationState) -> None:
        self._schedule_fetch()

    def _emit(self) -> None:
        if self.changed.subscriber_count:
            self.changed.dispatch(self.view())
