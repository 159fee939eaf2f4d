"""StreamConnection — resilient client for the server-push lease stream.

Explicit state machine over ``ConnectionState``:

- ``connect()`` opens a transport subscription (``connecting``); the
  transport's open signal moves to ``connected``.
- Open failures, transport closure and heartbeat timeouts move to
  ``error`` and schedule a reconnect with exponential backoff.
- After ``max_reconnect_attempts`` consecutive failures the connection
  stays in ``error`` until someone calls ``connect()`` again.
- ``disconnect()`` cancels everything and is the only way, besides a
  successful open, to reset the attempt counter.

The heartbeat deadline is armed as soon as a subscription is opened,
so a server that accepts the request but never answers also times out.

Single-threaded: every mutation happens inside a public call, a
transport callback or a timer callback, all on the same event loop.
Every timer this class starts is cancelled by ``disconnect()``.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from leasewatch.core.dispatcher import MessageDispatcher
from leasewatch.core.scheduling import LoopScheduler, Scheduler, TimerHandle, cancel_timer
from leasewatch.models.events import EVENT_TYPE_MAP, ChangeEvent, HeartbeatEvent
from leasewatch.models.status import ConnectionState, ConnectionStatus
from leasewatch.stream.backoff import DEFAULT_BACKOFF, BackoffPolicy
from leasewatch.stream.decoder import decode
from leasewatch.stream.transport import ReadyState, Transport, TransportHandle

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECONNECT_ATTEMPTS = 10
DEFAULT_HEARTBEAT_TIMEOUT_MS = 65_000

HEARTBEAT_TIMEOUT_MESSAGE = "Heartbeat timeout"
CONNECTION_CLOSED_MESSAGE = "Connection closed"
MAX_ATTEMPTS_EXCEEDED_MESSAGE = "Maximum reconnection attempts exceeded"

# SSE event names whose payloads are decoded; "message" is the unnamed default.
_DECODED_EVENT_NAMES = frozenset({"message", *(t.value for t in EVENT_TYPE_MAP)})


class _HandleListener:
    """Routes one transport handle's callbacks back to its connection.

    Carries the generation the handle was opened under, so callbacks from
    a superseded handle are recognised and ignored.
    """

    def __init__(self, connection: StreamConnection, generation: int) -> None:
        self._connection = connection
        self._generation = generation

    def on_open(self) -> None:
        self._connection._on_transport_open(self._generation)

    def on_message(self, event: str, data: str) -> None:
        self._connection._on_transport_message(self._generation, event, data)

    def on_error(self) -> None:
        self._connection._on_transport_error(self._generation)


class StreamConnection:
    """Owns one server-push subscription and its reconnection policy.

    Parameters
    ----------
    url:
        Stream endpoint.
    transport:
        Opens subscriptions; the handle it returns is owned exclusively
        by this connection.
    scheduler:
        Timer backend.  Defaults to the running asyncio loop.
    max_reconnect_attempts:
        Consecutive failed attempts tolerated before giving up.
    backoff:
        Delay policy for reconnect attempts.
    heartbeat_timeout_ms:
        Liveness deadline; re-armed by every heartbeat event.
    rng:
        Random source for backoff jitter (tests pass a seeded one).
    clock:
        Returns the wall-clock time recorded as ``last_event_time``.

    Messages
    --------
    ``status_changed`` carries a ``ConnectionStatus`` on every transition;
    ``event_received`` carries every decoded ``ChangeEvent`` in arrival order.
    """

    def __init__(
        self,
        url: str,
        transport: Transport,
        *,
        scheduler: Scheduler | None = None,
        max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS,
        backoff: BackoffPolicy = DEFAULT_BACKOFF,
        heartbeat_timeout_ms: int = DEFAULT_HEARTBEAT_TIMEOUT_MS,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._url = url
        self._transport = transport
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._max_attempts = max_reconnect_attempts
        self._backoff = backoff
        self._heartbeat_timeout_s = heartbeat_timeout_ms / 1000.0
        self._rng = rng
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self.status_changed: MessageDispatcher[ConnectionStatus] = MessageDispatcher(
            "status_changed"
        )
        self.event_received: MessageDispatcher[ChangeEvent] = MessageDispatcher(
            "event_received"
        )

        self._status = ConnectionStatus()
        self._handle: TransportHandle | None = None
        self._generation = 0
        self._reconnect_attempts = 0
        self._reconnect_timer: TimerHandle | None = None
        self._heartbeat_timer: TimerHandle | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    @property
    def status(self) -> ConnectionStatus:
        """Frozen snapshot of the current status."""
        return self._status

    @property
    def state(self) -> ConnectionState:
        return self._status.state

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def has_pending_reconnect(self) -> bool:
        return self._reconnect_timer is not None

    @property
    def max_reconnect_attempts(self) -> int:
        return self._max_attempts

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Open the subscription, or confirm it if already open.

        Never raises: a transport that cannot be opened moves the
        connection to ``error`` and schedules a reconnect.
        """
        if (
            self._status.state == ConnectionState.CONNECTED
            and self._handle is not None
            and self._handle.ready_state == ReadyState.OPEN
        ):
            self._transition(ConnectionState.CONNECTED)
            self._arm_heartbeat()
            return

        self._teardown()
        self._transition(ConnectionState.CONNECTING)

        self._generation += 1
        listener = _HandleListener(self, self._generation)
        try:
            self._handle = self._transport.open(self._url, listener)
        except Exception as exc:  # noqa: BLE001
            logger.warning("StreamConnection: failed to open %s: %s", self._url, exc)
            self._handle = None
            self._fail(str(exc) or "Failed to open stream")
            return
        # The deadline also bounds the header phase.
        if self._handle is not None and self._status.state == ConnectionState.CONNECTING:
            self._arm_heartbeat()

    def disconnect(self) -> None:
        """Cancel all timers, close the subscription, reset the attempt counter."""
        self._teardown()
        self._reconnect_attempts = 0
        self._transition(ConnectionState.DISCONNECTED)

    def close(self) -> None:
        """Disconnect and drop every subscriber."""
        self.disconnect()
        self.status_changed.clear()
        self.event_received.clear()

    def __enter__(self) -> StreamConnection:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"StreamConnection(url={self._url!r}, state={self._status.state.value}, "
            f"attempts={self._reconnect_attempts})"
        )

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _on_transport_open(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._reconnect_attempts = 0
        self._transition(ConnectionState.CONNECTED)
        self._arm_heartbeat()

    def _on_transport_message(self, generation: int, event_name: str, data: str) -> None:
        if generation != self._generation:
            return
        if event_name not in _DECODED_EVENT_NAMES:
            logger.debug("StreamConnection: ignoring SSE event %r", event_name)
            return

        event = decode(data)
        if event is None:
            return

        self._status = self._status.model_copy(
            update={"last_event": event, "last_event_time": self._clock()}
        )
        if isinstance(event, HeartbeatEvent):
            self._arm_heartbeat()
        self.event_received.dispatch(event)

    def _on_transport_error(self, generation: int) -> None:
        if generation != self._generation:
            return
        if self._handle is not None and self._handle.ready_state != ReadyState.CLOSED:
            # Transport is re-establishing by itself.
            logger.debug("StreamConnection: transient transport error on %s", self._url)
            return

        logger.warning("StreamConnection: stream %s closed", self._url)
        self._handle = None
        self._fail(CONNECTION_CLOSED_MESSAGE)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _arm_heartbeat(self) -> None:
        cancel_timer(self._heartbeat_timer)
        self._heartbeat_timer = self._scheduler.call_later(
            self._heartbeat_timeout_s, self._on_heartbeat_timeout
        )

    def _on_heartbeat_timeout(self) -> None:
        self._heartbeat_timer = None
        logger.warning(
            "StreamConnection: no heartbeat from %s within %.0fs",
            self._url,
            self._heartbeat_timeout_s,
        )
        self._close_handle()
        self._fail(HEARTBEAT_TIMEOUT_MESSAGE)

    def _schedule_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            return

        if self._reconnect_attempts >= self._max_attempts:
            logger.error(
                "StreamConnection: giving up on %s after %d attempts",
                self._url,
                self._reconnect_attempts,
            )
            self._transition(ConnectionState.ERROR, MAX_ATTEMPTS_EXCEEDED_MESSAGE)
            return

        delay = self._backoff.delay_seconds(self._reconnect_attempts, self._rng)
        self._reconnect_attempts += 1
        self._status = self._status.model_copy(
            update={"reconnect_attempt_count": self._reconnect_attempts}
        )
        logger.info(
            "StreamConnection: reconnect %d/%d to %s in %.1fs",
            self._reconnect_attempts,
            self._max_attempts,
            self._url,
            delay,
        )
        self._reconnect_timer = self._scheduler.call_later(delay, self._on_reconnect_due)

    def _on_reconnect_due(self) -> None:
        self._reconnect_timer = None
        # A manual connect() may have succeeded while the timer was pending.
        if self._status.state != ConnectionState.CONNECTED:
            self.connect()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> None:
        cancel_timer(self._heartbeat_timer)
        self._heartbeat_timer = None
        self._transition(ConnectionState.ERROR, message)
        self._schedule_reconnect()

    def _teardown(self) -> None:
        cancel_timer(self._reconnect_timer)
        cancel_timer(self._heartbeat_timer)
        self._reconnect_timer = None
        self._heartbeat_timer = None
        self._close_handle()

    def _close_handle(self) -> None:
        handle, self._handle = self._handle, None
        # Invalidate the listener so late callbacks are ignored.
        self._generation += 1
        if handle is not None:
            try:
                handle.close()
            except Exception:  # noqa: BLE001
                logger.exception("StreamConnection: error closing transport handle")

    def _transition(self, state: ConnectionState, error: str | None = None) -> None:
        previous = self._status.state
        self._status = ConnectionStatus(
            state=state,
            last_event=self._status.last_event,
            last_event_time=self._status.last_event_time,
            error_message=error,
            reconnect_attempt_count=self._reconnect_attempts,
        )
        if previous != state:
            logger.info(
                "StreamConnection: %s -> %s%s",
                previous.value,
                state.value,
                f" ({error})" if error else "",
            )
        self.status_changed.dispatch(self._status)
