"""Shared test fixtures for leasewatch."""

from __future__ import annotations

import itertools
import random
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from leasewatch.models.leases import DhcpLease, DhcpPool
from leasewatch.stream.transport import ReadyState, TransportError, TransportListener

FIXED_NOW = datetime(2026, 3, 14, 9, 30, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Virtual-clock scheduler
# ---------------------------------------------------------------------------


class FakeTimer:
    """Timer handle returned by ``FakeScheduler.call_later``."""

    def __init__(self, when: float, seq: int, callback: Callable[[], None]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic ``Scheduler``: timers only fire inside ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.delays: list[float] = []
        self._timers: list[FakeTimer] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        self.delays.append(delay)
        timer = FakeTimer(self.now + max(delay, 0.0), next(self._seq), callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in deadline order."""
        target = self.now + seconds
        while True:
            self._timers = [t for t in self._timers if not t.cancelled]
            due = [t for t in self._timers if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback()
        self.now = target


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeHandle:
    """Transport handle whose lifecycle the test drives by hand."""

    def __init__(self, url: str, listener: TransportListener) -> None:
        self.url = url
        self.listener = listener
        self.ready_state = ReadyState.CONNECTING
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        self.ready_state = ReadyState.CLOSED

    # Server-side actions

    def open(self) -> None:
        self.ready_state = ReadyState.OPEN
        self.listener.on_open()

    def send(self, data: str, event: str = "message") -> None:
        self.listener.on_message(event, data)

    def drop(self) -> None:
        """Server closes the stream."""
        self.ready_state = ReadyState.CLOSED
        self.listener.on_error()

    def blip(self) -> None:
        """Transient error while the transport is still retrying."""
        self.ready_state = ReadyState.CONNECTING
        self.listener.on_error()


class FakeTransport:
    """Records every ``open`` call; can be told to fail the next opens."""

    def __init__(self) -> None:
        self.handles: list[FakeHandle] = []
        self.failures: list[Exception] = []

    def open(self, url: str, listener: TransportListener) -> FakeHandle:
        if self.failures:
            raise self.failures.pop(0)
        handle = FakeHandle(url, listener)
        self.handles.append(handle)
        return handle

    def fail_next(self, count: int = 1, message: str = "connection refused") -> None:
        self.failures.extend(TransportError(message) for _ in range(count))

    @property
    def last(self) -> FakeHandle:
        return self.handles[-1]

    @property
    def open_count(self) -> int:
        return len(self.handles)


@pytest.fixture
def scheduler() -> FakeScheduler:
    """Provide a virtual-clock scheduler starting at t=0."""
    return FakeScheduler()


@pytest.fixture
def transport() -> FakeTransport:
    """Provide a fake transport with no scripted failures."""
    return FakeTransport()


@pytest.fixture
def rng() -> random.Random:
    """Provide a seeded random source for backoff jitter."""
    return random.Random(1234)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Provide a clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


# ---------------------------------------------------------------------------
# Record factories shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_lease() -> Callable[..., DhcpLease]:
    """Factory fixture: build a DhcpLease with sensible defaults."""

    def _factory(
        ip_address: str = "192.168.1.10",
        mac_address: str = "aa:bb:cc:dd:ee:01",
        **overrides: Any,
    ) -> DhcpLease:
        defaults: dict[str, Any] = {
            "ip_address": ip_address,
            "mac_address": mac_address,
            "hostname": "host-01",
            "lease_time": FIXED_NOW + timedelta(hours=2),
            "is_active": True,
            "is_static": False,
            "vendor": "Acme",
            "pool_name": "lan",
        }
        defaults.update(overrides)
        return DhcpLease(**defaults)

    return _factory


@pytest.fixture
def make_pool() -> Callable[..., DhcpPool]:
    """Factory fixture: build a DhcpPool with sensible defaults."""

    def _factory(pool_name: str = "lan", **overrides: Any) -> DhcpPool:
        defaults: dict[str, Any] = {
            "pool_name": pool_name,
            "start_ip": "192.168.1.100",
            "end_ip": "192.168.1.199",
            "total_addresses": 100,
            "lease_duration": 86400,
            "netmask": "255.255.255.0",
        }
        defaults.update(overrides)
        return DhcpPool(**defaults)

    return _factory
