"""Cancellable timer scheduling for the single-threaded runtime.

Defines the ``Scheduler`` and ``TimerHandle`` Protocols that every timer
owner (stream connection, reconciliation engine) depends on, plus the
default asyncio-backed implementation.

All callbacks run on the event loop thread; nothing here blocks.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol, runtime_checkable


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class TimerHandle(Protocol):
    """A pending timer that can be cancelled before it fires."""

    def cancel(self) -> None:
        """Prevent the callback from running.  Idempotent."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Protocol for timer backends.

    ``asyncio.AbstractEventLoop`` satisfies this protocol directly; tests
    supply a virtual-clock implementation.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run *callback* once after *delay* seconds."""
        ...


# ---------------------------------------------------------------------------
# Default implementation
# ---------------------------------------------------------------------------


class LoopScheduler:
    """Scheduler backed by an asyncio event loop.

    Parameters
    ----------
    loop:
        The loop to schedule on.  When omitted, the running loop is looked
        up on every call, so the scheduler can be created before the loop
        starts.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(delay, 0.0), callback)


def cancel_timer(handle: TimerHandle | None) -> None:
    """Cancel *handle* if one is set."""
    if handle is not None:
        handle.cancel()
