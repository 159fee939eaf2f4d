"""MessageDispatcher — fans typed messages out to ALL subscribers.

Every message dispatched through this module is delivered to every
registered subscriber, in registration order.  Subscriber failures are
logged but do not prevent delivery to remaining subscribers, and never
propagate back into the component that emitted the message.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]


class MessageDispatcher(Generic[T]):
    """Routes messages of one type to all subscribed callbacks.

    Usage
    -----
    >>> statuses: MessageDispatcher[ConnectionStatus] = MessageDispatcher("status")
    >>> unsubscribe = statuses.subscribe(print)
    >>> statuses.dispatch(status)
    >>> unsubscribe()
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._subscribers: list[Subscriber[T]] = []

    @property
    def name(self) -> str:
        """Channel name used in log messages."""
        return self._name

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ------------------------------------------------------------------
    # Subscriber management
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber[T]) -> Callable[[], None]:
        """Register a callback and return a function that removes it.

        Duplicate registration of the same callback is silently ignored.
        """
        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            self.unsubscribe(callback)

        return _unsubscribe

    def unsubscribe(self, callback: Subscriber[T]) -> None:
        """Remove a previously registered callback."""
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def clear(self) -> None:
        """Drop every subscriber."""
        self._subscribers.clear()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, message: T) -> int:
        """Deliver *message* to every subscriber.

        Returns the number of subscribers that accepted the message
        without raising.
        """
        delivered = 0
        # Iterate over a copy: a subscriber may unsubscribe itself.
        for callback in list(self._subscribers):
            try:
                callback(message)
                delivered += 1
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Subscriber %r on channel %s failed", callback, self._name
                )
        return delivered
