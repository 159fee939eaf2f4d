"""ReconciliationEngine — visual continuity across snapshot refreshes.

Each fresh snapshot is diffed against the previously displayed one.  When
something changed, the engine publishes a *frozen merged view* (previous
order kept, removed records still present, new records appended) tagged
with per-record annotations, and holds it for a fixed animation window.
When the window closes the real snapshot replaces the frozen view.

Refresh coalescing
------------------
While a window is open, snapshots passed to ``apply`` are dropped and
``request_refresh`` refuses; both only set the binary ``pending_refresh``
flag.  When the window closes with the flag set, ``refresh_due`` fires
exactly once, so a burst of N change notifications costs one trailing
fetch rather than N.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from leasewatch.core.dispatcher import MessageDispatcher
from leasewatch.core.hasher import record_payload
from leasewatch.core.scheduling import LoopScheduler, Scheduler, TimerHandle, cancel_timer
from leasewatch.models.display import (
    ChangeAnnotation,
    DisplayState,
    ReconciliationState,
    RecordKey,
)
from leasewatch.reconcile.delta import (
    KeyFunc,
    Serializer,
    build_frozen_view,
    diff_snapshots,
)

logger = logging.getLogger(__name__)

DEFAULT_ANIMATION_WINDOW_MS = 1_000


class ReconciliationEngine:
    """Owns the previous/display snapshots of one display surface.

    Parameters
    ----------
    key_fn:
        Maps a record to its composite identity.
    serialize:
        Maps a record to JSON-compatible data for content comparison.
        Defaults to ``model_dump(mode="json")`` for Pydantic models.
    scheduler:
        Timer backend for the animation window.
    animation_window_ms:
        How long a frozen view is held.
    clock:
        Timestamp source for annotations and display states.

    Messages
    --------
    ``display_updated`` carries a ``DisplayState`` each time the display
    changes; ``refresh_due`` carries the engine state when a coalesced
    refresh should be fetched now.
    """

    def __init__(
        self,
        key_fn: KeyFunc,
        *,
        serialize: Serializer = record_payload,
        scheduler: Scheduler | None = None,
        animation_window_ms: int = DEFAULT_ANIMATION_WINDOW_MS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._key_fn = key_fn
        self._serialize = serialize
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._window_s = animation_window_ms / 1000.0
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self.display_updated: MessageDispatcher[DisplayState] = MessageDispatcher(
            "display_updated"
        )
        self.refresh_due: MessageDispatcher[ReconciliationState] = MessageDispatcher(
            "refresh_due"
        )

        self._previous: tuple[Any, ...] | None = None
        self._display: tuple[Any, ...] = ()
        self._target: tuple[Any, ...] = ()
        self._annotations: dict[RecordKey, ChangeAnnotation] = {}
        self._animating = False
        self._pending_refresh = False
        self._disposed = False
        self._window_timer: TimerHandle | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_animating(self) -> bool:
        return self._animating

    @property
    def pending_refresh(self) -> bool:
        return self._pending_refresh

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def state(self) -> ReconciliationState:
        """Read-only copy of the reconciliation state."""
        return ReconciliationState(
            previous_snapshot=self._previous,
            display_snapshot=self._display,
            annotations=dict(self._annotations),
            is_animating=self._animating,
            pending_refresh=self._pending_refresh,
            disposed=self._disposed,
        )

    @property
    def display(self) -> DisplayState:
        """What is on screen right now."""
        return DisplayState(
            records=self._display,
            annotations=dict(self._annotations),
            is_animating=self._animating,
            updated_at=self._clock(),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply(self, snapshot: Sequence[Any]) -> None:
        """Reconcile a freshly fetched snapshot into the display."""
        if self._disposed:
            logger.debug("ReconciliationEngine: apply() after dispose ignored")
            return

        new = tuple(snapshot)

        # First snapshot: adopt as-is, no animation on initial load.
        if self._previous is None:
            self._adopt(new)
            return

        if self._animating:
            self._pending_refresh = True
            logger.debug(
                "ReconciliationEngine: snapshot of %d records dropped during window",
                len(new),
            )
            return

        changes = diff_snapshots(self._previous, new, self._key_fn, self._serialize)
        if not changes:
            self._adopt(new)
            return

        now = self._clock()
        self._annotations = {
            change.key: ChangeAnnotation(tag=change.kind, timestamp=now)
            for change in changes
        }
        self._display = build_frozen_view(self._previous, new, self._key_fn)
        self._target = new
        self._animating = True
        logger.debug(
            "ReconciliationEngine: %d changes, holding frozen view of %d records",
            len(changes),
            len(self._display),
        )
        self._emit()
        self._window_timer = self._scheduler.call_later(
            self._window_s, self._on_window_closed
        )

    def request_refresh(self) -> bool:
        """Ask whether a refresh may be fetched now.

        Returns ``True`` when the caller should fetch immediately.  During
        an animation window the request is remembered instead and
        ``False`` is returned; ``refresh_due`` fires once the window ends.
        """
        if self._disposed:
            return False
        if self._animating:
            self._pending_refresh = True
            return False
        return True

    def dispose(self) -> None:
        """Cancel the animation timer and detach every subscriber."""
        cancel_timer(self._window_timer)
        self._window_timer = None
        self._disposed = True
        self._animating = False
        self._pending_refresh = False
        self.display_updated.clear()
        self.refresh_due.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _on_window_closed(self) -> None:
        self._window_timer = None
        if self._disposed:
            return
        self._animating = False
        self._adopt(self._target)

        if self._pending_refresh:
            self._pending_refresh = False
            logger.debug("ReconciliationEngine: coalesced refresh due")
            self.refresh_due.dispatch(self.state)

    def _adopt(self, snapshot: tuple[Any, ...]) -> None:
        self._previous = snapshot
        self._display = snapshot
        self._target = snapshot
        self._annotations = {}
        self._emit()

    def _emit(self) -> None:
        self.display_updated.dispatch(self.display)
