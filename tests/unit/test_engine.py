"""Unit tests for the ReconciliationEngine."""

from __future__ import annotations

import pytest

from leasewatch.models.display import ChangeTag, DisplayState, ReconciliationState
from leasewatch.reconcile.engine import ReconciliationEngine


def key_fn(record: dict) -> tuple[str, str]:
    return (record["ip"], record["mac"])


def rec(ip: str, **fields) -> dict:
    return {"ip": ip, "mac": "m", **fields}


A, B, C, D = rec("a"), rec("b"), rec("c", v=1), rec("d")
C2 = rec("c", v=2)


@pytest.fixture
def engine(scheduler, fixed_clock):
    return ReconciliationEngine(key_fn, scheduler=scheduler, clock=fixed_clock)


@pytest.fixture
def displays(engine) -> list[DisplayState]:
    seen: list[DisplayState] = []
    engine.display_updated.subscribe(seen.append)
    return seen


@pytest.fixture
def refreshes(engine) -> list[ReconciliationState]:
    seen: list[ReconciliationState] = []
    engine.refresh_due.subscribe(seen.append)
    return seen


# ---------------------------------------------------------------------------
# Test: first snapshot and no-change adoption
# ---------------------------------------------------------------------------


class TestAdoption:
    def test_first_snapshot_adopted_without_animation(self, engine, displays, scheduler):
        engine.apply([A, B])
        assert displays[-1].records == (A, B)
        assert displays[-1].annotations == {}
        assert not engine.is_animating
        assert scheduler.pending == []
        assert engine.state.previous_snapshot == (A, B)

    def test_empty_first_snapshot(self, engine, displays):
        engine.apply([])
        assert displays[-1].records == ()
        assert engine.state.previous_snapshot == ()

    def test_no_change_adopts_new_order(self, engine, displays, scheduler):
        engine.apply([A, B, C])
        engine.apply([C, B, A])
        assert displays[-1].records == (C, B, A)
        assert not engine.is_animating
        assert scheduler.pending == []
        assert engine.state.previous_snapshot == (C, B, A)

    def test_second_empty_after_empty_is_no_change(self, engine, displays):
        engine.apply([])
        engine.apply([])
        assert len(displays) == 2
        assert not engine.is_animating


# ---------------------------------------------------------------------------
# Test: animation window
# ---------------------------------------------------------------------------


class TestAnimationWindow:
    def test_add_update_remove_scenario(self, engine, displays, scheduler, fixed_clock):
        engine.apply([A, B, C])
        engine.apply([A, C2, D])

        frozen = displays[-1]
        assert frozen.records == (A, B, C2, D)
        assert frozen.is_animating
        assert {k: a.tag for k, a in frozen.annotations.items()} == {
            ("b", "m"): ChangeTag.REMOVING,
            ("c", "m"): ChangeTag.UPDATED,
            ("d", "m"): ChangeTag.ADDED,
        }
        assert all(a.timestamp == fixed_clock() for a in frozen.annotations.values())
        assert frozen.removing_count == frozen.updated_count == frozen.added_count == 1
        assert scheduler.delays[-1] == pytest.approx(1.0)

        scheduler.advance(0.5)
        assert engine.is_animating

        scheduler.advance(0.5)
        final = displays[-1]
        assert final.records == (A, C2, D)
        assert final.annotations == {}
        assert not final.is_animating
        assert engine.state.previous_snapshot == (A, C2, D)

    def test_annotations_only_for_changed_keys(self, engine, displays):
        engine.apply([A, B])
        engine.apply([A, B, D])
        assert set(displays[-1].annotations) == {("d", "m")}
        assert displays[-1].annotation_for(("a", "m")) is None

    def test_displayed_records_never_jump(self, engine, displays):
        engine.apply([A, B, C])
        engine.apply([D, C2, A])
        assert displays[-1].records[:3] == (A, B, C2)

    def test_custom_window(self, scheduler, fixed_clock):
        engine = ReconciliationEngine(
            key_fn, scheduler=scheduler, clock=fixed_clock, animation_window_ms=250
        )
        engine.apply([A])
        engine.apply([B])
        assert scheduler.delays[-1] == pytest.approx(0.25)
        scheduler.advance(0.25)
        assert not engine.is_animating

    def test_state_copy_is_read_only(self, engine):
        engine.apply([A])
        engine.apply([B])
        state = engine.state
        assert state.is_animating
        with pytest.raises(Exception):
            state.is_animating = False  # type: ignore[misc]
        assert engine.is_animating


# ---------------------------------------------------------------------------
# Test: refresh coalescing
# ---------------------------------------------------------------------------


class TestCoalescing:
    def test_apply_during_window_dropped_and_flagged(self, engine, displays, scheduler):
        engine.apply([A])
        engine.apply([A, B])
        published = len(displays)

        engine.apply([A, B, C])
        assert len(displays) == published
        assert engine.pending_refresh

        scheduler.advance(1.0)
        # The target is the snapshot that started the window, not the dropped one.
        assert displays[-1].records == (A, B)

    def test_request_refresh_outside_window(self, engine):
        engine.apply([A])
        assert engine.request_refresh() is True
        assert not engine.pending_refresh

    def test_burst_during_window_gives_one_refresh(self, engine, scheduler, refreshes):
        engine.apply([A])
        engine.apply([A, B])
        results = [engine.request_refresh() for _ in range(50)]

        assert results == [False] * 50
        assert refreshes == []
        scheduler.advance(1.0)
        assert len(refreshes) == 1
        assert not engine.pending_refresh
        assert refreshes[0].pending_refresh is False

    def test_no_refresh_without_pending(self, engine, scheduler, refreshes):
        engine.apply([A])
        engine.apply([B])
        scheduler.advance(1.0)
        assert refreshes == []

    def test_refresh_due_after_display_restored(self, engine, scheduler):
        order: list[str] = []
        engine.display_updated.subscribe(lambda d: order.append(f"display:{d.is_animating}"))
        engine.refresh_due.subscribe(lambda s: order.append("refresh"))

        engine.apply([A])
        engine.apply([B])
        engine.request_refresh()
        scheduler.advance(1.0)
        assert order[-2:] == ["display:False", "refresh"]

    def test_refresh_subscriber_may_apply_immediately(self, engine, scheduler, displays):
        engine.apply([A])
        engine.apply([A, B])
        engine.request_refresh()
        engine.refresh_due.subscribe(lambda state: engine.apply([A, B, C]))

        scheduler.advance(1.0)
        assert engine.is_animating
        assert displays[-1].records == (A, B, C)


# ---------------------------------------------------------------------------
# Test: dispose
# ---------------------------------------------------------------------------


class TestDispose:
    def test_dispose_cancels_timer(self, engine, displays, scheduler, refreshes):
        engine.apply([A])
        engine.apply([B])
        engine.request_refresh()
        engine.dispose()

        assert scheduler.pending == []
        scheduler.advance(10)
        assert refreshes == []

    def test_apply_after_dispose_ignored(self, engine, displays):
        engine.apply([A])
        engine.dispose()
        engine.apply([B])
        assert engine.state.display_snapshot == (A,)
        assert engine.state.disposed

    def test_dispose_clears_subscribers(self, engine, displays):
        engine.dispose()
        assert engine.display_updated.subscriber_count == 0
        assert engine.refresh_due.subscriber_count == 0
        assert engine.request_refresh() is False
