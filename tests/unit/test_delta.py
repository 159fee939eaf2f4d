"""Unit tests for the keyed snapshot differ and frozen-view builder."""

from __future__ import annotations

import logging

from leasewatch.models.display import ChangeTag
from leasewatch.reconcile.delta import build_frozen_view, diff_snapshots, index_snapshot


def key_fn(record: dict) -> tuple[str, str]:
    return (record["ip"], record["mac"])


def rec(ip: str, mac: str = "m", **fields) -> dict:
    return {"ip": ip, "mac": mac, **fields}


A, B, C, D = rec("a"), rec("b"), rec("c", v=1), rec("d")
C2 = rec("c", v=2)


class TestDiffSnapshots:
    def test_identical_snapshots_have_no_changes(self):
        assert diff_snapshots([A, B, C], [A, B, C], key_fn) == ()

    def test_reorder_is_not_a_change(self):
        assert diff_snapshots([A, B, C], [C, A, B], key_fn) == ()

    def test_add_update_remove(self):
        changes = diff_snapshots([A, B, C], [A, C2, D], key_fn)
        kinds = {change.key: change.kind for change in changes}
        assert kinds == {
            ("b", "m"): ChangeTag.REMOVING,
            ("c", "m"): ChangeTag.UPDATED,
            ("d", "m"): ChangeTag.ADDED,
        }

    def test_change_order(self):
        changes = diff_snapshots([A, B, C], [D, C2, A], key_fn)
        assert [c.key[0] for c in changes] == ["d", "c", "b"]

    def test_update_carries_both_versions(self):
        (change,) = diff_snapshots([C], [C2], key_fn)
        assert change.old_record == C
        assert change.new_record == C2

    def test_key_order_inside_record_irrelevant(self):
        left = {"ip": "x", "mac": "m", "a": 1, "b": 2}
        right = {"b": 2, "a": 1, "mac": "m", "ip": "x"}
        assert diff_snapshots([left], [right], key_fn) == ()

    def test_field_not_shown_still_counts(self):
        old = rec("x", internal_flag=False)
        new = rec("x", internal_flag=True)
        (change,) = diff_snapshots([old], [new], key_fn)
        assert change.kind == ChangeTag.UPDATED

    def test_same_ip_different_mac_is_a_different_record(self):
        changes = diff_snapshots([rec("x", "m1")], [rec("x", "m2")], key_fn)
        assert {c.kind for c in changes} == {ChangeTag.ADDED, ChangeTag.REMOVING}

    def test_empty_snapshots(self):
        assert diff_snapshots([], [], key_fn) == ()
        assert [c.kind for c in diff_snapshots([], [A], key_fn)] == [ChangeTag.ADDED]
        assert [c.kind for c in diff_snapshots([A], [], key_fn)] == [ChangeTag.REMOVING]

    def test_custom_serializer(self):
        # Only compare the "v" field.
        changes = diff_snapshots(
            [rec("c", v=1, noise=1)],
            [rec("c", v=1, noise=2)],
            key_fn,
            serialize=lambda r: r["v"],
        )
        assert changes == ()


class TestIndexSnapshot:
    def test_duplicate_key_later_wins(self, caplog):
        first = rec("x", v=1)
        second = rec("x", v=2)
        with caplog.at_level(logging.WARNING):
            index = index_snapshot([first, second], key_fn)
        assert index[("x", "m")] == second
        assert "Duplicate record key" in caplog.text


class TestBuildFrozenView:
    def test_previous_order_kept_and_additions_appended(self):
        view = build_frozen_view([A, B, C], [A, C2, D], key_fn)
        assert view == (A, B, C2, D)

    def test_new_order_ignored_for_known_records(self):
        view = build_frozen_view([A, B, C], [C2, B, A], key_fn)
        assert view == (A, B, C2)

    def test_additions_in_new_order(self):
        e = rec("e")
        view = build_frozen_view([A], [e, A, D], key_fn)
        assert view == (A, e, D)

    def test_removed_records_stay_in_place(self):
        view = build_frozen_view([A, B, C], [], key_fn)
        assert view == (A, B, C)

    def test_view_is_tuple(self):
        assert isinstance(build_frozen_view([], [A], key_fn), tuple)
