"""Reconciliation layer — keyed snapshot diffing and animation windows."""

from leasewatch.reconcile.delta import (
    RecordChange,
    build_frozen_view,
    diff_snapshots,
    index_snapshot,
)
from leasewatch.reconcile.engine import ReconciliationEngine

__all__ = [
    "RecordChange",
    "ReconciliationEngine",
    "build_frozen_view",
    "diff_snapshots",
    "index_snapshot",
]
