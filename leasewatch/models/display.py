"""Reconciliation models — change annotations and display state.

Records are opaque here: the engine only knows them through a key
function and a serializer, so these models hold them as ``Any``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Composite natural key: two string fields unique within a snapshot.
RecordKey = tuple[str, str]


class ChangeTag(str, Enum):
    """How a record changed between two snapshots."""

    ADDED = "added"
    UPDATED = "updated"
    REMOVING = "removing"


class ChangeAnnotation(BaseModel):
    """Per-record change tag, valid only during an animation window."""

    model_config = ConfigDict(frozen=True)

    tag: ChangeTag
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class DisplayState(BaseModel):
    """What the renderer should show right now.

    During an animation window ``records`` is the frozen merged view
    (removed records still in place) and ``annotations`` tags every
    changed key.  Outside a window ``annotations`` is empty.
    """

    model_config = ConfigDict(frozen=True)

    records: tuple[Any, ...] = ()
    annotations: dict[RecordKey, ChangeAnnotation] = {}
    is_animating: bool = False
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def annotation_for(self, key: RecordKey) -> ChangeAnnotation | None:
        return self.annotations.get(key)

    @property
    def added_count(self) -> int:
        return self._count(ChangeTag.ADDED)

    @property
    def updated_count(self) -> int:
        return self._count(ChangeTag.UPDATED)

    @property
    def removing_count(self) -> int:
        return self._count(ChangeTag.REMOVING)

    def _count(self, tag: ChangeTag) -> int:
        return sum(1 for a in self.annotations.values() if a.tag == tag)


class ReconciliationState(BaseModel):
    """Read-only copy of the engine's internal state."""

    model_config = ConfigDict(frozen=True)

    previous_snapshot: tuple[Any, ...] | None = None
    display_snapshot: tuple[Any, ...] = ()
    annotations: dict[RecordKey, ChangeAnnotation] = {}
    is_animating: bool = False
    pending_refresh: bool = False
    disposed: bool = False
