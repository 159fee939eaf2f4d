"""Snapshot differ — keyed structural diff between two record listings.

Compares two snapshots by record identity and produces a changeset
describing which records were added, updated or removed.  Records are
opaque: identity comes from a key function and content equality from the
canonical JSON bytes of a serializer, so any visible field difference
(including fields the display never shows) counts as an update.

This is NOT a positional diff: records are matched by key, so moving a
record within the listing is not a change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from leasewatch.core.hasher import canonical_json_bytes, record_payload
from leasewatch.models.display import ChangeTag, RecordKey

logger = logging.getLogger(__name__)

KeyFunc = Callable[[Any], RecordKey]
Serializer = Callable[[Any], Any]


class RecordChange(BaseModel):
    """A single change between two snapshots.

    Attributes:
        kind: added, updated or removing.
        key: Identity of the changed record.
        old_record: The record before the change (None for additions).
        new_record: The record after the change (None for removals).

    """

    model_config = ConfigDict(frozen=True)

    kind: ChangeTag
    key: RecordKey
    old_record: Any = None
    new_record: Any = None


def index_snapshot(snapshot: Sequence[Any], key_fn: KeyFunc) -> dict[RecordKey, Any]:
    """Map each key to its record.  On a duplicate key the later record wins."""
    index: dict[RecordKey, Any] = {}
    for record in snapshot:
        key = key_fn(record)
        if key in index:
            logger.warning("Duplicate record key %s in snapshot", key)
        index[key] = record
    return index


def diff_snapshots(
    previous: Sequence[Any],
    new: Sequence[Any],
    key_fn: KeyFunc,
    serialize: Serializer = record_payload,
) -> tuple[RecordChange, ...]:
    """Keyed diff of two snapshots.

    Algorithm:
        1. Index both snapshots by key.
        2. Walk *new* in order: unknown keys are additions; known keys
           whose canonical bytes differ are updates.
        3. Walk *previous* in order: keys missing from *new* are removals.

    Returns additions/updates in *new* order followed by removals in
    *previous* order.
    """
    old_index = index_snapshot(previous, key_fn)
    new_index = index_snapshot(new, key_fn)
    changes: list[RecordChange] = []

    for key, record in new_index.items():
        old = old_index.get(key)
        if key not in old_index:
            changes.append(
                RecordChange(kind=ChangeTag.ADDED, key=key, new_record=record)
            )
        elif _content(old, serialize) != _content(record, serialize):
            changes.append(
                RecordChange(
                    kind=ChangeTag.UPDATED, key=key, old_record=old, new_record=record
                )
            )

    for key, record in old_index.items():
        if key not in new_index:
            changes.append(
                RecordChange(kind=ChangeTag.REMOVING, key=key, old_record=record)
            )

    return tuple(changes)


def build_frozen_view(
    previous: Sequence[Any],
    new: Sequence[Any],
    key_fn: KeyFunc,
) -> tuple[Any, ...]:
    """Merge two snapshots without moving any previously displayed record.

    Walks *previous* in order, substituting the new version of each record
    that still exists and keeping removed records in place; then appends,
    in *new* order, every record whose key *previous* did not have.
    """
    new_index = index_snapshot(new, key_fn)
    seen: set[RecordKey] = set()
    merged: list[Any] = []

    for record in previous:
        key = key_fn(record)
        seen.add(key)
        merged.append(new_index.get(key, record))

    for record in new:
        key = key_fn(record)
        if key not in seen:
            seen.add(key)
            merged.append(record)

    return tuple(merged)


def _content(record: Any, serialize: Serializer) -> bytes:
    return canonical_json_bytes(serialize(record))
