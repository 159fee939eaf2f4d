"""Canonical serialization helpers for record comparison.

Two records are considered equal when their canonical JSON bytes are
equal.  Canonical form makes the comparison independent of dict key
order, so only a real field difference counts as a change.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str
    ).encode("utf-8")


def record_payload(record: Any) -> Any:
    """Return the JSON-compatible form of a record.

    Pydantic models are dumped in JSON mode (extra fields included);
    anything else is assumed to already be JSON-compatible.
    """
    if isinstance(record, BaseModel):
        return record.model_dump(mode="json")
    return record
