"""Event decoder — turns raw stream payloads into ChangeEvents.

A noisy or partially upgraded sender must not crash the client, so
``decode`` never raises: malformed JSON, non-object payloads, unknown
``event_type`` values and schema mismatches all decode to ``None``.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from leasewatch.models.events import (
    CHANGE_EVENT_ADAPTER,
    ChangeEvent,
    ConnectionEstablishedEvent,
    DataChangedEvent,
    HeartbeatEvent,
)

logger = logging.getLogger(__name__)


def decode(raw: Any) -> ChangeEvent | None:
    """Decode one payload into a ChangeEvent, or ``None`` if it is not one.

    Parameters
    ----------
    raw:
        The payload text (``str`` or UTF-8 ``bytes``).  Any other type
        is rejected.

    Returns
    -------
    ChangeEvent | None
        The validated event, or ``None`` when the payload does not match
        exactly one of the contracted event shapes.
    """
    if not isinstance(raw, (str, bytes, bytearray)):
        return None

    try:
        return CHANGE_EVENT_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        logger.debug("Dropping undecodable payload (%d errors)", exc.error_count())
        return None
    except (ValueError, TypeError):
        logger.debug("Dropping unparseable payload")
        return None


def is_connection_established(event: ChangeEvent) -> bool:
    return isinstance(event, ConnectionEstablishedEvent)


def is_data_changed(event: ChangeEvent) -> bool:
    return isinstance(event, DataChangedEvent)


def is_heartbeat(event: ChangeEvent) -> bool:
    return isinstance(event, HeartbeatEvent)
