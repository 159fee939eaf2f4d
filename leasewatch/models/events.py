"""Server-push change events — the three contracted event kinds.

Every payload on the lease stream is a JSON object discriminated by its
``event_type`` field.  Each kind is a frozen, strictly validated Pydantic
model; anything that does not match exactly one of them is not an event.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class EventType(str, Enum):
    """The three contracted event types."""

    CONNECTION_ESTABLISHED = "connection_established"
    DATA_CHANGED = "data_changed"
    HEARTBEAT = "heartbeat"


class ConnectionEstablishedEvent(BaseModel):
    """Sent once by the server right after the stream opens. Informational."""

    model_config = ConfigDict(frozen=True, strict=True)

    event_type: Literal["connection_established"] = "connection_established"
    client_id: str
    message: str
    active_connections: int


class DataChangedEvent(BaseModel):
    """The lease data set changed; the client should refresh its snapshot."""

    model_config = ConfigDict(frozen=True, strict=True)

    event_type: Literal["data_changed"] = "data_changed"
    timestamp: str


class HeartbeatEvent(BaseModel):
    """Keep-alive; resets the client's liveness deadline."""

    model_config = ConfigDict(frozen=True, strict=True)

    event_type: Literal["heartbeat"] = "heartbeat"
    timestamp: int
    active_connections: int


ChangeEvent = Annotated[
    Union[ConnectionEstablishedEvent, DataChangedEvent, HeartbeatEvent],
    Field(discriminator="event_type"),
]

CHANGE_EVENT_ADAPTER: TypeAdapter[ChangeEvent] = TypeAdapter(ChangeEvent)

# Registry for lookups by event_type
EVENT_TYPE_MAP: dict[EventType, type[BaseModel]] = {
    EventType.CONNECTION_ESTABLISHED: ConnectionEstablishedEvent,
    EventType.DATA_CHANGED: DataChangedEvent,
    EventType.HEARTBEAT: HeartbeatEvent,
}
