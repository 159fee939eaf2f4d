"""Connection status models for the stream state machine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

from leasewatch.models.events import ChangeEvent


class ConnectionState(str, Enum):
    """Lifecycle states of a stream connection.

    There is no terminal state: every state can be left by ``connect()``
    or ``disconnect()``.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class ConnectionStatus(BaseModel):
    """Point-in-time status of a stream connection.

    Owned by ``StreamConnection``; subscribers only ever see frozen copies.
    """

    model_config = ConfigDict(frozen=True)

    state: ConnectionState = ConnectionState.DISCONNECTED
    last_event: ChangeEvent | None = None
    last_event_time: datetime | None = None
    error_message: str | None = None
    reconnect_attempt_count: int = 0

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def is_connecting(self) -> bool:
        return self.state == ConnectionState.CONNECTING

    @property
    def has_error(self) -> bool:
        return self.state == ConnectionState.ERROR
