"""leasewatch data models — all Pydantic v2, all frozen (immutable)."""

from leasewatch.models.display import (
    ChangeAnnotation,
    ChangeTag,
    DisplayState,
    ReconciliationState,
    RecordKey,
)
from leasewatch.models.events import (
    CHANGE_EVENT_ADAPTER,
    EVENT_TYPE_MAP,
    ChangeEvent,
    ConnectionEstablishedEvent,
    DataChangedEvent,
    EventType,
    HeartbeatEvent,
)
from leasewatch.models.leases import DhcpLease, DhcpPool, lease_identity, lease_key
from leasewatch.models.status import ConnectionState, ConnectionStatus

__all__ = [
    # events
    "EventType",
    "ChangeEvent",
    "ConnectionEstablishedEvent",
    "DataChangedEvent",
    "HeartbeatEvent",
    "CHANGE_EVENT_ADAPTER",
    "EVENT_TYPE_MAP",
    # status
    "ConnectionState",
    "ConnectionStatus",
    # display
    "RecordKey",
    "ChangeTag",
    "ChangeAnnotation",
    "DisplayState",
    "ReconciliationState",
    # leases
    "DhcpLease",
    "DhcpPool",
    "lease_identity",
    "lease_key",
]
