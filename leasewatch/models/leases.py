"""DHCP lease and pool records as served by the lease API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from leasewatch.models.display import RecordKey


class DhcpLease(BaseModel):
    """A single DHCP lease.

    Identity is the ``(ip_address, mac_address)`` pair.  Fields the client
    does not know about are kept (``extra="allow"``) so that a server-side
    change to any of them still counts as an update.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    ip_address: str
    mac_address: str
    hostname: str | None = None
    lease_time: datetime
    is_active: bool = True
    is_static: bool = False
    vendor: str | None = None
    pool_name: str | None = None

    @property
    def key(self) -> RecordKey:
        return lease_identity(self)


class DhcpPool(BaseModel):
    """An address pool served by the DHCP server."""

    model_config = ConfigDict(frozen=True)

    pool_name: str
    start_ip: str
    end_ip: str
    total_addresses: int
    lease_duration: int
    netmask: str


def lease_identity(lease: DhcpLease) -> RecordKey:
    """Reconciliation key for a lease."""
    return (lease.ip_address, lease.mac_address)


def lease_key(lease: DhcpLease) -> str:
    """Display key: ``"<ip>-<mac without colons>"``."""
    return f"{lease.ip_address}-{lease.mac_address.replace(':', '')}"
