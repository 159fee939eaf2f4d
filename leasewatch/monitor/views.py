"""Lease listing views — search filtering, sorting and display formatting.

Pure functions over ``DhcpLease`` sequences.  None of them mutate their
input; filtering and sorting return new lists.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from leasewatch.models.leases import DhcpLease


class LeaseStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    STATIC = "static"


class SortableField(str, Enum):
    IP_ADDRESS = "ip_address"
    MAC_ADDRESS = "mac_address"
    HOSTNAME = "hostname"
    LEASE_TIME = "lease_time"
    IS_ACTIVE = "is_active"
    IS_STATIC = "is_static"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"
    NONE = "none"


class SortConfig(BaseModel):
    """Current sort column and direction.  ``field=None`` means server order."""

    model_config = ConfigDict(frozen=True)

    field: SortableField | None = None
    direction: SortDirection = SortDirection.NONE


# Label and Rich style per status.
_STATUS_DISPLAY: dict[LeaseStatus, tuple[str, str]] = {
    LeaseStatus.ACTIVE: ("Active", "green"),
    LeaseStatus.STATIC: ("Static", "blue"),
    LeaseStatus.EXPIRED: ("Expired", "red"),
}


# ---------------------------------------------------------------------------
# Status and formatting
# ---------------------------------------------------------------------------


def lease_status(lease: DhcpLease) -> LeaseStatus:
    if lease.is_static:
        return LeaseStatus.STATIC
    return LeaseStatus.ACTIVE if lease.is_active else LeaseStatus.EXPIRED


def lease_status_display(status: LeaseStatus | str) -> tuple[str, str]:
    """Return ``(label, style)`` for a status; unknown values map to Unknown."""
    try:
        return _STATUS_DISPLAY[LeaseStatus(status)]
    except ValueError:
        return ("Unknown", "bright_black")


def format_lease_expiration(lease_time: datetime, now: datetime | None = None) -> str:
    """Time left until *lease_time* as ``"Nd Nh"``, ``"Nh Nm"`` or ``"Nm"``.

    Naive datetimes are taken as UTC.  Returns ``"Expired"`` once the
    lease time has passed.
    """
    now = _aware(now or datetime.now(timezone.utc))
    remaining = (_aware(lease_time) - now).total_seconds()
    if remaining <= 0:
        return "Expired"

    total_minutes = int(remaining // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours >= 24:
        return f"{hours // 24}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_mac_address(mac_address: str) -> str:
    return mac_address.upper()


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def matches_search_term(lease: DhcpLease, search_term: str) -> bool:
    """Case-insensitive substring match on IP, MAC, hostname, vendor and status."""
    term = search_term.strip().lower()
    if not term:
        return True

    label, _ = lease_status_display(lease_status(lease))
    haystack = (
        lease.ip_address,
        lease.mac_address,
        lease.hostname or "",
        lease.vendor or "",
        label,
    )
    return any(term in value.lower() for value in haystack)


def filter_leases(leases: Sequence[DhcpLease], search_term: str) -> list[DhcpLease]:
    if not search_term.strip():
        return list(leases)
    return [lease for lease in leases if matches_search_term(lease, search_term)]


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def sort_key(lease: DhcpLease, field: SortableField) -> Any:
    """Comparable value of *field* for *lease*."""
    if field == SortableField.IP_ADDRESS:
        return _ip_sort_key(lease.ip_address)
    if field == SortableField.MAC_ADDRESS:
        return lease.mac_address.lower()
    if field == SortableField.HOSTNAME:
        return (lease.hostname or "").lower()
    if field == SortableField.LEASE_TIME:
        return _aware(lease.lease_time)
    if field == SortableField.IS_ACTIVE:
        return int(lease.is_active)
    if field == SortableField.IS_STATIC:
        return int(lease.is_static)
    raise ValueError(f"Unsortable field: {field!r}")


def sort_leases(leases: Sequence[DhcpLease], sort_config: SortConfig) -> list[DhcpLease]:
    """Stable sort; returns a copy in original order when no sort is active."""
    if sort_config.field is None or sort_config.direction == SortDirection.NONE:
        return list(leases)
    field = sort_config.field
    return sorted(
        leases,
        key=lambda lease: sort_key(lease, field),
        reverse=sort_config.direction == SortDirection.DESC,
    )


def next_sort_config(current: SortConfig, field: SortableField) -> SortConfig:
    """Column-click cycle: asc -> desc -> none; a new column starts at asc."""
    if current.field != field:
        return SortConfig(field=field, direction=SortDirection.ASC)
    if current.direction == SortDirection.ASC:
        return SortConfig(field=field, direction=SortDirection.DESC)
    if current.direction == SortDirection.DESC:
        return SortConfig(field=None, direction=SortDirection.NONE)
    return SortConfig(field=field, direction=SortDirection.ASC)


def _ip_sort_key(ip_address: str) -> tuple[tuple[int, Any], ...]:
    # Numeric octets sort before anything that is not a number.
    parts = []
    for octet in ip_address.split("."):
        if octet.isdigit():
            parts.append((0, int(octet)))
        else:
            parts.append((1, octet.lower()))
    return tuple(parts)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
