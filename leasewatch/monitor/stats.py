"""Descriptive statistics over a lease snapshot."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict

from leasewatch.models.leases import DhcpLease, DhcpPool


class LeaseStats(BaseModel):
    """Summary figures shown above the lease table."""

    model_config = ConfigDict(frozen=True)

    total_active: int = 0
    available_ips: int = 0
    expiring_today: int = 0
    device_types: int = 0


def calculate_total_leases(leases: Sequence[DhcpLease]) -> int:
    """Number of active leases."""
    return sum(1 for lease in leases if lease.is_active)


def calculate_available_ips(
    pools: Sequence[DhcpPool], leases: Sequence[DhcpLease]
) -> int:
    """Free addresses summed over pools, never negative per pool."""
    total = 0
    for pool in pools:
        in_use = sum(
            1
            for lease in leases
            if lease.is_active and lease.pool_name == pool.pool_name
        )
        total += max(0, pool.total_addresses - in_use)
    return total


def calculate_expiring_today(
    leases: Sequence[DhcpLease], now: datetime | None = None
) -> int:
    """Active leases expiring after *now* and before the end of *now*'s day.

    *now* defaults to the current local time; its timezone defines the day.
    """
    now = now or datetime.now().astimezone()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    end_of_day = now.replace(hour=23, minute=59, second=59, microsecond=999_999)

    count = 0
    for lease in leases:
        if not lease.is_active:
            continue
        lease_time = lease.lease_time
        if lease_time.tzinfo is None:
            lease_time = lease_time.replace(tzinfo=timezone.utc)
        if now < lease_time <= end_of_day:
            count += 1
    return count


def calculate_device_types(leases: Sequence[DhcpLease]) -> int:
    """Distinct non-blank vendor strings."""
    return len({lease.vendor for lease in leases if lease.vendor and lease.vendor.strip()})


def calculate_stats(
    leases: Sequence[DhcpLease],
    pools: Sequence[DhcpPool] = (),
    now: datetime | None = None,
) -> LeaseStats:
    return LeaseStats(
        total_active=calculate_total_leases(leases),
        available_ips=calculate_available_ips(pools, leases),
        expiring_today=calculate_expiring_today(leases, now),
        device_types=calculate_device_types(leases),
    )
