"""HTTP client for the lease API."""

from leasewatch.api.client import LeaseApiClient, LeaseApiError

__all__ = ["LeaseApiClient", "LeaseApiError"]
