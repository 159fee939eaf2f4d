"""Lease API client — snapshot fetches over HTTP.

Wraps an ``httpx.AsyncClient``.  Every failure (network error, non-2xx
status, undecodable body, records that do not validate) is raised as
``LeaseApiError`` so callers have a single exception to handle.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import TypeAdapter, ValidationError

from leasewatch.models.leases import DhcpLease, DhcpPool

if TYPE_CHECKING:
    from leasewatch.config import LeaseWatchConfig

logger = logging.getLogger(__name__)

_LEASES_ADAPTER = TypeAdapter(list[DhcpLease])
_POOLS_ADAPTER = TypeAdapter(list[DhcpPool])


class LeaseApiError(RuntimeError):
    """Raised when a snapshot cannot be fetched or decoded."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LeaseApiClient:
    """Fetches lease and pool listings from the lease API.

    Parameters
    ----------
    leases_url:
        Absolute URL of the lease listing.
    pools_url:
        Absolute URL of the pool listing.
    client:
        Client to use.  When omitted, one is created with *timeout* and
        closed by ``aclose``.
    timeout:
        Request timeout in seconds for an owned client.
    """

    def __init__(
        self,
        leases_url: str,
        pools_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._leases_url = leases_url
        self._pools_url = pools_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
            headers={"User-Agent": "leasewatch", "Accept": "application/json"},
            follow_redirects=True,
        )

    @classmethod
    def from_config(
        cls, cfg: LeaseWatchConfig, *, client: httpx.AsyncClient | None = None
    ) -> LeaseApiClient:
        """Build a client from a ``LeaseWatchConfig``."""
        return cls(
            cfg.leases_url,
            cfg.pools_url,
            client=client,
            timeout=cfg.request_timeout_seconds,
        )

    async def fetch_leases(self) -> list[DhcpLease]:
        """Return the current lease snapshot in server order."""
        payload = await self._get_json(self._leases_url)
        if isinstance(payload, dict) and "leases" in payload:
            payload = payload["leases"]
        try:
            leases = _LEASES_ADAPTER.validate_python(payload)
        except ValidationError as exc:
            raise LeaseApiError(
                f"Invalid lease payload from {self._leases_url}: "
                f"{exc.error_count()} validation errors"
            ) from exc
        logger.debug("LeaseApiClient: fetched %d leases", len(leases))
        return leases

    async def fetch_pools(self) -> list[DhcpPool]:
        """Return the configured address pools."""
        payload = await self._get_json(self._pools_url)
        if isinstance(payload, dict) and "pools" in payload:
            payload = payload["pools"]
        try:
            pools = _POOLS_ADAPTER.validate_python(payload)
        except ValidationError as exc:
            raise LeaseApiError(
                f"Invalid pool payload from {self._pools_url}: "
                f"{exc.error_count()} validation errors"
            ) from exc
        logger.debug("LeaseApiClient: fetched %d pools", len(pools))
        return pools

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> LeaseApiClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _get_json(self, url: str) -> Any:
        try:
            response = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise LeaseApiError(f"Request to {url} failed: {exc}") from exc

        if not response.is_success:
            raise LeaseApiError(
                f"Failed to fetch {url}: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise LeaseApiError(f"Response from {url} is not JSON") from exc
