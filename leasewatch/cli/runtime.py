"""Object construction shared by the CLI commands.

Commands reach these factories through the module (``runtime.build_...``)
so tests can substitute an API client or transport backed by
``httpx.MockTransport``.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from leasewatch.api.client import LeaseApiClient
from leasewatch.config import LeaseWatchConfig, config
from leasewatch.models.leases import lease_identity
from leasewatch.monitor.views import SortableField, SortConfig, SortDirection
from leasewatch.reconcile.engine import ReconciliationEngine
from leasewatch.stream.connection import StreamConnection
from leasewatch.stream.transport import HttpxTransport, Transport


def configure_logging(level: str | None = None) -> None:
    """Route all log records to stderr through Rich."""
    logging.basicConfig(
        level=(level or config.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
        ],
    )


def resolve_config(api_url: str | None = None) -> LeaseWatchConfig:
    """The global config, with the API base URL optionally overridden."""
    if api_url:
        return config.model_copy(update={"api_base_url": api_url})
    return config


def build_api_client(cfg: LeaseWatchConfig) -> LeaseApiClient:
    return LeaseApiClient.from_config(cfg)


def build_transport(cfg: LeaseWatchConfig) -> Transport:
    return HttpxTransport(connect_timeout=cfg.request_timeout_seconds)


def build_connection(cfg: LeaseWatchConfig, transport: Transport) -> StreamConnection:
    return StreamConnection(
        cfg.stream_url,
        transport,
        max_reconnect_attempts=cfg.max_reconnect_attempts,
        backoff=cfg.backoff_policy(),
        heartbeat_timeout_ms=cfg.heartbeat_timeout_ms,
    )


def build_engine(cfg: LeaseWatchConfig) -> ReconciliationEngine:
    return ReconciliationEngine(
        lease_identity,
        animation_window_ms=cfg.animation_window_ms,
    )


async def close_transport(transport: Transport) -> None:
    aclose = getattr(transport, "aclose", None)
    if aclose is not None:
        await aclose()


def build_sort_config(field: SortableField | None, descending: bool) -> SortConfig:
    if field is None:
        return SortConfig()
    direction = SortDirection.DESC if descending else SortDirection.ASC
    return SortConfig(field=field, direction=direction)
