"""Runtime configuration — env-driven.

Centralized config using pydantic-settings for environment variable
support. Reads from .env file and LEASEWATCH_* environment variables.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from leasewatch.stream.backoff import BackoffPolicy


class LeaseWatchConfig(BaseSettings):
    """Client configuration with environment variable overrides.

    All settings can be overridden via LEASEWATCH_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export LEASEWATCH_API_BASE_URL=http://dhcp.lan:8000/api/v1
        export LEASEWATCH_LOG_LEVEL=DEBUG
        export LEASEWATCH_MAX_RECONNECT_ATTEMPTS=20

    Or via .env file::

        LEASEWATCH_API_BASE_URL=http://dhcp.lan:8000/api/v1
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LEASEWATCH_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # Lease API endpoints
    api_base_url: str = "http://localhost:8000/api/v1"
    stream_path: str = "/leases/stream"
    leases_path: str = "/leases"
    pools_path: str = "/pools"
    request_timeout_seconds: float = 10.0

    # Stream connection
    max_reconnect_attempts: int = 10
    heartbeat_timeout_ms: int = 65_000
    reconnect_base_delay_ms: int = 1_000
    reconnect_max_delay_ms: int = 30_000
    reconnect_jitter_ms: int = 1_000

    # Reconciliation
    animation_window_ms: int = 1_000

    @property
    def stream_url(self) -> str:
        """Absolute URL of the server-push lease stream."""
        return self._join(self.stream_path)

    @property
    def leases_url(self) -> str:
        """Absolute URL of the lease listing."""
        return self._join(self.leases_path)

    @property
    def pools_url(self) -> str:
        """Absolute URL of the pool listing."""
        return self._join(self.pools_path)

    def backoff_policy(self) -> BackoffPolicy:
        """Build the reconnect backoff policy from the configured delays."""
        return BackoffPolicy(
            base_ms=self.reconnect_base_delay_ms,
            max_ms=self.reconnect_max_delay_ms,
            jitter_ms=self.reconnect_jitter_ms,
        )

    def _join(self, path: str) -> str:
        return f"{self.api_base_url.rstrip('/')}/{path.lstrip('/')}"


# Module-level singleton: import as `from leasewatch.config import config`
config = LeaseWatchConfig()
