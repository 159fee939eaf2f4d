"""Unit tests for LeaseWatchConfig and the canonical hashing helpers."""

from __future__ import annotations

from leasewatch.config import LeaseWatchConfig
from leasewatch.core.hasher import canonical_json_bytes, record_payload
from leasewatch.stream.backoff import BackoffPolicy


class TestDefaults:
    def test_defaults(self, monkeypatch):
        for name in ("LEASEWATCH_API_BASE_URL", "LEASEWATCH_MAX_RECONNECT_ATTEMPTS"):
            monkeypatch.delenv(name, raising=False)
        cfg = LeaseWatchConfig(_env_file=None)
        assert cfg.api_base_url == "http://localhost:8000/api/v1"
        assert cfg.max_reconnect_attempts == 10
        assert cfg.heartbeat_timeout_ms == 65_000
        assert cfg.animation_window_ms == 1_000

    def test_derived_urls(self):
        cfg = LeaseWatchConfig(_env_file=None, api_base_url="http://dhcp.lan:8000/api/v1/")
        assert cfg.stream_url == "http://dhcp.lan:8000/api/v1/leases/stream"
        assert cfg.leases_url == "http://dhcp.lan:8000/api/v1/leases"
        assert cfg.pools_url == "http://dhcp.lan:8000/api/v1/pools"

    def test_backoff_policy(self):
        cfg = LeaseWatchConfig(
            _env_file=None,
            reconnect_base_delay_ms=500,
            reconnect_max_delay_ms=4000,
            reconnect_jitter_ms=0,
        )
        assert cfg.backoff_policy() == BackoffPolicy(base_ms=500, max_ms=4000, jitter_ms=0)


class TestEnvOverrides:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("LEASEWATCH_API_BASE_URL", "http://10.0.0.1/api")
        monkeypatch.setenv("LEASEWATCH_MAX_RECONNECT_ATTEMPTS", "3")
        monkeypatch.setenv("LEASEWATCH_HEARTBEAT_TIMEOUT_MS", "5000")
        cfg = LeaseWatchConfig(_env_file=None)
        assert cfg.api_base_url == "http://10.0.0.1/api"
        assert cfg.max_reconnect_attempts == 3
        assert cfg.heartbeat_timeout_ms == 5000

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("LEASEWATCH_LOG_LEVEL", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("LEASEWATCH_LOG_LEVEL=DEBUG\n")
        cfg = LeaseWatchConfig(_env_file=env_file)
        assert cfg.log_level == "DEBUG"


class TestCanonicalJson:
    def test_key_order_independent(self):
        assert canonical_json_bytes({"b": 1, "a": 2}) == canonical_json_bytes({"a": 2, "b": 1})

    def test_compact(self):
        assert canonical_json_bytes({"a": [1, 2]}) == b'{"a":[1,2]}'

    def test_model_payload_includes_extra_fields(self, make_lease):
        lease = make_lease(lease_id=99)
        payload = record_payload(lease)
        assert payload["lease_id"] == 99
        assert payload["lease_time"].startswith("2026-03-14T11:30:00")
