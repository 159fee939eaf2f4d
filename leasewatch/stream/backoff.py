"""Reconnect backoff — exponential delay with a cap and uniform jitter.

``delay_ms(n) = min(base_ms * 2**n, max_ms) + uniform(0, jitter_ms)``

The jitter keeps many clients from reconnecting in lockstep after a
server restart; the cap bounds worst-case reconnection latency.
"""

from __future__ import annotations

import random

from pydantic import BaseModel, ConfigDict, Field

# Beyond this exponent every realistic base already exceeds any cap.
_MAX_EXPONENT = 62


class BackoffPolicy(BaseModel):
    """Exponential backoff with jitter, all values in milliseconds."""

    model_config = ConfigDict(frozen=True)

    base_ms: int = Field(default=1_000, gt=0)
    max_ms: int = Field(default=30_000, gt=0)
    jitter_ms: int = Field(default=1_000, ge=0)

    def base_delay_ms(self, attempt: int) -> int:
        """Deterministic part of the delay for *attempt* (no jitter)."""
        if attempt < 0:
            raise ValueError(f"attempt must be non-negative, got {attempt}")
        exponent = min(attempt, _MAX_EXPONENT)
        return min(self.base_ms * (2**exponent), self.max_ms)

    def delay_ms(self, attempt: int, rng: random.Random | None = None) -> float:
        """Delay before reconnect number *attempt* (0-based), in milliseconds."""
        source = rng or random
        return self.base_delay_ms(attempt) + source.random() * self.jitter_ms

    def delay_seconds(self, attempt: int, rng: random.Random | None = None) -> float:
        return self.delay_ms(attempt, rng) / 1000.0


DEFAULT_BACKOFF = BackoffPolicy()


def calculate_reconnect_delay(attempt: int) -> float:
    """Delay in milliseconds for *attempt* under the default policy."""
    return DEFAULT_BACKOFF.delay_ms(attempt)
