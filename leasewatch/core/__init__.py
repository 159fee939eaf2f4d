"""Shared runtime primitives: message fan-out, timers, canonical serialization."""
