"""Stream layer — the resilient server-push client.

Modules
-------
decoder
    ``decode`` turns raw payloads into ``ChangeEvent`` models (or ``None``).
backoff
    ``BackoffPolicy`` maps an attempt number to a reconnect delay.
transport
    ``Transport`` protocols, the SSE frame parser and the httpx backend.
connection
    ``StreamConnection``: reconnection state machine with heartbeat deadline.
"""
