"""Server-push transport — one Server-Sent Events subscription per handle.

Transport boundary
------------------
``StreamConnection`` depends only on the ``Transport`` / ``TransportHandle``
/ ``TransportListener`` Protocols defined here, mirroring a browser
``EventSource``: open a URL, receive ``on_open``, ``on_message(event, data)``
and ``on_error`` callbacks, inspect ``ready_state``, ``close()``.

``HttpxTransport`` is the production backend.  It streams the response
body of a long-lived ``GET`` through ``httpx.AsyncClient`` and frames it
with ``SSEParser``.  Unlike a browser it never retries on its own: every
failure leaves the handle ``CLOSED`` and reconnection is entirely the
connection manager's decision.
"""

from __future__ import annotations

import asyncio
import logging
from enum import IntEnum
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

_STREAM_HEADERS = {
    "Accept": "text/event-stream",
    "Cache-Control": "no-cache",
}


class TransportError(RuntimeError):
    """Raised when a transport-level operation fails."""


class ReadyState(IntEnum):
    """Same numbering as ``EventSource.readyState``."""

    CONNECTING = 0
    OPEN = 1
    CLOSED = 2


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class TransportListener(Protocol):
    """Receives the lifecycle callbacks of one transport handle."""

    def on_open(self) -> None: ...

    def on_message(self, event: str, data: str) -> None: ...

    def on_error(self) -> None: ...


@runtime_checkable
class TransportHandle(Protocol):
    """A single open (or opening) subscription."""

    @property
    def ready_state(self) -> ReadyState: ...

    def close(self) -> None: ...


@runtime_checkable
class Transport(Protocol):
    """Factory for subscriptions.

    ``open`` may raise ``TransportError`` when the subscription cannot even
    be started; later failures are reported through ``on_error``.
    """

    def open(self, url: str, listener: TransportListener) -> TransportHandle: ...


# ---------------------------------------------------------------------------
# SSE framing
# ---------------------------------------------------------------------------


class ServerSentEvent(BaseModel):
    """One dispatched SSE message."""

    model_config = ConfigDict(frozen=True)

    event: str = "message"
    data: str = ""
    id: str | None = None
    retry: int | None = None


class SSEParser:
    """Incremental line-based parser for the ``text/event-stream`` format.

    Feed it one line at a time (without the line terminator).  A blank
    line dispatches the accumulated message; lines starting with ``:``
    are comments; multiple ``data`` lines are joined with ``\\n``.
    """

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._last_id: str | None = None
        self._retry: int | None = None

    @property
    def last_event_id(self) -> str | None:
        return self._last_id

    def feed_line(self, line: str) -> ServerSentEvent | None:
        if line == "":
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self._last_id = value
        elif field == "retry":
            if value.isdigit():
                self._retry = int(value)
        # Unknown fields are ignored.
        return None

    def _dispatch(self) -> ServerSentEvent | None:
        if not self._data:
            self._event = ""
            return None

        message = ServerSentEvent(
            event=self._event or "message",
            data="\n".join(self._data),
            id=self._last_id,
            retry=self._retry,
        )
        self._event = ""
        self._data = []
        return message


# ---------------------------------------------------------------------------
# httpx backend
# ---------------------------------------------------------------------------


class HttpxEventSource:
    """A single SSE subscription driven by an asyncio task.

    Created by ``HttpxTransport.open``; not meant to be built directly.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        listener: TransportListener,
    ) -> None:
        self._client = client
        self._url = url
        self._listener = listener
        self._ready_state = ReadyState.CONNECTING
        self._closed = False
        self._task: asyncio.Task[None] | None = None

    @property
    def ready_state(self) -> ReadyState:
        return self._ready_state

    @property
    def url(self) -> str:
        return self._url

    def start(self) -> None:
        """Begin streaming on the running event loop."""
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=f"sse:{self._url}")

    def close(self) -> None:
        """Stop streaming.  No ``on_error`` is signalled after this."""
        if self._closed:
            return
        self._closed = True
        self._ready_state = ReadyState.CLOSED
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug("HttpxEventSource: closed %s", self._url)

    async def wait_closed(self) -> None:
        """Wait for the streaming task to finish (after ``close()``)."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        try:
            async with self._client.stream(
                "GET", self._url, headers=_STREAM_HEADERS
            ) as response:
                self._check_response(response)
                self._ready_state = ReadyState.OPEN
                logger.info("HttpxEventSource: stream open %s", self._url)
                self._listener.on_open()

                parser = SSEParser()
                async for line in response.aiter_lines():
                    if self._closed:
                        return
                    message = parser.feed_line(line)
                    if message is not None:
                        self._listener.on_message(message.event, message.data)
            logger.info("HttpxEventSource: server ended stream %s", self._url)
        except asyncio.CancelledError:
            self._ready_state = ReadyState.CLOSED
            raise
        except (httpx.HTTPError, TransportError) as exc:
            logger.warning("HttpxEventSource: stream %s failed: %s", self._url, exc)

        self._ready_state = ReadyState.CLOSED
        if not self._closed:
            self._listener.on_error()

    @staticmethod
    def _check_response(response: httpx.Response) -> None:
        if not response.is_success:
            raise TransportError(
                f"Stream request failed with HTTP {response.status_code}"
            )
        content_type = response.headers.get("content-type", "")
        if "text/event-stream" not in content_type:
            raise TransportError(
                f"Unexpected stream content type {content_type!r}"
            )


class HttpxTransport:
    """``Transport`` backed by a shared ``httpx.AsyncClient``.

    Parameters
    ----------
    client:
        Client to stream with.  When omitted, one is created with a
        connect timeout of *connect_timeout* seconds and no read timeout,
        and closed by ``aclose``.  The connection's heartbeat deadline,
        armed as soon as a subscription is opened, bounds both the header
        phase and the stream.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        connect_timeout: float = 10.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(connect_timeout, read=None),
            headers={"User-Agent": "leasewatch"},
            follow_redirects=True,
        )

    def open(self, url: str, listener: TransportListener) -> HttpxEventSource:
        try:
            httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as exc:
            raise TransportError(f"Invalid stream URL {url!r}: {exc}") from exc

        source = HttpxEventSource(self._client, url, listener)
        try:
            source.start()
        except RuntimeError as exc:
            raise TransportError(f"Cannot open stream {url!r}: {exc}") from exc
        return source

    async def aclose(self) -> None:
        """Release the HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()
