"""Event socket client for live ELEMENT readings and packets.

The socket pushes an event for every new reading or packet. This module keeps a
single connection open with a periodic ping and fans decoded events out to
registered listeners.

State machine: CONNECTING -> OPEN -> CLOSED. CLOSED is terminal; there is no
automatic reconnect, callers create a new ElementSocket to resume.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from aiohttp import ClientError, ClientSession, WSMsgType

from pyelementiot.api import validate_api_key, validate_service_url
from pyelementiot.const import API_PREFIX, AUTH_PARAM, DEFAULT_HEARTBEAT_INTERVAL, DEFAULT_SOCKET_URL, SOCKET_SCHEMES
from pyelementiot.exceptions import ConfigurationError
from pyelementiot.models import ResourceType, SocketState
from pyelementiot.parsers import parse_event_message


if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from types import TracebackType

    from aiohttp import ClientWebSocketResponse

_LOGGER = logging.getLogger(__name__)

SOCKET_EVENTS = ("open", "close", "error", "readings", "packets")


def build_socket_url(
    service_url: str,
    api_key: str,
    resource_type: ResourceType,
    tag_id: str | None = None,
) -> str:
    """Build the socket address, optionally scoped to a tag.

    Returns:
        URL in format ``<service_url>/api/v1/[tags/<tag_id>/]<type>/socket?auth=<api_key>``.
    """
    scope = f"tags/{tag_id}/" if tag_id else ""
    return f"{service_url}/{API_PREFIX}/{scope}{resource_type.value}/socket?{AUTH_PARAM}={quote(api_key, safe='')}"


class ElementSocket:
    """Long-lived event socket with heartbeat and listener registry.

    Listeners are registered per channel:
    - ``open``: connection established, called with no arguments
    - ``close``: connection closed, called with no arguments
    - ``error``: transport error, called with the exception
    - ``readings``: new reading, called with the reading dict
    - ``packets``: new packet, called with the packet dict

    Listeners are called synchronously in registration order. A listener that
    raises is logged and does not affect the others.

    Example:
        ```python
        from pyelementiot import ElementSocket

        def on_reading(reading: dict) -> None:
            print(reading["data"])

        socket = ElementSocket(api_key="secret", resource_type="readings", tag_id="tag-id")
        socket.add_listener("readings", on_reading)

        async with socket:
            await asyncio.sleep(3600)
        ```

    Attributes:
        resource_type: Streamed resource (readings or packets).
        tag_id: Optional tag the stream is scoped to.
    """

    def __init__(
        self,
        api_key: str,
        resource_type: ResourceType | str,
        tag_id: str | None = None,
        *,
        service_url: str | None = None,
        session: ClientSession | None = None,
        logger: Callable[[str], None] | None = None,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
    ) -> None:
        """Initialize the socket. No connection is made until connect().

        Args:
            api_key: ELEMENT API key.
            resource_type: "readings" or "packets".
            tag_id: Optional tag to scope the stream to.
            service_url: Socket base URL. Must use ws or wss. Defaults to the
                ELEMENT production endpoint.
            session: Optional aiohttp ClientSession. If not provided, one will be
                created on connect and closed on disconnect.
            logger: Optional callback for operational messages.
            heartbeat_interval: Seconds between pings.

        Raises:
            ConfigurationError: If the API key is empty, the URL scheme is invalid,
                or the resource type is unknown.
        """
        api_key = validate_api_key(api_key)
        base_url = validate_service_url(DEFAULT_SOCKET_URL if service_url is None else service_url, SOCKET_SCHEMES)
        try:
            self.resource_type = ResourceType(resource_type)
        except ValueError as err:
            msg = f"Unknown resource type: {resource_type!r}"
            raise ConfigurationError(msg, option="resource_type", value=resource_type) from err
        self.tag_id = tag_id

        self._url = build_socket_url(base_url, api_key, self.resource_type, tag_id)
        self._session = session
        self._owns_session = session is None
        self._log = logger if logger is not None else _LOGGER.debug
        self._heartbeat_interval = heartbeat_interval

        self._state = SocketState.CONNECTING
        self._ws: ClientWebSocketResponse | None = None
        self._reader_task: asyncio.Task[None] | None = None
        # Single-slot heartbeat timer; replaced on every ping in either direction
        self._ping_handle: asyncio.TimerHandle | None = None
        self._background_tasks: set[asyncio.Task[None]] = set()

        self._listeners: dict[str, list[Callable[..., None]]] = {event: [] for event in SOCKET_EVENTS}

    @property
    def url(self) -> str:
        """Get the socket URL (contains the API key)."""
        return self._url

    @property
    def state(self) -> SocketState:
        """Get the connection state."""
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if the connection is open."""
        return self._state is SocketState.OPEN

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_listener(self, event: str, callback: Callable[..., None]) -> None:
        """Register a callback for a channel.

        Args:
            event: One of "open", "close", "error", "readings", "packets".
            callback: Callable invoked with the event arguments.

        Raises:
            ValueError: If the channel name is unknown.
        """
        listeners = self._channel(event)
        if callback not in listeners:
            listeners.append(callback)

    def remove_listener(self, event: str, callback: Callable[..., None]) -> None:
        """Unregister a previously registered callback.

        Raises:
            ValueError: If the channel name is unknown.
        """
        listeners = self._channel(event)
        if callback in listeners:
            listeners.remove(callback)

    def _channel(self, event: str) -> list[Callable[..., None]]:
        if event not in self._listeners:
            msg = f"Unknown socket event {event!r}, expected one of {', '.join(SOCKET_EVENTS)}"
            raise ValueError(msg)
        return self._listeners[event]

    def _emit(self, event: str, *args: Any) -> None:
        """Call every listener of a channel in registration order."""
        if event == "error" and not self._listeners["error"]:
            _LOGGER.warning("Unhandled event socket error: %s", args[0] if args else None)

        for listener in list(self._listeners[event]):
            try:
                listener(*args)
            except Exception:
                _LOGGER.exception("Error in %s listener", event)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> ElementSocket:
        """Connect on entering the context manager."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Disconnect on exiting the context manager."""
        await self.disconnect()

    async def connect(self) -> None:
        """Open the connection and start reading events.

        A failure to connect is reported as an ``error`` event followed by
        ``close``; it is not raised.

        Raises:
            RuntimeError: If connect() was already called on this socket.
        """
        if self._state is not SocketState.CONNECTING or self._ws is not None:
            msg = "Socket already used. Create a new ElementSocket to reconnect."
            raise RuntimeError(msg)

        if self._session is None:
            self._session = ClientSession()
            self._owns_session = True

        _LOGGER.debug("Connecting to %s socket (tag: %s)", self.resource_type.value, self.tag_id)
        try:
            self._ws = await self._session.ws_connect(self._url, autoping=False, heartbeat=None)
        except (ClientError, TimeoutError) as err:
            _LOGGER.warning("Failed to open %s socket: %s", self.resource_type.value, err)
            self._emit("error", err)
            self._handle_close()
            await self._close_session()
            return

        self._handle_open()
        self._reader_task = asyncio.create_task(self._read_loop())

    async def disconnect(self) -> None:
        """Close the connection.

        The ``close`` event is emitted the same way as for a peer-initiated close.
        """
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()

        reader_task = self._reader_task
        if reader_task is not None and reader_task is not asyncio.current_task():
            await reader_task

        self._handle_close()

        for task in list(self._background_tasks):
            task.cancel()

        await self._close_session()

    async def _close_session(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _handle_open(self) -> None:
        self._state = SocketState.OPEN
        self._log("ELEMENT socket connection open")
        self._emit("open")
        self._heartbeat()

    def _handle_close(self) -> None:
        """Cancel the heartbeat, move to CLOSED and emit ``close`` (once)."""
        if self._state is SocketState.CLOSED:
            return

        if self._ping_handle is not None:
            self._ping_handle.cancel()
            self._ping_handle = None

        self._state = SocketState.CLOSED
        self._log("ELEMENT socket connection closed")
        self._emit("close")

    # -------------------------------------------------------------------------
    # Heartbeat
    # -------------------------------------------------------------------------

    def _heartbeat(self) -> None:
        """Send a ping and reschedule the next one.

        Any pending heartbeat is cancelled first so only one timer is ever
        outstanding.
        """
        if self._state is not SocketState.OPEN:
            return

        self._log("ELEMENT socket sending heartbeat")
        if self._ping_handle is not None:
            self._ping_handle.cancel()

        loop = asyncio.get_running_loop()
        self._ping_handle = loop.call_later(self._heartbeat_interval, self._heartbeat)
        self._spawn(self._send_ping())

    async def _send_ping(self) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            return
        try:
            await ws.ping()
        except (ClientError, ConnectionError) as err:
            self._emit("error", err)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    # -------------------------------------------------------------------------
    # Inbound frames
    # -------------------------------------------------------------------------

    async def _read_loop(self) -> None:
        """Read frames until the connection closes, then release an owned session."""
        ws = self._ws
        assert ws is not None

        try:
            async for msg in ws:
                if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                    self._handle_message(msg.data)
                elif msg.type == WSMsgType.PING:
                    await self._handle_ping(ws, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    self._emit("error", ws.exception())
        finally:
            self._handle_close()
            # CLOSED is terminal, so nothing else will use the session
            await self._close_session()

    async def _handle_ping(self, ws: ClientWebSocketResponse, payload: bytes) -> None:
        try:
            await ws.pong(payload)
        except (ClientError, ConnectionError) as err:
            self._emit("error", err)
            return
        self._heartbeat()

    def _handle_message(self, data: str | bytes) -> None:
        """Decode a frame and emit it on its channel; malformed frames are dropped."""
        message = parse_event_message(data)
        if message is None:
            return
        self._emit(message.channel, message.body)
