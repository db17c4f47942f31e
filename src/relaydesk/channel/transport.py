"""Push channel transports.

ChannelManager talks to the push server through the ChannelTransport
protocol so the reconnection policy stays independent of the wire library.
The default implementation uses the Socket.IO client, because the
automation backend publishes progress through a Socket.IO server.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import socketio

logger = logging.getLogger(__name__)

TransportListener = Callable[[str, Any], Awaitable[None]]


class ChannelTransport(Protocol):
    """One physical connection to the push server.

    A transport is used for a single connection: after disconnect() the
    manager builds a new one instead of reconnecting the old instance.
    """

    @property
    def connected(self) -> bool:
        """Whether the connection is currently established."""
        ...

    def set_listener(self, listener: TransportListener) -> None:
        """Register the callback receiving ``(event_name, data)`` for every
        server event, including ``connect`` and ``disconnect``."""
        ...

    async def connect(self, url: str) -> None:
        """Open the connection.

        Raises:
            Exception: Any failure; the manager treats it as one failed attempt.
        """
        ...

    async def emit(self, event: str, data: Any) -> None:
        """Send a client event to the server."""
        ...

    async def disconnect(self) -> None:
        """Close the connection. Safe to call when not connected."""
        ...


class SocketIOTransport:
    """ChannelTransport backed by ``socketio.AsyncClient``.

    The client's own reconnection is disabled: attempt counting and backoff
    belong to ChannelManager.
    """

    def __init__(
        self,
        transports: list[str] | None = None,
        headers: dict[str, str] | None = None,
        wait_timeout: float = 5.0,
    ) -> None:
        self._transports = transports or ["websocket", "polling"]
        self._headers = headers or {}
        self._wait_timeout = wait_timeout
        self._listener: TransportListener | None = None
        self._client = socketio.AsyncClient(reconnection=False, logger=False)
        self._client.on("connect", self._on_connect)
        self._client.on("disconnect", self._on_disconnect)
        self._client.on("*", self._on_any)

    @property
    def connected(self) -> bool:
        return self._client.connected

    @property
    def sid(self) -> str | None:
        """Server-assigned session id, once connected."""
        return self._client.sid

    def set_listener(self, listener: TransportListener) -> None:
        self._listener = listener

    async def connect(self, url: str) -> None:
        await self._client.connect(
            url,
            headers=self._headers,
            transports=self._transports,
            wait_timeout=self._wait_timeout,
        )

    async def emit(self, event: str, data: Any) -> None:
        await self._client.emit(event, data)

    async def disconnect(self) -> None:
        if self._client.connected:
            await self._client.disconnect()

    async def _notify(self, event: str, data: Any) -> None:
        if self._listener is not None:
            await self._listener(event, data)

    async def _on_connect(self) -> None:
        await self._notify("connect", None)

    async def _on_disconnect(self, *args: Any) -> None:
        # Newer clients pass the disconnect reason; older ones pass nothing.
        await self._notify("disconnect", args[0] if args else None)

    async def _on_any(self, event: str, *args: Any) -> None:
        await self._notify(event, args[0] if args else None)
