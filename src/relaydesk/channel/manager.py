"""Shared push channel connection with bounded reconnection.

One ChannelManager owns one physical connection and any number of logical
subscribers. It is an injectable service: create it once per process, hand
it to every consumer, and close it on shutdown.

Example:
    async with ChannelManager("http://localhost:3000") as channel:
        unsubscribe = channel.on_event("automation-progress", handle)
        await channel.subscribe(user_id)
        ...
        unsubscribe()
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from relaydesk.channel.transport import ChannelTransport, SocketIOTransport
from relaydesk.config import RelaydeskConfig
from relaydesk.errors import TransportError

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Awaitable[None] | None]


class ChannelManager:
    """Owns the process-wide push channel connection.

    Attributes:
        reconnect_attempts: Attempt counter of the connection loop in
            progress; reset to 0 once connected.
        last_error: The TransportError that ended the last failed
            connection loop, or None.
    """

    def __init__(
        self,
        url: str,
        transport_factory: Callable[[], ChannelTransport] = SocketIOTransport,
        max_attempts: int = 5,
        delay_floor: float = 1.0,
        delay_ceiling: float = 5.0,
        room_event: str = "join-user-room",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the manager without connecting.

        Args:
            url: Push server URL.
            transport_factory: Builds a fresh transport per connection.
            max_attempts: Connection attempts before giving up.
            delay_floor: Delay after the first failed attempt, in seconds.
            delay_ceiling: Upper bound for the doubling delay, in seconds.
            room_event: Client event that joins a room.
            sleep: Awaitable sleep, injectable for tests.
        """
        self._url = url
        self._transport_factory = transport_factory
        self._max_attempts = max_attempts
        self._delay_floor = delay_floor
        self._delay_ceiling = delay_ceiling
        self._room_event = room_event
        self._sleep = sleep
        self._transport: ChannelTransport | None = None
        self._handlers: dict[str, list[tuple[object, EventHandler]]] = {}
        self._rooms: dict[str, None] = {}
        self._lock = asyncio.Lock()
        self._reconnect_task: asyncio.Task | None = None
        self._closing = False
        self.reconnect_attempts = 0
        self.last_error: TransportError | None = None

    @classmethod
    def from_config(
        cls,
        config: RelaydeskConfig,
        transport_factory: Callable[[], ChannelTransport] | None = None,
    ) -> "ChannelManager":
        """Build a manager from the ``channel`` config section."""
        channel = config.channel
        if transport_factory is None:
            headers = {}
            if config.api.access_token:
                headers["Authorization"] = f"Bearer {config.api.access_token}"

            def transport_factory() -> ChannelTransport:
                return SocketIOTransport(transports=channel.transports, headers=headers)

        return cls(
            config.channel_url,
            transport_factory=transport_factory,
            max_attempts=channel.max_attempts,
            delay_floor=channel.delay_floor,
            delay_ceiling=channel.delay_ceiling,
            room_event=channel.room_event,
        )

    @property
    def is_connected(self) -> bool:
        """Whether a live connection exists."""
        return self._transport is not None and self._transport.connected

    @property
    def rooms(self) -> list[str]:
        """Rooms joined on every (re)connect, in join order."""
        return list(self._rooms)

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed attempt number ``attempt`` (1-based)."""
        return min(self._delay_floor * (2 ** (attempt - 1)), self._delay_ceiling)

    async def __aenter__(self) -> "ChannelManager":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.disconnect()

    async def connect(self) -> ChannelTransport:
        """Return the live connection, establishing it if needed.

        Returns:
            The connected transport. Repeated calls return the same handle.

        Raises:
            TransportError: If every attempt failed.
        """
        async with self._lock:
            if self.is_connected:
                logger.debug("Channel already connected, reusing existing connection")
                return self._transport
            self._closing = False
            return await self._connect_with_retry()

    async def _connect_with_retry(self) -> ChannelTransport:
        """Run the bounded attempt loop. Caller holds the lock."""
        logger.info("Connecting to push channel at %s", self._url)
        last_exc: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            self.reconnect_attempts = attempt
            transport = self._transport_factory()
            transport.set_listener(
                lambda event, data, t=transport: self._on_transport_event(t, event, data)
            )
            try:
                await transport.connect(self._url)
            except Exception as exc:
                last_exc = exc
                logger.warning(
                    "Channel connection attempt %d/%d failed: %s",
                    attempt, self._max_attempts, exc,
                )
                await self._discard(transport)
                if attempt < self._max_attempts:
                    await self._sleep(self.backoff_delay(attempt))
                continue

            self._transport = transport
            self.reconnect_attempts = 0
            self.last_error = None
            logger.info("Channel connected to %s", self._url)
            for room in list(self._rooms):
                await self._emit_join(room)
            await self._dispatch("connect", None)
            return transport

        self.last_error = TransportError(str(last_exc), attempts=self._max_attempts)
        logger.error(
            "Max reconnection attempts reached (%d); live updates unavailable",
            self._max_attempts,
        )
        raise self.last_error

    async def disconnect(self) -> None:
        """Tear down the connection. A later connect() starts fresh.

        Registered handlers and remembered rooms are kept.
        """
        self._closing = True
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        async with self._lock:
            transport = self._transport
            self._transport = None
            if transport is None:
                return
            logger.info("Disconnecting push channel")
            await self._discard(transport)
        await self._dispatch("disconnect", "client disconnect")

    async def subscribe(self, room_key: str) -> None:
        """Join a room now if connected, and again after every reconnect.

        Fire-and-forget: emit failures are logged, never raised. Joining the
        same room twice is harmless because joins are idempotent server-side.
        """
        self._rooms[room_key] = None
        if not self.is_connected:
            logger.warning("Channel not connected; room %s will be joined on connect", room_key)
            return
        await self._emit_join(room_key)

    def forget(self, room_key: str) -> None:
        """Stop re-joining a room on reconnect."""
        self._rooms.pop(room_key, None)

    def on_event(self, event_name: str, handler: EventHandler) -> Callable[[], None]:
        """Register a handler for a server event.

        Handlers may be plain callables or coroutine functions and receive
        the event payload. ``connect`` and ``disconnect`` are delivered too.

        Returns:
            A callable that removes exactly this registration. Calling it
            more than once is a no-op.
        """
        token = object()
        entries = self._handlers.setdefault(event_name, [])
        entries.append((token, handler))

        def unsubscribe() -> None:
            for i, (entry_token, _) in enumerate(entries):
                if entry_token is token:
                    del entries[i]
                    return

        return unsubscribe

    def handler_count(self, event_name: str) -> int:
        """Number of handlers registered for ``event_name``."""
        return len(self._handlers.get(event_name, []))

    async def _emit_join(self, room_key: str) -> None:
        transport = self._transport
        if transport is None:
            return
        logger.info("Joining room %s", room_key)
        try:
            await transport.emit(self._room_event, room_key)
        except Exception as exc:
            logger.warning("Failed to join room %s: %s", room_key, exc)

    async def _on_transport_event(self, transport: ChannelTransport, event: str, data: Any) -> None:
        if transport is not self._transport:
            return
        if event == "connect":
            # Announced by _connect_with_retry once the room joins are sent.
            return
        if event == "disconnect":
            logger.warning("Channel disconnected: %s", data)
            await self._dispatch("disconnect", data)
            if not self._closing:
                self._schedule_reconnect()
            return
        await self._dispatch(event, data)

    def _schedule_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        async with self._lock:
            if self._closing or self.is_connected:
                return
            stale = self._transport
            self._transport = None
            if stale is not None:
                await self._discard(stale)
            try:
                await self._connect_with_retry()
            except TransportError as exc:
                logger.error("Channel reconnection failed, continuing without live updates: %s", exc)

    async def _discard(self, transport: ChannelTransport) -> None:
        try:
            await transport.disconnect()
        except Exception as exc:
            logger.debug("Ignoring error while closing transport: %s", exc)

    async def _dispatch(self, event_name: str, data: Any) -> None:
        for _, handler in list(self._handlers.get(event_name, [])):
            try:
                result = handler(data)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for channel event %s failed", event_name)
