"""Observer pattern for dashboard state changes.

Provides the DashboardEventObserver protocol and DashboardEventEmitter class
for notifying the presentation layer of reconciled state, notices, and
authentication failures.
"""

import logging
from typing import Protocol

from relaydesk.errors import Notice
from relaydesk.protocol import Conversation, JobRecord, Message

logger = logging.getLogger(__name__)


class DashboardEventObserver(Protocol):
    """Observer protocol for dashboard events.

    Implementations subscribe via DashboardEventEmitter to re-render views,
    show notices, or redirect to login.
    """

    async def on_jobs_changed(self, records: list[JobRecord]) -> None:
        """Called after a snapshot replace or a merged push update.

        Args:
            records: The full reconciled job collection.
        """
        ...

    async def on_conversations_changed(self, conversations: list[Conversation]) -> None:
        """Called when the conversation list changes.

        Args:
            conversations: The full conversation list in API order.
        """
        ...

    async def on_messages_changed(self, conversation_id: str, messages: list[Message]) -> None:
        """Called when the active conversation's message list changes.

        Args:
            conversation_id: The conversation the messages belong to.
            messages: The full message list, pending messages included.
        """
        ...

    async def on_notice(self, notice: Notice) -> None:
        """Called for transient, dismissible failures.

        Args:
            notice: User-visible description of the failure.
        """
        ...

    async def on_reauth_required(self, resource: str) -> None:
        """Called when a REST call answered 401.

        Args:
            resource: The request that was rejected.
        """
        ...

    async def on_channel_status(self, connected: bool) -> None:
        """Called when the push channel connects or drops.

        Args:
            connected: Whether live updates are flowing.
        """
        ...


class DashboardEventEmitter:
    """Emits dashboard events to registered observers.

    Observers register via add_observer() and receive async callbacks for
    each event. Exceptions from individual observers are caught and logged
    to prevent one broken observer from stopping delivery to others.
    """

    def __init__(self) -> None:
        self._observers: list[DashboardEventObserver] = []

    def add_observer(self, observer: DashboardEventObserver) -> None:
        """Register an observer to receive dashboard events."""
        self._observers.append(observer)

    def remove_observer(self, observer: DashboardEventObserver) -> None:
        """Unregister an observer. No-op if it was never registered."""
        if observer in self._observers:
            self._observers.remove(observer)

    async def _dispatch(self, method: str, *args: object) -> None:
        for observer in list(self._observers):
            callback = getattr(observer, method, None)
            if callback is None:
                continue
            try:
                await callback(*args)
            except Exception as e:
                logger.error(
                    "Observer %s failed %s: %s",
                    type(observer).__name__,
                    method,
                    e,
                )

    async def emit_jobs_changed(self, records: list[JobRecord]) -> None:
        """Emit the reconciled job collection."""
        await self._dispatch("on_jobs_changed", records)

    async def emit_conversations_changed(self, conversations: list[Conversation]) -> None:
        """Emit the conversation list."""
        await self._dispatch("on_conversations_changed", conversations)

    async def emit_messages_changed(self, conversation_id: str, messages: list[Message]) -> None:
        """Emit the active conversation's message list."""
        await self._dispatch("on_messages_changed", conversation_id, messages)

    async def emit_notice(self, notice: Notice) -> None:
        """Emit a transient failure notice."""
        await self._dispatch("on_notice", notice)

    async def emit_reauth_required(self, resource: str) -> None:
        """Emit an authentication failure."""
        await self._dispatch("on_reauth_required", resource)

    async def emit_channel_status(self, connected: bool) -> None:
        """Emit a push channel status change."""
        await self._dispatch("on_channel_status", connected)
