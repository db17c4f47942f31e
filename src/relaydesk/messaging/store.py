"""Conversation store: the single owner of conversations and messages.

Holds one operator session's contact list and the open conversation's
messages. Fetches are authoritative replaces; sends are optimistic: a
pending copy appears immediately, is swapped for the server-confirmed
message on success, and disappears without a trace on failure.

While a conversation is open its messages are re-fetched on a fixed
interval by exactly one background task, which is cancelled whenever the
open conversation changes or the store is closed.
"""

import asyncio
import dataclasses
import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from relaydesk.api.messaging_client import MessagingClient
from relaydesk.config import RelaydeskConfig
from relaydesk.display import format_message_time
from relaydesk.errors import AuthError, RequestError, SendFailure, ValidationError
from relaydesk.events import DashboardEventEmitter
from relaydesk.messaging.attribution import classify
from relaydesk.messaging.contacts import (
    conversation_from_api,
    send_target_id,
    sender_user_id,
)
from relaydesk.messaging.timeline import (
    TimelineEntry,
    build_timeline,
    extract_timestamp,
    now_ms,
)
from relaydesk.protocol import (
    ORIGIN_COUNTERPARTY,
    ORIGIN_SELF,
    Conversation,
    Message,
    SessionCredentials,
    text_or_empty,
)

logger = logging.getLogger(__name__)

SELF_DISPLAY_NAME = "You"


class ConversationStore:
    """Conversation list and open-conversation messages for one session.

    Attributes:
        conversations: Contact list in API order.
        messages: Open conversation's messages in fetched order, followed by
            any pending outbound messages.
        active: The open conversation, or None.
        error: Message of the last failed operation, cleared on success.
        last_synced: When the conversation list was last fetched.
        auth_required: Set once a call answered 401; polling stops.
    """

    def __init__(
        self,
        client: MessagingClient,
        credentials: SessionCredentials,
        emitter: DashboardEventEmitter | None = None,
        page_size: int = 20,
        poll_interval: float = 60.0,
        resync_delay: float = 3.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._emitter = emitter or DashboardEventEmitter()
        self._page_size = page_size
        self._poll_interval = poll_interval
        self._resync_delay = resync_delay
        self._clock = clock
        self._listing = False
        self._poll_task: asyncio.Task | None = None
        self._resync_tasks: set[asyncio.Task] = set()
        self.conversations: list[Conversation] = []
        self.messages: list[Message] = []
        self.active: Conversation | None = None
        self.error: str | None = None
        self.last_synced: datetime | None = None
        self.is_loading_messages = False
        self.is_sending = False
        self.auth_required = False

    @classmethod
    def from_config(
        cls,
        config: RelaydeskConfig,
        client: MessagingClient,
        credentials: SessionCredentials,
        emitter: DashboardEventEmitter | None = None,
    ) -> "ConversationStore":
        """Build a store from the ``messaging`` config section."""
        return cls(
            client,
            credentials,
            emitter=emitter,
            page_size=config.messaging.page_size,
            poll_interval=config.messaging.poll_interval,
            resync_delay=config.messaging.resync_delay,
        )

    @property
    def is_polling(self) -> bool:
        """Whether the periodic re-fetch is running."""
        return self._poll_task is not None and not self._poll_task.done()

    # ---------------------------------------------------------------- list

    async def list_conversations(self) -> list[Conversation]:
        """Fetch one page of conversations and replace the contact list.

        A call made while another is in flight returns the current list
        without issuing a second request. Transient failures keep the
        previous list and emit a notice.

        Raises:
            AuthError: The relay answered 401.
        """
        if self._listing:
            logger.debug("Conversation fetch already in flight; skipping")
            return list(self.conversations)
        self._listing = True
        self.error = None
        try:
            raw = await self._client.list_conversations(
                self._credentials, self._page_size, self._clock(),
            )
        except AuthError as exc:
            await self._halt(exc)
            raise
        except RequestError as exc:
            logger.error("Error fetching conversations: %s", exc)
            self.error = exc.message
            await self._emitter.emit_notice(exc.to_notice())
            return list(self.conversations)
        finally:
            self._listing = False

        # Read the open conversation only now: one opened while the request
        # was in flight must also come back with unread == 0.
        open_id = self.active.id if self.active else None
        self.conversations = [
            conversation_from_api(item, self._credentials, open_id) for item in raw
        ]
        self.last_synced = datetime.now(UTC)
        await self._emitter.emit_conversations_changed(list(self.conversations))
        return list(self.conversations)

    # ---------------------------------------------------------------- open

    async def open_conversation(self, conversation: Conversation) -> list[Message]:
        """Make ``conversation`` active, mark it read locally, load its messages.

        Restarts the periodic re-fetch for the new conversation.
        """
        logger.info("Opening conversation %s", conversation.id)
        await self._stop_polling()
        self.active = dataclasses.replace(conversation, unread=0)
        self.messages = []
        self._zero_unread(conversation.id)
        await self._emitter.emit_conversations_changed(list(self.conversations))
        await self._emitter.emit_messages_changed(conversation.id, [])
        if not self.auth_required:
            self._poll_task = asyncio.create_task(self._poll(conversation.id))
        return await self.fetch_messages(conversation.id)

    async def fetch_messages(self, conversation_id: str) -> list[Message]:
        """Replace the open conversation's messages with the server's.

        Pending outbound messages survive the replace so their confirmation
        can still find them. Responses for a conversation that is no longer
        open are discarded.

        Raises:
            AuthError: The relay answered 401.
        """
        if self.active is None or self.active.id != conversation_id:
            logger.debug("Conversation %s is not open; not fetching", conversation_id)
            return list(self.messages)

        self.is_loading_messages = True
        self.error = None
        try:
            raw = await self._client.get_messages(self._credentials, conversation_id)
        except AuthError as exc:
            await self._halt(exc)
            raise
        except RequestError as exc:
            logger.error("Error fetching messages for %s: %s", conversation_id, exc)
            self.error = exc.message
            await self._emitter.emit_notice(exc.to_notice())
            return list(self.messages)
        finally:
            self.is_loading_messages = False

        if self.active is None or self.active.id != conversation_id:
            logger.debug("Discarding messages for %s: conversation changed", conversation_id)
            return list(self.messages)

        counterparty_name = self.active.name
        fetched = [self._message_from_api(item, counterparty_name) for item in raw]
        pending = [m for m in self.messages if m.pending]
        self.messages = fetched + pending
        await self._emitter.emit_messages_changed(conversation_id, list(self.messages))
        return list(self.messages)

    def _message_from_api(self, raw: dict, counterparty_name: str) -> Message:
        sender_name = text_or_empty(raw.get("sender_name")).strip()
        origin = classify(sender_name, counterparty_name)
        timestamp = extract_timestamp(raw)
        return Message(
            id=text_or_empty(raw.get("message_urn")) or f"msg-{uuid.uuid4().hex}",
            text=text_or_empty(raw.get("text")) or text_or_empty(raw.get("body")),
            origin=origin,
            time=format_message_time(timestamp),
            timestamp=timestamp,
            sender_name=sender_name if origin == ORIGIN_COUNTERPARTY else SELF_DISPLAY_NAME,
            sender_urn=text_or_empty(raw.get("sender_urn")) or None,
        )

    # ---------------------------------------------------------------- send

    async def send_message(self, conversation_id: str, text: str) -> Message:
        """Send ``text`` into the open conversation with an optimistic insert.

        Returns:
            The server-confirmed message that replaced the pending one.

        Raises:
            ValidationError: Blank text, or ``conversation_id`` is not open.
            SendFailure: The message was rejected; the pending copy is gone.
            AuthError: The relay answered 401; the pending copy is gone.
        """
        if not text or not text.strip():
            raise ValidationError("Message text is empty")
        if self.active is None:
            raise ValidationError("No conversation is open")
        if conversation_id != self.active.id:
            raise ValidationError(f"Conversation {conversation_id} is not open")

        conversation = self.active
        sent_at = self._clock()
        pending = Message(
            id=f"temp-{uuid.uuid4().hex}",
            text=text,
            origin=ORIGIN_SELF,
            time=format_message_time(sent_at),
            timestamp=sent_at,
            sender_name=SELF_DISPLAY_NAME,
            sender_urn=self._credentials.profile_urn,
            pending=True,
        )
        self.messages = [*self.messages, pending]
        await self._emitter.emit_messages_changed(conversation_id, list(self.messages))

        self.is_sending = True
        self.error = None
        try:
            target_id = send_target_id(conversation, self._credentials)
            if target_id is None:
                raise SendFailure("Could not find target participant")
            data = await self._client.send_message(
                self._credentials, text, target_id, sender_user_id(self._credentials),
            )
        except AuthError as exc:
            await self._rollback(conversation_id, pending.id)
            await self._halt(exc)
            raise
        except SendFailure as exc:
            await self._fail_send(conversation_id, pending.id, exc)
            raise
        except RequestError as exc:
            failure = SendFailure(exc.reason)
            await self._fail_send(conversation_id, pending.id, failure)
            raise failure from exc
        finally:
            self.is_sending = False

        confirmed_at = extract_timestamp(data) or self._clock()
        confirmed = Message(
            id=text_or_empty(data.get("message_urn")) or f"sent-{confirmed_at}",
            text=text_or_empty(data.get("text")) or text,
            origin=ORIGIN_SELF,
            time=format_message_time(confirmed_at),
            timestamp=confirmed_at,
            sender_name=SELF_DISPLAY_NAME,
            sender_urn=self._credentials.profile_urn,
        )
        self._zero_unread(conversation_id)
        logger.info("Message %s confirmed in %s", confirmed.id, conversation_id)
        if self._is_open(conversation_id):
            self._confirm(pending.id, confirmed)
            await self._emitter.emit_messages_changed(conversation_id, list(self.messages))
        await self._emitter.emit_conversations_changed(list(self.conversations))
        self._schedule_resync(conversation_id)
        return confirmed

    def _confirm(self, correlation_id: str, confirmed: Message) -> None:
        """Swap the pending message for its confirmation, never duplicating it."""
        already_fetched = any(
            m.id == confirmed.id and not m.pending for m in self.messages
        )
        if already_fetched:
            self.messages = [m for m in self.messages if m.id != correlation_id]
        else:
            self.messages = [
                confirmed if m.id == correlation_id else m for m in self.messages
            ]

    def _is_open(self, conversation_id: str) -> bool:
        return self.active is not None and self.active.id == conversation_id

    async def _rollback(self, conversation_id: str, correlation_id: str) -> None:
        # The pending copy left with the old thread when another one was opened.
        if not self._is_open(conversation_id):
            return
        self.messages = [m for m in self.messages if m.id != correlation_id]
        await self._emitter.emit_messages_changed(conversation_id, list(self.messages))

    async def _fail_send(self, conversation_id: str, correlation_id: str, failure: SendFailure) -> None:
        logger.error("Error sending message to %s: %s", conversation_id, failure.reason)
        await self._rollback(conversation_id, correlation_id)
        self.error = failure.message
        await self._emitter.emit_notice(failure.to_notice())

    # ---------------------------------------------------------------- views

    def timeline(self) -> list[TimelineEntry]:
        """Messages in display order with day separators."""
        return build_timeline(self.messages, now=self._clock())

    def _zero_unread(self, conversation_id: str) -> None:
        self.conversations = [
            dataclasses.replace(c, unread=0) if c.id == conversation_id and c.unread else c
            for c in self.conversations
        ]

    # ---------------------------------------------------------------- tasks

    def _schedule_resync(self, conversation_id: str) -> None:
        task = asyncio.create_task(self._delayed_fetch(conversation_id))
        self._resync_tasks.add(task)
        task.add_done_callback(self._resync_tasks.discard)

    async def _delayed_fetch(self, conversation_id: str) -> None:
        await asyncio.sleep(self._resync_delay)
        try:
            await self.fetch_messages(conversation_id)
        except AuthError:
            return

    async def _poll(self, conversation_id: str) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            if self.active is None or self.active.id != conversation_id:
                return
            try:
                await self.fetch_messages(conversation_id)
            except AuthError:
                return

    async def _stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        await _cancel(task)

    async def _halt(self, exc: AuthError) -> None:
        logger.error("Authentication failed for %s; halting message polling", exc.resource)
        self.auth_required = True
        await self._stop_polling()
        await self._emitter.emit_reauth_required(exc.resource)

    async def close(self) -> None:
        """Cancel the poller and any scheduled re-fetch."""
        await self._stop_polling()
        for task in list(self._resync_tasks):
            await _cancel(task)
        self._resync_tasks.clear()


async def _cancel(task: asyncio.Task | None) -> None:
    """Cancel and await a task, unless it is the one running this code."""
    if task is None or task.done() or task is asyncio.current_task():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
