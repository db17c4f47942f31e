"""Conversation list, message timeline and optimistic sending."""

from relaydesk.messaging.attribution import classify
from relaydesk.messaging.credentials import (
    credentials_from_connections,
    load_session_credentials,
)
from relaydesk.messaging.store import ConversationStore
from relaydesk.messaging.timeline import TimelineEntry, build_timeline

__all__ = [
    "ConversationStore",
    "TimelineEntry",
    "build_timeline",
    "classify",
    "credentials_from_connections",
    "load_session_credentials",
]
