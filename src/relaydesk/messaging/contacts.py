"""Conversation summaries: identity helpers, transformation and filtering."""

import logging
import re

from relaydesk.protocol import (
    Conversation,
    Message,
    Participant,
    SessionCredentials,
    text_or_empty,
)

logger = logging.getLogger(__name__)

_MESSAGING_ID = re.compile(r"2-([A-Za-z0-9+/=]+)")
_PROFILE_ID = re.compile(r"ACoAA[^:]+$")

FILTERS = ("all", "important", "unread")


def extract_profile_id(urn: str | None) -> str | None:
    """Last colon-separated segment of a URN, or the value itself.

    ``urn:li:fsd_profile:ACoAAE...`` and ``urn:li:fs_miniProfile:ACoAAE...``
    both yield ``ACoAAE...``.
    """
    if not urn:
        return None
    if ":" in urn:
        return urn.split(":")[-1]
    return urn


def self_ids(credentials: SessionCredentials | None) -> set[str]:
    """Profile ids that identify the operator."""
    if credentials is None:
        return set()
    ids = {
        extract_profile_id(credentials.profile_urn),
        extract_profile_id(credentials.mailbox_urn),
    }
    return {i for i in ids if i}


def other_participant(
    participants: tuple[Participant, ...],
    credentials: SessionCredentials | None,
) -> Participant | None:
    """First participant who is not the operator, else the first one."""
    if not participants:
        return None
    own = self_ids(credentials)
    for participant in participants:
        if extract_profile_id(participant.urn) not in own:
            return participant
    return participants[0]


def conversation_from_api(
    raw: dict,
    credentials: SessionCredentials | None,
    open_conversation_id: str | None = None,
) -> Conversation:
    """Transform one raw summary into a Conversation.

    ``unread`` is forced to 0 for the conversation that is currently open,
    so a fetch that has not yet seen the read marker cannot resurrect it.
    """
    participants = tuple(
        Participant.from_api(p) for p in raw.get("participants") or [] if isinstance(p, dict)
    )
    other = other_participant(participants, credentials)
    conversation_id = str(raw.get("conversation_id") or "")
    latest = raw.get("latest_message")
    last_message = text_or_empty(latest.get("body")) if isinstance(latest, dict) else ""
    try:
        unread = int(raw.get("unread_count") or 0)
    except (TypeError, ValueError):
        logger.debug("Unreadable unread_count %r for %s", raw.get("unread_count"), conversation_id)
        unread = 0
    try:
        last_activity = int(raw.get("last_activity_at") or 0)
    except (TypeError, ValueError):
        last_activity = 0
    return Conversation(
        id=conversation_id,
        name=(other.name if other and other.name else "Unknown Contact"),
        last_message=last_message or "No messages",
        last_activity=last_activity,
        unread=0 if open_conversation_id and conversation_id == open_conversation_id else unread,
        important=bool(raw.get("is_sponsored")),
        counterparty_urn=other.urn if other else "",
        counterparty_id=extract_profile_id(other.urn if other else ""),
        headline=other.headline if other else "",
        url=text_or_empty(raw.get("conversation_url")) or None,
        participants=participants,
    )


def send_target_id(conversation: Conversation, credentials: SessionCredentials) -> str | None:
    """Recipient id for the send API.

    Prefers the ``2-…`` messaging id embedded in the conversation URN, then
    the counterparty's ``ACoAA…`` profile id, then the counterparty URN.
    Returns None when the conversation has no participant besides the
    operator.
    """
    target = None
    for participant in conversation.participants:
        if participant.urn != credentials.profile_urn and participant.distance != "SELF":
            target = participant
            break
    if target is None:
        return None
    match = _MESSAGING_ID.search(conversation.id or "")
    if match:
        return f"2-{match.group(1)}"
    profile = _PROFILE_ID.search(target.urn)
    return profile.group(0) if profile else target.urn


def sender_user_id(credentials: SessionCredentials) -> str:
    """Operator's profile id as the send API expects it."""
    match = _PROFILE_ID.search(credentials.profile_urn)
    return match.group(0) if match else credentials.profile_urn


def filter_conversations(
    conversations: list[Conversation],
    active_filter: str = "all",
    query: str = "",
) -> list[Conversation]:
    """Apply the list filter and a case-insensitive search.

    The search matches name, last message preview, or headline.
    """
    needle = query.strip().lower()
    result = []
    for conversation in conversations:
        if active_filter == "important" and not conversation.important:
            continue
        if active_filter == "unread" and conversation.unread == 0:
            continue
        if needle and not (
            needle in conversation.name.lower()
            or needle in conversation.last_message.lower()
            or needle in conversation.headline.lower()
        ):
            continue
        result.append(conversation)
    return result


def find_message(messages: list[Message], query: str) -> Message | None:
    """First message whose text contains ``query``, ignoring case."""
    needle = query.strip().lower()
    if not needle:
        return None
    for message in messages:
        if needle in message.text.lower():
            return message
    return None
