"""Message timestamps, display ordering and day separators."""

import logging
import math
import time
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any

from relaydesk.display import format_day_label, to_datetime
from relaydesk.errors import ParseError
from relaydesk.protocol import Message

logger = logging.getLogger(__name__)

# Upstream payloads name the timestamp differently depending on the
# endpoint; the first non-zero one wins.
TIMESTAMP_FIELDS = ("delivered_at", "created_at", "timestamp", "createdAt", "sent_at")


def parse_timestamp(value: Any) -> int:
    """Convert one timestamp field to epoch milliseconds.

    Accepts numbers, digit strings and ISO-8601 strings.

    Raises:
        ParseError: If the value cannot be read.
    """
    if isinstance(value, bool):
        raise ParseError("timestamp", f"unexpected boolean {value!r}")
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ParseError("timestamp", f"non-finite value {value!r}")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        try:
            moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ParseError("timestamp", f"unreadable value {value!r}") from exc
        if moment.tzinfo is None:
            moment = moment.astimezone()
        return int(moment.timestamp() * 1000)
    raise ParseError("timestamp", f"unsupported type {type(value).__name__}")


def extract_timestamp(raw: dict) -> int | None:
    """First non-zero, readable timestamp among TIMESTAMP_FIELDS, else None."""
    for name in TIMESTAMP_FIELDS:
        value = raw.get(name)
        if not value:
            continue
        try:
            parsed = parse_timestamp(value)
        except ParseError as exc:
            logger.warning("Invalid timestamp received: %s", exc)
            continue
        if parsed:
            return parsed
    return None


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TimelineEntry:
    """One rendered row: a message, preceded by a separator when ``day`` is set."""

    message: Message
    day: date | None = None
    day_label: str | None = None


def display_order(messages: list[Message], now: int | None = None) -> list[Message]:
    """Messages sorted by timestamp ascending, missing timestamps as ``now``.

    The sort is stable, so messages sharing a timestamp keep their order.
    """
    reference = now if now is not None else now_ms()
    return sorted(
        messages,
        key=lambda m: m.timestamp if m.timestamp else reference,
    )


def build_timeline(
    messages: list[Message],
    now: int | None = None,
    tz: tzinfo | None = None,
) -> list[TimelineEntry]:
    """Pair each message with a day separator where its local date changes.

    A message without a valid timestamp never gets a separator; the message
    after it compares against an unknown date and therefore gets one.
    """
    entries = []
    previous: date | None = None
    for message in display_order(messages, now):
        moment = to_datetime(message.timestamp, tz)
        current = moment.date() if moment else None
        if current is not None and current != previous:
            entries.append(TimelineEntry(message, current, format_day_label(moment)))
        else:
            entries.append(TimelineEntry(message))
        previous = current
    return entries
