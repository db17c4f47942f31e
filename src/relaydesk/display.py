"""Human-readable labels for schedules and timestamps.

All timestamp helpers take epoch milliseconds, the unit every upstream
payload uses, and an optional ``now`` for deterministic output.
"""

from datetime import datetime, tzinfo

_INTERVAL_LABELS = {
    "2_minutes": "2 minutes",
    "5_minutes": "5 minutes",
    "10_minutes": "10 minutes",
    "30_minutes": "30 minutes",
    "hourly": "1 hour",
    "daily": "Daily",
    "weekly": "Weekly",
    "monthly": "Monthly",
}


def format_interval(interval: str | None) -> str:
    """Label for an automation's schedule interval."""
    if not interval:
        return "No schedule"
    return _INTERVAL_LABELS.get(interval, interval.replace("_", " ", 1))


def to_datetime(timestamp_ms: int | None, tz: tzinfo | None = None) -> datetime | None:
    """Convert epoch milliseconds to an aware local datetime.

    Returns None for missing, zero, or out-of-range values.
    """
    if not timestamp_ms:
        return None
    try:
        return datetime.fromtimestamp(timestamp_ms / 1000, tz).astimezone(tz)
    except (OverflowError, OSError, ValueError):
        return None


def _aware(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now().astimezone()
    return now if now.tzinfo is not None else now.astimezone()


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''} ago"


def format_relative_time(timestamp_ms: int | None, now: datetime | None = None) -> str:
    """Conversation-list label such as ``5 min ago`` or ``2 weeks ago``."""
    now = _aware(now)
    moment = to_datetime(timestamp_ms, now.tzinfo)
    if moment is None:
        return "Recently"
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return f"{max(seconds, 0)} sec ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")
    days = hours // 24
    if days < 7:
        return _plural(days, "day")
    if days < 30:
        return _plural(days // 7, "week")
    if days < 365:
        return _plural(days // 30, "month")
    return moment.strftime("%m/%d/%Y")


def _clock_label(moment: datetime) -> str:
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d} {suffix}"


def format_message_time(timestamp_ms: int | None, now: datetime | None = None) -> str:
    """Message label: ``3:04 PM`` today, ``Mar 5, 3:04 PM`` on other days."""
    now = _aware(now)
    moment = to_datetime(timestamp_ms, now.tzinfo)
    if moment is None:
        return "recently"
    if moment.date() != now.date():
        return f"{moment.strftime('%b')} {moment.day}, {_clock_label(moment)}"
    return _clock_label(moment)


def format_day_label(moment: datetime) -> str:
    """Day separator label such as ``Monday, March 5``."""
    return f"{moment.strftime('%A, %B')} {moment.day}"
