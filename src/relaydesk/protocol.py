"""Dashboard data models.

Every model tolerates extra fields in API payloads via ``from_api()``.
Job records and conversations are frozen so that a reconciliation step
always produces new objects instead of mutating ones a reader may hold.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

JOB_STATUSES = frozenset({
    "active", "running", "pending", "paused", "completed", "failed", "cancelled",
})

ORIGIN_SELF = "self"
ORIGIN_COUNTERPARTY = "counterparty"


def text_or_empty(value: Any) -> str:
    """The value if it is a string, else ''."""
    return value if isinstance(value, str) else ""


def _optional_str(value: Any) -> str | None:
    """Return a non-empty string id, or None for anything else."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _optional_number(value: Any) -> float | None:
    """Coerce numeric payload fields; unreadable values become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            logger.debug("Ignoring non-numeric value %r", value)
    return None


def _optional_int(value: Any) -> int | None:
    number = _optional_number(value)
    return int(number) if number is not None else None


@dataclass(frozen=True)
class JobRecord:
    """Automation job as listed by the Job Listing API.

    ``id`` is the automation id; ``job_id`` is the id of the current
    execution. Push events may reference either one.
    """

    id: str
    status: str
    job_id: str | None = None
    template_id: str | None = None
    platform: str = ""
    progress: float | None = None
    message: str | None = None
    current: int | None = None
    total: int | None = None
    interval: str | None = None
    created_at: str = ""
    last_run_at: str | None = None
    next_run_at: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "JobRecord":
        """Construct from API JSON, tolerating extra fields."""
        return cls(
            id=str(data["id"]),
            status=data.get("status", "pending"),
            job_id=_optional_str(data.get("jobId")),
            template_id=data.get("templateId"),
            platform=data.get("platform", ""),
            progress=_optional_number(data.get("progress")),
            message=data.get("message"),
            current=_optional_int(data.get("current")),
            total=_optional_int(data.get("total")),
            interval=data.get("interval"),
            created_at=data.get("createdAt", ""),
            last_run_at=data.get("lastRunAt"),
            next_run_at=data.get("nextRunAt"),
        )


@dataclass(frozen=True)
class ProgressUpdate:
    """Push event carrying a partial update for one job.

    Every field except the ids is optional; ``None`` means "not supplied"
    and leaves the job's current value untouched.
    """

    primary_id: str | None = None
    secondary_id: str | None = None
    progress: float | None = None
    status: str | None = None
    message: str | None = None
    current: int | None = None
    total: int | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "ProgressUpdate":
        """Parse a raw push payload. Never raises.

        Accepts both the generic ``primaryId``/``secondaryId`` keys and the
        ``automationId``/``jobId`` keys emitted by the automation backend.
        Anything that is not a mapping yields an update that matches nothing.
        """
        if not isinstance(data, dict):
            logger.debug("Ignoring non-mapping progress payload: %r", type(data).__name__)
            return cls()
        primary = data.get("primaryId", data.get("automationId"))
        secondary = data.get("secondaryId", data.get("jobId"))
        progress = _optional_number(data.get("progress"))
        if progress is not None and not 0 <= progress <= 100:
            logger.debug("Ignoring out-of-range progress %r", progress)
            progress = None
        status = data.get("status")
        if status is not None and status not in JOB_STATUSES:
            logger.debug("Ignoring unknown status %r", status)
            status = None
        message = data.get("message")
        return cls(
            primary_id=_optional_str(primary),
            secondary_id=_optional_str(secondary),
            progress=progress,
            status=status,
            message=message if isinstance(message, str) and message else None,
            current=_optional_int(data.get("current")),
            total=_optional_int(data.get("total")),
        )


@dataclass(frozen=True)
class Participant:
    """Conversation participant."""

    urn: str
    name: str = ""
    headline: str = ""
    distance: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Participant":
        """Construct from API JSON, tolerating extra fields."""
        return cls(
            urn=text_or_empty(data.get("urn")),
            name=text_or_empty(data.get("name")),
            headline=text_or_empty(data.get("headline")),
            distance=text_or_empty(data.get("distance")),
        )


@dataclass(frozen=True)
class Conversation:
    """Conversation summary shown in the contact list.

    ``name`` is the counterparty's display name; attribution of fetched
    messages compares sender names against it.
    """

    id: str
    name: str
    last_message: str = "No messages"
    last_activity: int = 0
    unread: int = 0
    important: bool = False
    counterparty_urn: str = ""
    counterparty_id: str | None = None
    headline: str = ""
    url: str | None = None
    participants: tuple[Participant, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Message:
    """Single chat message.

    ``pending`` is True only for the optimistic copy of an outbound message,
    whose ``id`` is then the client-generated correlation id.
    """

    id: str
    text: str
    origin: str
    time: str
    timestamp: int | None = None
    sender_name: str = ""
    sender_urn: str | None = None
    pending: bool = False


@dataclass(frozen=True)
class SessionCredentials:
    """Messaging session cookies and the operator's own URNs."""

    jsessionid: str
    li_at: str
    mailbox_urn: str
    profile_urn: str

    @property
    def cookies(self) -> dict[str, str]:
        """Cookie mapping in the shape the messaging API expects."""
        return {"JSESSIONID": self.jsessionid, "li_at": self.li_at}
