"""Catalogue of user-facing failures, keyed by ``E-NNNN`` codes.

The leading digit of a code names the area that failed: 1 for the push
channel, 2 for the session, 3 for plain request failures, 4 for
messaging and 5 for unreadable payload fields. Each entry pairs a
message template with what the operator can do about it.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Area a failure code belongs to."""

    TRANSPORT = "transport"  # E-1xxx
    AUTH = "auth"  # E-2xxx
    REQUEST = "request"  # E-3xxx
    MESSAGING = "messaging"  # E-4xxx
    PARSE = "parse"  # E-5xxx


@dataclass
class ErrorCode:
    """One catalogue entry.

    ``message_template`` is formatted with the context of the failure
    (``{reason}``, ``{field}``). ``is_retryable`` marks failures that may
    clear up without the operator doing anything.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Push channel errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.TRANSPORT,
        title="Live Updates Unavailable",
        message_template="Could not connect to the live update channel: {reason}",
        remediation="Progress keeps refreshing from the server. Live updates resume once the channel reconnects.",
        is_retryable=True,
    ),
    # Authentication errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.AUTH,
        title="Session Expired",
        message_template="Your session has expired. Please log in again.",
        remediation="Log in again to continue.",
    ),
    # Request errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.REQUEST,
        title="Request Failed",
        message_template="{reason}",
        remediation="Check your connection and try again.",
        is_retryable=True,
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.REQUEST,
        title="Unexpected Server Response",
        message_template="The server returned an unreadable response ({reason}).",
        remediation="Try again in a few minutes.",
        is_retryable=True,
    ),
    # Messaging errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.MESSAGING,
        title="Message Not Sent",
        message_template="Your message could not be sent: {reason}",
        remediation="Check the conversation and send the message again.",
    ),
    "E-4002": ErrorCode(
        code="E-4002",
        category=ErrorCategory.MESSAGING,
        title="Invalid Input",
        message_template="{reason}",
        remediation="Correct the input and try again.",
    ),
    # Parse errors (E-5xxx)
    "E-5001": ErrorCode(
        code="E-5001",
        category=ErrorCategory.PARSE,
        title="Unreadable Field",
        message_template="Field '{field}' could not be read: {reason}",
        remediation="No action needed. A safe default was used.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Entry for ``code``, or None if it is not catalogued."""
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    return [entry for entry in ERROR_REGISTRY.values() if entry.category == category]
