"""Masking of session secrets before they reach logs or notices.

Messaging payloads carry the operator's raw session cookies (``li_at``,
``JSESSIONID``) and backend calls carry a bearer token. Payloads are logged
only through redact_for_logging(); server-provided error text is passed
through sanitize_error_message() before it becomes part of an exception.
"""

import re
from typing import Any

MASK = "***REDACTED***"

# Matched case-insensitively as substrings of dict keys.
SECRET_KEY_FRAGMENTS = frozenset({
    "cookie", "li_at", "jsessionid", "token", "secret",
    "password", "authorization", "credential",
})

# Values under these keys are masked whole, whatever their shape.
_OPAQUE_KEYS = frozenset({"cookies", "headers", "credentials"})


def _is_secret(key: Any, fragments: frozenset[str]) -> bool:
    name = str(key).lower()
    return name in _OPAQUE_KEYS or any(fragment in name for fragment in fragments)


def _scrub(value: Any, fragments: frozenset[str]) -> Any:
    if isinstance(value, dict):
        return redact_for_logging(value, fragments)
    if isinstance(value, (list, tuple)):
        return [_scrub(item, fragments) for item in value]
    return value


def redact_for_logging(
    obj: dict,
    sensitive_patterns: frozenset[str] = SECRET_KEY_FRAGMENTS,
) -> dict:
    """Copy of ``obj`` with secret-looking values masked at any depth.

    Args:
        obj: Payload about to be logged. Not mutated.
        sensitive_patterns: Key fragments that mark a value as secret.

    Returns:
        A new dict safe to pass to a logger.
    """
    return {
        key: MASK if _is_secret(key, sensitive_patterns) else _scrub(value, sensitive_patterns)
        for key, value in obj.items()
    }


_SECRET_NAMES = r"li_at|jsessionid|cookie|token|secret|password|authorization|credential"
_SECRET_IN_TEXT = re.compile(
    rf"""(?ix)
    authorization\s*:\s*bearer\s+\S+
    | "(?:{_SECRET_NAMES})"\s*:\s*"[^"]*"
    | (?:{_SECRET_NAMES})\s*[=:]\s*(?:"[^"]*"|\S+)
    """
)


def sanitize_error_message(msg: str | None, max_length: int = 500) -> str | None:
    """Mask secrets in server-provided text and cap its length.

    ``None`` passes through unchanged; other non-strings are stringified.
    """
    if msg is None:
        return None
    cleaned = _SECRET_IN_TEXT.sub(MASK, str(msg))
    if len(cleaned) <= max_length:
        return cleaned
    return cleaned[:max_length - 3] + "..."
