"""Typed domain exceptions for the dashboard core.

Every network or API failure is converted into one of these types at the
call site, so callers can react by kind instead of matching on messages.

Usage:
    # In an API client
    if resp.status_code == 401:
        raise AuthError("GET /api/automation")

    # In a service
    try:
        rows = await client.list_automations()
    except AuthError:
        halt_polling()
    except RequestError as e:
        await emitter.emit_notice(e.to_notice())
"""

from dataclasses import dataclass

from relaydesk.errors.registry import get_error


@dataclass(frozen=True)
class Notice:
    """Dismissible, user-visible failure notice.

    Attributes:
        code: Error code in E-XXXX format.
        title: Short title for display.
        message: Human-readable message.
        remediation: Suggested next step.
        dismissible: Whether the UI may hide the notice on user request.
    """

    code: str
    title: str
    message: str
    remediation: str = ""
    dismissible: bool = True


class RelaydeskError(Exception):
    """Base exception for all dashboard core errors."""

    code = "E-3001"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_notice(self) -> Notice:
        """Build a notice from the registry entry for this error's code."""
        error_def = get_error(self.code)
        if error_def is None:
            return Notice(code=self.code, title="Error", message=self.message)
        return Notice(
            code=error_def.code,
            title=error_def.title,
            message=self.message,
            remediation=error_def.remediation,
            dismissible=True,
        )


def _format(code: str, **context: object) -> str:
    """Format a registry message template, keeping it on missing keys."""
    error_def = get_error(code)
    if error_def is None:
        return f"Unknown error: {code}"
    try:
        return error_def.message_template.format(**context)
    except KeyError:
        return error_def.message_template


class TransportError(RelaydeskError):
    """Push channel could not be (re)connected. Degrade to polling only."""

    code = "E-1001"

    def __init__(self, reason: str, attempts: int = 0) -> None:
        super().__init__(_format(self.code, reason=reason))
        self.reason = reason
        self.attempts = attempts


class AuthError(RelaydeskError):
    """Server answered 401. The caller must reauthenticate."""

    code = "E-2001"

    def __init__(self, resource: str) -> None:
        super().__init__(_format(self.code))
        self.resource = resource
        self.status_code = 401


class RequestError(RelaydeskError):
    """Non-401 failure of a REST call. Prior state stays intact."""

    code = "E-3001"

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        super().__init__(_format(self.code, reason=reason))
        self.reason = reason
        self.status_code = status_code


class MalformedResponseError(RequestError):
    """Server answered 2xx with a body that could not be read."""

    code = "E-3002"


class SendFailure(RelaydeskError):
    """Outbound message was rejected. The optimistic copy was rolled back."""

    code = "E-4001"

    def __init__(self, reason: str) -> None:
        super().__init__(_format(self.code, reason=reason))
        self.reason = reason


class ValidationError(RelaydeskError):
    """Input rejected before any request was made."""

    code = "E-4002"

    def __init__(self, reason: str) -> None:
        super().__init__(_format(self.code, reason=reason))
        self.reason = reason


class ParseError(RelaydeskError):
    """A payload field could not be read.

    Raised only inside parsers; the reconciliation path catches it and
    substitutes a safe default.
    """

    code = "E-5001"

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(_format(self.code, field=field, reason=reason))
        self.field = field
        self.reason = reason
