"""Error handling framework for relaydesk.

This package provides:
- Error code registry with E-XXXX format codes
- Typed domain exceptions for each failure kind
- Dismissible notices built from registry entries

Error categories:
- E-1xxx: Push channel errors
- E-2xxx: Authentication errors
- E-3xxx: Request/API errors
- E-4xxx: Messaging errors
- E-5xxx: Payload parsing errors
"""

from relaydesk.errors.domain import (
    AuthError,
    MalformedResponseError,
    Notice,
    ParseError,
    RelaydeskError,
    RequestError,
    SendFailure,
    TransportError,
    ValidationError,
)
from relaydesk.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Domain errors
    "RelaydeskError",
    "TransportError",
    "AuthError",
    "RequestError",
    "MalformedResponseError",
    "SendFailure",
    "ValidationError",
    "ParseError",
    "Notice",
]
