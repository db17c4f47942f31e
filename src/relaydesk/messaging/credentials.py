"""Messaging session credentials from the operator's platform connections."""

import json
import logging
from datetime import datetime
from typing import Any

from relaydesk.api.http_client import AutomationClient
from relaydesk.protocol import SessionCredentials

logger = logging.getLogger(__name__)

PLATFORM = "LINKEDIN"


def _updated_at(connection: dict) -> float:
    value = connection.get("updatedAt")
    if not isinstance(value, str):
        return 0.0
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def _cookie_values(cookies: Any) -> dict[str, str]:
    """Name -> value map from a cookie list or its JSON-encoded form."""
    if isinstance(cookies, str):
        try:
            cookies = json.loads(cookies)
        except ValueError:
            logger.warning("Platform connection cookies are not valid JSON")
            return {}
    if not isinstance(cookies, list):
        return {}
    values = {}
    for cookie in cookies:
        if isinstance(cookie, dict) and isinstance(cookie.get("value"), str):
            values[str(cookie.get("name"))] = cookie["value"].replace('"', "")
    return values


def credentials_from_connections(
    connections: list[dict],
    profile_urn: str,
    mailbox_urn: str | None = None,
) -> SessionCredentials | None:
    """Pick the newest active connection and read its session cookies.

    Args:
        connections: Raw platform connection records.
        profile_urn: The operator's profile URN.
        mailbox_urn: The operator's mailbox URN; defaults to ``profile_urn``.

    Returns:
        Credentials, or None when no active connection has both
        ``JSESSIONID`` and ``li_at``.
    """
    candidates = sorted(
        (c for c in connections if c.get("platform") == PLATFORM and c.get("isActive")),
        key=_updated_at,
        reverse=True,
    )
    if not candidates or not candidates[0].get("cookies"):
        logger.info("No active %s connection with cookies", PLATFORM)
        return None
    values = _cookie_values(candidates[0]["cookies"])
    jsessionid = values.get("JSESSIONID")
    li_at = values.get("li_at")
    if not jsessionid or not li_at:
        logger.warning("Active %s connection is missing session cookies", PLATFORM)
        return None
    logger.info("Using %s session cookies from platform connection", PLATFORM)
    return SessionCredentials(
        jsessionid=jsessionid,
        li_at=li_at,
        mailbox_urn=mailbox_urn or profile_urn,
        profile_urn=profile_urn,
    )


async def load_session_credentials(
    client: AutomationClient,
    profile_urn: str,
    mailbox_urn: str | None = None,
) -> SessionCredentials | None:
    """Fetch platform connections and derive messaging credentials.

    Raises:
        AuthError: The backend answered 401.
        RequestError: The connection list could not be fetched.
    """
    connections = await client.list_platform_connections()
    return credentials_from_connections(connections, profile_urn, mailbox_urn)
