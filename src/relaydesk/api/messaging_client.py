"""HTTP client for the messaging relay service.

The relay forwards requests to the third-party messaging surface using the
operator's session cookies, so every call carries SessionCredentials in its
body rather than a bearer token.
"""

import logging

from relaydesk.api.http_client import BaseApiClient
from relaydesk.errors import RequestError
from relaydesk.protocol import SessionCredentials
from relaydesk.utils.redaction import redact_for_logging, sanitize_error_message

logger = logging.getLogger(__name__)


class MessagingClient(BaseApiClient):
    """Client for the Conversation Listing, Conversation Messages and Send APIs."""

    async def list_conversations(
        self,
        credentials: SessionCredentials,
        page_size: int,
        as_of_ms: int,
    ) -> list[dict]:
        """List conversation summaries via POST /messages.

        Args:
            credentials: Messaging session.
            page_size: Number of conversations to request.
            as_of_ms: Only conversations updated before this epoch-ms time.

        Returns:
            Raw conversation summaries ordered by last activity.
        """
        payload = {
            "cookies": credentials.cookies,
            "count": page_size,
            "headers": {},
            "last_updated_before": as_of_ms,
            "mailbox_urn": credentials.mailbox_urn,
        }
        logger.debug("Listing conversations: %s", redact_for_logging(payload))
        resp = await self._request("POST", "/messages", json=payload)
        body = self._json_body(resp)
        data = body.get("data")
        if not body.get("success") or not isinstance(data, dict):
            raise RequestError(
                sanitize_error_message(body.get("error")) or "Failed to fetch conversations",
                status_code=resp.status_code,
            )
        conversations = data.get("conversations") or []
        return [c for c in conversations if isinstance(c, dict)]

    async def get_messages(
        self,
        credentials: SessionCredentials,
        conversation_id: str,
    ) -> list[dict]:
        """Fetch a conversation's messages via POST /messages/conversation.

        Args:
            credentials: Messaging session.
            conversation_id: Conversation URN.

        Returns:
            Raw messages in server order; empty when the relay reports none.
        """
        payload = {
            "conversation_urn": conversation_id,
            "cookies": credentials.cookies,
            "headers": {},
            "profile_urn": credentials.profile_urn,
        }
        logger.debug("Fetching messages: %s", redact_for_logging(payload))
        resp = await self._request("POST", "/messages/conversation", json=payload)
        body = self._json_body(resp)
        data = body.get("data")
        if not body.get("success") or not isinstance(data, dict):
            return []
        messages = data.get("messages") or []
        return [m for m in messages if isinstance(m, dict)]

    async def send_message(
        self,
        credentials: SessionCredentials,
        text: str,
        target_id: str,
        user_id: str,
    ) -> dict:
        """Send a message via POST /messages/send.

        Args:
            credentials: Messaging session.
            text: Message body.
            target_id: Recipient's messaging id.
            user_id: Sender's profile id.

        Returns:
            The confirmed message as returned by the relay.

        Raises:
            RequestError: If the relay rejects the message.
        """
        payload = {
            "jsessionid": credentials.jsessionid,
            "li_at": credentials.li_at,
            "message": text,
            "target_user_id": target_id,
            "user_id": user_id,
        }
        logger.debug("Sending message: %s", redact_for_logging(payload))
        resp = await self._request("POST", "/messages/send", json=payload)
        body = self._json_body(resp)
        data = body.get("data")
        if not body.get("success") or not isinstance(data, dict):
            reason = body.get("error") or body.get("message") or "Failed to send message"
            raise RequestError(sanitize_error_message(str(reason)) or "", status_code=resp.status_code)
        return data
