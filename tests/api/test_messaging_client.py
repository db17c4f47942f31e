"""Tests for MessagingClient: request payloads and response handling."""

import pytest

from relaydesk.api.messaging_client import MessagingClient
from relaydesk.errors import AuthError, RequestError


class TestListConversations:
    """Tests for MessagingClient.list_conversations."""

    @pytest.mark.asyncio
    async def test_sends_session_and_paging(self, make_api_client, credentials):
        client, transport = make_api_client(MessagingClient, {
            ("POST", "/messages"): (200, {
                "success": True,
                "data": {"conversations": [{"conversation_id": "c1"}, None]},
            }),
        })
        conversations = await client.list_conversations(credentials, 20, 1_772_700_000_000)
        assert conversations == [{"conversation_id": "c1"}]
        body = transport.json_bodies("/messages")[0]
        assert body == {
            "cookies": {"JSESSIONID": "ajax:123", "li_at": "AQEDAT-secret"},
            "count": 20,
            "headers": {},
            "last_updated_before": 1_772_700_000_000,
            "mailbox_urn": "urn:li:fsd_profile:ACoAAOperator1",
        }

    @pytest.mark.asyncio
    async def test_unsuccessful_raises(self, make_api_client, credentials):
        client, _ = make_api_client(MessagingClient, {
            ("POST", "/messages"): (200, {"success": False}),
        })
        with pytest.raises(RequestError, match="Failed to fetch conversations"):
            await client.list_conversations(credentials, 20, 0)

    @pytest.mark.asyncio
    async def test_401_raises_auth_error(self, make_api_client, credentials):
        client, _ = make_api_client(MessagingClient, {
            ("POST", "/messages"): (401, {}),
        })
        with pytest.raises(AuthError):
            await client.list_conversations(credentials, 20, 0)


class TestGetMessages:

    @pytest.mark.asyncio
    async def test_returns_messages(self, make_api_client, credentials):
        client, transport = make_api_client(MessagingClient, {
            ("POST", "/messages/conversation"): (200, {
                "success": True,
                "data": {"messages": [{"message_urn": "m1", "text": "Hi"}]},
            }),
        })
        messages = await client.get_messages(credentials, "urn:li:msg_conversation:(x,2-abc)")
        assert messages == [{"message_urn": "m1", "text": "Hi"}]
        body = transport.json_bodies("/messages/conversation")[0]
        assert body["conversation_urn"] == "urn:li:msg_conversation:(x,2-abc)"
        assert body["profile_urn"] == credentials.profile_urn

    @pytest.mark.asyncio
    async def test_unsuccessful_is_empty(self, make_api_client, credentials):
        client, _ = make_api_client(MessagingClient, {
            ("POST", "/messages/conversation"): (200, {"success": False}),
        })
        assert await client.get_messages(credentials, "c1") == []

    @pytest.mark.asyncio
    async def test_server_error_raises(self, make_api_client, credentials):
        client, _ = make_api_client(MessagingClient, {
            ("POST", "/messages/conversation"): (503, {}),
        })
        with pytest.raises(RequestError) as exc_info:
            await client.get_messages(credentials, "c1")
        assert exc_info.value.status_code == 503


class TestSendMessage:

    @pytest.mark.asyncio
    async def test_sends_flat_payload(self, make_api_client, credentials):
        client, transport = make_api_client(MessagingClient, {
            ("POST", "/messages/send"): (200, {
                "success": True, "data": {"message_urn": "m-42", "text": "Hello"},
            }),
        })
        data = await client.send_message(credentials, "Hello", "2-abc", "ACoAAOperator1")
        assert data == {"message_urn": "m-42", "text": "Hello"}
        assert transport.json_bodies("/messages/send")[0] == {
            "jsessionid": "ajax:123",
            "li_at": "AQEDAT-secret",
            "message": "Hello",
            "target_user_id": "2-abc",
            "user_id": "ACoAAOperator1",
        }

    @pytest.mark.asyncio
    async def test_rejection_raises_with_reason(self, make_api_client, credentials):
        client, _ = make_api_client(MessagingClient, {
            ("POST", "/messages/send"): (200, {"success": False, "error": "Recipient blocked"}),
        })
        with pytest.raises(RequestError, match="Recipient blocked"):
            await client.send_message(credentials, "Hello", "2-abc", "ACoAAOperator1")
