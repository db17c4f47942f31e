"""Tests for conversation transformation, recipient ids and filtering."""

import dataclasses

import pytest

from relaydesk.messaging.contacts import (
    conversation_from_api,
    extract_profile_id,
    filter_conversations,
    find_message,
    send_target_id,
    sender_user_id,
)
from relaydesk.protocol import Conversation, Message

CONVERSATION_URN = "urn:li:msg_conversation:(urn:li:fsd_profile:ACoAAOperator1,2-YWJjZGVm)"


def _raw(**overrides):
    raw = {
        "conversation_id": CONVERSATION_URN,
        "latest_message": {"body": "See you Tuesday"},
        "unread_count": 5,
        "last_activity_at": 1_772_700_000_000,
        "is_sponsored": False,
        "conversation_url": "https://www.linkedin.com/messaging/thread/2-YWJjZGVm/",
        "participants": [
            {"urn": "urn:li:fsd_profile:ACoAAOperator1", "name": "Sam Operator", "distance": "SELF"},
            {"urn": "urn:li:fsd_profile:ACoAAJane", "name": "Jane Doe",
             "headline": "CTO at Acme", "distance": "DISTANCE_1"},
        ],
    }
    raw.update(overrides)
    return raw


class TestExtractProfileId:

    @pytest.mark.parametrize(
        "urn,expected",
        [
            ("urn:li:fsd_profile:ACoAAJane", "ACoAAJane"),
            ("urn:li:fs_miniProfile:ACoAAJane", "ACoAAJane"),
            ("ACoAAJane", "ACoAAJane"),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, urn, expected):
        assert extract_profile_id(urn) == expected


class TestConversationFromApi:
    """Tests for summary transformation."""

    def test_picks_counterparty(self, credentials):
        conversation = conversation_from_api(_raw(), credentials)
        assert conversation.id == CONVERSATION_URN
        assert conversation.name == "Jane Doe"
        assert conversation.headline == "CTO at Acme"
        assert conversation.counterparty_id == "ACoAAJane"
        assert conversation.last_message == "See you Tuesday"
        assert conversation.unread == 5
        assert len(conversation.participants) == 2

    def test_open_conversation_reads_as_read(self, credentials):
        conversation = conversation_from_api(_raw(), credentials, open_conversation_id=CONVERSATION_URN)
        assert conversation.unread == 0

    def test_other_open_conversation_keeps_unread(self, credentials):
        conversation = conversation_from_api(_raw(), credentials, open_conversation_id="other")
        assert conversation.unread == 5

    def test_defaults_for_sparse_summary(self, credentials):
        conversation = conversation_from_api(
            {"conversation_id": "c9", "unread_count": "many"}, credentials,
        )
        assert conversation.name == "Unknown Contact"
        assert conversation.last_message == "No messages"
        assert conversation.unread == 0
        assert conversation.participants == ()

    def test_non_string_fields_fall_back(self, credentials):
        raw = _raw(
            latest_message={"body": {"attachments": 2}},
            conversation_url=17,
            participants=[
                {"urn": "urn:li:fsd_profile:ACoAAOperator1", "name": "Sam Operator"},
                {"urn": "urn:li:fsd_profile:ACoAAJane", "name": 404, "headline": ["CTO"]},
            ],
        )
        conversation = conversation_from_api(raw, credentials)
        assert conversation.name == "Unknown Contact"
        assert conversation.headline == ""
        assert conversation.last_message == "No messages"
        assert conversation.url is None
        assert filter_conversations([conversation], "all", "unknown") == [conversation]

    def test_sponsored_is_important(self, credentials):
        assert conversation_from_api(_raw(is_sponsored=True), credentials).important is True


class TestSendTargetId:
    """Tests for recipient id resolution."""

    def test_prefers_messaging_id(self, credentials):
        conversation = conversation_from_api(_raw(), credentials)
        assert send_target_id(conversation, credentials) == "2-YWJjZGVm"

    def test_falls_back_to_profile_id(self, credentials):
        conversation = conversation_from_api(_raw(conversation_id="thread-1"), credentials)
        assert send_target_id(conversation, credentials) == "ACoAAJane"

    def test_falls_back_to_urn(self, credentials):
        raw = _raw(conversation_id="thread-1", participants=[
            {"urn": "urn:li:member:12345", "name": "Jane Doe", "distance": "DISTANCE_2"},
        ])
        conversation = conversation_from_api(raw, credentials)
        assert send_target_id(conversation, credentials) == "urn:li:member:12345"

    def test_no_counterparty(self, credentials):
        raw = _raw(participants=[
            {"urn": "urn:li:fsd_profile:ACoAAOperator1", "name": "Sam Operator", "distance": "SELF"},
        ])
        conversation = conversation_from_api(raw, credentials)
        assert send_target_id(conversation, credentials) is None

    def test_sender_user_id(self, credentials):
        assert sender_user_id(credentials) == "ACoAAOperator1"


class TestFiltering:

    @pytest.fixture
    def conversations(self):
        return [
            Conversation(id="c1", name="Jane Doe", last_message="Pricing?", unread=2),
            Conversation(id="c2", name="Raj Patel", last_message="Thanks", important=True,
                         headline="VP Sales"),
            Conversation(id="c3", name="Li Wei", last_message="See you"),
        ]

    def test_all(self, conversations):
        assert filter_conversations(conversations) == conversations

    def test_unread(self, conversations):
        assert [c.id for c in filter_conversations(conversations, "unread")] == ["c1"]

    def test_important(self, conversations):
        assert [c.id for c in filter_conversations(conversations, "important")] == ["c2"]

    @pytest.mark.parametrize("query,ids", [("jane", ["c1"]), ("THANKS", ["c2"]),
                                           ("sales", ["c2"]), ("nobody", [])])
    def test_search(self, conversations, query, ids):
        assert [c.id for c in filter_conversations(conversations, query=query)] == ids

    def test_search_combines_with_filter(self, conversations):
        read = [dataclasses.replace(c, unread=0) for c in conversations]
        assert filter_conversations(read, "unread", "jane") == []


class TestFindMessage:

    def test_case_insensitive(self):
        messages = [
            Message(id="m1", text="Hello there", origin="self", time=""),
            Message(id="m2", text="Pricing for Q3?", origin="counterparty", time=""),
        ]
        assert find_message(messages, "pricing").id == "m2"
        assert find_message(messages, "absent") is None
        assert find_message(messages, "  ") is None
