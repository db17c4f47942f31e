"""Sender attribution for fetched messages.

The messaging relay does not reliably include the operator's own id in
message payloads, so attribution compares display names instead: a message
is from the counterparty only when its sender name equals the open
conversation's counterparty name. Everything else is attributed to self,
including every message of a conversation whose counterparty name is empty.
"""

from relaydesk.protocol import ORIGIN_COUNTERPARTY, ORIGIN_SELF


def classify(sender_name: str | None, counterparty_name: str | None) -> str:
    """Return ``"counterparty"`` or ``"self"`` for one message.

    Both names are trimmed before the exact comparison.
    """
    counterparty = (counterparty_name or "").strip()
    if not counterparty:
        return ORIGIN_SELF
    if (sender_name or "").strip() == counterparty:
        return ORIGIN_COUNTERPARTY
    return ORIGIN_SELF
