"""REST clients for the automation backend and the messaging relay."""

from relaydesk.api.http_client import AutomationClient, BaseApiClient
from relaydesk.api.messaging_client import MessagingClient

__all__ = [
    "AutomationClient",
    "BaseApiClient",
    "MessagingClient",
]
