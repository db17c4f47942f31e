"""Push channel connection management."""

from relaydesk.channel.manager import ChannelManager
from relaydesk.channel.transport import ChannelTransport, SocketIOTransport

__all__ = [
    "ChannelManager",
    "ChannelTransport",
    "SocketIOTransport",
]
