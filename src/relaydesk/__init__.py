"""relaydesk: operator dashboard core for outreach automations and inbox.

Tracks long-running automation jobs from REST snapshots and push progress
events, and manages a messaging inbox with optimistic sends.
"""

__version__ = "0.1.0"
