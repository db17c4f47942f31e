"""Job progress reconciliation.

Merges REST snapshots of automation jobs with push progress events into
one consistent collection.
"""

from relaydesk.reconcile.identity import matches
from relaydesk.reconcile.monitor import AutomationMonitor
from relaydesk.reconcile.progress import ProgressReconciler, merge

__all__ = [
    "AutomationMonitor",
    "ProgressReconciler",
    "matches",
    "merge",
]
