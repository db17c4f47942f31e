"""Progress reconciliation between REST snapshots and push events.

Snapshots are authoritative and replace the whole collection. Push events
refine individual records: a field is overwritten only when the event
supplies it, so an event can never blank a value it did not mention.

Between a snapshot and events, the last call wins. A slow snapshot that
completes after fresher events replaces their fields; that ordering is
accepted rather than second-guessed here.
"""

import dataclasses
import logging
from collections.abc import Iterable
from typing import Any

from relaydesk.protocol import JobRecord, ProgressUpdate
from relaydesk.reconcile.identity import matches

logger = logging.getLogger(__name__)

_MERGED_FIELDS = ("progress", "status", "message", "current", "total")


def merge(record: JobRecord, event: ProgressUpdate) -> JobRecord:
    """Return ``record`` refined by the fields ``event`` supplies.

    Returns the same object when the event changes nothing.
    """
    changes = {}
    for name in _MERGED_FIELDS:
        value = getattr(event, name)
        if value is not None and value != getattr(record, name):
            changes[name] = value
    if not changes:
        return record
    return dataclasses.replace(record, **changes)


class ProgressReconciler:
    """Sole owner of the job record collection.

    Every operation returns a new list. Records that an operation does not
    touch are carried over as the same objects; touched records are new
    copies, so a list handed out earlier never changes underneath a reader.
    """

    def __init__(self, records: Iterable[JobRecord] = ()) -> None:
        self._records: list[JobRecord] = list(records)

    @property
    def records(self) -> list[JobRecord]:
        """Current reconciled collection (a fresh list on every access)."""
        return list(self._records)

    def get(self, record_id: str) -> JobRecord | None:
        """Find a record by automation id or execution id."""
        for record in self._records:
            if record.id == record_id or record.job_id == record_id:
                return record
        return None

    def replace_snapshot(self, rows: Iterable[JobRecord]) -> list[JobRecord]:
        """Replace the collection with a REST snapshot.

        Records missing from ``rows`` are dropped.
        """
        self._records = list(rows)
        logger.debug("Snapshot replaced collection with %d records", len(self._records))
        return self.records

    def apply_event(self, event: ProgressUpdate | dict[str, Any]) -> list[JobRecord]:
        """Fold one push event into every record it targets.

        Raw payload dicts are parsed first. Events without ids, or that
        target no known record, leave the collection unchanged.
        """
        if not isinstance(event, ProgressUpdate):
            event = ProgressUpdate.from_payload(event)

        updated = []
        matched = 0
        for record in self._records:
            if matches(event, record):
                matched += 1
                updated.append(merge(record, event))
            else:
                updated.append(record)

        if matched:
            logger.debug(
                "Applied progress event (primary=%s, secondary=%s) to %d record(s)",
                event.primary_id, event.secondary_id, matched,
            )
            self._records = updated
        return self.records
