"""Match push events to job records across both identifier fields.

Upstream subsystems label the same job inconsistently: some events carry
the automation id, some the execution id, and either may arrive in either
field. A record matches when any event id equals any record id.
"""

from relaydesk.protocol import JobRecord, ProgressUpdate


def _ids(*values: object) -> set[str]:
    return {v for v in values if isinstance(v, str) and v}


def matches(event: ProgressUpdate, entity: JobRecord) -> bool:
    """Whether ``event`` targets ``entity``.

    True iff at least one of event.primary/secondary equals
    entity.id/job_id. Absent ids never match, so an event without ids
    matches nothing. Never raises.
    """
    event_ids = _ids(getattr(event, "primary_id", None), getattr(event, "secondary_id", None))
    if not event_ids:
        return False
    entity_ids = _ids(getattr(entity, "id", None), getattr(entity, "job_id", None))
    return not event_ids.isdisjoint(entity_ids)
