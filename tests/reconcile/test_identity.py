"""Tests for cross-identifier event matching."""

import pytest

from relaydesk.protocol import JobRecord, ProgressUpdate
from relaydesk.reconcile.identity import matches

RECORD = JobRecord(id="a1", status="running", job_id="j1")


@pytest.mark.parametrize(
    "primary,secondary",
    [
        ("a1", None),  # primary -> id
        ("j1", None),  # primary -> job_id
        (None, "a1"),  # secondary -> id
        (None, "j1"),  # secondary -> job_id
        ("zz", "j1"),
    ],
)
def test_any_pair_matches(primary, secondary):
    assert matches(ProgressUpdate(primary_id=primary, secondary_id=secondary), RECORD)


def test_event_without_ids_matches_nothing():
    assert not matches(ProgressUpdate(), RECORD)


def test_unrelated_ids_do_not_match():
    assert not matches(ProgressUpdate(primary_id="a2", secondary_id="j2"), RECORD)


def test_absent_ids_never_match_each_other():
    record = JobRecord(id="a1", status="running", job_id=None)
    assert not matches(ProgressUpdate(primary_id="", secondary_id=None), record)


def test_tolerates_foreign_objects():
    assert not matches(object(), RECORD)
    assert not matches(ProgressUpdate(primary_id="a1"), object())
