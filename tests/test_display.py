"""Tests for schedule and timestamp labels."""

from datetime import UTC, datetime, timedelta

import pytest

from relaydesk.display import (
    format_day_label,
    format_interval,
    format_message_time,
    format_relative_time,
    to_datetime,
)

NOW = datetime(2026, 3, 5, 15, 4, tzinfo=UTC)


def _ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class TestFormatInterval:

    @pytest.mark.parametrize(
        "interval,label",
        [
            ("2_minutes", "2 minutes"),
            ("hourly", "1 hour"),
            ("daily", "Daily"),
            ("monthly", "Monthly"),
            ("3_hours", "3 hours"),
            (None, "No schedule"),
            ("", "No schedule"),
        ],
    )
    def test_labels(self, interval, label):
        assert format_interval(interval) == label


class TestFormatRelativeTime:

    @pytest.mark.parametrize(
        "delta,label",
        [
            (timedelta(seconds=30), "30 sec ago"),
            (timedelta(minutes=5), "5 min ago"),
            (timedelta(hours=1), "1 hour ago"),
            (timedelta(hours=3), "3 hours ago"),
            (timedelta(days=1), "1 day ago"),
            (timedelta(days=2), "2 days ago"),
            (timedelta(days=14), "2 weeks ago"),
            (timedelta(days=60), "2 months ago"),
            (timedelta(days=400), "01/29/2025"),
        ],
    )
    def test_buckets(self, delta, label):
        assert format_relative_time(_ms(NOW - delta), now=NOW) == label

    def test_unknown_timestamp(self):
        assert format_relative_time(None, now=NOW) == "Recently"
        assert format_relative_time(0, now=NOW) == "Recently"

    def test_future_clamps_to_zero(self):
        assert format_relative_time(_ms(NOW + timedelta(seconds=10)), now=NOW) == "0 sec ago"


class TestFormatMessageTime:

    def test_today_shows_clock(self):
        assert format_message_time(_ms(NOW), now=NOW) == "3:04 PM"

    def test_midnight(self):
        assert format_message_time(_ms(NOW.replace(hour=0, minute=0)), now=NOW) == "12:00 AM"

    def test_other_day_shows_date(self):
        earlier = datetime(2026, 3, 4, 9, 5, tzinfo=UTC)
        assert format_message_time(_ms(earlier), now=NOW) == "Mar 4, 9:05 AM"

    def test_unknown_timestamp(self):
        assert format_message_time(None, now=NOW) == "recently"


def test_day_label():
    assert format_day_label(datetime(2026, 3, 2, 12, 0, tzinfo=UTC)) == "Monday, March 2"


def test_to_datetime_rejects_absurd_values():
    assert to_datetime(None) is None
    assert to_datetime(10**20) is None
