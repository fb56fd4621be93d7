"""
Tests for faucet cooldown arithmetic
"""

import datetime

from services.cooldown import cooldown_status, format_duration, parse_timestamp

NOW = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)
DAY = 86400


def ago(seconds):
    return (NOW - datetime.timedelta(seconds=seconds)).isoformat()


class TestCooldownStatus:

    def test_never_claimed_is_eligible(self):
        status = cooldown_status(None, DAY, now=NOW)
        assert status.eligible
        assert status.remaining_seconds == 0

    def test_within_cooldown_reports_remaining(self):
        status = cooldown_status(ago(3600), DAY, now=NOW)
        assert not status.eligible
        assert status.remaining_seconds == DAY - 3600

    def test_exactly_at_cooldown_is_eligible(self):
        status = cooldown_status(ago(DAY), DAY, now=NOW)
        assert status.eligible
        assert status.remaining_seconds == 0

    def test_after_cooldown_remaining_is_clamped(self):
        status = cooldown_status(ago(DAY * 3), DAY, now=NOW)
        assert status.eligible
        assert status.remaining_seconds == 0

    def test_accepts_zulu_and_naive_timestamps(self):
        assert parse_timestamp('2024-05-01T11:00:00Z') == NOW - datetime.timedelta(hours=1)
        naive = datetime.datetime(2024, 5, 1, 11, 0)
        assert not cooldown_status(naive, DAY, now=NOW).eligible


def test_format_duration():
    assert format_duration(DAY - 3600) == '23h 0m'
    assert format_duration(5430) == '1h 30m'
    assert format_duration(59) == '0h 0m'
