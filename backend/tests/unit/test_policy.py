"""Unit tests for allowed-hours windows, approval policy and quota helpers"""

from datetime import datetime, timezone

import pytest

from orggate.capabilities.policy import (
    is_within_allowed_hours,
    parse_hhmm,
    quota_exhausted,
    remaining,
    resolve_requires_approval,
    sunday_based_weekday,
)

BUSINESS_HOURS = {"start": "09:00", "end": "17:00", "timezone": "UTC", "days_of_week": [1, 2, 3, 4, 5]}


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestParseHHMM:
    def test_valid(self):
        assert parse_hhmm("00:00") == 0
        assert parse_hhmm("08:30") == 510
        assert parse_hhmm("23:59") == 1439

    @pytest.mark.parametrize("value", ["24:00", "12:60", "ab:cd", "-1:00"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_hhmm(value)


class TestAllowedHours:
    def test_no_window_allows_everything(self):
        assert is_within_allowed_hours(None, utc(2026, 1, 4, 3, 0)) is True
        assert is_within_allowed_hours({}, utc(2026, 1, 4, 3, 0)) is True

    def test_inside_business_hours(self):
        # 2026-01-05 is a Monday
        assert is_within_allowed_hours(BUSINESS_HOURS, utc(2026, 1, 5, 9, 0)) is True
        assert is_within_allowed_hours(BUSINESS_HOURS, utc(2026, 1, 5, 16, 59)) is True

    def test_end_is_exclusive(self):
        assert is_within_allowed_hours(BUSINESS_HOURS, utc(2026, 1, 5, 17, 0)) is False
        assert is_within_allowed_hours(BUSINESS_HOURS, utc(2026, 1, 5, 8, 59)) is False

    def test_weekend_denied(self):
        # 2026-01-04 is a Sunday
        assert sunday_based_weekday(utc(2026, 1, 4, 12, 0)) == 0
        assert is_within_allowed_hours(BUSINESS_HOURS, utc(2026, 1, 4, 12, 0)) is False

    def test_window_in_local_timezone(self):
        window = {"start": "09:00", "end": "17:00", "timezone": "Africa/Lagos"}
        # 08:30 UTC is 09:30 in Lagos (UTC+1)
        assert is_within_allowed_hours(window, utc(2026, 1, 5, 8, 30)) is True
        assert is_within_allowed_hours(window, utc(2026, 1, 5, 16, 30)) is False

    def test_overnight_window_wraps(self):
        window = {"start": "22:00", "end": "06:00", "timezone": "UTC"}
        assert is_within_allowed_hours(window, utc(2026, 1, 5, 23, 0)) is True
        assert is_within_allowed_hours(window, utc(2026, 1, 6, 5, 59)) is True
        assert is_within_allowed_hours(window, utc(2026, 1, 6, 6, 0)) is False
        assert is_within_allowed_hours(window, utc(2026, 1, 5, 12, 0)) is False

    def test_equal_start_and_end_covers_whole_day(self):
        window = {"start": "00:00", "end": "00:00", "timezone": "UTC"}
        assert is_within_allowed_hours(window, utc(2026, 1, 5, 13, 0)) is True

    def test_malformed_window_denies(self):
        assert is_within_allowed_hours({"start": "9am", "end": "17:00"}, utc(2026, 1, 5, 12, 0)) is False
        assert is_within_allowed_hours(
            {"start": "09:00", "end": "17:00", "timezone": "Mars/Olympus"}, utc(2026, 1, 5, 12, 0)
        ) is False
        assert is_within_allowed_hours({"end": "17:00"}, utc(2026, 1, 5, 12, 0)) is False


class TestApprovalPolicy:
    def test_inherit_uses_capability_default(self):
        assert resolve_requires_approval("inherit", True) is True
        assert resolve_requires_approval("inherit", False) is False
        assert resolve_requires_approval(None, True) is True

    def test_override(self):
        assert resolve_requires_approval("always", False) is True
        assert resolve_requires_approval("never", True) is False


class TestQuota:
    def test_unlimited(self):
        assert remaining(None, 500) is None
        assert quota_exhausted(None, 500) is False

    def test_limited(self):
        assert remaining(10, 3) == 7
        assert remaining(10, 12) == 0
        assert quota_exhausted(10, 9) is False
        assert quota_exhausted(10, 10) is True
        assert quota_exhausted(0, 0) is True
