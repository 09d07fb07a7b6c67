"""
Tests for datetime utilities module.
"""
import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import patch

from assessment.core.datetime_utils import (
    ensure_timezone_aware,
    resolve_now,
    seconds_between,
    utc_now,
)


class TestEnsureTimezoneAware:
    """Tests for ensure_timezone_aware function."""

    def test_naive_datetime_becomes_utc(self):
        """Test that a naive datetime is converted to UTC."""
        naive_dt = datetime(2024, 1, 15, 12, 30, 45)

        result = ensure_timezone_aware(naive_dt)

        assert result.tzinfo == timezone.utc
        assert (result.hour, result.minute, result.second) == (12, 30, 45)

    def test_utc_datetime_unchanged(self):
        """Test that a UTC datetime is returned unchanged."""
        utc_dt = datetime(2024, 1, 15, 12, 30, 45, tzinfo=timezone.utc)

        assert ensure_timezone_aware(utc_dt) is utc_dt

    def test_non_utc_timezone_preserved(self):
        """Test that non-UTC timezone-aware datetimes are preserved."""
        tz_plus_5 = timezone(timedelta(hours=5))
        aware_dt = datetime(2024, 1, 15, 12, 30, 45, tzinfo=tz_plus_5)

        result = ensure_timezone_aware(aware_dt)

        assert result is aware_dt
        assert result.tzinfo == tz_plus_5

    def test_none_raises_value_error(self):
        """Test that None input raises ValueError."""
        with pytest.raises(ValueError, match="datetime cannot be None"):
            ensure_timezone_aware(None)


class TestResolveNow:
    """Tests for resolve_now function."""

    def test_explicit_now_is_used(self):
        now = datetime(2026, 3, 2, 9, 0)
        assert resolve_now(now) == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def test_defaults_to_utc_now(self):
        fixed = datetime(2030, 1, 1, tzinfo=timezone.utc)
        with patch("assessment.core.datetime_utils.utc_now", return_value=fixed):
            assert resolve_now(None) is fixed

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo == timezone.utc


class TestSecondsBetween:
    """Tests for seconds_between function."""

    def test_mixed_naive_and_aware(self):
        """Test that naive values from the database compare with aware ones."""
        start = datetime(2026, 3, 2, 9, 0)
        end = datetime(2026, 3, 2, 9, 25, 30, tzinfo=timezone.utc)

        assert seconds_between(start, end) == 25 * 60 + 30

    def test_never_negative(self):
        start = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)
        end = start - timedelta(minutes=5)

        assert seconds_between(start, end) == 0

    def test_other_timezone(self):
        start = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
        end = datetime(2026, 3, 2, 11, 0, tzinfo=timezone(timedelta(hours=2)))

        assert seconds_between(start, end) == 0
