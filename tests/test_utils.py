"""Tests for shared utility functions."""

from datetime import datetime, timedelta, timezone

import pytest

from booking_engine.utils import ensure_aware, local_day_bounds, utc_now


class TestEnsureAware:
    def test_aware_value_passes_through(self):
        value = datetime(2025, 3, 11, 10, tzinfo=timezone.utc)
        assert ensure_aware(value) is value

    def test_naive_value_is_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            ensure_aware(datetime(2025, 3, 11, 10))

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None


class TestLocalDayBounds:
    def test_utc_day(self):
        start, end = local_day_bounds(datetime(2025, 3, 11, 15, tzinfo=timezone.utc), "UTC")
        assert start == datetime(2025, 3, 11, tzinfo=timezone.utc)
        assert end - start == timedelta(days=1)

    def test_local_day_differs_from_utc_day(self):
        # 02:00 UTC on Oct 1 is still Sep 30 in New York.
        start, end = local_day_bounds(
            datetime(2025, 10, 1, 2, tzinfo=timezone.utc), "America/New_York"
        )
        assert start == datetime(2025, 9, 30, 4, tzinfo=timezone.utc)
        assert end == datetime(2025, 10, 1, 4, tzinfo=timezone.utc)

    def test_dst_change_day_is_23_hours(self):
        start, end = local_day_bounds(
            datetime(2025, 3, 9, 12, tzinfo=timezone.utc), "America/New_York"
        )
        # Same-zone subtraction is wall-clock; compare as absolute instants.
        assert end.astimezone(timezone.utc) - start.astimezone(timezone.utc) == timedelta(hours=23)

    def test_naive_instant_is_rejected(self):
        with pytest.raises(ValueError):
            local_day_bounds(datetime(2025, 3, 11, 10), "UTC")
