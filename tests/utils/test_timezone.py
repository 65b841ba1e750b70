"""Tests for utils/timezone.py."""

from datetime import datetime, timedelta, timezone

import pytest

from utils.timezone import now_utc, to_utc, today_utc


class TestNowUtc:
    def test_is_aware_utc(self):
        assert now_utc().tzinfo == timezone.utc

    def test_today_matches_now(self):
        assert today_utc() == now_utc().date()


class TestToUtc:
    def test_converts_offset(self):
        local = datetime(2026, 3, 15, 23, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))

        assert to_utc(local) == datetime(2026, 3, 15, 18, 0, tzinfo=timezone.utc)

    def test_rejects_naive(self):
        with pytest.raises(ValueError, match="naive"):
            to_utc(datetime(2026, 3, 15))
