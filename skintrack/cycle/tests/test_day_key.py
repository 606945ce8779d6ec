"""Tests for day-key normalization and calendar arithmetic."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from skintrack.cycle.day_key import (
    add_days,
    diff_in_days,
    from_day_key,
    iter_day_keys,
    normalize_day_key,
    to_day_key,
)


class TestToDayKey:
    def test_same_calendar_day_maps_to_same_key(self) -> None:
        morning = datetime(2026, 3, 8, 0, 0, 1)
        night = datetime(2026, 3, 8, 23, 59, 59)
        assert to_day_key(morning) == to_day_key(night) == to_day_key(date(2026, 3, 8))

    def test_key_is_local_midnight_epoch_millis(self) -> None:
        expected = int(datetime(2026, 3, 8).timestamp() * 1000)
        assert to_day_key(date(2026, 3, 8)) == expected
        assert isinstance(to_day_key(date(2026, 3, 8)), int)

    def test_aware_datetime_uses_local_calendar_day(self) -> None:
        moment = datetime(2026, 3, 8, 12, 0, tzinfo=timezone.utc)
        local_day = moment.astimezone().date()
        assert to_day_key(moment) == to_day_key(local_day)

    def test_round_trips_through_date(self) -> None:
        day = date(2025, 10, 26)
        assert from_day_key(to_day_key(day)) == day

    def test_distinct_days_have_increasing_keys(self) -> None:
        assert to_day_key(date(2026, 1, 1)) < to_day_key(date(2026, 1, 2))

    def test_normalize_snaps_to_midnight(self) -> None:
        midnight = to_day_key(date(2026, 3, 9))
        noon = int(datetime(2026, 3, 9, 12, 30).timestamp() * 1000)
        assert normalize_day_key(noon) == midnight
        assert normalize_day_key(midnight) == midnight


class TestArithmetic:
    def test_add_days_crosses_month_and_year(self) -> None:
        start = to_day_key(date(2025, 12, 30))
        assert from_day_key(add_days(start, 3)) == date(2026, 1, 2)
        assert from_day_key(add_days(start, -30)) == date(2025, 11, 30)

    def test_add_days_lands_on_midnight_across_dst(self) -> None:
        # Whole-year walk covers both DST transitions wherever tests run
        start = date(2026, 1, 1)
        for offset in range(0, 366, 7):
            key = add_days(to_day_key(start), offset)
            assert key == to_day_key(start + timedelta(days=offset))

    def test_diff_in_days_is_signed(self) -> None:
        a = to_day_key(date(2026, 2, 1))
        b = to_day_key(date(2026, 3, 3))
        assert diff_in_days(a, b) == 30
        assert diff_in_days(b, a) == -30
        assert diff_in_days(a, a) == 0

    def test_iter_day_keys_is_inclusive_and_order_insensitive(self) -> None:
        a = to_day_key(date(2026, 2, 27))
        b = to_day_key(date(2026, 3, 2))
        forward = list(iter_day_keys(a, b))
        assert forward == list(iter_day_keys(b, a))
        assert [from_day_key(k) for k in forward] == [
            date(2026, 2, 27),
            date(2026, 2, 28),
            date(2026, 3, 1),
            date(2026, 3, 2),
        ]

    def test_iter_single_day(self) -> None:
        a = to_day_key(date(2026, 2, 27))
        assert list(iter_day_keys(a, a)) == [a]
