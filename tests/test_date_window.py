from datetime import date, timedelta

import pytest

from finsight.errors import InvalidRangeError
from finsight.services.date_window import DateWindow, resolve_window

TODAY = date(2024, 3, 15)


class TestResolveWindow:
    def test_explicit_range_is_inclusive(self):
        w = resolve_window("2024-03-01", "2024-03-10", today=TODAY)
        assert (w.start, w.end) == (date(2024, 3, 1), date(2024, 3, 10))
        assert w.days == 10

    def test_time_of_day_is_ignored(self):
        w = resolve_window("2024-03-01T18:45:00Z", "2024-03-10T00:00:01Z", today=TODAY)
        assert (w.start, w.end) == (date(2024, 3, 1), date(2024, 3, 10))

    def test_month_shorthand(self):
        w = resolve_window("2024-02", "2024-02", today=TODAY)
        assert (w.start, w.end) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_default_ends_yesterday(self):
        w = resolve_window(today=TODAY, default_days=30)
        assert w.end == date(2024, 3, 14)
        assert w.days == 30

    def test_default_can_end_today(self):
        w = resolve_window(today=TODAY, default_days=7, end_on_today=True)
        assert w.end == TODAY
        assert w.start == TODAY - timedelta(days=6)

    def test_only_to_given(self):
        w = resolve_window(to_str="2024-01-31", today=TODAY, default_days=10)
        assert w.start == date(2024, 1, 22)

    def test_only_from_given(self):
        w = resolve_window(from_str="2024-03-01", today=TODAY)
        assert (w.start, w.end) == (date(2024, 3, 1), date(2024, 3, 14))

    def test_inverted_range_raises(self):
        with pytest.raises(InvalidRangeError):
            resolve_window("2024-03-10", "2024-03-01", today=TODAY)

    def test_malformed_date_raises(self):
        with pytest.raises(InvalidRangeError):
            resolve_window("03/xx/2024", "2024-03-01", today=TODAY)

    def test_bad_month_raises(self):
        with pytest.raises(InvalidRangeError):
            resolve_window("2024-13", None, today=TODAY)

    def test_year_zero_month_raises(self):
        with pytest.raises(InvalidRangeError):
            resolve_window("0000-01", "2024-03-01", today=TODAY)

    def test_year_zero_date_raises(self):
        with pytest.raises(InvalidRangeError):
            resolve_window("0000-01-01", "2024-03-01", today=TODAY)

    def test_no_room_for_previous_period_raises(self):
        with pytest.raises(InvalidRangeError):
            resolve_window("0001-01-01", "0001-01-05", today=TODAY)

    def test_previous_period_may_start_at_first_representable_day(self):
        w = resolve_window("0001-01-06", "0001-01-10", today=TODAY)
        assert w.previous().start == date.min

    def test_default_span_before_first_representable_day_raises(self):
        with pytest.raises(InvalidRangeError):
            resolve_window(to_str="0001-01-05", today=TODAY, default_days=30)

    def test_invalid_range_is_a_value_error(self):
        with pytest.raises(ValueError):
            resolve_window("2024-03-10", "2024-03-01", today=TODAY)


class TestDateWindow:
    def test_single_day_has_length_one(self):
        w = DateWindow(date(2024, 3, 5), date(2024, 3, 5))
        assert w.days == 1
        assert (w.prev_start, w.prev_end) == (date(2024, 3, 4), date(2024, 3, 4))

    def test_previous_period_same_length_and_adjacent(self):
        w = DateWindow(date(2024, 3, 1), date(2024, 3, 31))
        prev = w.previous()
        assert prev.days == w.days
        assert prev.end == date(2024, 2, 29)
        assert prev.start == date(2024, 1, 30)

    def test_each_day(self):
        w = DateWindow(date(2024, 2, 27), date(2024, 3, 2))
        assert [d.day for d in w.each_day()] == [27, 28, 29, 1, 2]

    def test_utc_bounds(self):
        w = DateWindow(date(2024, 3, 1), date(2024, 3, 2))
        assert w.start_bound().isoformat() == "2024-03-01T00:00:00+00:00"
        assert w.end_bound().isoformat() == "2024-03-02T23:59:59.999999+00:00"

    def test_calendar_month_detection(self):
        assert DateWindow(date(2024, 2, 1), date(2024, 2, 29)).is_calendar_month()
        assert not DateWindow(date(2024, 2, 1), date(2024, 2, 28)).is_calendar_month()
        assert not DateWindow(date(2024, 2, 2), date(2024, 3, 1)).is_calendar_month()
        assert not DateWindow(date(2024, 1, 1), date(2024, 2, 29)).is_calendar_month()
