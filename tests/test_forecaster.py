from datetime import date, timedelta

import pytest

from conftest import USER, add_account, add_event
from finsight.errors import InsufficientHistoryError
from finsight.services.forecaster import (
    MAX_WEEKS,
    build_forecast,
    placeholder_buckets,
    recursive_moving_average,
    weekly_buckets,
)

TODAY = date(2024, 6, 30)


class TestRecursiveMovingAverage:
    def test_single_step_is_plain_mean(self):
        assert recursive_moving_average([10, 20, 30], horizon=1, window_size=3) == [20]

    def test_forecasts_feed_back_into_window(self):
        result = recursive_moving_average([10, 20, 30], horizon=2, window_size=3)
        # second point averages [20, 30, 20]
        assert result == pytest.approx([20, 70 / 3])

    def test_differs_from_static_average(self):
        result = recursive_moving_average([0, 0, 90], horizon=3, window_size=3)
        assert result == pytest.approx([30, 40, 160 / 3])
        assert len(set(result)) == 3

    def test_window_clamped_to_three(self):
        result = recursive_moving_average([100, 0, 0, 0], horizon=1, window_size=10)
        assert result == [0]

    def test_window_clamped_to_history_length(self):
        assert recursive_moving_average([8, 4], horizon=1, window_size=3) == [6]

    def test_horizon_clamped_to_history_length(self):
        assert len(recursive_moving_average([1, 2, 3], horizon=10)) == 3

    def test_horizon_clamped_to_a_year(self):
        history = [1.0] * 80
        assert len(recursive_moving_average(history, horizon=80)) == MAX_WEEKS

    def test_non_positive_horizon(self):
        assert recursive_moving_average([1, 2], horizon=0) == []

    def test_empty_history_raises(self):
        with pytest.raises(InsufficientHistoryError):
            recursive_moving_average([], horizon=3)

    def test_input_not_mutated(self):
        history = [1.0, 2.0, 3.0]
        recursive_moving_average(history, horizon=3)
        assert history == [1.0, 2.0, 3.0]


class TestWeeklyBuckets:
    def test_buckets_start_at_first_day(self):
        start = date(2024, 1, 3)  # a Wednesday
        daily = [(start, 10.0), (start + timedelta(days=6), 5.0), (start + timedelta(days=7), -3.0)]
        buckets = weekly_buckets(daily)
        assert [b.week_start for b in buckets] == [start, start + timedelta(days=7)]
        assert [b.net for b in buckets] == [15.0, -3.0]
        assert buckets[0].week_end == start + timedelta(days=6)

    def test_gap_weeks_are_zero(self):
        start = date(2024, 1, 1)
        buckets = weekly_buckets([(start, 1.0), (start + timedelta(days=21), 2.0)])
        assert [b.net for b in buckets] == [1.0, 0.0, 0.0, 2.0]

    def test_unsorted_input(self):
        start = date(2024, 1, 1)
        buckets = weekly_buckets([(start + timedelta(days=8), 2.0), (start, 1.0)])
        assert buckets[0].week_start == start

    def test_capped_to_most_recent(self):
        start = date(2022, 1, 1)
        daily = [(start + timedelta(days=7 * i), float(i)) for i in range(60)]
        buckets = weekly_buckets(daily)
        assert len(buckets) == MAX_WEEKS
        assert buckets[0].net == 8.0
        assert buckets[-1].net == 59.0

    def test_empty(self):
        assert weekly_buckets([]) == []

    def test_placeholder(self):
        buckets = placeholder_buckets(date(2024, 1, 1))
        assert len(buckets) == 10
        assert {b.net for b in buckets} == {25.0}


class TestBuildForecast:
    def test_from_ledger(self, db):
        acct = add_account(db)
        first = TODAY - timedelta(days=27)
        for week, amount in enumerate([1000, 2000, 3000, 6000]):
            add_event(db, acct, (first + timedelta(days=7 * week)).isoformat(), amount)

        result = build_forecast(db, USER, weeks=2, monthly_budget=304.4, today=TODAY)

        assert [b.net for b in result.history] == [10.0, 20.0, 30.0, 60.0]
        assert [p.forecast_net for p in result.forecast] == [pytest.approx(36.67), pytest.approx(42.22)]
        assert result.forecast[0].date == result.history[-1].week_end + timedelta(days=7)
        assert result.forecast[1].date == result.history[-1].week_end + timedelta(days=14)
        assert result.window_size == 3
        assert result.weekly_budget == 70.0
        assert result.placeholder_history is False

    def test_default_horizon_matches_history(self, db):
        acct = add_account(db)
        add_event(db, acct, (TODAY - timedelta(days=10)).isoformat(), 500)
        add_event(db, acct, (TODAY - timedelta(days=1)).isoformat(), -200)
        result = build_forecast(db, USER, today=TODAY)
        assert len(result.forecast) == len(result.history) == 2

    def test_history_limited_to_a_year(self, db):
        acct = add_account(db)
        add_event(db, acct, (TODAY - timedelta(days=800)).isoformat(), 999999)
        add_event(db, acct, (TODAY - timedelta(days=3)).isoformat(), 100)
        result = build_forecast(db, USER, weeks=1, today=TODAY)
        assert all(b.net != 9999.99 for b in result.history)
        assert len(result.history) <= MAX_WEEKS

    def test_no_history_uses_placeholder(self, db):
        result = build_forecast(db, USER, weeks=3, today=TODAY)
        assert result.placeholder_history is True
        assert len(result.history) == 10
        assert [p.forecast_net for p in result.forecast] == [25.0, 25.0, 25.0]
        assert result.weekly_budget is None
