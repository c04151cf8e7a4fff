from datetime import date

import pytest

from finsight.services.budget import AVG_DAYS_PER_MONTH, budget_curve, prorate, window_budget
from finsight.services.date_window import DateWindow


class TestWindowBudget:
    @pytest.mark.parametrize("monthly", [0, 1, 333.33, 1234.57, 999999.99])
    def test_full_calendar_month_is_exact(self, monthly):
        assert window_budget(monthly, DateWindow(date(2024, 2, 1), date(2024, 2, 29))) == monthly
        assert window_budget(monthly, DateWindow(date(2023, 4, 1), date(2023, 4, 30))) == monthly

    def test_single_day_uses_daily_rate(self):
        result = window_budget(3044, DateWindow(date(2024, 3, 31), date(2024, 3, 31)))
        assert result == pytest.approx(3044 / AVG_DAYS_PER_MONTH)

    def test_single_day_on_the_first_is_not_a_full_month(self):
        result = window_budget(500, DateWindow(date(2024, 3, 1), date(2024, 3, 1)))
        assert result == pytest.approx(500 / 30.44)

    def test_partial_window_prorates(self):
        result = window_budget(3044, DateWindow(date(2024, 3, 5), date(2024, 3, 14)))
        assert result == pytest.approx(1000.0)

    def test_month_shaped_window_off_the_first_prorates(self):
        # 15th to 14th spans a month but is not a calendar month
        result = window_budget(3044, DateWindow(date(2024, 3, 15), date(2024, 4, 14)))
        assert result == pytest.approx(100.0 * 31)

    def test_negative_budget_rejected(self):
        with pytest.raises(ValueError):
            window_budget(-1, DateWindow(date(2024, 3, 1), date(2024, 3, 2)))


class TestBudgetCurve:
    def test_one_point_per_day_linear(self):
        window = DateWindow(date(2024, 3, 1), date(2024, 3, 5))
        curve = budget_curve(304.4, window)
        assert [d for d, _ in curve] == list(window.each_day())
        assert [v for _, v in curve] == pytest.approx([10, 20, 30, 40, 50])

    def test_curve_is_non_decreasing(self):
        curve = budget_curve(750, DateWindow(date(2024, 1, 1), date(2024, 3, 31)))
        values = [v for _, v in curve]
        assert values == sorted(values)

    def test_full_month_curve_stays_linear(self):
        prorated = prorate(3044, DateWindow(date(2024, 2, 1), date(2024, 2, 29)))
        assert prorated.window_budget == 3044
        # last point is 29 days at the daily rate, not the monthly figure
        assert prorated.curve[-1][1] == pytest.approx(2900.0)

    def test_curve_by_date(self):
        prorated = prorate(30.44, DateWindow(date(2024, 3, 1), date(2024, 3, 2)))
        assert prorated.curve_by_date()[date(2024, 3, 2)] == pytest.approx(2.0)
        assert prorated.daily_rate == pytest.approx(1.0)
