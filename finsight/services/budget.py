"""Monthly budget proration over arbitrary report windows."""

from dataclasses import dataclass
from datetime import date
from typing import Union

from .date_window import DateWindow

# Average days per month; one fixed rate keeps every month on the same pace.
AVG_DAYS_PER_MONTH = 30.44


@dataclass(frozen=True)
class ProratedBudget:
    monthly_budget: float
    daily_rate: float
    window_budget: float
    curve: list[tuple[date, float]]   # cumulative budget at the end of each day

    def curve_by_date(self) -> dict[date, float]:
        return dict(self.curve)


def daily_rate(monthly_budget: Union[int, float]) -> float:
    return monthly_budget / AVG_DAYS_PER_MONTH


def window_budget(monthly_budget: Union[int, float], window: DateWindow) -> float:
    """Headline budget for ``window``.

    A window covering exactly one calendar month gets the full monthly figure.
    """
    if monthly_budget < 0:
        raise ValueError(f"monthly budget must be >= 0, got {monthly_budget}")
    if window.days == 1:
        return daily_rate(monthly_budget)
    if window.is_calendar_month():
        return monthly_budget
    return daily_rate(monthly_budget) * window.days


def budget_curve(monthly_budget: Union[int, float], window: DateWindow) -> list[tuple[date, float]]:
    """Linear cumulative budget, one point per day. Never special-cases full months."""
    rate = daily_rate(monthly_budget)
    return [(day, rate * (i + 1)) for i, day in enumerate(window.each_day())]


def prorate(monthly_budget: Union[int, float], window: DateWindow) -> ProratedBudget:
    return ProratedBudget(
        monthly_budget=monthly_budget,
        daily_rate=daily_rate(monthly_budget),
        window_budget=window_budget(monthly_budget, window),
        curve=budget_curve(monthly_budget, window),
    )
