"""Weekly net cash-flow forecast.

History is bucketed into contiguous 7-day weeks starting at the first
recorded day (not calendar weeks). The projection is a recursive moving
average: each forecast point is appended to the series and takes part in
averaging the next one, so the projection drifts smoothly toward the recent
mean instead of staying flat.
"""

import logging
from datetime import date, timedelta
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ..errors import InsufficientHistoryError
from ..schemas import ForecastPoint, ForecastResponse, WeeklyBucket
from . import ledger
from .budget import AVG_DAYS_PER_MONTH
from .date_window import utc_today
from .normalizer import cents_to_dollars

logger = logging.getLogger(__name__)

MAX_WEEKS = 52
MAX_WINDOW = 3

PLACEHOLDER_WEEKS = 10
PLACEHOLDER_NET = 25.0


def recursive_moving_average(
    historical: Sequence[float],
    horizon: int,
    window_size: int = MAX_WINDOW,
) -> list[float]:
    """Project ``horizon`` future values, feeding each one back into the window.

    ``window_size`` is clamped to ``min(3, len(historical))`` and ``horizon``
    to ``min(len(historical), 52)``.
    """
    if not historical:
        raise InsufficientHistoryError("cannot forecast from an empty history")
    if horizon <= 0:
        return []

    window_size = max(1, min(window_size, MAX_WINDOW, len(historical)))
    horizon = min(horizon, len(historical), MAX_WEEKS)

    series = list(historical)
    forecasts = []
    for _ in range(horizon):
        window = series[-window_size:]
        point = sum(window) / len(window)
        forecasts.append(point)
        series.append(point)
    return forecasts


def weekly_buckets(daily: Sequence[tuple[date, float]], max_weeks: int = MAX_WEEKS) -> list[WeeklyBucket]:
    """Sum daily nets into 7-day buckets from the earliest day; keep the newest ``max_weeks``.

    Empty weeks between active days appear with a zero net.
    """
    if not daily:
        return []
    ordered = sorted(daily, key=lambda d: d[0])
    origin = ordered[0][0]

    sums: dict[int, float] = {}
    for day, net in ordered:
        index = (day - origin).days // 7
        sums[index] = sums.get(index, 0.0) + net

    buckets = []
    for index in range(max(sums) + 1):
        start = origin + timedelta(days=7 * index)
        buckets.append(
            WeeklyBucket(week_start=start, week_end=start + timedelta(days=6), net=round(sums.get(index, 0.0), 2))
        )
    return buckets[-max_weeks:]


def placeholder_buckets(start: date, weeks: int = PLACEHOLDER_WEEKS, net: float = PLACEHOLDER_NET) -> list[WeeklyBucket]:
    """Flat low-amplitude history for users with no events yet."""
    return [
        WeeklyBucket(
            week_start=start + timedelta(days=7 * i),
            week_end=start + timedelta(days=7 * i + 6),
            net=net,
        )
        for i in range(weeks)
    ]


def build_forecast(
    db: Session,
    user_id: str,
    weeks: Optional[int] = None,
    monthly_budget: Optional[float] = None,
    today: Optional[date] = None,
) -> ForecastResponse:
    """Forecast the next ``weeks`` weekly nets (default: as many as there are history weeks)."""
    today = today or utc_today()
    start = today - timedelta(days=7 * MAX_WEEKS)
    first = ledger.earliest_event_date(db, user_id)
    if first is not None and first > start:
        start = first

    daily = [(day, cents_to_dollars(net)) for day, net in ledger.query_daily_net(db, user_id, start)]
    history = weekly_buckets(daily)
    placeholder = not history
    if placeholder:
        logger.warning("No ledger history for %s; forecasting from a placeholder series", user_id)
        history = placeholder_buckets(start)

    nets = [b.net for b in history]
    horizon = len(nets) if weeks is None else weeks
    window_size = min(MAX_WINDOW, len(nets))
    projected = recursive_moving_average(nets, horizon, window_size)

    last_week_end = history[-1].week_end
    points = [
        ForecastPoint(date=last_week_end + timedelta(days=7 * (i + 1)), forecast_net=round(value, 2))
        for i, value in enumerate(projected)
    ]
    weekly_budget = None
    if monthly_budget is not None:
        weekly_budget = round(monthly_budget / AVG_DAYS_PER_MONTH * 7, 2)

    return ForecastResponse(
        history=history,
        forecast=points,
        window_size=window_size,
        weekly_budget=weekly_budget,
        placeholder_history=placeholder,
    )
