"""Report window normalization.

Turns an optional ``(from, to)`` pair from a request into inclusive UTC day
boundaries and derives the equally long period immediately before it, which
is what every period-over-period comparison is measured against.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional

from ..config import DEFAULT_WINDOW_DAYS
from ..errors import InvalidRangeError
from .normalizer import parse_day

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def prev_start(self) -> date:
        return self.start - timedelta(days=self.days)

    @property
    def prev_end(self) -> date:
        return self.start - timedelta(days=1)

    def previous(self) -> "DateWindow":
        return DateWindow(self.prev_start, self.prev_end)

    def each_day(self) -> Iterator[date]:
        for offset in range(self.days):
            yield self.start + timedelta(days=offset)

    def start_bound(self) -> datetime:
        return datetime(self.start.year, self.start.month, self.start.day, tzinfo=timezone.utc)

    def end_bound(self) -> datetime:
        return datetime(
            self.end.year, self.end.month, self.end.day, 23, 59, 59, 999999, tzinfo=timezone.utc
        )

    def is_calendar_month(self) -> bool:
        last_day = calendar.monthrange(self.start.year, self.start.month)[1]
        return (
            self.start.day == 1
            and self.end.year == self.start.year
            and self.end.month == self.start.month
            and self.end.day == last_day
        )


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _parse_bound(value: str, param: str, *, is_end: bool) -> date:
    """YYYY-MM → first/last day of month; dates and datetimes → their day."""
    v = value.strip()
    if _MONTH_RE.match(v):
        y, m = int(v[:4]), int(v[5:7])
        if not 1 <= m <= 12:
            raise InvalidRangeError(f"{param} has an invalid month: {value!r}")
        try:
            return date(y, m, calendar.monthrange(y, m)[1] if is_end else 1)
        except ValueError as exc:
            raise InvalidRangeError(f"{param} is out of range: {value!r}") from exc
    day = parse_day(v)
    if day is None:
        raise InvalidRangeError(f"{param} must be YYYY-MM or YYYY-MM-DD, got {value!r}")
    return day


def resolve_window(
    from_str: Optional[str] = None,
    to_str: Optional[str] = None,
    *,
    default_days: int = DEFAULT_WINDOW_DAYS,
    today: Optional[date] = None,
    end_on_today: bool = False,
) -> DateWindow:
    """Normalize a requested range into an inclusive ``DateWindow``.

    Without ``to`` the window ends yesterday (or today with ``end_on_today``);
    without ``from`` it spans ``default_days`` back from its end.
    """
    if default_days < 1:
        raise InvalidRangeError(f"default span must be at least one day, got {default_days}")

    today = today or utc_today()
    default_end = today if end_on_today else today - timedelta(days=1)

    end = _parse_bound(to_str, "to", is_end=True) if to_str else default_end
    if from_str:
        start = _parse_bound(from_str, "from", is_end=False)
    else:
        try:
            start = end - timedelta(days=default_days - 1)
        except OverflowError as exc:
            raise InvalidRangeError(
                f"a {default_days}-day window ending {end.isoformat()} is out of range"
            ) from exc

    if end < start:
        raise InvalidRangeError(f"'to' ({end.isoformat()}) is before 'from' ({start.isoformat()})")

    window = DateWindow(start, end)
    # Reports also read the equally long period before the window
    if (start - date.min).days < window.days:
        raise InvalidRangeError(f"the period before {start.isoformat()} is out of range")
    return window
