"""Reporting aggregates: period totals, category slices, and daily series.

Two sign conventions coexist on purpose:

- ``PeriodTotals`` keeps expenses signed (negative) so ``signed_net`` is a
  plain sum.
- ``DailyAggregate.expenses`` holds the chart magnitude (positive).

Events in transfer-type categories are left out of every figure.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ..models import Account, Category, Transaction
from ..schemas import (
    CategoryBudgetReport,
    CategoryBudgetStatus,
    CategorySlice,
    DailyAggregate,
    NetPosition,
    PercentageChanges,
    PeriodSummary,
    PeriodTotals,
    SummaryReport,
)
from . import budget, ledger
from .date_window import DateWindow
from .normalizer import cents_to_dollars

TOP_CATEGORY_COUNT = 3
OTHER_CATEGORY_NAME = "Other"


# ── Helpers ───────────────────────────────────────────────────────────────────


def transfer_category_ids(categories: Iterable[Category]) -> set[int]:
    return {c.id for c in categories if c.type == "transfer"}


def _countable(events: Iterable[Transaction], transfer_ids: set[int]) -> list[Transaction]:
    return [e for e in events if e.category_id is None or e.category_id not in transfer_ids]


def chart_expense_magnitude(amount_cents: int) -> int:
    """Outflow cents as a positive magnitude; inflows contribute nothing."""
    return -amount_cents if amount_cents < 0 else 0


def percentage_change(current: float, previous: float) -> float:
    """Change from ``previous`` to ``current`` in percent.

    With a zero baseline the result is 100, 0 or -100 following the sign of
    ``current``.
    """
    if previous == 0:
        if current > 0:
            return 100.0
        if current < 0:
            return -100.0
        return 0.0
    return (current - previous) / abs(previous) * 100


# ── Aggregates ────────────────────────────────────────────────────────────────


def totals(events: Iterable[Transaction], transfer_ids: Optional[set[int]] = None) -> PeriodTotals:
    rows = _countable(events, transfer_ids or set())
    income_cents = sum(e.amount_cents for e in rows if e.amount_cents > 0)
    expenses_cents = sum(e.amount_cents for e in rows if e.amount_cents < 0)
    return PeriodTotals(
        income=cents_to_dollars(income_cents),
        expenses=cents_to_dollars(expenses_cents),
    )


def by_category(
    events: Iterable[Transaction],
    categories: Iterable[Category],
    top_n: int = TOP_CATEGORY_COUNT,
) -> list[CategorySlice]:
    """Spend per category, largest first; everything past ``top_n`` rolls into "Other"."""
    cat_by_id = {c.id: c for c in categories}
    spend: dict[int, int] = defaultdict(int)
    for e in events:
        if e.amount_cents >= 0 or e.category_id is None:
            continue
        cat = cat_by_id.get(e.category_id)
        if cat is None or cat.type == "transfer":
            continue
        spend[e.category_id] += -e.amount_cents

    ranked = sorted(spend.items(), key=lambda kv: (-kv[1], cat_by_id[kv[0]].name))
    slices = [
        CategorySlice(category_id=cid, name=cat_by_id[cid].name, value=cents_to_dollars(cents))
        for cid, cents in ranked[:top_n]
    ]
    rest = ranked[top_n:]
    if rest:
        slices.append(
            CategorySlice(
                category_id=None,
                name=OTHER_CATEGORY_NAME,
                value=cents_to_dollars(sum(cents for _, cents in rest)),
            )
        )
    return slices


def by_day(
    events: Iterable[Transaction],
    window: DateWindow,
    curve: Optional[list[tuple[date, float]]] = None,
    transfer_ids: Optional[set[int]] = None,
) -> list[DailyAggregate]:
    """One entry per day of ``window``, zero-filled, with the cumulative budget attached."""
    income: dict[str, int] = defaultdict(int)
    expenses: dict[str, int] = defaultdict(int)
    for e in _countable(events, transfer_ids or set()):
        if e.amount_cents > 0:
            income[e.posted_date] += e.amount_cents
        else:
            expenses[e.posted_date] += chart_expense_magnitude(e.amount_cents)

    budget_by_day = dict(curve or [])
    days = []
    for day in window.each_day():
        key = day.isoformat()
        days.append(
            DailyAggregate(
                date=day,
                income=cents_to_dollars(income.get(key, 0)),
                expenses=cents_to_dollars(expenses.get(key, 0)),
                budget=budget_by_day.get(day, 0.0),
            )
        )
    return days


def summarize_period(current: PeriodTotals, previous: PeriodTotals) -> PeriodSummary:
    return PeriodSummary(
        current=current,
        previous=previous,
        change=PercentageChanges(
            income=percentage_change(current.income, previous.income),
            expenses=percentage_change(current.expenses, previous.expenses),
            net=percentage_change(current.signed_net, previous.signed_net),
        ),
    )


def net_position(accounts: Iterable[Account]) -> NetPosition:
    assets = liabilities = available = 0
    for a in accounts:
        balance = a.current_balance or 0
        if balance >= 0:
            assets += balance
            available += a.available_balance or 0
        else:
            liabilities += balance
    return NetPosition(
        assets=cents_to_dollars(assets),
        liabilities=cents_to_dollars(liabilities),
        available_assets=cents_to_dollars(available),
    )


def total_monthly_budget_cents(categories: Iterable[Category]) -> int:
    return sum(c.monthly_budget or 0 for c in categories if c.type != "transfer")


# ── Reports ───────────────────────────────────────────────────────────────────


def build_summary_report(
    db: Session,
    user_id: str,
    window: DateWindow,
    account_id: Optional[int] = None,
) -> SummaryReport:
    """Everything the overview dashboard needs for one window."""
    categories = ledger.query_categories(db, user_id)
    transfer_ids = transfer_category_ids(categories)

    current_events = ledger.query_events(db, user_id, window.start, window.end, account_id)
    previous_events = ledger.query_events(
        db, user_id, window.prev_start, window.prev_end, account_id
    )

    monthly = cents_to_dollars(total_monthly_budget_cents(categories))
    prorated = budget.prorate(monthly, window)

    return SummaryReport(
        start_date=window.start,
        end_date=window.end,
        prev_start_date=window.prev_start,
        prev_end_date=window.prev_end,
        account_id=account_id,
        monthly_budget=monthly,
        window_budget=prorated.window_budget,
        summary=summarize_period(
            totals(current_events, transfer_ids),
            totals(previous_events, transfer_ids),
        ),
        categories=by_category(current_events, categories),
        days=by_day(current_events, window, prorated.curve, transfer_ids),
        net_position=net_position(ledger.query_accounts(db, user_id)),
    )


def build_category_budget_report(db: Session, user_id: str, window: DateWindow) -> CategoryBudgetReport:
    """Spend against the prorated budget for every budgeted, non-transfer category."""
    categories = [
        c for c in ledger.query_categories(db, user_id)
        if c.type != "transfer" and c.monthly_budget is not None
    ]
    spent: dict[int, int] = defaultdict(int)
    for e in ledger.query_events(db, user_id, window.start, window.end):
        if e.category_id is not None:
            spent[e.category_id] += chart_expense_magnitude(e.amount_cents)

    statuses = []
    for c in categories:
        monthly = cents_to_dollars(c.monthly_budget)
        allowed = round(budget.window_budget(monthly, window), 2)
        used = cents_to_dollars(spent.get(c.id, 0))
        statuses.append(
            CategoryBudgetStatus(
                category_id=c.id,
                name=c.name,
                monthly_budget=monthly,
                window_budget=allowed,
                spent=used,
                remaining=round(allowed - used, 2),
            )
        )
    return CategoryBudgetReport(start_date=window.start, end_date=window.end, categories=statuses)
