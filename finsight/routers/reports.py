from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db, get_user_id
from ..errors import InvalidRangeError
from ..schemas import CategoryBudgetReport, ForecastResponse, SummaryReport
from ..services.aggregator import build_category_budget_report, build_summary_report
from ..services.date_window import DateWindow, resolve_window
from ..services.forecaster import build_forecast

router = APIRouter(prefix="/reports", tags=["reports"])


def _window(from_date: Optional[str], to_date: Optional[str]) -> DateWindow:
    try:
        return resolve_window(from_date, to_date)
    except InvalidRangeError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get(
    "/summary",
    response_model=SummaryReport,
    summary="Income/expense totals, category slices and daily series with prior-period changes",
)
def summary(
    from_date: Optional[str] = Query(None, alias="from", description="Start date YYYY-MM or YYYY-MM-DD"),
    to_date: Optional[str] = Query(None, alias="to", description="End date YYYY-MM or YYYY-MM-DD"),
    account_id: Optional[int] = Query(None, alias="accountId"),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return build_summary_report(db, user_id, _window(from_date, to_date), account_id)


@router.get(
    "/category-budgets",
    response_model=CategoryBudgetReport,
    summary="Spend against the prorated budget for each budgeted category",
)
def category_budgets(
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return build_category_budget_report(db, user_id, _window(from_date, to_date))


@router.get(
    "/forecast",
    response_model=ForecastResponse,
    summary="Project weekly net cash flow with a recursive moving average",
)
def forecast(
    weeks: Optional[int] = Query(None, gt=0, le=52, description="Weeks to forecast"),
    monthly_budget: Optional[float] = Query(None, alias="monthlyBudget", gt=0),
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    return build_forecast(db, user_id, weeks=weeks, monthly_budget=monthly_budget)
