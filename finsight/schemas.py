from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ─────────────────────────────────────────────────────────────────────────────
# Health
# ─────────────────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str


# ─────────────────────────────────────────────────────────────────────────────
# Reporting
# ─────────────────────────────────────────────────────────────────────────────


class PeriodTotals(BaseModel):
    """Signed totals: income >= 0, expenses <= 0."""

    income: float = 0.0
    expenses: float = 0.0

    @computed_field
    @property
    def signed_net(self) -> float:
        return round(self.income + self.expenses, 2)


class PercentageChanges(BaseModel):
    income: float
    expenses: float
    net: float


class PeriodSummary(BaseModel):
    current: PeriodTotals
    previous: PeriodTotals
    change: PercentageChanges


class CategorySlice(BaseModel):
    category_id: Optional[int] = None    # None for the rolled-up "Other" slice
    name: str
    value: float                         # spend magnitude, always >= 0


class DailyAggregate(BaseModel):
    date: date
    income: float
    expenses: float                      # chart magnitude, always >= 0
    budget: float = 0.0


class NetPosition(BaseModel):
    assets: float = 0.0
    liabilities: float = 0.0
    available_assets: float = 0.0


class SummaryReport(BaseModel):
    start_date: date
    end_date: date
    prev_start_date: date
    prev_end_date: date
    account_id: Optional[int] = None
    monthly_budget: float
    window_budget: float
    summary: PeriodSummary
    categories: list[CategorySlice]
    days: list[DailyAggregate]
    net_position: NetPosition


class CategoryBudgetStatus(BaseModel):
    category_id: int
    name: str
    monthly_budget: float
    window_budget: float
    spent: float
    remaining: float


class CategoryBudgetReport(BaseModel):
    start_date: date
    end_date: date
    categories: list[CategoryBudgetStatus]


# ─────────────────────────────────────────────────────────────────────────────
# Forecast
# ─────────────────────────────────────────────────────────────────────────────


class WeeklyBucket(BaseModel):
    week_start: date
    week_end: date
    net: float


class ForecastPoint(BaseModel):
    date: date
    forecast_net: float


class ForecastResponse(BaseModel):
    history: list[WeeklyBucket]
    forecast: list[ForecastPoint]
    window_size: int
    weekly_budget: Optional[float] = None
    placeholder_history: bool = False


# ─────────────────────────────────────────────────────────────────────────────
# Recurring streams
# ─────────────────────────────────────────────────────────────────────────────


class ProviderCategory(BaseModel):
    primary: Optional[str] = None
    detailed: Optional[str] = None


class ProviderStream(BaseModel):
    """A recurring stream as reported by the bank-data aggregator.

    Amounts use the aggregator's sign convention (outflow positive).
    """

    stream_id: str
    account_id: str                      # aggregator's account reference
    description: str = ""
    merchant_name: Optional[str] = None
    frequency: str = "UNKNOWN"
    average_amount: Optional[Decimal] = None
    last_amount: Optional[Decimal] = None
    last_date: Optional[str] = None
    is_active: bool = True
    personal_finance_category: ProviderCategory = Field(default_factory=ProviderCategory)


class RecurringStreamCreate(BaseModel):
    account_id: int
    name: str
    payee: Optional[str] = None
    category_id: Optional[int] = None
    frequency: str = "Monthly"
    average_amount: Decimal = Decimal(0)   # internal convention: outflow negative
    last_amount: Decimal = Decimal(0)
    last_date: Optional[date] = None


class RecurringStreamSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    stream_id: str
    name: str
    payee: str
    account_id: int
    category_id: Optional[int] = None
    frequency: str
    average_amount_cents: int
    last_amount_cents: int
    last_date: Optional[str] = None
    is_active: bool

    @computed_field
    @property
    def average_amount(self) -> float:
        return round(self.average_amount_cents / 100, 2)

    @computed_field
    @property
    def last_amount(self) -> float:
        return round(self.last_amount_cents / 100, 2)


class SkippedStream(BaseModel):
    stream_id: str
    reason: str


class SyncResponse(BaseModel):
    created: list[RecurringStreamSchema]
    skipped: list[SkippedStream]


class TransactionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    category_id: Optional[int] = None
    posted_date: str
    amount_cents: int
    payee: str

    @computed_field
    @property
    def amount(self) -> float:
        return round(self.amount_cents / 100, 2)


# ─────────────────────────────────────────────────────────────────────────────
# Categorization rules
# ─────────────────────────────────────────────────────────────────────────────


class RuleCreate(BaseModel):
    match_type: Literal["provider_primary_category", "transaction_name"]
    match_value: str
    category_id: int
    priority: int = 10


class RuleSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    match_type: str
    match_value: str
    category_id: int
    priority: int
    created_at: Optional[datetime] = None
    effective: bool = False


class ResolveResponse(BaseModel):
    sanitized_name: str
    category_id: Optional[int] = None


class ApplyRulesResponse(BaseModel):
    updated: int
    unchanged: int
    total: int
