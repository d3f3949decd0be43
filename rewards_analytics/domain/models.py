"""Domain models - pure Python dataclasses representing analytics entities"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

FORECAST_PERIODS = (3, 6, 12, 24)
FREQUENCIES = ("weekly", "monthly", "quarterly", "yearly")


@dataclass(frozen=True)
class Category:
    """Spending category; color is display metadata passed through untouched"""

    id: str
    name: str
    color: Optional[str] = None


@dataclass(frozen=True)
class RewardEarned:
    """Reward attached to a card transaction"""

    amount: Decimal
    type: str  # "cashback" | "points" | "miles"


@dataclass(frozen=True)
class Transaction:
    """Card transaction from the external data store"""

    id: str
    card_id: str
    merchant_name: str
    amount: Decimal
    date: date
    category: Category
    reward_earned: Optional[RewardEarned] = None
    is_recurring: bool = False
    type: str = "debit"  # "debit" (spend) or "credit" (payment, refund, deposit)


@dataclass
class AdhocExpense:
    """User-planned expense, one-off or recurring"""

    id: Optional[str]
    title: str
    amount: Decimal
    date: date
    category: str
    is_recurring: bool = False
    frequency: Optional[str] = None
    end_date: Optional[date] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range"""

    start_date: date
    end_date: date
    label: Optional[str] = None

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class ManualAdjustments:
    """User overrides applied on top of the baseline forecast"""

    income_multiplier: Decimal = Decimal("1")
    expense_multiplier: Decimal = Decimal("1")
    seasonal_adjustment: Decimal = Decimal("0")


@dataclass(frozen=True)
class ForecastConfig:
    """Tunable constants of the forecast model"""

    baseline_window_months: int = 6
    seasonal_amplitude: float = 0.08
    confidence_base_spread: float = 0.05
    confidence_spread_growth: float = 0.02
    accuracy_base: float = 0.95
    accuracy_decay: float = 0.015
    noise_pct: float = 0.0


@dataclass(frozen=True)
class ConfidenceInterval:
    lower: Decimal
    upper: Decimal

    @property
    def width(self) -> Decimal:
        return self.upper - self.lower


@dataclass
class ForecastMonth:
    """Projection for a single future month"""

    month: str
    projected_income: Decimal
    projected_expenses: Decimal
    net_income: Decimal
    confidence_interval: ConfidenceInterval
    seasonal_factor: Decimal


@dataclass
class ForecastResult:
    """Output of a forecast run"""

    forecast: List[ForecastMonth]
    accuracy: float
    baseline_income: Decimal
    baseline_expenses: Decimal
    last_updated: datetime


@dataclass
class SpendingTrend:
    month: str
    category: str
    amount: Decimal
    percent_change: Decimal


@dataclass
class BudgetVariance:
    category: str
    budgeted: Decimal
    actual: Decimal
    variance: Decimal
    percent_variance: Decimal


@dataclass
class CategoryBreakdown:
    name: str
    amount: Decimal
    percentage: Decimal
    trend: str  # "up" | "down" | "stable"
    transactions: int


@dataclass
class FinancialHealthIndicator:
    name: str
    value: float
    status: str  # "excellent" | "good" | "fair" | "poor"
    description: str
    trend: str  # "up" | "down" | "stable"


@dataclass
class PeriodComparison:
    """Totals for one of several date ranges being compared"""

    period: str
    income: Decimal
    expenses: Decimal
    net_income: Decimal
    top_categories: List[str]
    growth_rate: Decimal  # % change in expenses vs the previous period


@dataclass
class CashFlowProjection:
    date: date
    inflow: Decimal
    outflow: Decimal
    net_flow: Decimal
    cumulative_balance: Decimal


@dataclass(frozen=True)
class AlertThresholds:
    """Trigger levels for the alert engine"""

    spending_pattern_percent: Decimal = Decimal("20")
    budget_overrun_percent: Decimal = Decimal("80")
    large_expense_amount: Decimal = Decimal("500")
    forecast_deviation_percent: Decimal = Decimal("10")


@dataclass(frozen=True)
class AlertSettings:
    """Per-user alert preferences; delivery flags are stored, not acted on"""

    thresholds: AlertThresholds = AlertThresholds()
    enable_email_alerts: bool = False
    enable_push_alerts: bool = False


@dataclass
class AnalyticsAlert:
    """Notification derived from spending data"""

    id: str
    type: str
    severity: str  # "low" | "medium" | "high"
    title: str
    message: str
    date: date
    scope: str
    is_read: bool = False
    action_required: bool = False


@dataclass
class ExportOptions:
    format: str  # "pdf" | "excel" | "csv"
    date_range: DateRange
    include_charts: bool = True
    include_forecasts: bool = True
    include_alerts: bool = False
