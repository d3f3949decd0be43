"""Pydantic schemas for API request/response validation"""

import datetime as dt
from dataclasses import asdict
from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional

from rewards_analytics.domain.models import (
    AlertSettings,
    AlertThresholds,
    ConfidenceInterval,
    DateRange,
    ForecastMonth,
    ManualAdjustments,
)


class DateRangeSchema(BaseModel):
    """Inclusive date range"""

    start_date: date
    end_date: date
    label: Optional[str] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    def to_domain(self) -> DateRange:
        return DateRange(start_date=self.start_date, end_date=self.end_date, label=self.label)


class ManualAdjustmentsSchema(BaseModel):
    """Forecast overrides; multipliers must be positive"""

    income_multiplier: Decimal = Field(Decimal("1"), gt=0)
    expense_multiplier: Decimal = Field(Decimal("1"), gt=0)
    seasonal_adjustment: Decimal = Decimal("0")

    def to_domain(self) -> ManualAdjustments:
        return ManualAdjustments(
            income_multiplier=self.income_multiplier,
            expense_multiplier=self.expense_multiplier,
            seasonal_adjustment=self.seasonal_adjustment,
        )


# --- Forecast ---


class ForecastRequest(BaseModel):
    """Request body for POST /v1/forecast"""

    user_id: str = Field(..., min_length=1, description="User identifier")
    period: Literal[3, 6, 12, 24] = 12
    include_adhoc_expenses: bool = True
    manual_adjustments: Optional[ManualAdjustmentsSchema] = None


class ConfidenceIntervalSchema(BaseModel):
    lower: Decimal
    upper: Decimal


class ForecastMonthSchema(BaseModel):
    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    projected_income: Decimal
    projected_expenses: Decimal
    net_income: Decimal
    confidence_interval: ConfidenceIntervalSchema
    seasonal_factor: Decimal

    def to_domain(self) -> ForecastMonth:
        return ForecastMonth(
            month=self.month,
            projected_income=self.projected_income,
            projected_expenses=self.projected_expenses,
            net_income=self.net_income,
            confidence_interval=ConfidenceInterval(
                lower=self.confidence_interval.lower, upper=self.confidence_interval.upper
            ),
            seasonal_factor=self.seasonal_factor,
        )


class ForecastResponse(BaseModel):
    """Response for POST /v1/forecast"""

    forecast: List[ForecastMonthSchema]
    accuracy: float
    baseline_income: Decimal
    baseline_expenses: Decimal
    last_updated: datetime


class ForecastVariablesRequest(ManualAdjustmentsSchema):
    """Request body for PUT /v1/forecast/variables"""

    user_id: str = Field(..., min_length=1)


class CashFlowItem(BaseModel):
    date: date
    inflow: Decimal
    outflow: Decimal
    net_flow: Decimal
    cumulative_balance: Decimal


class CashFlowResponse(BaseModel):
    """Response for GET /v1/cash-flow"""

    projections: List[CashFlowItem]
    minimum_balance: Decimal
    maximum_balance: Decimal
    average_monthly_flow: Decimal


# --- Ad-hoc expenses ---


class AdhocExpenseCreate(BaseModel):
    """Request body for POST /v1/adhoc-expenses; business rules are checked by the planner"""

    user_id: str = Field(..., min_length=1)
    title: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[dt.date] = None
    category: str = "Other"
    is_recurring: bool = False
    frequency: Optional[Literal["weekly", "monthly", "quarterly", "yearly"]] = None
    end_date: Optional[dt.date] = None
    description: Optional[str] = None


class AdhocExpenseUpdate(BaseModel):
    """Request body for PUT /v1/adhoc-expenses/{id}; only set fields are applied"""

    user_id: str = Field(..., min_length=1)
    title: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[dt.date] = None
    category: Optional[str] = None
    is_recurring: Optional[bool] = None
    frequency: Optional[Literal["weekly", "monthly", "quarterly", "yearly"]] = None
    end_date: Optional[dt.date] = None
    description: Optional[str] = None


class AdhocExpenseSchema(BaseModel):
    id: str
    title: str
    amount: Decimal
    date: date
    category: str
    is_recurring: bool
    frequency: Optional[str] = None
    end_date: Optional[date] = None
    description: Optional[str] = None


class AdhocExpenseListResponse(BaseModel):
    """Response for GET /v1/adhoc-expenses"""

    expenses: List[AdhocExpenseSchema]
    total_planned: Decimal
    upcoming: List[AdhocExpenseSchema]


class AdhocImpactResponse(BaseModel):
    """Response for GET /v1/adhoc-expenses/{id}/impact"""

    monthly_impact: List[Decimal]
    total_impact: Decimal
    affected_months: List[str]


# --- Trends, budgets, health ---


class AnalyticsFilters(BaseModel):
    """Request body for trend, variance and category endpoints"""

    user_id: str = Field(..., min_length=1)
    date_range: DateRangeSchema
    categories: Optional[List[str]] = None
    card_id: Optional[str] = None


class SpendingTrendSchema(BaseModel):
    month: str
    category: str
    amount: Decimal
    percent_change: Decimal


class SpendingTrendsResponse(BaseModel):
    trends: List[SpendingTrendSchema]
    total_spending: Decimal
    average_monthly: Decimal


class BudgetVarianceSchema(BaseModel):
    category: str
    budgeted: Decimal
    actual: Decimal
    variance: Decimal
    percent_variance: Decimal


class BudgetVarianceResponse(BaseModel):
    variances: List[BudgetVarianceSchema]
    overall_variance: Decimal
    categories_over_budget: int


class CategoryBreakdownSchema(BaseModel):
    name: str
    amount: Decimal
    percentage: Decimal
    trend: str
    transactions: int


class CategoryAnalysisResponse(BaseModel):
    categories: List[CategoryBreakdownSchema]
    top_categories: List[str]
    growing_categories: List[str]


class ComparativeAnalysisRequest(BaseModel):
    """Request body for POST /v1/comparative-analysis; ranges are compared in the given order"""

    user_id: str = Field(..., min_length=1)
    date_ranges: List[DateRangeSchema] = Field(..., min_length=1, max_length=12)
    card_id: Optional[str] = None


class PeriodComparisonSchema(BaseModel):
    period: str
    income: Decimal
    expenses: Decimal
    net_income: Decimal
    top_categories: List[str]
    growth_rate: Decimal


class ComparativeAnalysisResponse(BaseModel):
    comparison: List[PeriodComparisonSchema]
    insights: List[str]


class HealthIndicatorSchema(BaseModel):
    name: str
    value: float
    status: str
    description: str
    trend: str


class FinancialHealthResponse(BaseModel):
    indicators: List[HealthIndicatorSchema]
    overall_score: float
    recommendations: List[str]


# --- Alerts ---


class AlertThresholdsSchema(BaseModel):
    spending_pattern_percent: Decimal = Field(Decimal("20"), gt=0)
    budget_overrun_percent: Decimal = Field(Decimal("80"), gt=0)
    large_expense_amount: Decimal = Field(Decimal("500"), gt=0)
    forecast_deviation_percent: Decimal = Field(Decimal("10"), ge=0)

    def to_domain(self) -> AlertThresholds:
        return AlertThresholds(
            spending_pattern_percent=self.spending_pattern_percent,
            budget_overrun_percent=self.budget_overrun_percent,
            large_expense_amount=self.large_expense_amount,
            forecast_deviation_percent=self.forecast_deviation_percent,
        )


class AlertSettingsRequest(AlertThresholdsSchema):
    """Request body for PUT /v1/alerts/settings; replaces the stored settings"""

    user_id: str = Field(..., min_length=1)
    enable_email_alerts: bool = False
    enable_push_alerts: bool = False

    def to_settings(self) -> AlertSettings:
        return AlertSettings(
            thresholds=self.to_domain(),
            enable_email_alerts=self.enable_email_alerts,
            enable_push_alerts=self.enable_push_alerts,
        )


class AlertSettingsResponse(BaseModel):
    spending_pattern_percent: Decimal
    budget_overrun_percent: Decimal
    large_expense_amount: Decimal
    forecast_deviation_percent: Decimal
    enable_email_alerts: bool
    enable_push_alerts: bool

    @classmethod
    def from_settings(cls, alert_settings: AlertSettings) -> "AlertSettingsResponse":
        return cls(
            **asdict(alert_settings.thresholds),
            enable_email_alerts=alert_settings.enable_email_alerts,
            enable_push_alerts=alert_settings.enable_push_alerts,
        )


class AlertEvaluationRequest(BaseModel):
    """Request body for POST /v1/alerts/evaluate"""

    user_id: str = Field(..., min_length=1)
    date_range: Optional[DateRangeSchema] = None
    period: Literal[3, 6, 12, 24] = 3
    thresholds: Optional[AlertThresholdsSchema] = None
    previous_forecast: List[ForecastMonthSchema] = Field(
        default_factory=list,
        description="Forecast months reported earlier, checked against realized net income",
    )


class AlertSchema(BaseModel):
    id: str
    type: str
    severity: str
    title: str
    message: str
    date: date
    is_read: bool
    action_required: bool


class AlertListResponse(BaseModel):
    alerts: List[AlertSchema]
    unread_count: int


# --- Export ---


class ExportRequest(BaseModel):
    """Request body for POST /v1/export"""

    user_id: str = Field(..., min_length=1)
    format: Literal["pdf", "excel", "csv"]
    date_range: DateRangeSchema
    include_charts: bool = True
    include_forecasts: bool = True
    include_alerts: bool = False
    period: Literal[3, 6, 12, 24] = 12


class ExportResponse(BaseModel):
    download_url: str
    expires_at: str


class SuccessResponse(BaseModel):
    success: bool = True
