"""Spending trends, budget variance, category and comparative analysis, financial health"""

from dataclasses import asdict
from datetime import date
from fastapi import APIRouter, Depends, Query, Request

from rewards_analytics.api.v1.schemas import (
    AnalyticsFilters,
    BudgetVarianceResponse,
    CategoryAnalysisResponse,
    ComparativeAnalysisRequest,
    ComparativeAnalysisResponse,
    FinancialHealthResponse,
    SpendingTrendsResponse,
)
from rewards_analytics.api.v1.snapshot import history_range, load_budgets, load_transactions, with_prior_month
from rewards_analytics.api.dependencies import get_request_id, get_store_client
from rewards_analytics.domain.health import financial_health
from rewards_analytics.domain.models import DateRange
from rewards_analytics.domain.trends import (
    budget_variance,
    category_analysis,
    comparative_analysis,
    spending_trends,
    summarize_trends,
    summarize_variance,
)
from rewards_analytics.infrastructure.clients.store import DataStoreClient
from rewards_analytics.utils.date_utils import month_start

router = APIRouter()


@router.post("/spending-trends", response_model=SpendingTrendsResponse)
async def get_spending_trends(
    request_body: AnalyticsFilters,
    request: Request,
    store: DataStoreClient = Depends(get_store_client),
):
    """
    Monthly spend per category with month-over-month change.

    The month before the range is fetched as well so the first month in
    range has a comparison base.
    """
    date_range = request_body.date_range.to_domain()
    transactions = await load_transactions(
        store,
        request_body.user_id,
        with_prior_month(date_range),
        get_request_id(request),
        card_id=request_body.card_id,
    )
    trends = spending_trends(transactions, date_range, request_body.categories)
    return SpendingTrendsResponse(trends=[asdict(t) for t in trends], **summarize_trends(trends))


@router.post("/budget-variance", response_model=BudgetVarianceResponse)
async def get_budget_variance(
    request_body: AnalyticsFilters,
    request: Request,
    store: DataStoreClient = Depends(get_store_client),
):
    request_id = get_request_id(request)
    date_range = request_body.date_range.to_domain()
    transactions = await load_transactions(
        store, request_body.user_id, date_range, request_id, card_id=request_body.card_id
    )
    budgets = await load_budgets(store, request_body.user_id, request_id)
    if request_body.categories:
        budgets = {k: v for k, v in budgets.items() if k in request_body.categories}

    variances = budget_variance(transactions, date_range, budgets)
    return BudgetVarianceResponse(variances=[asdict(v) for v in variances], **summarize_variance(variances))


@router.post("/category-analysis", response_model=CategoryAnalysisResponse)
async def get_category_analysis(
    request_body: AnalyticsFilters,
    request: Request,
    store: DataStoreClient = Depends(get_store_client),
):
    """Share of spend per category, ranked, with a first-half vs second-half trend"""
    date_range = request_body.date_range.to_domain()
    transactions = await load_transactions(
        store, request_body.user_id, date_range, get_request_id(request), card_id=request_body.card_id
    )
    if request_body.categories:
        transactions = [t for t in transactions if t.category.name in request_body.categories]
    analysis = category_analysis(transactions, date_range)
    analysis["categories"] = [asdict(c) for c in analysis["categories"]]
    return CategoryAnalysisResponse(**analysis)


@router.post("/comparative-analysis", response_model=ComparativeAnalysisResponse)
async def get_comparative_analysis(
    request_body: ComparativeAnalysisRequest,
    request: Request,
    store: DataStoreClient = Depends(get_store_client),
):
    """Side-by-side totals for several date ranges from one store fetch"""
    ranges = [r.to_domain() for r in request_body.date_ranges]
    snapshot = DateRange(
        start_date=min(r.start_date for r in ranges),
        end_date=max(r.end_date for r in ranges),
    )
    transactions = await load_transactions(
        store, request_body.user_id, snapshot, get_request_id(request), card_id=request_body.card_id
    )
    analysis = comparative_analysis(transactions, ranges)
    analysis["comparison"] = [asdict(c) for c in analysis["comparison"]]
    return ComparativeAnalysisResponse(**analysis)


@router.get("/financial-health", response_model=FinancialHealthResponse)
async def get_financial_health(
    request: Request,
    user_id: str = Query(..., description="User identifier"),
    store: DataStoreClient = Depends(get_store_client),
):
    """
    Health indicators over recent complete months.

    Budget adherence is measured against the current month's spend so far.
    """
    request_id = get_request_id(request)
    today = date.today()
    # one extra month so the stability trend can compare against last month's window
    transactions = await load_transactions(store, user_id, history_range(today, months=7), request_id)
    budgets = await load_budgets(store, user_id, request_id)

    current_month = DateRange(start_date=month_start(today), end_date=today)
    variances = budget_variance(transactions, current_month, budgets)
    health = financial_health(transactions, variances, as_of=today)
    health["indicators"] = [asdict(i) for i in health["indicators"]]
    return FinancialHealthResponse(**health)
