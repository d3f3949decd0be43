"""POST /v1/forecast, PUT /v1/forecast/variables, GET /v1/cash-flow"""

import random
import time
from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import List
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from rewards_analytics.api.v1.schemas import (
    CashFlowResponse,
    ForecastRequest,
    ForecastResponse,
    ForecastVariablesRequest,
    ManualAdjustmentsSchema,
)
from rewards_analytics.api.v1.snapshot import history_range, load_transactions
from rewards_analytics.api.dependencies import get_forecast_rng, get_request_id, get_store_client
from rewards_analytics.config import settings
from rewards_analytics.domain.forecasting import generate_forecast, project_cash_flow, summarize_cash_flow
from rewards_analytics.domain.models import ForecastResult, ManualAdjustments, Transaction
from rewards_analytics.infrastructure.clients.store import DataStoreClient
from rewards_analytics.infrastructure.database.session import get_db
from rewards_analytics.infrastructure.database.repositories import (
    AdhocExpenseRepository,
    ForecastVariablesRepository,
)
from rewards_analytics.infrastructure.observability.logging import log_forecast
from rewards_analytics.infrastructure.observability.metrics import record_forecast

router = APIRouter()


async def run_forecast(
    user_id: str,
    period: int,
    include_adhoc_expenses: bool,
    adjustments: ManualAdjustments | None,
    db: Session,
    store: DataStoreClient,
    request_id: str,
    rng: random.Random | None = None,
    transactions: List[Transaction] | None = None,
) -> ForecastResult:
    """Resolve adjustments (request > stored > defaults) and forecast; fetches history unless given"""
    today = date.today()
    if transactions is None:
        transactions = await load_transactions(store, user_id, history_range(today), request_id)
    if adjustments is None:
        adjustments = ForecastVariablesRepository(db).get(user_id)
    expenses = AdhocExpenseRepository(db).list_for_user(user_id) if include_adhoc_expenses else []

    result = generate_forecast(
        transactions,
        period,
        include_adhoc_expenses=include_adhoc_expenses,
        adhoc_expenses=expenses,
        manual_adjustments=adjustments,
        config=settings.forecast_config(),
        as_of=today,
        rng=rng,
    )
    record_forecast(period, result.accuracy)
    return result


@router.post("/forecast", response_model=ForecastResponse)
async def create_forecast(
    request_body: ForecastRequest,
    request: Request,
    db: Session = Depends(get_db),
    store: DataStoreClient = Depends(get_store_client),
    rng: random.Random | None = Depends(get_forecast_rng),
):
    """
    Generate a multi-month forecast.

    Flow:
    1. Fetch the trailing transaction window from the data store
    2. Load planned expenses and stored adjustments
    3. Project each month with seasonal factor and confidence band
    """
    start_time = time.time()
    request_id = get_request_id(request)
    adjustments = request_body.manual_adjustments.to_domain() if request_body.manual_adjustments else None

    result = await run_forecast(
        request_body.user_id,
        request_body.period,
        request_body.include_adhoc_expenses,
        adjustments,
        db,
        store,
        request_id,
        rng,
    )

    duration_ms = (time.time() - start_time) * 1000
    log_forecast(request_id, request_body.user_id, request_body.period, result.accuracy, duration_ms)
    return ForecastResponse(**asdict(result))


@router.put("/forecast/variables", response_model=ManualAdjustmentsSchema)
def update_forecast_variables(request_body: ForecastVariablesRequest, db: Session = Depends(get_db)):
    """Store adjustments used by later forecasts; replaces any previous values"""
    adjustments = ForecastVariablesRepository(db).replace(request_body.user_id, request_body.to_domain())
    db.commit()
    return ManualAdjustmentsSchema(**asdict(adjustments))


@router.get("/cash-flow", response_model=CashFlowResponse)
async def get_cash_flow(
    request: Request,
    user_id: str = Query(..., description="User identifier"),
    months: int = Query(12, description="Projection horizon: 3, 6, 12 or 24"),
    opening_balance: Decimal = Query(Decimal("0"), description="Balance at the start of the horizon"),
    db: Session = Depends(get_db),
    store: DataStoreClient = Depends(get_store_client),
    rng: random.Random | None = Depends(get_forecast_rng),
):
    """Month-by-month cash flow with a running balance"""
    request_id = get_request_id(request)
    result = await run_forecast(user_id, months, True, None, db, store, request_id, rng)

    projections = project_cash_flow(result.forecast, opening_balance)
    return CashFlowResponse(projections=[asdict(p) for p in projections], **summarize_cash_flow(projections))
