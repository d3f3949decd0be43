"""Alert listing, evaluation, read/dismiss state and per-user alert settings"""

import random
import time
from dataclasses import asdict
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from rewards_analytics.api.v1.forecast import run_forecast
from rewards_analytics.api.v1.schemas import (
    AlertEvaluationRequest,
    AlertListResponse,
    AlertSettingsRequest,
    AlertSettingsResponse,
    AlertThresholdsSchema,
    SuccessResponse,
)
from rewards_analytics.api.v1.snapshot import history_range, load_budgets, load_transactions, with_prior_month
from rewards_analytics.api.dependencies import get_forecast_rng, get_request_id, get_store_client
from rewards_analytics.config import settings
from rewards_analytics.domain.adhoc import is_active_from
from rewards_analytics.domain.alerts import evaluate_alerts
from rewards_analytics.domain.forecasting import realized_net_income
from rewards_analytics.domain.models import AlertSettings, AlertThresholds, AnalyticsAlert, DateRange
from rewards_analytics.domain.trends import budget_variance, spending_trends
from rewards_analytics.infrastructure.clients.store import DataStoreClient
from rewards_analytics.infrastructure.database.session import get_db
from rewards_analytics.infrastructure.database.repositories import (
    AdhocExpenseRepository,
    AlertRepository,
    AlertSettingsRepository,
)
from rewards_analytics.infrastructure.observability.logging import log_alert_evaluation
from rewards_analytics.infrastructure.observability.metrics import record_alerts
from rewards_analytics.utils.date_utils import add_months, month_start, parse_month_label

router = APIRouter()


def _alert_list(alerts: List[AnalyticsAlert]) -> AlertListResponse:
    return AlertListResponse(
        alerts=[asdict(a) for a in alerts],
        unread_count=sum(1 for a in alerts if not a.is_read),
    )


def _thresholds_for(db: Session, user_id: str, requested: Optional[AlertThresholdsSchema]) -> AlertThresholds:
    """Request thresholds, else the user's stored settings, else service defaults"""
    if requested:
        return requested.to_domain()
    stored = AlertSettingsRepository(db).get(user_id)
    return stored.thresholds if stored else settings.alert_thresholds()


@router.get("/alerts/settings", response_model=AlertSettingsResponse)
def get_alert_settings(
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
):
    stored = AlertSettingsRepository(db).get(user_id)
    return AlertSettingsResponse.from_settings(stored or AlertSettings(thresholds=settings.alert_thresholds()))


@router.put("/alerts/settings", response_model=AlertSettingsResponse)
def configure_alert_settings(
    request_body: AlertSettingsRequest,
    db: Session = Depends(get_db),
):
    """Replace the user's alert thresholds; later evaluations use them by default"""
    stored = AlertSettingsRepository(db).replace(request_body.user_id, request_body.to_settings())
    db.commit()
    return AlertSettingsResponse.from_settings(stored)


@router.get("/alerts", response_model=AlertListResponse)
def list_alerts(
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
):
    """Active (non-dismissed) alerts, newest first"""
    return _alert_list(AlertRepository(db).list_active(user_id))


@router.post("/alerts/evaluate", response_model=AlertListResponse)
async def evaluate(
    request_body: AlertEvaluationRequest,
    request: Request,
    db: Session = Depends(get_db),
    store: DataStoreClient = Depends(get_store_client),
    rng: random.Random | None = Depends(get_forecast_rng),
):
    """
    Run every alert rule against one data snapshot and store new alerts.

    Flow:
    1. Fetch one transaction window covering the trend range, the forecast
       baseline and any previously reported forecast months
    2. Compute trends, budget variance and a fresh forecast from it
    3. Evaluate alerts; ids already stored (or dismissed) are skipped
    """
    start_time = time.time()
    request_id = get_request_id(request)
    user_id = request_body.user_id
    today = date.today()
    current_month = month_start(today)

    if request_body.date_range:
        trend_range = request_body.date_range.to_domain()
    else:
        trend_range = DateRange(start_date=add_months(current_month, -1), end_date=today)

    # only complete months can be checked against what actually happened
    previous = [m.to_domain() for m in request_body.previous_forecast]
    checked_months = [m.month for m in previous if parse_month_label(m.month) < current_month]

    starts = [with_prior_month(trend_range).start_date, history_range(today).start_date]
    starts.extend(parse_month_label(label) for label in checked_months)
    snapshot_range = DateRange(start_date=min(starts), end_date=max(today, trend_range.end_date))
    transactions = await load_transactions(store, user_id, snapshot_range, request_id)
    budgets = await load_budgets(store, user_id, request_id)

    trends = spending_trends(transactions, trend_range)
    variances = budget_variance(transactions, DateRange(start_date=current_month, end_date=today), budgets)
    result = await run_forecast(
        user_id, request_body.period, True, None, db, store, request_id, rng, transactions=transactions
    )

    thresholds = _thresholds_for(db, user_id, request_body.thresholds)
    current_spend = [t for t in transactions if t.date >= current_month]
    alerts = evaluate_alerts(
        trends,
        variances,
        previous + result.forecast,
        thresholds,
        transactions=current_spend,
        adhoc_expenses=[e for e in AdhocExpenseRepository(db).list_for_user(user_id) if is_active_from(e, today)],
        realized_net_income=realized_net_income(transactions, checked_months),
        as_of=today,
        owner=user_id,
    )

    repo = AlertRepository(db)
    stored = repo.save_new(user_id, alerts)
    db.commit()
    record_alerts(a.type for a in stored)

    duration_ms = (time.time() - start_time) * 1000
    log_alert_evaluation(request_id, user_id, len(alerts), len(stored), duration_ms)
    return _alert_list(repo.list_active(user_id))


@router.put("/alerts/{alert_id}/read", response_model=SuccessResponse)
def mark_alert_read(
    alert_id: str,
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
):
    if not AlertRepository(db).mark_read(user_id, alert_id):
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    db.commit()
    return SuccessResponse()


@router.delete("/alerts/{alert_id}", response_model=SuccessResponse)
def dismiss_alert(
    alert_id: str,
    user_id: str = Query(..., description="User identifier"),
    db: Session = Depends(get_db),
):
    """Dismiss permanently; later evaluations never bring the same alert back"""
    if not AlertRepository(db).dismiss(user_id, alert_id):
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    db.commit()
    return SuccessResponse()
