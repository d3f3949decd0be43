"""POST /v1/export - Render an analytics report through the external renderer"""

import logging
import random
import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from rewards_analytics.api.v1.forecast import run_forecast
from rewards_analytics.api.v1.schemas import ExportRequest, ExportResponse
from rewards_analytics.api.v1.snapshot import load_budgets, load_transactions, with_prior_month
from rewards_analytics.api.dependencies import get_forecast_rng, get_report_client, get_request_id, get_store_client
from rewards_analytics.domain.exceptions import ReportRenderError
from rewards_analytics.domain.forecasting import project_cash_flow
from rewards_analytics.domain.models import ExportOptions
from rewards_analytics.domain.reporting import build_report_payload
from rewards_analytics.domain.trends import budget_variance, spending_trends
from rewards_analytics.infrastructure.clients.reports import ReportClient
from rewards_analytics.infrastructure.clients.store import DataStoreClient
from rewards_analytics.infrastructure.database.session import get_db
from rewards_analytics.infrastructure.database.repositories import AlertRepository

router = APIRouter()


@router.post("/export", response_model=ExportResponse)
async def export_report(
    request_body: ExportRequest,
    request: Request,
    db: Session = Depends(get_db),
    store: DataStoreClient = Depends(get_store_client),
    reports: ReportClient = Depends(get_report_client),
    rng: random.Random | None = Depends(get_forecast_rng),
):
    """
    Build a report from trends, budget variance and (optionally) forecast,
    cash flow and active alerts, then hand it to the renderer.

    Returns:
        Download URL and its expiry; 502 when the renderer rejects the
        report or answers with a malformed body, 503 when it cannot be reached
    """
    request_id = get_request_id(request)
    user_id = request_body.user_id
    date_range = request_body.date_range.to_domain()

    transactions = await load_transactions(store, user_id, with_prior_month(date_range), request_id)
    budgets = await load_budgets(store, user_id, request_id)
    trends = spending_trends(transactions, date_range)
    variances = budget_variance(transactions, date_range, budgets)

    forecast, cash_flow = [], []
    if request_body.include_forecasts:
        result = await run_forecast(user_id, request_body.period, True, None, db, store, request_id, rng)
        forecast = result.forecast
        cash_flow = project_cash_flow(forecast)
    alerts = AlertRepository(db).list_active(user_id) if request_body.include_alerts else []

    options = ExportOptions(
        format=request_body.format,
        date_range=date_range,
        include_charts=request_body.include_charts,
        include_forecasts=request_body.include_forecasts,
        include_alerts=request_body.include_alerts,
    )
    payload = build_report_payload(options, trends, variances, forecast, cash_flow, alerts)

    try:
        rendered = await reports.render(payload)
    except httpx.HTTPStatusError as e:
        logging.error(f"Report renderer rejected export: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail="Report renderer rejected the export")
    except ReportRenderError as e:
        logging.error(f"Report renderer returned an invalid response: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail="Report renderer returned an invalid response")
    except httpx.RequestError as e:
        logging.error(f"Report renderer unreachable: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Report renderer unavailable")

    logging.info(
        "Report exported",
        extra={"request_id": request_id, "user_id": user_id, "format": request_body.format},
    )
    return ExportResponse(**rendered)
