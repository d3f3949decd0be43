"""Dependency injection for FastAPI endpoints"""

import random
from fastapi import Request
from rewards_analytics.config import settings
from rewards_analytics.infrastructure.clients.store import DataStoreClient
from rewards_analytics.infrastructure.clients.reports import ReportClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_store_client() -> DataStoreClient:
    """Provide data store client instance"""
    return DataStoreClient()


def get_report_client() -> ReportClient:
    """Provide report renderer client instance"""
    return ReportClient()


def get_forecast_rng() -> random.Random | None:
    """Noise source for forecasts; None unless noise is configured"""
    if settings.forecast_noise_pct <= 0:
        return None
    return random.Random(settings.forecast_noise_seed)
