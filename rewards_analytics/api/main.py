"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from rewards_analytics.api.errors import register_error_handlers
from rewards_analytics.api.middleware import RequestIDMiddleware, MetricsMiddleware
from rewards_analytics.api.v1 import adhoc, alerts, analytics, export, forecast
from rewards_analytics.infrastructure.database.session import init_db
from rewards_analytics.infrastructure.observability.logging import setup_logging
from rewards_analytics.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create missing tables on startup"""
    init_db()
    logging.info("Database tables verified/created")
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Rewards Analytics",
        description="Forecasting, expense planning, trend analysis and alerts for card spending",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_error_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(forecast.router, prefix="/v1", tags=["forecast"])
    app.include_router(adhoc.router, prefix="/v1", tags=["adhoc-expenses"])
    app.include_router(analytics.router, prefix="/v1", tags=["analytics"])
    app.include_router(alerts.router, prefix="/v1", tags=["alerts"])
    app.include_router(export.router, prefix="/v1", tags=["export"])

    return app


app = create_app()
