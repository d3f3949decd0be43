"""Prometheus metrics for forecast volume, alert rates, and upstream performance"""

from prometheus_client import Counter, Histogram

# Forecast metrics
forecast_counter = Counter(
    "analytics_forecast_total",
    "Total forecasts generated",
    ["period"],  # 3 | 6 | 12 | 24
)

forecast_accuracy_histogram = Histogram(
    "analytics_forecast_accuracy",
    "Reported forecast accuracy",
    buckets=[0.1, 0.25, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# Alert metrics
alerts_emitted_counter = Counter(
    "analytics_alerts_emitted_total",
    "Alerts produced by evaluation runs",
    ["type"],  # spending_pattern | budget_overrun | large_expense | forecast_deviation
)

# Data store metrics
store_fetch_failures_counter = Counter(
    "store_fetch_failures_total",
    "Failed data store calls",
    ["resource"],  # transactions | budgets
)

# Report renderer metrics
report_render_latency_histogram = Histogram(
    "report_render_latency_seconds",
    "Report renderer response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

report_render_failure_counter = Counter(
    "report_render_failures_total",
    "Failed report render attempts",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_forecast(period: int, accuracy: float) -> None:
    """Record forecast volume per horizon and the accuracy distribution"""
    forecast_counter.labels(period=str(period)).inc()
    forecast_accuracy_histogram.observe(accuracy)


def record_alerts(alert_types) -> None:
    """Count emitted alerts by type"""
    for alert_type in alert_types:
        alerts_emitted_counter.labels(type=alert_type).inc()
