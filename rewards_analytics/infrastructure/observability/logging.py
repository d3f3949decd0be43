"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "rewards-analytics"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_forecast(
    request_id: str,
    user_id: str,
    period: int,
    accuracy: float,
    duration_ms: float,
) -> None:
    """Log structured forecast outcome for analysis"""
    logging.info(
        "Forecast generated",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "forecast_complete",
            "period": period,
            "accuracy": accuracy,
            "duration_ms": duration_ms,
        },
    )


def log_alert_evaluation(
    request_id: str,
    user_id: str,
    emitted: int,
    stored: int,
    duration_ms: float,
) -> None:
    """Log alert evaluation run; stored < emitted when alerts already exist or were dismissed"""
    logging.info(
        "Alerts evaluated",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "alerts_complete",
            "alerts_emitted": emitted,
            "alerts_stored": stored,
            "duration_ms": duration_ms,
        },
    )
