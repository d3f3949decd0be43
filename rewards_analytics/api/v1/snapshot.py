"""Data loading at the store boundary; upstream failures degrade to empty data"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from rewards_analytics.config import settings
from rewards_analytics.domain.exceptions import DataUnavailableError
from rewards_analytics.domain.models import DateRange, Transaction
from rewards_analytics.infrastructure.clients.store import DataStoreClient
from rewards_analytics.infrastructure.observability.metrics import store_fetch_failures_counter
from rewards_analytics.utils.date_utils import add_months, month_start


def history_range(as_of: date, months: Optional[int] = None) -> DateRange:
    """Baseline window plus the current month up to as_of"""
    months = months or settings.baseline_window_months
    return DateRange(start_date=add_months(month_start(as_of), -months), end_date=as_of)


def with_prior_month(date_range: DateRange) -> DateRange:
    """Extend a range back to the first of the preceding month (trend comparison base)"""
    return DateRange(
        start_date=add_months(month_start(date_range.start_date), -1),
        end_date=date_range.end_date,
        label=date_range.label,
    )


async def load_transactions(
    store: DataStoreClient,
    user_id: str,
    date_range: DateRange,
    request_id: str,
    card_id: Optional[str] = None,
) -> List[Transaction]:
    try:
        return await store.get_transactions(user_id, date_range, card_id=card_id)
    except DataUnavailableError as e:
        store_fetch_failures_counter.labels(resource="transactions").inc()
        logging.warning(f"Transactions unavailable, using empty history: {e}", extra={"request_id": request_id})
        return []


async def load_budgets(store: DataStoreClient, user_id: str, request_id: str) -> Dict[str, Decimal]:
    try:
        return await store.get_budgets(user_id)
    except DataUnavailableError as e:
        store_fetch_failures_counter.labels(resource="budgets").inc()
        logging.warning(f"Budgets unavailable, skipping variance: {e}", extra={"request_id": request_id})
        return {}
