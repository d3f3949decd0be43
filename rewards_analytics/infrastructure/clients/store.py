"""Data store HTTP client for transactions and budgets"""

import httpx
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from rewards_analytics.domain.models import Category, DateRange, RewardEarned, Transaction
from rewards_analytics.domain.exceptions import DataUnavailableError
from rewards_analytics.config import settings


def _parse_transaction(txn: dict) -> Transaction:
    category = txn["category"]
    reward = txn.get("reward_earned")
    return Transaction(
        id=str(txn["id"]),
        card_id=str(txn["card_id"]),
        merchant_name=txn["merchant_name"],
        amount=Decimal(str(txn["amount"])),
        date=date.fromisoformat(txn["date"]),
        category=Category(id=str(category["id"]), name=category["name"], color=category.get("color")),
        reward_earned=RewardEarned(amount=Decimal(str(reward["amount"])), type=reward["type"]) if reward else None,
        is_recurring=bool(txn.get("is_recurring", False)),
        type=txn.get("type", "debit"),
    )


class DataStoreClient:
    """Client for the external card data store"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.store_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def get_transactions(
        self,
        user_id: str,
        date_range: DateRange,
        card_id: Optional[str] = None,
    ) -> List[Transaction]:
        """
        Fetch a user's transactions in a date range, newest first.

        Raises:
            DataUnavailableError: On timeout, HTTP errors, or invalid response
        """
        params = {
            "user_id": user_id,
            "start_date": date_range.start_date.isoformat(),
            "end_date": date_range.end_date.isoformat(),
        }
        if card_id:
            params["card_id"] = card_id

        async with self._client() as client:
            try:
                response = await client.get(f"{self.base_url}/store/transactions", params=params)
                response.raise_for_status()
                data = response.json()

                transactions = [_parse_transaction(txn) for txn in data.get("transactions", [])]
                for txn in transactions:
                    if txn.amount <= 0:
                        raise ValueError(f"non-positive amount on transaction {txn.id}")
                return sorted(transactions, key=lambda t: t.date, reverse=True)

            except httpx.TimeoutException as e:
                raise DataUnavailableError(f"Data store timeout after {self.timeout}s") from e
            except httpx.HTTPError as e:
                raise DataUnavailableError(f"Data store error: {e}") from e
            except (KeyError, ValueError, TypeError, ArithmeticError) as e:
                raise DataUnavailableError(f"Invalid transaction data from store: {e}") from e

    async def get_budgets(self, user_id: str) -> Dict[str, Decimal]:
        """
        Fetch configured monthly budgets keyed by category name.

        Raises:
            DataUnavailableError: On timeout, HTTP errors, or invalid response
        """
        async with self._client() as client:
            try:
                response = await client.get(f"{self.base_url}/store/budgets", params={"user_id": user_id})
                response.raise_for_status()
                data = response.json()
                return {name: Decimal(str(amount)) for name, amount in data.get("budgets", {}).items()}

            except httpx.TimeoutException as e:
                raise DataUnavailableError(f"Data store timeout after {self.timeout}s") from e
            except httpx.HTTPError as e:
                raise DataUnavailableError(f"Data store error: {e}") from e
            except (AttributeError, ValueError, TypeError, ArithmeticError) as e:
                raise DataUnavailableError(f"Invalid budget data from store: {e}") from e
