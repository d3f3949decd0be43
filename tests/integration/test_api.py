"""Integration tests for API endpoints"""

import httpx
import pytest
from unittest.mock import AsyncMock, patch
from datetime import date, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient
from rewards_analytics.domain.exceptions import DataUnavailableError, ReportRenderError
from rewards_analytics.domain.models import Transaction
from rewards_analytics.utils.date_utils import add_months, month_label, month_start
from tests.factories import make_txn

STORE = "rewards_analytics.infrastructure.clients.store.DataStoreClient"
RENDER = "rewards_analytics.infrastructure.clients.reports.ReportClient.render"


def _create_expense(client: TestClient, **fields) -> dict:
    body = {"user_id": "user_1", "title": "Laptop", "amount": "500.00", "date": date.today().isoformat()}
    body.update(fields)
    response = client.post("/v1/adhoc-expenses", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "analytics_forecast_total" in response.text


def test_request_id_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


@patch(f"{STORE}.get_transactions")
def test_forecast_endpoint(mock_store: AsyncMock, client: TestClient, sample_transactions: list[Transaction]):
    """Test POST /v1/forecast with six months of steady history"""
    mock_store.return_value = sample_transactions

    response = client.post("/v1/forecast", json={"user_id": "user_1", "period": 12})

    assert response.status_code == 200
    data = response.json()
    assert len(data["forecast"]) == 12
    assert data["forecast"][0]["month"] == month_label(date.today())
    assert Decimal(data["baseline_income"]) == Decimal("3000.00")
    assert Decimal(data["forecast"][0]["net_income"]) == Decimal("2000.00")
    assert data["accuracy"] == pytest.approx(0.785)


def test_forecast_rejects_unsupported_period(client: TestClient):
    response = client.post("/v1/forecast", json={"user_id": "user_1", "period": 5})
    assert response.status_code == 422


def test_forecast_rejects_non_positive_multiplier(client: TestClient):
    response = client.post(
        "/v1/forecast",
        json={"user_id": "user_1", "period": 3, "manual_adjustments": {"income_multiplier": 0}},
    )
    assert response.status_code == 422


@patch(f"{STORE}.get_transactions")
def test_forecast_rejects_extreme_seasonal_adjustment(mock_store: AsyncMock, client: TestClient):
    mock_store.return_value = []

    response = client.post(
        "/v1/forecast",
        json={"user_id": "user_1", "period": 3, "manual_adjustments": {"seasonal_adjustment": "2"}},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "seasonal_adjustment"


@patch(f"{STORE}.get_transactions")
def test_forecast_degrades_when_store_down(mock_store: AsyncMock, client: TestClient):
    mock_store.side_effect = DataUnavailableError("Data store timeout after 5.0s")

    response = client.post("/v1/forecast", json={"user_id": "user_1", "period": 3})

    assert response.status_code == 200
    data = response.json()
    assert data["accuracy"] == 0
    assert all(Decimal(m["net_income"]) == 0 for m in data["forecast"])


@patch(f"{STORE}.get_transactions")
def test_stored_variables_used_and_request_overrides(
    mock_store: AsyncMock, client: TestClient, sample_transactions: list[Transaction]
):
    mock_store.return_value = sample_transactions

    stored = client.put("/v1/forecast/variables", json={"user_id": "user_1", "income_multiplier": "1.1"})
    assert stored.status_code == 200

    from_stored = client.post("/v1/forecast", json={"user_id": "user_1", "period": 3}).json()
    assert Decimal(from_stored["forecast"][0]["projected_income"]) == Decimal("3300.00")

    overridden = client.post(
        "/v1/forecast",
        json={"user_id": "user_1", "period": 3, "manual_adjustments": {"income_multiplier": "1.2"}},
    ).json()
    assert Decimal(overridden["forecast"][0]["projected_income"]) == Decimal("3600.00")

    # a second PUT replaces rather than stacks
    client.put("/v1/forecast/variables", json={"user_id": "user_1", "income_multiplier": "1.1"})
    again = client.post("/v1/forecast", json={"user_id": "user_1", "period": 3}).json()
    assert again["forecast"][0]["projected_income"] == from_stored["forecast"][0]["projected_income"]


@patch(f"{STORE}.get_transactions")
def test_adhoc_expense_changes_next_forecast(
    mock_store: AsyncMock, client: TestClient, sample_transactions: list[Transaction]
):
    mock_store.return_value = sample_transactions
    before = client.post("/v1/forecast", json={"user_id": "user_1", "period": 3}).json()

    next_month = add_months(month_start(date.today()), 1) + timedelta(days=4)
    expense = _create_expense(client, date=next_month.isoformat())
    after = client.post("/v1/forecast", json={"user_id": "user_1", "period": 3}).json()

    delta = Decimal(after["forecast"][1]["projected_expenses"]) - Decimal(before["forecast"][1]["projected_expenses"])
    assert delta == Decimal("500.00")

    client.delete(f"/v1/adhoc-expenses/{expense['id']}", params={"user_id": "user_1"})
    restored = client.post("/v1/forecast", json={"user_id": "user_1", "period": 3}).json()
    assert restored["forecast"][1]["projected_expenses"] == before["forecast"][1]["projected_expenses"]


@patch(f"{STORE}.get_transactions")
def test_cash_flow_endpoint(mock_store: AsyncMock, client: TestClient, sample_transactions: list[Transaction]):
    mock_store.return_value = sample_transactions

    response = client.get("/v1/cash-flow", params={"user_id": "user_1", "months": 6, "opening_balance": "100"})

    assert response.status_code == 200
    data = response.json()
    assert len(data["projections"]) == 6
    assert Decimal(data["projections"][0]["cumulative_balance"]) == Decimal("2100.00")
    assert Decimal(data["maximum_balance"]) >= Decimal(data["minimum_balance"])


def test_adhoc_crud(client: TestClient):
    created = _create_expense(client, title="Gym", amount="40", is_recurring=True, frequency="monthly")
    assert created["amount"] == "40.00"
    assert created["category"] == "Other"

    listing = client.get("/v1/adhoc-expenses", params={"user_id": "user_1"}).json()
    assert len(listing["expenses"]) == 1
    assert Decimal(listing["total_planned"]) == Decimal("480.00")

    updated = client.put(f"/v1/adhoc-expenses/{created['id']}", json={"user_id": "user_1", "amount": "45"})
    assert updated.status_code == 200
    assert updated.json()["amount"] == "45.00"
    assert updated.json()["frequency"] == "monthly"

    # other users cannot see or touch the expense
    assert client.get("/v1/adhoc-expenses", params={"user_id": "user_2"}).json()["expenses"] == []
    assert client.delete(f"/v1/adhoc-expenses/{created['id']}", params={"user_id": "user_2"}).status_code == 404

    assert client.delete(f"/v1/adhoc-expenses/{created['id']}", params={"user_id": "user_1"}).status_code == 200
    assert client.get("/v1/adhoc-expenses", params={"user_id": "user_1"}).json()["expenses"] == []


@pytest.mark.parametrize(
    "fields, field",
    [
        ({"amount": "0"}, "amount"),
        ({"title": ""}, "title"),
        ({"is_recurring": True}, "frequency"),
    ],
)
def test_adhoc_validation_errors_name_field(client: TestClient, fields: dict, field: str):
    body = {"user_id": "user_1", "title": "Laptop", "amount": "500.00", "date": "2026-12-01"}
    body.update(fields)

    response = client.post("/v1/adhoc-expenses", json=body)

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == field


def test_adhoc_update_unknown_id(client: TestClient):
    response = client.put("/v1/adhoc-expenses/missing", json={"user_id": "user_1", "amount": "10"})
    assert response.status_code == 404


def test_adhoc_impact(client: TestClient):
    in_two_months = add_months(month_start(date.today()), 2) + timedelta(days=9)
    created = _create_expense(client, amount="250", date=in_two_months.isoformat())

    response = client.get(f"/v1/adhoc-expenses/{created['id']}/impact", params={"user_id": "user_1", "months": 6})

    assert response.status_code == 200
    data = response.json()
    assert len(data["monthly_impact"]) == 6
    assert Decimal(data["monthly_impact"][2]) == Decimal("250.00")
    assert data["affected_months"] == [month_label(in_two_months)]


@patch(f"{STORE}.get_transactions")
def test_spending_trends_endpoint(mock_store: AsyncMock, client: TestClient):
    mock_store.return_value = [
        make_txn("1", date(2026, 8, 10), "100.00"),
        make_txn("2", date(2026, 9, 10), "150.00"),
    ]

    response = client.post(
        "/v1/spending-trends",
        json={"user_id": "user_1", "date_range": {"start_date": "2026-09-01", "end_date": "2026-09-30"}},
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data["trends"]) == 1
    assert Decimal(data["trends"][0]["percent_change"]) == Decimal("50.00")
    # the store is asked for the prior month too
    date_range = mock_store.call_args.args[1]
    assert date_range.start_date == date(2026, 8, 1)


def test_spending_trends_rejects_inverted_range(client: TestClient):
    response = client.post(
        "/v1/spending-trends",
        json={"user_id": "user_1", "date_range": {"start_date": "2026-09-30", "end_date": "2026-09-01"}},
    )
    assert response.status_code == 422


@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_budget_variance_endpoint(mock_store: AsyncMock, mock_budgets: AsyncMock, client: TestClient):
    mock_store.return_value = [make_txn("1", date(2026, 9, 10), "250.00", category="Dining")]
    mock_budgets.return_value = {"Dining": Decimal("200"), "Groceries": Decimal("400")}

    response = client.post(
        "/v1/budget-variance",
        json={"user_id": "user_1", "date_range": {"start_date": "2026-09-01", "end_date": "2026-09-30"}},
    )

    assert response.status_code == 200
    data = response.json()
    assert [v["category"] for v in data["variances"]] == ["Dining", "Groceries"]
    assert data["categories_over_budget"] == 1
    assert Decimal(data["overall_variance"]) == Decimal("-350.00")


@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_budget_variance_without_budgets(mock_store: AsyncMock, mock_budgets: AsyncMock, client: TestClient):
    mock_store.return_value = []
    mock_budgets.side_effect = DataUnavailableError("Data store error")

    response = client.post(
        "/v1/budget-variance",
        json={"user_id": "user_1", "date_range": {"start_date": "2026-09-01", "end_date": "2026-09-30"}},
    )

    assert response.status_code == 200
    assert response.json()["variances"] == []


@patch(f"{STORE}.get_transactions")
def test_category_analysis_endpoint(mock_store: AsyncMock, client: TestClient):
    mock_store.return_value = [
        make_txn("1", date(2026, 9, 5), "300.00"),
        make_txn("2", date(2026, 9, 6), "100.00", category="Dining"),
    ]

    response = client.post(
        "/v1/category-analysis",
        json={"user_id": "user_1", "date_range": {"start_date": "2026-09-01", "end_date": "2026-09-30"}},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["top_categories"] == ["Groceries", "Dining"]
    assert Decimal(data["categories"][0]["percentage"]) == Decimal("75.00")


@patch(f"{STORE}.get_transactions")
def test_comparative_analysis_endpoint(mock_store: AsyncMock, client: TestClient):
    mock_store.return_value = [
        make_txn("1", date(2026, 8, 3), "400.00"),
        make_txn("2", date(2026, 9, 3), "500.00", category="Dining"),
        make_txn("3", date(2026, 9, 1), "2000.00", category="Income", type="credit"),
    ]

    response = client.post(
        "/v1/comparative-analysis",
        json={
            "user_id": "user_1",
            "date_ranges": [
                {"start_date": "2026-08-01", "end_date": "2026-08-31", "label": "Aug"},
                {"start_date": "2026-09-01", "end_date": "2026-09-30", "label": "Sep"},
            ],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert [c["period"] for c in data["comparison"]] == ["Aug", "Sep"]
    assert Decimal(data["comparison"][1]["growth_rate"]) == Decimal("25.00")
    assert Decimal(data["comparison"][1]["net_income"]) == Decimal("1500.00")
    assert data["comparison"][1]["top_categories"] == ["Dining"]
    fetched_range = mock_store.call_args.args[1]
    assert (fetched_range.start_date, fetched_range.end_date) == (date(2026, 8, 1), date(2026, 9, 30))


def test_comparative_analysis_requires_a_range(client: TestClient):
    response = client.post("/v1/comparative-analysis", json={"user_id": "user_1", "date_ranges": []})
    assert response.status_code == 422


@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_financial_health_endpoint(
    mock_store: AsyncMock, mock_budgets: AsyncMock, client: TestClient, sample_transactions: list[Transaction]
):
    mock_store.return_value = sample_transactions
    mock_budgets.return_value = {}

    response = client.get("/v1/financial-health", params={"user_id": "user_1"})

    assert response.status_code == 200
    data = response.json()
    assert {i["name"] for i in data["indicators"]} == {"Savings Rate", "Recurring Spend Share", "Spending Stability"}
    assert data["overall_score"] == 100.0


@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_alert_lifecycle(
    mock_store: AsyncMock, mock_budgets: AsyncMock, client: TestClient, sample_transactions: list[Transaction]
):
    """Evaluate, re-evaluate without duplicates, mark read, dismiss permanently"""
    mock_store.return_value = sample_transactions + [make_txn("big", date.today(), "750.00", category="Travel")]
    mock_budgets.return_value = {}

    evaluated = client.post("/v1/alerts/evaluate", json={"user_id": "user_1"})
    assert evaluated.status_code == 200
    alerts = evaluated.json()["alerts"]
    assert [(a["type"], a["severity"]) for a in alerts] == [("large_expense", "high")]
    assert evaluated.json()["unread_count"] == 1
    alert_id = alerts[0]["id"]

    again = client.post("/v1/alerts/evaluate", json={"user_id": "user_1"}).json()
    assert [a["id"] for a in again["alerts"]] == [alert_id]

    assert client.put(f"/v1/alerts/{alert_id}/read", params={"user_id": "user_1"}).status_code == 200
    assert client.get("/v1/alerts", params={"user_id": "user_1"}).json()["unread_count"] == 0

    assert client.delete(f"/v1/alerts/{alert_id}", params={"user_id": "user_1"}).status_code == 200
    assert client.get("/v1/alerts", params={"user_id": "user_1"}).json()["alerts"] == []

    after_dismiss = client.post("/v1/alerts/evaluate", json={"user_id": "user_1"}).json()
    assert after_dismiss["alerts"] == []
    assert client.delete(f"/v1/alerts/{alert_id}", params={"user_id": "user_1"}).status_code == 404


@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_alert_forecast_deviation(
    mock_store: AsyncMock, mock_budgets: AsyncMock, client: TestClient, sample_transactions: list[Transaction]
):
    """A past forecast month whose realized net income missed the band raises an alert"""
    mock_store.return_value = sample_transactions
    mock_budgets.return_value = {}
    last_month = month_label(add_months(month_start(date.today()), -1))
    previous = {
        "month": last_month,
        "projected_income": "3000.00",
        "projected_expenses": "500.00",
        "net_income": "2500.00",
        "confidence_interval": {"lower": "2400.00", "upper": "2600.00"},
        "seasonal_factor": "1.0",
    }

    response = client.post("/v1/alerts/evaluate", json={"user_id": "user_1", "previous_forecast": [previous]})

    assert response.status_code == 200
    alerts = response.json()["alerts"]
    assert [a["type"] for a in alerts] == ["forecast_deviation"]
    assert alerts[0]["action_required"] is True


@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_alert_for_recurring_plan_anchored_in_past(
    mock_store: AsyncMock, mock_budgets: AsyncMock, client: TestClient, sample_transactions: list[Transaction]
):
    """A still-running recurring plan is flagged even though its first date has passed"""
    mock_store.return_value = sample_transactions
    mock_budgets.return_value = {}
    anchor = add_months(month_start(date.today()), -3)
    _create_expense(client, title="Rent", amount="1500.00", date=anchor.isoformat(), is_recurring=True, frequency="monthly")
    _create_expense(client, title="Old sofa", amount="900.00", date=anchor.isoformat())

    response = client.post("/v1/alerts/evaluate", json={"user_id": "user_1"})

    assert response.status_code == 200
    assert [a["type"] for a in response.json()["alerts"]] == ["large_expense"]
    assert "Rent" in response.json()["alerts"][0]["title"]


def test_alert_settings_defaults_and_replace(client: TestClient):
    defaults = client.get("/v1/alerts/settings", params={"user_id": "user_1"}).json()
    assert Decimal(defaults["large_expense_amount"]) == Decimal("500")
    assert Decimal(defaults["forecast_deviation_percent"]) == Decimal("10")

    response = client.put(
        "/v1/alerts/settings",
        json={"user_id": "user_1", "large_expense_amount": "200", "enable_push_alerts": True},
    )
    assert response.status_code == 200

    stored = client.get("/v1/alerts/settings", params={"user_id": "user_1"}).json()
    assert Decimal(stored["large_expense_amount"]) == Decimal("200")
    assert Decimal(stored["spending_pattern_percent"]) == Decimal("20")
    assert stored["enable_push_alerts"] is True


def test_alert_settings_rejects_non_positive_threshold(client: TestClient):
    response = client.put("/v1/alerts/settings", json={"user_id": "user_1", "large_expense_amount": "0"})
    assert response.status_code == 422


@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_evaluate_uses_stored_alert_settings(
    mock_store: AsyncMock, mock_budgets: AsyncMock, client: TestClient, sample_transactions: list[Transaction]
):
    mock_store.return_value = sample_transactions + [make_txn("mid", date.today(), "300.00", category="Travel")]
    mock_budgets.return_value = {}

    assert client.post("/v1/alerts/evaluate", json={"user_id": "user_1"}).json()["alerts"] == []

    client.put("/v1/alerts/settings", json={"user_id": "user_1", "large_expense_amount": "250"})
    stored = client.post("/v1/alerts/evaluate", json={"user_id": "user_1"}).json()
    assert [a["type"] for a in stored["alerts"]] == ["large_expense"]

    # thresholds in the request still take precedence
    other = client.post(
        "/v1/alerts/evaluate", json={"user_id": "user_2", "thresholds": {"large_expense_amount": "1000"}}
    ).json()
    assert other["alerts"] == []


def test_alert_unknown_id(client: TestClient):
    assert client.put("/v1/alerts/nope/read", params={"user_id": "user_1"}).status_code == 404


@patch(RENDER)
@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_export_endpoint(
    mock_store: AsyncMock,
    mock_budgets: AsyncMock,
    mock_render: AsyncMock,
    client: TestClient,
    sample_transactions: list[Transaction],
):
    mock_store.return_value = sample_transactions
    mock_budgets.return_value = {"Groceries": Decimal("900")}
    mock_render.return_value = {"download_url": "https://files.test/r.pdf", "expires_at": "2026-10-19T00:00:00Z"}
    start = add_months(month_start(date.today()), -3)

    response = client.post(
        "/v1/export",
        json={
            "user_id": "user_1",
            "format": "pdf",
            "date_range": {"start_date": start.isoformat(), "end_date": date.today().isoformat()},
            "period": 6,
        },
    )

    assert response.status_code == 200
    assert response.json()["download_url"] == "https://files.test/r.pdf"
    payload = mock_render.call_args.args[0]
    assert len(payload["forecast"]) == 6
    assert payload["budget_variance"][0]["category"] == "Groceries"
    assert "alerts" not in payload


@patch(RENDER)
@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_export_renderer_unavailable(
    mock_store: AsyncMock, mock_budgets: AsyncMock, mock_render: AsyncMock, client: TestClient
):
    mock_store.return_value = []
    mock_budgets.return_value = {}
    mock_render.side_effect = httpx.ConnectError("refused")

    response = client.post(
        "/v1/export",
        json={
            "user_id": "user_1",
            "format": "csv",
            "date_range": {"start_date": "2026-09-01", "end_date": "2026-09-30"},
            "include_forecasts": False,
        },
    )

    assert response.status_code == 503


@patch(RENDER)
@patch(f"{STORE}.get_budgets")
@patch(f"{STORE}.get_transactions")
def test_export_renderer_malformed_response(
    mock_store: AsyncMock, mock_budgets: AsyncMock, mock_render: AsyncMock, client: TestClient
):
    mock_store.return_value = []
    mock_budgets.return_value = {}
    mock_render.side_effect = ReportRenderError("Invalid renderer response: 'download_url'")

    response = client.post(
        "/v1/export",
        json={
            "user_id": "user_1",
            "format": "pdf",
            "date_range": {"start_date": "2026-09-01", "end_date": "2026-09-30"},
            "include_forecasts": False,
        },
    )

    assert response.status_code == 502


def test_export_rejects_unknown_format(client: TestClient):
    response = client.post(
        "/v1/export",
        json={"user_id": "user_1", "format": "docx", "date_range": {"start_date": "2026-09-01", "end_date": "2026-09-30"}},
    )
    assert response.status_code == 422
