from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from web.main import app


@pytest.fixture()
def api_client() -> Iterator[TestClient]:
    client = TestClient(app)
    try:
        yield client
    finally:
        client.close()


@pytest.mark.parametrize(
    "route, expected",
    [
        ("success", "success"),
        ("failed", "failed"),
        ("pending", "pending"),
        ("teapot", "failed"),
    ],
)
def test_payment_outcome_routes(api_client: TestClient, route: str, expected: str) -> None:
    response = api_client.get(f"/api/v1/payment/{route}", params={"session_id": "cs_test_1"})
    assert response.status_code == 200
    assert response.json()["outcome"] == expected


def test_method_not_allowed_uses_error_body(api_client: TestClient) -> None:
    response = api_client.get("/api/v1/payments/subscription")
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


def test_plan_catalog_lists_all_plans(api_client: TestClient) -> None:
    response = api_client.get("/api/v1/plans")
    assert response.status_code == 200
    plans = response.json()["plans"]
    assert [plan["planId"] for plan in plans] == ["starter", "pro", "business", "enterprise"]
    assert plans[1]["formattedPrice"] == "R$ 99.00"


def test_single_plan_lookup(api_client: TestClient) -> None:
    assert api_client.get("/api/v1/plans/enterprise").json()["monthlyPriceMinor"] == 49900
    missing = api_client.get("/api/v1/plans/ultimate")
    assert missing.status_code == 404
    assert missing.json()["code"] == "unknown_plan"


def test_metrics_endpoint(api_client: TestClient) -> None:
    response = api_client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
