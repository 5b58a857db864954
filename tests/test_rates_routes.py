from __future__ import annotations

from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from currency_api.providers import ProviderFactory, UpstreamMalformedResponse, UpstreamUnavailable
from currency_api.services import CachedRateService
from currency_api.utils.datetime import utc_today


def test_latest_requires_token(client):
    response = client.get("/api/v1/rates/latest?baseCurrency=USD")

    assert response.status_code == 401


def test_latest_returns_rates(client, user_headers):
    response = client.get("/api/v1/rates/latest?baseCurrency=usd", headers=user_headers)

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["base"] == "USD"
    assert payload["rates"]["EUR"] == pytest.approx(0.9)
    assert payload["date"] == utc_today().isoformat()


@pytest.mark.parametrize("code", ["US", "USDX", "U1D"])
def test_latest_rejects_malformed_codes(client, user_headers, code):
    response = client.get(f"/api/v1/rates/latest?baseCurrency={code}", headers=user_headers)

    assert response.status_code == 422
    assert "baseCurrency" in response.get_json()["errors"]["query"]


def test_convert_returns_converted_amount(client, user_headers):
    response = client.get(
        "/api/v1/rates/convert?baseCurrency=USD&targetCurrency=eur&amount=100",
        headers=user_headers,
    )

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["base"] == "USD"
    assert payload["target"] == "EUR"
    assert payload["amount"] == 100
    assert payload["convertedAmount"] == pytest.approx(90.0)


@pytest.mark.parametrize(
    "query",
    [
        "baseCurrency=USD&targetCurrency=EUR&amount=0",
        "baseCurrency=USD&targetCurrency=EUR&amount=-5",
        "baseCurrency=USD&targetCurrency=usd&amount=10",
        "baseCurrency=USD&targetCurrency=TRY&amount=10",
        "baseCurrency=PLN&targetCurrency=EUR&amount=10",
        "baseCurrency=USD&amount=10",
    ],
)
def test_convert_validation_failures(client, user_headers, query):
    response = client.get(f"/api/v1/rates/convert?{query}", headers=user_headers)

    assert response.status_code == 422


@pytest.mark.parametrize(
    "amount",
    ["1e1000000", "79228162514264337593543950336", "nan", "inf"],
)
def test_convert_rejects_amounts_beyond_decimal_range(app, client, user_headers, amount):
    response = client.get(
        f"/api/v1/rates/convert?baseCurrency=USD&targetCurrency=EUR&amount={amount}",
        headers=user_headers,
    )

    assert response.status_code == 422
    assert "amount" in response.get_json()["errors"]["query"]
    assert len(app.extensions["rate_service"].cache) == 0


def test_convert_with_too_many_decimal_places_is_bad_request(app, client, user_headers):
    response = client.get(
        "/api/v1/rates/convert?baseCurrency=USD&targetCurrency=EUR&amount=0." + "0" * 30 + "1",
        headers=user_headers,
    )

    assert response.status_code == 400
    assert "decimal places" in response.get_json()["message"]
    assert len(app.extensions["rate_service"].cache) == 0


def test_convert_without_rate_for_target_is_bad_request(client, user_headers):
    response = client.get(
        "/api/v1/rates/convert?baseCurrency=USD&targetCurrency=AUD&amount=10",
        headers=user_headers,
    )

    assert response.status_code == 400
    assert "Could not convert from USD to AUD" in response.get_json()["message"]


def test_history_requires_admin(client, user_headers):
    response = client.get(
        "/api/v1/rates/history?baseCurrency=USD&start=2024-01-01&end=2024-01-10",
        headers=user_headers,
    )

    assert response.status_code == 403


def test_history_is_paginated(client, admin_headers):
    response = client.get(
        "/api/v1/rates/history?baseCurrency=USD&start=2024-01-01&end=2024-01-10&page=2&pageSize=3",
        headers=admin_headers,
    )

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["base"] == "USD"
    assert payload["startDate"] == "2024-01-01"
    assert payload["endDate"] == "2024-01-10"
    assert payload["totalItems"] == 10
    assert payload["totalPages"] == 4
    assert [entry["date"] for entry in payload["data"]] == [
        "2024-01-04",
        "2024-01-05",
        "2024-01-06",
    ]


def test_history_page_beyond_range_is_empty(client, admin_headers):
    response = client.get(
        "/api/v1/rates/history?baseCurrency=USD&start=2024-01-01&end=2024-01-02&page=5",
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.get_json()["data"] == []


@pytest.mark.parametrize(
    "query",
    [
        "baseCurrency=USD&start=2024-01-10&end=2024-01-01",
        "baseCurrency=USD&start=2024-01-01",
        "baseCurrency=USD&start=2024-01-01&end=2024-01-02&page=0",
        "baseCurrency=USD&start=2024-01-01&end=2024-01-02&pageSize=101",
    ],
)
def test_history_validation_failures(client, admin_headers, query):
    response = client.get(f"/api/v1/rates/history?{query}", headers=admin_headers)

    assert response.status_code == 422


def test_history_rejects_future_dates(client, admin_headers):
    tomorrow = (utc_today() + timedelta(days=1)).isoformat()
    response = client.get(
        f"/api/v1/rates/history?baseCurrency=USD&start={tomorrow}&end={tomorrow}",
        headers=admin_headers,
    )

    assert response.status_code == 422
    errors = response.get_json()["errors"]["query"]
    assert "start" in errors and "end" in errors


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (UpstreamUnavailable("connection refused"), 503),
        (UpstreamMalformedResponse("missing 'rates'"), 502),
        (RuntimeError("boom"), 500),
    ],
)
def test_provider_failures_map_to_status(app, user_headers, error, status):
    app.config["PROPAGATE_EXCEPTIONS"] = False
    service = MagicMock()
    service.get_latest.side_effect = error
    app.extensions["rate_service"] = service

    response = app.test_client().get("/api/v1/rates/latest?baseCurrency=USD", headers=user_headers)

    assert response.status_code == status
    payload = response.get_json()
    assert payload["status"] == status
    assert "boom" not in payload["message"]


def test_responses_are_served_from_cache(app, user_headers):
    provider = app.extensions["provider_factory"].get_provider()
    spy = MagicMock(wraps=provider)
    app.extensions["rate_service"] = CachedRateService(ProviderFactory([spy]))
    client = app.test_client()

    for _ in range(3):
        response = client.get("/api/v1/rates/latest?baseCurrency=USD", headers=user_headers)
        assert response.status_code == 200

    spy.get_latest.assert_called_once_with("USD")


def test_history_dates_are_inclusive(client, admin_headers):
    day = date(2024, 2, 29)
    response = client.get(
        f"/api/v1/rates/history?baseCurrency=EUR&start={day}&end={day}",
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.get_json()["totalItems"] == 1
