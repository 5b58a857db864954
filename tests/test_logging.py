from __future__ import annotations

import json
import logging
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from flask import Flask

from currency_api.logging import (
    JSONLogFormatter,
    init_request_logging,
    provider_log_extra,
    setup_logging,
)
from currency_api.providers import ProviderFactory, UpstreamUnavailable
from currency_api.services import CachedRateService


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record):
        self.records.append(record)

    def events(self, name: str) -> list[logging.LogRecord]:
        return [record for record in self.records if getattr(record, "event", None) == name]


@pytest.fixture()
def recorder():
    """Attach a recording handler to the root logger after the app configured it."""

    handler = RecordingHandler()
    root = logging.getLogger()
    root.addHandler(handler)
    yield handler
    root.removeHandler(handler)


def test_json_formatter_serializes_cache_population_context():
    record = logging.makeLogRecord(
        {
            "name": "currency_api.services.rate_service",
            "levelno": logging.INFO,
            "levelname": "INFO",
            "msg": "Stored %s rates for %s in cache",
            "args": ("latest", "USD"),
            **provider_log_extra(
                operation="latest",
                base="USD",
                event="cache.populate",
                status="success",
                duration_ms=4.2,
                cache_key="latest-USD",
            ),
            "rate": Decimal("0.92"),
        }
    )

    document = json.loads(JSONLogFormatter().format(record))

    assert document["message"] == "Stored latest rates for USD in cache"
    assert document["logger"] == "currency_api.services.rate_service"
    assert document["event"] == "cache.populate"
    assert document["cache_key"] == "latest-USD"
    assert document["rate"] == "0.92"
    assert "request_id" not in document


@pytest.mark.parametrize(
    ("json_enabled", "formatter_type"),
    [(True, JSONLogFormatter), (False, logging.Formatter)],
)
def test_setup_logging_installs_single_root_handler(json_enabled, formatter_type):
    app = Flask(__name__)
    app.config.update(LOG_JSON_ENABLED=json_enabled, LOG_LEVEL="warning")
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level

    try:
        setup_logging(app)
        assert len(root.handlers) == 1
        assert type(root.handlers[0].formatter) is formatter_type
        assert root.level == logging.WARNING
        assert app.logger.handlers == []
    finally:
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)


def test_request_summary_carries_authenticated_client(client, user_headers, recorder):
    response = client.get(
        "/api/v1/rates/latest?baseCurrency=USD",
        headers={**user_headers, "X-Request-ID": "req-42"},
    )

    assert response.headers["X-Request-ID"] == "req-42"
    summary = recorder.events("request.completed")[-1]
    assert summary.client_id == "reporting-client"
    assert summary.route == "/api/v1/rates/latest"
    assert summary.status == 200
    assert summary.request_id == "req-42"


def test_rejected_request_is_logged_as_anonymous(client, recorder):
    response = client.get("/api/v1/rates/latest?baseCurrency=USD")

    summary = recorder.events("request.completed")[-1]
    assert summary.status == 401
    assert summary.client_id == "anonymous"
    assert summary.request_id == response.headers["X-Request-ID"]


def test_cache_population_is_logged_once_per_key(client, user_headers, recorder):
    for _ in range(2):
        client.get(
            "/api/v1/rates/latest?baseCurrency=EUR",
            headers={**user_headers, "X-Request-ID": "req-cache"},
        )

    populations = recorder.events("cache.populate")
    assert len(populations) == 1
    assert populations[0].status == "success"
    assert populations[0].cache_key == "latest-EUR"
    assert populations[0].request_id == "req-cache"


def test_failed_population_is_logged_with_error(app, user_headers, recorder):
    provider = MagicMock()
    provider.get_latest.side_effect = UpstreamUnavailable("connection refused")
    app.extensions["rate_service"] = CachedRateService(ProviderFactory([provider]))

    response = app.test_client().get(
        "/api/v1/rates/latest?baseCurrency=USD", headers=user_headers
    )

    assert response.status_code == 503
    failure = recorder.events("cache.populate")[-1]
    assert failure.levelno == logging.WARNING
    assert failure.status == "error"
    assert failure.error == "connection refused"


def test_spans_share_the_request_id(make_app, recorder):
    app = make_app(TRACING_ENABLED=True)
    logging.getLogger().addHandler(recorder)
    token = app.extensions["token_service"].issue("reporting-client").access_token

    app.test_client().get(
        "/api/v1/rates/latest?baseCurrency=GBP",
        headers={"Authorization": f"Bearer {token}", "X-Request-ID": "req-trace"},
    )

    spans = recorder.events("trace.span")
    assert {span.span for span in spans} >= {"cache.latest", "provider.latest"}
    assert all(span.request_id == "req-trace" for span in spans)


def test_unhandled_error_is_logged_as_failed_request(recorder):
    app = Flask(__name__)
    app.config["TESTING"] = True
    init_request_logging(app)

    @app.route("/boom")
    def boom():  # pragma: no cover - invoked via test client
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        app.test_client().get("/boom")

    failure = recorder.events("request.failed")[-1]
    assert failure.status == 500
    assert failure.error == "boom"
    assert failure.client_id == "anonymous"


def test_docs_requests_are_logged_at_debug(client, recorder):
    response = client.get("/docs/openapi.json")

    assert response.status_code == 200
    assert recorder.events("request.completed") == []
