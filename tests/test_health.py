"""Smoke tests for health endpoints."""

from __future__ import annotations


def test_health_endpoint_returns_ok(client):
    response = client.get("/health")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["app"] == "currency-converter-api"
    assert payload["providers"] == ["mock"]


def test_health_endpoint_needs_no_token(client):
    response = client.get("/health", headers={"Authorization": "Bearer invalid"})

    assert response.status_code == 200


def test_openapi_spec_documents_bearer_scheme(client):
    response = client.get("/docs/openapi.json")

    assert response.status_code == 200
    spec = response.get_json()
    assert spec["components"]["securitySchemes"]["bearerAuth"]["scheme"] == "bearer"
    assert "/api/v1/rates/latest" in spec["paths"]
    assert "/api/v1/auth/token" in spec["paths"]
