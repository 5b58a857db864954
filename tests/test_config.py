from __future__ import annotations

import pytest

import config
from config import get_config, normalize_provider_names
from currency_api.providers import FrankfurterProvider


def test_get_config_resolves_named_environment():
    assert get_config("testing") is config.TestingConfig


def test_get_config_reads_app_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")

    assert get_config() is config.ProductionConfig


def test_unknown_environment_raises():
    with pytest.raises(KeyError):
        get_config("staging")


def test_defaults_follow_documented_values():
    assert config.BaseConfig.CACHE_LATEST_TTL_MINUTES == 30
    assert config.BaseConfig.CACHE_CONVERSION_TTL_MINUTES == 30
    assert config.BaseConfig.CACHE_HISTORICAL_TTL_HOURS == 6
    assert config.BaseConfig.JWT_EXPIRATION_MINUTES == 60
    assert config.BaseConfig.CIRCUIT_BREAKER_THRESHOLD == 5


def test_provider_aliases_are_resolved():
    assert normalize_provider_names("ECB, mock") == "frankfurter,mock"
    assert normalize_provider_names("frankfurter_ecb") == "frankfurter"


@pytest.mark.parametrize("raw", ["", "exchangerate_host", "frankfurter,bogus"])
def test_invalid_provider_lists_are_rejected(raw):
    with pytest.raises(ValueError):
        normalize_provider_names(raw)


def test_non_positive_ttl_is_rejected(monkeypatch):
    monkeypatch.setattr(config.TestingConfig, "CACHE_HISTORICAL_TTL_HOURS", 0)

    with pytest.raises(ValueError, match="CACHE_HISTORICAL_TTL_HOURS"):
        get_config("testing")


def test_create_app_applies_overrides(make_app):
    app = make_app(CACHE_LATEST_TTL_MINUTES=5)

    assert app.config["CACHE_LATEST_TTL_MINUTES"] == 5
    assert app.extensions["rate_service"].settings.latest_ttl_minutes == 5


def test_create_app_resolves_provider_alias_overrides(make_app):
    app = make_app(FX_RATE_PROVIDERS="ecb")

    provider = app.extensions["provider_factory"].get_provider()
    assert isinstance(provider, FrankfurterProvider)


def test_retry_count_below_one_is_rejected(monkeypatch):
    monkeypatch.setattr(config.TestingConfig, "RATES_API_MAX_RETRIES", 0)

    with pytest.raises(ValueError, match="RATES_API_MAX_RETRIES"):
        get_config("testing")
