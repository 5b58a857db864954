"""Application configuration classes."""

from __future__ import annotations

import os

SUPPORTED_RATE_PROVIDERS = {"frankfurter", "mock"}
PROVIDER_ALIASES = {"ecb": "frankfurter", "frankfurter_ecb": "frankfurter"}

TTL_SETTINGS = (
    "CACHE_LATEST_TTL_MINUTES",
    "CACHE_CONVERSION_TTL_MINUTES",
    "CACHE_HISTORICAL_TTL_HOURS",
    "CACHE_MAX_ENTRIES",
)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "currency-converter-api"
    SECRET_KEY = _get_env("SECRET_KEY", "change-me")

    FX_RATE_PROVIDERS = _get_env("FX_RATE_PROVIDERS", "frankfurter")
    FRANKFURTER_API_BASE_URL = _get_env("FRANKFURTER_API_BASE_URL", "https://api.frankfurter.app")
    REQUEST_TIMEOUT_SECONDS = float(_get_env("REQUEST_TIMEOUT_SECONDS", "30"))
    RATES_API_MAX_RETRIES = int(_get_env("RATES_API_MAX_RETRIES", "3"))
    RATES_API_BACKOFF_SECONDS = float(_get_env("RATES_API_BACKOFF_SECONDS", "0.5"))
    CIRCUIT_BREAKER_THRESHOLD = int(_get_env("CIRCUIT_BREAKER_THRESHOLD", "5"))
    CIRCUIT_BREAKER_DURATION_SECONDS = float(_get_env("CIRCUIT_BREAKER_DURATION_SECONDS", "60"))

    CACHE_LATEST_TTL_MINUTES = float(_get_env("CACHE_LATEST_TTL_MINUTES", "30"))
    CACHE_CONVERSION_TTL_MINUTES = float(_get_env("CACHE_CONVERSION_TTL_MINUTES", "30"))
    CACHE_HISTORICAL_TTL_HOURS = float(_get_env("CACHE_HISTORICAL_TTL_HOURS", "6"))
    CACHE_MAX_ENTRIES = int(_get_env("CACHE_MAX_ENTRIES", "1024"))

    JWT_SECRET_KEY = _get_env("JWT_SECRET_KEY", "default_secret_key_change_in_production")
    JWT_ISSUER = _get_env("JWT_ISSUER", "CurrencyConverterApi")
    JWT_AUDIENCE = _get_env("JWT_AUDIENCE", "CurrencyApiUsers")
    JWT_EXPIRATION_MINUTES = int(_get_env("JWT_EXPIRATION_MINUTES", "60"))
    API_KEY = _get_env("API_KEY", "demo_api_key")

    LOG_LEVEL = _get_env("LOG_LEVEL", "INFO")
    LOG_JSON_ENABLED = _get_env("LOG_JSON_ENABLED", "false").lower() == "true"
    LOG_FORMAT = _get_env("LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s")
    TRACING_ENABLED = _get_env("TRACING_ENABLED", "false").lower() == "true"
    TRACING_MIN_DURATION_MS = float(_get_env("TRACING_MIN_DURATION_MS", "500"))

    API_TITLE = "Currency Converter API"
    API_VERSION = "v1"
    OPENAPI_VERSION = "3.0.3"
    OPENAPI_URL_PREFIX = "/docs"
    OPENAPI_SWAGGER_UI_PATH = "/swagger"
    OPENAPI_SWAGGER_UI_URL = "https://cdn.jsdelivr.net/npm/swagger-ui-dist/"


class DevelopmentConfig(BaseConfig):
    """Configuration for local development."""

    DEBUG = True
    TESTING = False


class TestingConfig(BaseConfig):
    """Configuration used by the test suite."""

    DEBUG = False
    TESTING = True
    FX_RATE_PROVIDERS = "mock"
    JWT_SECRET_KEY = "testing-secret-key-with-enough-length-for-hs256"
    API_KEY = "test_api_key_123"
    RATES_API_BACKOFF_SECONDS = 0.0
    TRACING_ENABLED = False


class ProductionConfig(BaseConfig):
    """Configuration for production deployments."""

    DEBUG = False
    TESTING = False


CONFIG_BY_ENV = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config(config_name: str | None = None) -> type[BaseConfig]:
    """Return the config class for the requested environment.

    Args:
        config_name: Optional explicit config identifier. If omitted, the
            APP_ENV environment variable is consulted.

    Raises:
        KeyError: If the requested configuration is not defined.
        ValueError: If the provider list, cache lifetimes or retry count are invalid.
    """

    env_candidate = config_name if config_name is not None else os.getenv("APP_ENV", "development")
    env_name = (env_candidate or "development").lower()
    try:
        config_cls = CONFIG_BY_ENV[env_name]
    except KeyError as exc:
        raise KeyError(f"Unknown APP_ENV '{env_name}'") from exc

    _validate_providers(config_cls)
    _validate_cache_settings(config_cls)
    _validate_transport_settings(config_cls)
    return config_cls


def normalize_provider_names(raw: str | None) -> str:
    """Resolve aliases in a comma-separated provider list and reject unknown names."""

    names = [normalize_provider_name(item) for item in (raw or "").split(",") if item.strip()]
    if not names:
        raise ValueError("FX_RATE_PROVIDERS must name at least one provider")
    unknown = [name for name in names if name not in SUPPORTED_RATE_PROVIDERS]
    if unknown:
        raise ValueError(
            f"Unsupported FX_RATE_PROVIDERS entries {unknown}. "
            f"Allowed values: {sorted(SUPPORTED_RATE_PROVIDERS)}"
        )
    return ",".join(names)


def _validate_providers(config_cls: type[BaseConfig]) -> None:
    config_cls.FX_RATE_PROVIDERS = normalize_provider_names(config_cls.FX_RATE_PROVIDERS)


def _validate_cache_settings(config_cls: type[BaseConfig]) -> None:
    for name in TTL_SETTINGS:
        if getattr(config_cls, name) <= 0:
            raise ValueError(f"{name} must be positive")


def _validate_transport_settings(config_cls: type[BaseConfig]) -> None:
    if config_cls.RATES_API_MAX_RETRIES < 1:
        raise ValueError("RATES_API_MAX_RETRIES must be at least 1")


def normalize_provider_name(value: str | None) -> str:
    """Lowercase a provider name and map known aliases such as ``ecb``."""

    if not value:
        return ""
    normalized = value.strip().lower()
    return PROVIDER_ALIASES.get(normalized, normalized)
