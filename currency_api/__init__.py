"""Application factory for the currency converter API."""

from __future__ import annotations

from typing import Any, Mapping

from flask import Flask
from flask_smorest import Api

from config import get_config

from .cli import register_cli


def create_app(
    config_name: str | None = None, config_overrides: Mapping[str, Any] | None = None
) -> Flask:
    """Application factory adhering to the Flask app factory pattern."""

    app = Flask(__name__)
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    _configure_logging(app)
    api = _register_extensions(app)
    _register_blueprints(app, api)
    _register_error_handlers(app)

    register_cli(app)
    return app


def _configure_logging(app: Flask) -> None:
    from .logging import init_request_logging, setup_logging

    setup_logging(app)
    init_request_logging(app)


def _register_extensions(app: Flask) -> Api:
    """Wire the tracer, providers, rate cache and token service onto the app."""

    from .auth.tokens import init_token_service
    from .monitoring import init_tracer
    from .providers.registry import init_provider_factory
    from .services import init_rate_service

    init_tracer(app)
    init_provider_factory(app)
    init_rate_service(app)
    init_token_service(app)

    api = Api(app)
    api.spec.components.security_scheme(
        "bearerAuth", {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}
    )
    app.extensions["smorest_api"] = api
    return api


def _register_blueprints(app: Flask, api: Api) -> None:
    """Register Flask blueprints."""

    from .auth import blp as auth_blp
    from .health import blp as health_blp
    from .rates import blp as rates_blp

    api.register_blueprint(health_blp, url_prefix="/health")
    api.register_blueprint(auth_blp, url_prefix="/api/v1/auth")
    api.register_blueprint(rates_blp, url_prefix="/api/v1/rates")


def _register_error_handlers(app: Flask) -> None:
    """Register global error handlers."""

    from .errors import register_error_handlers

    register_error_handlers(app)
