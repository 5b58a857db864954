"""Route handlers for health checks."""

from __future__ import annotations

from flask import current_app
from flask.views import MethodView

from currency_api.providers import ProviderFactory
from currency_api.schemas import HealthStatusSchema

from . import blp


@blp.route("")
class HealthStatus(MethodView):
    @blp.response(200, HealthStatusSchema())
    def get(self):
        factory: ProviderFactory | None = current_app.extensions.get("provider_factory")  # type: ignore[assignment]
        providers = [provider.name for provider in factory.providers] if factory else []
        return {
            "status": "ok" if providers else "degraded",
            "app": current_app.config.get("APP_NAME", "currency-converter-api"),
            "providers": providers,
        }
