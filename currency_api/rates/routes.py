"""Route handlers for latest, conversion and historical rates."""

from __future__ import annotations

import logging
import math

from flask import current_app
from flask.views import MethodView

from currency_api.auth.tokens import POLICY_ADMIN, POLICY_USER, require_policy
from currency_api.errors import APIError
from currency_api.services.rate_service import CachedRateService
from currency_api.utils.datetime import utc_today

from . import blp
from .schemas import (
    ConversionResponseSchema,
    ConvertQuerySchema,
    HistoricalRatesResponseSchema,
    HistoryQuerySchema,
    LatestRatesQuerySchema,
    LatestRatesResponseSchema,
)

logger = logging.getLogger(__name__)

BEARER_SECURITY = [{"bearerAuth": []}]


def _rate_service() -> CachedRateService:
    return current_app.extensions["rate_service"]


@blp.route("/latest")
class LatestRates(MethodView):
    decorators = [require_policy(POLICY_USER)]

    @blp.doc(security=BEARER_SECURITY)
    @blp.arguments(LatestRatesQuerySchema, location="query")
    @blp.response(200, LatestRatesResponseSchema())
    def get(self, query_args):
        base = query_args["base_currency"]
        logger.info("Getting latest exchange rates for base currency: %s", base)
        snapshot = _rate_service().get_latest(base)
        return {
            "base": base,
            "date": snapshot.as_of or utc_today(),
            "rates": dict(snapshot.rates),
        }


@blp.route("/convert")
class ConvertAmount(MethodView):
    decorators = [require_policy(POLICY_USER)]

    @blp.doc(security=BEARER_SECURITY)
    @blp.arguments(ConvertQuerySchema, location="query")
    @blp.response(200, ConversionResponseSchema())
    def get(self, query_args):
        base = query_args["base_currency"]
        target = query_args["target_currency"]
        amount = query_args["amount"]
        logger.info("Converting %s %s to %s", amount, base, target)

        snapshot = _rate_service().convert(base, [target], amount)
        converted = snapshot.rates.get(target)
        if converted is None:
            logger.warning(
                "Could not convert %s from %s to %s; provider returned no value", amount, base, target
            )
            raise APIError(
                f"Could not convert from {base} to {target}. "
                "Check currency codes or ensure rates are available."
            )
        return {
            "base": base,
            "target": target,
            "amount": amount,
            "converted_amount": converted,
            "date": snapshot.as_of or utc_today(),
        }


@blp.route("/history")
class HistoricalRates(MethodView):
    decorators = [require_policy(POLICY_ADMIN)]

    @blp.doc(security=BEARER_SECURITY)
    @blp.arguments(HistoryQuerySchema, location="query")
    @blp.response(200, HistoricalRatesResponseSchema())
    def get(self, query_args):
        base = query_args["base_currency"]
        start, end = query_args["start"], query_args["end"]
        page, page_size = query_args["page"], query_args["page_size"]

        series = _rate_service().get_historical(base, start, end)
        total_items = len(series)
        if not total_items:
            logger.info("No historical data found for %s between %s and %s", base, start, end)

        offset = (page - 1) * page_size
        return {
            "base": base,
            "start_date": start,
            "end_date": end,
            "page": page,
            "page_size": page_size,
            "total_items": total_items,
            "total_pages": math.ceil(total_items / page_size),
            "data": [
                {"date": entry.day, "rates": dict(entry.rates)}
                for entry in series[offset : offset + page_size]
            ],
        }
