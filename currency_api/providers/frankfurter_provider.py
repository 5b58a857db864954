"""ECB (Frankfurter) provider implementation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import Any

from currency_api.monitoring import Tracer
from currency_api.providers.base import (
    BaseRateProvider,
    UpstreamMalformedResponse,
    require_date_range,
    require_targets,
)
from currency_api.providers.schemas import HistoricalRate, RateSnapshot
from currency_api.utils.datetime import as_date

from .frankfurter_client import FrankfurterClient, FrankfurterClientConfig

logger = logging.getLogger(__name__)


class FrankfurterProvider(BaseRateProvider):
    """Provider that fetches ECB rates via the Frankfurter API."""

    name = "frankfurter"

    def __init__(self, client: FrankfurterClient, tracer: Tracer | None = None) -> None:
        self._client = client
        self._tracer = tracer or Tracer(self.name)
        logger.info("Frankfurter provider initialized with base URL %s", client.base_url)

    @classmethod
    def from_config(
        cls, config: Mapping[str, Any], tracer: Tracer | None = None
    ) -> FrankfurterProvider:
        client_config = FrankfurterClientConfig(
            base_url=str(config.get("FRANKFURTER_API_BASE_URL", "https://api.frankfurter.app")),
            timeout=float(config.get("REQUEST_TIMEOUT_SECONDS", 30)),
            max_retries=int(config.get("RATES_API_MAX_RETRIES", 3)),
            backoff_seconds=float(config.get("RATES_API_BACKOFF_SECONDS", 0.5)),
            circuit_breaker_threshold=int(config.get("CIRCUIT_BREAKER_THRESHOLD", 5)),
            circuit_breaker_duration=float(config.get("CIRCUIT_BREAKER_DURATION_SECONDS", 60)),
        )
        return cls(FrankfurterClient(client_config), tracer=tracer)

    def get_latest(self, base: str) -> RateSnapshot:
        base_currency = base.strip().upper()
        with self._tracer.span("frankfurter.latest", **{"currency.base": base_currency}) as span:
            payload = self._client.get("/latest", params={"from": base_currency})
            snapshot = self._snapshot(payload, base_currency)
            span.set_attribute("currency.count", len(snapshot.rates))

        logger.info(
            "Retrieved %s latest rates for %s from Frankfurter",
            len(snapshot.rates),
            base_currency,
        )
        return snapshot

    def convert(self, base: str, targets: Sequence[str], amount: Decimal) -> RateSnapshot:
        symbols = require_targets(targets)
        base_currency = base.strip().upper()
        if not symbols:
            return RateSnapshot(base_currency=base_currency, rates={}, source=self.name)

        to = ",".join(symbol.strip().upper() for symbol in symbols)
        amount_text = format(Decimal(amount), "f")
        with self._tracer.span(
            "frankfurter.convert",
            **{"currency.base": base_currency, "currency.targets": to, "amount": amount_text},
        ) as span:
            payload = self._client.get(
                "/latest",
                params={"amount": amount_text, "from": base_currency, "to": to},
            )
            snapshot = self._snapshot(payload, base_currency)
            span.set_attribute("currency.count", len(snapshot.rates))

        logger.info("Converted %s %s to %s via Frankfurter", amount_text, base_currency, to)
        return snapshot

    def get_historical(self, base: str, start: date, end: date) -> Iterable[HistoricalRate]:
        require_date_range(start, end)
        base_currency = base.strip().upper()
        start_day, end_day = as_date(start), as_date(end)
        path = f"/{start_day.isoformat()}..{end_day.isoformat()}"

        with self._tracer.span(
            "frankfurter.historical",
            **{
                "currency.base": base_currency,
                "date.start": start_day.isoformat(),
                "date.end": end_day.isoformat(),
            },
        ) as span:
            payload = self._client.get(path, params={"from": base_currency})
            rates_by_date = payload["rates"]
            span.set_attribute("date.count", len(rates_by_date))

        logger.info(
            "Retrieved %s days of historical rates for %s between %s and %s",
            len(rates_by_date),
            base_currency,
            start_day,
            end_day,
        )
        return self._iter_history(rates_by_date)

    def _snapshot(self, payload: Mapping[str, Any], base_currency: str) -> RateSnapshot:
        try:
            return RateSnapshot(
                base_currency=base_currency,
                rates=payload["rates"],
                as_of=self._parse_date(payload["date"]) if payload.get("date") else None,
                source=self.name,
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise UpstreamMalformedResponse(f"Unusable Frankfurter payload: {exc}") from exc

    def _iter_history(self, rates_by_date: Mapping[str, Any]) -> Iterator[HistoricalRate]:
        for date_str in sorted(rates_by_date):
            rate_map = rates_by_date[date_str]
            try:
                yield HistoricalRate(day=self._parse_date(date_str), rates=rate_map)
            except (AttributeError, TypeError, ValueError) as exc:
                raise UpstreamMalformedResponse(
                    f"Unusable Frankfurter history entry for {date_str!r}: {exc}"
                ) from exc

    @staticmethod
    def _parse_date(value: str) -> date:
        return date.fromisoformat(value)
