"""Mock provider implementation for testing and local development."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import date, timedelta
from decimal import Decimal

from currency_api.utils.datetime import as_date, utc_today

from .base import BaseRateProvider, require_date_range, require_targets
from .schemas import HistoricalRate, RateSnapshot

MOCK_RATES_USD: dict[str, Decimal] = {
    "USD": Decimal("1"),
    "EUR": Decimal("0.90"),
    "GBP": Decimal("0.78"),
    "JPY": Decimal("150.12"),
    "CHF": Decimal("0.88"),
}


class MockRateProvider(BaseRateProvider):
    """Deterministic provider returning synthetic FX data."""

    name = "mock"

    def get_latest(self, base: str) -> RateSnapshot:
        base_currency = str(base).upper()
        return RateSnapshot(
            base_currency=base_currency,
            rates=self._rates_for(base_currency),
            as_of=utc_today(),
            source=self.name,
        )

    def convert(self, base: str, targets: Sequence[str], amount: Decimal) -> RateSnapshot:
        symbols = require_targets(targets)
        base_currency = str(base).upper()
        rates = self._rates_for(base_currency)
        converted = {
            code: rates[code] * Decimal(amount)
            for code in (symbol.upper() for symbol in symbols)
            if code in rates
        }
        return RateSnapshot(
            base_currency=base_currency,
            rates=converted,
            as_of=utc_today(),
            source=self.name,
        )

    def get_historical(self, base: str, start: date, end: date) -> Iterator[HistoricalRate]:
        require_date_range(start, end)
        rates = self._rates_for(str(base).upper())
        return self._iter_days(rates, as_date(start), as_date(end))

    @staticmethod
    def _iter_days(
        rates: dict[str, Decimal], first: date, last: date
    ) -> Iterator[HistoricalRate]:
        offset = 0
        day = first
        while day <= last:
            drift = Decimal("1.00") + Decimal(offset) * Decimal("0.01")
            yield HistoricalRate(day=day, rates={code: value * drift for code, value in rates.items()})
            offset += 1
            day += timedelta(days=1)

    @staticmethod
    def _rates_for(base_currency: str) -> dict[str, Decimal]:
        base_rate = MOCK_RATES_USD.get(base_currency)
        if base_rate is None:
            return {}
        return {
            code: value / base_rate
            for code, value in MOCK_RATES_USD.items()
            if code != base_currency
        }
