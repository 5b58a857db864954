"""Dataclasses describing normalized FX provider payloads."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Tuple

from currency_api.utils.datetime import as_date


def _normalize_code(code: str) -> str:
    normalized = code.strip().upper()
    if not normalized.isascii():
        raise ValueError(f"Currency code must be ASCII: {code!r}")
    return normalized


def _normalize_rates(rates: Mapping[str, Decimal | float | int | str]) -> Mapping[str, Decimal]:
    normalized: dict[str, Decimal] = {}
    for code, value in rates.items():
        try:
            decimal_value = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Rate for {code!r} is not numeric: {value!r}") from exc
        if not decimal_value.is_finite():
            raise ValueError(f"Rate for {code!r} is not finite: {value!r}")
        normalized[_normalize_code(code)] = decimal_value
    return MappingProxyType(normalized)


@dataclass(frozen=True)
class RateSnapshot:
    """Read-only mapping of currency code to decimal value for one base currency.

    Depending on the producing operation the values are exchange rates or
    converted amounts.
    """

    base_currency: str
    rates: Mapping[str, Decimal] = field(default_factory=dict)
    as_of: date | None = None
    source: str = "unknown"

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_currency", _normalize_code(self.base_currency))
        object.__setattr__(self, "rates", _normalize_rates(self.rates))
        if self.as_of is not None:
            object.__setattr__(self, "as_of", as_date(self.as_of))
        if not self.source or not self.source.strip():
            raise ValueError("source must be provided for RateSnapshot")


@dataclass(frozen=True)
class HistoricalRate:
    """Rates observed for a single calendar day."""

    day: date
    rates: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "day", as_date(self.day))
        object.__setattr__(self, "rates", _normalize_rates(self.rates))


HistoricalSeries = Tuple[HistoricalRate, ...]
