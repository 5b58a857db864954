from __future__ import annotations

from datetime import date
from decimal import Decimal
from types import GeneratorType

import pytest

from currency_api.providers import InvalidArgument, MockRateProvider


def test_latest_rebases_to_requested_currency():
    snapshot = MockRateProvider().get_latest("eur")

    assert snapshot.base_currency == "EUR"
    assert "EUR" not in snapshot.rates
    assert snapshot.rates["USD"] == Decimal("1") / Decimal("0.90")


def test_latest_for_unknown_base_is_empty():
    assert MockRateProvider().get_latest("XYZ").rates == {}


def test_convert_multiplies_amount():
    snapshot = MockRateProvider().convert("USD", ["EUR", "GBP"], Decimal("100"))

    assert snapshot.rates["EUR"] == Decimal("90.00")
    assert snapshot.rates["GBP"] == Decimal("78.00")


def test_historical_yields_one_entry_per_day_lazily():
    series = MockRateProvider().get_historical("USD", date(2024, 1, 1), date(2024, 1, 10))

    assert isinstance(series, GeneratorType)
    entries = list(series)
    assert len(entries) == 10
    assert entries[0].rates["EUR"] == Decimal("0.90")
    assert entries[1].rates["EUR"] == Decimal("0.90") * Decimal("1.01")


def test_historical_validates_range_before_iteration():
    with pytest.raises(InvalidArgument):
        MockRateProvider().get_historical("USD", date(2024, 1, 10), date(2024, 1, 1))
