"""Abstract interface and error taxonomy for FX rate providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from ..utils.datetime import as_date
from .schemas import HistoricalRate, RateSnapshot


class InvalidArgument(ValueError):
    """Raised when a caller passes a missing or inconsistent parameter."""


class ProviderError(Exception):
    """Raised when an upstream provider cannot fulfill a request."""


class UpstreamUnavailable(ProviderError):
    """Transport failure or non-success status from the upstream source."""


class UpstreamMalformedResponse(ProviderError):
    """Upstream answered successfully but the payload is unusable."""


class BaseRateProvider(ABC):
    """Defines the interface all FX rate providers must implement."""

    name: str

    @abstractmethod
    def get_latest(self, base: str) -> RateSnapshot:
        """Retrieve the most recent rates for the given base currency."""

    @abstractmethod
    def convert(self, base: str, targets: Sequence[str], amount: Decimal) -> RateSnapshot:
        """Convert `amount` of `base` into each of the target currencies.

        The returned snapshot holds converted amounts, not rates. An empty
        `targets` sequence yields an empty snapshot.
        """

    @abstractmethod
    def get_historical(self, base: str, start: date, end: date) -> Iterable[HistoricalRate]:
        """Retrieve daily rates between `start` and `end`, ordered by date."""


def require_targets(targets: Sequence[str] | None) -> tuple[str, ...]:
    if targets is None:
        raise InvalidArgument("targets is required")
    return tuple(targets)


def require_date_range(start: date, end: date) -> None:
    start, end = as_date(start), as_date(end)
    if end < start:
        raise InvalidArgument(
            f"end date {end.isoformat()} is before start date {start.isoformat()}"
        )
