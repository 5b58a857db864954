"""Provider interfaces and data structures for FX rate sources."""

from .base import (
    BaseRateProvider,
    InvalidArgument,
    ProviderError,
    UpstreamMalformedResponse,
    UpstreamUnavailable,
)
from .frankfurter_client import FrankfurterClient, FrankfurterClientConfig
from .frankfurter_provider import FrankfurterProvider
from .mock import MockRateProvider
from .registry import (
    NoProvidersRegistered,
    ProviderFactory,
    ProviderSelector,
    ProviderType,
)
from .schemas import HistoricalRate, HistoricalSeries, RateSnapshot

__all__ = [
    "BaseRateProvider",
    "InvalidArgument",
    "ProviderError",
    "UpstreamMalformedResponse",
    "UpstreamUnavailable",
    "NoProvidersRegistered",
    "ProviderFactory",
    "ProviderSelector",
    "ProviderType",
    "HistoricalRate",
    "HistoricalSeries",
    "RateSnapshot",
    "FrankfurterClient",
    "FrankfurterClientConfig",
    "FrankfurterProvider",
    "MockRateProvider",
]
