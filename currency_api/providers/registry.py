"""Registry and factory for FX rate providers."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Any, Callable, Dict, List, Protocol

from config import normalize_provider_name
from currency_api.monitoring import Tracer

from .base import BaseRateProvider, InvalidArgument, ProviderError
from .frankfurter_provider import FrankfurterProvider
from .mock import MockRateProvider

logger = logging.getLogger(__name__)

ProviderBuilder = Callable[[Mapping[str, Any], Tracer], BaseRateProvider]

_PROVIDER_BUILDERS: Dict[str, ProviderBuilder] = {}


class NoProvidersRegistered(ProviderError):
    """Raised when a provider factory is built from an empty registration."""


class ProviderType(Enum):
    DEFAULT = "default"
    FRANKFURTER = "frankfurter"


_SPECIALIZED_TYPES: dict[ProviderType, type[BaseRateProvider]] = {
    ProviderType.FRANKFURTER: FrankfurterProvider,
}


class ProviderSelector(Protocol):
    """Anything that can hand out a provider for a requested type."""

    def get_provider(self, provider_type: ProviderType = ProviderType.DEFAULT) -> BaseRateProvider: ...


class ProviderFactory:
    """Select providers from an ordered registration fixed at startup."""

    def __init__(self, providers: Sequence[BaseRateProvider] | None) -> None:
        if providers is None:
            raise InvalidArgument("providers is required")
        self._providers: tuple[BaseRateProvider, ...] = tuple(providers)
        if not self._providers:
            logger.error("No currency providers registered")
            raise NoProvidersRegistered("No currency providers are registered")

    @property
    def providers(self) -> tuple[BaseRateProvider, ...]:
        return self._providers

    def get_provider(self, provider_type: ProviderType = ProviderType.DEFAULT) -> BaseRateProvider:
        """Return the first provider of the requested type, else the first registered."""

        logger.debug("Getting currency provider of type: %s", provider_type.value)
        provider_cls = _SPECIALIZED_TYPES.get(provider_type)
        if provider_cls is not None:
            for provider in self._providers:
                if isinstance(provider, provider_cls):
                    return provider
        return self._providers[0]

    def get_providers_by_supported_currency(self, currency: str) -> tuple[BaseRateProvider, ...]:
        # Per-currency routing is not implemented; every provider is a candidate.
        logger.debug("Getting providers that support currency: %s", currency)
        return self._providers


def _default_builders() -> Iterable[tuple[str, ProviderBuilder]]:
    def frankfurter_builder(config: Mapping[str, Any], tracer: Tracer) -> FrankfurterProvider:
        return FrankfurterProvider.from_config(config, tracer=tracer)

    def mock_builder(_config: Mapping[str, Any], _tracer: Tracer) -> MockRateProvider:
        return MockRateProvider()

    return [
        (FrankfurterProvider.name, frankfurter_builder),
        (MockRateProvider.name, mock_builder),
    ]


def register_provider(name: str, builder: ProviderBuilder) -> None:
    """Register a provider builder under the given name."""

    if not name:
        raise ValueError("Provider name cannot be empty.")
    _PROVIDER_BUILDERS[name.lower()] = builder


def list_providers() -> List[str]:
    """Return the list of registered provider identifiers."""

    return sorted(_PROVIDER_BUILDERS.keys())


def build_provider(name: str, config: Mapping[str, Any], tracer: Tracer) -> BaseRateProvider:
    """Instantiate a provider by registered name."""

    provider_name = name.strip().lower()
    try:
        builder = _PROVIDER_BUILDERS[provider_name]
    except KeyError as exc:
        available = ", ".join(list_providers()) or "none registered"
        raise ProviderError(
            f"Unknown provider '{provider_name}'. Available providers: {available}"
        ) from exc
    return builder(config, tracer)


def build_providers(
    names: Iterable[str], config: Mapping[str, Any], tracer: Tracer
) -> list[BaseRateProvider]:
    """Instantiate providers in registration order."""

    return [build_provider(name, config, tracer) for name in names if name and name.strip()]


def parse_provider_names(raw: str | Iterable[str] | None) -> list[str]:
    """Split a provider list, lowercasing names and resolving aliases."""

    if raw is None:
        return []
    candidates = raw.split(",") if isinstance(raw, str) else list(raw)
    return [normalize_provider_name(item) for item in candidates if item and item.strip()]


def init_provider_factory(app) -> ProviderFactory:
    """Build the configured providers and attach the factory to the Flask app."""

    tracer = app.extensions.get("tracer") or Tracer.from_config("providers", app.config)
    names = parse_provider_names(app.config.get("FX_RATE_PROVIDERS"))
    factory = ProviderFactory(build_providers(names, app.config, tracer))
    app.extensions["provider_factory"] = factory
    logger.info(
        "Registered currency providers: %s",
        ", ".join(provider.name for provider in factory.providers),
    )
    return factory


def reset_registry(default_builders: Iterable[tuple[str, ProviderBuilder]] | None = None) -> None:
    """Reset provider registry; useful for tests."""

    _PROVIDER_BUILDERS.clear()

    builders = default_builders or _default_builders()
    for name, builder in builders:
        register_provider(name, builder)


reset_registry()
