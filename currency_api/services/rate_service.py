"""Read-through cache in front of the configured FX rate provider."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from time import perf_counter
from typing import Any, Callable

from cachetools import TLRUCache, cached

from currency_api.logging import provider_log_extra
from currency_api.monitoring import Span, Tracer
from currency_api.providers import (
    HistoricalSeries,
    InvalidArgument,
    ProviderSelector,
    RateSnapshot,
)
from currency_api.providers.base import require_date_range
from currency_api.utils.datetime import compact_date

logger = logging.getLogger(__name__)

LATEST_PREFIX = "latest"
CONVERT_PREFIX = "convert"
HISTORY_PREFIX = "history"

# Largest amount accepted for conversion, and its decimal places.
MAX_AMOUNT = Decimal("79228162514264337593543950335")
MAX_AMOUNT_SCALE = 28
AMOUNT_PRECISION = 60


@dataclass(frozen=True)
class CacheSettings:
    """Expiration policy per operation family."""

    latest_ttl_minutes: float = 30
    conversion_ttl_minutes: float = 30
    historical_ttl_hours: float = 6
    max_entries: int = 1024

    def __post_init__(self) -> None:
        for name in ("latest_ttl_minutes", "conversion_ttl_minutes", "historical_ttl_hours"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_entries <= 0:
            raise ValueError("max_entries must be positive")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> CacheSettings:
        return cls(
            latest_ttl_minutes=float(config.get("CACHE_LATEST_TTL_MINUTES", 30)),
            conversion_ttl_minutes=float(config.get("CACHE_CONVERSION_TTL_MINUTES", 30)),
            historical_ttl_hours=float(config.get("CACHE_HISTORICAL_TTL_HOURS", 6)),
            max_entries=int(config.get("CACHE_MAX_ENTRIES", 1024)),
        )

    def ttl_seconds(self, key: str) -> float:
        """Time-to-live for a cache key, chosen by its operation prefix."""

        prefix = key.split("-", 1)[0]
        if prefix == HISTORY_PREFIX:
            return self.historical_ttl_hours * 3600
        if prefix == CONVERT_PREFIX:
            return self.conversion_ttl_minutes * 60
        return self.latest_ttl_minutes * 60


def latest_cache_key(base_currency: str) -> str:
    return f"{LATEST_PREFIX}-{_code(base_currency)}"


def conversion_cache_key(base_currency: str, targets: Iterable[str], amount: Decimal) -> str:
    # Sorted and deduplicated so that target order does not split the cache.
    normalized_targets = ",".join(sorted({_code(target) for target in targets}))
    return f"{CONVERT_PREFIX}-{_code(base_currency)}-{normalized_targets}-{canonical_amount(amount)}"


def history_cache_key(base_currency: str, start: date, end: date) -> str:
    return f"{HISTORY_PREFIX}-{_code(base_currency)}-{compact_date(start)}-{compact_date(end)}"


def _code(currency: str) -> str:
    return currency.strip().upper()


def canonical_amount(amount: Decimal | int | str) -> str:
    """Render an amount without exponent or trailing zeros (``100.50`` -> ``100.5``).

    Raises ``InvalidArgument`` for amounts that are not finite, exceed
    ``MAX_AMOUNT`` or carry more than ``MAX_AMOUNT_SCALE`` decimal places.
    """

    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise InvalidArgument(f"amount '{amount}' is not a number") from exc
    if not value.is_finite():
        raise InvalidArgument("amount must be a finite number")
    if value.copy_abs() > MAX_AMOUNT:
        raise InvalidArgument(f"amount must not exceed {MAX_AMOUNT}")
    if value == 0:
        return "0"

    with localcontext() as context:
        context.prec = AMOUNT_PRECISION
        context.traps[Inexact] = True
        try:
            normalized = value.normalize()
        except Inexact as exc:
            raise InvalidArgument("amount has too many significant digits") from exc
    if -normalized.as_tuple().exponent > MAX_AMOUNT_SCALE:
        raise InvalidArgument(f"amount must not have more than {MAX_AMOUNT_SCALE} decimal places")
    return format(normalized, "f")


def build_rate_cache(
    settings: CacheSettings, timer: Callable[[], float] = time.monotonic
) -> TLRUCache:
    """Create the process-wide cache with per-operation expiration."""

    def time_to_use(key: str, _value: Any, now: float) -> float:
        return now + settings.ttl_seconds(key)

    return TLRUCache(maxsize=settings.max_entries, ttu=time_to_use, timer=timer)


class CachedRateService:
    """Serve latest, conversion and historical rates through a shared TTL cache.

    Population of an absent key happens at most once at a time: concurrent
    callers for the same key wait for the first one and then read its result.
    A failed population stores nothing, so the next caller retries the
    provider. Provider and selector errors propagate unchanged.
    """

    def __init__(
        self,
        selector: ProviderSelector,
        settings: CacheSettings | None = None,
        *,
        cache: TLRUCache | None = None,
        tracer: Tracer | None = None,
    ) -> None:
        self._selector = selector
        self._settings = settings or CacheSettings()
        self._cache = cache if cache is not None else build_rate_cache(self._settings)
        self._tracer = tracer or Tracer("rate-service")
        self._lock = threading.Lock()
        self._condition = threading.Condition(self._lock)

        def read_through(key: Callable[..., str], loader: Callable[..., Any]) -> Callable[..., Any]:
            return cached(self._cache, key=key, lock=self._lock, condition=self._condition)(loader)

        self._latest = read_through(latest_cache_key, self._load_latest)
        self._convert = read_through(conversion_cache_key, self._load_conversion)
        self._historical = read_through(history_cache_key, self._load_historical)

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def cache(self) -> TLRUCache:
        return self._cache

    def get_latest(self, base_currency: str) -> RateSnapshot:
        """Latest rates for `base_currency`, cached for the latest-rates TTL."""

        if base_currency is None:
            raise InvalidArgument("base_currency is required")

        key = latest_cache_key(base_currency)
        with self._tracer.span("cache.latest", **{"currency.base": base_currency, "cache.key": key}):
            logger.debug("Attempting to retrieve latest rates for %s from cache", base_currency)
            return self._latest(base_currency)

    def convert(
        self, base_currency: str, targets: Iterable[str], amount: Decimal
    ) -> RateSnapshot:
        """Converted amounts of `amount` into each target, cached for the conversion TTL."""

        if base_currency is None:
            raise InvalidArgument("base_currency is required")
        if targets is None:
            raise InvalidArgument("targets is required")
        if amount is None:
            raise InvalidArgument("amount is required")

        symbols = tuple(targets)
        key = conversion_cache_key(base_currency, symbols, amount)
        with self._tracer.span(
            "cache.convert",
            **{"currency.base": base_currency, "currency.targets": ",".join(symbols), "cache.key": key},
        ):
            logger.debug(
                "Attempting to retrieve conversion of %s %s to %s from cache",
                amount,
                base_currency,
                ",".join(symbols),
            )
            return self._convert(base_currency, symbols, amount)

    def get_historical(self, base_currency: str, start: date, end: date) -> HistoricalSeries:
        """Daily rates between `start` and `end`, materialized and cached as one unit."""

        if base_currency is None:
            raise InvalidArgument("base_currency is required")
        if start is None or end is None:
            raise InvalidArgument("start and end dates are required")
        require_date_range(start, end)

        key = history_cache_key(base_currency, start, end)
        with self._tracer.span(
            "cache.historical", **{"currency.base": base_currency, "cache.key": key}
        ):
            logger.debug(
                "Attempting to retrieve historical rates for %s from %s to %s from cache",
                base_currency,
                start,
                end,
            )
            return self._historical(base_currency, start, end)

    def _load_latest(self, base_currency: str) -> RateSnapshot:
        key = latest_cache_key(base_currency)
        with self._timed_population("latest", base_currency, key):
            return self._selector.get_provider().get_latest(base_currency)

    def _load_conversion(
        self, base_currency: str, targets: tuple[str, ...], amount: Decimal
    ) -> RateSnapshot:
        key = conversion_cache_key(base_currency, targets, amount)
        with self._timed_population("convert", base_currency, key):
            return self._selector.get_provider().convert(base_currency, targets, amount)

    def _load_historical(self, base_currency: str, start: date, end: date) -> HistoricalSeries:
        key = history_cache_key(base_currency, start, end)
        with self._timed_population("historical", base_currency, key) as span:
            series = self._selector.get_provider().get_historical(base_currency, start, end)
            # Materialize before caching so every reader sees the full series.
            materialized: HistoricalSeries = tuple(series or ())
            span.set_attribute("date.count", len(materialized))
            return materialized

    @contextmanager
    def _timed_population(self, operation: str, base_currency: str, key: str) -> Iterator[Span]:
        logger.info(
            "Cache miss for %s rates with %s, fetching from provider",
            operation,
            base_currency,
            extra={"cache_key": key},
        )
        start = perf_counter()
        with self._tracer.span(
            f"provider.{operation}",
            **{"currency.base": base_currency, "cache.key": key, "cache.hit": False},
        ) as span:
            try:
                yield span
            except Exception as exc:
                logger.warning(
                    "Provider failure while populating %s rates for %s: %s",
                    operation,
                    base_currency,
                    exc,
                    extra=provider_log_extra(
                        operation=operation,
                        base=base_currency,
                        event="cache.populate",
                        status="error",
                        duration_ms=(perf_counter() - start) * 1000,
                        cache_key=key,
                        error=str(exc),
                    ),
                )
                raise

        logger.info(
            "Stored %s rates for %s in cache",
            operation,
            base_currency,
            extra=provider_log_extra(
                operation=operation,
                base=base_currency,
                event="cache.populate",
                status="success",
                duration_ms=(perf_counter() - start) * 1000,
                cache_key=key,
            ),
        )


def init_rate_service(app) -> CachedRateService:
    """Create the cached rate service and store it on the Flask app."""

    selector = app.extensions["provider_factory"]
    settings = CacheSettings.from_config(app.config)
    tracer = app.extensions.get("tracer")
    service = CachedRateService(selector, settings, tracer=tracer)
    app.extensions["rate_service"] = service
    return service
