"""Lightweight tracing collaborator for capturing operation spans."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from time import perf_counter
from typing import Any

from flask import Flask

from currency_api.logging import as_bool, current_request_id

LOG_EVENT_NAME = "trace.span"
CONFIG_ENABLED_KEY = "TRACING_ENABLED"
CONFIG_THRESHOLD_KEY = "TRACING_MIN_DURATION_MS"


class Span:
    """Mutable attribute bag for one traced operation."""

    def __init__(self, name: str, attributes: Mapping[str, Any] | None = None) -> None:
        self.name = name
        self.attributes: dict[str, Any] = dict(attributes or {})
        self.error: str | None = None
        self.duration_ms: float | None = None

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    @property
    def status(self) -> str:
        return "error" if self.error else "success"


class Tracer:
    """Measure operation spans and log them when enabled or slow.

    Instances are passed to each component at construction; nothing is
    registered globally.
    """

    def __init__(
        self,
        service_name: str,
        *,
        enabled: bool = False,
        min_duration_ms: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.service_name = service_name
        self.enabled = enabled
        self.min_duration_ms = min_duration_ms
        self._logger = logger or logging.getLogger(f"{__name__}.{service_name}")

    @classmethod
    def from_config(cls, service_name: str, config: Mapping[str, Any]) -> Tracer:
        return cls(
            service_name,
            enabled=as_bool(config.get(CONFIG_ENABLED_KEY, False)),
            min_duration_ms=_to_float(config.get(CONFIG_THRESHOLD_KEY)),
        )

    @contextmanager
    def span(self, name: str, **attributes: Any) -> Iterator[Span]:
        """Time the enclosed block, yielding a span that accepts attributes."""

        span = Span(name, attributes)
        start = perf_counter()
        try:
            yield span
        except Exception as exc:
            span.error = str(exc)
            raise
        finally:
            span.duration_ms = (perf_counter() - start) * 1000
            if self._should_log(span.duration_ms):
                payload = self._prepare_payload(span)
                if span.error:
                    self._logger.warning("Span finished (error)", extra=payload)
                else:
                    self._logger.info("Span finished", extra=payload)

    def _should_log(self, duration_ms: float) -> bool:
        if self.enabled:
            return True
        if self.min_duration_ms is None:
            return False
        return duration_ms >= self.min_duration_ms

    def _prepare_payload(self, span: Span) -> MutableMapping[str, Any]:
        payload: MutableMapping[str, Any] = {
            "event": LOG_EVENT_NAME,
            "span": span.name,
            "service": self.service_name,
            "duration_ms": round(span.duration_ms or 0.0, 3),
            "source": "tracing",
            "status": span.status,
        }
        request_id = current_request_id()
        if request_id:
            payload["request_id"] = request_id
        for key, value in span.attributes.items():
            payload[key.replace(".", "_")] = value
        if span.error:
            payload["error"] = span.error
        return payload


def init_tracer(app: Flask) -> Tracer:
    """Build the application tracer from config and store it on the app."""

    tracer = Tracer.from_config(app.config.get("APP_NAME", "currency-converter-api"), app.config)
    app.extensions["tracer"] = tracer
    return tracer


def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
