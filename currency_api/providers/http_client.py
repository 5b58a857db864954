"""Shared HTTP client wrapper with retries, backoff, jitter and a circuit breaker."""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import requests
from requests import Response, Session
from requests.exceptions import JSONDecodeError, RequestException

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429})


class HTTPClientError(RuntimeError):
    """Raised when the HTTP client cannot satisfy a request."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class HTTPPayloadError(HTTPClientError):
    """Raised when a successful response does not carry valid JSON."""


class CircuitOpenError(HTTPClientError):
    """Raised without touching the network while the circuit is open."""


@dataclass(frozen=True)
class HTTPClientConfig:
    """Configuration for the shared HTTP client."""

    base_url: str
    timeout: float = 30.0
    max_retries: int = 3
    backoff_seconds: float = 0.5
    backoff_jitter: float = 0.2
    circuit_breaker_threshold: int = 5
    circuit_breaker_duration: float = 60.0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")


class CircuitBreaker:
    """Open after `threshold` consecutive failures; half-open after `duration` seconds."""

    def __init__(
        self,
        threshold: int,
        duration: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._threshold = threshold
        self._duration = duration
        self._clock = clock
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._is_open_locked()

    def _is_open_locked(self) -> bool:
        if self._opened_at is None:
            return False
        if self._clock() - self._opened_at >= self._duration:
            # Half-open: the next call goes through to the upstream.
            self._opened_at = None
            self._failures = self._threshold - 1
            return False
        return True

    def record_success(self) -> None:
        with self._lock:
            self._failures = 0
            self._opened_at = None

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._threshold > 0 and self._failures >= self._threshold and self._opened_at is None:
                self._opened_at = self._clock()
                logger.warning(
                    "Circuit opened after %s consecutive failures for %.0fs.",
                    self._failures,
                    self._duration,
                )


class HTTPClient:
    """Small HTTP client that applies retry/backoff/jitter and circuit-breaker policies."""

    def __init__(
        self,
        config: HTTPClientConfig,
        session: Optional[Session] = None,
        breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._breaker = breaker or CircuitBreaker(
            config.circuit_breaker_threshold, config.circuit_breaker_duration
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        url = self._build_url(path)
        attempt = 0
        last_error: Optional[Exception] = None

        while attempt < self._config.max_retries:
            attempt += 1
            if self._breaker.is_open:
                raise CircuitOpenError(f"Circuit open; refusing request to {url}")
            try:
                response = self._session.get(url, params=params, timeout=self._config.timeout)
                payload = self._handle_response(response)
            except HTTPPayloadError:
                self._breaker.record_success()
                raise
            except (RequestException, HTTPClientError) as exc:
                if not self._is_transient(exc):
                    raise
                self._breaker.record_failure()
                last_error = exc
                if attempt >= self._config.max_retries:
                    break
                sleep_for = self._compute_backoff(attempt)
                logger.warning(
                    "HTTP request to %s failed (attempt %s/%s): %s. Retrying in %.2fs.",
                    url,
                    attempt,
                    self._config.max_retries,
                    exc,
                    sleep_for,
                )
                time.sleep(sleep_for)
            else:
                self._breaker.record_success()
                return payload

        status_code = getattr(last_error, "status_code", None)
        raise HTTPClientError(
            f"Failed to fetch {url}: {last_error}", status_code=status_code
        ) from last_error

    def _compute_backoff(self, attempt: int) -> float:
        base = self._config.backoff_seconds * (2 ** (attempt - 1))
        jitter = random.uniform(-self._config.backoff_jitter, self._config.backoff_jitter)
        delay = max(base + jitter, 0.0)
        return delay

    def _build_url(self, path: str) -> str:
        suffix = path.lstrip("/")
        return f"{self.base_url}/{suffix}"

    @staticmethod
    def _is_transient(exc: Exception) -> bool:
        if isinstance(exc, RequestException):
            return True
        status = getattr(exc, "status_code", None)
        return status is None or status >= 500 or status in RETRYABLE_STATUS_CODES

    @staticmethod
    def _handle_response(response: Response) -> Any:
        status = response.status_code
        if status >= 500:
            raise HTTPClientError(f"Server error {status}", status_code=status)
        if status >= 400:
            raise HTTPClientError(f"Client error {status}: {response.text}", status_code=status)

        try:
            payload: Dict[str, Any] = response.json()
        except (JSONDecodeError, ValueError) as exc:
            raise HTTPPayloadError("Invalid JSON response", status_code=status) from exc

        return payload
