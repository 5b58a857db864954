from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from currency_api.providers.base import UpstreamMalformedResponse, UpstreamUnavailable
from currency_api.providers.http_client import (
    HTTPClient,
    HTTPClientConfig,
    HTTPClientError,
    HTTPPayloadError,
)

logger = logging.getLogger(__name__)


class FrankfurterClientConfig:
    """Configuration parameters for the Frankfurter client."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_duration: float = 60.0,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.circuit_breaker_threshold = circuit_breaker_threshold
        self.circuit_breaker_duration = circuit_breaker_duration


class FrankfurterClient:
    """HTTP client for Frankfurter built on the shared wrapper.

    Transport failures surface as ``UpstreamUnavailable``; anything that
    arrives with a success status but cannot be used surfaces as
    ``UpstreamMalformedResponse``.
    """

    def __init__(
        self,
        config: FrankfurterClientConfig,
        client: HTTPClient | None = None,
    ) -> None:
        self._config = config
        self._client = client or HTTPClient(
            HTTPClientConfig(
                base_url=config.base_url,
                timeout=config.timeout,
                max_retries=config.max_retries,
                backoff_seconds=config.backoff_seconds,
                circuit_breaker_threshold=config.circuit_breaker_threshold,
                circuit_breaker_duration=config.circuit_breaker_duration,
            )
        )

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        try:
            payload = self._client.get(path, params=params)
        except HTTPPayloadError as exc:
            raise UpstreamMalformedResponse(f"Frankfurter API returned invalid JSON: {exc}") from exc
        except HTTPClientError as exc:
            raise UpstreamUnavailable(str(exc)) from exc

        if payload is None:
            raise UpstreamMalformedResponse("Frankfurter API returned an empty body")

        if not isinstance(payload, dict):
            raise UpstreamMalformedResponse("Frankfurter API response is not a JSON object")

        if "error" in payload:
            raise UpstreamMalformedResponse(f"Frankfurter API error payload: {payload['error']}")

        rates = payload.get("rates")
        if not isinstance(rates, dict):
            raise UpstreamMalformedResponse("Frankfurter API response missing 'rates' field")

        return payload
