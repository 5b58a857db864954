"""Application-wide error utilities and handlers."""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from currency_api.providers import (
    InvalidArgument,
    ProviderError,
    UpstreamMalformedResponse,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for API-level errors."""

    status_code: int = 400

    def __init__(
        self, message: str, *, status_code: int | None = None, payload: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}


class AuthenticationError(APIError):
    """Missing, malformed or expired credentials."""

    status_code = 401


class AuthorizationError(APIError):
    """Authenticated caller lacks the role an endpoint requires."""

    status_code = 403


DEFAULT_STATUS_MESSAGES: dict[int, str] = {
    400: "Request could not be processed.",
    401: "Authentication failed. Valid token is required to access this resource.",
    403: "You do not have permission to access this resource.",
    404: "Resource not found.",
    422: "Submitted data is invalid.",
    500: "An unexpected error occurred.",
    502: "Upstream provider returned an invalid response.",
    503: "External service error.",
}


def _problem(status: int, message: str | None = None, **extra: Any):
    body: dict[str, Any] = {
        "message": message or DEFAULT_STATUS_MESSAGES.get(status, "Request failed."),
        "status": status,
        "instance": request.path,
    }
    body.update({key: value for key, value in extra.items() if value is not None})
    return jsonify(body), status


def register_error_handlers(app: Flask) -> None:
    """Attach error handlers to the Flask application."""

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError):
        return _problem(error.status_code, error.message, **error.payload)

    @app.errorhandler(InvalidArgument)
    def handle_invalid_argument(error: InvalidArgument):
        return _problem(400, str(error))

    @app.errorhandler(UpstreamUnavailable)
    def handle_upstream_unavailable(error: UpstreamUnavailable):
        logger.error("Upstream provider unavailable on %s: %s", request.path, error)
        return _problem(
            503,
            detail="An error occurred while communicating with an external service. "
            "Please try again later.",
        )

    @app.errorhandler(UpstreamMalformedResponse)
    def handle_upstream_malformed(error: UpstreamMalformedResponse):
        logger.error("Upstream provider returned malformed data on %s: %s", request.path, error)
        return _problem(502, detail="The exchange rate provider returned an unusable response.")

    @app.errorhandler(ProviderError)
    def handle_provider_error(error: ProviderError):
        logger.error("Provider error on %s: %s", request.path, error)
        return _problem(503, detail=str(error))

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("An unhandled exception occurred while processing %s", request.path)
        return _problem(500, detail="An unexpected error occurred. Please try again later.")
