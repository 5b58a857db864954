"""Structured logging for the currency converter API.

Context travels on log records as attributes passed through ``extra=``. The
JSON formatter emits every such attribute next to the standard fields, so a
cache population or a request summary is one machine-readable line.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from flask import current_app, g, has_request_context, request
from flask.logging import default_handler
from werkzeug.exceptions import HTTPException

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATH_PREFIXES = ("/docs", "/favicon.ico")
DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_STANDARD_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONLogFormatter(logging.Formatter):
    """Render a record and its ``extra`` context as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        document: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        document.update(context_fields(record))
        if record.exc_info:
            document["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(document, default=str, separators=(",", ":"))


def context_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Attributes a caller attached to `record` through ``extra=``."""

    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
    }


def setup_logging(app) -> None:
    """Install one root handler, plain or JSON depending on ``LOG_JSON_ENABLED``."""

    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    if as_bool(app.config.get("LOG_JSON_ENABLED")):
        formatter: logging.Formatter = JSONLogFormatter()
    else:
        formatter = logging.Formatter(app.config.get("LOG_FORMAT") or DEFAULT_FORMAT)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # Records reach the root handler by propagation only.
    app.logger.removeHandler(default_handler)
    app.logger.setLevel(level)


def init_request_logging(app) -> None:
    """Tag every request with an ``X-Request-ID`` and log one summary line for it."""

    app.before_request(_bind_request_context)
    app.after_request(_log_completed_request)
    app.teardown_request(_log_failed_request)


def _bind_request_context() -> None:
    g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    g.request_started = time.perf_counter()


def _log_completed_request(response):
    request_id = current_request_id()
    if request_id:
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)

    level = logging.DEBUG if request.path.startswith(QUIET_PATH_PREFIXES) else logging.INFO
    current_app.logger.log(
        level, "Request handled", extra=request_log_extra("request.completed", response.status_code)
    )
    g.request_logged = True
    return response


def _log_failed_request(exc: BaseException | None) -> None:
    if exc is None or g.get("request_logged"):
        return
    status = exc.code if isinstance(exc, HTTPException) and exc.code else 500
    current_app.logger.error(
        "Request failed", extra=request_log_extra("request.failed", status, error=str(exc))
    )


def request_log_extra(event: str, status: int, *, error: str | None = None) -> dict[str, Any]:
    """Fields describing the current request: route, caller, outcome and timing."""

    started = g.get("request_started")
    return _compact(
        {
            "event": event,
            "route": request.url_rule.rule if request.url_rule else request.path,
            "method": request.method,
            "path": request.path,
            "status": status,
            "duration_ms": _elapsed_ms(started) if started is not None else None,
            "request_id": current_request_id(),
            "client_id": current_client_id() or "anonymous",
            "client_ip": request.remote_addr,
            "error": error,
            "source": "api",
        }
    )


def provider_log_extra(
    *,
    operation: str,
    base: str,
    event: str,
    status: str,
    duration_ms: float | None,
    cache_key: str | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    """Fields describing one cache population against the rate provider."""

    return _compact(
        {
            "event": event,
            "operation": operation,
            "base": base,
            "status": status,
            "duration_ms": round(duration_ms, 3) if duration_ms is not None else None,
            "cache_key": cache_key,
            "request_id": current_request_id(),
            "error": error,
            "source": "rate_service",
        }
    )


def current_request_id() -> str | None:
    if not has_request_context():
        return None
    return g.get("request_id")


def current_client_id() -> str | None:
    if not has_request_context():
        return None
    return getattr(g.get("principal"), "client_id", None)


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)


def _compact(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in fields.items() if value is not None}
