"""Shared pytest fixtures."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from currency_api import create_app  # noqa: E402
from currency_api.providers.registry import reset_registry  # noqa: E402


@pytest.fixture()
def make_app() -> Callable[..., Any]:
    """Build a testing app, optionally overriding config values."""

    def _factory(**overrides: Any):
        return create_app("testing", config_overrides=overrides or None)

    return _factory


@pytest.fixture()
def app(make_app) -> Iterator:
    """Flask application wired to the deterministic mock provider."""

    yield make_app()
    reset_registry()


@pytest.fixture()
def client(app):
    """Provide a Flask test client."""

    with app.test_client() as client:
        yield client


def _bearer_headers(app, client_id: str) -> dict[str, str]:
    token = app.extensions["token_service"].issue(client_id)
    return {"Authorization": f"Bearer {token.access_token}"}


@pytest.fixture()
def user_headers(app) -> dict[str, str]:
    """Authorization header for a caller holding only the User role."""

    return _bearer_headers(app, "reporting-client")


@pytest.fixture()
def admin_headers(app) -> dict[str, str]:
    """Authorization header for a caller holding the Admin role."""

    return _bearer_headers(app, "ops-admin")


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    """Return the path to bundled JSON fixtures."""

    return ROOT_DIR / "tests" / "fixtures"


@pytest.fixture()
def load_json_fixture(fixtures_dir: Path) -> Callable[[str], dict]:
    """Load a JSON fixture by filename."""

    def _loader(filename: str) -> dict:
        path = fixtures_dir / filename
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    return _loader
