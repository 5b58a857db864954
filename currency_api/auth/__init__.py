"""Authentication blueprint module."""

from __future__ import annotations

from flask_smorest import Blueprint

blp = Blueprint("Auth", __name__, description="Token issuance and caller identity")

from . import routes  # noqa: E402,F401
