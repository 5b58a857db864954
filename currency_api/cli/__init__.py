"""CLI entry points."""

from __future__ import annotations

from flask import Flask

from .tokens import issue_token


def register_cli(app: Flask) -> None:
    """Register CLI commands on the given Flask app."""

    app.cli.add_command(issue_token)
